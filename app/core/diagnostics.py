"""
Diagnostics: tool version detection and system checks.
"""

import shutil
import logging
from datetime import datetime, timezone
from pathlib import Path

from app.core.security_utils import run_subprocess_capture
from app.core.constants import YTDLP_BIN, FFMPEG_BIN

logger = logging.getLogger(__name__)


def get_ytdlp_version() -> str:
    """Return yt-dlp version string, or error message."""
    try:
        result = run_subprocess_capture([YTDLP_BIN, "--version"], timeout=10)
        if result.returncode == 0:
            return result.stdout.strip()
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def get_ffmpeg_version() -> str:
    """Return ffmpeg version string, or error message."""
    try:
        result = run_subprocess_capture([FFMPEG_BIN, "-version"], timeout=10)
        if result.returncode == 0:
            lines = result.stdout.strip().splitlines()
            return lines[0] if lines else "unknown"
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def missing_tools() -> list[str]:
    """Names of required external tools not found on PATH."""
    return [tool for tool in (YTDLP_BIN, FFMPEG_BIN) if not shutil.which(tool)]


def check_cookies_file(cookies_path: Path | None) -> dict:
    """Check if the cookies file exists and return info."""
    info = {"detected": False, "path": str(cookies_path) if cookies_path else None,
            "last_modified": None}
    if cookies_path and cookies_path.exists():
        info["detected"] = True
        stat = cookies_path.stat()
        info["last_modified"] = datetime.fromtimestamp(
            stat.st_mtime, tz=timezone.utc
        ).isoformat()
    return info


def get_diagnostics(cookies_path: Path | None = None) -> dict:
    """Gather all diagnostic information."""
    return {
        "ytdlp_version": get_ytdlp_version(),
        "ffmpeg_version": get_ffmpeg_version(),
        "cookies": check_cookies_file(cookies_path),
    }
