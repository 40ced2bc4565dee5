"""
YouTube metadata fetching via yt-dlp.
"""

import json
import logging
import subprocess

from app.core.security_utils import run_subprocess_capture, stderr_tail
from app.core.error_codes import FetchError
from app.core.download_video import strategy_args
from app.core.models import FetchStrategy
from app.core.constants import YTDLP_BIN, METADATA_TIMEOUT_SEC

logger = logging.getLogger(__name__)


def classify_ytdlp_failure(stderr: str) -> str:
    """Short human-readable cause for a failed yt-dlp call."""
    if "Video unavailable" in stderr or "is not available" in stderr:
        return "Video unavailable"
    if "geo" in stderr.lower() or "country" in stderr.lower():
        return "Geo-blocked"
    if "Sign in" in stderr or "confirm your age" in stderr or "consent" in stderr.lower():
        return "Restricted content (login/age required)"
    return "yt-dlp failed"


def fetch_metadata(video_url: str, strategy: FetchStrategy,
                   timeout: float = METADATA_TIMEOUT_SEC) -> dict:
    """
    Fetch video metadata using yt-dlp --dump-json.
    Returns dict with at least 'id', 'title', 'duration'.
    """
    args = [
        YTDLP_BIN,
        "--dump-json",
        "--no-playlist",
        "--skip-download",
    ]
    args.extend(strategy_args(strategy))
    args.append(video_url)

    try:
        result = run_subprocess_capture(args, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise FetchError(FetchError.Reason.TIMEOUT, f"yt-dlp metadata fetch timed out after {timeout}s")
    except OSError as e:
        raise FetchError(FetchError.Reason.TOOL_FAILURE, f"Could not run yt-dlp: {e}")

    if result.returncode != 0:
        stderr = stderr_tail(result.stderr)
        cause = classify_ytdlp_failure(stderr)
        raise FetchError(FetchError.Reason.TOOL_FAILURE,
                         f"{cause} (rc={result.returncode})", stderr)

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise FetchError(FetchError.Reason.TOOL_FAILURE, f"Failed to parse yt-dlp JSON: {e}")

    return data


def get_video_duration(metadata: dict) -> float:
    """Get video duration in seconds from metadata."""
    return float(metadata.get('duration') or 0)
