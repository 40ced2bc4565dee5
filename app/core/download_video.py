"""
Segment download via yt-dlp (the Fetch Stage).
Materialises only the requested time window of a remote video.
"""

import logging
import subprocess
from pathlib import Path

from app.core.security_utils import (
    run_subprocess_capture, OutputLimitExceeded, stderr_tail,
)
from app.core.error_codes import FetchError
from app.core.models import FetchStrategy
from app.core.constants import (
    YTDLP_BIN, FETCH_FORMAT, FETCH_TIMEOUT_SEC, MAX_OUTPUT_BYTES,
    FetchClient, FetchMode,
)

logger = logging.getLogger(__name__)


def format_seconds(value: float) -> str:
    """30.0 -> '30', 12.5 -> '12.5'."""
    return f"{value:.3f}".rstrip('0').rstrip('.')


def strategy_args(strategy: FetchStrategy) -> list[str]:
    """Client-identity and credential options shared by every yt-dlp call."""
    args = []
    if strategy.client and strategy.client != FetchClient.DEFAULT:
        args.extend(["--extractor-args", f"youtube:player_client={strategy.client}"])
    if strategy.cookies_path is not None:
        if strategy.cookies_path.exists():
            args.extend(["--cookies", str(strategy.cookies_path)])
        else:
            logger.warning("Cookies file %s missing, fetching without it", strategy.cookies_path)
    return args


def build_fetch_args(source: str, start_sec: float, duration_sec: float,
                     output_path: Path, strategy: FetchStrategy) -> list[str]:
    """Build the yt-dlp argument vector for one windowed fetch."""
    start = format_seconds(start_sec)
    end = format_seconds(start_sec + duration_sec)

    args = [
        YTDLP_BIN,
        "--no-playlist",
        "--no-part",
        "--force-overwrites",
        "--no-progress",
        "-f", FETCH_FORMAT,
    ]
    args.extend(strategy_args(strategy))

    if strategy.mode == FetchMode.SLICE:
        # ffmpeg seeks and stops on the input side, so only the window is read
        args.extend([
            "--downloader", "ffmpeg",
            "--downloader-args", f"ffmpeg_i:-ss {start} -t {format_seconds(duration_sec)}",
        ])
    elif strategy.mode == FetchMode.SECTIONS:
        args.extend([
            "--download-sections", f"*{start}-{end}",
            "--force-keyframes-at-cuts",
        ])
    else:
        raise ValueError(f"Unknown fetch mode: {strategy.mode}")

    args.extend(["-o", str(output_path), source])
    return args


def fetch_segment(source: str, start_sec: float, duration_sec: float,
                  output_path: Path, strategy: FetchStrategy,
                  timeout: float = FETCH_TIMEOUT_SEC,
                  max_output_bytes: int = MAX_OUTPUT_BYTES) -> Path:
    """
    Download [start, start+duration) of `source` to `output_path`.
    Returns output_path; raises FetchError. The caller owns deletion of
    output_path whatever the outcome.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    args = build_fetch_args(source, start_sec, duration_sec, output_path, strategy)

    logger.info("Fetching %ss from %ss (client=%s, mode=%s, cookies=%s)",
                format_seconds(duration_sec), format_seconds(start_sec),
                strategy.client, strategy.mode, strategy.cookies_path is not None)

    try:
        result = run_subprocess_capture(args, timeout=timeout,
                                        max_output_bytes=max_output_bytes)
    except subprocess.TimeoutExpired as e:
        raise FetchError(FetchError.Reason.TIMEOUT,
                         f"yt-dlp timed out after {timeout}s",
                         stderr_tail(e.stderr))
    except OutputLimitExceeded as e:
        raise FetchError(FetchError.Reason.OUTPUT_TOO_LARGE,
                         f"yt-dlp output exceeded {e.limit} bytes")
    except OSError as e:
        raise FetchError(FetchError.Reason.TOOL_FAILURE, f"Could not run yt-dlp: {e}")

    if result.stdout:
        logger.debug("yt-dlp output: %s", result.stdout[-2000:])

    if result.returncode != 0:
        stderr = stderr_tail(result.stderr)
        raise FetchError(FetchError.Reason.TOOL_FAILURE,
                         f"yt-dlp download failed (rc={result.returncode})",
                         stderr or "No stderr available")

    if not output_path.exists():
        raise FetchError(FetchError.Reason.TOOL_FAILURE,
                         "No video file found after download",
                         stderr_tail(result.stderr))

    logger.info("Downloaded segment: %s (%d bytes)", output_path, output_path.stat().st_size)
    return output_path
