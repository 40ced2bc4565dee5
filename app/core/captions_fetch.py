"""
Captions fetching: English creator captions, falling back to
automatic captions, as WebVTT. A video without captions is a normal
outcome (None), not an error.
"""

import logging
import subprocess
from pathlib import Path

from app.core.security_utils import run_subprocess_capture
from app.core.download_video import strategy_args
from app.core.models import FetchStrategy
from app.core.constants import YTDLP_BIN, CAPTIONS_TIMEOUT_SEC

logger = logging.getLogger(__name__)


def _pick_english_vtt(work_dir: Path, video_id: str) -> Path | None:
    vtt_files = sorted(work_dir.glob(f"{video_id}*.vtt"))
    for vtt in vtt_files:
        name_lower = vtt.name.lower()
        if '.en.' in name_lower or '.en-' in name_lower:
            return vtt
    # If only one VTT matches the video id, accept it
    if len(vtt_files) == 1:
        return vtt_files[0]
    return None


def fetch_captions(video_url: str, video_id: str, work_dir: Path,
                   strategy: FetchStrategy,
                   timeout: float = CAPTIONS_TIMEOUT_SEC) -> Path | None:
    """
    Download English captions (VTT) into work_dir.
    Returns the VTT path, or None if the video has none.
    """
    work_dir.mkdir(parents=True, exist_ok=True)

    def _try_fetch(auto: bool) -> Path | None:
        args = [
            YTDLP_BIN,
            "--skip-download",
            "--write-auto-subs" if auto else "--write-subs",
            "--sub-langs", "en.*,en",
            "--sub-format", "vtt",
            "--no-playlist",
            "-o", str(work_dir / "%(id)s.%(ext)s"),
        ]
        args.extend(strategy_args(strategy))
        args.append(video_url)

        try:
            result = run_subprocess_capture(args, timeout=timeout)
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.warning("Captions fetch error: %s", e)
            return None

        if result.returncode != 0:
            logger.info("yt-dlp captions call failed (rc=%s)", result.returncode)

        return _pick_english_vtt(work_dir, video_id)

    # First attempt: creator-provided captions
    vtt = _try_fetch(auto=False)
    if vtt:
        return vtt

    logger.info("No creator captions for %s, trying automatic captions...", video_id)
    return _try_fetch(auto=True)
