"""
Vertical render using ffmpeg (the Render Stage).
Target: 1080x1920 letterboxed frame, caption on top, CTA at the bottom,
H.264 CRF 23 / AAC 128k in MP4.
"""

import logging
import subprocess
from pathlib import Path

from app.core.security_utils import (
    run_subprocess_capture, overlay_text, escape_drawtext, stderr_tail,
    sanitize_overlay_text,
)
from app.core.error_codes import RenderError
from app.core.constants import (
    FFMPEG_BIN, TARGET_WIDTH, TARGET_HEIGHT, PAD_COLOR, RENDER_TIMEOUT_SEC,
    VIDEO_CODEC, VIDEO_PRESET, VIDEO_CRF, AUDIO_CODEC, AUDIO_BITRATE,
    CAPTION_STYLE, CTA_STYLE,
)

logger = logging.getLogger(__name__)


def _drawtext(text: str, style: dict, font_file: Path | None = None) -> str:
    opts = [
        f"text={overlay_text(text)}",
        "expansion=none",
        "x=(w-text_w)/2",
        f"y={style['y']}",
        f"fontsize={style['fontsize']}",
        f"fontcolor={style['fontcolor']}",
        "box=1",
        f"boxcolor={style['boxcolor']}",
        f"boxborderw={style['boxborderw']}",
    ]
    if font_file:
        opts.insert(1, f"fontfile={escape_drawtext(str(font_file))}")
    return "drawtext=" + ":".join(opts)


def build_filter_graph(caption: str, cta: str, font_file: Path | None = None) -> str:
    """
    Scale-to-fit, centre-pad to the portrait frame, then the two text boxes.
    A box whose text sanitises to nothing is left out (drawtext rejects empty text).
    """
    filters = [
        f"scale=w={TARGET_WIDTH}:h={TARGET_HEIGHT}"
        ":force_original_aspect_ratio=decrease:force_divisible_by=2",
        f"pad=w={TARGET_WIDTH}:h={TARGET_HEIGHT}:x=(ow-iw)/2:y=(oh-ih)/2:color={PAD_COLOR}",
    ]
    for text, style in ((caption, CAPTION_STYLE), (cta, CTA_STYLE)):
        if sanitize_overlay_text(text):
            filters.append(_drawtext(text, style, font_file))
    return ",".join(filters)


def build_render_args(input_path: Path, output_path: Path, caption: str, cta: str,
                      font_file: Path | None = None) -> list[str]:
    return [
        FFMPEG_BIN,
        "-y",                               # overwrite
        "-hide_banner",
        "-loglevel", "error",
        "-i", str(input_path),
        "-vf", build_filter_graph(caption, cta, font_file),
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-crf", str(VIDEO_CRF),
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        "-movflags", "+faststart",
        str(output_path),
    ]


def render_segment(input_path: Path, output_path: Path, caption: str, cta: str,
                   timeout: float = RENDER_TIMEOUT_SEC,
                   font_file: Path | None = None) -> Path:
    """
    Render `input_path` into the portrait frame with both overlays.
    Any file already at output_path is overwritten. Raises RenderError.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    args = build_render_args(input_path, output_path, caption, cta, font_file)

    logger.info("Rendering %s -> %s", input_path.name, output_path.name)

    try:
        result = run_subprocess_capture(args, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise RenderError(RenderError.Reason.TIMEOUT,
                          f"ffmpeg timed out after {timeout}s",
                          stderr_tail(e.stderr))
    except OSError as e:
        raise RenderError(RenderError.Reason.TOOL_FAILURE, f"Could not run ffmpeg: {e}")

    if result.returncode != 0:
        raise RenderError(RenderError.Reason.TOOL_FAILURE,
                          f"ffmpeg failed (rc={result.returncode})",
                          stderr_tail(result.stderr) or "No stderr available")

    if not output_path.exists():
        raise RenderError(RenderError.Reason.TOOL_FAILURE, "Rendered file not created")

    logger.info("Rendered video: %s (%d bytes)", output_path, output_path.stat().st_size)
    return output_path
