"""
Shared constants for ShortsProcessor.
Single source of truth, imported by every other module.
"""

import os
import pathlib
import tempfile

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "ShortsProcessor"
SERVICE_NAME = "youtube-shorts-processor"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
DEFAULT_WORK_DIR = pathlib.Path(tempfile.gettempdir())
DEFAULT_COOKIES_PATH = DEFAULT_WORK_DIR / "youtube_cookies.txt"
CONFIG_ENV_VAR = "SHORTS_CONFIG"

# ── External tools ───────────────────────────────────────────────────
YTDLP_BIN = os.environ.get("YTDLP_BIN", "yt-dlp")
FFMPEG_BIN = os.environ.get("FFMPEG_BIN", "ffmpeg")

# ── Job stage values (ordered) ────────────────────────────────────────
class JobStage:
    CREATED = "CREATED"
    FETCHING = "FETCHING"
    RENDERING = "RENDERING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Caller-fixable
    VALIDATION = "ERR_VALIDATION"
    INVALID_URL = "ERR_INVALID_URL"
    NOT_FOUND = "ERR_NOT_FOUND"

    # Fetch stage
    FETCH_TIMEOUT = "ERR_FETCH_TIMEOUT"
    FETCH_OUTPUT_TOO_LARGE = "ERR_FETCH_OUTPUT_TOO_LARGE"
    FETCH_TOOL_FAILURE = "ERR_FETCH_TOOL_FAILURE"

    # Render stage
    RENDER_TIMEOUT = "ERR_RENDER_TIMEOUT"
    RENDER_TOOL_FAILURE = "ERR_RENDER_TOOL_FAILURE"

    INTERNAL = "ERR_INTERNAL"

# A new request (possibly with another fetch strategy) may succeed.
# The pipeline never retries on its own.
RETRYABLE_ERRORS = {
    ErrorCode.FETCH_TIMEOUT,
    ErrorCode.FETCH_TOOL_FAILURE,
    ErrorCode.RENDER_TIMEOUT,
}

# ── Fetch strategy ────────────────────────────────────────────────────
class FetchClient:
    DEFAULT = "default"
    MWEB = "mweb"
    WEB = "web"
    ANDROID = "android"
    IOS = "ios"
    TV = "tv"

FETCH_CLIENTS = (
    FetchClient.DEFAULT, FetchClient.MWEB, FetchClient.WEB,
    FetchClient.ANDROID, FetchClient.IOS, FetchClient.TV,
)

class FetchMode:
    # ffmpeg reads only the requested window while downloading
    SLICE = "slice"
    # yt-dlp --download-sections
    SECTIONS = "sections"

FETCH_FORMAT = "best[ext=mp4][height<=1080]/best[height<=1080]/best"
FETCH_TIMEOUT_SEC = 300
MAX_OUTPUT_BYTES = 50 * 1024 * 1024

# ── Delivery ──────────────────────────────────────────────────────────
class DeliveryMode:
    INLINE = "inline"
    STORE = "store"

ARTIFACT_TTL_SEC = 600          # 10 minutes, from creation
SWEEP_INTERVAL_SEC = 300        # 5 minutes

# ── Render target ─────────────────────────────────────────────────────
TARGET_WIDTH = 1080
TARGET_HEIGHT = 1920
PAD_COLOR = "black"
RENDER_TIMEOUT_SEC = 600

VIDEO_CODEC = "libx264"
VIDEO_PRESET = "fast"
VIDEO_CRF = 23
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "128k"
OUTPUT_EXT = "mp4"
OUTPUT_MIMETYPE = "video/mp4"

CAPTION_STYLE = {
    "y": "80",
    "fontsize": 52,
    "fontcolor": "white",
    "boxcolor": "black@0.7",
    "boxborderw": 15,
}
CTA_STYLE = {
    "y": "h-150",
    "fontsize": 42,
    "fontcolor": "white",
    "boxcolor": "red@0.8",
    "boxborderw": 12,
}

# ── Request defaults ──────────────────────────────────────────────────
DEFAULT_DURATION_SEC = 60
DEFAULT_CAPTION = "Amazing Content!"
DEFAULT_CTA = "Follow for more!"

# ── Transcript ────────────────────────────────────────────────────────
CAPTIONS_TIMEOUT_SEC = 60
METADATA_TIMEOUT_SEC = 60
NO_TRANSCRIPT_PLACEHOLDER = "Transcript not available for this video."

# ── Misc ──────────────────────────────────────────────────────────────
DEFAULT_PORT = 3000
YOUTUBE_URL_PATTERNS = [
    r'(?:https?://)?(?:www\.)?youtube\.com/watch\?v=([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?youtu\.be/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/embed/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/v/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/shorts/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?m\.youtube\.com/watch\?v=([a-zA-Z0-9_-]{11})',
]

# Printable ASCII, the only characters allowed into overlay text
OVERLAY_ALLOWED_CHARS = r'[^\x20-\x7e]'
MAX_OVERLAY_LEN = 120
