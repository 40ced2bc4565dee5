"""
YouTube URL parsing and validation.
"""

import re
from urllib.parse import urlparse, parse_qs

from app.core.constants import YOUTUBE_URL_PATTERNS, ErrorCode
from app.core.error_codes import ValidationError


def extract_video_id(url: str) -> str | None:
    """
    Extract the 11-character video_id from a YouTube URL.
    Returns None if the URL is not a valid YouTube URL.
    """
    if not isinstance(url, str):
        return None
    url = url.strip()
    if not url:
        return None

    # Try regex patterns
    for pattern in YOUTUBE_URL_PATTERNS:
        m = re.search(pattern, url)
        if m:
            return m.group(1)

    # Fallback: parse query string for 'v' parameter
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if 'youtube.com' in parsed.netloc or 'youtu.be' in parsed.netloc:
        qs = parse_qs(parsed.query)
        v = qs.get('v', [None])[0]
        if v and re.match(r'^[a-zA-Z0-9_-]{11}$', v):
            return v

    return None


def validate_youtube_url(url: str) -> str:
    """
    Validate a YouTube URL and return the video_id.
    Raises ValidationError if invalid.
    """
    video_id = extract_video_id(url)
    if not video_id:
        raise ValidationError(f"Not a valid YouTube URL: {url}", code=ErrorCode.INVALID_URL)
    return video_id


def is_youtube_url(url: str) -> bool:
    """Quick check if a string looks like a YouTube URL."""
    return extract_video_id(url) is not None
