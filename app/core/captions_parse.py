"""
Caption track parsing → ordered (timestamp, text) segments.
Handles WebVTT and SRT-style cue blocks: header, cue numbers,
timing lines, styling/markup.
"""

import re
import logging
from pathlib import Path

from app.core.models import TranscriptSegment

logger = logging.getLogger(__name__)

_ARROW = '-->'
_HEADER = 'WEBVTT'
_CUE_ID_RE = re.compile(r'^\d+$')
_ANGLE_TAG_RE = re.compile(r'<[^>]*>')
_BRACKET_TAG_RE = re.compile(r'\[[^\]]*\]')
_SPACES_RE = re.compile(r'\s+')

# Parser states
_SEEKING = "SEEKING"
_ACCUMULATING = "ACCUMULATING"


def strip_markup(line: str) -> str:
    """Remove <c>, <b>, <00:00:01.000> and [Music]-style tags."""
    line = _ANGLE_TAG_RE.sub('', line)
    line = _BRACKET_TAG_RE.sub('', line)
    return _SPACES_RE.sub(' ', line).strip()


def parse_caption_track(text: str) -> list[TranscriptSegment]:
    """
    Convert caption-track text into TranscriptSegments in source order.

    Lines before the first timing line (header, Kind:, Language:, ...) are
    skipped. A timing line closes the previous cue and opens a new one;
    cue numbers and blank lines never change the accumulated text.
    Returns [] when the track has no cue with text.
    """
    segments: list[TranscriptSegment] = []
    state = _SEEKING
    start = ""
    parts: list[str] = []

    def emit():
        if parts:
            segments.append(TranscriptSegment(timestamp=start, text=' '.join(parts)))

    for raw in text.splitlines():
        line = raw.strip()

        if _ARROW in line:
            emit()
            start = line.split(_ARROW, 1)[0].strip()
            parts = []
            state = _ACCUMULATING
            continue

        if not line or line == _HEADER or line.startswith(_HEADER + ' ') or _CUE_ID_RE.match(line):
            continue

        if state == _SEEKING:
            continue

        cleaned = strip_markup(line)
        if cleaned:
            parts.append(cleaned)

    emit()
    return segments


def parse_vtt_file(vtt_path: Path) -> list[TranscriptSegment]:
    """Parse a caption file from disk."""
    content = vtt_path.read_text(encoding='utf-8', errors='replace')
    segments = parse_caption_track(content)
    logger.debug("Parsed %d caption segments from %s", len(segments), vtt_path.name)
    return segments


def format_transcript(segments: list[TranscriptSegment]) -> str:
    """
    Join segments as '[timestamp] text' lines.
    Consecutive identical texts (rolling auto-captions) are written once.
    """
    lines = []
    prev_text = None
    for seg in segments:
        if seg.text == prev_text:
            continue
        lines.append(f"[{seg.timestamp}] {seg.text}")
        prev_text = seg.text
    return '\n'.join(lines)
