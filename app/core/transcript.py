"""
Transcript service: metadata + caption track → timestamped transcript.
"""

import logging
from pathlib import Path

from app.core.constants import DEFAULT_WORK_DIR, NO_TRANSCRIPT_PLACEHOLDER
from app.core.models import FetchStrategy, TranscriptResult
from app.core.naming import new_artifact_id
from app.core.url_parse import validate_youtube_url
from app.core.yt_metadata import fetch_metadata, get_video_duration
from app.core.captions_fetch import fetch_captions
from app.core.captions_parse import parse_vtt_file, format_transcript
from app.core.cleanup import cleanup_workspace

logger = logging.getLogger(__name__)


class TranscriptService:

    def __init__(self, strategy: FetchStrategy, work_dir: Path = DEFAULT_WORK_DIR):
        self.strategy = strategy
        self.work_dir = Path(work_dir)

    def get_transcript(self, video_url: str) -> TranscriptResult:
        """
        Raises ValidationError for a URL without a video id and FetchError
        when metadata cannot be fetched. Missing captions yield the placeholder.
        """
        video_id = validate_youtube_url(video_url)
        metadata = fetch_metadata(video_url, self.strategy)
        title = metadata.get('title') or f'video_{video_id}'

        workspace = self.work_dir / f"captions_{new_artifact_id()}"
        try:
            vtt_path = fetch_captions(video_url, video_id, workspace, self.strategy)
            segments = []
            if vtt_path:
                try:
                    segments = parse_vtt_file(vtt_path)
                except OSError as e:
                    logger.warning("Could not read captions for %s: %s", video_id, e)
        finally:
            cleanup_workspace(workspace)

        text = format_transcript(segments)
        if not text:
            logger.info("No transcript available for %s", video_id)
            text = NO_TRANSCRIPT_PLACEHOLDER

        return TranscriptResult(
            video_id=metadata.get('id') or video_id,
            title=title,
            duration=get_video_duration(metadata),
            transcript=text,
            segments=segments,
        )
