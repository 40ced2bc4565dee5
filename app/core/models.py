"""
Data models (plain dataclasses) for ShortsProcessor.
"""

import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from app.core.constants import (
    JobStage, FetchClient, FetchMode,
    DEFAULT_DURATION_SEC, DEFAULT_CAPTION, DEFAULT_CTA,
)
from app.core.error_codes import ValidationError, JobError


def _number(payload: dict, key: str) -> float | None:
    value = payload.get(key)
    if value is None:
        return None
    # bool is an int subclass; "true" is not a time
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"{key} must be a number")
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        raise ValidationError(f"{key} must be a number")
    # NaN slips past the range checks in from_payload; Infinity overflows later
    if not math.isfinite(number):
        raise ValidationError(f"{key} must be a finite number")
    return value if isinstance(value, int) else number


@dataclass(frozen=True)
class SegmentRequest:
    video_url: str
    start_time: float
    duration: float = DEFAULT_DURATION_SEC
    caption: str = DEFAULT_CAPTION
    cta: str = DEFAULT_CTA

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @classmethod
    def from_payload(cls, payload: dict | None) -> "SegmentRequest":
        """
        Build a request from the JSON body of POST /process-segment.
        Raises ValidationError before any tool is touched.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        video_url = payload.get('videoUrl')
        start_time = _number(payload, 'startTime')
        if not video_url or start_time is None:
            raise ValidationError("videoUrl and startTime required")
        if not isinstance(video_url, str) or not video_url.strip().startswith(('http://', 'https://')):
            raise ValidationError("videoUrl must be an http(s) URL")
        if start_time < 0:
            raise ValidationError("startTime must be >= 0")

        duration = _number(payload, 'duration')
        if duration is None:
            duration = DEFAULT_DURATION_SEC
        if duration <= 0:
            raise ValidationError("duration must be > 0")

        caption = payload.get('caption') or DEFAULT_CAPTION
        cta = payload.get('cta') or DEFAULT_CTA
        if not isinstance(caption, str) or not isinstance(cta, str):
            raise ValidationError("caption and cta must be strings")

        return cls(
            video_url=video_url.strip(),
            start_time=start_time,
            duration=duration,
            caption=caption,
            cta=cta,
        )


@dataclass(frozen=True)
class FetchStrategy:
    client: str = FetchClient.MWEB
    mode: str = FetchMode.SECTIONS
    cookies_path: Optional[Path] = None


@dataclass
class PipelineJob:
    id: str
    request: SegmentRequest
    raw_path: Path
    output_path: Path
    stage: str = JobStage.CREATED
    error: Optional[JobError] = None
    created_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None
    # paths the job has handed to a tool so far, i.e. possibly on disk
    touched: list[Path] = field(default_factory=list)


@dataclass
class StoredArtifact:
    id: str
    path: Path
    size: int
    created_at: float
    expires_at: float


@dataclass(frozen=True)
class TranscriptSegment:
    timestamp: str
    text: str


@dataclass
class SegmentResult:
    job_id: str
    file_name: str
    size: int
    start: float
    duration: float
    video_bytes: Optional[bytes] = None
    artifact_id: Optional[str] = None
    expires_in: Optional[float] = None


@dataclass
class TranscriptResult:
    video_id: str
    title: str
    duration: float
    transcript: str
    segments: list[TranscriptSegment] = field(default_factory=list)
