"""
Segment pipeline: Fetch → Render → inline bytes or Artifact Store.
One call to run() is one job; stages run at most once, in order,
on the calling thread.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from app.core.constants import (
    JobStage, DeliveryMode, DEFAULT_WORK_DIR,
    FETCH_TIMEOUT_SEC, RENDER_TIMEOUT_SEC, MAX_OUTPUT_BYTES,
)
from app.core.models import (
    SegmentRequest, FetchStrategy, PipelineJob, SegmentResult,
)
from app.core.error_codes import JobError, InternalError
from app.core.naming import new_artifact_id, job_paths
from app.core.download_video import fetch_segment
from app.core.render_video import render_segment
from app.core.artifact_store import ArtifactStore
from app.core.cleanup import cleanup_paths

logger = logging.getLogger(__name__)


class SegmentPipeline:
    """
    Turns a SegmentRequest into a rendered vertical clip.

    Every temp file a job creates is deleted exactly once: the raw fetch as
    soon as rendering succeeds, the rendered file after it is read (inline)
    or by the store once it expires (store), and everything on failure.
    """

    def __init__(self, strategy: FetchStrategy,
                 store: ArtifactStore | None = None,
                 work_dir: Path = DEFAULT_WORK_DIR,
                 fetch_timeout_sec: float = FETCH_TIMEOUT_SEC,
                 render_timeout_sec: float = RENDER_TIMEOUT_SEC,
                 max_output_bytes: int = MAX_OUTPUT_BYTES,
                 font_file: Path | None = None,
                 fetcher: Callable[..., Path] = fetch_segment,
                 renderer: Callable[..., Path] = render_segment):
        self.strategy = strategy
        self.store = store
        self.work_dir = Path(work_dir)
        self.fetch_timeout_sec = fetch_timeout_sec
        self.render_timeout_sec = render_timeout_sec
        self.max_output_bytes = max_output_bytes
        self.font_file = font_file
        self._fetch = fetcher
        self._render = renderer

        # Callbacks
        self.on_job_updated: Optional[Callable[[PipelineJob], None]] = None

    # ── Job lifecycle ─────────────────────────────────────────────────

    def create_job(self, request: SegmentRequest) -> PipelineJob:
        job_id = new_artifact_id()
        raw_path, output_path = job_paths(self.work_dir, job_id)
        return PipelineJob(id=job_id, request=request,
                           raw_path=raw_path, output_path=output_path)

    def _set_stage(self, job: PipelineJob, stage: str):
        job.stage = stage
        logger.info("Job %s → %s", job.id, stage)
        if self.on_job_updated:
            self.on_job_updated(job)

    def run(self, request: SegmentRequest,
            delivery: str = DeliveryMode.INLINE) -> SegmentResult:
        """Run one job. Raises the failing stage's JobError after cleanup."""
        if delivery == DeliveryMode.STORE and self.store is None:
            raise InternalError("Store delivery requested but no artifact store is configured")

        job = self.create_job(request)
        self._set_stage(job, JobStage.CREATED)
        started = time.monotonic()

        try:
            result = self._process_job(job, delivery)
        except JobError as e:
            self._fail(job, e)
            raise
        except Exception as e:
            logger.error("Unexpected error in job %s: %s", job.id, e, exc_info=True)
            error = InternalError(f"Unexpected error: {e}")
            self._fail(job, error)
            raise error from e

        job.completed_at = time.time()
        self._set_stage(job, JobStage.COMPLETED)
        logger.info("Job %s completed in %.1fs (%d bytes, %s)",
                    job.id, time.monotonic() - started, result.size, delivery)
        return result

    def _process_job(self, job: PipelineJob, delivery: str) -> SegmentResult:
        request = job.request
        self.work_dir.mkdir(parents=True, exist_ok=True)

        # ── Stage 1: Fetch ──
        self._set_stage(job, JobStage.FETCHING)
        job.touched.append(job.raw_path)
        self._fetch(
            request.video_url, request.start_time, request.duration,
            job.raw_path, self.strategy,
            timeout=self.fetch_timeout_sec,
            max_output_bytes=self.max_output_bytes,
        )

        # ── Stage 2: Render ──
        self._set_stage(job, JobStage.RENDERING)
        job.touched.append(job.output_path)
        self._render(
            job.raw_path, job.output_path, request.caption, request.cta,
            timeout=self.render_timeout_sec,
            font_file=self.font_file,
        )

        # Raw fetch is never needed again
        cleanup_paths([job.raw_path])
        job.touched.remove(job.raw_path)

        if delivery == DeliveryMode.STORE:
            return self._deliver_to_store(job)
        return self._deliver_inline(job)

    def _deliver_inline(self, job: PipelineJob) -> SegmentResult:
        try:
            data = job.output_path.read_bytes()
        except OSError as e:
            raise InternalError(f"Could not read rendered file: {e}")

        cleanup_paths([job.output_path])
        job.touched.remove(job.output_path)
        return self._result(job, size=len(data), video_bytes=data)

    def _deliver_to_store(self, job: PipelineJob) -> SegmentResult:
        try:
            size = job.output_path.stat().st_size
        except OSError as e:
            raise InternalError(f"Could not stat rendered file: {e}")

        artifact_id = self.store.register(job.output_path, size)
        # ownership transferred: the store deletes it from now on
        job.touched.remove(job.output_path)
        return self._result(job, size=size, artifact_id=artifact_id,
                            expires_in=self.store.ttl_sec)

    def _result(self, job: PipelineJob, size: int, **extra) -> SegmentResult:
        return SegmentResult(
            job_id=job.id,
            file_name=job.output_path.name,
            size=size,
            start=job.request.start_time,
            duration=job.request.duration,
            **extra,
        )

    def _fail(self, job: PipelineJob, error: JobError):
        """Record the failure and delete whatever the job may have written."""
        failed_stage = job.stage
        error.stage = failed_stage
        job.error = error
        cleanup_paths(job.touched)
        job.touched.clear()
        self._set_stage(job, JobStage.FAILED)
        logger.error("Job %s failed during %s: %s", job.id, failed_stage, error)
