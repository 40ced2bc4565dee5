"""
Artifact naming: collision-resistant ids for per-request temp files.
"""

import time
import uuid
from pathlib import Path

from app.core.constants import OUTPUT_EXT


def new_artifact_id() -> str:
    """
    Millisecond timestamp + random suffix, e.g. '1718000000000_3f9a1c2b7d'.
    Unique across concurrent calls without a counter or lock.
    """
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:10]}"


def job_paths(work_dir: Path, job_id: str) -> tuple[Path, Path]:
    """Return (raw_fetch_path, rendered_output_path) for one job."""
    return (
        work_dir / f"{job_id}.{OUTPUT_EXT}",
        work_dir / f"{job_id}_processed.{OUTPUT_EXT}",
    )
