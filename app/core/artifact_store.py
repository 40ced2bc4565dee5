"""
Artifact Store: rendered files awaiting download.
Fixed TTL from creation; a background sweeper evicts expired entries.
Thread-safe via one lock around the registry and the file deletions.
"""

import logging
import threading
import time
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from app.core.constants import ARTIFACT_TTL_SEC, SWEEP_INTERVAL_SEC
from app.core.models import StoredArtifact
from app.core.naming import new_artifact_id
from app.core.error_codes import NotFoundError
from app.core.cleanup import remove_file

logger = logging.getLogger(__name__)


class ArtifactStore:
    """
    Owns registered files from Register until eviction.

    `clock` returns seconds; tests pass a fake to step over TTL boundaries.
    An entry is visible to resolve()/open() only while clock() < expires_at,
    so a sweep that has not run yet never makes an expired entry resolvable.
    """

    def __init__(self, ttl_sec: float = ARTIFACT_TTL_SEC,
                 sweep_interval_sec: float = SWEEP_INTERVAL_SEC,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_sec = ttl_sec
        self.sweep_interval_sec = sweep_interval_sec
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, StoredArtifact] = {}
        self._sweeper: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # ── Registry ──────────────────────────────────────────────────────

    def register(self, path: Path, size: int) -> str:
        """Take ownership of `path`. Returns the artifact id."""
        artifact_id = new_artifact_id()
        now = self._clock()
        artifact = StoredArtifact(
            id=artifact_id,
            path=Path(path),
            size=size,
            created_at=now,
            expires_at=now + self.ttl_sec,
        )
        with self._lock:
            self._entries[artifact_id] = artifact
        logger.info("Registered artifact %s (%d bytes, ttl=%ss)", artifact_id, size, self.ttl_sec)
        return artifact_id

    def _live_entry(self, artifact_id: str) -> StoredArtifact:
        # caller holds self._lock
        artifact = self._entries.get(artifact_id)
        if artifact is None:
            raise NotFoundError()
        if self._clock() >= artifact.expires_at:
            self._drop(artifact)
            raise NotFoundError()
        if not artifact.path.exists():
            del self._entries[artifact_id]
            logger.warning("Artifact %s lost its file %s", artifact_id, artifact.path)
            raise NotFoundError()
        return artifact

    def resolve(self, artifact_id: str) -> Path:
        """Path of a live artifact. Raises NotFoundError for unknown/expired ids."""
        with self._lock:
            return self._live_entry(artifact_id).path

    def get(self, artifact_id: str) -> StoredArtifact:
        with self._lock:
            return self._live_entry(artifact_id)

    def open(self, artifact_id: str) -> BinaryIO:
        """
        Open a live artifact for reading under the registry lock.
        The handle stays readable even if the entry is evicted afterwards.
        """
        with self._lock:
            artifact = self._live_entry(artifact_id)
            return open(artifact.path, 'rb')

    def expires_in(self, artifact_id: str) -> float:
        with self._lock:
            return max(0.0, self._live_entry(artifact_id).expires_at - self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── Eviction ──────────────────────────────────────────────────────

    def _drop(self, artifact: StoredArtifact):
        # caller holds self._lock; file and entry go together
        remove_file(artifact.path)
        self._entries.pop(artifact.id, None)

    def evict(self) -> int:
        """Remove every expired artifact. Returns how many were evicted."""
        now = self._clock()
        with self._lock:
            expired = [a for a in self._entries.values() if now >= a.expires_at]
            for artifact in expired:
                self._drop(artifact)
        if expired:
            logger.info("Evicted %d expired artifact(s)", len(expired))
        return len(expired)

    def clear(self) -> int:
        """Delete every artifact regardless of age (shutdown)."""
        with self._lock:
            artifacts = list(self._entries.values())
            for artifact in artifacts:
                self._drop(artifact)
        return len(artifacts)

    # ── Sweeper thread ────────────────────────────────────────────────

    def start(self):
        """Start the periodic eviction sweep."""
        if self._sweeper and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop,
                                         name="artifact-sweeper", daemon=True)
        self._sweeper.start()

    def stop(self, timeout: float | None = 5.0):
        self._stop_event.set()
        if self._sweeper:
            self._sweeper.join(timeout)
            self._sweeper = None

    def close(self):
        """Stop sweeping and delete everything still held."""
        self.stop()
        removed = self.clear()
        if removed:
            logger.info("Deleted %d artifact(s) on shutdown", removed)

    def _sweep_loop(self):
        while not self._stop_event.wait(self.sweep_interval_sec):
            try:
                self.evict()
            except Exception as e:
                logger.error("Artifact sweep error: %s", e, exc_info=True)
