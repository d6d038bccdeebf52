import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import uuid4
from model.job import Job, JobStatus
import logging

logger = logging.getLogger(__name__)

# Allowed moves of the per-job state machine.
_TRANSITIONS: Dict[JobStatus, frozenset] = {
    JobStatus.queued: frozenset({JobStatus.queued, JobStatus.processing}),
    JobStatus.processing: frozenset(
        {JobStatus.processing, JobStatus.completed, JobStatus.failed}
    ),
    JobStatus.completed: frozenset(),
    JobStatus.failed: frozenset(),
}


class JobRegistry:
    """
    Bounded in-process map of job id -> latest Job snapshot.

    - Capacity: once exceeded, sweep() drops the oldest entries by updatedAt
      (eviction_fraction of capacity, or more if needed to get back under it).
    - TTL: completed/failed jobs expire terminal_ttl_seconds after they finish.
    - Unknown and evicted ids both read back as status "unknown".

    All access goes through one lock, so pollers on worker threads and
    pipeline tasks on the event loop can share an instance.
    """

    def __init__(
        self,
        *,
        capacity: int = 1000,
        terminal_ttl_seconds: float = 300,
        eviction_fraction: float = 0.2,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._ttl = float(terminal_ttl_seconds)
        self._fraction = min(max(eviction_fraction, 0.0), 1.0)
        self._clock = clock
        self._lock = threading.Lock()
        self._jobs: Dict[str, Job] = {}
        self._expires_at: Dict[str, float] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    # ---------------- Core API ----------------

    def create(self, job_id: Optional[str] = None, message: str = "") -> Job:
        job = Job(
            id=job_id or str(uuid4()),
            status=JobStatus.queued,
            progress=0,
            message=message,
            updatedAt=self._now(),
        )
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"job {job.id} already exists")
            self._jobs[job.id] = job
            self._sweep_locked()
            logger.debug("registry.create job=%s size=%d", job.id, len(self._jobs))
        return job

    def update(
        self,
        job_id: str,
        status: JobStatus,
        progress: int,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Replace the job's snapshot. Returns False (and changes nothing) when
        the id is unknown/evicted or the move is not allowed from the current
        status. Progress is clamped to 0..100 and never lowered.
        """
        with self._lock:
            self._purge_expired_locked()
            current = self._jobs.get(job_id)
            if current is None:
                logger.info("registry.update.missing job=%s status=%s", job_id, status.value)
                return False
            if status not in _TRANSITIONS[current.status]:
                logger.warning(
                    "registry.update.rejected job=%s from=%s to=%s",
                    job_id,
                    current.status.value,
                    status.value,
                )
                return False
            pct = max(current.progress, min(100, max(0, int(progress))))
            self._jobs[job_id] = current.model_copy(
                update={
                    "status": status,
                    "progress": pct,
                    "message": message,
                    "data": data,
                    "updatedAt": self._now(),
                }
            )
            if status.is_terminal:
                self._expires_at[job_id] = self._clock() + self._ttl
        return True

    def get(self, job_id: str) -> Job:
        with self._lock:
            self._purge_expired_locked()
            job = self._jobs.get(job_id) if job_id else None
        if job is None:
            return Job(id=job_id or "", status=JobStatus.unknown, updatedAt=self._now())
        return job

    def sweep(self) -> int:
        """Drop expired terminal jobs, then trim to capacity. Returns evicted count."""
        with self._lock:
            return self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()
            self._expires_at.clear()

    # ---------------- Internals (lock held) ----------------

    def _purge_expired_locked(self) -> int:
        if not self._expires_at:
            return 0
        now = self._clock()
        expired = [jid for jid, at in self._expires_at.items() if at <= now]
        for jid in expired:
            self._expires_at.pop(jid, None)
            self._jobs.pop(jid, None)
        if expired:
            logger.debug("registry.expired count=%d", len(expired))
        return len(expired)

    def _sweep_locked(self) -> int:
        evicted = self._purge_expired_locked()
        size = len(self._jobs)
        if size <= self._capacity:
            return evicted
        n = max(int(self._capacity * self._fraction), size - self._capacity)
        # sorted() is stable, so ties keep insertion order (oldest first)
        oldest = sorted(self._jobs.values(), key=lambda j: j.updatedAt)[:n]
        for job in oldest:
            self._jobs.pop(job.id, None)
            self._expires_at.pop(job.id, None)
        logger.info(
            "registry.sweep evicted=%d size=%d capacity=%d",
            len(oldest),
            len(self._jobs),
            self._capacity,
        )
        return evicted + len(oldest)
