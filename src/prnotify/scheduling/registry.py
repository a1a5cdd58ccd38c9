"""Live job registry: config id → armed job handle.

The registry is the only owner of job handles. Removing a handle always
stops it first; a handle that fails to stop stays registered.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

from .protocol import JobHandle


class JobRegistry:
    """Thread-safe mapping of job id to job handle.

    Example:
        >>> registry = JobRegistry()
        >>> registry.set(1, handle)
        >>> registry.stop(1)
        True
        >>> registry.stop(1)   # idempotent
        False
    """

    def __init__(self) -> None:
        self._jobs: dict[int, JobHandle] = {}
        self._lock = threading.RLock()

    def set(self, job_id: int, handle: JobHandle) -> None:
        """Register ``handle`` under ``job_id``, stopping any different handle already there."""
        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is not None and existing is not handle:
                existing.stop()
            self._jobs[job_id] = handle

    def get(self, job_id: int) -> JobHandle | None:
        with self._lock:
            return self._jobs.get(job_id)

    def stop(self, job_id: int) -> bool:
        """Stop and remove the job. Returns False when there was nothing to stop."""
        with self._lock:
            handle = self._jobs.get(job_id)
            if handle is None:
                return False
            handle.stop()
            del self._jobs[job_id]
            return True

    def stop_all(self) -> int:
        """Stop and remove every job. Returns how many were stopped."""
        with self._lock:
            stopped = 0
            for job_id in list(self._jobs):
                if self.stop(job_id):
                    stopped += 1
            return stopped

    def size(self) -> int:
        with self._lock:
            return len(self._jobs)

    def ids(self) -> list[int]:
        with self._lock:
            return sorted(self._jobs)

    def items(self) -> list[tuple[int, JobHandle]]:
        with self._lock:
            return sorted(self._jobs.items(), key=lambda item: item[0])

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __iter__(self) -> Iterator[int]:
        return iter(self.ids())


__all__ = ["JobRegistry"]
