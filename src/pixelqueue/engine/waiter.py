# src/pixelqueue/engine/waiter.py
"""One-shot completion signal for a single requested output.

Architecture:
    Scheduler.submit() → Waiter created (or shared with a duplicate request)
                                   ↓
                         caller holds waiter.future
                                   ↓
    BatchRunner → waiter.resolve(job) / waiter.reject(error)   (exactly once)
                                   ↓
                    future.result() returns or raises for every holder

The future is moved to RUNNING on creation, so holders cannot cancel it:
a cancelled shared future would leak into every other caller waiting on
the same output.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future

from pixelqueue.contracts import AlreadySettledError, ImageJob


class Waiter:
    """Settle-once wrapper around a ``concurrent.futures.Future``.

    resolve() and reject() may each be called from any thread; whichever
    comes first wins and every later call raises AlreadySettledError.
    """

    def __init__(self, job: ImageJob) -> None:
        self._job = job
        self._future: Future[ImageJob] = Future()
        self._future.set_running_or_notify_cancel()
        self._lock = threading.Lock()
        self._settled = False

    @classmethod
    def resolved(cls, job: ImageJob) -> Waiter:
        """Create a waiter that is already settled successfully."""
        waiter = cls(job)
        waiter.resolve()
        return waiter

    @classmethod
    def rejected(cls, job: ImageJob, error: BaseException) -> Waiter:
        """Create a waiter that is already settled with ``error``."""
        waiter = cls(job)
        waiter.reject(error)
        return waiter

    @property
    def job(self) -> ImageJob:
        """The job this waiter was created for."""
        return self._job

    @property
    def future(self) -> Future[ImageJob]:
        return self._future

    @property
    def settled(self) -> bool:
        with self._lock:
            return self._settled

    def _claim(self) -> None:
        with self._lock:
            if self._settled:
                raise AlreadySettledError(f"Waiter for {self._job.output_path} was already settled")
            self._settled = True

    def resolve(self, job: ImageJob | None = None) -> None:
        """Complete the future successfully.

        Args:
            job: Completed job reported by the transform (defaults to the submitted job)

        Raises:
            AlreadySettledError: If the waiter was already resolved or rejected
        """
        self._claim()
        # Outside the lock: done-callbacks run synchronously in this thread
        self._future.set_result(job if job is not None else self._job)

    def reject(self, error: BaseException) -> None:
        """Complete the future with ``error``.

        Raises:
            AlreadySettledError: If the waiter was already resolved or rejected
        """
        self._claim()
        self._future.set_exception(error)
