# src/pixelqueue/engine/tracking.py
"""Job-tracking sinks notified about each batch unit.

Call sequence per unit:
    create_job(unit_id, description, images_count=1)   at enqueue
    set_job(unit_id, images_count=N)                   at dequeue
    set_job(unit_id, images_finished=k)                after each settled output
    end_job(unit_id)                                   after the last output

create_job runs on the submitting thread; the rest run on a queue worker.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from pixelqueue.contracts import JobCreated, JobEnded, JobUpdated
from pixelqueue.core.events import EventBusProtocol


class JobTrackerProtocol(Protocol):
    """Receives batch-unit lifecycle notifications."""

    def create_job(self, unit_id: str, description: str, images_count: int) -> None: ...

    def set_job(
        self,
        unit_id: str,
        *,
        images_count: int | None = None,
        images_finished: int | None = None,
    ) -> None: ...

    def end_job(self, unit_id: str) -> None: ...


class NullJobTracker:
    """Tracker that discards every notification."""

    def create_job(self, unit_id: str, description: str, images_count: int) -> None:
        pass

    def set_job(
        self,
        unit_id: str,
        *,
        images_count: int | None = None,
        images_finished: int | None = None,
    ) -> None:
        pass

    def end_job(self, unit_id: str) -> None:
        pass


class EventBusJobTracker:
    """Publishes unit lifecycle as JobCreated/JobUpdated/JobEnded events."""

    def __init__(self, bus: EventBusProtocol, name: str = "pixelqueue") -> None:
        self._bus = bus
        self._name = name

    def create_job(self, unit_id: str, description: str, images_count: int) -> None:
        self._bus.emit(
            JobCreated(
                unit_id=unit_id,
                description=description,
                images_count=images_count,
                plugin_name=self._name,
            )
        )

    def set_job(
        self,
        unit_id: str,
        *,
        images_count: int | None = None,
        images_finished: int | None = None,
    ) -> None:
        self._bus.emit(
            JobUpdated(
                unit_id=unit_id,
                plugin_name=self._name,
                images_count=images_count,
                images_finished=images_finished,
            )
        )

    def end_job(self, unit_id: str) -> None:
        self._bus.emit(JobEnded(unit_id=unit_id, plugin_name=self._name))


@dataclass
class TrackedJob:
    """Last known state of one batch unit."""

    description: str
    images_count: int
    images_finished: int = 0
    ended: bool = False


class InMemoryJobTracker:
    """Keeps the state of every unit in memory (thread-safe).

    Unknown unit ids in set_job()/end_job() raise KeyError: a unit must be
    created before it is updated.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, TrackedJob] = {}

    @property
    def jobs(self) -> dict[str, TrackedJob]:
        """Snapshot of tracked units keyed by unit id."""
        with self._lock:
            return dict(self._jobs)

    def active(self) -> list[str]:
        """Unit ids that have not ended."""
        with self._lock:
            return [unit_id for unit_id, job in self._jobs.items() if not job.ended]

    def create_job(self, unit_id: str, description: str, images_count: int) -> None:
        with self._lock:
            self._jobs[unit_id] = TrackedJob(description=description, images_count=images_count)

    def set_job(
        self,
        unit_id: str,
        *,
        images_count: int | None = None,
        images_finished: int | None = None,
    ) -> None:
        with self._lock:
            job = self._jobs[unit_id]
            if images_count is not None:
                job.images_count = images_count
            if images_finished is not None:
                job.images_finished = images_finished

    def end_job(self, unit_id: str) -> None:
        with self._lock:
            self._jobs[unit_id].ended = True
