# src/pixelqueue/engine/queue.py
"""FIFO execution queue for batch units.

Each queued unit names an input, never a snapshot of its jobs: outputs
requested between enqueue and execution still join the batch because the
handler reads the registry only when the unit is dequeued.

Thread Model:
    - Submitting threads: call push() (the Scheduler holds its lock)
    - Worker threads (``workers`` of them): run handler(unit) one unit at a time
    - on_drain is called from the worker that finished the last outstanding
      unit, WITHOUT the queue lock held. The callback must re-check idle
      under its own lock, because a push may land between the queue going
      idle and the callback running.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BatchUnit:
    """One queue entry: process every pending output of ``input_path``."""

    unit_id: str
    input_path: str


class ExecutionQueue:
    """Runs batch units in FIFO order on a bounded worker pool.

    With ``workers=1`` units run strictly one after another in push order.
    A handler exception is logged and the queue advances; it never stalls
    the units behind it.

    Usage:
        queue = ExecutionQueue(runner, workers=1, on_drain=scheduler_drained)
        queue.push(BatchUnit(unit_id="...", input_path="photos/cat.jpg"))
    """

    def __init__(
        self,
        handler: Callable[[BatchUnit], object],
        *,
        workers: int = 1,
        on_drain: Callable[[], None] | None = None,
        thread_name_prefix: str = "pixelqueue-worker",
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._handler = handler
        self._on_drain = on_drain
        self._workers = workers
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix)
        self._lock = threading.Lock()
        self._outstanding = 0
        self._closed = False

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def outstanding(self) -> int:
        """Units queued or running."""
        with self._lock:
            return self._outstanding

    @property
    def idle(self) -> bool:
        with self._lock:
            return self._outstanding == 0

    def push(self, unit: BatchUnit) -> None:
        """Append a unit to the queue.

        Raises:
            RuntimeError: If the queue has been shut down
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot push to a shut down execution queue")
            self._outstanding += 1
        self._pool.submit(self._run, unit)

    def _run(self, unit: BatchUnit) -> None:
        try:
            self._handler(unit)
        except Exception:
            # Unit-local failure; later units must still run
            logger.exception("unit_crashed", unit_id=unit.unit_id, input_path=unit.input_path)
        finally:
            with self._lock:
                self._outstanding -= 1
                drained = self._outstanding == 0
            if drained and self._on_drain is not None:
                self._on_drain()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting units. Units already pushed still run.

        Args:
            wait: If True, block until every pushed unit has finished
        """
        with self._lock:
            self._closed = True
        self._pool.shutdown(wait=wait)
