# src/pixelqueue/engine/scheduler.py
"""Deduplicating, batching scheduler for image derivative jobs.

Architecture:
    caller → submit(job) ──┬─ pair already pending → existing waiter's future
                           ├─ output already exists → resolved future
                           └─ insert PendingEntry ─┬─ input already queued → done
                                                   └─ push BatchUnit → ExecutionQueue
                                                                            ↓
    ExecutionQueue worker → _execute(unit): take entries → BatchRunner.run()
                                                                            ↓
                                                       waiters settled per output

Locking:
    One lock guards the registry, the backlog counter and the current
    progress reporter. The duplicate check and the insert happen in the
    same critical section, so two racing submissions for a not yet queued
    input can never both enqueue a batch. The existence check runs outside
    the lock (it may touch the filesystem); the duplicate check is repeated
    after it.

    The tracker's create_job() and the progress factory run inside that
    critical section, before the registry or the backlog change: if either
    raises, the request's future is rejected and nothing is left behind.
    The lock is reentrant, so those callbacks (EventBus handlers included)
    may read backlog or pending_count; calling submit() from them raises
    SchedulerReentryError.

Batching Boundary:
    Outputs requested after a unit is queued but before it is dequeued join
    that batch (entries are read at dequeue time). Outputs requested after
    the dequeue start a new, independent batch.
"""

from __future__ import annotations

import functools
import threading
import uuid
from concurrent.futures import Future
from types import TracebackType

import structlog

from pixelqueue.contracts import (
    EmptyBatchError,
    ExistsFn,
    ImageJob,
    MalformedJobError,
    OutputFailedError,
    SchedulerClosedError,
    SchedulerReentryError,
    TransformFn,
)
from pixelqueue.core.config import SchedulerSettings
from pixelqueue.core.events import EventBusProtocol
from pixelqueue.core.store import output_exists
from pixelqueue.engine.progress import (
    NullProgressReporter,
    ProgressFactory,
    ProgressReporterProtocol,
    RichProgressReporter,
)
from pixelqueue.engine.queue import BatchUnit, ExecutionQueue
from pixelqueue.engine.registry import PendingEntry, PendingRegistry
from pixelqueue.engine.runner import BatchRunner, BatchSummary
from pixelqueue.engine.spans import SpanFactory
from pixelqueue.engine.tracking import EventBusJobTracker, JobTrackerProtocol, NullJobTracker
from pixelqueue.engine.waiter import Waiter

logger = structlog.get_logger(__name__)


class Scheduler:
    """Owns the pending registry, execution queue and backlog of one build.

    Example:
        with Scheduler(transform, workers=1) as scheduler:
            futures = [scheduler.submit(job) for job in jobs]
            for future in futures:
                future.result()   # raises OutputFailedError / BatchFailedError
    """

    def __init__(
        self,
        transform: TransformFn,
        *,
        exists: ExistsFn = output_exists,
        workers: int = 1,
        tracker: JobTrackerProtocol | None = None,
        progress_factory: ProgressFactory | None = None,
        report_status: bool = True,
        span_factory: SpanFactory | None = None,
        thread_name_prefix: str = "pixelqueue-worker",
    ) -> None:
        """Initialize the scheduler.

        Args:
            transform: Produces all outputs of a batch (see TransformFn)
            exists: Durable store existence check for output paths
            workers: Batches executed concurrently (1 keeps FIFO order)
            tracker: Receives batch-unit lifecycle notifications
            progress_factory: Creates a reporter at the start of each busy period
            report_status: Tick the reporter once per settled output
            span_factory: OpenTelemetry span factory (no-op by default)
            thread_name_prefix: Prefix for worker thread names
        """
        self._exists = exists
        self._tracker: JobTrackerProtocol = tracker or NullJobTracker()
        self._progress_factory: ProgressFactory = progress_factory or NullProgressReporter

        self._lock = threading.RLock()
        self._drained = threading.Condition(self._lock)
        self._registry = PendingRegistry()
        self._backlog = 0
        self._progress: ProgressReporterProtocol | None = None
        self._closed = False
        self._callback_thread: int | None = None

        self._runner = BatchRunner(
            transform,
            tracker=self._tracker,
            span_factory=span_factory,
            report_status=report_status,
        )
        self._queue = ExecutionQueue(
            self._execute,
            workers=workers,
            on_drain=self._on_drain,
            thread_name_prefix=thread_name_prefix,
        )

    @classmethod
    def from_settings(
        cls,
        settings: SchedulerSettings,
        transform: TransformFn,
        *,
        exists: ExistsFn = output_exists,
        event_bus: EventBusProtocol | None = None,
        progress_factory: ProgressFactory | None = None,
        span_factory: SpanFactory | None = None,
    ) -> Scheduler:
        """Build a scheduler from validated settings.

        Job-tracking events go to ``event_bus`` when one is given. Without an
        explicit progress_factory, a rich progress bar labelled
        ``settings.progress_label`` is shown when report_status is enabled.
        """
        tracker: JobTrackerProtocol | None = None
        if event_bus is not None:
            tracker = EventBusJobTracker(event_bus, settings.tracker_name)
        if progress_factory is None and settings.report_status:
            progress_factory = functools.partial(RichProgressReporter, settings.progress_label)
        return cls(
            transform,
            exists=exists,
            workers=settings.workers,
            tracker=tracker,
            progress_factory=progress_factory,
            report_status=settings.report_status,
            span_factory=span_factory,
            thread_name_prefix=settings.thread_name_prefix,
        )

    # -- introspection -------------------------------------------------------

    @property
    def backlog(self) -> int:
        """Outputs tracked since the queue was last drained."""
        with self._lock:
            return self._backlog

    @property
    def pending_count(self) -> int:
        """Outputs queued but not yet picked up by a batch."""
        with self._lock:
            return len(self._registry)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def is_pending(self, input_path: str, output_path: str) -> bool:
        with self._lock:
            return (input_path, output_path) in self._registry

    # -- submission ----------------------------------------------------------

    def submit(self, job: ImageJob) -> Future[ImageJob]:
        """Request an output; returns a future settled when its fate is known.

        Duplicate requests for a pending (input_path, output_path) pair share
        one future and one execution. Outputs that already exist resolve
        immediately without queueing anything. A failing existence check,
        tracker or progress reporter rejects the returned future and leaves
        no trace in the scheduler.

        Raises:
            MalformedJobError: If ``job`` is not an ImageJob
            SchedulerClosedError: If the scheduler has been shut down
            SchedulerReentryError: If called from a tracker or progress callback
        """
        if not isinstance(job, ImageJob):
            raise MalformedJobError(f"submit() expects an ImageJob, got {type(job).__name__}")
        if self._callback_thread == threading.get_ident():
            raise SchedulerReentryError("submit() cannot be called from a tracker or progress callback")

        with self._lock:
            self._check_open()
            existing = self._registry.get(job.input_path, job.output_path)
            if existing is not None:
                return existing.waiter.future

        try:
            already_built = self._exists(job.output_path)
        except Exception as exc:
            return self._rejected(job, exc, "exists_check_failed")

        with self._lock:
            self._check_open()
            # Another thread may have queued the same pair during the existence check
            existing = self._registry.get(job.input_path, job.output_path)
            if existing is not None:
                return existing.waiter.future
            if already_built:
                return Waiter.resolved(job).future

            try:
                unit, progress = self._notify_collaborators(job)
            except Exception as exc:
                return self._rejected(job, exc, "submit_failed")

            waiter = Waiter(job)
            self._registry.insert(PendingEntry(job=job, waiter=waiter))
            if progress is not None:
                self._progress = progress
            self._backlog += 1

            if unit is not None:
                self._queue.push(unit)
                logger.debug("batch_queued", unit_id=unit.unit_id, input_path=job.input_path)

            return waiter.future

    def _notify_collaborators(self, job: ImageJob) -> tuple[BatchUnit | None, ProgressReporterProtocol | None]:
        """Create the tracked unit and the busy-period reporter a request needs.

        Called with the lock held and before any state changes. Returns the
        unit to push (None if the input's batch is already queued) and the
        started reporter (None if a busy period is already running).
        """
        unit: BatchUnit | None = None
        if not self._registry.has_input(job.input_path):
            unit = BatchUnit(unit_id=uuid.uuid4().hex, input_path=job.input_path)

        progress: ProgressReporterProtocol | None = None
        self._callback_thread = threading.get_ident()
        try:
            if unit is not None:
                self._tracker.create_job(unit.unit_id, f"processing image {job.input_path}", 1)
            if self._backlog == 0:
                try:
                    progress = self._progress_factory()
                    progress.start()
                except Exception:
                    if unit is not None:
                        self._tracker.end_job(unit.unit_id)
                    raise
        finally:
            self._callback_thread = None
        return unit, progress

    def _rejected(self, job: ImageJob, exc: Exception, event: str) -> Future[ImageJob]:
        logger.warning(
            event,
            input_path=job.input_path,
            output_path=job.output_path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        error = OutputFailedError(exc, input_path=job.input_path, output_path=job.output_path)
        return Waiter.rejected(job, error).future

    def _check_open(self) -> None:
        if self._closed:
            raise SchedulerClosedError("Scheduler has been shut down")

    # -- queue callbacks -----------------------------------------------------

    def _execute(self, unit: BatchUnit) -> BatchSummary | None:
        with self._lock:
            entries = self._registry.take(unit.input_path)
            progress = self._progress
            if progress is not None:
                progress.total = self._backlog

        try:
            return self._runner.run(unit, entries, progress)
        except EmptyBatchError as exc:
            logger.error("empty_batch", unit_id=exc.unit_id, input_path=exc.input_path)
            return None

    def _on_drain(self) -> None:
        with self._lock:
            # A push may have landed after the queue went idle, or another
            # worker's drain may already have reset the backlog
            if self._backlog == 0 or not self._queue.idle:
                return
            progress, self._progress = self._progress, None
            self._backlog = 0
            if progress is not None:
                progress.done()
            self._drained.notify_all()
        logger.debug("queue_drained")

    # -- lifecycle -----------------------------------------------------------

    def join(self, timeout: float | None = None) -> bool:
        """Block until the backlog has drained.

        Returns:
            True if drained, False if ``timeout`` expired first
        """
        with self._drained:
            return self._drained.wait_for(lambda: self._backlog == 0, timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Refuse further submissions and stop the workers.

        Batches already queued still run, so every future handed out so far
        is eventually settled.
        """
        with self._lock:
            self._closed = True
        self._queue.shutdown(wait=wait)

    def __enter__(self) -> Scheduler:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)
