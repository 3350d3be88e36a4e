# src/pixelqueue/engine/runner.py
"""Batch runner: one transform invocation per dequeued input.

Architecture:
    ExecutionQueue worker → Scheduler._execute(unit)
                                 ↓ (takes pending entries under the scheduler lock)
                          BatchRunner.run(unit, entries, progress)
                                 ↓
                 transform(input_path, content_digest, jobs)
                                 ↓ yields OutputResult in any order
                 matched to waiters by output_path → resolve / reject

Failure Semantics:
    - A failed OutputResult rejects only that output (OutputFailedError).
    - An exception raised by the transform (before or while yielding)
      rejects every output not yet settled (BatchFailedError).
    - Outputs the transform never reported are rejected with an
      OutputFailedError whose cause is MissingResultError.
    Whatever happens, every waiter of the batch is settled exactly once and
    the tracked unit is ended before run() returns.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from pixelqueue.contracts import (
    BatchFailedError,
    EmptyBatchError,
    MissingResultError,
    OutputFailedError,
    OutputResult,
    TransformFn,
)
from pixelqueue.engine.progress import ProgressReporterProtocol
from pixelqueue.engine.queue import BatchUnit
from pixelqueue.engine.registry import PendingEntry
from pixelqueue.engine.spans import SpanFactory
from pixelqueue.engine.tracking import JobTrackerProtocol
from pixelqueue.engine.waiter import Waiter

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BatchSummary:
    """Outcome counts for one executed batch."""

    unit_id: str
    input_path: str
    size: int
    succeeded: int
    failed: int


class _BatchState:
    """Mutable bookkeeping for a single run() call."""

    def __init__(
        self,
        unit: BatchUnit,
        entries: Sequence[PendingEntry],
        progress: ProgressReporterProtocol | None,
    ) -> None:
        self.unit = unit
        self.progress = progress
        self.unsettled: dict[str, Waiter] = {entry.job.output_path: entry.waiter for entry in entries}
        self.finished = 0
        self.failed = 0


class BatchRunner:
    """Invokes the transform for a batch and fans results out to waiters.

    Usage:
        runner = BatchRunner(transform, tracker=NullJobTracker())
        summary = runner.run(unit, entries, progress)
    """

    def __init__(
        self,
        transform: TransformFn,
        *,
        tracker: JobTrackerProtocol,
        span_factory: SpanFactory | None = None,
        report_status: bool = True,
    ) -> None:
        self._transform = transform
        self._tracker = tracker
        self._spans = span_factory or SpanFactory()
        self._report_status = report_status

    def run(
        self,
        unit: BatchUnit,
        entries: Sequence[PendingEntry],
        progress: ProgressReporterProtocol | None = None,
    ) -> BatchSummary:
        """Execute one batch.

        Args:
            unit: The dequeued unit
            entries: Pending entries taken from the registry for unit.input_path
            progress: Reporter of the current busy period, if any

        Returns:
            BatchSummary with success/failure counts

        Raises:
            EmptyBatchError: If ``entries`` is empty (sequencing bug). The
                tracked unit is ended before raising.
        """
        if not entries:
            self._tracker.end_job(unit.unit_id)
            raise EmptyBatchError(unit.input_path, unit.unit_id)

        log = logger.bind(unit_id=unit.unit_id, input_path=unit.input_path)
        jobs = [entry.job for entry in entries]
        state = _BatchState(unit, entries, progress)

        self._tracker.set_job(unit.unit_id, images_count=len(jobs))
        log.debug("batch_started", size=len(jobs))

        try:
            with self._spans.batch_span(unit.input_path, unit.unit_id, size=len(jobs)) as span:
                try:
                    for result in self._transform(unit.input_path, jobs[0].content_digest, jobs):
                        self._settle_result(state, result, log)
                except Exception as exc:
                    span.record_exception(exc)
                    log.warning(
                        "batch_failed",
                        error=str(exc),
                        error_type=type(exc).__name__,
                        unsettled=len(state.unsettled),
                    )
                    for output_path in list(state.unsettled):
                        self._reject(state, output_path, BatchFailedError(exc, input_path=unit.input_path))
                else:
                    for output_path in list(state.unsettled):
                        log.error("missing_result", output_path=output_path)
                        missing = MissingResultError(output_path)
                        self._reject(
                            state,
                            output_path,
                            OutputFailedError(missing, input_path=unit.input_path, output_path=output_path),
                        )
        except BaseException as exc:
            # A tracker, reporter or span failed mid-batch; nobody may be left waiting
            for waiter in state.unsettled.values():
                waiter.reject(BatchFailedError(exc, input_path=unit.input_path))
            state.unsettled.clear()
            raise
        finally:
            self._tracker.end_job(unit.unit_id)

        log.info("batch_finished", size=len(jobs), failed=state.failed)
        return BatchSummary(
            unit_id=unit.unit_id,
            input_path=unit.input_path,
            size=len(jobs),
            succeeded=state.finished - state.failed,
            failed=state.failed,
        )

    def _settle_result(self, state: _BatchState, result: OutputResult, log: structlog.stdlib.BoundLogger) -> None:
        waiter = state.unsettled.get(result.output_path)
        if waiter is None:
            # Not part of this batch, or already reported
            log.warning("unexpected_result", output_path=result.output_path, status=result.status)
            return

        # The waiter leaves unsettled only once it is settled: a tracer that
        # fails here fails the batch, and the batch rejects every unsettled output
        with self._spans.output_span(result.output_path, status=result.status):
            if result.ok:
                waiter.resolve(result.job)
            else:
                assert result.error is not None  # enforced by OutputResult.__post_init__
                log.warning(
                    "output_failed",
                    output_path=result.output_path,
                    error=str(result.error),
                    error_type=type(result.error).__name__,
                )
                state.failed += 1
                waiter.reject(
                    OutputFailedError(
                        result.error,
                        input_path=state.unit.input_path,
                        output_path=result.output_path,
                    )
                )
            del state.unsettled[result.output_path]
        self._advance(state)

    def _reject(self, state: _BatchState, output_path: str, error: BaseException) -> None:
        state.unsettled.pop(output_path).reject(error)
        state.failed += 1
        self._advance(state)

    def _advance(self, state: _BatchState) -> None:
        state.finished += 1
        if self._report_status and state.progress is not None:
            state.progress.tick()
        self._tracker.set_job(state.unit.unit_id, images_finished=state.finished)
