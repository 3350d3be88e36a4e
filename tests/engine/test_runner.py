# tests/engine/test_runner.py
"""Tests for BatchRunner result correlation and failure fan-out."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager

import pytest

from pixelqueue.contracts import (
    BatchFailedError,
    EmptyBatchError,
    ImageJob,
    MissingResultError,
    OutputFailedError,
    OutputResult,
)
from pixelqueue.engine import (
    BatchRunner,
    BatchUnit,
    CountingProgressReporter,
    InMemoryJobTracker,
    NoOpSpan,
    PendingEntry,
    SpanFactory,
    Waiter,
)
from tests.helpers.fakes import FakeTransform, make_job

TIMEOUT = 5.0


def entries_for(input_path: str, *outputs: str) -> list[PendingEntry]:
    result = []
    for output_path in outputs:
        job = make_job(input_path, output_path)
        result.append(PendingEntry(job=job, waiter=Waiter(job)))
    return result


@pytest.fixture
def unit(tracker: InMemoryJobTracker) -> BatchUnit:
    batch = BatchUnit(unit_id="unit-1", input_path="a.jpg")
    tracker.create_job(batch.unit_id, "processing image a.jpg", 1)
    return batch


class TestBatchRunnerSuccess:
    def test_all_outputs_resolved(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")
        transform = FakeTransform()

        summary = BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert summary.size == 2
        assert summary.succeeded == 2
        assert summary.failed == 0
        for entry in entries:
            assert entry.waiter.future.result(timeout=TIMEOUT) == entry.job
        assert len(transform.calls) == 1
        assert transform.calls[0].outputs == ("a-100.webp", "a-200.webp")

    def test_results_matched_by_output_path_in_any_order(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp", "a-300.webp")

        BatchRunner(FakeTransform(reverse=True), tracker=tracker).run(unit, entries)

        for entry in entries:
            assert entry.waiter.future.result(timeout=TIMEOUT).output_path == entry.job.output_path

    def test_digest_taken_from_first_job(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        first = make_job("a.jpg", "a-100.webp", digest="first-digest")
        second = make_job("a.jpg", "a-200.webp", digest="other-digest")
        entries = [PendingEntry(job=job, waiter=Waiter(job)) for job in (first, second)]
        transform = FakeTransform()

        BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert transform.calls[0].content_digest == "first-digest"

    def test_resolves_with_job_reported_by_transform(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp")

        def transform(input_path: str, digest: str, jobs: Sequence[ImageJob]) -> list[OutputResult]:
            return [OutputResult.success(ImageJob(input_path, job.output_path, digest, args={"width": 100})) for job in jobs]

        BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert entries[0].waiter.future.result(timeout=TIMEOUT).args == {"width": 100}


class TestBatchRunnerFailures:
    def test_output_failure_isolated(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")
        transform = FakeTransform(fail_outputs={"a-200.webp"})

        summary = BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert summary.succeeded == 1
        assert summary.failed == 1
        assert entries[0].waiter.future.result(timeout=TIMEOUT) == entries[0].job
        error = entries[1].waiter.future.exception(timeout=TIMEOUT)
        assert isinstance(error, OutputFailedError)
        assert error.output_path == "a-200.webp"
        assert error.input_path == "a.jpg"
        assert isinstance(error.cause, ValueError)
        assert "Failed to process image a.jpg into a-200.webp" in str(error)

    def test_transform_exception_rejects_every_output(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")
        boom = OSError("corrupt input")
        transform = FakeTransform(batch_errors={"a.jpg": boom})

        summary = BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert summary.failed == 2
        for entry in entries:
            error = entry.waiter.future.exception(timeout=TIMEOUT)
            assert isinstance(error, BatchFailedError)
            assert error.cause is boom
            assert error.message == "Failed to process image a.jpg: corrupt input"

    def test_exception_while_yielding_rejects_only_unsettled(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp", "a-300.webp")

        def transform(input_path: str, digest: str, jobs: Sequence[ImageJob]) -> Iterator[OutputResult]:
            yield OutputResult.success(jobs[0])
            raise RuntimeError("encoder crashed")

        summary = BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert summary.succeeded == 1
        assert summary.failed == 2
        assert entries[0].waiter.future.result(timeout=TIMEOUT) == entries[0].job
        for entry in entries[1:]:
            assert isinstance(entry.waiter.future.exception(timeout=TIMEOUT), BatchFailedError)

    def test_missing_result_rejects_output(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")

        def transform(input_path: str, digest: str, jobs: Sequence[ImageJob]) -> list[OutputResult]:
            return [OutputResult.success(jobs[0])]

        summary = BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert summary.failed == 1
        error = entries[1].waiter.future.exception(timeout=TIMEOUT)
        assert isinstance(error, OutputFailedError)
        assert isinstance(error.cause, MissingResultError)

    def test_unexpected_and_duplicate_results_ignored(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp")
        stranger = make_job("a.jpg", "not-requested.webp")

        def transform(input_path: str, digest: str, jobs: Sequence[ImageJob]) -> list[OutputResult]:
            return [
                OutputResult.success(stranger),
                OutputResult.success(jobs[0]),
                OutputResult.failure(jobs[0], ValueError("late duplicate")),
            ]

        summary = BatchRunner(transform, tracker=tracker).run(unit, entries)

        assert summary.succeeded == 1
        assert summary.failed == 0
        assert entries[0].waiter.future.result(timeout=TIMEOUT) == entries[0].job

    def test_empty_batch_raises_and_ends_job(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        transform = FakeTransform()

        with pytest.raises(EmptyBatchError) as exc_info:
            BatchRunner(transform, tracker=tracker).run(unit, [])

        assert exc_info.value.unit_id == "unit-1"
        assert transform.calls == []
        assert tracker.jobs["unit-1"].ended

    def test_tracker_failure_settles_waiters_and_propagates(self, unit: BatchUnit) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")

        class BrokenTracker(InMemoryJobTracker):
            def set_job(self, unit_id: str, *, images_count: int | None = None, images_finished: int | None = None) -> None:
                if images_finished is not None:
                    raise RuntimeError("tracker offline")

        broken = BrokenTracker()
        broken.create_job(unit.unit_id, "processing image a.jpg", 1)

        with pytest.raises(RuntimeError, match="tracker offline"):
            BatchRunner(FakeTransform(), tracker=broken).run(unit, entries)

        assert all(entry.waiter.settled for entry in entries)
        assert broken.jobs[unit.unit_id].ended


class TestBatchRunnerReporting:
    def test_tracker_sees_count_progress_and_end(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp", "a-300.webp")

        BatchRunner(FakeTransform(fail_outputs={"a-300.webp"}), tracker=tracker).run(unit, entries)

        job = tracker.jobs["unit-1"]
        assert job.description == "processing image a.jpg"
        assert job.images_count == 3
        assert job.images_finished == 3
        assert job.ended

    def test_ticks_once_per_settled_output(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")
        progress = CountingProgressReporter()

        BatchRunner(FakeTransform(fail_outputs={"a-100.webp"}), tracker=tracker).run(unit, entries, progress)

        assert progress.ticks == 2

    def test_report_status_disabled_skips_ticks(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")
        progress = CountingProgressReporter()

        BatchRunner(FakeTransform(), tracker=tracker, report_status=False).run(unit, entries, progress)

        assert progress.ticks == 0
        assert tracker.jobs["unit-1"].images_finished == 2


class FailingOutputSpans(SpanFactory):
    """Span factory whose output spans cannot be opened."""

    def output_span(self, output_path: str, *, status: str) -> AbstractContextManager[NoOpSpan]:
        raise RuntimeError("exporter down")


class TestBatchRunnerSpanFailures:
    def test_output_span_failure_settles_every_waiter(self, unit: BatchUnit, tracker: InMemoryJobTracker) -> None:
        entries = entries_for("a.jpg", "a-100.webp", "a-200.webp")
        runner = BatchRunner(FakeTransform(), tracker=tracker, span_factory=FailingOutputSpans())

        summary = runner.run(unit, entries)

        assert summary.failed == 2
        for entry in entries:
            error = entry.waiter.future.exception(timeout=TIMEOUT)
            assert isinstance(error, BatchFailedError)
            assert str(error.cause) == "exporter down"
        assert tracker.jobs["unit-1"].ended
