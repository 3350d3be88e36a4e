"""Scheduling engine: deduplication, batching and fan-out of derivative jobs.

This module provides:
- Scheduler: submit() entry point owning all mutable state
- PendingRegistry: input → output → pending entry
- Waiter: settle-once completion signal behind each future
- ExecutionQueue: FIFO worker pool over batch units
- BatchRunner: one transform invocation per input, results fanned out
- Progress reporters and job trackers (external collaborators)
- SpanFactory: OpenTelemetry integration

Example:
    from pixelqueue.contracts import ImageJob
    from pixelqueue.engine import Scheduler

    with Scheduler(transform) as scheduler:
        future = scheduler.submit(ImageJob("photos/cat.jpg", "public/cat-100.webp", digest))
        future.result()
"""

from pixelqueue.engine.progress import (
    CountingProgressReporter,
    NullProgressReporter,
    ProgressFactory,
    ProgressReporterProtocol,
    RichProgressReporter,
)
from pixelqueue.engine.queue import BatchUnit, ExecutionQueue
from pixelqueue.engine.registry import PendingEntry, PendingRegistry
from pixelqueue.engine.runner import BatchRunner, BatchSummary
from pixelqueue.engine.scheduler import Scheduler
from pixelqueue.engine.spans import NoOpSpan, SpanFactory
from pixelqueue.engine.tracking import (
    EventBusJobTracker,
    InMemoryJobTracker,
    JobTrackerProtocol,
    NullJobTracker,
    TrackedJob,
)
from pixelqueue.engine.waiter import Waiter

__all__ = [
    "BatchRunner",
    "BatchSummary",
    "BatchUnit",
    "CountingProgressReporter",
    "EventBusJobTracker",
    "ExecutionQueue",
    "InMemoryJobTracker",
    "JobTrackerProtocol",
    "NoOpSpan",
    "NullJobTracker",
    "NullProgressReporter",
    "PendingEntry",
    "PendingRegistry",
    "ProgressFactory",
    "ProgressReporterProtocol",
    "RichProgressReporter",
    "Scheduler",
    "SpanFactory",
    "TrackedJob",
    "Waiter",
]
