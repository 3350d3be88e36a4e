"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
pixelqueue.core.config.

Import patterns:
    from pixelqueue.contracts import ImageJob, OutputResult, OutputFailedError
"""

from pixelqueue.contracts.errors import (
    AlreadySettledError,
    BatchFailedError,
    EmptyBatchError,
    JobFailedError,
    MalformedJobError,
    MissingResultError,
    OutputFailedError,
    PixelQueueError,
    SchedulerClosedError,
    SchedulerReentryError,
)
from pixelqueue.contracts.events import JobCreated, JobEnded, JobUpdated
from pixelqueue.contracts.jobs import ImageJob, JobKey, normalize_identity
from pixelqueue.contracts.protocols import ExistsFn, TransformFn
from pixelqueue.contracts.results import OutputResult

__all__ = [
    "AlreadySettledError",
    "BatchFailedError",
    "EmptyBatchError",
    "ExistsFn",
    "ImageJob",
    "JobCreated",
    "JobEnded",
    "JobFailedError",
    "JobKey",
    "JobUpdated",
    "MalformedJobError",
    "MissingResultError",
    "OutputFailedError",
    "OutputResult",
    "PixelQueueError",
    "SchedulerClosedError",
    "SchedulerReentryError",
    "TransformFn",
    "normalize_identity",
]
