# src/pixelqueue/contracts/errors.py
"""Exception taxonomy for the derivative scheduler.

Failures reach callers only through the future returned by
``Scheduler.submit()``. The exceptions raised synchronously are the
misuse errors (malformed jobs, submitting to a closed scheduler, settling
a waiter twice).

Rejection payloads:
    OutputFailedError and BatchFailedError both expose ``cause`` (the
    original exception raised by the transform) and ``message`` (a
    human-readable description naming the input and, for single outputs,
    the output that failed).
"""

from __future__ import annotations


class PixelQueueError(Exception):
    """Base exception for pixelqueue."""

    pass


class MalformedJobError(PixelQueueError, ValueError):
    """Raised when a job carries an unusable input or output identity."""

    pass


class AlreadySettledError(PixelQueueError, RuntimeError):
    """Raised when a waiter is resolved or rejected a second time."""

    pass


class SchedulerClosedError(PixelQueueError, RuntimeError):
    """Raised by submit() after the scheduler has been shut down."""

    pass


class SchedulerReentryError(PixelQueueError, RuntimeError):
    """Raised by submit() when called from a tracker or progress callback.

    Those callbacks run while submit() holds the scheduler lock, in the
    middle of registering another request.
    """

    pass


class JobFailedError(PixelQueueError):
    """A requested output could not be produced.

    Attributes:
        cause: Exception raised by the transform step (or the existence check)
        input_path: Source artifact the output was derived from
        message: Human-readable description of the failure
    """

    def __init__(self, message: str, *, cause: BaseException, input_path: str) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.input_path = input_path


class OutputFailedError(JobFailedError):
    """A single output failed. Sibling outputs in the same batch are unaffected."""

    def __init__(self, cause: BaseException, *, input_path: str, output_path: str) -> None:
        super().__init__(
            f"Failed to process image {input_path} into {output_path}: {cause}",
            cause=cause,
            input_path=input_path,
        )
        self.output_path = output_path


class BatchFailedError(JobFailedError):
    """The transform failed as a whole; every output of the batch is rejected."""

    def __init__(self, cause: BaseException, *, input_path: str) -> None:
        super().__init__(
            f"Failed to process image {input_path}: {cause}",
            cause=cause,
            input_path=input_path,
        )


class MissingResultError(PixelQueueError):
    """The transform finished without reporting a result for an output.

    Used as the ``cause`` of the OutputFailedError delivered to that
    output's waiter.
    """

    def __init__(self, output_path: str) -> None:
        super().__init__(f"Transform produced no result for {output_path}")
        self.output_path = output_path


class EmptyBatchError(PixelQueueError):
    """A batch unit was dequeued with no pending entries.

    This is an internal invariant violation. The execution queue logs it
    and advances to the next unit.
    """

    def __init__(self, input_path: str, unit_id: str) -> None:
        super().__init__(f"Batch {unit_id} for {input_path} was dequeued with no pending outputs")
        self.input_path = input_path
        self.unit_id = unit_id
