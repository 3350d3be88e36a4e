# src/pixelqueue/contracts/results.py
"""Per-output results reported by the transform step."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pixelqueue.contracts.jobs import ImageJob


@dataclass(frozen=True)
class OutputResult:
    """Outcome of producing one output of a batch.

    Use the factory methods to create instances. Results are matched to
    waiters by ``output_path``; the order in which a transform yields them
    is irrelevant.
    """

    status: Literal["success", "error"]
    job: ImageJob
    error: BaseException | None = None

    def __post_init__(self) -> None:
        if self.status == "error" and self.error is None:
            raise ValueError("OutputResult with status='error' MUST carry the exception that caused it")
        if self.status == "success" and self.error is not None:
            raise ValueError("OutputResult with status='success' must not carry an error")

    @property
    def output_path(self) -> str:
        return self.job.output_path

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(cls, job: ImageJob) -> OutputResult:
        """Create a successful result for ``job``."""
        return cls(status="success", job=job)

    @classmethod
    def failure(cls, job: ImageJob, error: BaseException) -> OutputResult:
        """Create a failed result for ``job`` carrying ``error``."""
        return cls(status="error", job=job, error=error)
