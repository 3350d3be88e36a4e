# src/pixelqueue/contracts/protocols.py
"""Protocols for the collaborators the scheduler calls into."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pixelqueue.contracts.jobs import ImageJob
    from pixelqueue.contracts.results import OutputResult


class TransformFn(Protocol):
    """Produces every output of one batch from a single decoded input.

    Implementations receive a nonempty list of jobs sharing ``input_path``
    and must report exactly one OutputResult per job, in any order. Raising
    before any result is reported fails the whole batch.
    """

    def __call__(
        self,
        input_path: str,
        content_digest: str,
        jobs: Sequence[ImageJob],
    ) -> Iterable[OutputResult]: ...


class ExistsFn(Protocol):
    """Durable store existence check, consulted once per submission."""

    def __call__(self, output_path: str) -> bool: ...
