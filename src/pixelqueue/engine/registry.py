# src/pixelqueue/engine/registry.py
"""Pending-work registry: input identity → output identity → pending entry.

A genuine two-level mapping. Identities are never concatenated into a
single key, so path characters such as ``.``, ``/``, ``[`` or ``"`` can
never be mistaken for a nesting separator.

Invariant:
    An (input_path, output_path) pair is present iff a batch covering it
    has been queued but has not started. take() removes every entry of an
    input in one step; requests arriving afterwards start a new batch.

Thread Safety:
    NOT thread-safe on its own. The Scheduler performs every compound
    operation (lookup → insert, take) while holding its lock.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from pixelqueue.contracts import ImageJob, JobKey
from pixelqueue.engine.waiter import Waiter


@dataclass(frozen=True, slots=True)
class PendingEntry:
    """A queued, not yet started request and the waiter its callers share."""

    job: ImageJob
    waiter: Waiter


class PendingRegistry:
    """Pending entries grouped by input, in insertion order."""

    def __init__(self) -> None:
        self._inputs: dict[str, dict[str, PendingEntry]] = {}

    def get(self, input_path: str, output_path: str) -> PendingEntry | None:
        """Return the pending entry for a pair, or None."""
        outputs = self._inputs.get(input_path)
        if outputs is None:
            return None
        return outputs.get(output_path)

    def has_input(self, input_path: str) -> bool:
        """True if some output of ``input_path`` is pending (its batch is queued)."""
        return input_path in self._inputs

    def insert(self, entry: PendingEntry) -> bool:
        """Add an entry.

        Returns:
            True if the input already had pending outputs (a batch is already
            queued for it), False if this entry opens a new batch.

        Raises:
            KeyError: If the pair is already pending
        """
        input_path, output_path = entry.job.key
        outputs = self._inputs.get(input_path)
        is_queued = outputs is not None
        if outputs is None:
            outputs = self._inputs[input_path] = {}
        elif output_path in outputs:
            raise KeyError(f"{output_path} is already pending for {input_path}")
        outputs[output_path] = entry
        return is_queued

    def take(self, input_path: str) -> list[PendingEntry]:
        """Remove and return every pending entry of ``input_path``.

        Returns an empty list if nothing is pending for the input.
        """
        outputs = self._inputs.pop(input_path, None)
        if outputs is None:
            return []
        return list(outputs.values())

    def inputs(self) -> list[str]:
        """Inputs with at least one pending output."""
        return list(self._inputs)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        input_path, output_path = key
        return self.get(input_path, output_path) is not None

    def __len__(self) -> int:
        return sum(len(outputs) for outputs in self._inputs.values())

    def __iter__(self) -> Iterator[JobKey]:
        for input_path, outputs in self._inputs.items():
            for output_path in outputs:
                yield (input_path, output_path)
