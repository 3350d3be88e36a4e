# src/pixelqueue/contracts/events.py
"""Job-tracking events emitted for each batch unit.

One unit is created per batch. ``images_count`` is provisional (1) at
creation and corrected when the batch is assembled at dequeue time.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class JobCreated:
    """A batch unit was queued for an input."""

    unit_id: str
    description: str
    images_count: int
    plugin_name: str


@dataclass(frozen=True)
class JobUpdated:
    """A batch unit was assembled or one of its outputs settled.

    Only the fields that changed are set.
    """

    unit_id: str
    plugin_name: str
    images_count: int | None = None
    images_finished: int | None = None


@dataclass(frozen=True)
class JobEnded:
    """Every output of a batch unit has settled."""

    unit_id: str
    plugin_name: str
