# src/pixelqueue/engine/spans.py
"""OpenTelemetry span factory for batch execution.

Falls back to no-op mode when no tracer is configured.

Span Hierarchy:
    batch
    └── output   (one per settled output)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer


class NoOpSpan:
    """No-op span for when tracing is disabled."""

    def set_attribute(self, key: str, value: Any) -> None:
        """No-op."""
        pass

    def set_status(self, status: Any) -> None:
        """No-op."""
        pass

    def record_exception(self, exception: BaseException) -> None:
        """No-op."""
        pass

    def is_recording(self) -> bool:
        """Always False for no-op."""
        return False


class SpanFactory:
    """Factory for creating OpenTelemetry spans.

    Span names are stable ("batch", "output"); identities go into attributes.

    Example:
        factory = SpanFactory(tracer=opentelemetry.trace.get_tracer("pixelqueue"))

        with factory.batch_span("photos/cat.jpg", unit_id, size=3) as span:
            ...
    """

    # Singleton no-op span to avoid repeated allocations
    _NOOP_SPAN = NoOpSpan()

    def __init__(self, tracer: "Tracer | None" = None) -> None:
        """Initialize with optional tracer.

        Args:
            tracer: OpenTelemetry tracer. If None, spans are no-ops.
        """
        self._tracer = tracer

    @property
    def enabled(self) -> bool:
        """Whether tracing is enabled."""
        return self._tracer is not None

    @contextmanager
    def batch_span(self, input_path: str, unit_id: str, *, size: int) -> Iterator["Span | NoOpSpan"]:
        """Create a span covering one transform invocation.

        Args:
            input_path: Input shared by every output in the batch
            unit_id: Batch unit identifier
            size: Number of outputs in the batch

        Yields:
            Span or NoOpSpan
        """
        if self._tracer is None:
            yield self._NOOP_SPAN
            return

        with self._tracer.start_as_current_span("batch") as span:
            span.set_attribute("batch.unit_id", unit_id)
            span.set_attribute("batch.input_path", input_path)
            span.set_attribute("batch.size", size)
            yield span

    @contextmanager
    def output_span(self, output_path: str, *, status: str) -> Iterator["Span | NoOpSpan"]:
        """Create a span for settling one output.

        Args:
            output_path: Output being settled
            status: "success" or "error"

        Yields:
            Span or NoOpSpan
        """
        if self._tracer is None:
            yield self._NOOP_SPAN
            return

        with self._tracer.start_as_current_span("output") as span:
            span.set_attribute("output.path", output_path)
            span.set_attribute("output.status", status)
            yield span
