# src/pixelqueue/app.py
"""Settings-driven entry points.

Both functions follow the same startup order: validated settings, then
logging, then the scheduler. Logging is configured before the scheduler
starts its worker threads, so the first batch already logs in the
configured format.

Example:
    scheduler = open_scheduler(Path("pixelqueue.yaml"), transform)
    with scheduler:
        futures = [scheduler.submit(job) for job in jobs]
        scheduler.join()
"""

from __future__ import annotations

from pathlib import Path

import structlog

from pixelqueue.contracts import ExistsFn, TransformFn
from pixelqueue.core.config import PixelQueueSettings, load_settings
from pixelqueue.core.events import EventBusProtocol
from pixelqueue.core.logging import configure_logging
from pixelqueue.core.store import output_exists
from pixelqueue.engine.progress import ProgressFactory
from pixelqueue.engine.scheduler import Scheduler
from pixelqueue.engine.spans import SpanFactory

logger = structlog.get_logger(__name__)


def build_scheduler(
    settings: PixelQueueSettings,
    transform: TransformFn,
    *,
    exists: ExistsFn = output_exists,
    event_bus: EventBusProtocol | None = None,
    progress_factory: ProgressFactory | None = None,
    span_factory: SpanFactory | None = None,
) -> Scheduler:
    """Configure logging from ``settings.logging`` and build the scheduler."""
    configure_logging(settings.logging)
    scheduler = Scheduler.from_settings(
        settings.scheduler,
        transform,
        exists=exists,
        event_bus=event_bus,
        progress_factory=progress_factory,
        span_factory=span_factory,
    )
    logger.info(
        "scheduler_started",
        workers=settings.scheduler.workers,
        report_status=settings.scheduler.report_status,
        tracing=span_factory is not None and span_factory.enabled,
    )
    return scheduler


def open_scheduler(
    config_path: Path,
    transform: TransformFn,
    *,
    exists: ExistsFn = output_exists,
    event_bus: EventBusProtocol | None = None,
    progress_factory: ProgressFactory | None = None,
    span_factory: SpanFactory | None = None,
) -> Scheduler:
    """Load ``config_path`` (plus PIXELQUEUE_* overrides) and build the scheduler.

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If configuration fails validation
    """
    return build_scheduler(
        load_settings(config_path),
        transform,
        exists=exists,
        event_bus=event_bus,
        progress_factory=progress_factory,
        span_factory=span_factory,
    )
