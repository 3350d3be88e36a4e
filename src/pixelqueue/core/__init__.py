# src/pixelqueue/core/__init__.py
"""Core infrastructure: Configuration, Events, Logging, Output store."""

from pixelqueue.core.config import (
    LoggingSettings,
    PixelQueueSettings,
    SchedulerSettings,
    load_settings,
)
from pixelqueue.core.events import (
    EventBus,
    EventBusProtocol,
    NullEventBus,
)
from pixelqueue.core.logging import configure_logging
from pixelqueue.core.store import output_exists

__all__ = [
    "EventBus",
    "EventBusProtocol",
    "LoggingSettings",
    "NullEventBus",
    "PixelQueueSettings",
    "SchedulerSettings",
    "configure_logging",
    "load_settings",
    "output_exists",
]
