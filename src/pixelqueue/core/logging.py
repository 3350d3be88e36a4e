"""Structured logging for pixelqueue.

Engine modules log through ``structlog.get_logger(__name__)`` with an event
name and key-value context (``batch_finished unit_id=... failed=0``).
configure_logging() installs one stdout handler whose ProcessorFormatter
renders both those records and plain stdlib records from third-party
libraries, so a build log has a single format.

Every record carries the logger name and the name of the thread that
emitted it. Batches run on worker threads named after
``SchedulerSettings.thread_name_prefix``, so the thread tells batches apart
when ``workers > 1``.

Typical entry point:
    settings = load_settings(Path("pixelqueue.yaml"))
    configure_logging(settings.logging)
"""

import logging
import sys
from typing import Any

import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder
from structlog.stdlib import ProcessorFormatter

from pixelqueue.core.config import LoggingSettings

# Libraries whose DEBUG output drowns out batch events
_CHATTY_LOGGERS: tuple[str, ...] = ("opentelemetry", "dynaconf")


def _pre_chain() -> list[Any]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        CallsiteParameterAdder({CallsiteParameter.THREAD_NAME}),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]


def _renderers(json_output: bool) -> list[Any]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Route structlog and stdlib logging to stdout.

    Replaces any handlers on the root logger. Safe to call again with new
    settings (loggers are not cached).

    Args:
        settings: Level and output format; defaults to INFO console output
    """
    settings = settings or LoggingSettings()
    level = logging.getLevelNamesMapping()[settings.level]
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[ProcessorFormatter.remove_processors_meta, *_renderers(settings.json_output)],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Never louder than the root level
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
