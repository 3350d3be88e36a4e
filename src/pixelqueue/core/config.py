"""
Configuration schema and loading for pixelqueue.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})


class SchedulerSettings(BaseModel):
    """Scheduler configuration.

    Example YAML:
        scheduler:
          workers: 1
          report_status: true
          progress_label: "Generating image thumbnails"
    """

    model_config = {"frozen": True, "extra": "forbid"}

    workers: int = Field(
        default=1,
        ge=1,
        description="Number of batches executed concurrently (1 keeps FIFO order across inputs)",
    )
    report_status: bool = Field(
        default=True,
        description="Tick the progress reporter once per settled output",
    )
    progress_label: str = Field(
        default="Generating image thumbnails",
        min_length=1,
        description="Label of the progress bar shown while the backlog is nonempty",
    )
    tracker_name: str = Field(
        default="pixelqueue",
        min_length=1,
        description="Plugin name attached to job-tracking events",
    )
    thread_name_prefix: str = Field(
        default="pixelqueue-worker",
        min_length=1,
        description="Prefix for queue worker thread names",
    )


class LoggingSettings(BaseModel):
    """Logging configuration consumed by configure_logging()."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        normalized = v.upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"level must be one of {sorted(_LOG_LEVELS)}, got {v!r}")
        return normalized


class PixelQueueSettings(BaseModel):
    """Top-level pixelqueue configuration."""

    model_config = {"frozen": True}

    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _lower_keys(value: Any) -> Any:
    """Recursively lowercase mapping keys (Dynaconf uppercases env-provided keys)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path) -> PixelQueueSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence (highest first):
    1. Environment variables (PIXELQUEUE_*), nested via ``__``:
       PIXELQUEUE_SCHEDULER__WORKERS=2
    2. Config file
    3. Defaults from the Pydantic schema

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If configuration fails validation
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="PIXELQUEUE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return PixelQueueSettings(**_lower_keys(raw_config))
