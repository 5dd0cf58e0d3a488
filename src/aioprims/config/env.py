"""Environment variable loading for logging configuration."""

import os
from dataclasses import dataclass
from enum import Enum

from aioprims.config.schema import ConfigValidationError
from aioprims.core.logging import LogLevel, configure_logging


class LogFormat(Enum):
    """Supported log output formats."""

    JSON = "json"
    TEXT = "text"


@dataclass
class EnvConfig:
    """Environment-based configuration."""

    log_level: LogLevel = LogLevel.INFO
    log_format: LogFormat = LogFormat.JSON


# Environment variable names
ENV_LOG_LEVEL = "AIOPRIMS_LOG_LEVEL"
ENV_LOG_FORMAT = "AIOPRIMS_LOG_FORMAT"


def _load_log_level() -> LogLevel:
    """Load the log level from the environment.

    Raises:
        ConfigValidationError: If the level name is unknown.
    """
    raw = os.environ.get(ENV_LOG_LEVEL)
    if not raw:
        return LogLevel.INFO
    try:
        return LogLevel[raw.strip().upper()]
    except KeyError:
        names = ", ".join(level.name for level in LogLevel)
        raise ConfigValidationError(
            f"{ENV_LOG_LEVEL} must be one of {names}, got {raw!r}"
        ) from None


def _load_log_format() -> LogFormat:
    """Load the log format from the environment.

    Raises:
        ConfigValidationError: If the format is unknown.
    """
    raw = os.environ.get(ENV_LOG_FORMAT)
    if not raw:
        return LogFormat.JSON
    try:
        return LogFormat(raw.strip().lower())
    except ValueError:
        raise ConfigValidationError(
            f"{ENV_LOG_FORMAT} must be 'json' or 'text', got {raw!r}"
        ) from None


def load_env_config() -> EnvConfig:
    """Load all environment-based configuration.

    Returns:
        EnvConfig with logging settings.
    """
    return EnvConfig(
        log_level=_load_log_level(),
        log_format=_load_log_format(),
    )


def apply_env_logging() -> EnvConfig:
    """Configure the global loggers from the environment.

    Returns:
        The configuration that was applied.
    """
    config = load_env_config()
    configure_logging(
        level=config.log_level,
        json_format=config.log_format is LogFormat.JSON,
    )
    return config
