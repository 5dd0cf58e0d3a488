"""YAML schema validation for primitive configuration files.

Example file::

    queue:
      concurrency: 4
      auto_start: true
      timeout: 30
    retry:
      max_attempts: 5
      min_interval: 0.5
      max_interval: inf
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from aioprims.exceptions import ConfigurationError
from aioprims.queue.task_queue import QueueOptions
from aioprims.retry.controller import RetryOptions

# Spelling of an unbounded numeric option
UNBOUNDED_VALUES = frozenset({"inf", "infinity", "unbounded"})

QUEUE_FIELDS = ("concurrency", "auto_start", "timeout")
RETRY_FIELDS = (
    "max_attempts",
    "min_interval",
    "max_interval",
    "max_elapsed_time",
    "backoff_factor",
    "randomize",
)


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigParseError(ConfigError):
    """Error parsing YAML configuration."""

    pass


class ConfigValidationError(ConfigError):
    """Error validating configuration schema."""

    pass


@dataclass
class PrimitivesConfig:
    """Complete configuration file contents."""

    queue: QueueOptions = field(default_factory=QueueOptions)
    retry: RetryOptions = field(default_factory=RetryOptions)


def _parse_yaml(content: str) -> dict[str, Any]:
    """Parse YAML content into a dictionary.

    Raises:
        ConfigParseError: If YAML parsing fails.
    """
    try:
        result = yaml.safe_load(content)
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise ConfigParseError("Configuration must be a YAML mapping")
        return result
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}") from e


def _number(section: str, name: str, value: Any, allow_unbounded: bool) -> int | float:
    """Validate a numeric option, accepting ``inf`` where allowed."""
    if allow_unbounded and isinstance(value, str) and value.strip().lower() in UNBOUNDED_VALUES:
        return math.inf
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigValidationError(f"{section}.{name} must be a number")
    if math.isinf(value) and not allow_unbounded:
        raise ConfigValidationError(f"{section}.{name} must be finite")
    return value


def _section(data: dict[str, Any], name: str, known: tuple[str, ...]) -> dict[str, Any]:
    """Return a config section, rejecting unknown keys."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigValidationError(f"{name} must be a mapping")

    unknown = sorted(str(key) for key in section if key not in known)
    if unknown:
        raise ConfigValidationError(f"Unknown {name} option(s): {', '.join(unknown)}")
    return section


def _validate_queue(data: dict[str, Any]) -> QueueOptions:
    """Validate the queue section of configuration.

    Raises:
        ConfigValidationError: If queue validation fails.
    """
    section = _section(data, "queue", QUEUE_FIELDS)
    values: dict[str, Any] = {}

    if "concurrency" in section:
        values["concurrency"] = _number("queue", "concurrency", section["concurrency"], True)
    if "auto_start" in section:
        if not isinstance(section["auto_start"], bool):
            raise ConfigValidationError("queue.auto_start must be a boolean")
        values["auto_start"] = section["auto_start"]
    if section.get("timeout") is not None:
        values["timeout"] = _number("queue", "timeout", section["timeout"], False)

    try:
        return QueueOptions(**values)
    except ConfigurationError as e:
        raise ConfigValidationError(f"queue.{e.field}: {e.message}") from e


def _validate_retry(data: dict[str, Any]) -> RetryOptions:
    """Validate the retry section of configuration.

    Raises:
        ConfigValidationError: If retry validation fails.
    """
    section = _section(data, "retry", RETRY_FIELDS)
    values: dict[str, Any] = {}

    for name in ("max_attempts", "max_interval", "max_elapsed_time"):
        if name in section:
            values[name] = _number("retry", name, section[name], True)
    for name in ("min_interval", "backoff_factor"):
        if name in section:
            values[name] = _number("retry", name, section[name], False)
    if "randomize" in section:
        if not isinstance(section["randomize"], bool):
            raise ConfigValidationError("retry.randomize must be a boolean")
        values["randomize"] = section["randomize"]

    try:
        return RetryOptions(**values)
    except ConfigurationError as e:
        raise ConfigValidationError(f"retry.{e.field}: {e.message}") from e


def parse_config(content: str) -> PrimitivesConfig:
    """Parse and validate configuration content.

    Args:
        content: Raw YAML string.

    Returns:
        Validated PrimitivesConfig object.

    Raises:
        ConfigParseError: If YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    data = _parse_yaml(content)
    return PrimitivesConfig(
        queue=_validate_queue(data),
        retry=_validate_retry(data),
    )


def load_config(path: Path) -> PrimitivesConfig:
    """Load and validate configuration from a file.

    Raises:
        ConfigParseError: If file reading or YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigParseError(f"Failed to read configuration file: {e}") from e

    return parse_config(content)
