"""Configuration parsing and validation."""

from aioprims.config.env import (
    ENV_LOG_FORMAT,
    ENV_LOG_LEVEL,
    EnvConfig,
    LogFormat,
    apply_env_logging,
    load_env_config,
)
from aioprims.config.schema import (
    ConfigError,
    ConfigParseError,
    ConfigValidationError,
    PrimitivesConfig,
    load_config,
    parse_config,
)

__all__ = [
    # Schema types
    "PrimitivesConfig",
    # Schema functions
    "parse_config",
    "load_config",
    # Schema errors
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # Environment types
    "EnvConfig",
    "LogFormat",
    # Environment functions
    "load_env_config",
    "apply_env_logging",
    # Environment constants
    "ENV_LOG_LEVEL",
    "ENV_LOG_FORMAT",
]
