"""Tests for configuration file parsing and validation."""

import math
from pathlib import Path

import pytest

from aioprims.config.schema import (
    ConfigError,
    ConfigParseError,
    ConfigValidationError,
    PrimitivesConfig,
    load_config,
    parse_config,
)
from aioprims.queue.task_queue import UNBOUNDED
from aioprims.retry.controller import DEFAULT_MAX_ATTEMPTS


class TestParseConfig:
    """Tests for parse_config()."""

    def test_empty_document_uses_defaults(self) -> None:
        """An empty file yields default options."""
        config = parse_config("")
        assert isinstance(config, PrimitivesConfig)
        assert config.queue.concurrency == UNBOUNDED
        assert config.queue.auto_start is True
        assert config.retry.max_attempts == DEFAULT_MAX_ATTEMPTS

    def test_full_document(self) -> None:
        """All supported options are read."""
        config = parse_config(
            """
queue:
  concurrency: 4
  auto_start: false
  timeout: 2.5
retry:
  max_attempts: 3
  min_interval: 0.2
  max_interval: 5
  max_elapsed_time: 30
  backoff_factor: 1.5
  randomize: true
"""
        )
        assert config.queue.concurrency == 4
        assert config.queue.auto_start is False
        assert config.queue.timeout == 2.5
        assert config.retry.max_attempts == 3
        assert config.retry.min_interval == 0.2
        assert config.retry.max_interval == 5
        assert config.retry.max_elapsed_time == 30
        assert config.retry.backoff_factor == 1.5
        assert config.retry.randomize is True

    @pytest.mark.parametrize("spelling", ["inf", "Infinity", "unbounded", ".inf"])
    def test_unbounded_spellings(self, spelling: str) -> None:
        """Unbounded limits can be spelled out."""
        config = parse_config(f"queue:\n  concurrency: {spelling}\nretry:\n  max_attempts: {spelling}\n")
        assert config.queue.concurrency == math.inf
        assert config.retry.max_attempts == math.inf

    def test_min_interval_clamps_max(self) -> None:
        """The retry clamp applies to file configuration too."""
        config = parse_config("retry:\n  min_interval: 10\n  max_interval: 1\n")
        assert config.retry.max_interval == 10

    def test_null_timeout_means_none(self) -> None:
        """An explicit null timeout disables the timeout."""
        assert parse_config("queue:\n  timeout: null\n").queue.timeout is None


class TestParseErrors:
    """Tests for YAML parse failures."""

    def test_invalid_yaml(self) -> None:
        """Malformed YAML raises ConfigParseError."""
        with pytest.raises(ConfigParseError, match="Failed to parse YAML"):
            parse_config("queue: [unclosed")

    def test_non_mapping(self) -> None:
        """A top-level list is rejected."""
        with pytest.raises(ConfigParseError, match="mapping"):
            parse_config("- a\n- b\n")

    def test_errors_share_base(self) -> None:
        """Both error types are ConfigErrors."""
        assert issubclass(ConfigParseError, ConfigError)
        assert issubclass(ConfigValidationError, ConfigError)


class TestValidationErrors:
    """Tests for schema validation failures."""

    @pytest.mark.parametrize(
        ("document", "message"),
        [
            ("queue: 3\n", "queue must be a mapping"),
            ("retry: [1]\n", "retry must be a mapping"),
            ("queue:\n  workers: 3\n", "Unknown queue option"),
            ("retry:\n  jitter: true\n", "Unknown retry option"),
            ("queue:\n  concurrency: many\n", "queue.concurrency must be a number"),
            ("queue:\n  concurrency: 0\n", "queue.concurrency"),
            ("queue:\n  concurrency: 1.5\n", "queue.concurrency"),
            ("queue:\n  auto_start: yes please\n", "queue.auto_start must be a boolean"),
            ("queue:\n  timeout: inf\n", "queue.timeout must be a number"),
            ("queue:\n  timeout: -1\n", "queue.timeout"),
            ("retry:\n  min_interval: inf\n", "retry.min_interval must be a number"),
            ("retry:\n  min_interval: .inf\n", "retry.min_interval must be finite"),
            ("retry:\n  backoff_factor: 0.5\n", "retry.backoff_factor"),
            ("retry:\n  max_attempts: 0\n", "retry.max_attempts"),
            ("retry:\n  randomize: 1\n", "retry.randomize must be a boolean"),
        ],
    )
    def test_invalid_documents(self, document: str, message: str) -> None:
        """Invalid values raise ConfigValidationError naming the option."""
        with pytest.raises(ConfigValidationError, match=message):
            parse_config(document)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load_from_file(self, tmp_path: Path) -> None:
        """Configuration is read from disk."""
        path = tmp_path / "aioprims.yaml"
        path.write_text("queue:\n  concurrency: 2\n")
        assert load_config(path).queue.concurrency == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ConfigParseError."""
        with pytest.raises(ConfigParseError, match="Failed to read"):
            load_config(tmp_path / "missing.yaml")
