"""Configuration management for the roster calendar engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)


def parse_clock_time(value: str) -> time:
    """Parse an ``HH:MM`` or ``HH:MM:SS`` string into a time."""
    return time.fromisoformat(value.strip())


@dataclass
class EngineConfig:
    """Tunables for expansion and aggregation.

    Attributes:
        max_expansion_iterations: Hard cap on period steps per recurring definition
        source_timeout_seconds: Overall timeout for one aggregation's source fetches
        default_due_time: Start time for timed tasks without a due time
        default_end_time: End time for timed tasks without a due time
    """

    max_expansion_iterations: int = 100
    source_timeout_seconds: float = 30.0
    default_due_time: str = "09:00"
    default_end_time: str = "10:00"

    def __post_init__(self) -> None:
        if self.max_expansion_iterations < 1:
            raise ValueError("max_expansion_iterations must be at least 1")
        if self.source_timeout_seconds <= 0:
            raise ValueError("source_timeout_seconds must be positive")
        # fail early on unparseable clock values
        parse_clock_time(self.default_due_time)
        parse_clock_time(self.default_end_time)

    @property
    def default_due(self) -> time:
        return parse_clock_time(self.default_due_time)

    @property
    def default_end(self) -> time:
        return parse_clock_time(self.default_end_time)

    @classmethod
    def from_settings(cls, settings: Any) -> EngineConfig:
        """Create config from a settings dict or attribute object, keeping defaults for gaps."""
        defaults = cls()
        return cls(
            max_expansion_iterations=int(
                get_config_value(
                    settings, "max_expansion_iterations", defaults.max_expansion_iterations
                )
            ),
            source_timeout_seconds=float(
                get_config_value(settings, "source_timeout_seconds", defaults.source_timeout_seconds)
            ),
            default_due_time=str(
                get_config_value(settings, "default_due_time", defaults.default_due_time)
            ),
            default_end_time=str(
                get_config_value(settings, "default_end_time", defaults.default_end_time)
            ),
        )


class ConfigManager:
    """Manages engine configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - ROSTERCAL_MAX_EXPANSION_ITERATIONS -> 'max_expansion_iterations' (int)
        - ROSTERCAL_SOURCE_TIMEOUT -> 'source_timeout_seconds' (float)
        - ROSTERCAL_DEFAULT_DUE_TIME -> 'default_due_time' (HH:MM)
        - ROSTERCAL_DEFAULT_END_TIME -> 'default_end_time' (HH:MM)

        Returns:
            Configuration dictionary accepted by EngineConfig.from_settings
        """
        cfg: dict[str, Any] = {}

        iterations = os.environ.get("ROSTERCAL_MAX_EXPANSION_ITERATIONS")
        if iterations:
            try:
                value = int(iterations)
                if value < 1:
                    raise ValueError(value)
                cfg["max_expansion_iterations"] = value
            except ValueError:
                logger.warning(
                    "Invalid ROSTERCAL_MAX_EXPANSION_ITERATIONS=%r; ignoring", iterations
                )

        timeout = os.environ.get("ROSTERCAL_SOURCE_TIMEOUT")
        if timeout:
            try:
                seconds = float(timeout)
                if seconds <= 0:
                    raise ValueError(seconds)
                cfg["source_timeout_seconds"] = seconds
            except ValueError:
                logger.warning("Invalid ROSTERCAL_SOURCE_TIMEOUT=%r; ignoring", timeout)

        for env_key, cfg_key in (
            ("ROSTERCAL_DEFAULT_DUE_TIME", "default_due_time"),
            ("ROSTERCAL_DEFAULT_END_TIME", "default_end_time"),
        ):
            raw = os.environ.get(env_key)
            if not raw:
                continue
            try:
                parse_clock_time(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)
                continue
            cfg[cfg_key] = raw.strip()

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment."""
        self.load_env_file()
        return self.build_config_from_env()

    def load_engine_config(self) -> EngineConfig:
        """Load the environment and return a ready EngineConfig."""
        return EngineConfig.from_settings(self.load_full_config())
