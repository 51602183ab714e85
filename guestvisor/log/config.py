"""
Configuration class for the logging system.

LogConfig is immutable so that a single instance can be shared between the
root logger, its handlers and its formatters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable configuration for the root logger.

    Attributes:
        level: Numeric level, or False to disable logging
        location: Whether to append the caller's file:line
        micros: Whether timestamps carry sub-second precision
        colors: Whether console output uses ANSI colors
        format: "text" or "json"
        file: Optional path of a log file written in addition to the console
    """

    level: int | bool = logging.INFO
    location: bool = False
    micros: bool = False
    colors: bool = True
    format: str = "text"
    file: str | None = None

    @staticmethod
    def _resolve_level(level: str | int | bool) -> int | bool:
        """Resolve level parameter to int or False."""
        from .constants import LogConstants
        from .exceptions import InvalidLogLevelError

        if isinstance(level, bool):
            return False if not level else logging.INFO
        if isinstance(level, str):
            if level.isnumeric():
                return int(level)
            if level.lower() in LogConstants.LEVEL_NAMES:
                return LogConstants.LEVEL_NAMES[level.lower()]
            raise InvalidLogLevelError(level)
        return level

    @staticmethod
    def _resolve_format(fmt: str) -> str:
        from .constants import LogConstants
        from .exceptions import LogConfigurationError

        fmt = str(fmt).lower()
        if fmt not in LogConstants.FORMATS:
            raise LogConfigurationError(
                "unknown log format", format=fmt, allowed=sorted(LogConstants.FORMATS)
            )
        return fmt

    @classmethod
    def from_params(
        cls,
        level: str | int | bool,
        location: bool = False,
        micros: bool = False,
        colors: bool = True,
        format: str = "text",
        file: str | None = None,
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            level: Log level (string name, numeric value, or False to disable logging)
            location: Whether to show the caller location
            micros: Whether to show sub-second precision
            colors: Whether to enable colored output
            format: Console output format, "text" or "json"
            file: Optional log file path

        Returns:
            LogConfig instance

        Raises:
            InvalidLogLevelError: If the level name is unknown
            LogConfigurationError: If the format is unknown
        """
        return cls(
            level=cls._resolve_level(level),
            location=bool(location),
            micros=bool(micros),
            colors=bool(colors),
            format=cls._resolve_format(format),
            file=str(file) if file else None,
        )

    @classmethod
    def from_config(cls, config_dict: dict, section: str = "logging") -> LogConfig:
        """
        Create LogConfig from a configuration dictionary.

        Args:
            config_dict: Configuration dictionary (e.g., Config.dict())
            section: Dotted path of the logging section

        Returns:
            LogConfig instance, with defaults for anything not configured

        Example:
            from guestvisor.config import Config
            config = Config("etc/guestvisor.yaml")
            log_config = LogConfig.from_config(config.dict())
        """
        current: Any = config_dict
        for part in section.split("."):
            current = current.get(part) if isinstance(current, dict) else None
        if not isinstance(current, dict):
            current = {}

        level = current.get("level", "info")
        if level == "false":
            level = False

        return cls.from_params(
            level=level,
            location=current.get("location", False),
            micros=current.get("microseconds", current.get("micros", False)),
            colors=current.get("colors", True),
            format=current.get("format", "text"),
            file=current.get("file"),
        )
