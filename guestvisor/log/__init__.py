"""
Structured logging for the supervisor.

Extends Python's standard logging with:
- A custom TRACE level below DEBUG
- Structured extra fields rendered as [key:value] or JSON
- Path-style logger names ("/", "/supervisor", "/agent") where derived
  loggers share the root's handlers
- A callback registry for reacting to log events
- Complete logging disable (level=False or level="false")
"""

import logging

from .callback import CallbackRegistry, listens_for
from .config import LogConfig
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogConfigurationError, LogError
from .factory import LoggerFactory
from .formatters import JSONFormatter, TextFormatter
from .logger import Logger

logging.addLevelName(LogConstants.CUSTOM_LEVELS["TRACE"], "TRACE")


def setup_logging(config: LogConfig) -> Logger:
    """Create the root logger for a supervisor process."""
    return LoggerFactory.create_root(config)


__all__ = [
    "CallbackRegistry",
    "listens_for",
    "LogConfig",
    "LogConstants",
    "InvalidLogLevelError",
    "LogConfigurationError",
    "LogError",
    "LoggerFactory",
    "JSONFormatter",
    "TextFormatter",
    "Logger",
    "setup_logging",
]
