"""
Custom exceptions for the logging system.
"""

from typing import Any

from guestvisor.exceptions import ConfigurationError


class LogError(Exception):
    """Base exception for logging-related errors."""

    pass


class InvalidLogLevelError(LogError, ConfigurationError):
    """Raised when an invalid log level is specified."""

    def __init__(self, level: Any) -> None:
        self.level = level
        ConfigurationError.__init__(self, f"Invalid log level: {level}")


class LogConfigurationError(LogError, ConfigurationError):
    """Raised when there's an error in logger configuration."""

    def __init__(self, message: str, **context: Any) -> None:
        ConfigurationError.__init__(self, message, **context)


class CallbackError(LogError):
    """Raised when a non-callable is registered as a callback."""

    pass
