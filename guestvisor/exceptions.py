"""
Exception hierarchy for the guest agent supervisor.

Only ConfigurationError is meant to escape Supervisor.start(). The other
conditions are raised and absorbed inside the supervision loop and surface
to the operator through the log.
"""

from typing import Any


class GuestvisorError(Exception):
    """
    Base exception for all supervisor errors.

    Example:
        try:
            supervisor.start()
        except GuestvisorError as e:
            lg.error("supervisor failed", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigurationError(GuestvisorError):
    """
    Required configuration is missing or invalid.

    Fatal: the supervisor does not start and nothing is spawned.

    Examples:
        - Interpreter or agent script not found on disk
        - Config file missing or malformed
        - Negative or non-numeric timing value
    """

    pass


class SpawnError(GuestvisorError):
    """
    The OS refused to create the child process.

    Counted against the restart ceiling exactly like a child crash.
    """

    pass


class TerminationTimeout(GuestvisorError):
    """
    The child ignored the graceful terminate for the whole grace period.

    Escalates to a forced kill and is logged as a warning.
    """

    pass


class RestartStormDetected(GuestvisorError):
    """
    The restart ceiling was reached inside one observation window.

    Triggers the extended back-off and is logged as a warning.
    """

    pass


class StateError(GuestvisorError):
    """Raised on an illegal run-state transition."""

    pass


class TaskRegistrationError(GuestvisorError):
    """
    The host task manager rejected a task registration or removal.

    Examples:
        - schtasks not available (not a Windows host)
        - Access denied (not run elevated)
    """

    pass
