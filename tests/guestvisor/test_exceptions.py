"""
Tests for the guestvisor exception hierarchy.

Tests key exception features including:
- Base GuestvisorError with context
- Specific exception classes and their inheritance
- Logging exceptions that double as configuration errors
"""

import pytest

from guestvisor.exceptions import (
    ConfigurationError,
    GuestvisorError,
    RestartStormDetected,
    SpawnError,
    StateError,
    TaskRegistrationError,
    TerminationTimeout,
)
from guestvisor.log import InvalidLogLevelError, LogConfigurationError, LogError

# =============================================================================
# Test GuestvisorError Base Class
# =============================================================================


@pytest.mark.unit
class TestGuestvisorError:
    """Test GuestvisorError base class."""

    def test_message_only(self):
        error = GuestvisorError("agent gone")
        assert str(error) == "agent gone"
        assert error.message == "agent gone"
        assert error.context == {}

    def test_context_kept(self):
        error = GuestvisorError("agent gone", pid=4120, exit_code=1)
        assert error.context == {"pid": 4120, "exit_code": 1}

    def test_str_includes_context(self):
        error = GuestvisorError("agent gone", pid=4120, exit_code=1)
        assert str(error) == "agent gone (pid=4120, exit_code=1)"

    def test_can_be_raised(self):
        with pytest.raises(GuestvisorError, match="agent gone"):
            raise GuestvisorError("agent gone")


# =============================================================================
# Test Specific Exceptions
# =============================================================================


@pytest.mark.unit
class TestSpecificExceptions:
    """Test the supervisor's error kinds."""

    @pytest.mark.parametrize(
        "cls",
        [
            ConfigurationError,
            SpawnError,
            TerminationTimeout,
            RestartStormDetected,
            StateError,
            TaskRegistrationError,
        ],
    )
    def test_inherits_from_base(self, cls):
        error = cls("failed", key="value")
        assert isinstance(error, GuestvisorError)
        assert "key=value" in str(error)

    def test_configuration_error_catchable_as_base(self):
        with pytest.raises(GuestvisorError):
            raise ConfigurationError("executable not found", path="C:/missing.exe")


@pytest.mark.unit
class TestLogExceptions:
    """Logging errors surface as configuration errors."""

    def test_invalid_level_is_configuration_error(self):
        error = InvalidLogLevelError("verbose")
        assert isinstance(error, ConfigurationError)
        assert isinstance(error, LogError)
        assert error.level == "verbose"
        assert "verbose" in str(error)

    def test_log_configuration_error_context(self):
        error = LogConfigurationError("cannot open log file", file="/x/y.log")
        assert isinstance(error, ConfigurationError)
        assert "file=/x/y.log" in str(error)
