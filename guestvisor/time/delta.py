"""
Duration parsing and formatting.

Supervisor timing values may be written in config either as plain numbers of
seconds or as compact duration strings.

Example Usage:
    >>> delta_to_secs('1m30s')
    90.0

    >>> to_secs('500ms')
    0.5

    >>> delta_str(3661.5)
    '1h1m1s'
"""

import math
import re

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60
MILLISECONDS_PER_SECOND = 1000

# Longer units first so "ms" is not read as "m" followed by "s"
_COMPONENT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)(ms|d|h|m|s)")

_UNIT_SECONDS = {
    "d": SECONDS_PER_DAY,
    "h": SECONDS_PER_HOUR,
    "m": SECONDS_PER_MINUTE,
    "s": 1,
    "ms": 1 / MILLISECONDS_PER_SECOND,
}


class InvalidDurationError(Exception):
    """Raised when an invalid duration value or string is provided."""

    pass


def _validate_duration_input(secs: float) -> None:
    """
    Validate a numeric duration.

    Raises:
        InvalidDurationError: If input is not a finite, non-negative number
    """
    if isinstance(secs, bool) or not isinstance(secs, (int, float)):
        raise InvalidDurationError(
            f"Duration must be a number, got {type(secs).__name__}"
        )
    if math.isnan(secs):
        raise InvalidDurationError("Duration cannot be NaN")
    if math.isinf(secs):
        raise InvalidDurationError("Duration cannot be infinite")
    if secs < 0:
        raise InvalidDurationError(f"Duration cannot be negative, got {secs}")


def delta_str(secs: float | None) -> str:
    """
    Format a duration in seconds as a compact human-readable string.

    Seconds below 10 keep millisecond precision, larger values are rounded
    down to whole seconds. Sub-second values are shown in milliseconds.

    Args:
        secs: Duration in seconds (can be None)

    Returns:
        Formatted duration string, or empty string if secs is None

    Raises:
        InvalidDurationError: If secs is negative, NaN, or infinite

    Examples:
        >>> delta_str(60)
        '1m0s'
        >>> delta_str(1.5)
        '1.500s'
        >>> delta_str(0.25)
        '250ms'
        >>> delta_str(0)
        '0s'
    """
    if secs is None:
        return ""

    _validate_duration_input(secs)

    if secs == 0:
        return "0s"
    if secs < 1:
        return f"{round(secs * MILLISECONDS_PER_SECOND)}ms"

    days, rest = divmod(secs, SECONDS_PER_DAY)
    hours, rest = divmod(rest, SECONDS_PER_HOUR)
    minutes, rest = divmod(rest, SECONDS_PER_MINUTE)

    result = ""
    if days:
        result += f"{int(days)}d"
    if result or hours:
        result += f"{int(hours)}h"
    if result or minutes:
        result += f"{int(minutes)}m"

    msecs = round((rest - int(rest)) * MILLISECONDS_PER_SECOND)
    if not result and rest < 10 and 0 < msecs < 1000:
        return f"{int(rest)}.{msecs:03d}s"
    return result + f"{int(rest)}s"


def delta_to_secs(duration_str: str) -> float:
    """
    Parse a duration string to seconds.

    Args:
        duration_str: Duration string such as "30s", "1m30s", "250ms" or "2h"

    Returns:
        Duration in seconds as float

    Raises:
        InvalidDurationError: If the string cannot be parsed

    Examples:
        >>> delta_to_secs('1h30m')
        5400.0
        >>> delta_to_secs('45.5s')
        45.5
    """
    if not isinstance(duration_str, str) or not duration_str.strip():
        raise InvalidDurationError("Duration string cannot be empty")

    normalized = duration_str.replace(" ", "")
    matches = _COMPONENT_PATTERN.findall(normalized)
    if not matches:
        raise InvalidDurationError(f"Could not parse duration string: '{duration_str}'")

    if "".join(value + unit for value, unit in matches) != normalized:
        raise InvalidDurationError(
            f"Invalid characters in duration string: '{duration_str}'"
        )

    seen: set[str] = set()
    total = 0.0
    for value, unit in matches:
        if unit in seen:
            raise InvalidDurationError(f"Duplicate unit '{unit}' in duration string")
        seen.add(unit)
        total += float(value) * _UNIT_SECONDS[unit]
    return total


def to_secs(value: int | float | str) -> float:
    """
    Resolve a config value to seconds.

    Numbers (and numeric strings) are taken as seconds, anything else is
    parsed with delta_to_secs().

    Raises:
        InvalidDurationError: If the value is not a valid duration
    """
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return delta_to_secs(value)

    _validate_duration_input(value)
    return float(value)


__all__ = [
    "delta_str",
    "delta_to_secs",
    "to_secs",
    "InvalidDurationError",
]
