"""Duration parsing and formatting for supervisor timing values."""

from .delta import InvalidDurationError, delta_str, delta_to_secs, to_secs

__all__ = [
    "InvalidDurationError",
    "delta_str",
    "delta_to_secs",
    "to_secs",
]
