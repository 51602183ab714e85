"""
Command line interface.

The guestvisor command runs the supervisor, checks its configuration and
manages the boot-time scheduled task.
"""

from .checks import CheckResult, run_checks
from .cli import main
from .output import BufferedOutput, ConsoleOutput, NullOutput, OutputWriter

__all__ = [
    "BufferedOutput",
    "CheckResult",
    "ConsoleOutput",
    "NullOutput",
    "OutputWriter",
    "main",
    "run_checks",
]
