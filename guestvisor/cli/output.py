"""
Output abstraction for the command line.

The check and task commands report to an OutputWriter so they can be tested
without capturing stdout. Supervisor events go to the log, not here.
"""

import sys
from typing import Protocol, TextIO


class OutputWriter(Protocol):
    """Protocol for CLI output writing."""

    def write(self, text: str = "") -> None:
        """Write text with trailing newline."""
        ...


class ConsoleOutput:
    """
    Output writer for a stream (stdout by default).

    Example:
        out = ConsoleOutput()
        out.write("[ok] executable: C:/Python311/python.exe")
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def write(self, text: str = "") -> None:
        print(text, file=self._stream)

    def flush(self) -> None:
        self._stream.flush()


class BufferedOutput:
    """
    Output writer that keeps every line.

    Example:
        out = BufferedOutput()
        out.write("[ok] config: etc/guestvisor.yaml")
        assert out.lines == ["[ok] config: etc/guestvisor.yaml"]
    """

    def __init__(self) -> None:
        self._lines: list[str] = []

    def write(self, text: str = "") -> None:
        self._lines.append(text)

    @property
    def lines(self) -> list[str]:
        return self._lines.copy()

    @property
    def text(self) -> str:
        return "\n".join(self._lines) + ("\n" if self._lines else "")


class NullOutput:
    """Output writer that discards all output."""

    def write(self, text: str = "") -> None:
        pass
