"""
Tests for the CLI output writers.
"""

import io

import pytest

from guestvisor.cli import BufferedOutput, ConsoleOutput, NullOutput


@pytest.mark.unit
class TestOutputWriters:
    """Test ConsoleOutput, BufferedOutput and NullOutput."""

    def test_console_output(self):
        stream = io.StringIO()
        out = ConsoleOutput(stream)
        out.write("[ok] config: etc/guestvisor.yaml")
        out.write()
        out.flush()
        assert stream.getvalue() == "[ok] config: etc/guestvisor.yaml\n\n"

    def test_console_defaults_to_stdout(self, capsys):
        ConsoleOutput().write("hello")
        assert capsys.readouterr().out == "hello\n"

    def test_buffered_output(self):
        out = BufferedOutput()
        assert out.text == ""
        out.write("a")
        out.write("b")
        assert out.lines == ["a", "b"]
        assert out.text == "a\nb\n"

    def test_buffered_lines_is_copy(self):
        out = BufferedOutput()
        out.write("a")
        out.lines.append("b")
        assert out.lines == ["a"]

    def test_null_output(self):
        NullOutput().write("discarded")
