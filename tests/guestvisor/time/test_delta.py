"""
Tests for guestvisor.time.delta (duration formatting and parsing).
"""

import math

import pytest

from guestvisor.time import InvalidDurationError, delta_str, delta_to_secs, to_secs

# =============================================================================
# delta_str() Tests - Formatting
# =============================================================================


@pytest.mark.unit
class TestDeltaStr:
    """Test delta_str formatting."""

    def test_zero(self):
        assert delta_str(0) == "0s"
        assert delta_str(0.0) == "0s"

    def test_none(self):
        assert delta_str(None) == ""

    def test_sub_second(self):
        assert delta_str(0.25) == "250ms"
        assert delta_str(0.001) == "1ms"

    def test_seconds(self):
        assert delta_str(1) == "1s"  # Whole second - no .000
        assert delta_str(1.5) == "1.500s"
        assert delta_str(30) == "30s"
        assert delta_str(10.5) == "10s"  # >= 10: no fractional

    def test_minutes_hours_days(self):
        assert delta_str(60) == "1m0s"
        assert delta_str(90) == "1m30s"
        assert delta_str(3661.5) == "1h1m1s"
        assert delta_str(86400) == "1d0h0m0s"

    @pytest.mark.parametrize("bad", [-1, math.nan, math.inf, "5", True])
    def test_invalid(self, bad):
        with pytest.raises(InvalidDurationError):
            delta_str(bad)


# =============================================================================
# delta_to_secs() Tests - Parsing
# =============================================================================


@pytest.mark.unit
class TestDeltaToSecs:
    """Test delta_to_secs parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("30s", 30.0),
            ("1m", 60.0),
            ("1m30s", 90.0),
            ("1h30m", 5400.0),
            ("2d", 172800.0),
            ("250ms", 0.25),
            ("45.5s", 45.5),
            ("1m 30s", 90.0),
        ],
    )
    def test_valid(self, text, expected):
        assert delta_to_secs(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["", "   ", "abc", "30x", "1m1m", "s30", "5"])
    def test_invalid(self, text):
        with pytest.raises(InvalidDurationError):
            delta_to_secs(text)

    def test_non_string(self):
        with pytest.raises(InvalidDurationError):
            delta_to_secs(30)  # type: ignore[arg-type]


# =============================================================================
# to_secs() Tests - Config Values
# =============================================================================


@pytest.mark.unit
class TestToSecs:
    """Test to_secs config value resolution."""

    def test_numbers(self):
        assert to_secs(5) == 5.0
        assert to_secs(0.5) == 0.5

    def test_numeric_string(self):
        assert to_secs("10") == 10.0
        assert to_secs("2.5") == 2.5

    def test_duration_string(self):
        assert to_secs("1m") == 60.0
        assert to_secs("500ms") == 0.5

    @pytest.mark.parametrize("bad", [-5, "-5", True, None, "nan", "soon"])
    def test_invalid(self, bad):
        with pytest.raises(InvalidDurationError):
            to_secs(bad)
