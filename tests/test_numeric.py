"""Tests for tolerant attribute coercion."""

import pytest

from planscope.analysis.numeric import parse_bool, parse_float, parse_int, parse_truncated_int


class TestParseFloat:
    @pytest.mark.parametrize("value,expected", [
        ("0.0032831", 0.0032831),
        ("1E-06", 1e-06),
        ("42", 42.0),
        (" 3.5 ", 3.5),
        ("-2.25", -2.25),
    ])
    def test_valid(self, value, expected):
        assert parse_float(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "1_000", "NaN", "inf", "-Infinity"])
    def test_invalid_is_zero(self, value):
        assert parse_float(value) == 0.0


class TestParseInt:
    @pytest.mark.parametrize("value,expected", [("12", 12), ("-3", -3), ("+7", 7), ("0", 0)])
    def test_valid(self, value, expected):
        assert parse_int(value) == expected

    @pytest.mark.parametrize("value", [None, "", "12.5", "1e3", "ten", "1_000"])
    def test_invalid_is_zero(self, value):
        assert parse_int(value) == 0

    def test_truncated(self):
        assert parse_truncated_int("12.9") == 12
        assert parse_truncated_int("7") == 7
        assert parse_truncated_int("garbage") == 0


class TestParseBool:
    @pytest.mark.parametrize("value", ["true", "1"])
    def test_true(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", [None, "", "false", "0", "TRUE", "yes"])
    def test_false(self, value):
        assert parse_bool(value) is False
