"""Unit tests for lenient number parsing."""

import pytest

from fleet_intake.utils.number_parsing import parse_lenient_int, parse_lenient_number


class TestParseLenientNumber:
    @pytest.mark.parametrize("value,expected", [
        ("125,000", 125000.0),
        ("1,250,000", 1250000.0),
        ("125,000 mi", 125000.0),
        ("98765 miles", 98765.0),
        ("1.5 hrs", 1.5),
        ("2 hours", 2.0),
        ("1,5", 1.5),
        ("1.234,5", 1234.5),
        ("1,234.5", 1234.5),
        ("1'000", 1000.0),
        ("12 345", 12345.0),
        ("42", 42.0),
        (" 7.25 ", 7.25),
    ])
    def test_text_values(self, value, expected):
        assert parse_lenient_number(value) == expected

    def test_numbers_pass_through(self):
        assert parse_lenient_number(3) == 3.0
        assert parse_lenient_number(2.5) == 2.5

    @pytest.mark.parametrize("value", [None, "", "   ", "n/a", "abc", "mi", True, float("nan"), [1]])
    def test_unparseable_is_none_never_zero(self, value):
        assert parse_lenient_number(value) is None


class TestParseLenientInt:
    def test_rounds_fractions(self):
        assert parse_lenient_int("125,000.6 km") == 125001

    def test_year_string(self):
        assert parse_lenient_int("2021") == 2021

    def test_invalid(self):
        assert parse_lenient_int("twenty") is None
