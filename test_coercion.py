"""
Unit tests for value coercion.
"""

import pytest

from yaml_form.coercion import (
    coerce_scalar,
    parse_csv_numbers,
    parse_csv_text,
    parse_number,
    to_csv_numbers,
    to_csv_text,
)


class TestParseNumber:
    """Test cases for parse_number."""

    @pytest.mark.parametrize("raw,expected", [
        ("42", 42),
        (" 2.5 ", 2.5),
        ("3.0", 3),
        (7.0, 7),
        (1.25, 1.25),
        ("-4", -4),
    ])
    def test_valid_numbers(self, raw, expected):
        result = parse_number(raw)
        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "nan", "inf", True, False])
    def test_invalid_numbers_return_none(self, raw):
        assert parse_number(raw) is None


class TestCoerceScalar:
    """Test cases for coerce_scalar."""

    def test_number(self):
        assert coerce_scalar('number', "12") == 12
        assert coerce_scalar('number', "") is None

    def test_checkbox(self):
        assert coerce_scalar('checkbox', True) is True
        assert coerce_scalar('checkbox', None) is False

    def test_date_like_empty_becomes_none(self):
        assert coerce_scalar('date', "") is None
        assert coerce_scalar('time', "08:30") == "08:30"
        assert coerce_scalar('datetime', "2024-05-01T08:30") == "2024-05-01T08:30"

    def test_text_passthrough(self):
        assert coerce_scalar('text', "hello") == "hello"
        assert coerce_scalar('text', "") == ""


class TestCsvNumbers:
    """Test cases for comma-separated number lists."""

    def test_all_valid(self):
        parsed = parse_csv_numbers("8, 8, 6, 6")
        assert parsed.values == [8, 8, 6, 6]
        assert parsed.invalid == []

    def test_invalid_tokens_are_reported_and_dropped(self):
        parsed = parse_csv_numbers("1, x, 2.5, , y")
        assert parsed.values == [1, 2.5]
        assert parsed.invalid == ['x', 'y']

    def test_empty_input(self):
        assert parse_csv_numbers("") == ([], [])
        assert parse_csv_numbers(None) == ([], [])

    def test_format(self):
        assert to_csv_numbers([8, 6.5]) == "8, 6.5"
        assert to_csv_numbers("not a list") == ""


class TestCsvText:
    """Test cases for comma-separated text lists."""

    def test_parse_trims_and_drops_empty(self):
        assert parse_csv_text(" a, b ,, c ") == ['a', 'b', 'c']

    def test_format(self):
        assert to_csv_text(['a', 'b']) == "a, b"
        assert to_csv_text(None) == ""


class TestCsvRoundTrip:
    """Formatting then parsing gives the original list back."""

    def test_numbers_round_trip(self):
        values = [8, 8, 6.5, -2, 0]
        parsed = parse_csv_numbers(to_csv_numbers(values))
        assert parsed.values == values
        assert parsed.invalid == []

    def test_text_round_trip(self):
        values = ['squat', 'bench press', 'row']
        assert parse_csv_text(to_csv_text(values)) == values
