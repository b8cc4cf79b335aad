"""Tests for locale number parsing and field normalization."""

from datetime import date, datetime

import pytest

from kmarketdata.normalize import (
    align_change_sign,
    first_present,
    format_ymd,
    parse_int,
    parse_locale_number,
    to_iso_date,
)


class TestParseLocaleNumber:
    @pytest.mark.parametrize("raw, expected", [
        ("1,234,500", 1234500.0),
        ("-0.35", -0.35),
        ("  72,000 ", 72000.0),
        (1500, 1500.0),
        (2.5, 2.5),
    ])
    def test_valid(self, raw, expected):
        assert parse_locale_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "N/A", "-", True, float("nan"), float("inf"), [1]])
    def test_garbage_is_zero(self, raw):
        assert parse_locale_number(raw) == 0.0

    def test_parse_int_truncates(self):
        assert parse_int("1,234.9") == 1234
        assert parse_int(None) == 0


class TestFirstPresent:
    def test_picks_first_set_field(self):
        item = {"itemCode": "005930", "code": ""}
        assert first_present(item, "code", "itemCode") == "005930"

    def test_zero_is_present(self):
        assert first_present({"a": 0, "b": 5}, "a", "b") == 0

    def test_none_when_absent(self):
        assert first_present({"x": 1}, "a", "b") is None
        assert first_present(None, "a") is None


class TestAlignChangeSign:
    def test_unsigned_ratio_takes_change_sign(self):
        assert align_change_sign(-500.0, 1.2) == -1.2

    def test_already_signed(self):
        assert align_change_sign(300.0, 0.5) == 0.5
        assert align_change_sign(-300.0, -0.5) == -0.5

    def test_zero_change_leaves_ratio(self):
        assert align_change_sign(0.0, 0.7) == 0.7


class TestDates:
    def test_format_ymd(self):
        assert format_ymd(date(2024, 5, 3)) == "20240503"

    @pytest.mark.parametrize("raw", ["20240503", "2024-05-03", "2024.05.03", "2024-05-03T09:00:00"])
    def test_to_iso_date_formats(self, raw):
        assert to_iso_date(raw) == date(2024, 5, 3)

    def test_to_iso_date_passthrough(self):
        assert to_iso_date(datetime(2024, 5, 3, 15, 30)) == date(2024, 5, 3)
        assert to_iso_date(date(2024, 5, 3)) == date(2024, 5, 3)

    @pytest.mark.parametrize("raw", [None, "", "2024-13-01", "yesterday", 20240503])
    def test_to_iso_date_invalid(self, raw):
        assert to_iso_date(raw) is None
