"""Tests for shared payload parsing utilities."""

from datetime import date, datetime, timezone
from decimal import Decimal

from integrations.parsing_utils import (
    amount_from_money,
    parse_decimal,
    parse_iso_date,
    to_minor_units,
)


class TestParseIsoDate:
    """Tests for parse_iso_date."""

    def test_none_returns_none(self):
        assert parse_iso_date(None) is None

    def test_empty_string_returns_none(self):
        assert parse_iso_date("   ") is None

    def test_plain_date_string(self):
        assert parse_iso_date("2024-02-29") == date(2024, 2, 29)

    def test_timestamp_string_keeps_date(self):
        assert parse_iso_date("2024-06-28T23:30:00Z") == date(2024, 6, 28)

    def test_date_and_datetime_objects(self):
        assert parse_iso_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_iso_date(datetime(2024, 1, 2, 5, tzinfo=timezone.utc)) == date(2024, 1, 2)

    def test_garbage_returns_none(self):
        assert parse_iso_date("yesterday") is None
        assert parse_iso_date("2024-13-45") is None


class TestParseDecimal:
    def test_float_goes_through_str(self):
        assert parse_decimal(25.1) == Decimal("25.1")

    def test_int_and_str(self):
        assert parse_decimal(7) == Decimal("7")
        assert parse_decimal(" 12.50 ") == Decimal("12.50")

    def test_rejects_non_numbers(self):
        assert parse_decimal(None) is None
        assert parse_decimal(True) is None
        assert parse_decimal("abc") is None
        assert parse_decimal("NaN") is None
        assert parse_decimal("Infinity") is None


class TestMinorUnits:
    def test_whole_and_fractional(self):
        assert to_minor_units(Decimal("12")) == 1200
        assert to_minor_units(Decimal("12.34")) == 1234

    def test_half_up_rounding(self):
        assert to_minor_units(Decimal("0.005")) == 1
        assert to_minor_units(Decimal("-0.005")) == -1

    def test_amount_from_money(self):
        assert amount_from_money({"amount": 10.5, "currency": "USD"}) == Decimal("10.5")
        assert amount_from_money(3) == Decimal("3")
        assert amount_from_money({"currency": "USD"}) is None
