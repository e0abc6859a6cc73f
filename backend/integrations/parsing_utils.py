"""Shared parsing utilities for aggregator payloads.

Centralises the lenient date and money parsing that raw provider
documents need: ISO dates that may carry a time component, amounts that
arrive as floats, strings or nested ``{"amount": ...}`` objects.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_UNITS_PER_MAJOR = Decimal("100")


def parse_iso_date(value) -> date | None:
    """Parse a date from an ISO string, date, or datetime.

    Accepts ``"2024-01-15"`` as well as full timestamps such as
    ``"2024-01-15T10:30:00Z"``; only the calendar date is kept.

    Returns:
        The parsed date, or None if the value is empty or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    value_str = str(value).strip()
    if not value_str:
        return None

    try:
        return date.fromisoformat(value_str[:10])
    except ValueError:
        pass

    if value_str.endswith("Z"):
        value_str = value_str[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value_str).date()
    except ValueError:
        return None


def parse_decimal(value) -> Decimal | None:
    """Convert a provider number (int, float, str) to Decimal.

    Floats go through ``str()`` so ``25.1`` stays ``25.1`` rather than its
    binary expansion.

    Returns:
        The Decimal, or None if the value is missing or not numeric.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to integer minor units (half-up)."""
    return int((amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def amount_from_money(value) -> Decimal | None:
    """Extract a Decimal from a Yodlee money object or a bare number.

    Yodlee reports money as ``{"amount": 12.5, "currency": "USD"}``; some
    fields are bare numbers.
    """
    if isinstance(value, dict):
        return parse_decimal(value.get("amount"))
    return parse_decimal(value)
