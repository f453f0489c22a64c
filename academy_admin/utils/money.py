"""Money helpers.

The document store keeps amounts as integer cents, the relational store as
NUMERIC(10,2) dollars. Everything crossing between the two goes through here.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def to_decimal(value) -> Decimal:
    """Coerce a number or money-formatted string to a Decimal (0 when blank)."""
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    cleaned = _NON_NUMERIC.sub("", str(value))
    if cleaned in ("", "-", ".", "-."):
        return Decimal(0)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)


def to_cents(value) -> int:
    """Convert a dollar amount (number or "$1,234.50") to integer cents."""
    return int((to_decimal(value) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def quantize(amount) -> Decimal:
    """Round a dollar amount to whole cents."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def cents_to_dollars(cents) -> Decimal:
    """Convert integer cents to a dollar Decimal."""
    if cents is None or cents == "":
        return ZERO
    return (to_decimal(cents) / 100).quantize(CENT, rounding=ROUND_HALF_UP)


def format_usd(cents) -> str:
    """Format integer cents as US dollars, e.g. ``-$1,234.50``."""
    dollars = cents_to_dollars(cents)
    sign = "-" if dollars < 0 else ""
    return f"{sign}${abs(dollars):,.2f}"
