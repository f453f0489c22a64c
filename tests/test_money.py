from decimal import Decimal

import pytest

from academy_admin.utils.money import cents_to_dollars, format_usd, quantize, to_cents


@pytest.mark.parametrize(
    "value, cents",
    [
        (150, 15000),
        (12.5, 1250),
        ("$1,234.50", 123450),
        ("0.005", 1),
        ("", 0),
        (None, 0),
        ("abc", 0),
        (Decimal("19.99"), 1999),
    ],
)
def test_to_cents(value, cents):
    assert to_cents(value) == cents


def test_cents_to_dollars_quantizes():
    assert cents_to_dollars(15000) == Decimal("150.00")
    assert cents_to_dollars(1) == Decimal("0.01")
    assert cents_to_dollars(None) == Decimal("0.00")


def test_quantize_rounds_half_up():
    assert quantize("10.005") == Decimal("10.01")
    assert quantize(Decimal("3")) == Decimal("3.00")


def test_format_usd():
    assert format_usd(123450) == "$1,234.50"
    assert format_usd(-500) == "-$5.00"
    assert format_usd(0) == "$0.00"
