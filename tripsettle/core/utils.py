"""
Money helpers shared by the settlement services.
"""
from typing import Any
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert ints, floats and strings to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Any) -> Decimal:
    """Round to two decimals, halves away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Any, currency: str) -> str:
    """Format an amount as '<CUR> 12.34'."""
    return f"{currency} {round2(amount):.2f}"
