"""
Presentation helpers for amounts and dates.

These are display-only: nothing in the summary or filter engines
depends on their output.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Union

Number = Union[Decimal, int, float]

_CENT = Decimal("0.01")


def _to_decimal(amount: Number) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    # str() keeps floats like 12.1 from expanding to their binary value
    return Decimal(str(amount))


def _exact_context(value: Decimal) -> Context:
    # Enough digits that rescaling never overflows the default 28
    digits = len(value.as_tuple().digits)
    return Context(prec=max(28, digits, value.adjusted() + 3))


def format_currency(amount: Number) -> str:
    """
    Render an amount as US dollars.

    Two decimals, thousands separators, half-up rounding:
    1234.5 -> "$1,234.50", -5 -> "-$5.00".
    Never raises; NaN and infinities render as "$NaN" / "$Infinity".
    """
    value = _to_decimal(amount)
    if not value.is_finite():
        sign = "-" if value.is_signed() else ""
        return f"{sign}${value.copy_abs()}"

    value = value.quantize(_CENT, rounding=ROUND_HALF_UP, context=_exact_context(value))
    sign = "-" if value < 0 else ""
    return f"{sign}${value.copy_abs():,.2f}"


def format_amount(amount: Number) -> str:
    """
    Shortest plain-decimal rendering of an amount.

    12.50 -> "12.5", 40.00 -> "40". Never uses exponent notation.
    """
    value = _to_decimal(amount)
    if not value.is_finite():
        return str(value)

    context = _exact_context(value)
    if value == value.to_integral_value():
        return format(value.quantize(Decimal(1), context=context), "f")
    return format(value.normalize(context), "f")


def format_date(value: Union[date, str]) -> str:
    """Render a calendar date as e.g. "Jun 1, 2024"."""
    if isinstance(value, str):
        value = date.fromisoformat(value)
    return f"{value:%b} {value.day}, {value.year}"
