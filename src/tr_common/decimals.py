"""Decimal helpers for balances, prices and volumes.

All settlement math uses decimal.Decimal. Never float.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
_DISPLAY_QUANT = Decimal("0.01")


def to_decimal(value: object) -> Decimal:
    """Coerce a DB/JSON value to Decimal. Floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)  # type: ignore[arg-type]


def ceil_units(amount: Decimal) -> Decimal:
    """Round up to a whole unit: 100.01 -> 101, 100 -> 100."""
    return amount.to_integral_value(rounding=ROUND_CEILING)


def clamp_non_negative(amount: Decimal) -> Decimal:
    return amount if amount > ZERO else ZERO


def to_display(amount: Decimal) -> str:
    """Format for logs and UI: 1234.5 -> '1,234.50', -12 -> '-12.00'."""
    return f"{amount.quantize(_DISPLAY_QUANT, rounding=ROUND_HALF_UP):,}"
