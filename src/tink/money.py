"""
Decimal helpers shared by tip, split and payment code.

All rounding is ROUND_HALF_UP to match what payers see on receipts.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")
TENTH = Decimal("0.1")
HUNDRED = Decimal(100)

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Coerce ``value`` to Decimal. Floats go through ``str`` so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("NaN")


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_tenth(value: Decimal) -> Decimal:
    return value.quantize(TENTH, rounding=ROUND_HALF_UP)


def to_atomic_units(amount: Decimal, decimals: int) -> int:
    """Scale a currency amount to the asset's smallest unit (USDC: 6 decimals)."""
    scaled = amount * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))


def from_atomic_units(units: int, decimals: int) -> Decimal:
    return Decimal(units) / (Decimal(10) ** decimals)
