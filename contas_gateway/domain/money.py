"""Exact decimal money helpers"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Any

from contas_gateway.domain.exceptions import InvalidAmount

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest amount whose cents fit a signed 64-bit column
MAX_AMOUNT = Decimal("92233720368547758.07")


def parse_amount(value: Any, allow_zero: bool = False) -> Decimal:
    """
    Validate a monetary input and return it as a 2-place Decimal.

    Accepts Decimal, int or str; floats go through ``str`` first so 10.1
    stays 10.1. Rejects non-finite values, more than 2 fraction digits,
    amounts above ``MAX_AMOUNT`` and non-positive amounts (zero allowed when
    ``allow_zero``).

    Raises:
        InvalidAmount
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount(f"Amount must be positive: {value}")
    if amount > MAX_AMOUNT:
        raise InvalidAmount(f"Amount is too large: {value}")

    try:
        quantized = amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if amount.as_tuple().exponent < -2 and amount != quantized:
        raise InvalidAmount(f"Amount has more than 2 decimal places: {value}")
    return quantized


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int | None) -> Decimal:
    if cents is None:
        return ZERO
    return (Decimal(cents) / 100).quantize(CENT)


def truncate_to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_DOWN)


def percentage(part: Decimal, total: Decimal) -> Decimal:
    """Share of ``part`` in ``total`` as a percentage rounded for display"""
    if total <= 0:
        return ZERO
    return (part / total * 100).quantize(CENT, rounding=ROUND_HALF_UP)
