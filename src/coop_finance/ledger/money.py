"""Decimal helpers for amounts coming off the wire."""

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Convert an XML-RPC number to Decimal.

    Odoo sends ``False`` for empty numeric fields; those count as zero.
    Floats go through ``str`` so 0.1 stays 0.1.
    """
    if value is None or value is False:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return ZERO


def round_half_up(value: Decimal, places: int) -> Decimal:
    """Round to ``places`` decimals with ties going toward positive infinity.

    1.2345 -> 1.235 and -1.2345 -> -1.234, the same results the reporting
    frontend gets from scale-and-round arithmetic. Never banker's rounding.
    """
    quantum = Decimal(1).scaleb(-places)
    return (value + quantum / 2).quantize(quantum, rounding=ROUND_FLOOR)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, yielding 0 for a zero denominator."""
    if denominator == 0:
        return ZERO
    return numerator / denominator
