"""
Decimal helpers shared by the entities.

Amounts arrive from forms and imports as int, float or str. Everything is
funnelled through ``Decimal(str(value))`` so binary float noise never
reaches a total.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    Coerce a numeric value to Decimal.

    Args:
        value: int, float, str or Decimal
        field_name: Used in the error message

    Returns:
        Decimal representation (None maps to 0)

    Raises:
        TypeError: If the value is not numeric
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be numeric, got bool")
    if isinstance(value, (int, float, str)):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            raise TypeError(f"{field_name} must be numeric, got {value!r}")
    raise TypeError(f"{field_name} must be numeric, got {type(value).__name__}")


def percent_of(amount: Decimal, pct: Decimal) -> Decimal:
    """amount * pct / 100"""
    return amount * pct / HUNDRED


def dsum(values: Iterable[Decimal]) -> Decimal:
    """Decimal sum that returns Decimal('0') for an empty iterable."""
    return sum(values, ZERO)
