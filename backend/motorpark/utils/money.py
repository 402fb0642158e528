"""
Money helpers.

Amounts are Decimal values held at the minor unit (two decimal places).
Every split is rounded half-up to the minor unit.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Union

from ..errors import ValidationError

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, int, float, str]


def to_money(value: Amount) -> Decimal:
    """
    Convert a number to a Decimal rounded half-up to the minor unit.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, float):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        value = str(value)
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise ValidationError(f"Amount must be a finite number, got {value!r}")
        return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount {value!r}")


def split(amount: Amount, share: Decimal) -> Decimal:
    """Return ``share`` of ``amount`` rounded to the minor unit."""
    return to_money(Decimal(amount) * share)


def total(amounts: Iterable[Amount]) -> Decimal:
    """Sum amounts as money."""
    return to_money(sum((Decimal(a) for a in amounts), ZERO))
