"""Decimal parsing and rounding for monetary values"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from finance_tracker.domain.exceptions import ValidationError

CENTS = Decimal("0.01")
# Numeric(14, 2) leaves twelve integer digits
MAX_MONEY = Decimal("1000000000000")


def parse_amount(value: Any, field_name: str = "amount") -> Decimal:
    """
    Coerce user input to a finite Decimal.

    Accepts Decimal, int, float and numeric strings. Floats go through str()
    so 0.1 becomes Decimal("0.1") rather than its binary expansion.

    Raises:
        ValidationError: value is missing, boolean, non-numeric, NaN or infinite
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required and must be numeric")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field_name} must be numeric, got {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return amount


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_money(value: Any, field_name: str = "amount") -> Decimal:
    """
    parse_amount restricted to whole cents.

    Stored money columns keep two places; anything finer would be rounded
    on write and drift from the entries derived from it.

    Raises:
        ValidationError: as parse_amount, more than two decimal places,
            or too many integer digits for the money columns
    """
    amount = parse_amount(value, field_name)
    if abs(amount) >= MAX_MONEY:
        raise ValidationError(f"{field_name} is too large")
    if amount != amount.quantize(CENTS):
        raise ValidationError(f"{field_name} must have at most 2 decimal places, got {amount}")
    return amount
