"""
Module: budget_kernel.db.types
Responsibility: Numeric conversion and display-rounding helpers
    shared by models, services and the totals projection.
Architecture position: Kernel > DB.  MUST NOT import from models/, services/
    or outer layers.

Failure modes:
    - InvalidFieldError when a value cannot be read as a finite number.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from budget_kernel.exceptions import InvalidFieldError

DISPLAY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Convert user or storage input to Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.  Booleans, NaN and infinities are rejected.

    Raises:
        InvalidFieldError: If value is not a finite number.
    """
    if isinstance(value, bool):
        raise InvalidFieldError(field, value, "must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip()) if isinstance(value, str) else Decimal(value)
        except InvalidOperation:
            raise InvalidFieldError(field, value, "must be a number") from None
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise InvalidFieldError(field, value, "must be a number")
    if not result.is_finite():
        raise InvalidFieldError(field, value, "must be a finite number")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = DISPLAY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a value for display.  Stored and computed values are never rounded."""
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
