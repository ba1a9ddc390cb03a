"""
User-facing messages for kernel errors.

Display code catches ``BudgetKernelError`` and shows ``describe_error(exc)``.
Every error type maps to a distinguishable message: stock shortfalls name
the material and the amounts, stale references ask the user to reload,
validation errors name the offending field.
"""

from __future__ import annotations

from decimal import Decimal

from budget_kernel.db.types import round_money
from budget_kernel.exceptions import (
    BudgetNotFoundError,
    ConcurrencyError,
    EntityNotFoundError,
    InsufficientStockError,
    InvalidFieldError,
    InvalidQuantityError,
    LineNotFoundError,
    MaterialNotFoundError,
    StoreUnavailableError,
)

GENERIC_ERROR = "Something went wrong. Please try again."

_FIELD_LABELS = {
    "name": "Name",
    "unit_price": "Unit price",
    "stock": "Stock",
    "labor_cost": "Labor cost",
    "quantity": "Quantity",
}


def _amount(value: Decimal) -> str:
    """Decimal without trailing zeros: 70.000000000 -> 70, 2.50 -> 2.5."""
    return format(value.normalize(), "f")


def describe_error(exc: BaseException) -> str:
    """Return the message to show the user for ``exc``."""
    if isinstance(exc, InsufficientStockError):
        return (
            f"Not enough stock of {exc.material_name}: requested "
            f"{_amount(exc.requested)}, available {_amount(exc.available)} "
            f"(missing {_amount(exc.shortfall)})."
        )
    if isinstance(exc, InvalidQuantityError):
        return "Quantity must be a number greater than zero."
    if isinstance(exc, InvalidFieldError):
        label = _FIELD_LABELS.get(exc.field, exc.field)
        return f"{label} is not valid: {exc.reason}."
    if isinstance(exc, MaterialNotFoundError):
        return "The material no longer exists in the catalog. Reload and try again."
    if isinstance(exc, LineNotFoundError):
        return "That material is no longer part of this budget. Reload and try again."
    if isinstance(exc, BudgetNotFoundError):
        return "The budget no longer exists. Reload and try again."
    if isinstance(exc, EntityNotFoundError):
        return "The data changed while you were working. Reload and try again."
    if isinstance(exc, ConcurrencyError):
        return "Someone else changed this at the same time. Reload and try again."
    if isinstance(exc, StoreUnavailableError):
        return "The database is not reachable right now. Please try again later."
    return GENERIC_ERROR


def format_money(value: Decimal) -> str:
    """Two-decimal display form used next to totals."""
    return f"{round_money(value):,}"
