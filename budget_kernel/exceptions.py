"""
Typed exception hierarchy for the budget kernel.

Every error carries a machine-readable ``code`` class attribute and keeps
its context as attributes, so callers catch by type and read structured
data instead of parsing messages.

    BudgetKernelError (base)
    |
    +-- EntityNotFoundError
    |   +-- MaterialNotFoundError
    |   +-- BudgetNotFoundError
    |   +-- LineNotFoundError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidFieldError
    |
    +-- StoreError
    |   +-- StoreUnavailableError
    |   +-- UnknownCollectionError
    |
    +-- ConcurrencyError
        +-- OptimisticLockError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | MATERIAL_NOT_FOUND          | Material id doesn't exist (deleted?)
                | BUDGET_NOT_FOUND            | Budget id doesn't exist
                | LINE_NOT_FOUND              | Line missing or owned by another budget
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Reservation exceeds available stock
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_QUANTITY            | Quantity / amount not strictly positive
                | INVALID_FIELD               | Empty name, negative price, ...
----------------|-----------------------------|-----------------------------------------
Store           | STORE_UNAVAILABLE           | Driver / connection failure
                | UNKNOWN_COLLECTION          | Collection name not registered
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Row changed by another transaction

Handling pattern:

    try:
        manager.add_line(budget_id, material_id, Decimal("30"))
    except InsufficientStockError as e:
        show(f"Only {e.available} of {e.material_name} left")
    except EntityNotFoundError:
        show("The data changed, reload and try again")
"""

from decimal import Decimal
from typing import Any


class BudgetKernelError(Exception):
    """
    Base exception for all budget kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "BUDGET_KERNEL_ERROR"


# Not-found exceptions


class EntityNotFoundError(BudgetKernelError):
    """Entity with given ID was not found in a collection."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, collection: str, entity_id: Any):
        self.collection = collection
        self.entity_id = str(entity_id)
        super().__init__(f"{collection} entity not found: {entity_id}")


class MaterialNotFoundError(EntityNotFoundError):
    """Material was not found (never existed or deleted)."""

    code: str = "MATERIAL_NOT_FOUND"

    def __init__(self, material_id: Any):
        self.material_id = str(material_id)
        super().__init__("materials", material_id)


class BudgetNotFoundError(EntityNotFoundError):
    """Budget was not found."""

    code: str = "BUDGET_NOT_FOUND"

    def __init__(self, budget_id: Any):
        self.budget_id = str(budget_id)
        super().__init__("budgets", budget_id)


class LineNotFoundError(EntityNotFoundError):
    """Budget line was not found, or does not belong to the given budget."""

    code: str = "LINE_NOT_FOUND"

    def __init__(self, line_id: Any, budget_id: Any = None):
        self.line_id = str(line_id)
        self.budget_id = str(budget_id) if budget_id is not None else None
        super().__init__("budget_materials", line_id)


# Stock exceptions


class StockError(BudgetKernelError):
    """Base exception for stock accounting errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """
    Requested reservation exceeds the material's available stock.

    Carries the material identity and the available quantity so the
    shortfall can be shown to the user.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        material_id: Any,
        material_name: str,
        available: Decimal,
        requested: Decimal,
    ):
        self.material_id = str(material_id)
        self.material_name = material_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {material_name}: "
            f"requested {requested}, available {available}"
        )

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.available


# Validation exceptions


class ValidationError(BudgetKernelError):
    """Base exception for rejected input values."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity or ledger amount must be strictly positive."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: Any):
        self.quantity = quantity
        super().__init__(f"Quantity must be greater than zero, got {quantity}")


class InvalidFieldError(ValidationError):
    """A field value failed validation."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


# Store exceptions


class StoreError(BudgetKernelError):
    """Base exception for entity store errors."""

    code: str = "STORE_ERROR"


class StoreUnavailableError(StoreError):
    """The underlying database could not be reached or failed mid-operation."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store unavailable during {operation}: {detail}")


class UnknownCollectionError(StoreError):
    """Collection name is not registered with the entity store."""

    code: str = "UNKNOWN_COLLECTION"

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Unknown collection: {collection}")


# Concurrency exceptions


class ConcurrencyError(BudgetKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )
