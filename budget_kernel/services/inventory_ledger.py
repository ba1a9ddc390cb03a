"""
InventoryLedger -- the single owner of ``Material.stock``.

Responsibility:
    Reserve, release and adjust material stock on behalf of budget lines.
    Every change is ONE conditional UPDATE through
    ``EntityStore.increment``:

        UPDATE materials
           SET stock = stock - :amount, version = version + 1
         WHERE id = :id AND stock - :amount >= 0

    so two clients reserving the same material at the same moment can never
    both read the old value and overcommit.

Architecture position:
    Kernel > Services.  Called by ``budget_modules.budget.service`` inside
    the transaction that also writes the line.

Invariants enforced:
    - stock never goes below zero through this ledger.
    - reserve/release amounts are strictly positive.
    - Flush-only: the caller commits or rolls back.

Failure modes:
    - InvalidQuantityError: amount <= 0.
    - MaterialNotFoundError: material id unknown (or deleted).
    - InsufficientStockError: reservation larger than available stock.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from budget_kernel.db.types import to_decimal
from budget_kernel.domain.dtos import Material
from budget_kernel.exceptions import (
    InsufficientStockError,
    InvalidFieldError,
    InvalidQuantityError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.services.base import BaseService
from budget_kernel.store.collections import MATERIALS

logger = get_logger("services.inventory_ledger")

_ZERO = Decimal("0")


class InventoryLedger(BaseService):
    """
    Stock accounting for catalog materials.

    Usage:
        ledger = InventoryLedger(session)
        ledger.reserve(material_id, Decimal("30"))
        ...
        session.commit()   # owned by the caller
    """

    def reserve(self, material_id: Any, amount: Any) -> Material:
        """
        Decrement stock by ``amount``.

        Returns:
            The material as it reads after the reservation.
        """
        amount = self._positive(amount)
        applied = self.store.increment(MATERIALS, material_id, "stock", -amount, minimum=_ZERO)
        if not applied:
            # Either the row is gone or the guard refused; the read tells which.
            material = self.store.get(MATERIALS, material_id)
            logger.info(
                "stock_reservation_refused",
                extra={
                    "material_id": str(material.id),
                    "requested": amount,
                    "available": material.stock,
                },
            )
            raise InsufficientStockError(
                material_id=material.id,
                material_name=material.name,
                available=material.stock,
                requested=amount,
            )

        material = self.store.get(MATERIALS, material_id)
        logger.info(
            "stock_reserved",
            extra={"material_id": str(material.id), "amount": amount, "stock": material.stock},
        )
        return material

    def release(self, material_id: Any, amount: Any) -> Material:
        """Increment stock by ``amount``.  There is no upper bound."""
        amount = self._positive(amount)
        applied = self.store.increment(MATERIALS, material_id, "stock", amount)
        if not applied:
            # get() raises MaterialNotFoundError for the missing row
            self.store.get(MATERIALS, material_id)
        material = self.store.get(MATERIALS, material_id)
        logger.info(
            "stock_released",
            extra={"material_id": str(material.id), "amount": amount, "stock": material.stock},
        )
        return material

    def adjust(self, material_id: Any, delta: Any) -> Material:
        """
        Apply a signed change on behalf of a quantity edit.

        ``delta > 0`` reserves, ``delta < 0`` releases ``-delta`` and
        ``delta == 0`` only checks that the material exists.
        """
        delta = to_decimal(delta, "delta")
        if delta > 0:
            return self.reserve(material_id, delta)
        if delta < 0:
            return self.release(material_id, -delta)
        return self.store.get(MATERIALS, material_id)

    def available(self, material_id: Any) -> Decimal:
        """Current stock of a material."""
        return self.store.get(MATERIALS, material_id).stock

    @staticmethod
    def _positive(amount: Any) -> Decimal:
        try:
            value = to_decimal(amount, "amount")
        except InvalidFieldError:
            raise InvalidQuantityError(amount) from None
        if value <= 0:
            raise InvalidQuantityError(amount)
        return value
