"""
DTOs -- pure domain data transfer objects.

Responsibility:
    The immutable records handed out by the entity store and the services:
    ``Material``, ``Budget`` and ``BudgetLine``.  Callers never receive ORM
    instances, so nothing outside a service can write through a stale object.

Architecture position:
    Kernel > Domain -- zero I/O.  ORM models convert themselves with
    ``to_dto()`` at the persistence boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from budget_kernel.domain.values import PricedSnapshot


@dataclass(frozen=True)
class Material:
    """A catalog item with unit price and available stock."""

    id: UUID
    name: str
    unit_price: Decimal
    stock: Decimal
    version: int = 1


@dataclass(frozen=True)
class Budget:
    """A named cost estimate (presupuesto)."""

    id: UUID
    name: str
    created_at: datetime
    labor_cost: Decimal = Decimal("0")


@dataclass(frozen=True)
class BudgetLine:
    """A quantity of a material attached to a budget."""

    id: UUID
    budget_id: UUID
    material_id: UUID
    quantity: Decimal
    snapshot: PricedSnapshot
    position: int = 0
    version: int = 1

    @property
    def name_snapshot(self) -> str:
        return self.snapshot.name

    @property
    def unit_price_snapshot(self) -> Decimal:
        return self.snapshot.unit_price

    @property
    def subtotal(self) -> Decimal:
        return self.snapshot.price_for(self.quantity)
