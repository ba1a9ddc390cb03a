"""
Module: budget_kernel.models.budget
Responsibility: ORM persistence for budgets and their material lines.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A line belongs to exactly one budget (FK ``budget_id``).  A line
      references its material by id only; there is no FK, so deleting a
      material leaves the line in place.
    - ``quantity > 0`` and ``labor_cost >= 0`` (CHECK constraints).
    - ``name_snapshot`` / ``unit_price_snapshot`` are written once at attach
      time and never updated.
    - Lines carry a ``version`` counter so two concurrent quantity edits
      cannot both apply a delta computed from the same old quantity.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase


class BudgetModel(TrackedBase):
    """A budget header.  Maps to ``budget_kernel.domain.dtos.Budget``."""

    __tablename__ = "budgets"

    __table_args__ = (
        CheckConstraint("labor_cost >= 0", name="ck_budget_labor_non_negative"),
        Index("idx_budget_created_at", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    labor_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def to_dto(self):
        from budget_kernel.domain.dtos import Budget

        return Budget(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            labor_cost=self.labor_cost,
        )

    def __repr__(self) -> str:
        return f"<BudgetModel {self.name} labor={self.labor_cost}>"


class BudgetMaterialModel(TrackedBase):
    """A material line of a budget.  Maps to ``budget_kernel.domain.dtos.BudgetLine``."""

    __tablename__ = "budget_materials"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_budget_material_quantity_positive"),
        Index("idx_budget_material_budget", "budget_id", "position"),
        Index("idx_budget_material_material", "material_id"),
    )

    budget_id: Mapped[UUID] = mapped_column(
        ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False,
    )
    # Lookup-only reference (no FK)
    material_id: Mapped[UUID] = mapped_column(nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    name_snapshot: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_price_snapshot: Mapped[Decimal] = mapped_column(nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from budget_kernel.domain.dtos import BudgetLine
        from budget_kernel.domain.values import PricedSnapshot

        return BudgetLine(
            id=self.id,
            budget_id=self.budget_id,
            material_id=self.material_id,
            quantity=self.quantity,
            snapshot=PricedSnapshot(
                name=self.name_snapshot,
                unit_price=self.unit_price_snapshot,
            ),
            position=self.position,
            version=self.version,
        )

    def __repr__(self) -> str:
        return f"<BudgetMaterialModel {self.name_snapshot} x{self.quantity}>"
