"""
Module: budget_kernel.models.material
Responsibility: ORM persistence for catalog materials and their shared stock
    counter.
Architecture position: Kernel > Models.  May import from db/ only (the DTO
    import in ``to_dto`` is a boundary converter).

Invariants enforced:
    - ``stock >= 0`` and ``unit_price >= 0`` (CHECK constraints).
    - ``version`` is the optimistic-lock counter (``version_id_col``).  ORM
      flushes include it in the WHERE clause; the ledger's conditional UPDATE
      bumps it explicitly, so an edit prepared from a stale read of the row
      fails instead of overwriting a reservation.

Failure modes:
    - StaleDataError on a flush against an outdated version (translated to
      OptimisticLockError by the services).
    - IntegrityError if a write would drive stock negative.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase


class MaterialModel(TrackedBase):
    """A catalog material.  Maps to ``budget_kernel.domain.dtos.Material``."""

    __tablename__ = "materials"

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_material_stock_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_material_price_non_negative"),
        Index("idx_material_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from budget_kernel.domain.dtos import Material

        return Material(
            id=self.id,
            name=self.name,
            unit_price=self.unit_price,
            stock=self.stock,
            version=self.version,
        )

    def __repr__(self) -> str:
        return f"<MaterialModel {self.name} stock={self.stock} v{self.version}>"
