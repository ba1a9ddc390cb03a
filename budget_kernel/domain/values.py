"""
Values -- immutable domain value objects.

Responsibility:
    ``PricedSnapshot`` is the name and unit price of a material as they were
    when the material was attached to a budget.  It is copied onto the line
    and never refreshed: later catalog edits do not touch existing lines, so
    totals of past budgets stay stable.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import Material


@dataclass(frozen=True, slots=True)
class PricedSnapshot:
    """
    Material display attributes priced at attach time.

    Guarantees:
        - Immutable and hashable.
        - unit_price is a Decimal and never negative.
    """

    name: str
    unit_price: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.unit_price, Decimal):
            raise TypeError(
                f"unit_price must be Decimal, got {type(self.unit_price).__name__}"
            )
        if self.unit_price < 0:
            raise ValueError(f"unit_price cannot be negative: {self.unit_price}")

    @classmethod
    def of(cls, material: Material) -> PricedSnapshot:
        """Capture the current name and price of ``material``."""
        return cls(name=material.name, unit_price=material.unit_price)

    def price_for(self, quantity: Decimal) -> Decimal:
        return self.unit_price * quantity
