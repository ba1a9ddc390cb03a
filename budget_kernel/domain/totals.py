"""
Totals -- pure aggregation over a budget's lines.

    materials_subtotal = sum(line.unit_price_snapshot * line.quantity)
    grand_total        = materials_subtotal + labor_cost

Snapshot prices are used, never live catalog prices.  No rounding is applied
here; presentation code rounds for display.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from budget_kernel.domain.dtos import BudgetLine


@dataclass(frozen=True)
class BudgetTotals:
    """Computed projection of a budget.  Owns no state."""

    materials_subtotal: Decimal
    labor_cost: Decimal
    grand_total: Decimal
    line_count: int


def compute_totals(lines: Iterable[BudgetLine], labor_cost: Decimal = Decimal("0")) -> BudgetTotals:
    """Compute subtotal and grand total for ``lines`` plus ``labor_cost``."""
    subtotal = Decimal("0")
    count = 0
    for line in lines:
        subtotal += line.subtotal
        count += 1
    return BudgetTotals(
        materials_subtotal=subtotal,
        labor_cost=labor_cost,
        grand_total=subtotal + labor_cost,
        line_count=count,
    )
