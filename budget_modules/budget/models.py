"""
Budget Domain Models (``budget_modules.budget.models``).

Frozen records returned by ``BudgetService`` to display code.  Pure data,
ZERO I/O.
"""

from dataclasses import dataclass

from budget_kernel.domain.dtos import Budget, BudgetLine
from budget_kernel.domain.totals import BudgetTotals


@dataclass(frozen=True)
class BudgetDetail:
    """A budget with its lines (attach order) and computed totals."""

    budget: Budget
    lines: tuple[BudgetLine, ...]
    totals: BudgetTotals
