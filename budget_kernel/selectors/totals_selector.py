"""
Module: budget_kernel.selectors.totals_selector
Responsibility: Read a budget's lines and labor cost and compute its totals.
    Totals are never stored; they are recomputed from snapshot prices on
    every read.
Architecture position: Kernel > Selectors.

Failure modes:
    - BudgetNotFoundError if the budget does not exist.
"""

from typing import Any

from budget_kernel.domain.dtos import Budget, BudgetLine
from budget_kernel.domain.totals import BudgetTotals, compute_totals
from budget_kernel.selectors.base import BaseSelector
from budget_kernel.store.collections import BUDGET_MATERIALS, BUDGETS


class TotalsSelector(BaseSelector):
    """Budget totals projection."""

    def budget(self, budget_id: Any) -> Budget:
        return self.store.get(BUDGETS, budget_id)

    def lines_for(self, budget_id: Any) -> list[BudgetLine]:
        """Lines of a budget in attach order."""
        budget = self.budget(budget_id)
        return list(self.store.query(BUDGET_MATERIALS, filter={"budget_id": budget.id}))

    def totals_for(self, budget_id: Any) -> BudgetTotals:
        budget = self.budget(budget_id)
        lines = self.store.query(BUDGET_MATERIALS, filter={"budget_id": budget.id})
        return compute_totals(lines, budget.labor_cost)
