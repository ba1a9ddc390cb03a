"""
Budget Module (``budget_modules.budget``).

Responsibility
--------------
Budgets (presupuestos), their material lines and labor cost, and the
totals computed from them.

Architecture position
---------------------
**Modules layer** -- a service facade over the kernel ledger and entity
store, plus a watcher that keeps totals live for display code.

Invariants enforced
-------------------
* Line changes and their stock movements share one transaction.
* Totals use the prices captured when each line was attached.
"""

from budget_modules.budget.config import BudgetModuleConfig
from budget_modules.budget.models import BudgetDetail
from budget_modules.budget.service import BudgetLineManager, BudgetService
from budget_modules.budget.watchers import TotalsWatcher

__all__ = [
    "BudgetModuleConfig",
    "BudgetDetail",
    "BudgetLineManager",
    "BudgetService",
    "TotalsWatcher",
]
