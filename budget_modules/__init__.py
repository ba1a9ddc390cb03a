"""
Budget Modules.

Thin orchestration layers over the budget kernel.  Each module contains:
- Domain models (the nouns returned to callers)
- Configuration schemas (settings with validation)
- A service facade that owns the transaction boundary

Modules:
- Catalog: materials, unit prices and stock levels
- Budget: budgets, their material lines, labor cost and totals

Stock accounting lives in ``budget_kernel.services.inventory_ledger``.
"""

from budget_modules import budget, catalog

__all__ = [
    "budget",
    "catalog",
]
