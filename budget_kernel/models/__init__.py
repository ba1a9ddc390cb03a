"""ORM models for the budget kernel."""

from budget_kernel.models.budget import BudgetMaterialModel, BudgetModel
from budget_kernel.models.material import MaterialModel

__all__ = [
    "MaterialModel",
    "BudgetModel",
    "BudgetMaterialModel",
]
