"""Read-only selectors over the kernel tables."""

from budget_kernel.selectors.base import BaseSelector
from budget_kernel.selectors.totals_selector import TotalsSelector

__all__ = [
    "BaseSelector",
    "TotalsSelector",
]
