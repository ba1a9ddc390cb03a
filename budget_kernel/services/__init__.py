"""Kernel services: write-side operations that flush but never commit."""

from budget_kernel.services.base import BaseService
from budget_kernel.services.inventory_ledger import InventoryLedger

__all__ = [
    "BaseService",
    "InventoryLedger",
]
