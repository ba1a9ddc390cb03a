"""Entity store: collection-addressed persistence plus change subscriptions."""

from budget_kernel.store.adapter import EntityRef, EntityStore
from budget_kernel.store.change_feed import ChangeFeed, Subscription
from budget_kernel.store.collections import BUDGET_MATERIALS, BUDGETS, MATERIALS

__all__ = [
    "EntityStore",
    "EntityRef",
    "ChangeFeed",
    "Subscription",
    "MATERIALS",
    "BUDGETS",
    "BUDGET_MATERIALS",
]
