"""
TotalsWatcher -- live totals for one budget.

Subscribes to the budget's line sub-collection and to the budget record
itself.  Whenever either changes (after commit) the totals are recomputed
from the freshly delivered lines and labor cost and pushed to the
callback.  Call ``close()`` (or use the watcher as a context manager) to
release both subscriptions.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from budget_kernel.domain.dtos import Budget, BudgetLine
from budget_kernel.domain.totals import BudgetTotals, compute_totals
from budget_kernel.logging_config import get_logger
from budget_kernel.store.adapter import as_uuid
from budget_kernel.store.change_feed import ChangeFeed
from budget_kernel.store.collections import BUDGET_MATERIALS, BUDGETS, get_collection

logger = get_logger("modules.budget.watchers")


class TotalsWatcher:
    """Pushes ``BudgetTotals`` for one budget on every committed change."""

    def __init__(
        self,
        feed: ChangeFeed,
        budget_id: Any,
        on_totals: Callable[[BudgetTotals], None],
    ):
        self.budget_id = as_uuid(get_collection(BUDGETS), budget_id)
        self._on_totals = on_totals
        self._lock = threading.Lock()
        self._lines: list[BudgetLine] | None = None
        self._budget: Budget | None = None
        self._latest: BudgetTotals | None = None
        self._budget_missing = False
        self._closed = False

        self._line_sub = feed.subscribe(
            BUDGET_MATERIALS, self._on_lines, parent_id=self.budget_id,
        )
        self._budget_sub = feed.subscribe(
            BUDGETS, self._on_budgets, filter={"id": self.budget_id},
        )

    @property
    def latest(self) -> BudgetTotals | None:
        """The last totals pushed, or None before the first push."""
        return self._latest

    @property
    def budget_missing(self) -> bool:
        """True once the watched budget has been deleted."""
        return self._budget_missing

    def close(self) -> None:
        self._closed = True
        self._line_sub.unsubscribe()
        self._budget_sub.unsubscribe()

    def __enter__(self) -> TotalsWatcher:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _on_lines(self, lines: list[BudgetLine]) -> None:
        with self._lock:
            self._lines = lines
        self._recompute()

    def _on_budgets(self, budgets: list[Budget]) -> None:
        with self._lock:
            if budgets:
                self._budget = budgets[0]
            else:
                self._budget = None
                self._budget_missing = True
        if not budgets:
            logger.info("watched_budget_deleted", extra={"budget_id": str(self.budget_id)})
        self._recompute()

    def _recompute(self) -> None:
        with self._lock:
            if self._closed or self._lines is None or self._budget is None:
                return
            totals = compute_totals(self._lines, self._budget.labor_cost)
            self._latest = totals
        self._on_totals(totals)
