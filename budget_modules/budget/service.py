"""
Budget Module Service (``budget_modules.budget.service``).

Responsibility
--------------
Owns budgets and the per-budget set of material lines.  Every line change
is paired with the matching stock movement in the inventory ledger:

    add_line            reserve(quantity)         then insert line
    remove_line         release(line.quantity)    then delete line
    edit_line_quantity  adjust(new - old)         then update line
    cascade_delete      delete lines and budget   (stock NOT restored)

Architecture position
---------------------
**Modules layer** -- thin glue.  ``BudgetLineManager`` coordinates the
kernel ``InventoryLedger`` with the entity store; ``BudgetService`` is the
registry of budgets and the read facade for the detail view.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary: the stock
  movement and the line write commit together or roll back together.
  A failed add leaves no line and unchanged stock; a failed remove leaves
  the line and its reservation in place.
* Conservation: for every material, stock equals its starting stock minus
  the quantities of live lines referencing it (direct catalog edits and
  cascade deletes excepted).
* Lines carry a priced snapshot captured at attach time; it is never
  refreshed from the catalog.
* Concurrent edits of one line are serialised by the line's version
  column: the loser is rolled back and retried against fresh data.

Failure modes
-------------
* ``InvalidQuantityError``  -- quantity not strictly positive.
* ``BudgetNotFoundError`` / ``MaterialNotFoundError`` /
  ``LineNotFoundError``  -- stale references.
* ``InsufficientStockError``  -- reservation larger than stock; nothing
  is written.
* ``OptimisticLockError``  -- conflict retries exhausted.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.db.types import to_decimal
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.dtos import Budget, BudgetLine
from budget_kernel.domain.totals import compute_totals
from budget_kernel.domain.values import PricedSnapshot
from budget_kernel.exceptions import InvalidFieldError, InvalidQuantityError, LineNotFoundError
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.selectors.totals_selector import TotalsSelector
from budget_kernel.services.inventory_ledger import InventoryLedger
from budget_kernel.store.adapter import EntityRef, EntityStore, as_uuid
from budget_kernel.store.collections import BUDGET_MATERIALS, BUDGETS, get_collection
from budget_modules._service_helpers import (
    clean_name,
    non_negative,
    run_with_conflict_retry,
    transaction,
)
from budget_modules.budget.config import BudgetModuleConfig
from budget_modules.budget.models import BudgetDetail

logger = get_logger("modules.budget.service")


class BudgetLineManager:
    """
    Adds, removes and edits the material lines of a budget.

    Contract
    --------
    * Methods return ids or DTOs and raise typed kernel errors; nothing
      fails silently.
    * One ``BudgetLineManager`` per session; sessions are not shared
      between threads.

    Non-goals
    ---------
    * Does NOT restore stock on cascade delete.
    * Does NOT repair lines whose material was deleted from the catalog.
    """

    def __init__(
        self,
        session: Session,
        config: BudgetModuleConfig | None = None,
        store: EntityStore | None = None,
        ledger: InventoryLedger | None = None,
    ):
        self._session = session
        self._config = config or BudgetModuleConfig.with_defaults()
        self._store = store or EntityStore(session)
        self._ledger = ledger or InventoryLedger(session, self._store)

    # =========================================================================
    # Line operations
    # =========================================================================

    def add_line(self, budget_id: Any, material_id: Any, quantity: Any) -> UUID:
        """
        Attach ``quantity`` of a material to a budget, reserving the stock.

        Returns:
            The new line id.
        """
        quantity = _positive_quantity(quantity)
        with LogContext.bind(budget_id=budget_id, material_id=material_id):
            with transaction(self._session, "add_line"):
                budget = self._store.get(BUDGETS, budget_id)
                material = self._ledger.reserve(material_id, quantity)
                snapshot = PricedSnapshot.of(material)
                line_id = self._store.put(
                    BUDGET_MATERIALS,
                    {
                        "budget_id": budget.id,
                        "material_id": material.id,
                        "quantity": quantity,
                        "name_snapshot": snapshot.name,
                        "unit_price_snapshot": snapshot.unit_price,
                        "position": self._next_position(budget.id),
                    },
                )
            logger.info("line_added", extra={
                "line_id": str(line_id),
                "quantity": quantity,
                "unit_price_snapshot": snapshot.unit_price,
            })
        return line_id

    def remove_line(self, budget_id: Any, line_id: Any) -> BudgetLine:
        """
        Delete a line and give its quantity back to the material's stock.

        Returns:
            The line as it was before removal.
        """

        def work() -> BudgetLine:
            line = self._line(budget_id, line_id)
            self._ledger.release(line.material_id, line.quantity)
            self._store.delete(BUDGET_MATERIALS, line.id)
            return line

        with LogContext.bind(budget_id=budget_id, line_id=line_id):
            line = run_with_conflict_retry(
                self._session,
                "remove_line",
                work,
                self._config.conflict_retries,
            )
            logger.info("line_removed", extra={"quantity": line.quantity})
        return line

    def edit_line_quantity(self, budget_id: Any, line_id: Any, new_quantity: Any) -> BudgetLine:
        """
        Set a line's quantity, moving the difference through the ledger.

        An increase larger than the available stock fails with
        ``InsufficientStockError`` and leaves the line untouched.

        Returns:
            The updated line.
        """
        new_quantity = _positive_quantity(new_quantity)

        def work() -> tuple[BudgetLine, Decimal]:
            line = self._line(budget_id, line_id)
            delta = new_quantity - line.quantity
            self._ledger.adjust(line.material_id, delta)
            self._store.put(
                BUDGET_MATERIALS,
                {"quantity": new_quantity},
                line.id,
                expected_version=line.version,
            )
            return self._store.get(BUDGET_MATERIALS, line.id), delta

        with LogContext.bind(budget_id=budget_id, line_id=line_id):
            line, delta = run_with_conflict_retry(
                self._session,
                "edit_line_quantity",
                work,
                self._config.conflict_retries,
            )
            logger.info("line_quantity_edited", extra={
                "quantity": line.quantity,
                "delta": delta,
            })
        return line

    def cascade_delete_budget(self, budget_id: Any) -> int:
        """
        Delete a budget and all of its lines in one batch.

        Reserved stock is NOT returned to the catalog.

        Returns:
            The number of lines deleted.
        """
        with LogContext.bind(budget_id=budget_id):
            with transaction(self._session, "cascade_delete_budget"):
                budget = self._store.get(BUDGETS, budget_id)
                refs = [
                    EntityRef(BUDGET_MATERIALS, line.id)
                    for line in self._store.query(
                        BUDGET_MATERIALS, filter={"budget_id": budget.id},
                    )
                ]
                line_count = len(refs)
                refs.append(EntityRef(BUDGETS, budget.id))
                self._store.batch_delete(refs)
            logger.info("budget_cascade_deleted", extra={"line_count": line_count})
        return line_count

    # =========================================================================
    # Queries
    # =========================================================================

    def list_lines(self, budget_id: Any) -> list[BudgetLine]:
        """Lines of a budget in the order they were attached."""
        return TotalsSelector(self._session, self._store).lines_for(budget_id)

    def get_line(self, budget_id: Any, line_id: Any) -> BudgetLine:
        return self._line(budget_id, line_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _line(self, budget_id: Any, line_id: Any) -> BudgetLine:
        budget_key = as_uuid(get_collection(BUDGETS), budget_id)
        line = self._store.get(BUDGET_MATERIALS, line_id)
        if line.budget_id != budget_key:
            raise LineNotFoundError(line_id, budget_id)
        return line

    def _next_position(self, budget_id: UUID) -> int:
        last = next(
            self._store.query(
                BUDGET_MATERIALS,
                filter={"budget_id": budget_id},
                order_by="position",
                descending=True,
            ),
            None,
        )
        return 0 if last is None else last.position + 1


class BudgetService:
    """
    Registry of budgets: create, list, rename, labor cost, delete, detail.

    Guarantees
    ----------
    * Creation time comes from the injected ``Clock``.
    * ``delete_budget`` is the cascade delete of ``BudgetLineManager``.
    """

    def __init__(
        self,
        session: Session,
        config: BudgetModuleConfig | None = None,
        clock: Clock | None = None,
        store: EntityStore | None = None,
        line_manager: BudgetLineManager | None = None,
    ):
        self._session = session
        self._config = config or BudgetModuleConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._store = store or EntityStore(session)
        self._lines = line_manager or BudgetLineManager(session, self._config, self._store)

    @property
    def lines(self) -> BudgetLineManager:
        return self._lines

    # =========================================================================
    # Writes
    # =========================================================================

    def create_budget(self, name: str) -> UUID:
        """Create an empty budget with zero labor cost."""
        fields = {
            "name": clean_name(name, max_length=self._config.max_name_length),
            "labor_cost": Decimal("0"),
            "created_at": self._clock.now(),
        }
        with transaction(self._session, "create_budget"):
            budget_id = self._store.put(BUDGETS, fields)
        logger.info("budget_created", extra={
            "budget_id": str(budget_id),
            "budget_name": fields["name"],
        })
        return budget_id

    def update_labor_cost(self, budget_id: Any, labor_cost: Any) -> Budget:
        labor = non_negative(labor_cost, "labor_cost")
        budget = self._update(budget_id, {"labor_cost": labor}, "update_labor_cost")
        logger.info("labor_cost_updated", extra={
            "budget_id": str(budget.id),
            "labor_cost": labor,
        })
        return budget

    def rename_budget(self, budget_id: Any, name: str) -> Budget:
        new_name = clean_name(name, max_length=self._config.max_name_length)
        budget = self._update(budget_id, {"name": new_name}, "rename_budget")
        logger.info("budget_renamed", extra={
            "budget_id": str(budget.id),
            "budget_name": new_name,
        })
        return budget

    def delete_budget(self, budget_id: Any) -> int:
        """Delete a budget with all its lines.  Returns the number of lines removed."""
        return self._lines.cascade_delete_budget(budget_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_budget(self, budget_id: Any) -> Budget:
        return self._store.get(BUDGETS, budget_id)

    def list_budgets(self) -> list[Budget]:
        """All budgets, newest first."""
        return list(self._store.query(BUDGETS, order_by="created_at", descending=True))

    def get_budget_detail(self, budget_id: Any) -> BudgetDetail:
        selector = TotalsSelector(self._session, self._store)
        budget = selector.budget(budget_id)
        lines = tuple(selector.lines_for(budget.id))
        return BudgetDetail(
            budget=budget,
            lines=lines,
            totals=compute_totals(lines, budget.labor_cost),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _update(self, budget_id: Any, fields: dict[str, Any], operation: str) -> Budget:
        with transaction(self._session, operation):
            budget = self._store.get(BUDGETS, budget_id)
            self._store.put(BUDGETS, fields, budget.id)
            return self._store.get(BUDGETS, budget.id)


def _positive_quantity(value: Any) -> Decimal:
    try:
        quantity = to_decimal(value, "quantity")
    except InvalidFieldError:
        raise InvalidQuantityError(value) from None
    if quantity <= 0:
        raise InvalidQuantityError(value)
    return quantity
