"""
Material Catalog Service (``budget_modules.catalog.service``).

Responsibility
--------------
CRUD over catalog materials with field validation.  Stock is normally
moved by the inventory ledger when budget lines change; ``update_material``
may also set it directly (a stock count correction).

Architecture position
---------------------
**Modules layer**.  Writes through ``budget_kernel.store.EntityStore``.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary
  (``commit`` on success, ``rollback`` on failure or exception).
* name is stripped and non-empty; unit_price >= 0 (> 0 when
  ``allow_zero_price`` is off); stock >= 0.
* An update carrying ``expected_version`` is refused when the material
  changed since that version was read, so a stale form cannot overwrite a
  reservation made in between.

Failure modes
-------------
* ``InvalidFieldError``, ``MaterialNotFoundError``, ``OptimisticLockError``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.dtos import Material
from budget_kernel.exceptions import InvalidFieldError
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.store.adapter import EntityStore
from budget_kernel.store.collections import MATERIALS
from budget_modules._service_helpers import clean_name, non_negative, transaction
from budget_modules.catalog.config import CatalogConfig

logger = get_logger("modules.catalog.service")


class CatalogService:
    """
    Material catalog facade.

    Contract
    --------
    * Write methods return the material id or nothing, and raise typed
      kernel errors on failure.
    * Reads return frozen ``Material`` DTOs.
    """

    def __init__(
        self,
        session: Session,
        config: CatalogConfig | None = None,
        store: EntityStore | None = None,
    ):
        self._session = session
        self._config = config or CatalogConfig.with_defaults()
        self._store = store or EntityStore(session)

    # =========================================================================
    # Writes
    # =========================================================================

    def add_material(self, name: str, unit_price: Any, stock: Any = Decimal("0")) -> UUID:
        """Add a material to the catalog and return its id."""
        fields = {
            "name": clean_name(name, max_length=self._config.max_name_length),
            "unit_price": self._price(unit_price),
            "stock": non_negative(stock, "stock"),
        }
        with transaction(self._session, "add_material"):
            material_id = self._store.put(MATERIALS, fields)
        logger.info("material_added", extra={
            "material_id": str(material_id),
            "material_name": fields["name"],
            "unit_price": fields["unit_price"],
            "stock": fields["stock"],
        })
        return material_id

    def update_material(
        self,
        material_id: Any,
        *,
        name: str | None = None,
        unit_price: Any = None,
        stock: Any = None,
        expected_version: int | None = None,
    ) -> Material:
        """
        Change any of name, unit_price and stock.

        Prices already captured on budget lines are not touched.
        """
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = clean_name(name, max_length=self._config.max_name_length)
        if unit_price is not None:
            fields["unit_price"] = self._price(unit_price)
        if stock is not None:
            fields["stock"] = non_negative(stock, "stock")

        with LogContext.bind(material_id=material_id):
            with transaction(self._session, "update_material"):
                # Existence check first: put() would create a missing id
                self._store.get(MATERIALS, material_id)
                if fields:
                    self._store.put(
                        MATERIALS, fields, material_id, expected_version=expected_version,
                    )
                material = self._store.get(MATERIALS, material_id)
            logger.info("material_updated", extra={"fields": sorted(fields)})
        return material

    def delete_material(self, material_id: Any) -> None:
        """
        Remove a material from the catalog.

        Budget lines that reference it stay in place with their snapshot.
        """
        with LogContext.bind(material_id=material_id):
            with transaction(self._session, "delete_material"):
                self._store.delete(MATERIALS, material_id)
            logger.info("material_deleted")

    # =========================================================================
    # Reads
    # =========================================================================

    def get_material(self, material_id: Any) -> Material:
        return self._store.get(MATERIALS, material_id)

    def list_materials(self) -> list[Material]:
        """All materials ordered by name."""
        return list(self._store.query(MATERIALS, order_by="name"))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _price(self, value: Any) -> Decimal:
        price = non_negative(value, "unit_price")
        if price == 0 and not self._config.allow_zero_price:
            raise InvalidFieldError("unit_price", value, "must be greater than zero")
        return price
