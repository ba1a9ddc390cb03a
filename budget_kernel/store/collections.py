"""
Collection registry for the entity store.

Maps the document-style collection names used by callers onto ORM models.
``budget_materials`` is a sub-collection of ``budgets``: its documents are
scoped by ``budget_id`` and subscriptions can target one parent.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from budget_kernel.db.base import Base
from budget_kernel.exceptions import (
    BudgetNotFoundError,
    EntityNotFoundError,
    LineNotFoundError,
    MaterialNotFoundError,
    UnknownCollectionError,
)
from budget_kernel.models import BudgetMaterialModel, BudgetModel, MaterialModel

MATERIALS = "materials"
BUDGETS = "budgets"
BUDGET_MATERIALS = "budget_materials"


@dataclass(frozen=True)
class CollectionSpec:
    """How one collection is stored."""

    name: str
    model: type[Base]
    not_found: Callable[[Any], EntityNotFoundError]
    default_order: tuple[str, ...]
    parent_field: str | None = None
    parent_collection: str | None = None
    version_field: str | None = None

    @property
    def columns(self) -> frozenset[str]:
        return frozenset(self.model.__table__.columns.keys())

    def parent_of(self, row: Any) -> Any:
        if self.parent_field is None:
            return None
        return getattr(row, self.parent_field)


COLLECTIONS: dict[str, CollectionSpec] = {
    MATERIALS: CollectionSpec(
        name=MATERIALS,
        model=MaterialModel,
        not_found=MaterialNotFoundError,
        default_order=("name",),
        version_field="version",
    ),
    BUDGETS: CollectionSpec(
        name=BUDGETS,
        model=BudgetModel,
        not_found=BudgetNotFoundError,
        default_order=("created_at",),
    ),
    BUDGET_MATERIALS: CollectionSpec(
        name=BUDGET_MATERIALS,
        model=BudgetMaterialModel,
        not_found=LineNotFoundError,
        default_order=("position", "created_at"),
        parent_field="budget_id",
        parent_collection=BUDGETS,
        version_field="version",
    ),
}

_BY_MODEL: dict[type, CollectionSpec] = {spec.model: spec for spec in COLLECTIONS.values()}


def get_collection(name: str) -> CollectionSpec:
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise UnknownCollectionError(name) from None


def collection_for_model(model: type) -> CollectionSpec | None:
    return _BY_MODEL.get(model)
