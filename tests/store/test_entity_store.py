"""
Tests for EntityStore: collection CRUD, lazy queries, conditional
increments and batch deletes.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from budget_kernel.domain.dtos import Budget, Material
from budget_kernel.exceptions import (
    BudgetNotFoundError,
    InvalidFieldError,
    LineNotFoundError,
    MaterialNotFoundError,
    OptimisticLockError,
    StoreUnavailableError,
    UnknownCollectionError,
)
from budget_kernel.store.adapter import EntityRef, EntityStore, store_errors
from budget_kernel.store.collections import BUDGET_MATERIALS, BUDGETS, MATERIALS


def _material(store, name="Cement", price="10", stock="100"):
    return store.put(
        MATERIALS, {"name": name, "unit_price": Decimal(price), "stock": Decimal(stock)},
    )


def _line(store, budget_id, material_id, quantity="5", price="10"):
    return store.put(
        BUDGET_MATERIALS,
        {
            "budget_id": budget_id,
            "material_id": material_id,
            "quantity": Decimal(quantity),
            "name_snapshot": "Cement",
            "unit_price_snapshot": Decimal(price),
        },
    )


class TestGetAndPut:

    def test_put_creates_and_get_returns_dto(self, store):
        material_id = _material(store)

        material = store.get(MATERIALS, material_id)
        assert isinstance(material, Material)
        assert material.name == "Cement"
        assert material.unit_price == Decimal("10")
        assert material.stock == Decimal("100")
        assert material.version == 1

    def test_get_accepts_string_ids(self, store):
        material_id = _material(store)
        assert store.get(MATERIALS, str(material_id)).id == material_id

    def test_get_missing_raises_collection_error(self, store):
        with pytest.raises(MaterialNotFoundError):
            store.get(MATERIALS, uuid4())
        with pytest.raises(BudgetNotFoundError):
            store.get(BUDGETS, uuid4())
        with pytest.raises(LineNotFoundError):
            store.get(BUDGET_MATERIALS, uuid4())

    def test_malformed_id_is_not_found(self, store):
        with pytest.raises(MaterialNotFoundError):
            store.get(MATERIALS, "not-a-uuid")

    def test_find_returns_none_for_missing(self, store):
        assert store.find(MATERIALS, uuid4()) is None
        assert store.find(MATERIALS, "garbage") is None

    def test_put_with_id_is_upsert(self, store):
        material_id = uuid4()
        returned = store.put(
            MATERIALS,
            {"name": "Sand", "unit_price": Decimal("3"), "stock": Decimal("10")},
            material_id,
        )
        assert returned == material_id

        store.put(MATERIALS, {"stock": Decimal("7")}, material_id)
        material = store.get(MATERIALS, material_id)
        assert material.name == "Sand"
        assert material.stock == Decimal("7")
        assert material.version == 2

    def test_expected_version_mismatch_is_refused(self, store):
        material_id = _material(store)
        store.put(MATERIALS, {"stock": Decimal("90")}, material_id)

        with pytest.raises(OptimisticLockError):
            store.put(MATERIALS, {"stock": Decimal("80")}, material_id, expected_version=1)
        assert store.get(MATERIALS, material_id).stock == Decimal("90")

    def test_expected_version_match_applies(self, store):
        material_id = _material(store)
        store.put(MATERIALS, {"stock": Decimal("80")}, material_id, expected_version=1)
        assert store.get(MATERIALS, material_id).stock == Decimal("80")

    def test_unknown_collection(self, store):
        with pytest.raises(UnknownCollectionError):
            store.get("invoices", uuid4())

    def test_unknown_field_rejected(self, store):
        with pytest.raises(InvalidFieldError):
            store.put(MATERIALS, {"name": "X", "colour": "red"})

    @pytest.mark.parametrize("field", ["id", "version", "updated_at"])
    def test_managed_fields_rejected(self, store, field):
        with pytest.raises(InvalidFieldError):
            store.put(MATERIALS, {"name": "X", field: None})

    def test_sub_collection_requires_parent(self, store):
        with pytest.raises(InvalidFieldError):
            store.put(
                BUDGET_MATERIALS,
                {
                    "material_id": uuid4(),
                    "quantity": Decimal("1"),
                    "name_snapshot": "X",
                    "unit_price_snapshot": Decimal("1"),
                },
            )

    def test_missing_parent_reported_as_not_found(self, store, session):
        missing_budget = uuid4()
        with pytest.raises(BudgetNotFoundError) as exc_info:
            _line(store, missing_budget, _material(store))
        assert exc_info.value.budget_id == str(missing_budget)
        session.rollback()

    def test_delete(self, store):
        material_id = _material(store)
        store.delete(MATERIALS, material_id)
        assert store.find(MATERIALS, material_id) is None

    def test_delete_missing_raises(self, store):
        with pytest.raises(MaterialNotFoundError):
            store.delete(MATERIALS, uuid4())


class TestQuery:

    def test_default_order_for_materials_is_name(self, store):
        for name in ("Sand", "Brick", "Cement"):
            _material(store, name=name)

        assert [m.name for m in store.query(MATERIALS)] == ["Brick", "Cement", "Sand"]

    def test_descending_order(self, store):
        for name in ("Sand", "Brick", "Cement"):
            _material(store, name=name)

        names = [m.name for m in store.query(MATERIALS, order_by="name", descending=True)]
        assert names == ["Sand", "Cement", "Brick"]

    def test_equality_and_membership_filters(self, store):
        cement = _material(store, name="Cement")
        sand = _material(store, name="Sand")
        _material(store, name="Brick")

        assert [m.id for m in store.query(MATERIALS, filter={"name": "Sand"})] == [sand]
        found = {m.id for m in store.query(MATERIALS, filter={"id": [cement, sand]})}
        assert found == {cement, sand}

    def test_query_is_lazy_and_single_pass(self, store):
        _material(store, name="Cement")
        result = store.query(MATERIALS)

        assert iter(result) is result
        assert len(list(result)) == 1
        assert list(result) == []

    def test_sub_collection_scoped_by_parent(self, store):
        material_id = _material(store)
        kitchen = store.put(BUDGETS, {"name": "Kitchen"})
        bathroom = store.put(BUDGETS, {"name": "Bathroom"})
        _line(store, kitchen, material_id)
        _line(store, kitchen, material_id)
        _line(store, bathroom, material_id)

        lines = list(store.query(BUDGET_MATERIALS, filter={"budget_id": kitchen}))
        assert len(lines) == 2
        assert {line.budget_id for line in lines} == {kitchen}

    def test_unknown_filter_field(self, store):
        with pytest.raises(InvalidFieldError):
            list(store.query(MATERIALS, filter={"colour": "red"}))

    def test_budget_dto(self, store):
        budget_id = store.put(BUDGETS, {"name": "Kitchen"})
        budget = store.get(BUDGETS, budget_id)
        assert isinstance(budget, Budget)
        assert budget.labor_cost == Decimal("0")
        assert budget.created_at is not None


class TestIncrement:

    def test_increment_applies_and_bumps_version(self, store):
        material_id = _material(store)

        assert store.increment(MATERIALS, material_id, "stock", Decimal("-30"), minimum=Decimal("0"))
        material = store.get(MATERIALS, material_id)
        assert material.stock == Decimal("70")
        assert material.version == 2

    def test_guard_refuses_without_writing(self, store):
        material_id = _material(store, stock="20")

        applied = store.increment(
            MATERIALS, material_id, "stock", Decimal("-21"), minimum=Decimal("0"),
        )
        assert applied is False
        material = store.get(MATERIALS, material_id)
        assert material.stock == Decimal("20")
        assert material.version == 1

    def test_guard_allows_reaching_exactly_the_minimum(self, store):
        material_id = _material(store, stock="20")
        assert store.increment(MATERIALS, material_id, "stock", Decimal("-20"), minimum=Decimal("0"))
        assert store.get(MATERIALS, material_id).stock == Decimal("0")

    def test_missing_row_returns_false(self, store):
        assert store.increment(MATERIALS, uuid4(), "stock", Decimal("5")) is False

    def test_increment_refreshes_cached_reads(self, store):
        material_id = _material(store)
        store.get(MATERIALS, material_id)  # loads the row into the session

        store.increment(MATERIALS, material_id, "stock", Decimal("5"))
        assert store.get(MATERIALS, material_id).stock == Decimal("105")

    def test_stale_orm_write_after_increment_is_refused(self, store):
        material_id = _material(store)
        store.increment(MATERIALS, material_id, "stock", Decimal("-10"), minimum=Decimal("0"))

        with pytest.raises(OptimisticLockError):
            store.put(MATERIALS, {"stock": Decimal("100")}, material_id, expected_version=1)


class TestBatchDelete:

    def test_deletes_across_collections(self, store):
        material_id = _material(store)
        budget_id = store.put(BUDGETS, {"name": "Kitchen"})
        first = _line(store, budget_id, material_id)
        second = _line(store, budget_id, material_id)

        deleted = store.batch_delete([
            EntityRef(BUDGET_MATERIALS, first),
            EntityRef(BUDGET_MATERIALS, second),
            EntityRef(BUDGETS, budget_id),
        ])

        assert deleted == 3
        assert store.find(BUDGETS, budget_id) is None
        assert store.find(BUDGET_MATERIALS, first) is None
        assert store.find(MATERIALS, material_id) is not None

    def test_missing_refs_are_skipped(self, store):
        material_id = _material(store)
        deleted = store.batch_delete([
            EntityRef(MATERIALS, material_id),
            EntityRef(MATERIALS, uuid4()),
        ])
        assert deleted == 1


class TestErrorTranslation:

    def test_driver_failure_becomes_store_unavailable(self):
        with pytest.raises(StoreUnavailableError) as exc_info:
            with store_errors("get", MATERIALS):
                raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))
        assert exc_info.value.operation == "get"
        assert "disk I/O error" in exc_info.value.detail

    def test_subscribe_without_feed(self, session):
        with pytest.raises(RuntimeError):
            EntityStore(session).subscribe(MATERIALS, lambda items: None)
