"""
Property-based tests for stock conservation.

Random sequences of add / edit / remove line operations are replayed
against a fresh database.  After every step:

- stock never goes below zero;
- stock + the quantities of all live lines equals the starting stock;
- the budget's subtotal equals the sum of snapshot price * quantity.

Each example builds its own in-memory engine; hypothesis re-runs the body
many times and function-scoped fixtures would be shared between runs.
"""

from decimal import Decimal
from uuid import uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy.orm import sessionmaker

from budget_kernel.db.engine import build_engine, create_tables
from budget_kernel.domain.dtos import BudgetLine
from budget_kernel.domain.totals import compute_totals
from budget_kernel.domain.values import PricedSnapshot
from budget_kernel.exceptions import InsufficientStockError
from budget_modules.budget.service import BudgetService
from budget_modules.catalog.service import CatalogService

INITIAL_STOCK = Decimal("50")

quantities = st.integers(min_value=1, max_value=30).map(Decimal)

operations = st.tuples(
    st.sampled_from(["add", "edit", "remove"]),
    quantities,
    st.integers(min_value=0, max_value=100),
)


@settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(ops=st.lists(operations, max_size=15))
def test_stock_plus_reserved_is_constant(ops):
    engine = build_engine("sqlite://")
    create_tables(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    try:
        with Session() as session:
            catalog = CatalogService(session)
            budgets = BudgetService(session)
            manager = budgets.lines

            material_id = catalog.add_material("Cement", Decimal("10"), INITIAL_STOCK)
            budget_id = budgets.create_budget("Kitchen")
            live = []

            for kind, quantity, pick in ops:
                try:
                    if kind == "add":
                        live.append(manager.add_line(budget_id, material_id, quantity))
                    elif kind == "edit" and live:
                        manager.edit_line_quantity(budget_id, live[pick % len(live)], quantity)
                    elif kind == "remove" and live:
                        manager.remove_line(budget_id, live.pop(pick % len(live)))
                except InsufficientStockError:
                    pass

                stock = catalog.get_material(material_id).stock
                lines = manager.list_lines(budget_id)
                reserved = sum((line.quantity for line in lines), Decimal("0"))

                assert stock >= 0
                assert stock + reserved == INITIAL_STOCK
                assert len(lines) == len(live)
                assert compute_totals(lines).materials_subtotal == reserved * Decimal("10")
    finally:
        engine.dispose()


line_amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
)


@given(labor=line_amounts, amounts=st.lists(line_amounts, max_size=10))
def test_grand_total_is_subtotal_plus_labor(labor, amounts):
    budget_id = uuid4()
    lines = [
        BudgetLine(
            id=uuid4(),
            budget_id=budget_id,
            material_id=uuid4(),
            quantity=Decimal("1"),
            snapshot=PricedSnapshot(name="Item", unit_price=amount),
        )
        for amount in amounts
    ]

    totals = compute_totals(lines, labor)

    assert totals.materials_subtotal == sum(amounts, Decimal("0"))
    assert totals.grand_total == totals.materials_subtotal + labor
    assert totals.line_count == len(amounts)
