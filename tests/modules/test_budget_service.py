"""Tests for BudgetService: the budget registry and the detail view."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from budget_kernel.exceptions import BudgetNotFoundError, InvalidFieldError
from budget_modules.budget.config import BudgetModuleConfig
from budget_modules.budget.models import BudgetDetail


class TestCreateAndList:

    def test_create_budget_defaults(self, budgets, clock):
        budget_id = budgets.create_budget("  Kitchen  ")

        budget = budgets.get_budget(budget_id)
        assert budget.name == "Kitchen"
        assert budget.labor_cost == Decimal("0")
        assert budget.created_at.replace(tzinfo=None) == clock.now().replace(tzinfo=None)

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_name_required(self, budgets, name):
        with pytest.raises(InvalidFieldError) as exc_info:
            budgets.create_budget(name)
        assert exc_info.value.field == "name"
        assert budgets.list_budgets() == []

    def test_list_newest_first(self, budgets, clock):
        budgets.create_budget("January")
        clock.advance(int(timedelta(days=31).total_seconds()))
        budgets.create_budget("February")
        clock.advance(60)
        budgets.create_budget("March")

        assert [b.name for b in budgets.list_budgets()] == ["March", "February", "January"]

    def test_get_unknown_budget(self, budgets):
        with pytest.raises(BudgetNotFoundError):
            budgets.get_budget(uuid4())


class TestUpdates:

    def test_update_labor_cost(self, budgets, budget_id):
        budget = budgets.update_labor_cost(budget_id, "150.50")
        assert budget.labor_cost == Decimal("150.50")
        assert budgets.get_budget(budget_id).labor_cost == Decimal("150.50")

    def test_labor_cost_cannot_be_negative(self, budgets, budget_id):
        with pytest.raises(InvalidFieldError):
            budgets.update_labor_cost(budget_id, Decimal("-1"))
        assert budgets.get_budget(budget_id).labor_cost == Decimal("0")

    def test_labor_cost_must_be_numeric(self, budgets, budget_id):
        with pytest.raises(InvalidFieldError):
            budgets.update_labor_cost(budget_id, "a lot")

    def test_update_labor_cost_of_unknown_budget(self, budgets):
        with pytest.raises(BudgetNotFoundError):
            budgets.update_labor_cost(uuid4(), Decimal("10"))

    def test_rename(self, budgets, budget_id):
        assert budgets.rename_budget(budget_id, "Bathroom").name == "Bathroom"

    def test_rename_to_blank_refused(self, budgets, budget_id):
        with pytest.raises(InvalidFieldError):
            budgets.rename_budget(budget_id, " ")
        assert budgets.get_budget(budget_id).name == "Kitchen remodel"


class TestDeleteAndDetail:

    def test_delete_budget_cascades(self, budgets, manager, budget_id, cement):
        manager.add_line(budget_id, cement, Decimal("5"))

        assert budgets.delete_budget(budget_id) == 1
        assert budgets.list_budgets() == []

    def test_detail_view(self, budgets, manager, catalog, budget_id, cement):
        sand = catalog.add_material("Sand", Decimal("5"), Decimal("10"))
        manager.add_line(budget_id, cement, Decimal("2"))
        manager.add_line(budget_id, sand, Decimal("3"))
        budgets.update_labor_cost(budget_id, Decimal("20"))

        detail = budgets.get_budget_detail(budget_id)

        assert isinstance(detail, BudgetDetail)
        assert detail.budget.id == budget_id
        assert [line.name_snapshot for line in detail.lines] == ["Cement", "Sand"]
        assert detail.totals.materials_subtotal == Decimal("35")
        assert detail.totals.grand_total == Decimal("55")
        assert detail.totals.line_count == 2

    def test_detail_of_unknown_budget(self, budgets):
        with pytest.raises(BudgetNotFoundError):
            budgets.get_budget_detail(uuid4())


class TestBudgetModuleConfig:

    def test_defaults(self):
        config = BudgetModuleConfig.with_defaults()
        assert config.conflict_retries == 3

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            BudgetModuleConfig(conflict_retries=-1)
