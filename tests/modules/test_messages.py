"""Tests for the user-facing error messages."""

from decimal import Decimal
from uuid import uuid4

import pytest

from budget_kernel.exceptions import (
    BudgetNotFoundError,
    EntityNotFoundError,
    InsufficientStockError,
    InvalidFieldError,
    InvalidQuantityError,
    LineNotFoundError,
    MaterialNotFoundError,
    OptimisticLockError,
    StoreUnavailableError,
)
from budget_modules.messages import GENERIC_ERROR, describe_error, format_money


class TestDescribeError:

    def test_insufficient_stock_names_material_and_amounts(self):
        exc = InsufficientStockError(uuid4(), "Cement", Decimal("70.000000000"), Decimal("80"))
        assert describe_error(exc) == (
            "Not enough stock of Cement: requested 80, available 70 (missing 10)."
        )

    def test_invalid_field_names_the_field(self):
        exc = InvalidFieldError("unit_price", "-1", "must be zero or greater")
        assert describe_error(exc) == "Unit price is not valid: must be zero or greater."

    def test_unlabelled_field_uses_raw_name(self):
        exc = InvalidFieldError("colour", "x", "unknown field for materials")
        assert describe_error(exc).startswith("colour is not valid")

    def test_every_error_kind_is_distinguishable(self):
        errors = [
            InsufficientStockError(uuid4(), "Sand", Decimal("1"), Decimal("2")),
            InvalidQuantityError(Decimal("0")),
            InvalidFieldError("name", "", "must not be empty"),
            MaterialNotFoundError(uuid4()),
            LineNotFoundError(uuid4()),
            BudgetNotFoundError(uuid4()),
            EntityNotFoundError("budgets", uuid4()),
            OptimisticLockError("budget_materials", uuid4()),
            StoreUnavailableError("put", "connection refused"),
            RuntimeError("boom"),
        ]
        messages = [describe_error(exc) for exc in errors]
        assert len(set(messages)) == len(messages)
        assert messages[-1] == GENERIC_ERROR

    def test_driver_detail_is_not_shown(self):
        message = describe_error(StoreUnavailableError("put", "password=secret"))
        assert "secret" not in message


class TestFormatMoney:

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (Decimal("0"), "0.00"),
            (Decimal("35"), "35.00"),
            (Decimal("1234.5"), "1,234.50"),
            (Decimal("0.005"), "0.01"),
        ],
    )
    def test_two_decimals(self, value, expected):
        assert format_money(value) == expected
