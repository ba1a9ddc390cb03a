"""Database layer - engine, base classes and column types."""

from budget_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from budget_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from budget_kernel.db.types import round_money, to_decimal

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "round_money",
    "to_decimal",
]
