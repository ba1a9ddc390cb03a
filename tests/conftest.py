"""
Pytest fixtures for the budget tracker test suite.

Provides:
- An in-memory SQLite database per test, with tables created and a change
  feed attached to the session factory
- Service fixtures wired to one session
- A file-backed database factory for threaded concurrency tests
- Structured log capture
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from budget_kernel.db.engine import build_engine, create_tables
from budget_kernel.domain.clock import DeterministicClock
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from budget_kernel.services.inventory_ledger import InventoryLedger
from budget_kernel.store.adapter import EntityStore
from budget_kernel.store.change_feed import ChangeFeed
from budget_modules.budget.service import BudgetService
from budget_modules.catalog.service import CatalogService


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, manager):
            manager.add_line(...)
            logs = captured_logs()
            assert any(r["message"] == "line_added" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with all tables."""
    eng = build_engine("sqlite://")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def feed(session_factory):
    change_feed = ChangeFeed(session_factory)
    change_feed.attach()
    yield change_feed
    change_feed.detach()


@pytest.fixture
def session(session_factory, feed):
    sess = session_factory()
    yield sess
    sess.close()


@pytest.fixture
def file_db(tmp_path):
    """
    Factory for file-backed databases shared by several threads.

    Returns ``(engine, session_factory)``; every thread must open its own
    session from the factory.
    """
    engines = []

    def _make(name: str = "budget.db"):
        eng = build_engine(f"sqlite:///{tmp_path / name}")
        create_tables(eng)
        engines.append(eng)
        return eng, sessionmaker(bind=eng, expire_on_commit=False)

    yield _make
    for eng in engines:
        eng.dispose()


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def store(session, feed):
    return EntityStore(session, feed)


@pytest.fixture
def ledger(session, store):
    return InventoryLedger(session, store)


@pytest.fixture
def catalog(session, store):
    return CatalogService(session, store=store)


@pytest.fixture
def budgets(session, store, clock):
    return BudgetService(session, clock=clock, store=store)


@pytest.fixture
def manager(budgets):
    return budgets.lines


@pytest.fixture
def cement(catalog):
    """Cement: unit price 10, stock 100."""
    return catalog.add_material("Cement", Decimal("10"), Decimal("100"))


@pytest.fixture
def budget_id(budgets):
    return budgets.create_budget("Kitchen remodel")
