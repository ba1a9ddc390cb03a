"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service in the kernel layer.  Services receive a
    SQLAlchemy ``Session`` and persist through ``session.flush()`` --
    never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  The modules-layer service
    (or the test harness) owns commit/rollback, so a reservation and the
    line it pays for land or vanish together.

Failure modes:
    - If a subclass calls ``session.commit()``, a failure after a stock
      reservation would leave stock decremented with no line to show for it.
"""

from __future__ import annotations

from abc import ABC

from sqlalchemy.orm import Session

from budget_kernel.store.adapter import EntityStore


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller (and optionally an
        ``EntityStore`` already bound to it) and writes through the store.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read projections -- those belong in
          ``budget_kernel/selectors/``.
    """

    def __init__(self, session: Session, store: EntityStore | None = None):
        self.session = session
        self.store = store or EntityStore(session)
