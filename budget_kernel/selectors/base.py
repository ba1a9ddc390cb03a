"""
Module: budget_kernel.selectors.base
Responsibility: Abstract base class for read-only selectors.  Selectors are
    the query side of the kernel: they read through the entity store and
    return DTOs or computed projections, never ORM instances.
Architecture position: Kernel > Selectors.  May import from store/ and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - Session ownership: the caller owns the session and its transaction
      scope, so a selector sees the caller's uncommitted writes.
"""

from abc import ABC

from sqlalchemy.orm import Session

from budget_kernel.store.adapter import EntityStore


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Non-goals:
        - BaseSelector does NOT define any query methods; subclasses
          implement the projections.
    """

    def __init__(self, session: Session, store: EntityStore | None = None):
        self.session = session
        self.store = store or EntityStore(session)
