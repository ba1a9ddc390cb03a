"""
Shared helpers for module services.

Used by budget_modules/*/service.py to own the transaction boundary: every
public service method commits on success and rolls back on failure, and
line edits retry after an optimistic-lock conflict.

Architecture: Modules layer.  Imports only from budget_kernel.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from budget_kernel.db.types import to_decimal
from budget_kernel.exceptions import InvalidFieldError, OptimisticLockError
from budget_kernel.logging_config import get_logger
from budget_kernel.store.adapter import store_errors

logger = get_logger("modules.transaction")

T = TypeVar("T")


@contextmanager
def transaction(session: Session, operation: str) -> Generator[None, None, None]:
    """
    Commit on normal exit; roll back and re-raise on any exception.

    Failures while committing (stale versions, driver errors) are translated
    into kernel exceptions like any other store failure.
    """
    try:
        yield
        with store_errors(f"{operation}.commit"):
            session.commit()
    except Exception:
        session.rollback()
        logger.warning(
            "transaction_rolled_back",
            extra={"operation": operation},
            exc_info=True,
        )
        raise


def run_with_conflict_retry(
    session: Session,
    operation: str,
    work: Callable[[], T],
    retries: int,
    **log_fields: Any,
) -> T:
    """
    Run ``work`` in its own transaction, retrying on OptimisticLockError.

    ``work`` must re-read everything it needs on every call: a retry starts
    from a rolled-back session, so deltas are recomputed against the row as
    the winning transaction left it.  After ``retries`` failed retries the
    conflict is raised to the caller.
    """
    attempt = 0
    while True:
        # Drop identity-map state carried over from earlier transactions
        session.expire_all()
        try:
            with transaction(session, operation):
                return work()
        except OptimisticLockError:
            if attempt >= retries:
                logger.error(
                    "conflict_retries_exhausted",
                    extra={"operation": operation, "attempts": attempt + 1, **log_fields},
                )
                raise
            attempt += 1
            logger.info(
                "conflict_retry",
                extra={"operation": operation, "attempt": attempt, **log_fields},
            )


def clean_name(value: Any, field: str = "name", max_length: int = 255) -> str:
    """Strip a display name; it must be a non-empty string."""
    if not isinstance(value, str):
        raise InvalidFieldError(field, value, "must be text")
    name = value.strip()
    if not name:
        raise InvalidFieldError(field, value, "must not be empty")
    if len(name) > max_length:
        raise InvalidFieldError(field, value, f"must be at most {max_length} characters")
    return name


def non_negative(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise InvalidFieldError(field, value, "must be zero or greater")
    return amount
