"""
ChangeFeed -- push-based change notifications per collection.

Responsibility:
    Lets display code subscribe to a collection (or one parent's
    sub-collection) and receive the full current result set every time a
    committed transaction touches it.

Architecture position:
    Kernel > Store.  Hooks SQLAlchemy session events on a ``sessionmaker``:

    - ``after_flush``     records (collection, parent_id) for every ORM
                          object inserted, updated or deleted.
    - ``do_orm_execute``  records bulk UPDATE / DELETE statements (ledger
                          increments, cascade deletes).  The parent is
                          unknown, so every parent's subscribers refresh.
    - ``after_commit``    publishes the recorded changes.
    - ``after_rollback``  discards them.

Guarantees:
    - Nothing is published for rolled-back work.
    - Subscribers re-read through a fresh session, so they see committed
      state only.
    - A failing subscriber is logged and does not affect the committing
      transaction or other subscribers.
    - After ``unsubscribe()`` a callback is never invoked again.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from itertools import chain
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session, sessionmaker

from budget_kernel.exceptions import BudgetKernelError
from budget_kernel.logging_config import get_logger
from budget_kernel.store.adapter import EntityStore, as_uuid
from budget_kernel.store.collections import collection_for_model, get_collection

logger = get_logger("store.change_feed")

ChangeKey = tuple[str, UUID | None]

_PENDING_KEY = "budget_kernel.pending_changes"


class Subscription:
    """
    Handle returned by ``ChangeFeed.subscribe``.

    Scoped resource: call ``unsubscribe()`` (or leave the ``with`` block)
    to stop receiving updates.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        collection: str,
        callback: Callable[[list[Any]], None],
        parent_id: UUID | None,
        filter: Mapping[str, Any],
        order_by: str | Sequence[str] | None,
        descending: bool,
    ):
        self.id = uuid4()
        self.collection = collection
        self.callback = callback
        self.parent_id = parent_id
        self.filter = dict(filter)
        self.order_by = order_by
        self.descending = descending
        self.active = True
        self._feed = feed

    def matches(self, changes: Iterable[ChangeKey]) -> bool:
        for collection, parent_id in changes:
            if collection != self.collection:
                continue
            if self.parent_id is None or parent_id is None or parent_id == self.parent_id:
                return True
        return False

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._feed._remove(self)

    close = unsubscribe

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        scope = f" parent={self.parent_id}" if self.parent_id else ""
        return f"<Subscription {self.collection}{scope} active={self.active}>"


class ChangeFeed:
    """
    Publish/subscribe channel bound to one session factory.

    Usage:
        feed = ChangeFeed(get_session_factory())
        feed.attach()
        sub = feed.subscribe("materials", render_material_list)
        ...
        sub.unsubscribe()
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()
        self._attached = False

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self) -> None:
        """Install the session event listeners (idempotent)."""
        if self._attached:
            return
        event.listen(self._session_factory, "after_flush", self._after_flush)
        event.listen(self._session_factory, "do_orm_execute", self._on_orm_execute)
        event.listen(self._session_factory, "after_commit", self._after_commit)
        event.listen(self._session_factory, "after_rollback", self._after_rollback)
        self._attached = True
        logger.debug("change_feed_attached")

    def detach(self) -> None:
        """Remove the listeners and drop every subscription."""
        if self._attached:
            event.remove(self._session_factory, "after_flush", self._after_flush)
            event.remove(self._session_factory, "do_orm_execute", self._on_orm_execute)
            event.remove(self._session_factory, "after_commit", self._after_commit)
            event.remove(self._session_factory, "after_rollback", self._after_rollback)
            self._attached = False
        with self._lock:
            for sub in self._subscriptions:
                sub.active = False
            self._subscriptions.clear()
        logger.debug("change_feed_detached")

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # ------------------------------------------------------------------
    # Subscribe / publish
    # ------------------------------------------------------------------

    def subscribe(
        self,
        collection: str,
        callback: Callable[[list[Any]], None],
        parent_id: Any = None,
        filter: Mapping[str, Any] | None = None,
        order_by: str | Sequence[str] | None = None,
        descending: bool = False,
        emit_initial: bool = True,
    ) -> Subscription:
        """
        Register ``callback`` for ``collection``.

        With ``emit_initial`` the current result set is delivered before
        this method returns; later deliveries follow committed changes.
        """
        spec = get_collection(collection)
        effective_filter = dict(filter or {})
        parent_key = None
        if parent_id is not None:
            if spec.parent_collection is None:
                raise ValueError(f"{collection} is not a sub-collection")
            parent_key = as_uuid(get_collection(spec.parent_collection), parent_id)
            effective_filter[spec.parent_field] = parent_key

        sub = Subscription(
            self,
            collection,
            callback,
            parent_key,
            effective_filter,
            order_by,
            descending,
        )
        with self._lock:
            self._subscriptions.append(sub)
        logger.debug(
            "subscription_added",
            extra={"collection": collection, "parent_id": parent_key, "subscription_id": sub.id},
        )
        if emit_initial:
            self._deliver(sub)
        return sub

    def publish(self, changes: Iterable[ChangeKey]) -> int:
        """Deliver fresh result sets to every subscription touched by ``changes``."""
        changes = set(changes)
        with self._lock:
            targets = [sub for sub in self._subscriptions if sub.matches(changes)]
        delivered = 0
        for sub in targets:
            if sub.active and self._deliver(sub):
                delivered += 1
        logger.debug(
            "changes_published",
            extra={
                "collections": sorted({c for c, _ in changes}),
                "subscribers": delivered,
            },
        )
        return delivered

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)
        logger.debug("subscription_removed", extra={"subscription_id": sub.id})

    def _deliver(self, sub: Subscription) -> bool:
        try:
            with self._session_factory() as session:
                items = list(
                    EntityStore(session).query(
                        sub.collection,
                        filter=sub.filter,
                        order_by=sub.order_by,
                        descending=sub.descending,
                    )
                )
        except BudgetKernelError:
            logger.error(
                "subscription_refresh_failed",
                extra={"collection": sub.collection, "subscription_id": sub.id},
                exc_info=True,
            )
            return False

        if not sub.active:
            return False
        try:
            sub.callback(items)
        except Exception:
            logger.error(
                "subscriber_callback_failed",
                extra={"collection": sub.collection, "subscription_id": sub.id},
                exc_info=True,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Session event handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _pending(session: Session) -> set[ChangeKey]:
        return session.info.setdefault(_PENDING_KEY, set())

    def _after_flush(self, session: Session, flush_context: Any) -> None:
        pending = self._pending(session)
        for obj in chain(session.new, session.dirty, session.deleted):
            spec = collection_for_model(type(obj))
            if spec is not None:
                pending.add((spec.name, spec.parent_of(obj)))

    def _on_orm_execute(self, state: ORMExecuteState) -> None:
        if not (state.is_update or state.is_delete):
            return
        mapper = state.bind_mapper
        if mapper is None:
            return
        spec = collection_for_model(mapper.class_)
        if spec is not None:
            self._pending(state.session).add((spec.name, None))

    def _after_commit(self, session: Session) -> None:
        changes = session.info.pop(_PENDING_KEY, None)
        if changes:
            self.publish(changes)

    def _after_rollback(self, session: Session) -> None:
        session.info.pop(_PENDING_KEY, None)

