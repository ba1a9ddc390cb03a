"""
EntityStore -- document-style CRUD, query and subscription over SQLAlchemy.

Responsibility:
    The thin storage contract the ledger and the services talk to.
    Collections (``materials``, ``budgets``, ``budget_materials``) are
    addressed by name; documents come back as frozen DTOs.

Architecture position:
    Kernel > Store.  Works inside the caller's session and transaction:
    writes are flushed, never committed.

Contract:
    get(collection, id)                          -> DTO or *NotFoundError
    put(collection, fields, id=None)             -> id   (create or upsert)
    delete(collection, id)                       -> None
    query(collection, filter, order_by, desc)    -> lazy iterator of DTOs
    increment(collection, id, field, delta, min) -> bool (conditional write)
    batch_delete(refs)                           -> number of rows deleted
    subscribe(collection, callback, parent_id)   -> Subscription

Failure modes:
    - UnknownCollectionError / InvalidFieldError on bad names.
    - *NotFoundError from get/delete on missing ids.
    - OptimisticLockError when a flush hits a row whose version moved.
    - StoreUnavailableError for driver and connection failures.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Generator
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from budget_kernel.exceptions import (
    EntityNotFoundError,
    InvalidFieldError,
    OptimisticLockError,
    StoreUnavailableError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.store.collections import CollectionSpec, get_collection

if TYPE_CHECKING:
    from budget_kernel.store.change_feed import ChangeFeed, Subscription

logger = get_logger("store.adapter")

_RESERVED_FIELDS = frozenset({"id", "updated_at"})


@dataclass(frozen=True)
class EntityRef:
    """Address of one document: collection name plus id."""

    collection: str
    id: UUID


@contextmanager
def store_errors(
    operation: str,
    collection: str | None = None,
    entity_id: Any = None,
) -> Generator[None, None, None]:
    """Translate SQLAlchemy failures into kernel exceptions."""
    try:
        yield
    except StaleDataError as exc:
        raise OptimisticLockError(collection or "entity", entity_id) from exc
    except IntegrityError:
        raise
    except DBAPIError as exc:
        logger.error(
            "store_operation_failed",
            extra={"operation": operation, "collection": collection},
            exc_info=True,
        )
        raise StoreUnavailableError(operation, str(exc.orig or exc)) from exc


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    # sqlite: "FOREIGN KEY constraint failed"; postgres: "violates foreign key constraint"
    return "foreign key" in str(exc.orig or exc).lower()


def as_uuid(spec: CollectionSpec, entity_id: Any) -> UUID:
    """Normalise an id; malformed ids are reported as not found."""
    if isinstance(entity_id, UUID):
        return entity_id
    try:
        return UUID(str(entity_id))
    except ValueError:
        raise spec.not_found(entity_id) from None


class EntityStore:
    """
    Collection-addressed access to the kernel tables.

    Contract:
        Accepts the caller's ``Session``; every write is flushed so later
        reads in the same transaction see it.  Commit and rollback belong to
        the caller.

    Non-goals:
        - Does NOT validate business rules (non-negative prices, positive
          quantities); services do that before calling.
    """

    def __init__(self, session: Session, feed: ChangeFeed | None = None):
        self.session = session
        self._feed = feed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str, entity_id: Any) -> Any:
        """Return the document as a DTO or raise the collection's NotFound error."""
        spec = get_collection(collection)
        row = self._load(spec, as_uuid(spec, entity_id))
        if row is None:
            raise spec.not_found(entity_id)
        return row.to_dto()

    def find(self, collection: str, entity_id: Any) -> Any | None:
        """Like ``get`` but returns None for missing documents."""
        spec = get_collection(collection)
        try:
            key = as_uuid(spec, entity_id)
        except EntityNotFoundError:
            return None
        row = self._load(spec, key)
        return row.to_dto() if row is not None else None

    def query(
        self,
        collection: str,
        filter: Mapping[str, Any] | None = None,
        order_by: str | Sequence[str] | None = None,
        descending: bool = False,
    ) -> Iterator[Any]:
        """
        Stream the documents of ``collection`` as DTOs.

        ``filter`` maps field names to a value (equality) or to a list /
        tuple / set of values (membership).  The iterator is lazy and can
        be consumed once.
        """
        spec = get_collection(collection)
        stmt = self._select(spec, filter, order_by, descending)
        with store_errors("query", collection):
            result = self.session.scalars(stmt)
        return self._iter_dtos(result, collection)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(
        self,
        collection: str,
        fields: Mapping[str, Any],
        entity_id: Any = None,
        expected_version: int | None = None,
    ) -> UUID:
        """
        Create a document, or update it if ``entity_id`` already exists.

        Args:
            collection: Collection name.
            fields: Column values to write.
            entity_id: Optional id; a new uuid4 is generated when omitted.
            expected_version: When given, the update is refused with
                OptimisticLockError unless the stored version matches.

        Returns:
            The document id.
        """
        spec = get_collection(collection)
        self._check_fields(spec, fields, writing=True)
        key = as_uuid(spec, entity_id) if entity_id is not None else None

        try:
            row, created = self._write(spec, fields, key, expected_version)
        except IntegrityError as exc:
            parent_id = fields.get(spec.parent_field) if spec.parent_field else None
            if parent_id is not None and _is_foreign_key_violation(exc):
                # Parent deleted between the caller's read and this insert
                raise get_collection(spec.parent_collection).not_found(parent_id) from exc
            raise

        logger.debug(
            "document_written",
            extra={"collection": collection, "id": str(row.id), "inserted": created},
        )
        return row.id

    def _write(
        self,
        spec: CollectionSpec,
        fields: Mapping[str, Any],
        key: UUID | None,
        expected_version: int | None,
    ):
        collection = spec.name
        with store_errors("put", collection, key):
            row = self._load(spec, key, refresh=expected_version is not None)
            if row is None:
                if spec.parent_field and fields.get(spec.parent_field) is None:
                    raise InvalidFieldError(
                        spec.parent_field, None, "required for sub-collection documents",
                    )
                row = spec.model(**fields)
                if key is not None:
                    row.id = key
                self.session.add(row)
                created = True
            else:
                if (
                    expected_version is not None
                    and spec.version_field is not None
                    and getattr(row, spec.version_field) != expected_version
                ):
                    raise OptimisticLockError(collection, key)
                for name, value in fields.items():
                    setattr(row, name, value)
                created = False
            self.session.flush()
        return row, created

    def delete(self, collection: str, entity_id: Any) -> None:
        """Delete one document.  Raises the collection's NotFound error if absent."""
        spec = get_collection(collection)
        key = as_uuid(spec, entity_id)
        with store_errors("delete", collection, key):
            row = self._load(spec, key)
            if row is None:
                raise spec.not_found(entity_id)
            self.session.delete(row)
            self.session.flush()
        logger.debug("document_deleted", extra={"collection": collection, "id": str(key)})

    def increment(
        self,
        collection: str,
        entity_id: Any,
        field: str,
        delta: Decimal,
        minimum: Decimal | None = None,
    ) -> bool:
        """
        Atomically add ``delta`` to a numeric field.

        Runs as a single conditional UPDATE, so concurrent increments can
        never read a stale value.  When ``minimum`` is given, the update only
        applies if the resulting value would be ``>= minimum``.  Bumps the
        document version so stale ORM writes of the same row are refused.

        Returns:
            True if the row was updated; False if it does not exist or the
            guard rejected the change.  Callers distinguish the two by
            reading the document.
        """
        spec = get_collection(collection)
        self._check_fields(spec, {field: delta}, writing=True)
        key = as_uuid(spec, entity_id)
        model = spec.model
        column = getattr(model, field)

        stmt = update(model).where(model.id == key)
        if minimum is not None:
            stmt = stmt.where(column + delta >= minimum)
        values: dict[str, Any] = {field: column + delta}
        if spec.version_field is not None:
            values[spec.version_field] = getattr(model, spec.version_field) + 1
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        with store_errors("increment", collection, key):
            result = self.session.execute(stmt)
        self._expire_cached(spec, key)
        applied = result.rowcount == 1
        logger.debug(
            "document_incremented",
            extra={
                "collection": collection,
                "id": str(key),
                "field": field,
                "delta": delta,
                "applied": applied,
            },
        )
        return applied

    def batch_delete(self, refs: Iterable[EntityRef]) -> int:
        """
        Delete many documents, one statement per collection.

        Missing documents are skipped.  Returns the number of rows deleted.
        """
        grouped: dict[str, list[UUID]] = defaultdict(list)
        for ref in refs:
            spec = get_collection(ref.collection)
            grouped[ref.collection].append(as_uuid(spec, ref.id))

        deleted = 0
        for collection, ids in grouped.items():
            spec = get_collection(collection)
            stmt = (
                delete(spec.model)
                .where(spec.model.id.in_(ids))
                .execution_options(synchronize_session=False)
            )
            with store_errors("batch_delete", collection):
                result = self.session.execute(stmt)
            deleted += result.rowcount
            for key in ids:
                self._forget_cached(spec, key)
        logger.debug(
            "documents_batch_deleted",
            extra={"collections": sorted(grouped), "count": deleted},
        )
        return deleted

    # ------------------------------------------------------------------
    # Subscriptions
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
        Register ``callback`` for the full result set of a collection.

        ``parent_id`` scopes a sub-collection to one parent.  The callback
        receives a list of DTOs after every committed change that touches
        the collection.  Call ``unsubscribe()`` on the returned handle (or
        use it as a context manager) to stop delivery.
        """
        if self._feed is None:
            raise RuntimeError("EntityStore has no ChangeFeed attached")
        return self._feed.subscribe(
            collection,
            callback,
            parent_id=parent_id,
            filter=filter,
            order_by=order_by,
            descending=descending,
            emit_initial=emit_initial,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, spec: CollectionSpec, key: UUID | None, refresh: bool = False):
        if key is None:
            return None
        with store_errors("get", spec.name, key):
            return self.session.get(spec.model, key, populate_existing=refresh)

    def _select(
        self,
        spec: CollectionSpec,
        filter: Mapping[str, Any] | None,
        order_by: str | Sequence[str] | None,
        descending: bool,
    ):
        model = spec.model
        stmt = select(model)
        for name, value in (filter or {}).items():
            self._check_fields(spec, {name: value})
            column = getattr(model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)

        if order_by is None:
            order_fields: Sequence[str] = spec.default_order
        elif isinstance(order_by, str):
            order_fields = (order_by,)
        else:
            order_fields = order_by
        self._check_fields(spec, {name: None for name in order_fields})

        for name in order_fields:
            column = getattr(model, name)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        return stmt.order_by(model.id)

    def _iter_dtos(self, result, collection: str) -> Iterator[Any]:
        with store_errors("query", collection):
            for row in result:
                yield row.to_dto()

    def _check_fields(
        self,
        spec: CollectionSpec,
        fields: Mapping[str, Any],
        writing: bool = False,
    ) -> None:
        columns = spec.columns
        for name, value in fields.items():
            if name not in columns:
                raise InvalidFieldError(name, value, f"unknown field for {spec.name}")
            if writing and (name in _RESERVED_FIELDS or name == spec.version_field):
                raise InvalidFieldError(name, value, "managed by the store")

    def _expire_cached(self, spec: CollectionSpec, key: UUID) -> None:
        identity = self.session.identity_key(spec.model, key)
        cached = self.session.identity_map.get(identity)
        if cached is not None:
            self.session.expire(cached)

    def _forget_cached(self, spec: CollectionSpec, key: UUID) -> None:
        identity = self.session.identity_key(spec.model, key)
        cached = self.session.identity_map.get(identity)
        if cached is not None:
            self.session.expunge(cached)
