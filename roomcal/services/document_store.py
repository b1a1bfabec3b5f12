"""
Document Store

Keyed document collections with real-time subscription semantics:
- bookings: DateKey -> {rooms: [RoomEntry], timestamp}
- monthAvailability: yyyy-MM -> {isOpen, updatedAt}

Every document carries a version. set()/delete() accept expected_version
for conditional writes (0 = the document must not exist yet), which is what
ReservationWriter uses to serialize per-date read-modify-write cycles.

Subscribers get the full snapshot on subscribe and after every write,
together with the list of changes. A failing subscriber callback never
propagates into the writer: it is logged and routed to the subscriber's
error callback as a SubscriptionError.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.calendar_document import CalendarDocument
from ..utils.logging_config import get_logger
from .errors import (
    StoreReadError,
    StoreWriteError,
    SubscriptionError,
    VersionConflictError,
)

logger = get_logger(__name__)

BOOKINGS = "bookings"
MONTH_AVAILABILITY = "monthAvailability"


class _ServerTimestamp:
    """Placeholder resolved to the store's clock at write time"""

    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass
class StoredDocument:
    key: str
    data: Dict[str, Any]
    version: int


@dataclass
class ChangeEvent:
    """added | modified | removed"""
    kind: str
    key: str
    document: Optional[StoredDocument] = None


Snapshot = Dict[str, StoredDocument]
SnapshotCallback = Callable[[Snapshot, List[ChangeEvent]], None]
ErrorCallback = Callable[[SubscriptionError], None]


@dataclass
class _Subscription:
    collection: str
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback] = None
    active: bool = True


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _resolve_timestamps(data: Dict[str, Any]) -> Dict[str, Any]:
    now = _utc_now_iso()
    return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in data.items()}


class DocumentStore(ABC):
    """
    Base class: point operations are async and implemented by subclasses
    through _read/_read_all/_write/_remove; subscription fan-out lives here.
    """

    def __init__(self):
        self._subscriptions: List[_Subscription] = []

    # ------------------------------------------------------------------
    # Point operations
    # ------------------------------------------------------------------

    async def get(self, collection: str, key: str) -> Optional[StoredDocument]:
        try:
            return self._read(collection, key)
        except StoreReadError:
            raise
        except Exception as e:
            raise StoreReadError(f"Failed to read {collection}/{key}: {e}", collection, key) from e

    async def list(self, collection: str) -> Snapshot:
        try:
            return self._read_all(collection)
        except StoreReadError:
            raise
        except Exception as e:
            raise StoreReadError(f"Failed to list {collection}: {e}", collection) from e

    async def set(
        self,
        collection: str,
        key: str,
        data: Dict[str, Any],
        merge: bool = False,
        expected_version: Optional[int] = None,
    ) -> StoredDocument:
        """
        Upsert a document. merge=True updates only the given fields.
        Raises VersionConflictError if expected_version does not match.
        """
        try:
            existed, document = self._write(
                collection, key, _resolve_timestamps(data), merge, expected_version
            )
        except StoreWriteError:
            raise
        except Exception as e:
            raise StoreWriteError(f"Failed to write {collection}/{key}: {e}", collection, key) from e

        self._notify(collection, [ChangeEvent("modified" if existed else "added", key, document)])
        return document

    async def delete(
        self,
        collection: str,
        key: str,
        expected_version: Optional[int] = None,
    ) -> bool:
        """Delete a document. Returns False if it did not exist."""
        try:
            removed = self._remove(collection, key, expected_version)
        except StoreWriteError:
            raise
        except Exception as e:
            raise StoreWriteError(f"Failed to delete {collection}/{key}: {e}", collection, key) from e

        if removed:
            self._notify(collection, [ChangeEvent("removed", key)])
        return removed

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """
        Deliver the current snapshot now and after every write.
        Returns an unsubscribe callable.
        """
        subscription = _Subscription(collection, on_snapshot, on_error)
        self._subscriptions.append(subscription)

        try:
            snapshot = self._read_all(collection)
        except Exception as e:
            self._report(subscription, e)
        else:
            initial = [ChangeEvent("added", key, doc) for key, doc in snapshot.items()]
            self._deliver(subscription, snapshot, initial)

        def unsubscribe():
            subscription.active = False
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    def _notify(self, collection: str, changes: List[ChangeEvent]) -> None:
        subscribers = [s for s in self._subscriptions if s.collection == collection and s.active]
        if not subscribers:
            return
        try:
            snapshot = self._read_all(collection)
        except Exception as e:
            for subscription in subscribers:
                self._report(subscription, e)
            return
        for subscription in subscribers:
            self._deliver(subscription, snapshot, changes)

    def _deliver(self, subscription: _Subscription, snapshot: Snapshot, changes: List[ChangeEvent]) -> None:
        try:
            subscription.on_snapshot(copy.deepcopy(snapshot), changes)
        except Exception as e:
            self._report(subscription, e)

    def _report(self, subscription: _Subscription, error: Exception) -> None:
        failure = error if isinstance(error, SubscriptionError) else SubscriptionError(subscription.collection, error)
        logger.subscription_failed(subscription.collection, error)
        if subscription.on_error is None:
            return
        try:
            subscription.on_error(failure)
        except Exception as e:
            logger.error(f"Subscription error handler failed on {subscription.collection}: {e}")

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Cheap reachability check used by the readiness probe"""
        self._read_all(MONTH_AVAILABILITY)
        return True

    @abstractmethod
    def _read(self, collection: str, key: str) -> Optional[StoredDocument]:
        ...

    @abstractmethod
    def _read_all(self, collection: str) -> Snapshot:
        ...

    @abstractmethod
    def _write(
        self,
        collection: str,
        key: str,
        data: Dict[str, Any],
        merge: bool,
        expected_version: Optional[int],
    ) -> "tuple[bool, StoredDocument]":
        ...

    @abstractmethod
    def _remove(self, collection: str, key: str, expected_version: Optional[int]) -> bool:
        ...


class InMemoryDocumentStore(DocumentStore):
    """Single-process store; writes are atomic within one event loop."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        super().__init__()
        self._collections: Dict[str, Dict[str, StoredDocument]] = {}
        for collection, documents in (initial or {}).items():
            for key, data in documents.items():
                self._collections.setdefault(collection, {})[key] = StoredDocument(
                    key, copy.deepcopy(data), 1
                )

    def _read(self, collection, key):
        document = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(document) if document else None

    def _read_all(self, collection):
        return copy.deepcopy(self._collections.get(collection, {}))

    def _write(self, collection, key, data, merge, expected_version):
        documents = self._collections.setdefault(collection, {})
        current = documents.get(key)
        actual = current.version if current else 0
        if expected_version is not None and expected_version != actual:
            raise VersionConflictError(collection, key, expected_version, actual)

        payload = copy.deepcopy(data)
        if merge and current:
            payload = {**current.data, **payload}
        document = StoredDocument(key, payload, actual + 1)
        documents[key] = document
        return current is not None, copy.deepcopy(document)

    def _remove(self, collection, key, expected_version):
        documents = self._collections.get(collection, {})
        current = documents.get(key)
        actual = current.version if current else 0
        if expected_version is not None and expected_version != actual:
            raise VersionConflictError(collection, key, expected_version, actual)
        if current is None:
            return False
        del documents[key]
        return True


class SqlDocumentStore(DocumentStore):
    """
    SQLAlchemy-backed store over the calendar_documents table.

    Conditional writes use UPDATE ... WHERE version = :expected so two
    processes racing on one date cannot both win. Push notifications reach
    subscribers of this process only.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        super().__init__()
        self.session_factory = session_factory

    def _to_document(self, row: CalendarDocument) -> StoredDocument:
        return StoredDocument(row.doc_key, copy.deepcopy(row.payload or {}), row.version)

    def _read(self, collection, key):
        db = self.session_factory()
        try:
            row = db.query(CalendarDocument).filter(
                CalendarDocument.collection == collection,
                CalendarDocument.doc_key == key
            ).first()
            return self._to_document(row) if row else None
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to read {collection}/{key}: {e}", collection, key) from e
        finally:
            db.close()

    def _read_all(self, collection):
        db = self.session_factory()
        try:
            rows = db.query(CalendarDocument).filter(
                CalendarDocument.collection == collection
            ).order_by(CalendarDocument.doc_key).all()
            return {row.doc_key: self._to_document(row) for row in rows}
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to list {collection}: {e}", collection) from e
        finally:
            db.close()

    def _write(self, collection, key, data, merge, expected_version):
        db = self.session_factory()
        try:
            row = db.query(CalendarDocument).filter(
                CalendarDocument.collection == collection,
                CalendarDocument.doc_key == key
            ).first()
            actual = row.version if row else 0
            if expected_version is not None and expected_version != actual:
                raise VersionConflictError(collection, key, expected_version, actual)

            if row is None:
                row = CalendarDocument(
                    collection=collection,
                    doc_key=key,
                    payload=copy.deepcopy(data),
                    version=1
                )
                db.add(row)
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    # Someone inserted the same key between our read and write
                    raise VersionConflictError(collection, key, actual, actual + 1)
                db.refresh(row)
                return False, self._to_document(row)

            payload = {**(row.payload or {}), **data} if merge else copy.deepcopy(data)
            updated = db.query(CalendarDocument).filter(
                CalendarDocument.id == row.id,
                CalendarDocument.version == actual
            ).update({
                "payload": payload,
                "version": actual + 1,
                "updated_at": datetime.utcnow()
            }, synchronize_session=False)
            if updated != 1:
                db.rollback()
                raise VersionConflictError(collection, key, actual, actual + 1)
            db.commit()
            return True, StoredDocument(key, payload, actual + 1)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreWriteError(f"Failed to write {collection}/{key}: {e}", collection, key) from e
        finally:
            db.close()

    def _remove(self, collection, key, expected_version):
        db = self.session_factory()
        try:
            query = db.query(CalendarDocument).filter(
                CalendarDocument.collection == collection,
                CalendarDocument.doc_key == key
            )
            row = query.first()
            actual = row.version if row else 0
            if expected_version is not None and expected_version != actual:
                raise VersionConflictError(collection, key, expected_version, actual)
            if row is None:
                return False

            deleted = query.filter(CalendarDocument.version == actual).delete(synchronize_session=False)
            if deleted != 1:
                db.rollback()
                raise VersionConflictError(collection, key, actual, actual + 1)
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreWriteError(f"Failed to delete {collection}/{key}: {e}", collection, key) from e
        finally:
            db.close()
