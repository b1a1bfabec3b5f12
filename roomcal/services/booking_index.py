"""
Booking Index

Read model over the bookings collection: DateKey -> DateRecord.
Rebuilt wholesale from every snapshot the store pushes; local state is
never patched incrementally.
"""

import logging
from datetime import date
from typing import Callable, Dict, List, Optional

from ..schemas.booking import DateRecord, RoomEntry
from ..schemas.calendar import CalendarView
from ..utils.dates import DateLike, get_today, to_date, to_date_key
from .availability_index import AvailabilityIndex
from .document_store import BOOKINGS, DocumentStore, Snapshot
from .errors import SubscriptionError

logger = logging.getLogger(__name__)


class BookingIndex:
    def __init__(
        self,
        availability: Optional[AvailabilityIndex] = None,
        today_provider: Callable[[], date] = get_today,
    ):
        self.availability = availability or AvailabilityIndex()
        self.today_provider = today_provider
        self._records: Dict[str, DateRecord] = {}
        self._listeners: List[Callable[["BookingIndex"], None]] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.last_error: Optional[SubscriptionError] = None

    # ------------------------------------------------------------------
    # Store wiring
    # ------------------------------------------------------------------

    def attach(self, store: DocumentStore) -> Callable[[], None]:
        self.detach()
        self._unsubscribe = store.subscribe(
            BOOKINGS,
            lambda snapshot, changes: self.rebuild(snapshot),
            self._on_error,
        )
        return self.detach

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_error(self, error: SubscriptionError) -> None:
        # Keep serving the last good snapshot until resubscribed
        self.last_error = error

    def add_listener(self, listener: Callable[["BookingIndex"], None]) -> Callable[[], None]:
        """Called after every rebuild."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def rebuild(self, snapshot: Snapshot) -> None:
        records: Dict[str, DateRecord] = {}
        for key, document in snapshot.items():
            try:
                record = DateRecord.from_document(to_date_key(key), document.data, document.version)
            except ValueError as e:
                logger.warning(f"Skipping malformed booking record {key}: {e}")
                continue
            records[record.date_key] = record

        self._records = records
        self.last_error = None
        logger.debug(f"Booking index rebuilt: {len(records)} dates")

        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Booking index listener failed: {e}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def records(self) -> Dict[str, DateRecord]:
        return dict(self._records)

    def record_for(self, day: DateLike) -> Optional[DateRecord]:
        return self._records.get(to_date_key(day))

    def entries_for(self, day: DateLike) -> List[RoomEntry]:
        record = self.record_for(day)
        return list(record.entries) if record else []

    def entry_for(self, day: DateLike, room: str) -> Optional[RoomEntry]:
        record = self.record_for(day)
        return record.entry_for(room) if record else None

    def has_entry(self, day: DateLike, room: str) -> bool:
        return self.entry_for(day, room) is not None

    def is_past(self, day: DateLike) -> bool:
        return to_date(day) < self.today_provider()

    def is_occupied(self, day: DateLike, room: str, view: CalendarView = CalendarView.OPERATOR) -> bool:
        """
        Past days are always occupied. Closed months are occupied for
        customers only. Otherwise a stored entry for the room decides.
        """
        if self.is_past(day):
            return True
        if view == CalendarView.CUSTOMER and not self.availability.is_open_on(day, view):
            return True
        return self.has_entry(day, room)
