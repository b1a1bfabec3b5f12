"""
Availability Index

Per-month open/closed flags from the monthAvailability collection.

A missing month is open for the operator but closed for customers:
a month must be opened explicitly before customers can book it.
"""

import logging
from typing import Callable, Dict, Optional

from ..schemas.booking import MonthAvailability
from ..schemas.calendar import CalendarView
from ..utils.dates import DateLike, is_year_month, year_month
from .document_store import MONTH_AVAILABILITY, SERVER_TIMESTAMP, DocumentStore, Snapshot
from .errors import SubscriptionError, ValidationError

logger = logging.getLogger(__name__)


class AvailabilityIndex:
    def __init__(self, store: Optional[DocumentStore] = None):
        self.store = store
        self._months: Dict[str, MonthAvailability] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.last_error: Optional[SubscriptionError] = None

    def attach(self, store: Optional[DocumentStore] = None) -> Callable[[], None]:
        """Subscribe to monthAvailability; the index is replaced on every push."""
        if store is not None:
            self.store = store
        if self.store is None:
            raise ValueError("AvailabilityIndex has no store to attach to")
        self.detach()
        self._unsubscribe = self.store.subscribe(
            MONTH_AVAILABILITY,
            lambda snapshot, changes: self.rebuild(snapshot),
            self._on_error,
        )
        return self.detach

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_error(self, error: SubscriptionError) -> None:
        self.last_error = error

    def rebuild(self, snapshot: Snapshot) -> None:
        months: Dict[str, MonthAvailability] = {}
        for key, document in snapshot.items():
            try:
                months[key] = MonthAvailability(
                    year_month=key,
                    is_open=bool(document.data.get("isOpen", True)),
                    updated_at=document.data.get("updatedAt"),
                )
            except ValueError as e:
                logger.warning(f"Skipping malformed month availability {key}: {e}")
        self._months = months
        self.last_error = None

    def months(self) -> Dict[str, MonthAvailability]:
        return dict(self._months)

    def is_open(self, month: str, view: CalendarView = CalendarView.OPERATOR) -> bool:
        record = self._months.get(month)
        if record is None:
            return view == CalendarView.OPERATOR
        return record.is_open

    def is_open_on(self, day: DateLike, view: CalendarView = CalendarView.OPERATOR) -> bool:
        return self.is_open(year_month(day), view)

    async def set_open(self, month: str, is_open: bool) -> MonthAvailability:
        """Single upsert with a server-assigned update time."""
        if not is_year_month(month):
            raise ValidationError(f"Invalid month key: {month!r} (expected yyyy-MM)")
        if self.store is None:
            raise ValueError("AvailabilityIndex has no store")

        document = await self.store.set(
            MONTH_AVAILABILITY,
            month,
            {"isOpen": bool(is_open), "updatedAt": SERVER_TIMESTAMP},
            merge=True,
        )
        logger.info(f"Month {month} marked {'open' if is_open else 'closed'}")
        return MonthAvailability(
            year_month=month,
            is_open=bool(document.data.get("isOpen")),
            updated_at=document.data.get("updatedAt"),
        )
