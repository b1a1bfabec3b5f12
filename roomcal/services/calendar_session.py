"""
Calendar Session

One operator's working state: selection, drag engine and guest form.
CalendarRuntime holds what sessions share: the store, both indexes, the
aggregator and the writer.
"""

import logging
import time
import uuid
from datetime import date
from typing import Callable, Dict, Optional

from ..config import settings
from ..schemas.booking import GuestForm, Reservation
from ..utils.dates import DateLike, get_today
from .availability_index import AvailabilityIndex
from .booking_index import BookingIndex
from .document_store import DocumentStore
from .errors import SelectionBusyError, ValidationError
from .reservation_aggregator import ReservationAggregator
from .reservation_writer import ReservationWriter, WriteReport
from .room_catalog import RoomCatalog
from .selection_engine import DragMode, Selection, SelectionEngine

logger = logging.getLogger(__name__)


class CalendarRuntime:
    """Shared engine pieces wired to one document store."""

    def __init__(
        self,
        store: DocumentStore,
        catalog: RoomCatalog,
        today_provider: Callable[[], date] = get_today,
        drag_mode: Optional[str] = None,
        session_ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.catalog = catalog
        self.today_provider = today_provider
        self.drag_mode = DragMode(drag_mode or settings.selection_drag_mode)

        self.availability = AvailabilityIndex(store)
        self.booking_index = BookingIndex(self.availability, today_provider)
        self.aggregator = ReservationAggregator(self.booking_index, catalog)
        self.writer = ReservationWriter(store, self.booking_index, self.aggregator, catalog)
        self.sessions: Dict[str, "CalendarSession"] = {}
        self.session_ttl_seconds = (
            settings.session_ttl_minutes * 60 if session_ttl_seconds is None else session_ttl_seconds
        )
        self.clock = clock

    def start(self) -> None:
        """Subscribe both indexes to the store."""
        self.availability.attach()
        self.booking_index.attach(self.store)
        logger.info("Calendar runtime subscribed to store")

    def stop(self) -> None:
        self.booking_index.detach()
        self.availability.detach()
        self.sessions.clear()

    def evict_idle_sessions(self) -> int:
        """Drop sessions untouched for longer than the TTL; busy ones stay."""
        cutoff = self.clock() - self.session_ttl_seconds
        idle = [
            sid for sid, session in self.sessions.items()
            if session.last_seen < cutoff and not session.busy
        ]
        for sid in idle:
            del self.sessions[sid]
        if idle:
            logger.info(f"Evicted {len(idle)} idle operator sessions")
        return len(idle)

    def open_session(self) -> "CalendarSession":
        self.evict_idle_sessions()
        session = CalendarSession(self)
        self.sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional["CalendarSession"]:
        self.evict_idle_sessions()
        session = self.sessions.get(session_id)
        if session is not None:
            session.last_seen = self.clock()
        return session

    def close_session(self, session_id: str) -> bool:
        return self.sessions.pop(session_id, None) is not None


class CalendarSession:
    def __init__(self, runtime: CalendarRuntime, session_id: Optional[str] = None):
        self.runtime = runtime
        self.session_id = session_id or str(uuid.uuid4())
        self.selection = Selection()
        self.engine = SelectionEngine(
            runtime.catalog,
            self.selection,
            today_provider=runtime.today_provider,
            drag_mode=runtime.drag_mode,
        )
        self.guest_form: Optional[GuestForm] = None
        self.busy = False
        self.last_seen = runtime.clock()

    # Pointer events

    def pointer_down(self, day: DateLike, room: str) -> bool:
        return self.engine.pointer_down(day, room)

    def pointer_enter(self, day: DateLike, room: str) -> None:
        self.engine.pointer_enter(day, room)

    def pointer_up(self) -> None:
        self.engine.pointer_up()

    def cancel_drag(self) -> None:
        self.engine.cancel()

    def clear_selection(self) -> None:
        self.engine.clear()

    # Guest form

    def set_guest_form(self, form: GuestForm) -> None:
        self.guest_form = form

    def selected_reservation(self) -> Optional[Reservation]:
        """The existing reservation the selection points into, if any."""
        ids = self.runtime.aggregator.reservation_ids_for(self.selection)
        return self.runtime.aggregator.get(ids[0]) if ids else None

    def prefill_guest_form(self) -> Optional[GuestForm]:
        """Load the selected reservation's guest data into the form."""
        reservation = self.selected_reservation()
        if reservation is None:
            return None
        self.guest_form = GuestForm(
            guest_name=reservation.guest_name,
            guest_phone=reservation.guest_phone,
            amount_due=reservation.amount_due,
            amount_paid=reservation.amount_paid,
            payment_date=reservation.payment_date,
            adult_count=reservation.adult_count,
            child_count=reservation.child_count,
            note=reservation.note,
        )
        return self.guest_form

    # Writes

    def _begin(self) -> None:
        if self.busy:
            raise SelectionBusyError("A save for this session is still running")
        self.busy = True

    async def commit(self, form: Optional[GuestForm] = None) -> WriteReport:
        """Commit the selection; on success selection and form are cleared."""
        form = form or self.guest_form
        if form is None:
            raise ValidationError("Guest name is required")
        self._begin()
        try:
            report = await self.runtime.writer.commit(self.selection.cells, form)
        finally:
            self.busy = False
        self.engine.clear()
        self.guest_form = None
        return report

    async def release(self) -> WriteReport:
        """Release the selection; on success selection and form are cleared."""
        self._begin()
        try:
            report = await self.runtime.writer.release(self.selection.cells)
        finally:
            self.busy = False
        self.engine.clear()
        self.guest_form = None
        return report
