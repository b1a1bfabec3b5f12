"""
Reservation Writer

Turns a committed selection into per-date read-modify-write updates of the
bookings collection.

- commit(): writes one entry per selected room on each affected date, all
  carrying the same reservation id, guest and stay fields. If the selection
  touches an existing reservation, every cell of that reservation is
  rewritten too, so guest edits reach the whole stay.
- release(): removes the selected rooms from each date and deletes the date
  record once it has no entries left.

Updates of one date are serialized through a per-date lock and written with
expected_version, retrying on conflict. Dates are written one after another;
when a date fails the operation stops and raises PartialWriteError with a
WriteReport naming the dates already applied. Each per-date update is
idempotent, so running the same operation again completes it.
"""

import asyncio
import logging
import time
import uuid
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, MutableMapping, Optional, Set

from ..config import settings
from ..schemas.booking import DateRecord, DetailedRoomEntry, GuestForm, RoomEntry
from ..schemas.calendar import Cell
from ..utils.dates import add_days, to_date, to_date_key
from ..utils.logging_config import get_logger
from .booking_index import BookingIndex
from .document_store import BOOKINGS, SERVER_TIMESTAMP, DocumentStore
from .errors import (
    PartialWriteError,
    SelectionBusyError,
    StoreError,
    StoreReadError,
    ValidationError,
    VersionConflictError,
)
from .reservation_aggregator import ReservationAggregator
from .room_catalog import RoomCatalog

logger = get_logger(__name__)


@dataclass
class WriteReport:
    """Outcome of a multi-date Commit/Release"""
    operation: str
    reservation_id: Optional[str] = None
    applied_dates: List[str] = field(default_factory=list)
    failed_date: Optional[str] = None
    pending_dates: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.failed_date is None and not self.pending_dates


EntryMutation = Callable[[List[RoomEntry]], List[RoomEntry]]


class ReservationWriter:
    def __init__(
        self,
        store: DocumentStore,
        booking_index: BookingIndex,
        aggregator: ReservationAggregator,
        catalog: RoomCatalog,
        max_retries: Optional[int] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.booking_index = booking_index
        self.aggregator = aggregator
        self.catalog = catalog
        self.max_retries = settings.store_write_retries if max_retries is None else max_retries
        self.id_factory = id_factory
        self.clock = clock

        # Entries vanish once no coroutine holds or waits on the lock
        self._date_locks: MutableMapping[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._in_flight: Set[Cell] = set()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _normalize_cells(self, cells: Iterable) -> Set[Cell]:
        normalized = set()
        for cell in cells:
            try:
                date_key = to_date_key(cell[0])
            except (TypeError, ValueError) as e:
                raise ValidationError(str(e))
            if self.booking_index.is_past(date_key):
                raise ValidationError(f"Cannot change past day {date_key}")
            normalized.add(Cell(date_key, self.catalog.require(cell[1])))
        return normalized

    def _group_by_date(self, cells: Iterable[Cell]) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = {}
        for cell in cells:
            groups.setdefault(cell.date_key, []).append(cell.room)
        return {d: self.catalog.sort_rooms(groups[d]) for d in sorted(groups)}

    def is_busy(self, cells: Optional[Iterable[Cell]] = None) -> bool:
        if cells is None:
            return bool(self._in_flight)
        return bool(self._in_flight & set(cells))

    def _claim(self, cells: Set[Cell]) -> None:
        if self._in_flight & cells:
            raise SelectionBusyError("Another save over the same cells is still running")
        self._in_flight |= cells

    def _lock_for(self, date_key: str) -> asyncio.Lock:
        lock = self._date_locks.get(date_key)
        if lock is None:
            lock = self._date_locks[date_key] = asyncio.Lock()
        return lock

    async def _update_date(self, date_key: str, mutate: EntryMutation) -> None:
        """
        Read the date record, apply mutate, write back with expected_version.
        An empty result deletes the record.
        """
        async with self._lock_for(date_key):
            attempt = 0
            while True:
                attempt += 1
                document = await self.store.get(BOOKINGS, date_key)
                version = document.version if document else 0
                raw = document.data.get("rooms", []) if document else []
                try:
                    current = list(DateRecord(date_key=date_key, entries=raw).entries)
                except ValueError as e:
                    raise StoreReadError(
                        f"Unreadable booking record {date_key}: {e}",
                        collection=BOOKINGS,
                        key=date_key,
                    ) from e
                updated = mutate(current)

                try:
                    if updated:
                        await self.store.set(
                            BOOKINGS,
                            date_key,
                            {"rooms": [e.to_store() for e in updated], "timestamp": SERVER_TIMESTAMP},
                            expected_version=version,
                        )
                        logger.debug(f"Wrote {len(updated)} entries on {date_key}")
                    elif document is not None:
                        await self.store.delete(BOOKINGS, date_key, expected_version=version)
                        logger.info(f"Deleted empty booking record {date_key}")
                    return
                except VersionConflictError:
                    if attempt > self.max_retries:
                        raise
                    logger.warning(f"Version conflict on {date_key}, retrying ({attempt}/{self.max_retries})")

    async def _apply(
        self,
        report: WriteReport,
        groups: Dict[str, List[str]],
        mutation_for: Callable[[str, List[str]], EntryMutation],
    ) -> WriteReport:
        dates = list(groups)
        for i, date_key in enumerate(dates):
            try:
                await self._update_date(date_key, mutation_for(date_key, groups[date_key]))
            except StoreError as e:
                report.failed_date = date_key
                report.pending_dates = dates[i + 1:]
                report.error = str(e)
                logger.log_with_context(
                    logging.ERROR,
                    f"{report.operation} stopped on {date_key}: {e}",
                    entity_type="reservation" if report.reservation_id else "date_record",
                    entity_id=report.reservation_id,
                    operation=report.operation,
                    applied_dates=report.applied_dates,
                    pending_dates=report.pending_dates,
                )
                raise PartialWriteError(report, e) from e
            report.applied_dates.append(date_key)
        return report

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def commit(self, cells: Iterable[Cell], guest: GuestForm) -> WriteReport:
        """
        Occupy the selected cells for one reservation.

        Raises ValidationError before any write on an empty selection, a past
        day or a blank guest name/phone, SelectionBusyError when overlapping with a
        running operation, PartialWriteError when a date write fails.
        """
        selected = self._normalize_cells(cells)
        if not selected:
            raise ValidationError("Select at least one cell before saving")
        if not guest.guest_name.strip():
            raise ValidationError("Guest name is required")
        if not guest.guest_phone.strip():
            raise ValidationError("Guest phone is required")

        existing_ids = self.aggregator.reservation_ids_for(selected)
        affected = set(selected)
        created_at = self.clock()
        if existing_ids:
            reservation_id = existing_ids[0]
            affected.update(self.aggregator.cells_for(reservation_id))
            existing = self.aggregator.get(reservation_id)
            if existing and existing.created_at:
                created_at = existing.created_at
        else:
            reservation_id = self.id_factory()

        selected_dates = sorted({cell.date_key for cell in selected})
        stay_start = to_date(selected_dates[0])
        stay_end = add_days(selected_dates[-1], 1)
        stay_length = len(selected_dates)

        def entry_for(room: str) -> DetailedRoomEntry:
            return DetailedRoomEntry(
                room=room,
                guest_name=guest.guest_name.strip(),
                guest_phone=guest.guest_phone.strip(),
                amount_due=guest.amount_due,
                amount_paid=guest.amount_paid,
                payment_date=guest.payment_date,
                adult_count=guest.adult_count,
                child_count=guest.child_count,
                note=guest.note,
                reservation_id=reservation_id,
                created_at=created_at,
                stay_start=stay_start,
                stay_end=stay_end,
                stay_length_days=stay_length,
            )

        def mutation_for(date_key: str, rooms: List[str]) -> EntryMutation:
            def mutate(entries: List[RoomEntry]) -> List[RoomEntry]:
                kept = [e for e in entries if e.room not in rooms]
                return kept + [entry_for(room) for room in rooms]
            return mutate

        self._claim(affected)
        started = time.time()
        report = WriteReport(operation="commit", reservation_id=reservation_id)
        try:
            await self._apply(report, self._group_by_date(affected), mutation_for)
        finally:
            self._in_flight -= affected

        logger.reservation_committed(
            reservation_id,
            guest.guest_name,
            report.applied_dates,
            duration_ms=round((time.time() - started) * 1000, 2),
        )
        return report

    async def release(self, cells: Iterable[Cell]) -> WriteReport:
        """Free the selected cells; date records left empty are deleted."""
        selected = self._normalize_cells(cells)
        if not selected:
            raise ValidationError("Select at least one cell before releasing")

        def mutation_for(date_key: str, rooms: List[str]) -> EntryMutation:
            def mutate(entries: List[RoomEntry]) -> List[RoomEntry]:
                return [e for e in entries if e.room not in rooms]
            return mutate

        self._claim(selected)
        started = time.time()
        report = WriteReport(operation="release")
        try:
            await self._apply(report, self._group_by_date(selected), mutation_for)
        finally:
            self._in_flight -= selected

        logger.cells_released(
            report.applied_dates,
            len(selected),
            duration_ms=round((time.time() - started) * 1000, 2),
        )
        return report
