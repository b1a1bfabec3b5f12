"""
Reservation Aggregator

Folds booking index entries sharing a reservation id into one Reservation.
Guest and payment fields come from the first entry seen (dates ascending,
rooms in catalog order); all entries of one reservation are written with
identical fields, so the choice only matters for damaged data.

The stay window of a Reservation is derived from its booked dates:
start = first date, end = day after the last date, length = date count.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set

from ..schemas.booking import DetailedRoomEntry, Reservation
from ..schemas.calendar import Cell
from ..utils.dates import add_days, to_date, to_date_key
from .booking_index import BookingIndex
from .room_catalog import RoomCatalog

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class ReservationAggregator:
    def __init__(self, booking_index: BookingIndex, catalog: RoomCatalog):
        self.booking_index = booking_index
        self.catalog = catalog

    def _iter_entries(self):
        records = self.booking_index.records()
        for date_key in sorted(records):
            entries = sorted(records[date_key].entries, key=lambda e: self.catalog.sort_key(e.room))
            for entry in entries:
                if isinstance(entry, DetailedRoomEntry) and entry.reservation_id:
                    yield date_key, entry

    def _collect(self) -> Dict[str, Reservation]:
        reservations: Dict[str, Reservation] = {}
        rooms: Dict[str, Set[str]] = {}
        dates: Dict[str, Set[str]] = {}

        for date_key, entry in self._iter_entries():
            rid = entry.reservation_id
            if rid not in reservations:
                reservations[rid] = Reservation(
                    reservation_id=rid,
                    guest_name=entry.guest_name,
                    guest_phone=entry.guest_phone,
                    amount_due=entry.amount_due,
                    amount_paid=entry.amount_paid,
                    payment_date=entry.payment_date,
                    adult_count=entry.adult_count,
                    child_count=entry.child_count,
                    note=entry.note,
                    created_at=entry.created_at,
                )
                rooms[rid] = set()
                dates[rid] = set()
            rooms[rid].add(entry.room)
            dates[rid].add(date_key)

        for rid, reservation in reservations.items():
            booked = sorted(dates[rid])
            reservation.rooms = self.catalog.sort_rooms(rooms[rid])
            reservation.booking_dates = booked
            reservation.stay_start = to_date(booked[0])
            reservation.stay_end = add_days(booked[-1], 1)
            reservation.stay_length_days = len(booked)
        return reservations

    def aggregate(self) -> List[Reservation]:
        """Most recent first; reservations without createdAt go last."""
        reservations = list(self._collect().values())
        reservations.sort(key=lambda r: r.reservation_id)
        reservations.sort(key=lambda r: r.created_at or _OLDEST, reverse=True)
        reservations.sort(key=lambda r: r.created_at is None)
        return reservations

    def get(self, reservation_id: str) -> Optional[Reservation]:
        return self._collect().get(reservation_id)

    def cells_for(self, reservation_id: str) -> List[Cell]:
        """Every cell of a reservation, by date then catalog order."""
        return [
            Cell(date_key, entry.room)
            for date_key, entry in self._iter_entries()
            if entry.reservation_id == reservation_id
        ]

    def reservation_at(self, day, room: str) -> Optional[str]:
        entry = self.booking_index.entry_for(day, room)
        if isinstance(entry, DetailedRoomEntry):
            return entry.reservation_id
        return None

    def reservation_ids_for(self, cells: Iterable[Cell]) -> List[str]:
        """Reservations touched by the cells, in (date, catalog) order of first touch."""
        ordered = sorted(
            (Cell(to_date_key(c[0]), c[1]) for c in cells),
            key=lambda c: (c.date_key, self.catalog.sort_key(c.room)),
        )
        found: List[str] = []
        for cell in ordered:
            rid = self.reservation_at(cell.date_key, cell.room)
            if rid and rid not in found:
                found.append(rid)
        return found
