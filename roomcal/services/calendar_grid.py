"""
Calendar Grid

Builds the two-month room x day grid shown to operators and customers.
The customer grid only says whether a cell can be booked; guest data is
never included there.
"""

from typing import Optional

from ..schemas.booking import DetailedRoomEntry
from ..schemas.calendar import (
    CalendarGrid,
    CalendarView,
    Cell,
    CellState,
    DayColumn,
    GridCell,
    PendingAction,
    RoomRow,
)
from ..utils.dates import add_months, calendar_window, is_weekend, parse_year_month, year_month
from .booking_index import BookingIndex
from .room_catalog import RoomCatalog
from .selection_engine import Selection


def build_calendar_grid(
    month: str,
    booking_index: BookingIndex,
    catalog: RoomCatalog,
    view: CalendarView = CalendarView.OPERATOR,
    selection: Optional[Selection] = None,
) -> CalendarGrid:
    """Grid for `month` (yyyy-MM) and the month after it."""
    first = parse_year_month(month)
    days = calendar_window(first)
    availability = booking_index.availability

    columns = [
        DayColumn(date=d, day=d.day, weekday=d.weekday(), is_weekend=is_weekend(d))
        for d in days
    ]

    rows = []
    for room in catalog:
        cells = []
        for d in days:
            date_key = d.isoformat()
            entry = booking_index.entry_for(date_key, room)

            if booking_index.is_past(d):
                state = CellState.PAST
            elif view == CalendarView.CUSTOMER and not availability.is_open_on(d, view):
                state = CellState.CLOSED
            elif entry is not None:
                state = CellState.BOOKED
            else:
                state = CellState.FREE

            cell = GridCell(
                date=date_key,
                state=state,
                occupied=booking_index.is_occupied(d, room, view),
            )

            if view == CalendarView.OPERATOR:
                if isinstance(entry, DetailedRoomEntry):
                    cell.reservation_id = entry.reservation_id
                    cell.guest_name = entry.guest_name or None
                if selection is not None and Cell(date_key, room) in selection:
                    cell.selected = True
                    cell.pending_action = PendingAction.RELEASE if entry is not None else PendingAction.ADD

            cells.append(cell)
        rows.append(RoomRow(room=room, cells=cells))

    return CalendarGrid(
        view=view,
        month=month,
        previous_month=year_month(add_months(first, -1)),
        next_month=year_month(add_months(first, 1)),
        days=columns,
        rows=rows,
    )
