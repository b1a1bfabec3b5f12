from datetime import date
from enum import Enum
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator

from .booking import GuestForm, Reservation
from ..utils.dates import to_date_key


class Cell(NamedTuple):
    """One (date, room) square of the calendar grid."""
    date_key: str
    room: str


class CalendarView(str, Enum):
    OPERATOR = "operator"
    CUSTOMER = "customer"


class CellState(str, Enum):
    PAST = "past"
    CLOSED = "closed"
    BOOKED = "booked"
    FREE = "free"


class PendingAction(str, Enum):
    """What saving a selected cell would do"""
    ADD = "add"
    RELEASE = "release"


class CellIn(BaseModel):
    date: str
    room: str = Field(..., min_length=1, max_length=100)

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        try:
            return to_date_key(v)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid date: {v!r}")

    def to_cell(self) -> Cell:
        return Cell(self.date, self.room)


class CommitRequest(BaseModel):
    cells: List[CellIn] = Field(default_factory=list)
    guest: GuestForm


class ReleaseRequest(BaseModel):
    cells: List[CellIn] = Field(default_factory=list)


class WriteReportResponse(BaseModel):
    operation: str
    reservation_id: Optional[str] = None
    applied_dates: List[str] = Field(default_factory=list)
    failed_date: Optional[str] = None
    pending_dates: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    complete: bool = True


class DayColumn(BaseModel):
    date: date
    day: int
    weekday: int
    is_weekend: bool


class GridCell(BaseModel):
    date: str
    state: CellState
    occupied: bool
    selected: bool = False
    pending_action: Optional[PendingAction] = None
    reservation_id: Optional[str] = None
    guest_name: Optional[str] = None


class RoomRow(BaseModel):
    room: str
    cells: List[GridCell]


class CalendarGrid(BaseModel):
    view: CalendarView
    month: str
    previous_month: str
    next_month: str
    days: List[DayColumn]
    rows: List[RoomRow]


class ReservationDetail(Reservation):
    cells: List[CellIn] = Field(default_factory=list)


class MonthAvailabilityUpdate(BaseModel):
    is_open: bool


class PointerEventType(str, Enum):
    DOWN = "down"
    ENTER = "enter"
    UP = "up"
    CANCEL = "cancel"


class PointerEvent(BaseModel):
    event: PointerEventType
    date: Optional[str] = None
    room: Optional[str] = None

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        if v is None:
            return v
        try:
            return to_date_key(v)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid date: {v!r}")


class SessionState(BaseModel):
    session_id: str
    dragging: bool
    mode: Optional[str] = None
    busy: bool = False
    selection: List[CellIn] = Field(default_factory=list)
    guest: Optional[GuestForm] = None
    selected_reservation: Optional[Reservation] = None
