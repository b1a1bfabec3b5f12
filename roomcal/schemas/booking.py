"""
Booking data model.

A RoomEntry comes in two stored shapes: a bare room name (legacy blocks
without a reservation) and a camelCase record carrying guest, payment and
stay fields. normalize_room_entry() is the single place where raw store
values become BareRoomEntry / DetailedRoomEntry.
"""

import logging
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


def _strip_markup(v):
    """Remove script tags and inline event handlers from free text"""
    if isinstance(v, str):
        v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
        v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
    return v


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class GuestForm(BaseModel):
    """Guest and payment data typed by the operator before a Commit."""
    guest_name: str = Field("", max_length=200)
    guest_phone: str = Field("", max_length=30)
    amount_due: Decimal = Field(Decimal("0"), ge=0)
    amount_paid: Decimal = Field(Decimal("0"), ge=0)
    payment_date: Optional[date] = None
    adult_count: int = Field(1, ge=0)
    child_count: int = Field(0, ge=0)
    note: str = Field("", max_length=2000)

    @field_validator('guest_name', 'note', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        if v is None:
            return ""
        return _strip_markup(v)

    @field_validator('guest_phone', mode='before')
    @classmethod
    def none_phone_to_blank(cls, v):
        return "" if v is None else v

    @field_validator('payment_date', mode='before')
    @classmethod
    def blank_payment_date(cls, v):
        return _blank_to_none(v)

    @field_validator('amount_due', 'amount_paid', mode='before')
    @classmethod
    def blank_amount(cls, v):
        return Decimal("0") if _blank_to_none(v) is None else v

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class BareRoomEntry(BaseModel):
    """Legacy occupancy: only the room name was stored."""
    room: str

    @property
    def reservation_id(self) -> Optional[str]:
        return None

    @property
    def is_detailed(self) -> bool:
        return False

    def to_store(self) -> str:
        return self.room


class DetailedRoomEntry(BaseModel):
    """One room's occupancy on one date, with guest and stay metadata."""
    room: str
    guest_name: str = ""
    guest_phone: str = ""
    amount_due: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")
    payment_date: Optional[date] = None
    adult_count: int = 0
    child_count: int = 0
    note: str = ""
    reservation_id: Optional[str] = None
    created_at: Optional[datetime] = None
    stay_start: Optional[date] = None
    stay_end: Optional[date] = None
    stay_length_days: Optional[int] = None

    @field_validator('payment_date', 'stay_start', 'stay_end', 'created_at', 'reservation_id', mode='before')
    @classmethod
    def blank_optional(cls, v):
        return _blank_to_none(v)

    @field_validator('amount_due', 'amount_paid', mode='before')
    @classmethod
    def blank_amount(cls, v):
        return Decimal("0") if _blank_to_none(v) is None else v

    @field_validator('guest_name', 'guest_phone', 'note', mode='before')
    @classmethod
    def none_text(cls, v):
        return "" if v is None else v

    @field_validator('created_at')
    @classmethod
    def created_at_utc(cls, v):
        return _as_utc(v)

    @property
    def is_detailed(self) -> bool:
        return True

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"


class UnparsedRoomEntry(BareRoomEntry):
    """
    A stored entry naming a room but failing validation. The room stays
    occupied and the raw value is written back unchanged.
    """
    raw: Any = Field(default=None, exclude=True)

    @classmethod
    def salvage(cls, raw: Any) -> Optional["UnparsedRoomEntry"]:
        if isinstance(raw, dict) and isinstance(raw.get("room"), str) and raw["room"].strip():
            return cls(room=raw["room"], raw=raw)
        return None

    def to_store(self) -> Any:
        return self.raw


RoomEntry = Union[BareRoomEntry, DetailedRoomEntry]


def normalize_room_entry(raw: Any) -> RoomEntry:
    """Turn a stored room entry (bare name or record) into its tagged form."""
    if isinstance(raw, (BareRoomEntry, DetailedRoomEntry)):
        return raw
    if isinstance(raw, str):
        return BareRoomEntry(room=raw)
    if isinstance(raw, dict):
        if not raw.get("room"):
            raise ValueError(f"Room entry without a room: {raw!r}")
        if set(raw) == {"room"}:
            return BareRoomEntry(room=raw["room"])
        return DetailedRoomEntry.model_validate(raw)
    raise ValueError(f"Unsupported room entry: {raw!r}")


class DateRecord(BaseModel):
    """All room entries stored for one DateKey."""
    date_key: str
    entries: List[RoomEntry] = Field(default_factory=list)
    timestamp: Optional[datetime] = None
    version: int = 0

    @field_validator('entries', mode='before')
    @classmethod
    def normalize_entries(cls, v):
        """
        At most one entry per room; the later one wins. A bad entry only
        costs itself: kept as occupied when it names a room, else dropped.
        """
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            raise ValueError(f"Room entries must be a list, got {type(v).__name__}")

        by_room: Dict[str, RoomEntry] = {}
        for raw in v:
            try:
                entry = normalize_room_entry(raw)
            except ValueError as e:
                entry = UnparsedRoomEntry.salvage(raw)
                if entry is None:
                    logger.warning(f"Dropping malformed room entry {raw!r}: {e}")
                    continue
                logger.warning(f"Keeping malformed entry for {entry.room} as occupied: {e}")
            by_room.pop(entry.room, None)
            by_room[entry.room] = entry
        return list(by_room.values())

    @field_validator('timestamp', mode='before')
    @classmethod
    def blank_timestamp(cls, v):
        return _blank_to_none(v)

    @classmethod
    def from_document(cls, key: str, data: Dict[str, Any], version: int = 0) -> "DateRecord":
        return cls(
            date_key=key,
            entries=data.get("rooms") or [],
            timestamp=data.get("timestamp"),
            version=version,
        )

    @property
    def rooms(self) -> List[str]:
        return [entry.room for entry in self.entries]

    def entry_for(self, room: str) -> Optional[RoomEntry]:
        for entry in self.entries:
            if entry.room == room:
                return entry
        return None


class Reservation(BaseModel):
    """All entries sharing one reservation id, folded into a single stay."""
    reservation_id: str
    guest_name: str = ""
    guest_phone: str = ""
    amount_due: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")
    payment_date: Optional[date] = None
    adult_count: int = 0
    child_count: int = 0
    note: str = ""
    created_at: Optional[datetime] = None
    rooms: List[str] = Field(default_factory=list)
    booking_dates: List[str] = Field(default_factory=list)
    stay_start: Optional[date] = None
    stay_end: Optional[date] = None
    stay_length_days: int = 0

    @property
    def balance(self) -> Decimal:
        return self.amount_due - self.amount_paid


class MonthAvailability(BaseModel):
    year_month: str
    is_open: bool
    updated_at: Optional[datetime] = None

    @field_validator('updated_at', mode='before')
    @classmethod
    def blank_updated_at(cls, v):
        return _blank_to_none(v)
