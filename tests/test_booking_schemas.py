"""
Tests for the booking data model

Tests cover:
- Bare and detailed room entry normalization
- One entry per room within a DateRecord
- Guest form sanitization and defaults
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


class TestRoomEntries:
    """Tests for normalize_room_entry"""

    def test_bare_string_entry(self):
        from roomcal.schemas.booking import BareRoomEntry, normalize_room_entry

        entry = normalize_room_entry("RoomX")
        assert isinstance(entry, BareRoomEntry)
        assert entry.room == "RoomX"
        assert entry.reservation_id is None
        assert entry.to_store() == "RoomX"

    def test_room_only_dict_is_bare(self):
        from roomcal.schemas.booking import BareRoomEntry, normalize_room_entry

        assert isinstance(normalize_room_entry({"room": "RoomX"}), BareRoomEntry)

    def test_detailed_entry_from_camel_case(self):
        from roomcal.schemas.booking import DetailedRoomEntry, normalize_room_entry

        entry = normalize_room_entry({
            "room": "RoomX",
            "guestName": "Ayşe",
            "guestPhone": "555",
            "amountDue": "1500.00",
            "amountPaid": 500,
            "paymentDate": "",
            "adultCount": 2,
            "reservationId": "res-1",
            "createdAt": "2026-01-05T10:00:00",
            "stayStart": "2026-02-10",
            "stayEnd": "2026-02-12",
            "stayLengthDays": 2,
        })
        assert isinstance(entry, DetailedRoomEntry)
        assert entry.guest_name == "Ayşe"
        assert entry.amount_due == Decimal("1500.00")
        assert entry.payment_date is None
        assert entry.reservation_id == "res-1"
        assert entry.created_at == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
        assert entry.stay_end == date(2026, 2, 12)

    def test_detailed_entry_stores_camel_case(self):
        from roomcal.schemas.booking import DetailedRoomEntry

        stored = DetailedRoomEntry(room="RoomX", guest_name="Ayşe", reservation_id="res-1").to_store()
        assert stored["room"] == "RoomX"
        assert stored["guestName"] == "Ayşe"
        assert stored["reservationId"] == "res-1"
        assert "guest_name" not in stored

    def test_entry_without_room_rejected(self):
        from roomcal.schemas.booking import normalize_room_entry

        with pytest.raises(ValueError):
            normalize_room_entry({"guestName": "Ayşe"})
        with pytest.raises(ValueError):
            normalize_room_entry(42)


class TestDateRecord:
    """Tests for DateRecord"""

    def test_later_entry_for_same_room_wins(self):
        from roomcal.schemas.booking import DateRecord, DetailedRoomEntry

        record = DateRecord.from_document("2026-02-10", {
            "rooms": ["RoomX", {"room": "RoomX", "guestName": "Ayşe", "reservationId": "res-1"}, "RoomY"]
        })
        assert record.rooms == ["RoomX", "RoomY"]
        assert isinstance(record.entry_for("RoomX"), DetailedRoomEntry)
        assert record.entry_for("RoomZ") is None

    def test_missing_rooms_field_is_empty(self):
        from roomcal.schemas.booking import DateRecord

        record = DateRecord.from_document("2026-02-10", {"timestamp": ""}, version=3)
        assert record.entries == []
        assert record.timestamp is None
        assert record.version == 3

    def test_invalid_entry_kept_as_occupied(self):
        """An entry that fails validation keeps its room and raw value"""
        from roomcal.schemas.booking import DateRecord, UnparsedRoomEntry

        bad = {"room": "RoomZ", "adultCount": "two"}
        record = DateRecord.from_document("2026-02-10", {"rooms": ["RoomY", bad, {"guestName": "x"}]})

        assert record.rooms == ["RoomY", "RoomZ"]
        entry = record.entry_for("RoomZ")
        assert isinstance(entry, UnparsedRoomEntry)
        assert entry.reservation_id is None
        assert entry.to_store() == bad
        assert entry.model_dump() == {"room": "RoomZ"}

    def test_rooms_must_be_a_list(self):
        from roomcal.schemas.booking import DateRecord

        with pytest.raises(ValueError):
            DateRecord.from_document("2026-02-10", {"rooms": "RoomY"})


class TestGuestForm:
    """Tests for GuestForm"""

    def test_accepts_camel_case_and_snake_case(self):
        from roomcal.schemas.booking import GuestForm

        camel = GuestForm.model_validate({"guestName": "Ayşe", "guestPhone": "555"})
        snake = GuestForm(guest_name="Ayşe", guest_phone="555")
        assert camel == snake

    def test_blank_amounts_and_dates_default(self):
        from roomcal.schemas.booking import GuestForm

        form = GuestForm.model_validate({"guestName": "Ayşe", "amountDue": "", "paymentDate": ""})
        assert form.amount_due == Decimal("0")
        assert form.payment_date is None
        assert form.adult_count == 1
        assert form.child_count == 0

    def test_markup_stripped_from_text(self):
        from roomcal.schemas.booking import GuestForm

        form = GuestForm(guest_name="Ayşe<script>alert(1)</script>", note='<b onclick="x">late arrival</b>')
        assert form.guest_name == "Ayşe"
        assert "onclick" not in form.note

    def test_negative_amount_rejected(self):
        from pydantic import ValidationError
        from roomcal.schemas.booking import GuestForm

        with pytest.raises(ValidationError):
            GuestForm(guest_name="Ayşe", amount_paid=Decimal("-1"))


class TestReservationModel:
    def test_balance(self):
        from roomcal.schemas.booking import Reservation

        reservation = Reservation(reservation_id="res-1", amount_due=Decimal("1500"), amount_paid=Decimal("500"))
        assert reservation.balance == Decimal("1000")
