"""
Tests for calendar-day helpers and the room catalog

Tests cover:
- DateKey normalization from dates, datetimes and strings
- Month arithmetic and the two-month display window
- Catalog order, range selection and sorting
"""

import pytest
from datetime import date, datetime, timedelta, timezone

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


class TestDateKeys:
    """Tests for to_date / to_date_key"""

    def test_date_key_from_date(self):
        from roomcal.utils.dates import to_date_key

        assert to_date_key(date(2026, 2, 10)) == "2026-02-10"

    def test_date_key_ignores_time_of_day(self):
        """A late-evening datetime stays on its own calendar day"""
        from roomcal.utils.dates import to_date_key

        late = datetime(2026, 2, 10, 23, 30, tzinfo=timezone(timedelta(hours=3)))
        assert to_date_key(late) == "2026-02-10"

    def test_date_key_from_iso_string(self):
        from roomcal.utils.dates import to_date_key

        assert to_date_key("2026-02-10") == "2026-02-10"
        assert to_date_key("2026-02-10T08:00:00Z") == "2026-02-10"

    def test_invalid_string_raises(self):
        from roomcal.utils.dates import to_date

        with pytest.raises(ValueError):
            to_date("10/02/2026")

    def test_unsupported_type_raises(self):
        from roomcal.utils.dates import to_date

        with pytest.raises(TypeError):
            to_date(20260210)


class TestMonths:
    """Tests for month keys and windows"""

    def test_year_month(self):
        from roomcal.utils.dates import year_month

        assert year_month("2026-02-10") == "2026-02"

    def test_is_year_month(self):
        from roomcal.utils.dates import is_year_month

        assert is_year_month("2026-02")
        assert not is_year_month("2026-13")
        assert not is_year_month("2026-2")
        assert not is_year_month("")

    def test_parse_year_month_rejects_bad_key(self):
        from roomcal.utils.dates import parse_year_month

        assert parse_year_month("2026-12") == date(2026, 12, 1)
        with pytest.raises(ValueError):
            parse_year_month("12-2026")

    def test_add_months_crosses_year(self):
        from roomcal.utils.dates import add_months

        assert add_months(date(2026, 12, 1), 1) == date(2027, 1, 1)
        assert add_months(date(2026, 1, 1), -1) == date(2025, 12, 1)

    def test_end_of_month_leap_year(self):
        from roomcal.utils.dates import end_of_month

        assert end_of_month("2028-02-03") == date(2028, 2, 29)
        assert end_of_month("2026-02-03") == date(2026, 2, 28)

    def test_date_span_is_inclusive_in_either_order(self):
        from roomcal.utils.dates import date_span

        forward = date_span("2026-02-10", "2026-02-12")
        backward = date_span("2026-02-12", "2026-02-10")
        assert forward == backward == [date(2026, 2, 10), date(2026, 2, 11), date(2026, 2, 12)]

    def test_calendar_window_covers_two_months(self):
        """February + March 2026 = 28 + 31 days"""
        from roomcal.utils.dates import calendar_window

        days = calendar_window("2026-02-15")
        assert days[0] == date(2026, 2, 1)
        assert days[-1] == date(2026, 3, 31)
        assert len(days) == 59

    def test_weekend_defaults_to_saturday_and_sunday(self):
        from roomcal.utils.dates import is_weekend

        assert is_weekend("2026-02-14")      # Saturday
        assert is_weekend("2026-02-15")      # Sunday
        assert not is_weekend("2026-02-16")  # Monday


class TestRoomCatalog:
    """Tests for RoomCatalog"""

    @pytest.fixture
    def catalog(self):
        from roomcal.services.room_catalog import RoomCatalog
        return RoomCatalog(["RoomA", "RoomB", "RoomC", "RoomX", "RoomY"])

    def test_keeps_given_order(self, catalog):
        assert catalog.rooms == ["RoomA", "RoomB", "RoomC", "RoomX", "RoomY"]
        assert len(catalog) == 5
        assert "RoomX" in catalog
        assert "Lobby" not in catalog

    def test_empty_catalog_rejected(self):
        from roomcal.services.room_catalog import RoomCatalog
        from roomcal.services.errors import ValidationError

        with pytest.raises(ValidationError):
            RoomCatalog([" ", ""])

    def test_duplicate_rooms_rejected(self):
        from roomcal.services.room_catalog import RoomCatalog
        from roomcal.services.errors import ValidationError

        with pytest.raises(ValidationError):
            RoomCatalog(["RoomA", "RoomB", "RoomA"])

    def test_unknown_room_raises(self, catalog):
        from roomcal.services.errors import UnknownRoomError

        with pytest.raises(UnknownRoomError) as exc:
            catalog.index_of("Lobby")
        assert exc.value.room == "Lobby"

    def test_rooms_between_either_direction(self, catalog):
        assert catalog.rooms_between("RoomB", "RoomX") == ["RoomB", "RoomC", "RoomX"]
        assert catalog.rooms_between("RoomX", "RoomB") == ["RoomB", "RoomC", "RoomX"]
        assert catalog.rooms_between("RoomC", "RoomC") == ["RoomC"]

    def test_sort_rooms_dedupes_and_puts_unknown_last(self, catalog):
        assert catalog.sort_rooms(["RoomY", "Zeta", "RoomA", "RoomY", "Alpha"]) == [
            "RoomA", "RoomY", "Alpha", "Zeta"
        ]

    def test_default_catalog_from_settings(self):
        """The built-in catalog lists the eleven bays in order"""
        from roomcal.services.room_catalog import get_room_catalog
        from roomcal.config import DEFAULT_ROOMS, settings

        assert get_room_catalog().rooms == settings.room_list
        assert DEFAULT_ROOMS.split(",")[0] == "İnceburun"
        assert len(DEFAULT_ROOMS.split(",")) == 11
