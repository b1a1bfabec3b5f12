"""
Tests for Selection and SelectionEngine

Tests cover:
- Add/remove mode fixed at pointer-down
- Rectangle expansion in date and catalog order
- Accumulate vs rectangle drag modes
- Past days blocked as start cells and skipped inside rectangles
"""

import pytest
from datetime import date
from unittest.mock import MagicMock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

TODAY = date(2026, 1, 15)
ROOMS = ["RoomA", "RoomB", "RoomC", "RoomX", "RoomY"]


def make_engine(drag_mode="accumulate", cells=()):
    from roomcal.services.room_catalog import RoomCatalog
    from roomcal.services.selection_engine import DragMode, Selection, SelectionEngine

    return SelectionEngine(
        RoomCatalog(ROOMS),
        Selection(cells),
        today_provider=lambda: TODAY,
        drag_mode=DragMode(drag_mode),
    )


def cell(day, room):
    from roomcal.schemas.calendar import Cell
    return Cell(day, room)


class TestSelection:
    """Tests for the Selection store"""

    def test_listeners_notified_on_change_only(self):
        from roomcal.services.selection_engine import Selection

        selection = Selection()
        listener = MagicMock()
        selection.subscribe(listener)

        selection.add([cell("2026-02-10", "RoomX")])
        selection.add([cell("2026-02-10", "RoomX")])
        selection.discard([cell("2026-02-11", "RoomX")])
        assert listener.call_count == 1

        selection.clear()
        assert listener.call_count == 2
        assert len(selection) == 0

    def test_sorted_by_date_then_catalog(self):
        from roomcal.services.room_catalog import RoomCatalog
        from roomcal.services.selection_engine import Selection

        selection = Selection([
            cell("2026-02-11", "RoomA"),
            cell("2026-02-10", "RoomY"),
            cell("2026-02-10", "RoomB"),
        ])
        catalog = RoomCatalog(ROOMS)
        assert selection.sorted_cells(catalog) == [
            cell("2026-02-10", "RoomB"),
            cell("2026-02-10", "RoomY"),
            cell("2026-02-11", "RoomA"),
        ]
        assert selection.group_by_date(catalog) == {
            "2026-02-10": ["RoomB", "RoomY"],
            "2026-02-11": ["RoomA"],
        }
        assert selection.dates() == ["2026-02-10", "2026-02-11"]


class TestPointerDown:
    """Tests for drag start"""

    def test_unselected_start_cell_adds(self):
        from roomcal.services.selection_engine import SelectionMode

        engine = make_engine()
        assert engine.pointer_down("2026-02-10", "RoomX") is True
        assert engine.is_dragging
        assert engine.mode == SelectionMode.ADD
        assert cell("2026-02-10", "RoomX") in engine.selection

    def test_selected_start_cell_removes(self):
        from roomcal.services.selection_engine import SelectionMode

        engine = make_engine(cells=[cell("2026-02-10", "RoomX"), cell("2026-02-10", "RoomY")])
        engine.pointer_down("2026-02-10", "RoomX")
        assert engine.mode == SelectionMode.REMOVE
        assert engine.selection.cells == {cell("2026-02-10", "RoomY")}

    def test_past_day_cannot_start_drag(self):
        engine = make_engine()
        assert engine.pointer_down("2026-01-14", "RoomX") is False
        assert not engine.is_dragging
        assert len(engine.selection) == 0

    def test_today_is_selectable(self):
        engine = make_engine()
        assert engine.pointer_down("2026-01-15", "RoomA") is True

    def test_unknown_room_rejected(self):
        from roomcal.services.errors import UnknownRoomError

        engine = make_engine()
        with pytest.raises(UnknownRoomError):
            engine.pointer_down("2026-02-10", "Lobby")


class TestDrag:
    """Tests for pointer_enter"""

    def test_rectangle_spans_dates_and_rooms(self):
        engine = make_engine()
        engine.pointer_down("2026-02-10", "RoomB")
        engine.pointer_enter("2026-02-11", "RoomX")

        assert engine.selection.cells == {
            cell(d, r)
            for d in ("2026-02-10", "2026-02-11")
            for r in ("RoomB", "RoomC", "RoomX")
        }

    def test_rectangle_works_backwards(self):
        engine = make_engine()
        engine.pointer_down("2026-02-11", "RoomC")
        engine.pointer_enter("2026-02-10", "RoomB")
        assert len(engine.selection) == 4
        assert cell("2026-02-10", "RoomB") in engine.selection

    def test_accumulate_keeps_visited_rectangles(self):
        """Shrinking the rectangle does not unselect cells passed over"""
        engine = make_engine("accumulate")
        engine.pointer_down("2026-02-10", "RoomA")
        engine.pointer_enter("2026-02-12", "RoomA")
        engine.pointer_enter("2026-02-10", "RoomA")
        assert len(engine.selection) == 3

    def test_rectangle_mode_tracks_current_rectangle(self):
        engine = make_engine("rectangle", cells=[cell("2026-02-20", "RoomY")])
        engine.pointer_down("2026-02-10", "RoomA")
        engine.pointer_enter("2026-02-12", "RoomA")
        assert len(engine.selection) == 4

        engine.pointer_enter("2026-02-11", "RoomA")
        assert engine.selection.cells == {
            cell("2026-02-20", "RoomY"),
            cell("2026-02-10", "RoomA"),
            cell("2026-02-11", "RoomA"),
        }

    def test_remove_drag_discards_rectangle(self):
        cells = [cell(d, "RoomA") for d in ("2026-02-10", "2026-02-11", "2026-02-12")]
        engine = make_engine(cells=cells)
        engine.pointer_down("2026-02-10", "RoomA")
        engine.pointer_enter("2026-02-11", "RoomB")
        assert engine.selection.cells == {cell("2026-02-12", "RoomA")}

    def test_past_days_inside_rectangle_skipped(self):
        engine = make_engine()
        engine.pointer_down("2026-01-15", "RoomA")
        engine.pointer_enter("2026-01-13", "RoomB")
        assert engine.selection.cells == {cell("2026-01-15", "RoomA"), cell("2026-01-15", "RoomB")}

    def test_enter_without_drag_is_ignored(self):
        engine = make_engine()
        engine.pointer_enter("2026-02-10", "RoomA")
        assert len(engine.selection) == 0

    def test_pointer_up_keeps_selection(self):
        from roomcal.services.selection_engine import DragState

        engine = make_engine()
        engine.pointer_down("2026-02-10", "RoomA")
        engine.pointer_enter("2026-02-11", "RoomA")
        engine.pointer_up()

        assert engine.state == DragState.IDLE
        assert engine.mode is None
        assert len(engine.selection) == 2

        engine.pointer_enter("2026-02-14", "RoomY")
        assert len(engine.selection) == 2

    def test_clear_resets_everything(self):
        engine = make_engine()
        engine.pointer_down("2026-02-10", "RoomA")
        engine.clear()
        assert not engine.is_dragging
        assert len(engine.selection) == 0
