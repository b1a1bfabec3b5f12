"""
Selection Engine

Operator cell selection on the date x room grid.

Selection is the single owner of the selected cells; everything that
mutates it goes through its methods so listeners see every change.

SelectionEngine is the pointer state machine:

    IDLE --pointer_down(unblocked cell)--> DRAGGING
    DRAGGING --pointer_enter(cell)--> DRAGGING   (apply rectangle)
    DRAGGING --pointer_up / cancel--> IDLE

The mode (add/remove) is fixed at pointer-down: remove when the start cell
is already selected, add otherwise. Past days are blocked; closed months
are not, so an operator can pre-block a closed month.
"""

import logging
from datetime import date
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set

from ..utils.dates import DateLike, date_span, get_today, to_date, to_date_key
from ..schemas.calendar import Cell
from .room_catalog import RoomCatalog

logger = logging.getLogger(__name__)


class SelectionMode(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class DragMode(str, Enum):
    # Every rectangle visited during the drag stays applied
    ACCUMULATE = "accumulate"
    # Only the rectangle under the pointer is applied on top of the pre-drag selection
    RECTANGLE = "rectangle"


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class Selection:
    """Working-memory set of selected cells. Never persisted."""

    def __init__(self, cells: Iterable[Cell] = ()):
        self._cells: Set[Cell] = set()
        self._listeners: List[Callable[["Selection"], None]] = []
        for cell in cells:
            self._cells.add(Cell(to_date_key(cell[0]), cell[1]))

    def __contains__(self, cell: object) -> bool:
        return cell in self._cells

    def __iter__(self) -> Iterator[Cell]:
        return iter(set(self._cells))

    def __len__(self) -> int:
        return len(self._cells)

    def __bool__(self) -> bool:
        return bool(self._cells)

    @property
    def cells(self) -> Set[Cell]:
        return set(self._cells)

    def subscribe(self, listener: Callable[["Selection"], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Selection listener failed: {e}")

    def add(self, cells: Iterable[Cell]) -> int:
        before = len(self._cells)
        self._cells.update(cells)
        added = len(self._cells) - before
        if added:
            self._changed()
        return added

    def discard(self, cells: Iterable[Cell]) -> int:
        before = len(self._cells)
        self._cells.difference_update(cells)
        removed = before - len(self._cells)
        if removed:
            self._changed()
        return removed

    def replace(self, cells: Iterable[Cell]) -> None:
        cells = set(cells)
        if cells != self._cells:
            self._cells = cells
            self._changed()

    def clear(self) -> None:
        if self._cells:
            self._cells = set()
            self._changed()

    def dates(self) -> List[str]:
        return sorted({cell.date_key for cell in self._cells})

    def sorted_cells(self, catalog: RoomCatalog) -> List[Cell]:
        """By date, then by catalog order."""
        return sorted(self._cells, key=lambda c: (c.date_key, catalog.sort_key(c.room)))

    def group_by_date(self, catalog: RoomCatalog) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = {}
        for cell in self.sorted_cells(catalog):
            groups.setdefault(cell.date_key, []).append(cell.room)
        return groups


class SelectionEngine:
    def __init__(
        self,
        catalog: RoomCatalog,
        selection: Optional[Selection] = None,
        today_provider: Callable[[], date] = get_today,
        drag_mode: DragMode = DragMode.ACCUMULATE,
    ):
        self.catalog = catalog
        self.selection = selection if selection is not None else Selection()
        self.today_provider = today_provider
        self.drag_mode = DragMode(drag_mode)

        self.state = DragState.IDLE
        self.mode: Optional[SelectionMode] = None
        self.anchor: Optional[Cell] = None
        self._base: Set[Cell] = set()

    @property
    def is_dragging(self) -> bool:
        return self.state == DragState.DRAGGING

    def _cell(self, day: DateLike, room: str) -> Cell:
        return Cell(to_date_key(day), self.catalog.require(room))

    def is_blocked(self, day: DateLike) -> bool:
        return to_date(day) < self.today_provider()

    def rectangle(self, corner: Cell, other: Cell) -> List[Cell]:
        """Axis-aligned block between two cells: calendar order x catalog order."""
        rooms = self.catalog.rooms_between(corner.room, other.room)
        return [
            Cell(day.isoformat(), room)
            for day in date_span(corner.date_key, other.date_key)
            for room in rooms
        ]

    def pointer_down(self, day: DateLike, room: str) -> bool:
        """Start a drag. Returns False when the cell is blocked."""
        cell = self._cell(day, room)
        if self.is_blocked(cell.date_key):
            return False

        self.mode = SelectionMode.REMOVE if cell in self.selection else SelectionMode.ADD
        self.anchor = cell
        self.state = DragState.DRAGGING
        self._base = self.selection.cells

        if self.mode == SelectionMode.ADD:
            self.selection.add([cell])
        else:
            self.selection.discard([cell])
        return True

    def pointer_enter(self, day: DateLike, room: str) -> None:
        if not self.is_dragging or self.anchor is None:
            return

        current = self._cell(day, room)
        cells = [c for c in self.rectangle(self.anchor, current) if not self.is_blocked(c.date_key)]

        if self.drag_mode == DragMode.RECTANGLE:
            if self.mode == SelectionMode.ADD:
                self.selection.replace(self._base | set(cells))
            else:
                self.selection.replace(self._base - set(cells))
            return

        if self.mode == SelectionMode.ADD:
            self.selection.add(cells)
        else:
            self.selection.discard(cells)

    def pointer_up(self) -> None:
        """End the drag wherever the pointer is; the selection stays as built."""
        self.state = DragState.IDLE
        self.mode = None
        self.anchor = None
        self._base = set()

    cancel = pointer_up

    def clear(self) -> None:
        self.pointer_up()
        self.selection.clear()
