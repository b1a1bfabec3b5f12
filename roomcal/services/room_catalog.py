"""
Room Catalog

Fixed, ordered list of bookable rooms. Catalog order is the room axis of
the calendar grid, so range selection and sorting go through here.
"""

from functools import lru_cache
from typing import Iterable, Iterator, List, Sequence

from ..config import settings
from .errors import UnknownRoomError, ValidationError


class RoomCatalog:
    def __init__(self, rooms: Sequence[str]):
        names = [r.strip() for r in rooms if r and r.strip()]
        if not names:
            raise ValidationError("Room catalog cannot be empty")
        if len(set(names)) != len(names):
            raise ValidationError("Room catalog contains duplicate rooms")
        self._rooms = tuple(names)
        self._positions = {room: i for i, room in enumerate(self._rooms)}

    @property
    def rooms(self) -> List[str]:
        return list(self._rooms)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room: object) -> bool:
        return room in self._positions

    def index_of(self, room: str) -> int:
        try:
            return self._positions[room]
        except KeyError:
            raise UnknownRoomError(room)

    def require(self, room: str) -> str:
        self.index_of(room)
        return room

    def rooms_between(self, first: str, second: str) -> List[str]:
        """Rooms from first to second inclusive, in catalog order, either direction."""
        lo, hi = sorted((self.index_of(first), self.index_of(second)))
        return list(self._rooms[lo:hi + 1])

    def sort_rooms(self, rooms: Iterable[str]) -> List[str]:
        """Deduplicate and order by catalog position; unknown rooms go last, by name."""
        unique = set(rooms)
        known = sorted((r for r in unique if r in self._positions), key=self._positions.__getitem__)
        unknown = sorted(r for r in unique if r not in self._positions)
        return known + unknown

    def sort_key(self, room: str):
        return (0, self._positions[room], "") if room in self._positions else (1, 0, room)


@lru_cache()
def get_room_catalog() -> RoomCatalog:
    """Catalog built from the ROOMS setting"""
    return RoomCatalog(settings.room_list)
