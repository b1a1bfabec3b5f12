# Services package
from .errors import (
    CalendarError, ValidationError, UnknownRoomError, SelectionBusyError,
    StoreError, StoreReadError, StoreWriteError, VersionConflictError,
    PartialWriteError, SubscriptionError
)
from .document_store import (
    DocumentStore, InMemoryDocumentStore, SqlDocumentStore,
    StoredDocument, ChangeEvent, BOOKINGS, MONTH_AVAILABILITY, SERVER_TIMESTAMP
)
from .room_catalog import RoomCatalog, get_room_catalog
from .availability_index import AvailabilityIndex
from .booking_index import BookingIndex
from .selection_engine import Selection, SelectionEngine, SelectionMode, DragMode, DragState
from .reservation_aggregator import ReservationAggregator
from .reservation_writer import ReservationWriter, WriteReport
from .calendar_grid import build_calendar_grid
from .calendar_session import CalendarRuntime, CalendarSession

__all__ = [
    "CalendarError", "ValidationError", "UnknownRoomError", "SelectionBusyError",
    "StoreError", "StoreReadError", "StoreWriteError", "VersionConflictError",
    "PartialWriteError", "SubscriptionError",
    "DocumentStore", "InMemoryDocumentStore", "SqlDocumentStore",
    "StoredDocument", "ChangeEvent", "BOOKINGS", "MONTH_AVAILABILITY", "SERVER_TIMESTAMP",
    "RoomCatalog", "get_room_catalog",
    "AvailabilityIndex", "BookingIndex",
    "Selection", "SelectionEngine", "SelectionMode", "DragMode", "DragState",
    "ReservationAggregator",
    "ReservationWriter", "WriteReport",
    "build_calendar_grid",
    "CalendarRuntime", "CalendarSession",
]
