"""
Calendar engine errors.

ValidationError blocks an operation before any write. Store errors wrap
collaborator failures. PartialWriteError carries the WriteReport of a
multi-date operation that stopped partway.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .reservation_writer import WriteReport


class CalendarError(Exception):
    """Base class for calendar engine errors"""


class ValidationError(CalendarError):
    """Empty selection, missing guest fields or malformed keys"""


class UnknownRoomError(ValidationError):
    def __init__(self, room: str):
        super().__init__(f"Unknown room: {room}")
        self.room = room


class SelectionBusyError(CalendarError):
    """Another Commit/Release over overlapping cells is still running"""


class StoreError(CalendarError):
    def __init__(self, message: str, collection: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.collection = collection
        self.key = key


class StoreReadError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


class VersionConflictError(StoreWriteError):
    """Conditional write lost against a concurrent writer"""

    def __init__(self, collection: str, key: str, expected: int, actual: int):
        super().__init__(
            f"Version conflict on {collection}/{key}: expected {expected}, found {actual}",
            collection=collection,
            key=key,
        )
        self.expected = expected
        self.actual = actual


class PartialWriteError(StoreWriteError):
    """A multi-date Commit/Release stopped partway; report names what was applied"""

    def __init__(self, report: "WriteReport", cause: Exception):
        applied = ", ".join(report.applied_dates) or "none"
        super().__init__(
            f"{report.operation} failed on {report.failed_date}: {cause} "
            f"(applied: {applied})",
            collection="bookings",
            key=report.failed_date,
        )
        self.report = report
        self.cause = cause


class SubscriptionError(CalendarError):
    """Push-channel failure; reported, never fatal to the subscriber"""

    def __init__(self, collection: str, cause: Exception):
        super().__init__(f"Subscription to {collection} failed: {cause}")
        self.collection = collection
        self.cause = cause
