# Models package
from .calendar_document import CalendarDocument

__all__ = ["CalendarDocument"]
