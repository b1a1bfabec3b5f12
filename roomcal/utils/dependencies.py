import logging

from fastapi import HTTPException, Request, status

from ..services.calendar_session import CalendarRuntime, CalendarSession
from ..services.errors import (
    CalendarError,
    PartialWriteError,
    SelectionBusyError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def get_runtime(request: Request) -> CalendarRuntime:
    """Dependency: the calendar runtime created at startup"""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Calendar is not ready"
        )
    return runtime


def get_session_or_404(runtime: CalendarRuntime, session_id: str) -> CalendarSession:
    session = runtime.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
    return session


def to_http_error(error: CalendarError) -> HTTPException:
    """Map engine errors onto HTTP responses"""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    if isinstance(error, SelectionBusyError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, PartialWriteError):
        report = error.report
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(error),
                "operation": report.operation,
                "reservation_id": report.reservation_id,
                "applied_dates": report.applied_dates,
                "failed_date": report.failed_date,
                "pending_dates": report.pending_dates,
            }
        )
    if isinstance(error, StoreError):
        logger.error(f"Store failure: {error}")
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
