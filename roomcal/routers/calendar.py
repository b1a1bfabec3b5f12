from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional

from ..schemas.booking import DateRecord
from ..schemas.calendar import CalendarGrid, CalendarView
from ..services.calendar_grid import build_calendar_grid
from ..services.calendar_session import CalendarRuntime
from ..utils.dates import is_year_month, to_date_key, year_month
from ..utils.dependencies import get_runtime

router = APIRouter(prefix="/api/calendar", tags=["Calendar"])


@router.get("", response_model=CalendarGrid)
async def get_calendar(
    month: Optional[str] = Query(None, description="First month shown (yyyy-MM)"),
    view: CalendarView = Query(CalendarView.CUSTOMER),
    session_id: Optional[str] = Query(None, description="Operator session whose selection is overlaid"),
    runtime: CalendarRuntime = Depends(get_runtime)
):
    """Two-month room x day grid. Customers see availability only."""
    month = month or year_month(runtime.today_provider())
    if not is_year_month(month):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid month: {month} (expected yyyy-MM)"
        )

    selection = None
    if session_id and view == CalendarView.OPERATOR:
        session = runtime.get_session(session_id)
        if session is not None:
            selection = session.selection

    return build_calendar_grid(month, runtime.booking_index, runtime.catalog, view, selection)


@router.get("/dates/{date_key}", response_model=DateRecord)
async def get_date_record(
    date_key: str,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    """Stored entries of one date (operator)"""
    try:
        key = to_date_key(date_key)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid date: {date_key}"
        )
    record = runtime.booking_index.record_for(key)
    if record is None:
        return DateRecord(date_key=key)
    return record
