from fastapi import APIRouter, Depends, Request
from typing import List

from ..schemas.booking import MonthAvailability
from ..schemas.calendar import MonthAvailabilityUpdate
from ..services.calendar_session import CalendarRuntime
from ..services.errors import CalendarError
from ..utils.dependencies import get_runtime, to_http_error
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/availability", tags=["Availability"])


@router.get("", response_model=List[MonthAvailability])
async def list_month_availability(runtime: CalendarRuntime = Depends(get_runtime)):
    """Months with an explicit open/closed flag. Missing months are open for
    operators and closed for customers."""
    months = runtime.availability.months()
    return [months[key] for key in sorted(months)]


@router.put("/{month}", response_model=MonthAvailability)
@limiter.limit(get_rate_limit("availability_update"))
async def set_month_availability(
    request: Request,
    month: str,
    payload: MonthAvailabilityUpdate,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    try:
        return await runtime.availability.set_open(month, payload.is_open)
    except CalendarError as e:
        raise to_http_error(e)
