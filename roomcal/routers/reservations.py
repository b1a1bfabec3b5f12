from fastapi import APIRouter, Depends, HTTPException, Request, status
from dataclasses import asdict
from typing import List
import logging

from ..schemas.booking import Reservation
from ..schemas.calendar import (
    CellIn,
    CommitRequest,
    ReleaseRequest,
    ReservationDetail,
    WriteReportResponse,
)
from ..services.calendar_session import CalendarRuntime
from ..services.errors import CalendarError
from ..services.reservation_writer import WriteReport
from ..utils.dependencies import get_runtime, to_http_error
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reservations", tags=["Reservations"])


def report_response(report: WriteReport) -> WriteReportResponse:
    return WriteReportResponse(**asdict(report), complete=report.complete)


@router.get("", response_model=List[Reservation])
async def list_reservations(runtime: CalendarRuntime = Depends(get_runtime)):
    """All reservations, most recent first"""
    return runtime.aggregator.aggregate()


@router.get("/{reservation_id}", response_model=ReservationDetail)
async def get_reservation(
    reservation_id: str,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    reservation = runtime.aggregator.get(reservation_id)
    if reservation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reservation not found"
        )
    cells = [
        CellIn(date=cell.date_key, room=cell.room)
        for cell in runtime.aggregator.cells_for(reservation_id)
    ]
    return ReservationDetail(**reservation.model_dump(), cells=cells)


@router.post("/commit", response_model=WriteReportResponse)
@limiter.limit(get_rate_limit("commit"))
async def commit_cells(
    request: Request,
    payload: CommitRequest,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    """Occupy the given cells for one reservation with the guest data."""
    try:
        report = await runtime.writer.commit([c.to_cell() for c in payload.cells], payload.guest)
    except CalendarError as e:
        raise to_http_error(e)
    return report_response(report)


@router.post("/release", response_model=WriteReportResponse)
@limiter.limit(get_rate_limit("release"))
async def release_cells(
    request: Request,
    payload: ReleaseRequest,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    """Free the given cells; dates left without entries are deleted."""
    try:
        report = await runtime.writer.release([c.to_cell() for c in payload.cells])
    except CalendarError as e:
        raise to_http_error(e)
    return report_response(report)
