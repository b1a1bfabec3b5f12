"""
Operator Sessions

Server-side selection state for an operator UI: pointer events drive the
drag engine, the guest form is kept between edits, and commit/release
write the accumulated selection. Sessions left idle past
SESSION_TTL_MINUTES are dropped.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..schemas.booking import GuestForm
from ..schemas.calendar import (
    CellIn,
    PointerEvent,
    PointerEventType,
    SessionState,
    WriteReportResponse,
)
from ..services.calendar_session import CalendarRuntime, CalendarSession
from ..services.errors import CalendarError
from ..utils.dependencies import get_runtime, get_session_or_404, to_http_error
from ..utils.logging_config import set_session_context
from ..utils.rate_limiter import limiter, get_rate_limit
from .reservations import report_response

router = APIRouter(prefix="/api/sessions", tags=["Sessions"])


def session_state(session: CalendarSession) -> SessionState:
    return SessionState(
        session_id=session.session_id,
        dragging=session.engine.is_dragging,
        mode=session.engine.mode.value if session.engine.mode else None,
        busy=session.busy,
        selection=[
            CellIn(date=cell.date_key, room=cell.room)
            for cell in session.selection.sorted_cells(session.runtime.catalog)
        ],
        guest=session.guest_form,
        selected_reservation=session.selected_reservation(),
    )


@router.post("", response_model=SessionState, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("session_open"))
async def open_session(request: Request, runtime: CalendarRuntime = Depends(get_runtime)):
    return session_state(runtime.open_session())


@router.get("/{session_id}", response_model=SessionState)
async def get_session(session_id: str, runtime: CalendarRuntime = Depends(get_runtime)):
    return session_state(get_session_or_404(runtime, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, runtime: CalendarRuntime = Depends(get_runtime)):
    if not runtime.close_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )


@router.post("/{session_id}/pointer", response_model=SessionState)
@limiter.limit(get_rate_limit("session_event"))
async def pointer_event(
    request: Request,
    session_id: str,
    payload: PointerEvent,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    session = get_session_or_404(runtime, session_id)
    set_session_context(session_id)

    if payload.event in (PointerEventType.DOWN, PointerEventType.ENTER):
        if not payload.date or not payload.room:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Pointer down/enter needs a date and a room"
            )
        try:
            if payload.event == PointerEventType.DOWN:
                session.pointer_down(payload.date, payload.room)
            else:
                session.pointer_enter(payload.date, payload.room)
        except CalendarError as e:
            raise to_http_error(e)
    elif payload.event == PointerEventType.UP:
        session.pointer_up()
    else:
        session.cancel_drag()

    return session_state(session)


@router.put("/{session_id}/guest", response_model=SessionState)
async def set_guest_form(
    session_id: str,
    payload: GuestForm,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    session = get_session_or_404(runtime, session_id)
    session.set_guest_form(payload)
    return session_state(session)


@router.post("/{session_id}/prefill", response_model=SessionState)
async def prefill_guest_form(session_id: str, runtime: CalendarRuntime = Depends(get_runtime)):
    """Copy the selected reservation's guest data into the form."""
    session = get_session_or_404(runtime, session_id)
    session.prefill_guest_form()
    return session_state(session)


@router.post("/{session_id}/clear", response_model=SessionState)
async def clear_selection(session_id: str, runtime: CalendarRuntime = Depends(get_runtime)):
    session = get_session_or_404(runtime, session_id)
    session.clear_selection()
    return session_state(session)


@router.post("/{session_id}/commit", response_model=WriteReportResponse)
@limiter.limit(get_rate_limit("commit"))
async def commit_session(
    request: Request,
    session_id: str,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    session = get_session_or_404(runtime, session_id)
    set_session_context(session_id)
    try:
        report = await session.commit()
    except CalendarError as e:
        raise to_http_error(e)
    return report_response(report)


@router.post("/{session_id}/release", response_model=WriteReportResponse)
@limiter.limit(get_rate_limit("release"))
async def release_session(
    request: Request,
    session_id: str,
    runtime: CalendarRuntime = Depends(get_runtime)
):
    session = get_session_or_404(runtime, session_id)
    set_session_context(session_id)
    try:
        report = await session.release()
    except CalendarError as e:
        raise to_http_error(e)
    return report_response(report)
