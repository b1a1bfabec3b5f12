"""
Structured Logging

JSON log lines for the calendar service:
- request and operator session ids from context variables
- entity context (reservation, date record, collection)
- write timings for commit/release
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional, Any, Dict, Iterable
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar('request_id', default='')
session_id_var: ContextVar[str] = ContextVar('session_id', default='')

# LogRecord attributes copied into the JSON line when a caller set them
CONTEXT_FIELDS = ("entity_type", "entity_id", "duration_ms", "operation")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, suitable for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for key, var in (("request_id", request_id_var), ("session_id", session_id_var)):
            value = var.get()
            if value:
                log_data[key] = value

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            log_data["data"] = extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Adapter with calendar-specific helpers. Plain .info()/.error() calls
    work as on any logger.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        operation: Optional[str] = None,
        **extra_data
    ):
        extra = {
            'entity_type': entity_type,
            'entity_id': entity_id,
            'duration_ms': duration_ms,
            'operation': operation,
        }
        extra = {k: v for k, v in extra.items() if v is not None}
        if extra_data:
            extra['extra_data'] = extra_data
        self.log(level, msg, extra=extra)

    def reservation_committed(
        self,
        reservation_id: str,
        guest_name: str,
        dates: Iterable[str],
        duration_ms: float = None
    ):
        dates = list(dates)
        self.log_with_context(
            logging.INFO,
            f"Reservation committed: {guest_name} ({len(dates)} dates)",
            entity_type="reservation",
            entity_id=reservation_id,
            duration_ms=duration_ms,
            operation="commit",
            dates=dates
        )

    def cells_released(self, dates: Iterable[str], cell_count: int, duration_ms: float = None):
        dates = list(dates)
        self.log_with_context(
            logging.INFO,
            f"Released {cell_count} cells across {len(dates)} dates",
            entity_type="date_record",
            duration_ms=duration_ms,
            operation="release",
            dates=dates,
            cell_count=cell_count
        )

    def subscription_failed(self, collection: str, error: Exception):
        """Push-channel failure; the subscriber keeps its last snapshot."""
        self.log_with_context(
            logging.ERROR,
            f"Subscription error on {collection}: {error}",
            entity_type="collection",
            entity_id=collection
        )


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Configure root, roomcal and (optionally) uvicorn loggers.

    Args:
        level: Log level name
        json_format: JSON lines (production) or plain text (development)
        include_uvicorn: Route uvicorn loggers through the same handler
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        JSONFormatter() if json_format
        else logging.Formatter('%(asctime)s %(levelname)-7s [%(name)s] %(message)s')
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]
    logging.getLogger("roomcal").setLevel(log_level)

    if include_uvicorn:
        for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
            logging.getLogger(name).handlers = [handler]

    for noisy in ("httpx", "sqlalchemy.engine", "alembic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(name), {})


def set_request_context(request_id: str):
    request_id_var.set(request_id)


def set_session_context(session_id: str):
    """Tag log records emitted in this context with an operator session."""
    session_id_var.set(session_id)


def clear_session_context():
    session_id_var.set('')
