from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from typing import Optional
import logging
import uuid

from . import __version__
from .config import settings
from .database import SessionLocal, create_tables
from .services.calendar_session import CalendarRuntime
from .services.document_store import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from .services.room_catalog import get_room_catalog
from .utils.logging_config import clear_session_context, set_request_context, setup_logging
from .utils.rate_limiter import limiter

from .routers import availability, calendar, health, reservations, sessions

logger = logging.getLogger(__name__)


def build_store() -> DocumentStore:
    """Document store selected by STORE_BACKEND"""
    if settings.store_backend == "memory":
        logger.warning("Using in-memory document store; data is lost on restart")
        return InMemoryDocumentStore()
    create_tables()
    return SqlDocumentStore(SessionLocal)


def build_runtime() -> CalendarRuntime:
    return CalendarRuntime(build_store(), get_room_catalog())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(settings.log_level, json_format=settings.log_json)

    logger.info(f"Starting roomcal {__version__} ({settings.environment})")
    logger.info(f"CORS Origins: {settings.cors_origins}")

    if getattr(app.state, "runtime", None) is None:
        app.state.runtime = build_runtime()
    runtime: CalendarRuntime = app.state.runtime
    runtime.start()
    logger.info(f"Calendar ready: {len(runtime.catalog)} rooms, drag mode {runtime.drag_mode.value}")

    yield

    logger.info("Shutting down roomcal...")
    runtime.stop()


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        clear_session_context()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, try again later"}
    )


def create_app(runtime: Optional[CalendarRuntime] = None) -> FastAPI:
    """Build the API; pass a runtime to use a specific store (tests, tools)."""
    app = FastAPI(
        title="Room Calendar API",
        description="Room availability calendar and reservation engine",
        version=__version__,
        lifespan=lifespan
    )
    app.state.runtime = runtime
    app.state.limiter = limiter

    # CORS must be registered first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    app.include_router(health.router)
    app.include_router(calendar.router)
    app.include_router(reservations.router)
    app.include_router(availability.router)
    app.include_router(sessions.router)

    @app.get("/")
    async def root():
        return {
            "message": "Room Calendar API",
            "version": __version__,
            "docs": "/docs",
            "status": "running"
        }

    return app


app = create_app()
