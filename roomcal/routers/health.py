"""
Health Check Endpoints

- /health/live - Liveness check (is process running)
- /health/ready - Readiness check (store reachable, indexes subscribed)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import time

from ..config import settings
from ..services.calendar_session import CalendarRuntime
from ..utils.dependencies import get_runtime

router = APIRouter(prefix="/health", tags=["Health"])


def get_store_health(runtime: CalendarRuntime) -> dict:
    """Check store connectivity and latency"""
    try:
        start = time.time()
        runtime.store.ping()
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": settings.store_backend
        }
    except Exception as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


def get_subscription_health(runtime: CalendarRuntime) -> dict:
    errors = {
        "bookings": runtime.booking_index.last_error,
        "monthAvailability": runtime.availability.last_error,
    }
    failing = {name: str(err)[:100] for name, err in errors.items() if err is not None}
    if failing:
        return {"status": "degraded", "errors": failing}
    return {"status": "up"}


@router.get("/live")
async def liveness():
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
async def readiness(runtime: CalendarRuntime = Depends(get_runtime)):
    store = get_store_health(runtime)
    subscriptions = get_subscription_health(runtime)
    ready = store["status"] == "up"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "components": {
                "store": store,
                "subscriptions": subscriptions,
            },
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )
