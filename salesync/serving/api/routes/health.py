"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from salesync.config import get_settings
from salesync.database.connection import check_database_health
from salesync.database.sink import DatabaseTableSink

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    sync_running: bool
    checks: Dict[str, Any]


def _uses_database(request: Request) -> bool:
    return isinstance(getattr(request.app.state, "sink", None), DatabaseTableSink)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    Checks:
    - Application status
    - Database connectivity (when the database sink is in use)
    - Whether a sync run is in flight
    """
    settings = getattr(request.app.state, "settings", None) or get_settings()
    checks: Dict[str, Any] = {}
    overall_status = "healthy"

    if _uses_database(request):
        db_health = await check_database_health()
        checks["database"] = db_health
        if db_health.get("status") != "healthy":
            overall_status = "degraded"
    else:
        checks["sink"] = {"status": "healthy", "type": type(request.app.state.sink).__name__}

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        sync_running=request.app.state.run_lock.locked(),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 if the application is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """Returns 200 if the application is ready to receive traffic."""
    if _uses_database(request):
        db_health = await check_database_health()
        if db_health.get("status") != "healthy":
            response.status_code = 503
            return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}
