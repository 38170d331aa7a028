"""
Sync Endpoints

Trigger the sales sync, the profitability rebuild and the inventory feed.
Every endpoint needs the shared sync token and only one run may be in
flight per process.
"""

import asyncio
import secrets
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel

from salesync.analytics import InventorySync, ProfitabilityCalculator
from salesync.config import Settings, get_settings
from salesync.ingestion import create_adapter
from salesync.storage.base import TableSink
from salesync.sync import SyncEngine, SyncRequest
from salesync.sync.engine import AdapterFactory

logger = structlog.get_logger(__name__)
router = APIRouter()


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class SyncResponse(BaseModel):
    """Sales sync response"""
    ok: bool = True
    appended: int
    skipped_duplicates: int = 0
    errors: dict = {}
    timestamp: datetime


class ProfitabilityResponse(BaseModel):
    """Profitability rebuild response"""
    ok: bool = True
    updated: int
    total_revenue: float
    total_net_profit: float
    timestamp: datetime


class InventoryResponse(BaseModel):
    """Inventory feed response"""
    ok: bool = True
    updated: int
    timestamp: datetime


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_sink(request: Request) -> TableSink:
    return request.app.state.sink


def get_adapter_factory(request: Request) -> AdapterFactory:
    return getattr(request.app.state, "adapter_factory", None) or create_adapter


async def verify_token(
    settings: Settings = Depends(get_app_settings),
    x_sync_token: Optional[str] = Header(default=None),
    token: Optional[str] = Query(default=None),
) -> None:
    """Accept the token from the X-Sync-Token header or the token query parameter"""
    expected = settings.sync.token.get_secret_value() if settings.sync.token else ""
    if not expected:
        raise HTTPException(status_code=503, detail="Sync token is not configured")

    for candidate in (x_sync_token, token):
        if candidate and secrets.compare_digest(candidate, expected):
            return
    raise HTTPException(status_code=401, detail="Unauthorized: invalid or missing token")


async def run_lock(request: Request) -> AsyncGenerator[None, None]:
    """Hold the process-wide run lock for the duration of the request"""
    lock: asyncio.Lock = request.app.state.run_lock
    if lock.locked():
        raise HTTPException(status_code=409, detail="Sync already in progress")
    async with lock:
        yield


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=SyncResponse, dependencies=[Depends(verify_token), Depends(run_lock)])
async def sync_sales(
    days: Optional[int] = Query(default=None, ge=0),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    channels: Optional[str] = Query(default=None),
    sink: TableSink = Depends(get_sink),
    settings: Settings = Depends(get_app_settings),
    adapter_factory: AdapterFactory = Depends(get_adapter_factory),
) -> SyncResponse:
    """Append new order line items from the requested channels"""
    request = SyncRequest(start=start, end=end, days=days, channels=channels)
    logger.info("Sync requested", days=days, start=start, end=end, channels=channels)

    result = await SyncEngine(sink, settings=settings, adapter_factory=adapter_factory).sync(request)

    return SyncResponse(
        appended=result.appended,
        skipped_duplicates=result.skipped_duplicates,
        errors=result.errors,
        timestamp=_now(),
    )


@router.post(
    "/profitability",
    response_model=ProfitabilityResponse,
    dependencies=[Depends(verify_token), Depends(run_lock)],
)
async def sync_profitability(sink: TableSink = Depends(get_sink)) -> ProfitabilityResponse:
    """Rebuild the profitability table"""
    summary = await ProfitabilityCalculator(sink).run()
    return ProfitabilityResponse(
        updated=summary.rows,
        total_revenue=summary.total_revenue,
        total_net_profit=summary.total_net_profit,
        timestamp=_now(),
    )


@router.post(
    "/inventory",
    response_model=InventoryResponse,
    dependencies=[Depends(verify_token), Depends(run_lock)],
)
async def sync_inventory(
    sink: TableSink = Depends(get_sink),
    settings: Settings = Depends(get_app_settings),
) -> InventoryResponse:
    """Rebuild the inventory feed from Amazon FBA inventory"""
    updated = await InventorySync(sink, settings=settings).run()
    return InventoryResponse(updated=updated, timestamp=_now())
