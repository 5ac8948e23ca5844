"""
Fadetrack Backend: Health & Client Config Routes
================================================

    GET /health      → service status for probes and dashboards
    GET /api/config  → public, browser-safe settings

Status levels:
    healthy    database reachable and an AI agent configured with the
               circuit closed
    degraded   database reachable, AI search unconfigured or circuit open
    unhealthy  database unreachable (HTTP 503)

The AI upstream is not called; its status comes from configuration and the
circuit breaker so that probes never spend quota or upstream credit.
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fadetrack import __version__
from fadetrack.config import settings
from fadetrack.database import engine
from fadetrack.schemas.common import ClientConfigResponse, HealthResponse
from fadetrack.services.ai_search_service import ai_search_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check():
    db_status = "connected"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", e)

    ai_status = ai_search_service.upstream_status()

    if db_status != "connected":
        overall = "unhealthy"
    elif ai_status in ("unconfigured", "circuit_open"):
        overall = "degraded"
    else:
        overall = "healthy"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        ai_search=ai_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body


@router.get("/api/config", response_model=ClientConfigResponse, summary="Browser configuration")
async def client_config() -> ClientConfigResponse:
    return ClientConfigResponse(
        google_maps_api_key=settings.google_maps_api_key,
        storage_bucket=settings.storage_bucket,
        max_upload_size=settings.max_upload_size,
        chatkit_daily_limit=settings.chatkit_daily_limit,
        chatkit_monthly_limit=settings.chatkit_monthly_limit,
        ai_search_enabled=ai_search_service.active_agent() is not None,
    )
