"""
Fadetrack Backend: ChatKit Routes
=================================

    GET  /api/chatkit                 → {ok: true}
    POST /api/chatkit/session         → {client_secret, usage}
    GET  /api/chatkit/session?email=  → the caller's usage, no session created
    GET  /api/chatkit/usage?email=    → one identity, or totals and all identities

Session creation counts against the same quota as /api/aiSearch.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session
from fadetrack.middleware.rate_limit import client_ip
from fadetrack.schemas.common import ErrorResponse
from fadetrack.schemas.search import (
    SessionRequest,
    SessionResponse,
    StatusResponse,
    UsageReport,
    UsageSnapshot,
)
from fadetrack.services.ai_search_service import ai_search_service
from fadetrack.services.usage_service import usage_identity, usage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chatkit", tags=["ChatKit"])


@router.get("", response_model=StatusResponse, summary="ChatKit liveness")
async def chatkit_status() -> StatusResponse:
    return StatusResponse()


@router.post(
    "/session",
    response_model=SessionResponse,
    responses={
        429: {"description": "Usage limit reached", "model": ErrorResponse},
        500: {"description": "Missing credentials", "model": ErrorResponse},
    },
    summary="Create a ChatKit session",
)
async def create_session(
    request: Request,
    payload: Optional[SessionRequest] = None,
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    """
    Mint a client secret for the embedded chat widget.

    An upstream rejection is returned with the upstream's own status code
    and its response text under `details`.
    """
    email = payload.user_email if payload else None
    identity = usage_identity(email, client_ip(request))
    return await ai_search_service.start_session(db, identity)


@router.get("/session", response_model=UsageSnapshot, summary="Usage for the session caller")
async def session_usage(
    request: Request,
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> UsageSnapshot:
    return await usage_service.usage_for(db, usage_identity(email, client_ip(request)))


@router.get("/usage", response_model=Union[UsageSnapshot, UsageReport], summary="Usage counters")
async def usage(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> Union[UsageSnapshot, UsageReport]:
    if email:
        return await usage_service.usage_for(db, email)
    return await usage_service.report(db)
