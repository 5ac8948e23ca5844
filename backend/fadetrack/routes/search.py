"""
Fadetrack Backend: AI Search Route
==================================

    POST /api/aiSearch  {query, user_email?}  → {text}

Status codes:
    400  query missing
    429  daily or monthly quota used up (Retry-After set)
    500  upstream failure, timeout or missing credentials
    503  circuit breaker open
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session
from fadetrack.middleware.rate_limit import client_ip
from fadetrack.schemas.common import ErrorResponse
from fadetrack.schemas.search import SearchRequest, SearchResult
from fadetrack.services.ai_search_service import ai_search_service
from fadetrack.services.usage_service import usage_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["AI Search"])


@router.post(
    "/aiSearch",
    response_model=SearchResult,
    responses={
        400: {"description": "Query missing", "model": ErrorResponse},
        429: {"description": "Usage limit reached", "model": ErrorResponse},
        500: {"description": "AI upstream failed or timed out", "model": ErrorResponse},
        503: {"description": "AI upstream circuit open", "model": ErrorResponse},
    },
    summary="Natural-language professional search",
)
async def ai_search(
    payload: SearchRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> SearchResult:
    identity = usage_identity(payload.user_email, client_ip(request))
    text = await ai_search_service.search(db, payload.query, identity)
    return SearchResult(text=text)
