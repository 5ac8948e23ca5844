"""
Fadetrack Backend: Service Menu & Portfolio Routes
==================================================

CRUD for a professional's child records:

    /api/services    GET ?professionalId=  POST  PUT  DELETE ?id=
    /api/portfolio   GET ?professionalEmail=  POST  PUT  DELETE ?id=
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session
from fadetrack.exceptions import ValidationError
from fadetrack.schemas.common import ErrorResponse, MessageResponse
from fadetrack.schemas.professional import (
    PortfolioCreate,
    PortfolioEnvelope,
    PortfolioListResponse,
    PortfolioUpdate,
    ServiceCreate,
    ServiceEnvelope,
    ServiceListResponse,
    ServiceUpdate,
)
from fadetrack.services.offerings_service import offerings_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Offerings"])

_NOT_FOUND = {404: {"description": "Unknown id", "model": ErrorResponse}}


# ── Services ──────────────────────────────────────────────────────────────


@router.get("/services", response_model=ServiceListResponse, summary="A professional's service menu")
async def list_services(
    professional_id: Optional[uuid.UUID] = Query(default=None, alias="professionalId"),
    db: AsyncSession = Depends(get_db_session),
) -> ServiceListResponse:
    if professional_id is None:
        raise ValidationError("Professional ID is required", field="professionalId")
    return ServiceListResponse(services=await offerings_service.list_services(db, professional_id))


@router.post("/services", status_code=201, response_model=ServiceEnvelope, responses=_NOT_FOUND)
async def create_service(
    payload: ServiceCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ServiceEnvelope:
    return ServiceEnvelope(service=await offerings_service.create_service(db, payload))


@router.put("/services", response_model=ServiceEnvelope, responses=_NOT_FOUND)
async def update_service(
    payload: ServiceUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ServiceEnvelope:
    return ServiceEnvelope(service=await offerings_service.update_service(db, payload))


@router.delete("/services", response_model=MessageResponse, responses=_NOT_FOUND)
async def delete_service(
    id: Optional[uuid.UUID] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    if id is None:
        raise ValidationError("Service ID is required", field="id")
    await offerings_service.delete_service(db, id)
    return MessageResponse(message="Service deleted successfully")


# ── Portfolio ─────────────────────────────────────────────────────────────


@router.get("/portfolio", response_model=PortfolioListResponse, summary="A professional's portfolio")
async def list_portfolio(
    professional_email: Optional[str] = Query(default=None, alias="professionalEmail"),
    db: AsyncSession = Depends(get_db_session),
) -> PortfolioListResponse:
    if not professional_email:
        raise ValidationError("Professional email is required", field="professionalEmail")
    return PortfolioListResponse(portfolio=await offerings_service.list_portfolio(db, professional_email))


@router.post(
    "/portfolio",
    status_code=201,
    response_model=PortfolioEnvelope,
    responses={400: {"description": "No profile for this email", "model": ErrorResponse}},
)
async def create_portfolio_item(
    payload: PortfolioCreate,
    db: AsyncSession = Depends(get_db_session),
) -> PortfolioEnvelope:
    return PortfolioEnvelope(portfolio_item=await offerings_service.create_portfolio_item(db, payload))


@router.put("/portfolio", response_model=PortfolioEnvelope, responses=_NOT_FOUND)
async def update_portfolio_item(
    payload: PortfolioUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> PortfolioEnvelope:
    return PortfolioEnvelope(portfolio_item=await offerings_service.update_portfolio_item(db, payload))


@router.delete("/portfolio", response_model=MessageResponse, responses=_NOT_FOUND)
async def delete_portfolio_item(
    id: Optional[uuid.UUID] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    if id is None:
        raise ValidationError("Portfolio item ID is required", field="id")
    await offerings_service.delete_portfolio_item(db, id)
    return MessageResponse(message="Portfolio item deleted successfully")
