"""
Fadetrack Backend: Role & Navigation Routes
===========================================

    GET  /api/userRoleSimple?email=        → {role, hasRecord}
    POST /api/userRoleSimple               → 201 on insert, 200 on update
    GET  /api/navigation?email=&tab=&host= → {role, hasRecord, tabs, activeTab}

A user without a role record is a customer with `hasRecord: false`.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session
from fadetrack.exceptions import ValidationError
from fadetrack.schemas.account import NavigationResponse, RoleResponse, RoleUpdate, RoleWriteResponse
from fadetrack.schemas.common import ErrorResponse
from fadetrack.services.role_service import role_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Roles"])


@router.get(
    "/userRoleSimple",
    response_model=RoleResponse,
    responses={400: {"description": "Email missing", "model": ErrorResponse}},
    summary="Resolve a user's role",
)
async def get_user_role(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    if not email:
        raise ValidationError("Email is required", field="email")
    return await role_service.get_role(db, email)


@router.post(
    "/userRoleSimple",
    status_code=201,
    response_model=RoleWriteResponse,
    responses={
        200: {"description": "Existing role updated", "model": RoleWriteResponse},
        400: {"description": "Invalid role", "model": ErrorResponse},
    },
    summary="Create or update a user's role",
)
async def set_user_role(
    payload: RoleUpdate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> RoleWriteResponse:
    role, created = await role_service.set_role(db, payload.user_email, payload.role)
    if not created:
        response.status_code = 200
    return RoleWriteResponse(role=role.role, has_record=role.has_record)


@router.get("/navigation", response_model=NavigationResponse, summary="Tabs visible to a user")
async def navigation(
    request: Request,
    email: Optional[str] = Query(default=None),
    tab: Optional[str] = Query(default=None),
    host: Optional[str] = Query(default=None, description="Defaults to the request Host header"),
    db: AsyncSession = Depends(get_db_session),
) -> NavigationResponse:
    return await role_service.navigation(db, email, tab, host or request.headers.get("host"))
