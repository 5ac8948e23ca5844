"""
Fadetrack Backend: Account Routes
=================================

    DELETE /api/deleteAccount                 {user_email, confirmation_text}
    GET    /api/username?email= | ?username=  current name, or availability
    POST   /api/username                      claim a name
    GET    /api/haircuts?email=               personal haircut log
    POST   /api/haircuts
    DELETE /api/deleteHaircut                 {id, user_email}
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session
from fadetrack.exceptions import ValidationError
from fadetrack.schemas.account import (
    AccountDelete,
    AccountDeleteResponse,
    HaircutCreate,
    HaircutDelete,
    HaircutListResponse,
    HaircutResponse,
    UsernameAvailability,
    UsernameLookup,
    UsernameResponse,
    UsernameSet,
)
from fadetrack.schemas.common import ErrorResponse, MessageResponse
from fadetrack.services.account_service import ACCOUNT_DELETED_MESSAGE, account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Account"])


@router.delete(
    "/deleteAccount",
    response_model=AccountDeleteResponse,
    responses={400: {"description": "Wrong confirmation text", "model": ErrorResponse}},
    summary="Delete all account data",
)
async def delete_account(
    payload: AccountDelete,
    db: AsyncSession = Depends(get_db_session),
) -> AccountDeleteResponse:
    """
    Remove reminders, haircuts, username, role and usage rows.

    Reviews stay published. The sign-in identity is not touched here.
    """
    deleted = await account_service.delete_account(db, payload.user_email)
    return AccountDeleteResponse(message=ACCOUNT_DELETED_MESSAGE, deleted=deleted)


@router.get(
    "/username",
    response_model=Union[UsernameAvailability, UsernameLookup],
    summary="Look up a user's name or check availability",
)
async def get_username(
    email: Optional[str] = Query(default=None),
    username: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> Union[UsernameAvailability, UsernameLookup]:
    if username is not None:
        return await account_service.check_username(db, username)
    if email:
        return UsernameLookup(username=await account_service.get_username(db, email))
    raise ValidationError("Email or username is required")


@router.post(
    "/username",
    response_model=UsernameResponse,
    responses={409: {"description": "Name already taken", "model": ErrorResponse}},
    summary="Claim a username",
)
async def set_username(
    payload: UsernameSet,
    db: AsyncSession = Depends(get_db_session),
) -> UsernameResponse:
    name = await account_service.set_username(db, payload.user_email, payload.username)
    return UsernameResponse(username=name)


@router.get("/haircuts", response_model=HaircutListResponse, summary="Haircut log")
async def list_haircuts(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> HaircutListResponse:
    if not email:
        raise ValidationError("Email is required", field="email")
    haircuts = await account_service.list_haircuts(db, email)
    return HaircutListResponse(haircuts=[HaircutResponse.model_validate(h) for h in haircuts])


@router.post("/haircuts", status_code=201, response_model=HaircutResponse, summary="Log a haircut")
async def add_haircut(
    payload: HaircutCreate,
    db: AsyncSession = Depends(get_db_session),
) -> HaircutResponse:
    return HaircutResponse.model_validate(await account_service.add_haircut(db, payload))


@router.delete(
    "/deleteHaircut",
    response_model=MessageResponse,
    responses={404: {"description": "Not found or not owned", "model": ErrorResponse}},
)
async def delete_haircut(
    payload: HaircutDelete,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await account_service.delete_haircut(db, payload.id, payload.user_email)
    return MessageResponse(message="Haircut deleted successfully")
