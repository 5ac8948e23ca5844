"""
Fadetrack Backend: Reminder Routes
==================================

    GET    /api/reminders?email=   a user's cadences
    POST   /api/reminders          {user_email, reminder_days}
    DELETE /api/reminders          {id, user_email}
    GET    /api/checkReminders     due-status of every active reminder
    POST   /api/sendReminders      email the due ones (meant for a scheduler)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session, utcnow
from fadetrack.exceptions import ValidationError
from fadetrack.schemas.account import (
    ReminderCreate,
    ReminderDelete,
    ReminderListResponse,
    ReminderResponse,
    ReminderSendResponse,
    ReminderStatusResponse,
)
from fadetrack.schemas.common import ErrorResponse, MessageResponse
from fadetrack.services.reminder_service import reminder_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reminders"])


@router.get("/reminders", response_model=ReminderListResponse)
async def list_reminders(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> ReminderListResponse:
    if not email:
        raise ValidationError("Email is required", field="email")
    reminders = await reminder_service.list_reminders(db, email)
    return ReminderListResponse(reminders=[ReminderResponse.model_validate(r) for r in reminders])


@router.post("/reminders", status_code=201, response_model=ReminderResponse)
async def create_reminder(
    payload: ReminderCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ReminderResponse:
    return ReminderResponse.model_validate(await reminder_service.create_reminder(db, payload))


@router.delete(
    "/reminders",
    response_model=MessageResponse,
    responses={404: {"description": "Not found or not owned", "model": ErrorResponse}},
)
async def delete_reminder(
    payload: ReminderDelete,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await reminder_service.delete_reminder(db, payload.id, payload.user_email)
    return MessageResponse(message="Reminder deleted successfully")


@router.get("/checkReminders", response_model=ReminderStatusResponse, summary="Reminder due-status")
async def check_reminders(db: AsyncSession = Depends(get_db_session)) -> ReminderStatusResponse:
    now = utcnow()
    return ReminderStatusResponse(reminders=await reminder_service.status(db, now), current_time=now)


@router.post(
    "/sendReminders",
    response_model=ReminderSendResponse,
    responses={500: {"description": "Email credentials missing", "model": ErrorResponse}},
    summary="Send due reminder emails",
)
async def send_reminders(db: AsyncSession = Depends(get_db_session)) -> ReminderSendResponse:
    return await reminder_service.send_due(db)
