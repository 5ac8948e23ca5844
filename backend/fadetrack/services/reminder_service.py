"""
Fadetrack Backend: Rebooking Reminders
======================================

What:  Per-user "time for your next cut" cadences and the job that emails
       the ones that are due.
How:   A reminder is due once `reminder_days` have passed since it was
       last sent (or since creation, when never sent). `send_due()` posts
       one email per due reminder to the Resend API and stamps
       `last_sent_at` on success. A failed send is reported and left due
       for the next run; it is not retried in-process.
"""

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.config import settings
from fadetrack.database import utcnow
from fadetrack.exceptions import DatabaseError, NotFoundError, ServiceMisconfiguredError
from fadetrack.models.account import Reminder
from fadetrack.schemas.account import ReminderCreate, ReminderSendResponse, ReminderStatus

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = "Time for your next haircut!"
REMINDER_HTML = (
    "<p>Hey! It's time to book your next haircut. "
    "Log in to Fadetrack to keep your style fresh.</p>"
)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def next_due(reminder: Reminder) -> datetime:
    anchor = reminder.last_sent_at or reminder.created_at
    return _aware(anchor) + timedelta(days=reminder.reminder_days)


def reminder_status(reminder: Reminder, now: datetime) -> ReminderStatus:
    due_at = next_due(reminder)
    return ReminderStatus(
        id=reminder.id,
        user_email=reminder.user_email,
        reminder_days=reminder.reminder_days,
        last_sent_at=reminder.last_sent_at,
        next_reminder_due=due_at,
        is_due=due_at <= now,
        days_until_due=math.ceil((due_at - now).total_seconds() / 86400),
    )


class ReminderService:

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        from_email: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.base_url = (base_url or settings.resend_base_url).rstrip("/")
        self.from_email = from_email or settings.reminder_from_email

    async def list_reminders(self, db: AsyncSession, user_email: str) -> List[Reminder]:
        result = await db.execute(
            select(Reminder)
            .where(Reminder.user_email == user_email)
            .order_by(Reminder.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_reminder(self, db: AsyncSession, payload: ReminderCreate) -> Reminder:
        reminder = Reminder(user_email=payload.user_email, reminder_days=payload.reminder_days)
        try:
            db.add(reminder)
            await db.flush()
            await db.refresh(reminder)
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to create reminder: {e}")
        logger.info("Reminder every %d days created for %s", reminder.reminder_days, reminder.user_email)
        return reminder

    async def delete_reminder(self, db: AsyncSession, reminder_id: uuid.UUID, user_email: str) -> None:
        try:
            result = await db.execute(
                delete(Reminder).where(Reminder.id == reminder_id, Reminder.user_email == user_email)
            )
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to delete reminder: {e}")
        if result.rowcount == 0:
            raise NotFoundError(resource="Reminder", message="Reminder not found or access denied")

    async def _active(self, db: AsyncSession) -> List[Reminder]:
        result = await db.execute(
            select(Reminder).where(Reminder.is_active.is_(True)).order_by(Reminder.created_at)
        )
        return list(result.scalars().all())

    async def status(self, db: AsyncSession, now: Optional[datetime] = None) -> List[ReminderStatus]:
        now = now or utcnow()
        return [reminder_status(r, now) for r in await self._active(db)]

    async def send_due(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> ReminderSendResponse:
        """
        Email every active reminder that is due.

        Raises:
            ServiceMisconfiguredError: RESEND_API_KEY is not set
        """
        if not self.api_key:
            raise ServiceMisconfiguredError("missing RESEND_API_KEY")

        now = now or utcnow()
        due = [r for r in await self._active(db) if next_due(r) <= now]
        sent, errors = 0, []

        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=httpx.Timeout(15.0, connect=5.0),
            transport=transport,
        ) as client:
            for reminder in due:
                try:
                    response = await client.post(
                        "/emails",
                        json={
                            "from": self.from_email,
                            "to": reminder.user_email,
                            "subject": REMINDER_SUBJECT,
                            "html": REMINDER_HTML,
                        },
                    )
                except httpx.HTTPError as e:
                    logger.warning("Reminder email to %s failed: %s", reminder.user_email, e)
                    errors.append(f"{reminder.user_email}: {e}")
                    continue

                if response.is_error:
                    logger.warning(
                        "Reminder email to %s rejected: %d %s",
                        reminder.user_email, response.status_code, response.text[:200],
                    )
                    errors.append(f"{reminder.user_email}: HTTP {response.status_code}")
                    continue

                reminder.last_sent_at = now
                sent += 1

        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to record sent reminders: {e}")

        logger.info("Reminder run: %d due, %d sent, %d failed", len(due), sent, len(errors))
        return ReminderSendResponse(
            status="Reminders sent" if not errors else "Reminders sent with errors",
            sent=sent,
            failed=len(errors),
            errors=errors,
        )


reminder_service = ReminderService()
