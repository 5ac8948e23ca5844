"""
Fadetrack Backend: Account Service
==================================

Usernames, the personal haircut log and account deletion.

Account deletion removes every row keyed by the user's email except their
reviews, which stay public. The sign-in identity itself lives with the
auth provider and is removed by support on request.
"""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.exceptions import ConflictError, DatabaseError, NotFoundError
from fadetrack.models.account import Haircut, Reminder, UserRole, Username
from fadetrack.models.usage import ChatKitUsage
from fadetrack.schemas.account import (
    USERNAME_PATTERN,
    HaircutCreate,
    UsernameAvailability,
)

logger = logging.getLogger(__name__)

ACCOUNT_DELETED_MESSAGE = (
    "Account data deleted successfully. Your sign-in identity will be removed "
    "by support; contact us if you can still sign in after 48 hours."
)

# Deletion order; reviews are public content and stay
_OWNED_TABLES = (
    ("reminders", Reminder),
    ("haircuts", Haircut),
    ("username", Username),
    ("role", UserRole),
    ("usage", ChatKitUsage),
)


class AccountService:

    # ── Usernames ─────────────────────────────────────────────────────────

    async def check_username(self, db: AsyncSession, username: str) -> UsernameAvailability:
        candidate = (username or "").strip()
        if not USERNAME_PATTERN.match(candidate):
            return UsernameAvailability(
                username=candidate,
                available=False,
                reason="Username must be 3-20 characters and contain only letters, numbers and underscores",
            )
        result = await db.execute(select(Username.id).where(Username.username == candidate.lower()))
        taken = result.scalar_one_or_none() is not None
        return UsernameAvailability(
            username=candidate,
            available=not taken,
            reason="Username is already taken" if taken else None,
        )

    async def get_username(self, db: AsyncSession, user_email: str) -> Optional[str]:
        result = await db.execute(select(Username.username).where(Username.user_email == user_email))
        return result.scalar_one_or_none()

    async def set_username(self, db: AsyncSession, user_email: str, username: str) -> str:
        """
        Claim `username` for `user_email`, replacing any previous one.

        Raises:
            ConflictError: another user already holds the name
        """
        normalized = username.lower()
        result = await db.execute(select(Username).where(Username.username == normalized))
        holder = result.scalar_one_or_none()
        if holder is not None and holder.user_email != user_email:
            raise ConflictError(message="Username is already taken", context={"username": normalized})

        result = await db.execute(select(Username).where(Username.user_email == user_email))
        row = result.scalar_one_or_none()
        try:
            if row is None:
                db.add(Username(user_email=user_email, username=normalized))
            else:
                row.username = normalized
            await db.flush()
        except IntegrityError:
            # Lost a race with another claimant
            raise ConflictError(message="Username is already taken", context={"username": normalized})
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to set username: {e}")

        logger.info("Username '%s' set for %s", normalized, user_email)
        return normalized

    # ── Haircut log ───────────────────────────────────────────────────────

    async def list_haircuts(self, db: AsyncSession, user_email: str) -> List[Haircut]:
        result = await db.execute(
            select(Haircut)
            .where(Haircut.user_email == user_email)
            .order_by(Haircut.date.desc(), Haircut.created_at.desc())
        )
        return list(result.scalars().all())

    async def add_haircut(self, db: AsyncSession, payload: HaircutCreate) -> Haircut:
        haircut = Haircut(**payload.model_dump())
        try:
            db.add(haircut)
            await db.flush()
            await db.refresh(haircut)
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to create haircut: {e}")
        return haircut

    async def delete_haircut(self, db: AsyncSession, haircut_id: uuid.UUID, user_email: str) -> None:
        try:
            result = await db.execute(
                delete(Haircut).where(Haircut.id == haircut_id, Haircut.user_email == user_email)
            )
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to delete haircut: {e}")
        if result.rowcount == 0:
            raise NotFoundError(resource="Haircut", message="Haircut not found or access denied")

    # ── Deletion ──────────────────────────────────────────────────────────

    async def delete_account(self, db: AsyncSession, user_email: str) -> Dict[str, int]:
        """
        Delete all account data for `user_email`; returns rows removed per kind.

        The usage row keyed by the email goes too. Usage rows keyed by the
        caller's IP are not attributable to the account and stay.
        """
        counts: Dict[str, int] = {}
        for label, model in _OWNED_TABLES:
            try:
                result = await db.execute(delete(model).where(model.user_email == user_email))
            except SQLAlchemyError as e:
                raise DatabaseError(message=f"Failed to delete {label}: {e}")
            counts[label] = result.rowcount or 0

        logger.info("Account data deleted for %s: %s", user_email, counts)
        return counts


account_service = AccountService()
