"""
Fadetrack Backend: AI Search Usage Quota
========================================

What:  Per-identity daily and monthly counters gating AI search and ChatKit
       session creation.
How:   `consume()` locks the identity's row (SELECT ... FOR UPDATE on
       PostgreSQL), rolls stale counters over, rejects when a limit is
       reached, then increments. It only flushes, so the increment commits
       or rolls back with the rest of the request: a failed upstream call
       does not use up quota.

Identity:
    user email when the caller is signed in, otherwise "ip:<client address>"

Rollover (server local time):
    daily_reset_date    != today       → daily_sessions = 0
    monthly_reset_month != this month  → monthly_sessions = 0

Rejection:
    daily_sessions   >= daily limit   (20)  → 429, daily-limit message
    monthly_sessions >= monthly limit (100) → 429, monthly-limit message
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.config import settings
from fadetrack.database import dialect_insert, utcnow
from fadetrack.exceptions import DatabaseError, UsageLimitExceededError
from fadetrack.models.usage import ChatKitUsage
from fadetrack.schemas.search import UsageReport, UsageSnapshot, UsageTotals

logger = logging.getLogger(__name__)


def usage_identity(user_email: Optional[str], client_host: Optional[str]) -> str:
    if user_email and user_email.strip():
        return user_email.strip()
    return f"ip:{client_host or 'unknown'}"


def _local_now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now().astimezone()


def _day_key(now: datetime) -> str:
    return now.date().isoformat()


def _month_key(now: datetime) -> str:
    return now.strftime("%Y-%m")


def _seconds_until_tomorrow(now: datetime) -> int:
    tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return max(1, int((tomorrow - now).total_seconds()))


def _seconds_until_next_month(now: datetime) -> int:
    first = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return max(1, int((next_month - now).total_seconds()))


class UsageService:

    def __init__(self, daily_limit: Optional[int] = None, monthly_limit: Optional[int] = None):
        self.daily_limit = daily_limit or settings.chatkit_daily_limit
        self.monthly_limit = monthly_limit or settings.chatkit_monthly_limit

    def _rollover(self, row: ChatKitUsage, now: datetime) -> None:
        day, month = _day_key(now), _month_key(now)
        if row.daily_reset_date != day:
            row.daily_sessions = 0
            row.daily_reset_date = day
        if row.monthly_reset_month != month:
            row.monthly_sessions = 0
            row.monthly_reset_month = month

    def _snapshot(self, row: ChatKitUsage, message: Optional[str] = None) -> UsageSnapshot:
        return UsageSnapshot(
            user_email=row.user_email,
            total_sessions=row.total_sessions,
            daily_sessions=row.daily_sessions,
            monthly_sessions=row.monthly_sessions,
            last_session_at=row.last_session_at,
            daily_limit=self.daily_limit,
            monthly_limit=self.monthly_limit,
            daily_remaining=max(0, self.daily_limit - row.daily_sessions),
            monthly_remaining=max(0, self.monthly_limit - row.monthly_sessions),
            message=message,
        )

    async def consume(
        self, db: AsyncSession, identity: str, now: Optional[datetime] = None
    ) -> UsageSnapshot:
        """
        Count one AI session for `identity`.

        Raises:
            UsageLimitExceededError: the daily or monthly limit is already reached
        """
        now = _local_now(now)
        try:
            await db.execute(
                dialect_insert(db)(ChatKitUsage)
                .values(
                    user_email=identity,
                    daily_reset_date=_day_key(now),
                    monthly_reset_month=_month_key(now),
                )
                .on_conflict_do_nothing(index_elements=["user_email"])
            )
            result = await db.execute(
                select(ChatKitUsage)
                .where(ChatKitUsage.user_email == identity)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to read AI search usage: {e}")

        self._rollover(row, now)

        if row.daily_sessions >= self.daily_limit:
            logger.info("Daily AI search limit reached for %s", identity)
            raise UsageLimitExceededError(
                period="daily",
                limit=self.daily_limit,
                used=row.daily_sessions,
                retry_after=_seconds_until_tomorrow(now),
            )
        if row.monthly_sessions >= self.monthly_limit:
            logger.info("Monthly AI search limit reached for %s", identity)
            raise UsageLimitExceededError(
                period="monthly",
                limit=self.monthly_limit,
                used=row.monthly_sessions,
                retry_after=_seconds_until_next_month(now),
            )

        row.daily_sessions += 1
        row.monthly_sessions += 1
        row.total_sessions += 1
        row.last_session_at = utcnow()
        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to record AI search usage: {e}")

        logger.debug(
            "AI usage for %s: daily %d/%d, monthly %d/%d",
            identity, row.daily_sessions, self.daily_limit, row.monthly_sessions, self.monthly_limit,
        )
        return self._snapshot(row)

    async def usage_for(
        self, db: AsyncSession, identity: str, now: Optional[datetime] = None
    ) -> UsageSnapshot:
        """Current counters for one identity, with stale periods shown as zero."""
        result = await db.execute(select(ChatKitUsage).where(ChatKitUsage.user_email == identity))
        row = result.scalar_one_or_none()
        if row is None:
            return UsageSnapshot(
                user_email=identity,
                daily_limit=self.daily_limit,
                monthly_limit=self.monthly_limit,
                daily_remaining=self.daily_limit,
                monthly_remaining=self.monthly_limit,
                message="No usage data found for this user",
            )
        # Reads never persist a rollover; the next consume() does
        db.expunge(row)
        self._rollover(row, _local_now(now))
        return self._snapshot(row)

    async def report(self, db: AsyncSession, now: Optional[datetime] = None) -> UsageReport:
        result = await db.execute(
            select(ChatKitUsage).order_by(ChatKitUsage.total_sessions.desc())
        )
        rows = list(result.scalars().all())
        current = _local_now(now)
        users: List[UsageSnapshot] = []
        for row in rows:
            db.expunge(row)
            self._rollover(row, current)
            users.append(self._snapshot(row))

        return UsageReport(
            totals=UsageTotals(
                total_users=len(users),
                total_sessions=sum(u.total_sessions for u in users),
                total_daily_sessions=sum(u.daily_sessions for u in users),
                total_monthly_sessions=sum(u.monthly_sessions for u in users),
            ),
            users=users,
        )


usage_service = UsageService()
