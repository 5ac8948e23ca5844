"""
Fadetrack Backend: AI Search Usage Counters
===========================================

One row per identity (a user email, or `ip:<address>` for anonymous callers)
holding the lifetime, daily and monthly session counts.

Reset markers:
    daily_reset_date     ISO date ("2026-10-18") the daily counter belongs to
    monthly_reset_month  "YYYY-MM" the monthly counter belongs to

When the current local date/month differs from the marker, the matching
counter is treated as zero and the marker is moved forward.
"""

import datetime as dt
import uuid

from sqlalchemy import DateTime, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from fadetrack.database import Base, utcnow


class ChatKitUsage(Base):
    __tablename__ = "chatkit_usage"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)

    total_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    daily_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    monthly_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )

    last_session_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    daily_reset_date: Mapped[str] = mapped_column(String(10), nullable=False)
    monthly_reset_month: Mapped[str] = mapped_column(String(7), nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChatKitUsage(identity='{self.user_email}', daily={self.daily_sessions}, "
            f"monthly={self.monthly_sessions})>"
        )
