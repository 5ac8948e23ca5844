"""
Fadetrack Backend: Per-User Account Models
==========================================

What:  Rows owned by a single user email: role, username, haircut log and
       reminder cadences. Account deletion removes all of them.
"""

import datetime as dt
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from fadetrack.database import Base, utcnow

ROLES = ("customer", "professional")


class UserRole(Base):
    """One row per user; absence means the user is a customer with no record."""

    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="customer", server_default=text("'customer'"),
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("role IN ('customer', 'professional')", name="ck_user_roles_role"),
    )

    def __repr__(self) -> str:
        return f"<UserRole(email='{self.user_email}', role='{self.role}')>"


class Username(Base):
    __tablename__ = "usernames"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    # Stored lower-cased so that availability checks are case-insensitive
    username: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class Haircut(Base):
    """A personal log entry of one visit."""

    __tablename__ = "haircuts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    barber: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    style: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (Index("idx_haircuts_user_date", "user_email", "date"),)


class Reminder(Base):
    """
    A "time to book again" cadence.

    The reminder is due once `reminder_days` have passed since it was last
    sent, or since it was created when it has never been sent.
    """

    __tablename__ = "reminders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False)
    reminder_days: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"),
    )
    last_sent_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("reminder_days > 0", name="ck_reminders_days_positive"),
        Index("idx_reminders_user_email", "user_email"),
    )
