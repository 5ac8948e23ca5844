"""
Fadetrack Backend: Review and Rating Aggregate Models
=====================================================

What:  ORM models for the `barbers` aggregate table and the `reviews` table.
How:   Alembic reads both; `ReviewService` is the only writer.

Aggregate Design:
    A `barbers` row is identified by (name, shop_name, location) and keeps
    `rating_sum` and `total_reviews` next to the derived `average_rating`.
    All three change in one UPDATE statement per review write, so the
    average is always exactly `rating_sum / total_reviews` and concurrent
    writers cannot lose each other's updates.

    When the last review of a professional is deleted the aggregate row is
    deleted as well; a row with `total_reviews = 0` never persists.
"""

import datetime as dt
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from fadetrack.database import Base, utcnow


class Barber(Base):
    """
    Running rating aggregate for one professional at one shop and location.

    Invariants:
        total_reviews >= 1 for every persisted row
        average_rating == rating_sum / total_reviews
        1 <= average_rating <= 5
    """

    __tablename__ = "barbers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    shop_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)

    # ── Aggregate ─────────────────────────────────────────────────────────
    rating_sum: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    total_reviews: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    average_rating: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=text("0"),
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
        # The unique key makes concurrent find-or-create converge on one row
        UniqueConstraint("name", "shop_name", "location", name="uq_barbers_identity"),
        Index("idx_barbers_rating", average_rating.desc(), total_reviews.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Barber(name='{self.name}', shop='{self.shop_name}', "
            f"avg={self.average_rating}, count={self.total_reviews})>"
        )


class Review(Base):
    """
    One client's review of one service visit.

    `barber_name`, `shop_name` and `location` are denormalized copies of the
    aggregate identity so that public listings never need a join, and so the
    aggregate can be located again on delete.
    """

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_email: Mapped[str] = mapped_column(String(320), nullable=False)

    barber_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("barbers.id", ondelete="SET NULL"), nullable=True,
    )
    barber_name: Mapped[str] = mapped_column(String(255), nullable=False)
    shop_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)

    # ── Place details (from map autocomplete, all optional) ───────────────
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(120), nullable=True)
    country: Mapped[str | None] = mapped_column(String(120), nullable=True)
    place_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # ── Visit ─────────────────────────────────────────────────────────────
    service_type: Mapped[str] = mapped_column(String(120), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    photos: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"),
    )

    # ── Professional reply ────────────────────────────────────────────────
    professional_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_date: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
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
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        Index("idx_reviews_user_email", "user_email"),
        Index("idx_reviews_professional", "barber_name", "shop_name"),
        Index("idx_reviews_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, barber='{self.barber_name}', rating={self.rating})>"
