"""
Fadetrack Backend: Professional Profile Models
==============================================

What:  ORM models for professional profiles and their child records
       (offered services and portfolio images).

A profile belongs to exactly one user email and carries its own copy of the
rating aggregate. The copy is maintained by the same atomic rule as the
`barbers` table whenever a review names the profile's display and business
name, but a profile is never deleted because its review count hits zero.
"""

import datetime as dt
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fadetrack.database import Base, utcnow


class ProfessionalProfile(Base):
    __tablename__ = "professional_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)

    # ── Identity ──────────────────────────────────────────────────────────
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # barber, stylist, makeup_artist, nail_technician, ...
    profession_type: Mapped[str] = mapped_column(String(80), nullable=False)
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Contact & location ────────────────────────────────────────────────
    phone: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    state: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    instagram: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    website: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    profile_image: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # ── Offering ──────────────────────────────────────────────────────────
    years_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    specialties: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # "", budget, mid, premium, luxury
    price_range: Mapped[str] = mapped_column(String(20), nullable=False, default="")

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"),
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )

    # ── Aggregate (mirrors barbers) ───────────────────────────────────────
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

    services: Mapped[list["ProfessionalService"]] = relationship(
        back_populates="professional",
        cascade="all, delete-orphan",
        order_by="ProfessionalService.created_at.desc()",
    )
    portfolio: Mapped[list["PortfolioItem"]] = relationship(
        back_populates="professional",
        cascade="all, delete-orphan",
        order_by="PortfolioItem.created_at.desc()",
    )

    __table_args__ = (
        Index("idx_profiles_rating", average_rating.desc()),
        Index("idx_profiles_names", "display_name", "business_name"),
    )

    def __repr__(self) -> str:
        return f"<ProfessionalProfile(email='{self.user_email}', name='{self.display_name}')>"


class ProfessionalService(Base):
    """A bookable service with a price (or price band) and a duration."""

    __tablename__ = "professional_services"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("professional_profiles.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False)
    price_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"),
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    professional: Mapped[ProfessionalProfile] = relationship(back_populates="services")

    __table_args__ = (Index("idx_services_professional", "professional_id"),)


class PortfolioItem(Base):
    """An uploaded work sample shown on the public profile."""

    __tablename__ = "professional_portfolio"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("professional_profiles.id", ondelete="CASCADE"), nullable=False,
    )
    professional_email: Mapped[str] = mapped_column(String(320), nullable=False)
    image_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="")
    service_type: Mapped[str] = mapped_column(String(120), nullable=False, default="general")
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    professional: Mapped[ProfessionalProfile] = relationship(back_populates="portfolio")

    __table_args__ = (Index("idx_portfolio_email", "professional_email"),)
