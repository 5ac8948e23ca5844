"""
Fadetrack Backend: Professional Service
=======================================

What:  Professional profile CRUD plus the read side of the directory:
       listing, public profile pages, the specialty vocabulary and the
       filterable/sortable enhanced search.

Enhanced search pipeline:
    1. SQL:    active profiles, optional profession and minimum rating
    2. Python: free-text, specialty, location and price-range filters
    3. Python: haversine distance when the caller sent coordinates, with
               "near_me" restricting to `distance` miles
    4. Python: sort (rating | reviews | distance | experience | newest)

    Steps 2-4 run in Python because they match inside JSON lists and
    against child service prices; directory sizes keep this cheap.
"""

import logging
import math
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fadetrack.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from fadetrack.models.professional import ProfessionalProfile
from fadetrack.schemas.professional import (
    DirectoryEntry,
    PortfolioResponse,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
    SearchFilters,
    SearchResponse,
    ServiceResponse,
)
from fadetrack.services.review_service import refresh_profile_aggregates

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959.0

# Profile fields that decide which reviews count toward its rating
RATING_KEYS = {"display_name", "business_name"}

# Inclusive bounds, in the currency of the service price; luxury is open-ended
PRICE_BANDS = {
    "budget": (20.0, 40.0),
    "mid": (40.0, 80.0),
    "premium": (80.0, 120.0),
    "luxury": (120.0, math.inf),
}


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates, in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def price_in_band(band: str, price: float) -> bool:
    if band not in PRICE_BANDS:
        return True
    low, high = PRICE_BANDS[band]
    return low <= price <= high


def _matches_text(profile: ProfessionalProfile, needle: str) -> bool:
    haystack = [
        profile.business_name,
        profile.display_name,
        profile.bio,
        profile.city,
        profile.state,
        *(profile.specialties or []),
    ]
    return any(needle in (value or "").lower() for value in haystack)


def _matches_location(profile: ProfessionalProfile, needle: str) -> bool:
    city = (profile.city or "").lower()
    state = (profile.state or "").lower()
    return needle in city or needle in state or needle in f"{city}, {state}"


class ProfessionalService:
    """Profile lifecycle and directory queries."""

    # ── Profile CRUD ──────────────────────────────────────────────────────

    async def get_profile(self, db: AsyncSession, email: str) -> Optional[ProfileResponse]:
        """Active profile for `email`, or None."""
        try:
            result = await db.execute(
                select(ProfessionalProfile).where(
                    ProfessionalProfile.user_email == email,
                    ProfessionalProfile.is_active.is_(True),
                )
            )
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to fetch profile: {e}")
        profile = result.scalar_one_or_none()
        return ProfileResponse.model_validate(profile) if profile else None

    async def create_profile(self, db: AsyncSession, payload: ProfileCreate) -> ProfileResponse:
        """
        Create the caller's profile.

        Raises:
            ConflictError: a profile (active or not) already exists for the email
        """
        existing = await db.execute(
            select(ProfessionalProfile.id).where(ProfessionalProfile.user_email == payload.user_email)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Professional profile already exists")

        try:
            profile = ProfessionalProfile(
                **payload.model_dump(),
                is_active=True,
                is_verified=False,
            )
            db.add(profile)
            await db.flush()
            await refresh_profile_aggregates(db, ProfessionalProfile.id == profile.id)
            await db.refresh(profile)
        except SQLAlchemyError as e:
            logger.error("Failed to create profile for %s: %s", payload.user_email, e)
            raise DatabaseError(message=f"Failed to create profile: {e}")

        logger.info("Professional profile %s created for %s", profile.id, profile.user_email)
        return ProfileResponse.model_validate(profile)

    async def update_profile(self, db: AsyncSession, payload: ProfileUpdate) -> ProfileResponse:
        changes = payload.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        result = await db.execute(
            select(ProfessionalProfile).where(ProfessionalProfile.user_email == payload.user_email)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError(resource="professional profile", message="Professional profile not found")

        try:
            for field, value in changes.items():
                setattr(profile, field, value)
            await db.flush()
            if RATING_KEYS & changes.keys():
                await refresh_profile_aggregates(db, ProfessionalProfile.id == profile.id)
                await db.refresh(profile)
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to update profile: {e}")

        logger.info("Profile %s updated: %s", profile.id, ", ".join(sorted(changes)))
        return ProfileResponse.model_validate(profile)

    # ── Directory ─────────────────────────────────────────────────────────

    async def _active_profiles(self, db: AsyncSession, *conditions, with_services: bool = False):
        query = select(ProfessionalProfile).where(
            ProfessionalProfile.is_active.is_(True), *conditions
        )
        if with_services:
            query = query.options(selectinload(ProfessionalProfile.services))
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to fetch professionals: {e}")
        return list(result.scalars().all())

    async def directory(self, db: AsyncSession) -> List[DirectoryEntry]:
        profiles = await self._active_profiles(db)
        profiles.sort(key=lambda p: (p.average_rating, p.total_reviews), reverse=True)
        return [DirectoryEntry.model_validate(p) for p in profiles]

    async def specialties(self, db: AsyncSession) -> List[str]:
        """Sorted, de-duplicated specialties across every active profile."""
        result = await db.execute(
            select(ProfessionalProfile.specialties).where(ProfessionalProfile.is_active.is_(True))
        )
        found = set()
        for specialties in result.scalars().all():
            for specialty in specialties or []:
                if specialty and specialty.strip():
                    found.add(specialty.strip())
        return sorted(found)

    async def public_profile(
        self,
        db: AsyncSession,
        profile_id: Optional[uuid.UUID] = None,
        email: Optional[str] = None,
    ) -> PublicProfileResponse:
        if profile_id is None and not email:
            raise ValidationError("Professional ID or email is required")

        query = select(ProfessionalProfile).where(ProfessionalProfile.is_active.is_(True))
        if profile_id is not None:
            query = query.where(ProfessionalProfile.id == profile_id)
        else:
            query = query.where(ProfessionalProfile.user_email == email)
        query = query.options(
            selectinload(ProfessionalProfile.services),
            selectinload(ProfessionalProfile.portfolio),
        )

        result = await db.execute(query)
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError(resource="professional profile", message="Professional profile not found")

        return PublicProfileResponse(
            profile=ProfileResponse.model_validate(profile),
            services=[ServiceResponse.model_validate(s) for s in profile.services if s.is_active],
            portfolio=[PortfolioResponse.model_validate(p) for p in profile.portfolio],
        )

    async def search(self, db: AsyncSession, filters: SearchFilters) -> SearchResponse:
        conditions = []
        if filters.profession != "all":
            conditions.append(ProfessionalProfile.profession_type == filters.profession)
        if filters.min_rating > 0:
            conditions.append(ProfessionalProfile.average_rating >= filters.min_rating)

        profiles = await self._active_profiles(
            db, *conditions, with_services=filters.price_range != "all"
        )

        if filters.search_term:
            needle = filters.search_term.strip().lower()
            profiles = [p for p in profiles if _matches_text(p, needle)]

        if filters.specialty != "all":
            profiles = [p for p in profiles if filters.specialty in (p.specialties or [])]

        near_me = filters.location == "near_me"
        if filters.location and not near_me:
            needle = filters.location.strip().lower()
            profiles = [p for p in profiles if _matches_location(p, needle)]

        if filters.price_range != "all":
            profiles = [
                p for p in profiles
                if any(s.is_active and price_in_band(filters.price_range, s.price) for s in p.services)
            ]

        entries = []
        has_origin = filters.user_lat is not None and filters.user_lng is not None
        for profile in profiles:
            entry = DirectoryEntry.model_validate(profile)
            if has_origin and profile.latitude is not None and profile.longitude is not None:
                entry.distance = round(
                    haversine_miles(filters.user_lat, filters.user_lng, profile.latitude, profile.longitude),
                    2,
                )
            if near_me and (entry.distance is None or entry.distance > filters.distance):
                continue
            entries.append((profile.created_at, entry))

        entries = self._sort(entries, filters.sort_by)
        return SearchResponse(professionals=entries, total=len(entries), filters=filters)

    @staticmethod
    def _sort(entries, sort_by: str) -> List[DirectoryEntry]:
        if sort_by == "reviews":
            entries.sort(key=lambda e: e[1].total_reviews, reverse=True)
        elif sort_by == "experience":
            entries.sort(key=lambda e: e[1].years_experience, reverse=True)
        elif sort_by == "newest":
            entries.sort(key=lambda e: e[0], reverse=True)
        elif sort_by == "distance":
            # unknown distances go last
            entries.sort(key=lambda e: (e[1].distance is None, e[1].distance or 0.0))
        else:
            entries.sort(key=lambda e: (e[1].average_rating, e[1].total_reviews), reverse=True)
        return [entry for _, entry in entries]


professional_service = ProfessionalService()
