"""
Fadetrack Backend: Professional Profile & Directory Routes
==========================================================

    GET/POST/PUT /api/professionalProfileSimple
    GET          /api/professionalDirectory
    GET          /api/publicProfile?id=|email=
    GET          /api/specialties
    GET          /api/enhancedSearch

Query parameters keep the camelCase names the browser sends
(`searchTerm`, `priceRange`, `sortBy`, `userLat`, `userLng`).
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session
from fadetrack.exceptions import ValidationError
from fadetrack.schemas.common import ErrorResponse
from fadetrack.schemas.professional import (
    DirectoryResponse,
    ProfileCreate,
    ProfileEnvelope,
    ProfileUpdate,
    ProfileWriteResponse,
    PublicProfileResponse,
    SearchFilters,
    SearchResponse,
    SpecialtiesResponse,
)
from fadetrack.services.professional_service import professional_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Professionals"])


@router.get("/professionalProfileSimple", response_model=ProfileEnvelope, summary="Fetch own profile")
async def get_profile(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileEnvelope:
    if not email:
        raise ValidationError("Email is required", field="email")
    return ProfileEnvelope(profile=await professional_service.get_profile(db, email))


@router.post(
    "/professionalProfileSimple",
    status_code=201,
    response_model=ProfileWriteResponse,
    responses={
        400: {"description": "Missing required field", "model": ErrorResponse},
        409: {"description": "Profile already exists", "model": ErrorResponse},
    },
    summary="Create own profile",
)
async def create_profile(
    payload: ProfileCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileWriteResponse:
    return ProfileWriteResponse(profile=await professional_service.create_profile(db, payload))


@router.put(
    "/professionalProfileSimple",
    response_model=ProfileWriteResponse,
    responses={404: {"description": "Profile not found", "model": ErrorResponse}},
    summary="Update own profile",
)
async def update_profile(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileWriteResponse:
    return ProfileWriteResponse(profile=await professional_service.update_profile(db, payload))


@router.get("/professionalDirectory", response_model=DirectoryResponse, summary="Active professionals")
async def directory(db: AsyncSession = Depends(get_db_session)) -> DirectoryResponse:
    return DirectoryResponse(professionals=await professional_service.directory(db))


@router.get(
    "/publicProfile",
    response_model=PublicProfileResponse,
    responses={404: {"description": "No active profile", "model": ErrorResponse}},
    summary="Public profile with services and portfolio",
)
async def public_profile(
    id: Optional[uuid.UUID] = Query(default=None),
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> PublicProfileResponse:
    return await professional_service.public_profile(db, profile_id=id, email=email)


@router.get("/specialties", response_model=SpecialtiesResponse, summary="Specialty vocabulary")
async def specialties(db: AsyncSession = Depends(get_db_session)) -> SpecialtiesResponse:
    return SpecialtiesResponse(specialties=await professional_service.specialties(db))


def search_filters(
    search_term: str = Query(default="", alias="searchTerm"),
    profession: str = Query(default="all"),
    location: str = Query(default=""),
    specialty: str = Query(default="all"),
    price_range: str = Query(default="all", alias="priceRange"),
    rating: float = Query(default=0, description="Minimum average rating"),
    distance: float = Query(default=25, description="Radius in miles for location=near_me"),
    sort_by: str = Query(default="rating", alias="sortBy"),
    user_lat: Optional[float] = Query(default=None, alias="userLat"),
    user_lng: Optional[float] = Query(default=None, alias="userLng"),
) -> SearchFilters:
    try:
        return SearchFilters(
            search_term=search_term,
            profession=profession,
            location=location,
            specialty=specialty,
            price_range=price_range,
            min_rating=rating,
            distance=distance,
            sort_by=sort_by,
            user_lat=user_lat,
            user_lng=user_lng,
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        raise ValidationError(first["msg"].removeprefix("Value error, "), field=field)


@router.get(
    "/enhancedSearch",
    response_model=SearchResponse,
    responses={400: {"description": "Invalid filter", "model": ErrorResponse}},
    summary="Filtered, sorted professional search",
)
async def enhanced_search(
    filters: SearchFilters = Depends(search_filters),
    db: AsyncSession = Depends(get_db_session),
) -> SearchResponse:
    """
    Text, profession, location, specialty, price band and rating filters.

    `location=near_me` with `userLat`/`userLng` keeps only professionals
    within `distance` miles and fills in each entry's distance.
    """
    return await professional_service.search(db, filters)
