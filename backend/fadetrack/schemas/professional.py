"""
Fadetrack Backend: Professional Profile Schemas
===============================================

Profiles, their offered services and portfolio items, plus the directory
and enhanced-search result shapes.
"""

import datetime as dt
import uuid
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

PRICE_RANGES = ("budget", "mid", "premium", "luxury")


def _check_price_range(value: Optional[str]) -> Optional[str]:
    if value and value not in PRICE_RANGES:
        raise ValueError(f"Invalid price_range '{value}'. Must be one of: {', '.join(PRICE_RANGES)}")
    return value


def _clean_specialties(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return None
    seen: List[str] = []
    for item in value:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


# ══════════════════════════════════════════════════════════════════════════
# Profile
# ══════════════════════════════════════════════════════════════════════════


class ProfileCreate(BaseModel):
    """Body of POST /api/professionalProfileSimple."""
    user_email: str = Field(min_length=1)
    business_name: str = Field(min_length=1, max_length=255)
    display_name: str = Field(min_length=1, max_length=255)
    profession_type: str = Field(min_length=1, max_length=80)

    bio: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    instagram: str = ""
    website: str = ""
    profile_image: Optional[str] = None
    years_experience: int = Field(default=1, ge=0, le=80)
    specialties: List[str] = Field(default_factory=list)
    price_range: str = ""

    @field_validator("price_range")
    @classmethod
    def validate_price_range(cls, v):
        return _check_price_range(v)

    @field_validator("specialties")
    @classmethod
    def normalize_specialties(cls, v):
        return _clean_specialties(v)


class ProfileUpdate(BaseModel):
    """
    Body of PUT /api/professionalProfileSimple.

    Identity (`user_email`), verification and the rating aggregate are not
    client-editable; unknown keys are ignored.
    """
    user_email: str = Field(min_length=1)

    business_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    profession_type: Optional[str] = Field(default=None, min_length=1, max_length=80)
    bio: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    instagram: Optional[str] = None
    website: Optional[str] = None
    profile_image: Optional[str] = None
    years_experience: Optional[int] = Field(default=None, ge=0, le=80)
    specialties: Optional[List[str]] = None
    price_range: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("price_range")
    @classmethod
    def validate_price_range(cls, v):
        return _check_price_range(v)

    @field_validator("specialties")
    @classmethod
    def normalize_specialties(cls, v):
        return _clean_specialties(v)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"user_email"}, exclude_none=True)


class ProfileResponse(BaseModel):
    id: uuid.UUID
    user_email: str
    business_name: str
    display_name: str
    profession_type: str
    bio: str
    phone: str
    address: str
    city: str
    state: str
    zip_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    instagram: str
    website: str
    profile_image: Optional[str] = None
    years_experience: int
    specialties: List[str]
    price_range: str
    is_active: bool
    is_verified: bool
    average_rating: float
    total_reviews: int
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class ProfileEnvelope(BaseModel):
    """GET returns `{"profile": null}` rather than 404 when none exists."""
    profile: Optional[ProfileResponse] = None


class ProfileWriteResponse(BaseModel):
    success: bool = True
    profile: ProfileResponse


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════


class ServiceCreate(BaseModel):
    professional_id: uuid.UUID = Field(
        validation_alias=AliasChoices("professional_id", "professionalId"),
    )
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    price: float = Field(gt=0)
    price_max: Optional[float] = Field(default=None, gt=0)
    duration_minutes: int = Field(gt=0, le=24 * 60)


class ServiceUpdate(BaseModel):
    id: uuid.UUID
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    price_max: Optional[float] = Field(default=None, gt=0)
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=24 * 60)
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"}, exclude_none=True)


class ServiceResponse(BaseModel):
    id: uuid.UUID
    professional_id: uuid.UUID
    name: str
    description: str
    price: float
    price_max: Optional[float] = None
    duration_minutes: int
    is_active: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class ServiceEnvelope(BaseModel):
    service: ServiceResponse


class ServiceListResponse(BaseModel):
    services: List[ServiceResponse]


# ══════════════════════════════════════════════════════════════════════════
# Portfolio
# ══════════════════════════════════════════════════════════════════════════


class PortfolioCreate(BaseModel):
    professional_email: str = Field(
        min_length=1,
        validation_alias=AliasChoices("professional_email", "professionalEmail"),
    )
    image_url: str = Field(min_length=1, max_length=1000)
    caption: str = Field(min_length=1)
    service_type: Optional[str] = None


class PortfolioUpdate(BaseModel):
    id: uuid.UUID
    caption: Optional[str] = None
    service_type: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"}, exclude_none=True)


class PortfolioResponse(BaseModel):
    id: uuid.UUID
    professional_id: uuid.UUID
    professional_email: str
    image_url: str
    caption: str
    service_type: str
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class PortfolioEnvelope(BaseModel):
    model_config = {"populate_by_name": True}

    portfolio_item: PortfolioResponse = Field(alias="portfolioItem")


class PortfolioListResponse(BaseModel):
    portfolio: List[PortfolioResponse]


# ══════════════════════════════════════════════════════════════════════════
# Directory & Search
# ══════════════════════════════════════════════════════════════════════════


class PublicProfileResponse(BaseModel):
    """Active profile with its active services and its portfolio."""
    profile: ProfileResponse
    services: List[ServiceResponse]
    portfolio: List[PortfolioResponse]


class DirectoryEntry(BaseModel):
    id: uuid.UUID
    business_name: str
    display_name: str
    profession_type: str
    bio: str
    city: str
    state: str
    specialties: List[str]
    average_rating: float
    total_reviews: int
    years_experience: int
    is_verified: bool
    profile_image: Optional[str] = None
    # Miles from the caller; only set when the caller sent coordinates
    distance: Optional[float] = None

    model_config = {"from_attributes": True}


class DirectoryResponse(BaseModel):
    professionals: List[DirectoryEntry]


class SearchFilters(BaseModel):
    search_term: str = ""
    profession: str = "all"
    location: str = ""
    specialty: str = "all"
    price_range: str = "all"
    min_rating: float = Field(default=0, ge=0, le=5)
    distance: float = Field(default=25, gt=0)
    sort_by: str = "rating"
    user_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    user_lng: Optional[float] = Field(default=None, ge=-180, le=180)

    @field_validator("sort_by")
    @classmethod
    def validate_sort(cls, v: str) -> str:
        valid = {"rating", "reviews", "distance", "experience", "newest"}
        if v not in valid:
            raise ValueError(f"Invalid sortBy '{v}'. Must be one of: {', '.join(sorted(valid))}")
        return v

    @field_validator("price_range")
    @classmethod
    def validate_price_range(cls, v: str) -> str:
        if v != "all":
            _check_price_range(v)
        return v


class SearchResponse(BaseModel):
    professionals: List[DirectoryEntry]
    total: int
    filters: SearchFilters


class SpecialtiesResponse(BaseModel):
    specialties: List[str]
