"""
Fadetrack Backend: Review Request/Response Schemas
==================================================

Required text fields use `min_length=1` so that an empty string is reported
exactly like an absent one ("Missing required field: <name>").
"""

import datetime as dt
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

RATING_MESSAGE = "Rating must be between 1 and 5"


def _check_rating(value: Optional[int]) -> Optional[int]:
    if value is not None and not 1 <= value <= 5:
        raise ValueError(RATING_MESSAGE)
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ReviewCreate(BaseModel):
    """Body of POST /api/createReview."""
    user_email: str = Field(min_length=1)
    barber_name: str = Field(min_length=1, max_length=255)
    shop_name: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=500)
    service_type: str = Field(min_length=1, max_length=120)
    rating: int
    date: dt.date
    title: str = Field(min_length=1, max_length=255)
    review_text: str = Field(min_length=1)

    cost: Optional[float] = Field(default=None, ge=0)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    place_id: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    is_public: bool = True

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v: int) -> int:
        return _check_rating(v)


class ReviewUpdate(BaseModel):
    """
    Body of PUT /api/updateReview.

    Only the fields listed below may change; the aggregate identity
    (professional, shop, location) is fixed once a review exists.
    """
    id: uuid.UUID
    user_email: str = Field(min_length=1)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    review_text: Optional[str] = Field(default=None, min_length=1)
    rating: Optional[int] = None
    cost: Optional[float] = Field(default=None, ge=0)
    date: Optional[dt.date] = None
    service_type: Optional[str] = Field(default=None, min_length=1, max_length=120)
    is_public: Optional[bool] = None

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v: Optional[int]) -> Optional[int]:
        return _check_rating(v)

    def changes(self) -> Dict[str, Any]:
        """Fields the caller actually supplied, without the key fields."""
        return self.model_dump(exclude={"id", "user_email"}, exclude_none=True)


class ReviewDelete(BaseModel):
    id: uuid.UUID
    user_email: str = Field(min_length=1)


class ReviewReply(BaseModel):
    """Body of POST/PUT /api/reviewResponses."""
    review_id: uuid.UUID
    professional_email: str = Field(min_length=1)
    response: str = Field(min_length=1, max_length=2000)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ReviewResponse(BaseModel):
    id: uuid.UUID
    user_email: str
    barber_name: str
    shop_name: str
    location: str
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    place_id: Optional[str] = None
    service_type: str
    rating: int
    cost: Optional[float] = None
    date: dt.date
    title: str
    review_text: str
    photos: List[str] = Field(default_factory=list)
    is_public: bool
    professional_response: Optional[str] = None
    response_date: Optional[dt.datetime] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class AggregateResponse(BaseModel):
    """A professional's rating aggregate after a write."""
    name: str
    shop_name: str
    location: str
    average_rating: float
    total_reviews: int

    model_config = {"from_attributes": True}


class ReviewWriteResponse(BaseModel):
    """
    Returned by create, update and delete.

    `aggregate` is null after a delete that removed the professional's last
    review (the aggregate row no longer exists).
    """
    success: bool = True
    message: Optional[str] = None
    review: Optional[ReviewResponse] = None
    aggregate: Optional[AggregateResponse] = None


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]


class BarberListResponse(BaseModel):
    barbers: List[AggregateResponse]
