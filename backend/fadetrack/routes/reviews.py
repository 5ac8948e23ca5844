"""
Fadetrack Backend: Review Routes
================================

Review writes and reads, professional replies and the aggregate directory.
Every write runs in the request transaction: the review row and the
aggregate rows it touches commit together or not at all.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import get_db_session
from fadetrack.exceptions import ValidationError
from fadetrack.schemas.common import ErrorResponse
from fadetrack.schemas.review import (
    BarberListResponse,
    ReviewCreate,
    ReviewDelete,
    ReviewListResponse,
    ReviewReply,
    ReviewResponse,
    ReviewUpdate,
    ReviewWriteResponse,
)
from fadetrack.services.review_service import review_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reviews"])


@router.post(
    "/createReview",
    status_code=201,
    response_model=ReviewWriteResponse,
    responses={
        400: {"description": "Missing field or rating out of range", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
    summary="Create a review",
)
async def create_review(
    payload: ReviewCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ReviewWriteResponse:
    """
    Store a review and apply its rating to the professional's aggregate.

    The aggregate row is found by (barber_name, shop_name, location) and
    created on first review.
    """
    return await review_service.create_review(db, payload)


@router.put(
    "/updateReview",
    response_model=ReviewWriteResponse,
    responses={
        400: {"description": "No updatable field given", "model": ErrorResponse},
        404: {"description": "Review not found or not owned", "model": ErrorResponse},
    },
    summary="Edit an owned review",
)
async def update_review(
    payload: ReviewUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ReviewWriteResponse:
    return await review_service.update_review(db, payload)


@router.delete(
    "/deleteReview",
    response_model=ReviewWriteResponse,
    responses={404: {"description": "Review not found or not owned", "model": ErrorResponse}},
    summary="Delete an owned review",
)
async def delete_review(
    payload: ReviewDelete,
    db: AsyncSession = Depends(get_db_session),
) -> ReviewWriteResponse:
    return await review_service.delete_review(db, payload)


@router.get("/publicReviews", response_model=ReviewListResponse, summary="Public reviews, newest first")
async def public_reviews(
    barber_name: Optional[str] = Query(default=None, alias="barberName"),
    shop_name: Optional[str] = Query(default=None, alias="shopName"),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewListResponse:
    reviews = await review_service.list_public_reviews(db, barber_name, shop_name, limit)
    return ReviewListResponse(reviews=reviews)


@router.get("/myReviews", response_model=ReviewListResponse, summary="The caller's own reviews")
async def my_reviews(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewListResponse:
    if not email:
        raise ValidationError("Email is required", field="email")
    return ReviewListResponse(reviews=await review_service.list_user_reviews(db, email))


@router.get(
    "/reviewResponses",
    response_model=ReviewListResponse,
    responses={404: {"description": "No active profile for this email", "model": ErrorResponse}},
    summary="Reviews of the caller's professional profile",
)
async def profile_reviews(
    email: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewListResponse:
    if not email:
        raise ValidationError("Professional email is required", field="email")
    return ReviewListResponse(reviews=await review_service.list_profile_reviews(db, email))


@router.post(
    "/reviewResponses",
    response_model=ReviewResponse,
    responses={
        404: {"description": "Review not tied to the caller's profile", "model": ErrorResponse},
        409: {"description": "A reply already exists", "model": ErrorResponse},
    },
    summary="Reply to a review",
)
async def add_response(
    payload: ReviewReply,
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    return await review_service.respond(db, payload, editing=False)


@router.put(
    "/reviewResponses",
    response_model=ReviewResponse,
    responses={404: {"description": "Review or reply not found", "model": ErrorResponse}},
    summary="Edit a reply",
)
async def edit_response(
    payload: ReviewReply,
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    return await review_service.respond(db, payload, editing=True)


@router.get("/barbers", response_model=BarberListResponse, summary="Aggregate directory")
async def list_barbers(
    q: Optional[str] = Query(default=None, max_length=200, description="Name or shop filter"),
    db: AsyncSession = Depends(get_db_session),
) -> BarberListResponse:
    return BarberListResponse(barbers=await review_service.list_barbers(db, q))
