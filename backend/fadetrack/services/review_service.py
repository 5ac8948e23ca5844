"""
Fadetrack Backend: Review Service (Reviews + Rating Aggregates)
===============================================================

What:  Creates, edits and deletes reviews and keeps every affected rating
       aggregate consistent with the remaining review set.
How:   Each write runs inside the request transaction (see
       `fadetrack.database.get_db_session`). Aggregates are never read,
       modified in Python and written back; they are changed by a single
       UPDATE that adds a delta to `rating_sum` and `total_reviews` and
       recomputes `average_rating` from the new values in the same statement.

Aggregate arithmetic:
    create  r:        sum += r,           count += 1
    delete  r:        sum -= r,           count -= 1   (row deleted at 0)
    update  old→new:  sum += new - old,   count unchanged
    average = sum / count

    This is the running mean `(avg * n + r) / (n + 1)` without the float
    round trip, so create/delete sequences cannot drift.

Two aggregates can be touched per review:
    1. The `barbers` row for (barber_name, shop_name, location), created on
       first review and deleted with the last one.
    2. Any professional profile whose display/business names match. Its
       columns are recomputed from the matching reviews after every write
       (and on profile create or rename, see `refresh_profile_aggregates`).
       Profiles are never deleted by this service.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import Float, case, cast, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.database import dialect_insert, utcnow
from fadetrack.exceptions import (
    ConflictError,
    DatabaseError,
    FadetrackError,
    NotFoundError,
    ValidationError,
)
from fadetrack.models.professional import ProfessionalProfile
from fadetrack.models.review import Barber, Review
from fadetrack.schemas.review import (
    RATING_MESSAGE,
    AggregateResponse,
    ReviewCreate,
    ReviewDelete,
    ReviewReply,
    ReviewResponse,
    ReviewUpdate,
    ReviewWriteResponse,
)

logger = logging.getLogger(__name__)

REVIEW_NOT_FOUND = "Review not found or access denied"


def _aggregate_values(model, sum_delta: int, count_delta: int) -> dict:
    """
    SET clause shifting an aggregate by the given deltas.

    Right-hand sides see the pre-update row in both PostgreSQL and SQLite,
    so `average_rating` is derived from the post-update sum and count.
    """
    new_sum = model.rating_sum + sum_delta
    new_count = model.total_reviews + count_delta
    return {
        model.rating_sum: new_sum,
        model.total_reviews: new_count,
        model.average_rating: case(
            (new_count > 0, cast(new_sum, Float) / new_count),
            else_=0.0,
        ),
        model.updated_at: utcnow(),
    }


async def refresh_profile_aggregates(db: AsyncSession, *criteria) -> int:
    """
    Recompute the rating columns of the profiles matching `criteria` from
    the reviews whose (barber_name, shop_name) equal the profile's
    (display_name, business_name). Returns the number of profiles touched.

    One correlated UPDATE; the outcome depends only on the current review
    set, which covers reviews written before the profile existed as well as
    profile renames.
    """
    matches = (
        Review.barber_name == ProfessionalProfile.display_name,
        Review.shop_name == ProfessionalProfile.business_name,
    )
    rating_sum = select(func.coalesce(func.sum(Review.rating), 0)).where(*matches).scalar_subquery()
    total = select(func.count(Review.id)).where(*matches).scalar_subquery()
    average = (
        select(func.coalesce(func.avg(cast(Review.rating, Float)), 0.0))
        .where(*matches)
        .scalar_subquery()
    )
    result = await db.execute(
        update(ProfessionalProfile)
        .where(*criteria)
        .values(
            rating_sum=rating_sum,
            total_reviews=total,
            average_rating=average,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


class ReviewService:
    """
    Review lifecycle and aggregate maintenance.

    Every public method either completes all of its writes or raises; the
    session dependency then commits or rolls back the whole request.
    """

    # ── Aggregate helpers ─────────────────────────────────────────────────

    async def _locate_barber(
        self, db: AsyncSession, name: str, shop_name: str, location: str
    ) -> Barber:
        """Find the aggregate row for a professional, creating an empty one if needed."""
        insert = dialect_insert(db)

        # Concurrent first reviews race on the unique key; the loser's insert
        # is a no-op and both then read the same row.
        await db.execute(
            insert(Barber)
            .values(
                id=uuid.uuid4(),
                name=name,
                shop_name=shop_name,
                location=location,
                rating_sum=0,
                total_reviews=0,
                average_rating=0.0,
                created_at=utcnow(),
                updated_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["name", "shop_name", "location"])
        )
        result = await db.execute(
            select(Barber).where(
                Barber.name == name,
                Barber.shop_name == shop_name,
                Barber.location == location,
            )
        )
        return result.scalar_one()

    async def _shift_barber(
        self, db: AsyncSession, barber_id: uuid.UUID, sum_delta: int, count_delta: int
    ) -> Optional[Barber]:
        """Apply a delta to a `barbers` row; delete it if no reviews remain."""
        await db.execute(
            update(Barber)
            .where(Barber.id == barber_id)
            .values(_aggregate_values(Barber, sum_delta, count_delta))
            .execution_options(synchronize_session=False)
        )
        if count_delta < 0:
            await db.execute(
                delete(Barber)
                .where(Barber.id == barber_id, Barber.total_reviews <= 0)
                .execution_options(synchronize_session=False)
            )

        result = await db.execute(
            select(Barber)
            .where(Barber.id == barber_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _refresh_profile(self, db: AsyncSession, review: Review) -> None:
        await refresh_profile_aggregates(
            db,
            ProfessionalProfile.display_name == review.barber_name,
            ProfessionalProfile.business_name == review.shop_name,
        )

    async def _barber_for(self, db: AsyncSession, review: Review) -> Optional[Barber]:
        if review.barber_id is not None:
            return await db.get(Barber, review.barber_id)
        result = await db.execute(
            select(Barber).where(
                Barber.name == review.barber_name,
                Barber.shop_name == review.shop_name,
                Barber.location == review.location,
            )
        )
        return result.scalar_one_or_none()

    async def _owned_review(self, db: AsyncSession, review_id: uuid.UUID, user_email: str) -> Review:
        result = await db.execute(
            select(Review).where(Review.id == review_id, Review.user_email == user_email)
        )
        review = result.scalar_one_or_none()
        if review is None:
            raise NotFoundError(resource="review", resource_id=str(review_id), message=REVIEW_NOT_FOUND)
        return review

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_review(self, db: AsyncSession, payload: ReviewCreate) -> ReviewWriteResponse:
        """
        Store a review and fold its rating into the professional's aggregates.

        Raises:
            ValidationError: rating outside [1, 5]
            DatabaseError:   any write failed (the whole request rolls back)
        """
        if not 1 <= payload.rating <= 5:
            raise ValidationError(RATING_MESSAGE, field="rating")

        try:
            barber = await self._locate_barber(
                db, payload.barber_name, payload.shop_name, payload.location
            )

            review = Review(barber_id=barber.id, **payload.model_dump())
            db.add(review)
            await db.flush()

            barber = await self._shift_barber(db, barber.id, payload.rating, 1)
            await self._refresh_profile(db, review)

            logger.info(
                "Review %s created for '%s' at '%s' (rating=%d, avg=%.2f over %d)",
                review.id, review.barber_name, review.shop_name, review.rating,
                barber.average_rating, barber.total_reviews,
            )
            return ReviewWriteResponse(
                review=ReviewResponse.model_validate(review),
                aggregate=AggregateResponse.model_validate(barber),
            )

        except FadetrackError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to create review: %s", e, exc_info=True)
            raise DatabaseError(
                message=f"Failed to create review: {e}",
                context={"error_type": type(e).__name__},
            )

    async def update_review(self, db: AsyncSession, payload: ReviewUpdate) -> ReviewWriteResponse:
        """
        Edit an owned review. A rating change swaps the old rating for the new
        one in every aggregate; the review count is unchanged.
        """
        changes = payload.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        try:
            review = await self._owned_review(db, payload.id, payload.user_email)
            old_rating = review.rating

            for field, value in changes.items():
                setattr(review, field, value)
            await db.flush()

            barber = await self._barber_for(db, review)
            delta = review.rating - old_rating
            if delta:
                if barber is not None:
                    barber = await self._shift_barber(db, barber.id, delta, 0)
                await self._refresh_profile(db, review)
                logger.info("Review %s rating changed %d -> %d", review.id, old_rating, review.rating)

            return ReviewWriteResponse(
                message="Review updated successfully",
                review=ReviewResponse.model_validate(review),
                aggregate=AggregateResponse.model_validate(barber) if barber else None,
            )

        except FadetrackError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to update review %s: %s", payload.id, e, exc_info=True)
            raise DatabaseError(message=f"Failed to update review: {e}")

    async def delete_review(self, db: AsyncSession, payload: ReviewDelete) -> ReviewWriteResponse:
        """
        Delete an owned review and remove its rating from the aggregates.

        When this was the professional's last review the `barbers` row is
        deleted and the response carries `aggregate: null`.
        """
        try:
            review = await self._owned_review(db, payload.id, payload.user_email)
            barber = await self._barber_for(db, review)

            await db.delete(review)
            await db.flush()

            remaining = None
            if barber is not None:
                remaining = await self._shift_barber(db, barber.id, -review.rating, -1)
            await self._refresh_profile(db, review)

            if barber is not None and remaining is None:
                logger.info("Last review for '%s' deleted; aggregate removed", review.barber_name)
            logger.info("Review %s deleted by %s", review.id, payload.user_email)

            return ReviewWriteResponse(
                message="Review deleted successfully",
                aggregate=AggregateResponse.model_validate(remaining) if remaining else None,
            )

        except FadetrackError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to delete review %s: %s", payload.id, e, exc_info=True)
            raise DatabaseError(message=f"Failed to delete review: {e}")

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_public_reviews(
        self,
        db: AsyncSession,
        barber_name: Optional[str] = None,
        shop_name: Optional[str] = None,
        limit: int = 100,
    ) -> List[ReviewResponse]:
        query = select(Review).where(Review.is_public.is_(True))
        if barber_name:
            query = query.where(Review.barber_name == barber_name)
        if shop_name:
            query = query.where(Review.shop_name == shop_name)
        query = query.order_by(Review.created_at.desc()).limit(limit)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to fetch reviews: {e}")
        return [ReviewResponse.model_validate(r) for r in result.scalars().all()]

    async def list_user_reviews(self, db: AsyncSession, user_email: str) -> List[ReviewResponse]:
        try:
            result = await db.execute(
                select(Review)
                .where(Review.user_email == user_email)
                .order_by(Review.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to fetch reviews: {e}")
        return [ReviewResponse.model_validate(r) for r in result.scalars().all()]

    async def list_barbers(
        self, db: AsyncSession, q: Optional[str] = None, limit: int = 50
    ) -> List[AggregateResponse]:
        """Aggregate directory, best rated first, ties broken by review count."""
        query = select(Barber)
        if q:
            pattern = f"%{q.strip()}%"
            query = query.where(
                or_(
                    Barber.name.ilike(pattern),
                    Barber.shop_name.ilike(pattern),
                    Barber.location.ilike(pattern),
                )
            )
        query = query.order_by(
            Barber.average_rating.desc(), Barber.total_reviews.desc()
        ).limit(limit)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to fetch barbers: {e}")
        return [AggregateResponse.model_validate(b) for b in result.scalars().all()]

    # ── Professional responses ────────────────────────────────────────────

    async def _active_profile(self, db: AsyncSession, email: str) -> ProfessionalProfile:
        result = await db.execute(
            select(ProfessionalProfile).where(
                ProfessionalProfile.user_email == email,
                ProfessionalProfile.is_active.is_(True),
            )
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError(resource="professional profile", message="Professional profile not found")
        return profile

    async def list_profile_reviews(
        self, db: AsyncSession, professional_email: str
    ) -> List[ReviewResponse]:
        """Every review (public or not) naming the caller's profile."""
        profile = await self._active_profile(db, professional_email)
        result = await db.execute(
            select(Review)
            .where(
                Review.barber_name == profile.display_name,
                Review.shop_name == profile.business_name,
            )
            .order_by(Review.created_at.desc())
        )
        return [ReviewResponse.model_validate(r) for r in result.scalars().all()]

    async def respond(
        self, db: AsyncSession, payload: ReviewReply, editing: bool = False
    ) -> ReviewResponse:
        """
        Add (POST) or edit (PUT) the professional's public reply to a review.

        Raises:
            NotFoundError: the review does not exist or does not name the
                           caller's profile; or, when editing, has no reply yet
            ConflictError: adding a reply where one already exists
        """
        profile = await self._active_profile(db, payload.professional_email)
        result = await db.execute(
            select(Review).where(
                Review.id == payload.review_id,
                Review.barber_name == profile.display_name,
                Review.shop_name == profile.business_name,
            )
        )
        review = result.scalar_one_or_none()
        if review is None:
            raise NotFoundError(
                resource="review",
                resource_id=str(payload.review_id),
                message="Review not found or unauthorized",
            )

        if editing and not review.professional_response:
            raise NotFoundError(resource="review response", message="No response to update for this review")
        if not editing and review.professional_response:
            raise ConflictError("A response already exists for this review; edit it instead")

        review.professional_response = payload.response
        review.response_date = utcnow()
        await db.flush()
        logger.info("Professional %s replied to review %s", payload.professional_email, review.id)
        return ReviewResponse.model_validate(review)


# ── Singleton Instance ────────────────────────────────────────────────────
review_service = ReviewService()
