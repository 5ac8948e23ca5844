"""
Fadetrack Backend: Review Service Tests
=======================================

Runs against an in-memory SQLite database so the aggregate UPDATE
statements execute for real.

What we test:
    ✅ The worked example: 5 → 5.0/1, +3 → 4.0/2, delete the 5 → 3.0/1
    ✅ No drift after a long mix of creates, edits and deletes
    ✅ Deleting the last review removes the aggregate row
    ✅ Rating swaps on edit keep the count unchanged
    ✅ Ownership failures are 404s
    ✅ A matching professional profile mirrors the aggregate
    ✅ Reviews older than the profile, and profile renames, are counted
"""

import datetime as dt
import random

import pytest
from sqlalchemy import select

from fadetrack.exceptions import ConflictError, NotFoundError, ValidationError
from fadetrack.models.professional import ProfessionalProfile
from fadetrack.models.review import Barber
from fadetrack.schemas.professional import ProfileCreate, ProfileUpdate
from fadetrack.schemas.review import ReviewCreate, ReviewDelete, ReviewReply, ReviewUpdate
from fadetrack.services.professional_service import ProfessionalService
from fadetrack.services.review_service import ReviewService


def make_review(rating, user_email="alex@example.com", **overrides):
    data = {
        "user_email": user_email,
        "barber_name": "Marcus Reed",
        "shop_name": "Sharp Edges",
        "location": "Austin, TX",
        "service_type": "Skin fade",
        "rating": rating,
        "date": dt.date(2025, 3, 1),
        "title": "Visit",
        "review_text": "Good cut.",
    }
    data.update(overrides)
    return ReviewCreate(**data)


async def barber_rows(db):
    result = await db.execute(select(Barber))
    return list(result.scalars().all())


class TestAggregateArithmetic:

    def setup_method(self):
        self.service = ReviewService()

    @pytest.mark.asyncio
    async def test_worked_example(self, db_session):
        first = await self.service.create_review(db_session, make_review(5))
        assert first.aggregate.average_rating == pytest.approx(5.0)
        assert first.aggregate.total_reviews == 1

        second = await self.service.create_review(db_session, make_review(3))
        assert second.aggregate.average_rating == pytest.approx(4.0)
        assert second.aggregate.total_reviews == 2

        removed = await self.service.delete_review(
            db_session, ReviewDelete(id=first.review.id, user_email="alex@example.com")
        )
        assert removed.aggregate.average_rating == pytest.approx(3.0)
        assert removed.aggregate.total_reviews == 1

    @pytest.mark.asyncio
    async def test_average_matches_live_reviews_after_mixed_writes(self, db_session):
        rng = random.Random(1234)
        live = {}

        for _ in range(40):
            action = rng.random()
            if action < 0.55 or not live:
                written = await self.service.create_review(db_session, make_review(rng.randint(1, 5)))
                live[written.review.id] = written.review.rating
            elif action < 0.8:
                review_id = rng.choice(list(live))
                new_rating = rng.randint(1, 5)
                await self.service.update_review(
                    db_session,
                    ReviewUpdate(id=review_id, user_email="alex@example.com", rating=new_rating),
                )
                live[review_id] = new_rating
            else:
                review_id = rng.choice(list(live))
                await self.service.delete_review(
                    db_session, ReviewDelete(id=review_id, user_email="alex@example.com")
                )
                del live[review_id]

        rows = await barber_rows(db_session)
        if not live:
            assert rows == []
            return
        assert len(rows) == 1
        barber = rows[0]
        assert barber.total_reviews == len(live)
        assert barber.rating_sum == sum(live.values())
        assert barber.average_rating == pytest.approx(sum(live.values()) / len(live))

    @pytest.mark.asyncio
    async def test_deleting_last_review_removes_aggregate(self, db_session):
        written = await self.service.create_review(db_session, make_review(4))
        result = await self.service.delete_review(
            db_session, ReviewDelete(id=written.review.id, user_email="alex@example.com")
        )
        assert result.aggregate is None
        assert await barber_rows(db_session) == []

    @pytest.mark.asyncio
    async def test_same_name_at_other_location_is_separate_aggregate(self, db_session):
        await self.service.create_review(db_session, make_review(5))
        await self.service.create_review(db_session, make_review(1, location="Dallas, TX"))
        rows = sorted(await barber_rows(db_session), key=lambda b: b.location)
        assert [(b.location, b.total_reviews, b.average_rating) for b in rows] == [
            ("Austin, TX", 1, 5.0),
            ("Dallas, TX", 1, 1.0),
        ]

    @pytest.mark.asyncio
    async def test_rating_change_swaps_value_without_recounting(self, db_session):
        await self.service.create_review(db_session, make_review(5))
        written = await self.service.create_review(db_session, make_review(1))

        updated = await self.service.update_review(
            db_session,
            ReviewUpdate(id=written.review.id, user_email="alex@example.com", rating=3),
        )
        assert updated.aggregate.total_reviews == 2
        assert updated.aggregate.average_rating == pytest.approx(4.0)
        assert updated.review.rating == 3


class TestReviewValidationAndOwnership:

    def setup_method(self):
        self.service = ReviewService()

    @pytest.mark.asyncio
    async def test_out_of_range_rating_rejected_before_any_write(self, db_session):
        payload = make_review(5).model_copy(update={"rating": 6})
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_review(db_session, payload)
        assert exc_info.value.message == "Rating must be between 1 and 5"
        assert await barber_rows(db_session) == []

    @pytest.mark.asyncio
    async def test_update_without_fields_rejected(self, db_session):
        written = await self.service.create_review(db_session, make_review(4))
        with pytest.raises(ValidationError):
            await self.service.update_review(
                db_session, ReviewUpdate(id=written.review.id, user_email="alex@example.com")
            )

    @pytest.mark.asyncio
    async def test_other_users_review_is_not_found(self, db_session):
        written = await self.service.create_review(db_session, make_review(4))
        with pytest.raises(NotFoundError):
            await self.service.delete_review(
                db_session, ReviewDelete(id=written.review.id, user_email="mallory@example.com")
            )
        rows = await barber_rows(db_session)
        assert rows[0].total_reviews == 1


class TestProfileAggregateAndReplies:

    def setup_method(self):
        self.service = ReviewService()

    async def add_profile(self, db):
        profile = ProfessionalProfile(
            user_email="marcus@example.com",
            business_name="Sharp Edges",
            display_name="Marcus Reed",
            profession_type="barber",
        )
        db.add(profile)
        await db.flush()
        return profile

    @pytest.mark.asyncio
    async def test_matching_profile_tracks_ratings(self, db_session):
        profile = await self.add_profile(db_session)
        first = await self.service.create_review(db_session, make_review(5))
        await self.service.create_review(db_session, make_review(2))
        await self.service.delete_review(
            db_session, ReviewDelete(id=first.review.id, user_email="alex@example.com")
        )

        await db_session.refresh(profile)
        assert profile.total_reviews == 1
        assert profile.rating_sum == 2
        assert profile.average_rating == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_reviews_written_before_profile_are_counted(self, db_session):
        early = await self.service.create_review(db_session, make_review(5))
        created = await ProfessionalService().create_profile(
            db_session,
            ProfileCreate(
                user_email="marcus@example.com",
                business_name="Sharp Edges",
                display_name="Marcus Reed",
                profession_type="barber",
            ),
        )
        assert created.total_reviews == 1
        assert created.average_rating == pytest.approx(5.0)

        await self.service.create_review(db_session, make_review(1))
        await self.service.delete_review(
            db_session, ReviewDelete(id=early.review.id, user_email="alex@example.com")
        )

        profile = await db_session.get(ProfessionalProfile, created.id, populate_existing=True)
        assert (profile.rating_sum, profile.total_reviews) == (1, 1)
        assert profile.average_rating == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_renaming_profile_recounts_matching_reviews(self, db_session):
        profile = await self.add_profile(db_session)
        await self.service.create_review(db_session, make_review(4))
        await self.service.create_review(
            db_session, make_review(2, barber_name="Marcus R.", shop_name="Sharp Edges")
        )

        renamed = await ProfessionalService().update_profile(
            db_session,
            ProfileUpdate(user_email="marcus@example.com", display_name="Marcus R."),
        )
        assert renamed.total_reviews == 1
        assert renamed.average_rating == pytest.approx(2.0)

        await self.service.create_review(
            db_session, make_review(4, barber_name="Marcus R.", shop_name="Sharp Edges")
        )
        await db_session.refresh(profile)
        assert (profile.rating_sum, profile.total_reviews) == (6, 2)
        assert profile.average_rating == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_reply_lifecycle(self, db_session):
        await self.add_profile(db_session)
        written = await self.service.create_review(db_session, make_review(4))
        reply = ReviewReply(
            review_id=written.review.id,
            professional_email="marcus@example.com",
            response="Thanks for coming in!",
        )

        with pytest.raises(NotFoundError):
            await self.service.respond(db_session, reply, editing=True)

        answered = await self.service.respond(db_session, reply)
        assert answered.professional_response == "Thanks for coming in!"
        assert answered.response_date is not None

        with pytest.raises(ConflictError):
            await self.service.respond(db_session, reply)

        edited = await self.service.respond(
            db_session, reply.model_copy(update={"response": "See you next month."}), editing=True
        )
        assert edited.professional_response == "See you next month."

    @pytest.mark.asyncio
    async def test_reply_to_review_of_someone_else_is_not_found(self, db_session):
        await self.add_profile(db_session)
        written = await self.service.create_review(
            db_session, make_review(4, barber_name="Somebody Else")
        )
        with pytest.raises(NotFoundError):
            await self.service.respond(
                db_session,
                ReviewReply(
                    review_id=written.review.id,
                    professional_email="marcus@example.com",
                    response="Hi",
                ),
            )
