"""
Fadetrack Backend: Review API Tests
===================================

Exercises the review routes end to end through the ASGI app, including the
error envelope produced by the exception handlers.
"""

import pytest


async def create(client, payload, **overrides):
    body = {**payload, **overrides}
    response = await client.post("/api/createReview", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateReview:

    @pytest.mark.asyncio
    async def test_create_returns_review_and_aggregate(self, test_client, review_payload):
        response = await test_client.post("/api/createReview", json=review_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["review"]["rating"] == 5
        assert data["aggregate"]["average_rating"] == 5.0
        assert data["aggregate"]["total_reviews"] == 1
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_missing_title_is_named(self, test_client, review_payload):
        body = dict(review_payload)
        del body["title"]

        response = await test_client.post("/api/createReview", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert data["message"] == "Missing required field: title"
        assert data["details"] == {"field": "title"}

    @pytest.mark.asyncio
    async def test_empty_string_counts_as_missing(self, test_client, review_payload):
        response = await test_client.post(
            "/api/createReview", json={**review_payload, "review_text": ""}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_out_of_range(self, test_client, review_payload, rating):
        response = await test_client.post(
            "/api/createReview", json={**review_payload, "rating": rating}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Rating must be between 1 and 5"

        barbers = await test_client.get("/api/barbers")
        assert barbers.json()["barbers"] == []


class TestUpdateAndDelete:

    @pytest.mark.asyncio
    async def test_worked_example_over_http(self, test_client, review_payload):
        first = await create(test_client, review_payload, rating=5)
        second = await create(test_client, review_payload, rating=3)
        assert second["aggregate"]["average_rating"] == 4.0

        response = await test_client.request(
            "DELETE",
            "/api/deleteReview",
            json={"id": first["review"]["id"], "user_email": "alex@example.com"},
        )

        assert response.status_code == 200
        assert response.json()["aggregate"]["average_rating"] == 3.0
        assert response.json()["aggregate"]["total_reviews"] == 1

    @pytest.mark.asyncio
    async def test_deleting_last_review_clears_directory(self, test_client, review_payload):
        written = await create(test_client, review_payload)

        response = await test_client.request(
            "DELETE",
            "/api/deleteReview",
            json={"id": written["review"]["id"], "user_email": "alex@example.com"},
        )

        assert response.status_code == 200
        assert response.json()["aggregate"] is None
        barbers = await test_client.get("/api/barbers")
        assert barbers.json()["barbers"] == []

    @pytest.mark.asyncio
    async def test_update_changes_rating(self, test_client, review_payload):
        written = await create(test_client, review_payload, rating=2)

        response = await test_client.put(
            "/api/updateReview",
            json={"id": written["review"]["id"], "user_email": "alex@example.com", "rating": 4},
        )

        assert response.status_code == 200
        assert response.json()["aggregate"]["average_rating"] == 4.0
        assert response.json()["aggregate"]["total_reviews"] == 1

    @pytest.mark.asyncio
    async def test_update_with_no_fields(self, test_client, review_payload):
        written = await create(test_client, review_payload)

        response = await test_client.put(
            "/api/updateReview",
            json={"id": written["review"]["id"], "user_email": "alex@example.com"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No valid fields to update"

    @pytest.mark.asyncio
    async def test_other_user_gets_404(self, test_client, review_payload):
        written = await create(test_client, review_payload)

        response = await test_client.request(
            "DELETE",
            "/api/deleteReview",
            json={"id": written["review"]["id"], "user_email": "mallory@example.com"},
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Review not found or access denied"

        barbers = (await test_client.get("/api/barbers")).json()["barbers"]
        assert barbers[0]["total_reviews"] == 1


class TestReviewReads:

    @pytest.mark.asyncio
    async def test_public_reviews_filter_and_hide_private(self, test_client, review_payload):
        await create(test_client, review_payload)
        await create(test_client, review_payload, barber_name="Dana Cruz")
        await create(test_client, review_payload, is_public=False)

        response = await test_client.get("/api/publicReviews", params={"barberName": "Marcus Reed"})

        assert response.status_code == 200
        reviews = response.json()["reviews"]
        assert len(reviews) == 1
        assert reviews[0]["barber_name"] == "Marcus Reed"

    @pytest.mark.asyncio
    async def test_my_reviews_requires_email(self, test_client):
        response = await test_client.get("/api/myReviews")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_my_reviews_includes_private(self, test_client, review_payload):
        await create(test_client, review_payload, is_public=False)
        await create(test_client, review_payload, user_email="sam@example.com")

        response = await test_client.get("/api/myReviews", params={"email": "alex@example.com"})

        reviews = response.json()["reviews"]
        assert [r["user_email"] for r in reviews] == ["alex@example.com"]

    @pytest.mark.asyncio
    async def test_barbers_ranked_by_average(self, test_client, review_payload):
        await create(test_client, review_payload, rating=3)
        await create(test_client, review_payload, barber_name="Dana Cruz", rating=5)

        response = await test_client.get("/api/barbers")

        names = [b["name"] for b in response.json()["barbers"]]
        assert names == ["Dana Cruz", "Marcus Reed"]

        filtered = await test_client.get("/api/barbers", params={"q": "dana"})
        assert [b["name"] for b in filtered.json()["barbers"]] == ["Dana Cruz"]


class TestReviewResponses:

    async def make_profile(self, client):
        response = await client.post(
            "/api/professionalProfileSimple",
            json={
                "user_email": "marcus@example.com",
                "business_name": "Sharp Edges",
                "display_name": "Marcus Reed",
                "profession_type": "barber",
            },
        )
        assert response.status_code == 201, response.text

    @pytest.mark.asyncio
    async def test_reply_flow(self, test_client, review_payload):
        await self.make_profile(test_client)
        written = await create(test_client, review_payload)
        reply = {
            "review_id": written["review"]["id"],
            "professional_email": "marcus@example.com",
            "response": "Thanks, see you soon!",
        }

        listed = await test_client.get("/api/reviewResponses", params={"email": "marcus@example.com"})
        assert len(listed.json()["reviews"]) == 1

        edit_first = await test_client.put("/api/reviewResponses", json=reply)
        assert edit_first.status_code == 404

        added = await test_client.post("/api/reviewResponses", json=reply)
        assert added.status_code == 200
        assert added.json()["professional_response"] == "Thanks, see you soon!"

        again = await test_client.post("/api/reviewResponses", json=reply)
        assert again.status_code == 409

        edited = await test_client.put(
            "/api/reviewResponses", json={**reply, "response": "Updated reply"}
        )
        assert edited.status_code == 200
        assert edited.json()["professional_response"] == "Updated reply"

    @pytest.mark.asyncio
    async def test_reply_without_profile(self, test_client):
        response = await test_client.get("/api/reviewResponses", params={"email": "nobody@example.com"})
        assert response.status_code == 404
