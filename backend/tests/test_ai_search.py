"""
Fadetrack Backend: AI Search & Usage Quota Tests
================================================

What we test:
    ✅ 20 searches a day succeed, the 21st is a 429 with Retry-After
    ✅ Daily and monthly counters roll over on the calendar
    ✅ A failed upstream call does not use up quota
    ✅ Missing credentials → 500, open breaker → 503
    ✅ ChatKit sessions share the quota; upstream status passes through
"""

from datetime import datetime, timezone

import httpx
import pytest

from fadetrack.exceptions import UpstreamServiceError, UsageLimitExceededError
from fadetrack.services.chatkit_service import ChatKitClient
from fadetrack.services.usage_service import UsageService, usage_identity


def at(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class TestUsageService:

    def setup_method(self):
        self.service = UsageService(daily_limit=20, monthly_limit=100)

    def test_identity(self):
        assert usage_identity("alex@example.com", "10.0.0.1") == "alex@example.com"
        assert usage_identity("  ", "10.0.0.1") == "ip:10.0.0.1"
        assert usage_identity(None, None) == "ip:unknown"

    @pytest.mark.asyncio
    async def test_daily_limit_and_rollover(self, db_session):
        today = at(2025, 3, 10, hour=23)
        for _ in range(20):
            await self.service.consume(db_session, "alex@example.com", now=today)

        with pytest.raises(UsageLimitExceededError) as exc_info:
            await self.service.consume(db_session, "alex@example.com", now=today)
        assert exc_info.value.context["period"] == "daily"
        assert exc_info.value.retry_after == 3600

        snapshot = await self.service.consume(db_session, "alex@example.com", now=at(2025, 3, 11))
        assert snapshot.daily_sessions == 1
        assert snapshot.monthly_sessions == 21
        assert snapshot.total_sessions == 21

    @pytest.mark.asyncio
    async def test_monthly_limit_and_rollover(self, db_session):
        service = UsageService(daily_limit=20, monthly_limit=3)
        for day in (1, 2, 3):
            await service.consume(db_session, "alex@example.com", now=at(2025, 3, day))

        with pytest.raises(UsageLimitExceededError) as exc_info:
            await service.consume(db_session, "alex@example.com", now=at(2025, 3, 4))
        assert exc_info.value.context["period"] == "monthly"

        snapshot = await service.consume(db_session, "alex@example.com", now=at(2025, 4, 1))
        assert snapshot.monthly_sessions == 1
        assert snapshot.total_sessions == 4

    @pytest.mark.asyncio
    async def test_identities_are_independent(self, db_session):
        for _ in range(20):
            await self.service.consume(db_session, "alex@example.com", now=at(2025, 3, 10))
        snapshot = await self.service.consume(db_session, "ip:10.0.0.1", now=at(2025, 3, 10))
        assert snapshot.daily_sessions == 1

    @pytest.mark.asyncio
    async def test_usage_for_shows_stale_period_as_zero(self, db_session):
        await self.service.consume(db_session, "alex@example.com", now=at(2025, 3, 10))

        next_day = await self.service.usage_for(db_session, "alex@example.com", now=at(2025, 3, 11))
        assert next_day.daily_sessions == 0
        assert next_day.daily_remaining == 20
        assert next_day.monthly_sessions == 1

        unknown = await self.service.usage_for(db_session, "nobody@example.com")
        assert unknown.total_sessions == 0
        assert unknown.message == "No usage data found for this user"


class TestAISearchRoute:

    @pytest.mark.asyncio
    async def test_twenty_first_search_is_rejected(self, test_client, fake_agent):
        body = {"query": "bridal makeup in Austin", "user_email": "alex@example.com"}
        for _ in range(20):
            response = await test_client.post("/api/aiSearch", json=body)
            assert response.status_code == 200
            assert response.json() == {"text": "Jane Doe - fades in Austin"}

        response = await test_client.post("/api/aiSearch", json=body)

        assert response.status_code == 429
        assert response.json()["error"] == "usage_limit_exceeded"
        assert int(response.headers["Retry-After"]) > 0
        assert len(fake_agent.queries) == 20

    @pytest.mark.asyncio
    async def test_missing_query(self, test_client, fake_agent):
        response = await test_client.post("/api/aiSearch", json={"user_email": "alex@example.com"})
        assert response.status_code == 400
        assert response.json()["message"] == "Missing required field: query"
        assert response.json()["details"] == {"field": "query"}

    @pytest.mark.asyncio
    async def test_failed_upstream_is_not_counted(self, test_client, fake_agent, upstream_failure):
        fake_agent.error = upstream_failure
        body = {"query": "barbers near me", "user_email": "alex@example.com"}

        response = await test_client.post("/api/aiSearch", json=body)
        assert response.status_code == 500
        assert response.json()["message"] == "AI search run failed"

        usage = await test_client.get("/api/chatkit/usage", params={"email": "alex@example.com"})
        assert usage.json()["total_sessions"] == 0

        fake_agent.error = None
        await test_client.post("/api/aiSearch", json=body)
        usage = await test_client.get("/api/chatkit/usage", params={"email": "alex@example.com"})
        assert usage.json()["daily_sessions"] == 1

    @pytest.mark.asyncio
    async def test_unconfigured_upstream(self, test_client):
        from fadetrack.services.ai_search_service import ai_search_service

        assert ai_search_service.active_agent() is None
        response = await test_client.post("/api/aiSearch", json={"query": "nails in Dallas"})

        assert response.status_code == 500
        assert response.json()["error"] == "misconfigured"
        assert "missing OPENAI_WORKFLOW_ID or GEMINI_API_KEY" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_breaker_opens_after_repeated_failures(self, test_client, fake_agent, upstream_failure):
        fake_agent.error = upstream_failure
        body = {"query": "stylists", "user_email": "alex@example.com"}

        for _ in range(5):
            response = await test_client.post("/api/aiSearch", json=body)
            assert response.status_code == 500

        response = await test_client.post("/api/aiSearch", json=body)
        assert response.status_code == 503
        assert "Retry-After" in response.headers
        assert len(fake_agent.queries) == 5

        health = await test_client.get("/health")
        assert health.json()["ai_search"] == "circuit_open"

    @pytest.mark.asyncio
    async def test_rejected_request_does_not_trip_breaker(self, test_client, fake_agent):
        from fadetrack.services.ai_search_service import ai_search_service

        fake_agent.error = UpstreamServiceError(service="fake", message="bad prompt", status_code=400)
        body = {"query": "stylists", "user_email": "alex@example.com"}
        for _ in range(6):
            response = await test_client.post("/api/aiSearch", json=body)
            assert response.status_code == 400

        assert ai_search_service.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_anonymous_callers_are_keyed_by_ip(self, test_client, fake_agent):
        await test_client.post(
            "/api/aiSearch", json={"query": "fades"}, headers={"X-Forwarded-For": "203.0.113.7"}
        )

        report = await test_client.get("/api/chatkit/usage")

        data = report.json()
        assert data["totals"]["totalUsers"] == 1
        assert data["users"][0]["user_email"] == "ip:203.0.113.7"


class TestChatKitRoutes:

    def install(self, monkeypatch, handler):
        from fadetrack.services.ai_search_service import ai_search_service

        client = ChatKitClient(
            api_key="sk-test",
            workflow_id="wf_123",
            base_url="https://upstream.test/v1",
            transport=httpx.MockTransport(handler),
        )
        monkeypatch.setattr(ai_search_service, "chatkit", client)
        ai_search_service.circuit_breaker.reset()

    @pytest.mark.asyncio
    async def test_status(self, test_client):
        response = await test_client.get("/api/chatkit")
        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_session_issued_and_counted(self, test_client, monkeypatch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["beta"] = request.headers["OpenAI-Beta"]
            seen["path"] = request.url.path
            return httpx.Response(200, json={"client_secret": "ek_secret"})

        self.install(monkeypatch, handler)

        response = await test_client.post("/api/chatkit/session", json={"user_email": "alex@example.com"})

        assert response.status_code == 200
        data = response.json()
        assert data["client_secret"] == "ek_secret"
        assert data["usage"]["daily_sessions"] == 1
        assert data["usage"]["daily_remaining"] == 19
        assert seen == {"auth": "Bearer sk-test", "beta": "chatkit_beta=v1", "path": "/v1/chatkit/sessions"}

        peek = await test_client.get("/api/chatkit/session", params={"email": "alex@example.com"})
        assert peek.json()["daily_sessions"] == 1

    @pytest.mark.asyncio
    async def test_upstream_status_passes_through(self, test_client, monkeypatch):
        self.install(monkeypatch, lambda request: httpx.Response(401, text="invalid api key"))

        response = await test_client.post("/api/chatkit/session", json={"user_email": "alex@example.com"})

        assert response.status_code == 401
        assert response.json()["details"]["details"] == "invalid api key"

        usage = await test_client.get("/api/chatkit/usage", params={"email": "alex@example.com"})
        assert usage.json()["total_sessions"] == 0

    @pytest.mark.asyncio
    async def test_session_without_credentials(self, test_client):
        response = await test_client.post("/api/chatkit/session")
        assert response.status_code == 500
        assert "missing OPENAI_WORKFLOW_ID" in response.json()["message"]
