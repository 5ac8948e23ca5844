"""
Fadetrack Backend: Health, Config & Middleware Tests
====================================================
"""

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from httpx import ASGITransport, AsyncClient

from fadetrack.main import _describe_validation_error
from fadetrack.middleware.rate_limit import RateLimitMiddleware


class TestHealth:

    @pytest.mark.asyncio
    async def test_degraded_without_ai_credentials(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["database"] == "connected"
        assert data["ai_search"] == "unconfigured"
        assert data["status"] == "degraded"
        assert data["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_healthy_with_an_agent(self, test_client, fake_agent):
        response = await test_client.get("/health")

        assert response.json()["status"] == "healthy"
        assert response.json()["ai_search"] == "fake"

    @pytest.mark.asyncio
    async def test_client_config_is_browser_safe(self, test_client):
        response = await test_client.get("/api/config")

        data = response.json()
        assert data["storage_bucket"] == "portfolio-images"
        assert data["max_upload_size"] == 5 * 1024 * 1024
        assert data["chatkit_daily_limit"] == 20
        assert data["ai_search_enabled"] is False
        assert set(data) == {
            "google_maps_api_key",
            "storage_bucket",
            "max_upload_size",
            "chatkit_daily_limit",
            "chatkit_monthly_limit",
            "ai_search_enabled",
        }


class TestValidationMessages:

    @pytest.mark.parametrize(
        "loc, expected",
        [
            (("body", "query"), ("query", "Missing required field: query")),
            (("query", "email"), ("email", "Missing required field: email")),
            (("query", "query"), ("query", "Missing required field: query")),
        ],
    )
    def test_location_prefix_is_dropped(self, loc, expected):
        exc = RequestValidationError([{"type": "missing", "loc": loc, "msg": "Field required"}])
        assert _describe_validation_error(exc) == expected

    def test_value_error_prefix_stripped(self):
        exc = RequestValidationError(
            [{"type": "value_error", "loc": ("body", "rating"), "msg": "Value error, Rating must be between 1 and 5"}]
        )
        assert _describe_validation_error(exc) == ("rating", "Rating must be between 1 and 5")


class TestRequestId:

    @pytest.mark.asyncio
    async def test_caller_id_is_echoed_in_header_and_errors(self, test_client):
        response = await test_client.get("/api/myReviews", headers={"X-Request-ID": "abc12345"})

        assert response.status_code == 400
        assert response.headers["X-Request-ID"] == "abc12345"
        assert response.json()["request_id"] == "abc12345"

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/api/specialties")
        assert len(response.headers["X-Request-ID"]) == 8


class TestRateLimit:

    def build_app(self):
        app = FastAPI()

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"ok": True}

        app.add_middleware(RateLimitMiddleware, max_requests=3, window=60)
        return app

    @pytest.mark.asyncio
    async def test_limits_per_address(self):
        transport = ASGITransport(app=self.build_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for _ in range(3):
                assert (await client.get("/ping")).status_code == 200

            limited = await client.get("/ping")
            assert limited.status_code == 429
            assert limited.json()["error"] == "rate_limit_exceeded"
            assert 0 < int(limited.headers["Retry-After"]) <= 61

            other = await client.get("/ping", headers={"X-Forwarded-For": "198.51.100.4"})
            assert other.status_code == 200

            assert (await client.get("/health")).status_code == 200
