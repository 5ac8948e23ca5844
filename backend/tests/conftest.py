"""
Fadetrack Backend: Test Configuration
=====================================

Fixtures:
    db_engine      fresh in-memory SQLite database with every table created
    db_session     AsyncSession on that database, for service-level tests
    test_client    httpx AsyncClient over ASGITransport; the app's session
                   dependency is pointed at `db_engine` with the same
                   commit/rollback behaviour as production
    fake_agent     stand-in SearchAgent installed on the AI search singleton
    sample_gif     smallest real GIF, accepted by content sniffing
"""

import os
import tempfile

# Must run before anything imports fadetrack.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="fadetrack_test_")
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
for _key in ("OPENAI_API_KEY", "OPENAI_WORKFLOW_ID", "GEMINI_API_KEY", "RESEND_API_KEY"):
    os.environ[_key] = ""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fadetrack.database import Base, get_db_session
from fadetrack.exceptions import UpstreamServiceError
from fadetrack.models import account, professional, review, usage  # noqa: F401  (register tables)
from fadetrack.services.search_base import SearchAgent


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(db_engine):
    from fadetrack.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class FakeAgent(SearchAgent):
    """Configurable SearchAgent double that records the queries it saw."""

    name = "fake"

    def __init__(self, answer="Jane Doe - fades in Austin", error=None):
        self.answer = answer
        self.error = error
        self.queries = []

    @property
    def configured(self) -> bool:
        return True

    async def search(self, query: str) -> str:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def fake_agent(monkeypatch):
    from fadetrack.services.ai_search_service import ai_search_service

    agent = FakeAgent()
    monkeypatch.setattr(ai_search_service, "agents", [agent])
    ai_search_service.circuit_breaker.reset()
    yield agent
    ai_search_service.circuit_breaker.reset()


@pytest.fixture
def upstream_failure():
    return UpstreamServiceError(service="fake", message="AI search run failed")


@pytest.fixture
def sample_gif():
    # 1x1 transparent GIF
    return (
        b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04"
        b"\x01\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
    )


@pytest.fixture
def review_payload():
    return {
        "user_email": "alex@example.com",
        "barber_name": "Marcus Reed",
        "shop_name": "Sharp Edges",
        "location": "Austin, TX",
        "service_type": "Skin fade",
        "rating": 5,
        "date": "2025-03-01",
        "title": "Cleanest fade in town",
        "review_text": "On time, friendly, perfect blend.",
    }
