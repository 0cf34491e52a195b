"""Shared test fixtures — async DB, client, rate limiter, payload factory.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Required settings must exist before any import touches pydantic-settings
os.environ.setdefault("DATABASE_URL", "postgresql+asyncpg://donations@localhost:5432/donations")
os.environ.setdefault("DATABASE_SERVICE_KEY", "test-service-key-do-not-use-in-production")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from donation_api.common.rate_limit import FixedWindowRateLimiter
from donation_api.config import settings
from donation_api.database import Base, get_db
from donation_api.main import create_app

import donation_api.events.models  # noqa: F401


# ── SQLite compat: compile PG-specific types ─────────────────────────

@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Rate limiter with a controllable clock ──────────────────────────

class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=60, window_ms=60_000, clock=clock)


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
def app_settings():
    """Settings for the test app; tests override fields with model_copy."""
    return settings.model_copy(update={"REQUIRE_API_SECRET": False, "API_SECRET": ""})


@pytest.fixture
async def app(app_settings, limiter):
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app(app_settings=app_settings, rate_limiter=limiter)
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Payload factory ─────────────────────────────────────────────────

def _make_payload(**overrides) -> dict:
    payload = dict(
        installId="abc",
        amount=5,
        charity="redcross",
        host="example.com",
    )
    payload.update(overrides)
    return payload
