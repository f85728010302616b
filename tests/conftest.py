"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import Settings, get_settings
from wordleague.database import close_db, get_engine, get_session_factory, init_db
from wordleague.db import models  # noqa: F401
from wordleague.db.base import Base
from wordleague.db.models import LeagueMembership, User, UserDailyXP

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_ADMIN_TOKEN = "test-admin-token"

# Tuesday 2026-03-03 12:00 UTC, a few hours into a period
NOW = datetime(2026, 3, 3, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    """League settings with defaults, isolated from any local .env file."""
    return Settings(_env_file=None, database_url=TEST_DATABASE_URL, admin_api_token=TEST_ADMIN_TOKEN)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """A session on a fresh in-memory database built from the ORM metadata."""
    await init_db(TEST_DATABASE_URL)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session_factory()() as session:
        yield session
    await close_db()


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.get.return_value = None
    return redis


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, mock_redis: AsyncMock, monkeypatch: pytest.MonkeyPatch,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sharing the in-memory database with `db_session`."""
    monkeypatch.setenv("WL_ADMIN_API_TOKEN", TEST_ADMIN_TOKEN)
    monkeypatch.setenv("WL_DATABASE_URL", TEST_DATABASE_URL)
    get_settings.cache_clear()

    from wordleague.dependencies import get_redis_dep
    from wordleague.main import create_app

    app = create_app()

    async def _redis_override() -> AsyncGenerator[object, None]:
        yield mock_redis

    app.dependency_overrides[get_redis_dep] = _redis_override

    # The test session must not hold a transaction open while the app uses the connection
    await db_session.commit()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    get_settings.cache_clear()


async def add_learner(
    db: AsyncSession,
    user_id: int,
    *,
    tier: str = "bronze",
    period_score: int = 0,
    period_start: datetime | None = None,
    daily: tuple[int, int, int, int] | None = None,
    display_name: str | None = None,
) -> None:
    """Insert a user, optionally with a membership and daily counters. Flushes only."""
    db.add(User(id=user_id, display_name=display_name or f"Learner {user_id}"))
    if period_start is not None:
        db.add(LeagueMembership(
            user_id=user_id,
            tier=tier,
            period_score=period_score,
            period_start=period_start,
            created_at=period_start,
            updated_at=period_start,
        ))
    if daily is not None:
        matching, flashcard, reading, puzzle = daily
        db.add(UserDailyXP(
            user_id=user_id,
            matching_xp=matching,
            flashcard_xp=flashcard,
            reading_xp=reading,
            puzzle_xp=puzzle,
        ))
    await db.flush()

