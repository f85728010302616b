"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wordleague.config import get_settings
from wordleague.database import close_db, init_db
from wordleague.health.router import router as health_router
from wordleague.league.router import router as league_router
from wordleague.league.tiers import validate_league_config
from wordleague.middleware import setup_middleware
from wordleague.redis_client import close_redis, init_redis


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    validate_league_config(settings)
    await init_db(settings.database_url, command_timeout=settings.db_command_timeout_seconds)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Word League API",
        description="League leaderboards for the vocabulary-learning app",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(league_router)

    return app


app = create_app()
