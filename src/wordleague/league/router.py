"""League API endpoints — tier ladder, viewer standings and the admin job trigger."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import get_settings
from wordleague.database import get_session
from wordleague.dependencies import get_redis_dep
from wordleague.league.jobs import run_league_jobs
from wordleague.league.schemas import (
    AdminRunRequest,
    AdminRunResponse,
    StandingEntryResponse,
    StandingsResponse,
    TierListResponse,
    TierResponse,
)
from wordleague.league.standings_service import UserNotFoundError, get_standings, zone_for
from wordleague.league.tiers import TIERS, Tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/league", tags=["League"])


def _tier_response(tier: Tier) -> TierResponse:
    return TierResponse(
        order=tier.order,
        id=tier.id,
        name=tier.name,
        score_min=tier.score_min,
        score_max=tier.score_max,
    )


@router.get("/tiers", response_model=TierListResponse)
async def list_tiers() -> TierListResponse:
    """The tier ladder, bottom to top."""
    return TierListResponse(tiers=[_tier_response(t) for t in TIERS])


@router.get("/users/{user_id}/standings", response_model=StandingsResponse)
async def user_standings(
    user_id: int,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: object = Depends(get_redis_dep),  # noqa: B008
) -> StandingsResponse:
    """The viewer's tier table, rank, countdown and who passed them, if anyone."""
    settings = get_settings()
    try:
        standings = await get_standings(db, redis, user_id, datetime.now(timezone.utc), settings)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")

    viewer = str(user_id)
    return StandingsResponse(
        user_id=user_id,
        tier=_tier_response(standings.tier),
        period_start=standings.period_start,
        period_end=standings.period_end,
        seconds_remaining=standings.seconds_remaining,
        rank=standings.rank,
        zone=standings.zone,
        passer_name=standings.passer_name,
        entries=[
            StandingEntryResponse(
                rank=e.rank,
                id=e.identity,
                display_name=e.participant.display_name,
                avatar_url=e.participant.avatar_ref,
                score=e.score,
                is_bot=e.is_bot,
                is_current_user=e.identity == viewer,
                zone=zone_for(standings.tier, e.rank, settings),
            )
            for e in standings.entries
        ],
    )


@router.post("/admin/run", response_model=AdminRunResponse)
async def admin_run(
    body: AdminRunRequest,
    x_admin_token: str | None = Header(None),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> AdminRunResponse:
    """Run the league job now. With force, transition even mid-period."""
    settings = get_settings()
    expected = settings.admin_api_token
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=403, detail="Invalid admin token")

    logger.info("Admin triggered league job (force=%s)", body.force)
    summary = await run_league_jobs(db, datetime.now(timezone.utc), settings, force=body.force)
    return AdminRunResponse(**summary)
