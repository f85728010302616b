"""Viewer-facing league standings.

A tier is shown as its real learners, its persisted bots and, when those
fall short of the league size, deterministic fill-in bots that every client
computes identically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import Settings
from wordleague.db.models import User
from wordleague.league.bot_generator import generate_bots
from wordleague.league.league_service import (
    bot_participant,
    current_period_start,
    get_or_create_membership,
    load_bots,
    load_real_rows,
)
from wordleague.league.notifications import get_last_rank, publish_rank_lost, remember_rank
from wordleague.league.period_clock import ensure_utc, hours_elapsed, period_end, time_remaining
from wordleague.league.ranking import (
    BotParticipant,
    RankedEntry,
    assemble,
    detect_rank_loss,
    rank_of,
    rank_zone,
)
from wordleague.league.tiers import Tier, get_tier, is_bottom, is_top

logger = logging.getLogger(__name__)


class UserNotFoundError(ValueError):
    """No user profile exists for the requested id."""


@dataclass
class Standings:
    user_id: int
    tier: Tier
    period_start: datetime
    period_end: datetime
    seconds_remaining: int
    rank: int | None
    zone: str | None
    entries: list[RankedEntry] = field(default_factory=list)
    passer_name: str | None = None


def zone_for(tier: Tier, rank: int, settings: Settings) -> str:
    """Promotion/demotion zone, with no way up from the top or down from the bottom."""
    zone = rank_zone(rank, settings.league_size, settings.promotion_count)
    if zone == "promotion" and is_top(tier):
        return "safe"
    if zone == "demotion" and is_bottom(tier):
        return "safe"
    return zone


def fill_in_bots(
    tier: Tier, count_needed: int, hours: int, settings: Settings,
) -> list[BotParticipant]:
    generated = generate_bots(
        tier, settings.global_bot_seed, hours, count_needed, settings.period_length_hours,
    )
    return [
        BotParticipant(
            identity=g.identity,
            display_name=g.display_name,
            score=g.score,
            daily_rate=g.daily_rate,
            avatar_ref=g.avatar_ref,
        )
        for g in generated
    ]


async def get_standings(
    db: AsyncSession,
    redis: object,
    user_id: int,
    now: datetime,
    settings: Settings,
) -> Standings:
    """Rank the viewer's tier and report any rank they lost since their last visit."""
    now = ensure_utc(now)
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")

    membership, created = await get_or_create_membership(db, user_id, now, settings)
    tier = get_tier(membership.tier)
    start = current_period_start(now, settings)
    hours = hours_elapsed(now, start, settings.period_length_hours)

    reals = [row.to_participant() for row in await load_real_rows(db, tier)]
    bots = [bot_participant(b, now, start, settings) for b in await load_bots(db, tier)]
    missing = max(0, settings.league_size - len(reals) - len(bots))
    if missing:
        bots.extend(fill_in_bots(tier, missing, hours, settings))

    ranked = assemble(reals, bots)
    viewer = str(user_id)
    rank = rank_of(ranked, viewer)

    standings = Standings(
        user_id=user_id,
        tier=tier,
        period_start=start,
        period_end=period_end(start, settings.period_length_hours),
        seconds_remaining=int(time_remaining(now, start, settings.period_length_hours).total_seconds()),
        rank=rank,
        zone=zone_for(tier, rank, settings) if rank is not None else None,
        entries=ranked,
    )

    if rank is not None:
        previous = await get_last_rank(redis, user_id, tier.id, start)
        passer = detect_rank_loss(previous, rank, viewer, ranked)
        if passer is not None:
            standings.passer_name = passer.display_name
            await publish_rank_lost(redis, user_id, passer.display_name, rank)
        await remember_rank(redis, user_id, tier.id, start, rank)

    if created:
        await db.commit()
    return standings
