"""Population balancer — keeps every tier at exactly league_size participants.

Only bot rows are ever created or deleted. Real memberships are counted but
never touched. Running it again on a balanced tier changes nothing.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import Settings
from wordleague.db.models import LeagueBot, LeagueMembership
from wordleague.league.bot_generator import (
    AVATAR_POOL_SIZE,
    BOT_NAMES_FEMALE,
    BOT_NAMES_MALE,
    avatar_url,
)
from wordleague.league.league_service import current_period_start, load_bots
from wordleague.league.tiers import TIERS, Tier

logger = logging.getLogger(__name__)


@dataclass
class BalanceResult:
    tier: str
    real_count: int
    created: int = 0
    deleted: int = 0
    total: int = 0


def random_daily_rate(tier: Tier, rng: random.Random) -> int:
    """Uniform daily XP rate in the tier's [min, max) range."""
    return tier.score_min + rng.randrange(tier.score_max - tier.score_min)


def new_bot(
    tier: Tier,
    rng: random.Random,
    now: datetime,
    period_start: datetime,
    bot_number: int | None = None,
) -> LeagueBot:
    """Build a freshly randomised bot row for a tier."""
    is_male = rng.random() > 0.5
    names = BOT_NAMES_MALE if is_male else BOT_NAMES_FEMALE
    return LeagueBot(
        name=rng.choice(names),
        avatar_url=avatar_url(is_male, rng.randint(1, AVATAR_POOL_SIZE)),
        is_male=is_male,
        tier=tier.id,
        daily_rate=random_daily_rate(tier, rng),
        period_score=0,
        period_start=period_start,
        bot_number=bot_number,
        created_at=now,
        updated_at=now,
    )


async def balance(
    db: AsyncSession,
    tier: Tier,
    now: datetime,
    settings: Settings,
    rng: random.Random | None = None,
    *,
    bot_period_start: datetime | None = None,
    include: Callable[[str, datetime | None], bool] | None = None,
) -> BalanceResult:
    """Create or delete bots until `tier` holds exactly league_size participants.

    `include` restricts the count to participants it accepts, given their
    identity and period marker (the league job uses this to balance only the cohort that is
    still waiting for its transition). Newly created bots get
    `bot_period_start`, defaulting to the current period start.

    Flushes but does not commit.
    """
    rng = rng or random.Random()
    target = settings.league_size
    start = bot_period_start or current_period_start(now, settings)

    if include is None:
        real_count = (await db.execute(
            select(func.count()).select_from(LeagueMembership)
            .where(LeagueMembership.tier == tier.id)
        )).scalar_one()
        bots = await load_bots(db, tier)
    else:
        markers = (await db.execute(
            select(LeagueMembership.user_id, LeagueMembership.period_start)
            .where(LeagueMembership.tier == tier.id)
        )).all()
        real_count = sum(1 for uid, marker in markers if include(str(uid), marker))
        bots = [b for b in await load_bots(db, tier) if include(str(b.id), b.period_start)]

    result = BalanceResult(tier=tier.id, real_count=real_count)
    count = real_count + len(bots)

    if count < target:
        next_number = max((b.bot_number or 0 for b in bots), default=0) + 1
        for offset in range(target - count):
            bot = new_bot(tier, rng, now, start, bot_number=next_number + offset)
            db.add(bot)
            result.created += 1
        await db.flush()
        logger.info("Balancer added %d bots to %s", result.created, tier.id)

    elif count > target:
        excess = count - target
        doomed = bots[:excess]
        if doomed:
            await db.execute(delete(LeagueBot).where(LeagueBot.id.in_([b.id for b in doomed])))
            result.deleted = len(doomed)
            logger.info("Balancer removed %d bots from %s", result.deleted, tier.id)
        if excess > len(doomed):
            logger.warning(
                "Tier %s has %d real members, more than league size %d",
                tier.id, real_count, target,
            )

    result.total = count + result.created - result.deleted
    return result


async def balance_all(
    db: AsyncSession,
    now: datetime,
    settings: Settings,
    rng: random.Random | None = None,
) -> list[BalanceResult]:
    """Balance every tier, committing after each one."""
    rng = rng or random.Random()
    results = []
    for tier in TIERS:
        results.append(await balance(db, tier, now, settings, rng))
        await db.commit()
    return results
