"""League persistence helpers shared by the read API and the league job."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import Settings
from wordleague.db.models import (
    LeagueBot,
    LeagueMembership,
    LeagueSettings,
    User,
    UserDailyXP,
)
from wordleague.league.bot_generator import simulate_score
from wordleague.league.period_clock import ensure_utc, hours_elapsed, period_start
from wordleague.league.prng import identity_seed
from wordleague.league.ranking import BotParticipant, RealParticipant
from wordleague.league.tiers import Tier, bottom_tier

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = "main"


def current_period_start(now: datetime, settings: Settings) -> datetime:
    """Start of the league period containing `now`."""
    return period_start(
        now,
        settings.period_reference,
        settings.period_length_hours,
        settings.utc_offset_hours,
    )


def previous_period_start(now: datetime, settings: Settings) -> datetime:
    """Start of the period before the one containing `now`."""
    start = current_period_start(now, settings)
    return start - timedelta(hours=settings.period_length_hours)


@dataclass
class RealRow:
    """A real learner's membership with their pending daily XP."""

    membership: LeagueMembership
    daily: UserDailyXP | None
    user: User | None

    @property
    def daily_total(self) -> int:
        return self.daily.total if self.daily is not None else 0

    @property
    def score(self) -> int:
        return (self.membership.period_score or 0) + self.daily_total

    def to_participant(self) -> RealParticipant:
        uid = self.membership.user_id
        name = (self.user.display_name if self.user else None) or f"Learner-{uid}"
        return RealParticipant(
            identity=str(uid),
            display_name=name,
            score=self.score,
            avatar_ref=self.user.avatar_url if self.user else None,
        )


def bot_score(bot: LeagueBot, now: datetime, fallback_start: datetime, settings: Settings) -> int:
    """Derived score of a persisted bot at `now`."""
    start = ensure_utc(bot.period_start) if bot.period_start is not None else fallback_start
    hours = hours_elapsed(now, start, settings.period_length_hours)
    return simulate_score(
        bot.daily_rate,
        hours,
        identity_seed(settings.global_bot_seed, str(bot.id)),
        period_length_hours=settings.period_length_hours,
    )


def bot_participant(
    bot: LeagueBot, now: datetime, fallback_start: datetime, settings: Settings,
) -> BotParticipant:
    return BotParticipant(
        identity=str(bot.id),
        display_name=bot.name,
        score=bot_score(bot, now, fallback_start, settings),
        daily_rate=float(bot.daily_rate),
        avatar_ref=bot.avatar_url,
    )


async def get_league_settings(db: AsyncSession) -> LeagueSettings:
    """Get the global settings row, creating it on first use."""
    row = await db.get(LeagueSettings, SETTINGS_ROW_ID)
    if row is None:
        row = LeagueSettings(id=SETTINGS_ROW_ID, daily_window_start=None)
        db.add(row)
        await db.flush()
    return row


async def get_or_create_membership(
    db: AsyncSession, user_id: int, now: datetime, settings: Settings,
) -> tuple[LeagueMembership, bool]:
    """Get a learner's membership, placing them in the bottom tier on first visit."""
    membership = await db.get(LeagueMembership, user_id)
    if membership is not None:
        return membership, False

    membership = LeagueMembership(
        user_id=user_id,
        tier=bottom_tier().id,
        period_score=0,
        period_start=current_period_start(now, settings),
        created_at=now,
        updated_at=now,
    )
    db.add(membership)
    await db.flush()
    logger.info("Created league membership for user %d in %s", user_id, membership.tier)
    return membership, True


async def load_real_rows(db: AsyncSession, tier: Tier) -> list[RealRow]:
    """Memberships in a tier joined with their daily counters and profiles."""
    result = await db.execute(
        select(LeagueMembership, UserDailyXP, User)
        .outerjoin(UserDailyXP, UserDailyXP.user_id == LeagueMembership.user_id)
        .outerjoin(User, User.id == LeagueMembership.user_id)
        .where(LeagueMembership.tier == tier.id)
        .order_by(LeagueMembership.user_id)
    )
    return [RealRow(membership=m, daily=d, user=u) for m, d, u in result.all()]


async def load_bots(db: AsyncSession, tier: Tier) -> list[LeagueBot]:
    """Bots in a tier, oldest first."""
    result = await db.execute(
        select(LeagueBot)
        .where(LeagueBot.tier == tier.id)
        .order_by(LeagueBot.created_at, LeagueBot.bot_number, LeagueBot.id)
    )
    return list(result.scalars().all())
