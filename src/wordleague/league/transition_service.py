"""League transition engine — end-of-period promotion and demotion.

Runs once per period. For each tier, bottom to top, only the participants
whose period marker is older than the new period start (the tier's cohort)
are ranked and moved. Each move writes the new marker in the same UPDATE,
so anyone moved into a later tier is already marked and is not ranked twice.
Each tier stores every destination before moving anyone and commits on its
own: a later run finishes the leftovers of that tier from the stored
destinations instead of ranking them again.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import Settings
from wordleague.db.models import DAILY_XP_COLUMNS, LeagueBot, LeagueMembership, UserDailyXP
from wordleague.league.balancer import balance, random_daily_rate
from wordleague.league.league_service import (
    RealRow,
    bot_participant,
    current_period_start,
    load_bots,
    load_real_rows,
    previous_period_start,
)
from wordleague.league.period_clock import ensure_utc
from wordleague.league.ranking import RankedEntry, assemble
from wordleague.league.tiers import TIERS, Tier, get_tier, is_bottom, is_top, next_tier, previous_tier

logger = logging.getLogger(__name__)


@dataclass
class TierTransition:
    tier: str
    ranked: int = 0
    resumed: int = 0
    promoted: list[str] = field(default_factory=list)
    demoted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    bots_created: int = 0
    bots_deleted: int = 0


@dataclass
class TransitionResult:
    ran: bool
    period_start: datetime
    tiers: list[TierTransition] = field(default_factory=list)


def destination_tier(tier: Tier, rank: int, league_size: int, promotion_count: int) -> Tier:
    """Where the participant at `rank` goes when the period closes."""
    if rank <= promotion_count and not is_top(tier):
        return next_tier(tier)
    if rank > league_size - promotion_count and not is_bottom(tier):
        return previous_tier(tier)
    return tier


def _is_stale(marker: datetime | None, new_start: datetime) -> bool:
    return marker is None or ensure_utc(marker) < new_start


async def transition_due(db: AsyncSession, new_start: datetime) -> bool:
    """True if any participant has not yet been moved into the period at `new_start`."""
    stale_real = await db.execute(
        select(LeagueMembership.user_id)
        .where(LeagueMembership.period_start < new_start)
        .limit(1)
    )
    if stale_real.first() is not None:
        return True
    stale_bot = await db.execute(
        select(LeagueBot.id)
        .where(or_(LeagueBot.period_start.is_(None), LeagueBot.period_start < new_start))
        .limit(1)
    )
    return stale_bot.first() is not None


async def _move_real(
    db: AsyncSession,
    user_id: int,
    expected_marker: datetime,
    destination: Tier,
    counters: dict[str, int],
    new_start: datetime,
    now: datetime,
) -> bool:
    """Move a learner and reset their scores, guarded on the marker still being stale."""
    moved = await db.execute(
        update(LeagueMembership)
        .where(
            LeagueMembership.user_id == user_id,
            LeagueMembership.period_start == expected_marker,
        )
        .values(
            tier=destination.id,
            period_score=0,
            period_start=new_start,
            pending_tier=None,
            pending_period_start=None,
            updated_at=now,
        )
    )
    if not moved.rowcount:
        return False

    if any(counters.values()):
        await db.execute(
            update(UserDailyXP)
            .where(UserDailyXP.user_id == user_id)
            .values({col: getattr(UserDailyXP, col) - counters[col] for col in DAILY_XP_COLUMNS})
        )
    return True


async def _move_bot(
    db: AsyncSession,
    bot: LeagueBot,
    destination: Tier,
    rng: random.Random,
    new_start: datetime,
    now: datetime,
) -> None:
    """Move a bot and re-seed its daily rate from the destination tier."""
    bot.tier = destination.id
    bot.daily_rate = random_daily_rate(destination, rng)
    bot.period_score = 0
    bot.period_start = new_start
    bot.pending_tier = None
    bot.pending_period_start = None
    bot.updated_at = now
    await db.flush()


def _stored_destination(
    pending_tier: str | None, pending_period_start: datetime | None, new_start: datetime,
) -> Tier | None:
    """The destination fixed by an earlier run for this same period, if any."""
    if pending_tier is None or pending_period_start is None:
        return None
    if ensure_utc(pending_period_start) != new_start:
        return None
    return get_tier(pending_tier)


async def _store_destinations(
    db: AsyncSession,
    plan: list[tuple[str, Tier]],
    real_by_id: dict[str, RealRow],
    bot_by_id: dict[str, LeagueBot],
    new_start: datetime,
) -> None:
    groups: dict[str, tuple[list[int], list[uuid.UUID]]] = {}
    for identity, destination in plan:
        user_ids, bot_ids = groups.setdefault(destination.id, ([], []))
        if identity in real_by_id:
            user_ids.append(real_by_id[identity].membership.user_id)
        else:
            bot_ids.append(bot_by_id[identity].id)

    for tier_id, (user_ids, bot_ids) in groups.items():
        if user_ids:
            await db.execute(
                update(LeagueMembership)
                .where(LeagueMembership.user_id.in_(user_ids))
                .values(pending_tier=tier_id, pending_period_start=new_start)
            )
        if bot_ids:
            await db.execute(
                update(LeagueBot)
                .where(LeagueBot.id.in_(bot_ids))
                .values(pending_tier=tier_id, pending_period_start=new_start)
            )


async def transition_tier(
    db: AsyncSession,
    tier: Tier,
    now: datetime,
    settings: Settings,
    rng: random.Random,
    *,
    new_start: datetime,
    force: bool = False,
    done: set[str] | None = None,
) -> TierTransition:
    """Close the period for one tier's cohort and commit.

    `done` holds identities already processed in this run; with `force`
    it replaces the marker check as the guard against moving anyone twice.
    If an earlier run already ranked this cohort, its stored destinations
    are used as they are and nobody is ranked again.
    """
    done = done if done is not None else set()
    outcome = TierTransition(tier=tier.id)

    def in_cohort(marker: datetime | None) -> bool:
        return force or _is_stale(marker, new_start)

    def balance_filter(identity: str, marker: datetime | None) -> bool:
        return identity not in done and in_cohort(marker)

    reals = [
        r for r in await load_real_rows(db, tier)
        if in_cohort(r.membership.period_start) and str(r.membership.user_id) not in done
    ]
    bots = [
        b for b in await load_bots(db, tier)
        if in_cohort(b.period_start) and str(b.id) not in done
    ]
    if not reals and not bots:
        return outcome

    real_by_id = {str(r.membership.user_id): r for r in reals}
    bot_by_id = {str(b.id): b for b in bots}
    stored: dict[str, Tier] = {}
    for identity, r in real_by_id.items():
        decided = _stored_destination(r.membership.pending_tier, r.membership.pending_period_start, new_start)
        if decided is not None:
            stored[identity] = decided
    for identity, b in bot_by_id.items():
        decided = _stored_destination(b.pending_tier, b.pending_period_start, new_start)
        if decided is not None:
            stored[identity] = decided

    if stored:
        # Leftovers of a partly applied transition; anyone without a destination stays put
        plan = [(identity, stored.get(identity, tier)) for identity in [*real_by_id, *bot_by_id]]
        outcome.resumed = len(stored)
        logger.info("Tier %s resuming transition: %d stored destinations", tier.id, len(stored))
    else:
        closing_start = (
            previous_period_start(now, settings) if not force else current_period_start(now, settings)
        )
        balanced = await balance(
            db, tier, now, settings, rng,
            bot_period_start=closing_start,
            include=balance_filter,
        )
        outcome.bots_created = balanced.created
        outcome.bots_deleted = balanced.deleted
        if balanced.created or balanced.deleted:
            bots = [
                b for b in await load_bots(db, tier)
                if in_cohort(b.period_start) and str(b.id) not in done
            ]
            bot_by_id = {str(b.id): b for b in bots}

        ranked: list[RankedEntry] = assemble(
            [r.to_participant() for r in reals],
            [bot_participant(b, now, closing_start, settings) for b in bots],
        )
        outcome.ranked = len(ranked)
        plan = [
            (
                entry.identity,
                destination_tier(tier, entry.rank, settings.league_size, settings.promotion_count),
            )
            for entry in ranked
        ]
        await _store_destinations(db, plan, real_by_id, bot_by_id, new_start)

    for identity, destination in plan:
        try:
            async with db.begin_nested():
                if identity in bot_by_id:
                    await _move_bot(db, bot_by_id[identity], destination, rng, new_start, now)
                else:
                    row = real_by_id[identity]
                    counters = {
                        col: (getattr(row.daily, col) or 0) if row.daily is not None else 0
                        for col in DAILY_XP_COLUMNS
                    }
                    moved = await _move_real(
                        db, row.membership.user_id, row.membership.period_start,
                        destination, counters, new_start, now,
                    )
                    if not moved:
                        logger.info("User %s already transitioned, skipping", identity)
                        continue
        except Exception:
            logger.exception("Transition failed for %s in %s", identity, tier.id)
            outcome.failed.append(identity)
            continue

        done.add(identity)
        if destination.order > tier.order:
            outcome.promoted.append(identity)
        elif destination.order < tier.order:
            outcome.demoted.append(identity)

    # Failed participants keep their stored destination for the next run
    await db.commit()
    logger.info(
        "Tier %s transitioned: %d ranked, %d promoted, %d demoted, %d failed",
        tier.id, outcome.ranked, len(outcome.promoted), len(outcome.demoted), len(outcome.failed),
    )
    return outcome


async def transition(
    db: AsyncSession,
    now: datetime,
    settings: Settings,
    *,
    force: bool = False,
    rng: random.Random | None = None,
) -> TransitionResult:
    """Promote and demote every tier if a new period has started (or `force`)."""
    rng = rng or random.Random()
    now = ensure_utc(now)
    new_start = current_period_start(now, settings)

    if not force and not await transition_due(db, new_start):
        return TransitionResult(ran=False, period_start=new_start)

    result = TransitionResult(ran=True, period_start=new_start)
    done: set[str] = set()
    for tier in TIERS:
        result.tiers.append(await transition_tier(
            db, tier, now, settings, rng, new_start=new_start, force=force, done=done,
        ))

    # Moves leave every tier at league size when all tiers were full; heal the rest
    for tier in TIERS:
        await balance(db, tier, now, settings, rng, bot_period_start=new_start)
        await db.commit()

    logger.info("League transition complete for period starting %s", new_start.isoformat())
    return result

