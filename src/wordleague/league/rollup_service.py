"""Daily rollup: move each learner's daily XP into their league period score.

Order matters. Every learner's daily total is credited to the period score
first, each in its own savepoint. Only then are the counters drained, in one
bulk statement, and only for learners whose credit succeeded. The drain
subtracts exactly what was read, so XP earned while the rollup runs stays
for the next window. The window marker moves last.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import bindparam, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import Settings
from wordleague.db.models import DAILY_XP_COLUMNS, LeagueMembership, UserDailyXP
from wordleague.league.league_service import current_period_start, get_league_settings
from wordleague.league.period_clock import daily_window_due
from wordleague.league.tiers import bottom_tier

logger = logging.getLogger(__name__)


@dataclass
class RollupResult:
    ran: bool
    window_start: datetime | None = None
    credited: int = 0
    created: int = 0
    failed: list[int] = field(default_factory=list)


async def credit_period_score(
    db: AsyncSession, user_id: int, amount: int, now: datetime, settings: Settings,
) -> bool:
    """Atomically add `amount` to a learner's period score.

    Returns True when a membership had to be created for the learner.
    """
    result = await db.execute(
        update(LeagueMembership)
        .where(LeagueMembership.user_id == user_id)
        .values(period_score=LeagueMembership.period_score + amount, updated_at=now)
    )
    if result.rowcount:
        return False

    db.add(LeagueMembership(
        user_id=user_id,
        tier=bottom_tier().id,
        period_score=amount,
        period_start=current_period_start(now, settings),
        created_at=now,
        updated_at=now,
    ))
    await db.flush()
    return True


async def drain_daily_counters(db: AsyncSession, snapshots: list[dict[str, int]]) -> None:
    """Subtract previously read counter values from each learner's row in one executemany."""
    if not snapshots:
        return
    table = UserDailyXP.__table__
    stmt = (
        table.update()
        .where(table.c.user_id == bindparam("b_user_id"))
        .values({col: table.c[col] - bindparam(f"b_{col}") for col in DAILY_XP_COLUMNS})
    )
    await db.execute(stmt, snapshots)


async def rollup_and_reset(
    db: AsyncSession,
    now: datetime,
    settings: Settings,
    *,
    force: bool = False,
) -> RollupResult:
    """Run the daily rollup if the daily window has elapsed (or `force`)."""
    marker = await get_league_settings(db)
    if not force and not daily_window_due(now, marker.daily_window_start, settings.daily_window_hours):
        return RollupResult(ran=False, window_start=marker.daily_window_start)

    rows = (await db.execute(select(UserDailyXP).order_by(UserDailyXP.user_id))).scalars().all()
    # Read everything up front; later statements must not see refreshed values
    totals = [
        (row.user_id, row.total, {col: getattr(row, col) or 0 for col in DAILY_XP_COLUMNS})
        for row in rows
    ]

    result = RollupResult(ran=True)
    drained: list[dict[str, int]] = []

    for user_id, total, counters in totals:
        if total <= 0:
            continue
        try:
            async with db.begin_nested():
                created = await credit_period_score(db, user_id, total, now, settings)
        except Exception:
            logger.exception("Rollup failed to credit %d XP to user %d", total, user_id)
            result.failed.append(user_id)
            continue

        result.credited += 1
        if created:
            result.created += 1
        drained.append({"b_user_id": user_id, **{f"b_{col}": v for col, v in counters.items()}})

    await drain_daily_counters(db, drained)
    for row in rows:
        db.expire(row)

    marker.daily_window_start = now
    marker.updated_at = now
    await db.commit()

    result.window_start = now
    logger.info(
        "Daily rollup complete: credited %d users (%d new), %d failed",
        result.credited, result.created, len(result.failed),
    )
    return result
