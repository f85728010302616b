"""The hourly league job: daily rollup, period transition, then a balance pass."""

from __future__ import annotations

import logging
import random
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from wordleague.config import Settings
from wordleague.league.balancer import BalanceResult, balance_all
from wordleague.league.rollup_service import RollupResult, rollup_and_reset
from wordleague.league.transition_service import TransitionResult, transition

logger = logging.getLogger(__name__)


def summarize(
    rollup: RollupResult,
    moved: TransitionResult,
    balanced: list[BalanceResult] | None = None,
) -> dict[str, object]:
    """JSON-friendly summary of one job run."""
    return {
        "rollup": {
            "ran": rollup.ran,
            "window_start": rollup.window_start.isoformat() if rollup.window_start else None,
            "credited": rollup.credited,
            "created": rollup.created,
            "failed": len(rollup.failed),
        },
        "transition": {
            "ran": moved.ran,
            "period_start": moved.period_start.isoformat(),
            "promoted": sum(len(t.promoted) for t in moved.tiers),
            "demoted": sum(len(t.demoted) for t in moved.tiers),
            "failed": sum(len(t.failed) for t in moved.tiers),
            "tiers": [
                {
                    "tier": t.tier,
                    "ranked": t.ranked,
                    "resumed": t.resumed,
                    "promoted": len(t.promoted),
                    "demoted": len(t.demoted),
                    "failed": len(t.failed),
                    "bots_created": t.bots_created,
                    "bots_deleted": t.bots_deleted,
                }
                for t in moved.tiers
                if t.ranked or t.resumed
            ],
        },
        "balance": {
            "created": sum(b.created for b in balanced or []),
            "deleted": sum(b.deleted for b in balanced or []),
        },
    }


async def run_league_jobs(
    db: AsyncSession,
    now: datetime,
    settings: Settings,
    *,
    force: bool = False,
    rng: random.Random | None = None,
) -> dict[str, object]:
    """Run whatever league work is due at `now`. Safe to call repeatedly."""
    rollup = await rollup_and_reset(db, now, settings, force=force)
    moved = await transition(db, now, settings, force=force, rng=rng)
    # Learners who joined mid-period push bots out without waiting for a transition
    balanced = await balance_all(db, now, settings, rng)
    summary = summarize(rollup, moved, balanced)
    logger.info(
        "League job finished (force=%s): rollup ran=%s, transition ran=%s",
        force, rollup.ran, moved.ran,
    )
    return summary
