"""Rank-loss notifications over Redis.

The viewer's last seen rank is stored per period and tier, so a rank from
an earlier period or another tier never counts as a loss.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

logger = logging.getLogger(__name__)

LEAGUE_UPDATE_CHANNEL = "pubsub:league_update"
LAST_RANK_TTL_SECONDS = 14 * 24 * 3600


def last_rank_key(user_id: int) -> str:
    return f"league:last_rank:{user_id}"


def _rank_context(tier_id: str, period_start: datetime) -> str:
    return f"{tier_id}:{period_start.strftime('%Y%m%dT%H%M')}"


async def get_last_rank(
    redis: object, user_id: int, tier_id: str, period_start: datetime,
) -> int | None:
    """Last rank the viewer saw in this tier and period, if any."""
    if redis is None:
        return None
    try:
        raw = await redis.get(last_rank_key(user_id))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to read last rank for user %d", user_id, exc_info=True)
        return None
    if not raw:
        return None

    context, _, rank = str(raw).rpartition(":")
    if context != _rank_context(tier_id, period_start) or not rank.isdigit():
        return None
    return int(rank)


async def remember_rank(
    redis: object, user_id: int, tier_id: str, period_start: datetime, rank: int,
) -> None:
    if redis is None:
        return
    value = f"{_rank_context(tier_id, period_start)}:{rank}"
    try:
        await redis.set(  # type: ignore[union-attr]
            last_rank_key(user_id), value, ex=LAST_RANK_TTL_SECONDS,
        )
    except Exception:
        logger.warning("Failed to store last rank for user %d", user_id, exc_info=True)


async def publish_rank_lost(redis: object, user_id: int, passer_name: str, rank: int) -> None:
    """Tell the notification service that someone passed the viewer."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[union-attr]
            LEAGUE_UPDATE_CHANNEL,
            json.dumps({
                "user_id": user_id,
                "event": "rank_lost",
                "passer_name": passer_name,
                "rank": rank,
            }),
        )
    except Exception:
        logger.warning("Failed to publish rank_lost notification", exc_info=True)
