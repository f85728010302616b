"""Unit tests for last-rank memory and rank-loss publishing (Redis mocked)."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from wordleague.league.notifications import (
    LEAGUE_UPDATE_CHANNEL,
    get_last_rank,
    last_rank_key,
    publish_rank_lost,
    remember_rank,
)

PERIOD = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)


class TestLastRank:
    @pytest.mark.asyncio
    async def test_round_trip_through_redis_value(self):
        redis = AsyncMock()
        await remember_rank(redis, 7, "silver", PERIOD, 5)

        key, value = redis.set.call_args.args
        assert key == last_rank_key(7) == "league:last_rank:7"
        redis.get.return_value = value
        assert await get_last_rank(redis, 7, "silver", PERIOD) == 5

    @pytest.mark.asyncio
    async def test_rank_from_another_tier_is_ignored(self):
        redis = AsyncMock()
        await remember_rank(redis, 7, "bronze", PERIOD, 2)
        redis.get.return_value = redis.set.call_args.args[1]
        assert await get_last_rank(redis, 7, "silver", PERIOD) is None

    @pytest.mark.asyncio
    async def test_rank_from_another_period_is_ignored(self):
        redis = AsyncMock()
        await remember_rank(redis, 7, "silver", PERIOD, 2)
        redis.get.return_value = redis.set.call_args.args[1]
        later = datetime(2026, 3, 5, 20, 0, tzinfo=timezone.utc)
        assert await get_last_rank(redis, 7, "silver", later) is None

    @pytest.mark.asyncio
    async def test_missing_value(self):
        redis = AsyncMock()
        redis.get.return_value = None
        assert await get_last_rank(redis, 7, "silver", PERIOD) is None

    @pytest.mark.asyncio
    async def test_redis_error_reads_as_unknown(self):
        redis = AsyncMock()
        redis.get.side_effect = ConnectionError("down")
        assert await get_last_rank(redis, 7, "silver", PERIOD) is None

    @pytest.mark.asyncio
    async def test_no_redis(self):
        assert await get_last_rank(None, 7, "silver", PERIOD) is None
        await remember_rank(None, 7, "silver", PERIOD, 3)


class TestPublishRankLost:
    @pytest.mark.asyncio
    async def test_publishes_event(self):
        redis = AsyncMock()
        await publish_rank_lost(redis, 7, "Zeynep", 4)

        channel, payload = redis.publish.call_args.args
        assert channel == LEAGUE_UPDATE_CHANNEL == "pubsub:league_update"
        assert json.loads(payload) == {
            "user_id": 7,
            "event": "rank_lost",
            "passer_name": "Zeynep",
            "rank": 4,
        }

    @pytest.mark.asyncio
    async def test_publish_failure_is_not_raised(self):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("down")
        await publish_rank_lost(redis, 7, "Zeynep", 4)
