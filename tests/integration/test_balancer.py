"""Integration tests for the population balancer."""

from __future__ import annotations

import logging
import random

import pytest
from sqlalchemy import func, select

from tests.conftest import NOW, add_learner
from wordleague.db.models import LeagueBot, LeagueMembership
from wordleague.league.balancer import balance, balance_all, random_daily_rate
from wordleague.league.league_service import current_period_start, load_bots
from wordleague.league.tiers import TIERS, get_tier

BRONZE = get_tier("bronze")


async def _count(db, model, tier_id: str) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(model.tier == tier_id))
    return result.scalar_one()


class TestBalance:
    """Every tier ends up with exactly league_size participants."""

    @pytest.mark.asyncio
    async def test_empty_tier_is_filled_with_bots(self, db_session, settings):
        result = await balance(db_session, BRONZE, NOW, settings, random.Random(1))
        await db_session.commit()

        assert result.created == 12
        assert result.total == 12
        bots = await load_bots(db_session, BRONZE)
        assert len(bots) == 12
        for bot in bots:
            assert BRONZE.score_min <= bot.daily_rate < BRONZE.score_max
            assert bot.period_score == 0
            assert bot.pending_tier is None

    @pytest.mark.asyncio
    async def test_new_bots_start_in_current_period(self, db_session, settings):
        await balance(db_session, BRONZE, NOW, settings, random.Random(1))
        await db_session.commit()

        start = current_period_start(NOW, settings)
        markers = (await db_session.execute(select(LeagueBot.period_start))).scalars().all()
        assert {m.replace(tzinfo=None) for m in markers} == {start.replace(tzinfo=None)}

    @pytest.mark.asyncio
    async def test_reals_are_counted(self, db_session, settings):
        start = current_period_start(NOW, settings)
        for uid in (1, 2, 3):
            await add_learner(db_session, uid, period_start=start)

        result = await balance(db_session, BRONZE, NOW, settings, random.Random(2))
        await db_session.commit()

        assert result.real_count == 3
        assert result.created == 9
        assert await _count(db_session, LeagueBot, "bronze") == 9

    @pytest.mark.asyncio
    async def test_balance_is_idempotent(self, db_session, settings):
        await balance(db_session, BRONZE, NOW, settings, random.Random(3))
        await db_session.commit()
        before = [b.id for b in await load_bots(db_session, BRONZE)]

        again = await balance(db_session, BRONZE, NOW, settings, random.Random(4))
        await db_session.commit()

        assert again.created == 0
        assert again.deleted == 0
        assert [b.id for b in await load_bots(db_session, BRONZE)] == before

    @pytest.mark.asyncio
    async def test_overpopulated_tier_loses_oldest_bots_only(self, db_session, settings):
        await balance(db_session, BRONZE, NOW, settings, random.Random(5))
        await db_session.commit()
        oldest = [b.id for b in await load_bots(db_session, BRONZE)][:2]

        start = current_period_start(NOW, settings)
        await add_learner(db_session, 1, period_start=start, period_score=10)
        await add_learner(db_session, 2, period_start=start, period_score=20)
        result = await balance(db_session, BRONZE, NOW, settings, random.Random(6))
        await db_session.commit()

        assert result.deleted == 2
        remaining = {b.id for b in await load_bots(db_session, BRONZE)}
        assert len(remaining) == 10
        assert not remaining & set(oldest)
        assert await _count(db_session, LeagueMembership, "bronze") == 2

    @pytest.mark.asyncio
    async def test_too_many_reals_keeps_every_real(self, db_session, settings, caplog):
        start = current_period_start(NOW, settings)
        await balance(db_session, BRONZE, NOW, settings, random.Random(7))
        for uid in range(1, 15):
            await add_learner(db_session, uid, period_start=start)

        with caplog.at_level(logging.WARNING):
            result = await balance(db_session, BRONZE, NOW, settings, random.Random(8))
        await db_session.commit()

        assert result.deleted == 12
        assert result.total == 14
        assert await _count(db_session, LeagueBot, "bronze") == 0
        assert await _count(db_session, LeagueMembership, "bronze") == 14
        assert "more than league size" in caplog.text

    @pytest.mark.asyncio
    async def test_balance_all(self, db_session, settings):
        results = await balance_all(db_session, NOW, settings, random.Random(9))

        assert [r.tier for r in results] == [t.id for t in TIERS]
        for tier in TIERS:
            assert await _count(db_session, LeagueBot, tier.id) == 12


class TestRandomDailyRate:
    def test_rate_within_tier_range(self):
        rng = random.Random(0)
        for tier in TIERS:
            for _ in range(50):
                assert tier.score_min <= random_daily_rate(tier, rng) < tier.score_max
