"""Integration tests for the daily rollup and counter reset."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from tests.conftest import NOW, add_learner
from wordleague.db.models import LeagueMembership, LeagueSettings, UserDailyXP
from wordleague.league import rollup_service
from wordleague.league.league_service import current_period_start
from wordleague.league.rollup_service import rollup_and_reset


async def _membership(db, user_id: int) -> LeagueMembership | None:
    result = await db.execute(
        select(LeagueMembership)
        .where(LeagueMembership.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _daily(db, user_id: int) -> UserDailyXP:
    result = await db.execute(
        select(UserDailyXP)
        .where(UserDailyXP.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestRollupAndReset:
    """Daily XP moves into the period score, then the counters drain."""

    @pytest.mark.asyncio
    async def test_daily_total_added_to_period_score(self, db_session, settings):
        start = current_period_start(NOW, settings)
        await add_learner(db_session, 1, period_start=start, period_score=500, daily=(100, 200, 300, 400))
        await db_session.commit()

        result = await rollup_and_reset(db_session, NOW, settings)

        assert result.ran is True
        assert result.credited == 1
        assert (await _membership(db_session, 1)).period_score == 1500
        daily = await _daily(db_session, 1)
        assert daily.total == 0
        assert daily.matching_xp == daily.flashcard_xp == daily.reading_xp == daily.puzzle_xp == 0

    @pytest.mark.asyncio
    async def test_learner_without_membership_joins_bronze(self, db_session, settings):
        await add_learner(db_session, 2, daily=(50, 0, 0, 25))
        await db_session.commit()

        result = await rollup_and_reset(db_session, NOW, settings)

        assert result.created == 1
        membership = await _membership(db_session, 2)
        assert membership.tier == "bronze"
        assert membership.period_score == 75
        assert (await _daily(db_session, 2)).total == 0

    @pytest.mark.asyncio
    async def test_zero_totals_are_skipped(self, db_session, settings):
        await add_learner(db_session, 3, daily=(0, 0, 0, 0))
        await db_session.commit()

        result = await rollup_and_reset(db_session, NOW, settings)

        assert result.ran is True
        assert result.credited == 0
        assert await _membership(db_session, 3) is None

    @pytest.mark.asyncio
    async def test_failed_credit_keeps_daily_counters(self, db_session, settings, monkeypatch):
        start = current_period_start(NOW, settings)
        await add_learner(db_session, 1, period_start=start, period_score=10, daily=(5, 0, 0, 0))
        await add_learner(db_session, 2, period_start=start, period_score=20, daily=(7, 8, 0, 0))
        await db_session.commit()

        real_credit = rollup_service.credit_period_score

        async def flaky_credit(db, user_id, amount, now, settings):
            if user_id == 2:
                raise RuntimeError("write failed")
            return await real_credit(db, user_id, amount, now, settings)

        monkeypatch.setattr(rollup_service, "credit_period_score", flaky_credit)
        result = await rollup_and_reset(db_session, NOW, settings)

        assert result.failed == [2]
        assert result.credited == 1
        assert (await _membership(db_session, 1)).period_score == 15
        assert (await _daily(db_session, 1)).total == 0
        assert (await _membership(db_session, 2)).period_score == 20
        assert (await _daily(db_session, 2)).total == 15

        monkeypatch.setattr(rollup_service, "credit_period_score", real_credit)
        retry = await rollup_and_reset(db_session, NOW + timedelta(hours=24), settings)

        assert retry.ran is True
        assert retry.failed == []
        assert (await _membership(db_session, 2)).period_score == 35
        assert (await _daily(db_session, 2)).total == 0
        assert (await _membership(db_session, 1)).period_score == 15

    @pytest.mark.asyncio
    async def test_window_marker_moves_to_now(self, db_session, settings):
        await rollup_and_reset(db_session, NOW, settings)

        marker = (await db_session.execute(
            select(LeagueSettings).execution_options(populate_existing=True)
        )).scalar_one()
        assert marker.daily_window_start.replace(tzinfo=None) == NOW.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_second_run_inside_window_is_noop(self, db_session, settings):
        start = current_period_start(NOW, settings)
        await add_learner(db_session, 1, period_start=start, daily=(10, 0, 0, 0))
        await db_session.commit()
        await rollup_and_reset(db_session, NOW, settings)

        daily = await _daily(db_session, 1)
        daily.matching_xp = 40
        await db_session.commit()

        later = await rollup_and_reset(db_session, NOW + timedelta(hours=23), settings)
        assert later.ran is False
        assert (await _membership(db_session, 1)).period_score == 10

        next_day = await rollup_and_reset(db_session, NOW + timedelta(hours=24), settings)
        assert next_day.ran is True
        assert (await _membership(db_session, 1)).period_score == 50

    @pytest.mark.asyncio
    async def test_force_runs_inside_window(self, db_session, settings):
        await rollup_and_reset(db_session, NOW, settings)
        forced = await rollup_and_reset(db_session, NOW + timedelta(hours=1), settings, force=True)
        assert forced.ran is True
