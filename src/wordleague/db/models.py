"""ORM models for the league leaderboard.

`users` and `user_daily_xp` belong to the wider product (profiles and the
mini-games write them); the league only reads display data and drains the
daily counters. The remaining tables are owned by the league.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from wordleague.db.base import Base

# SQLite only autoincrements INTEGER primary keys
_BigIntPK = BigInteger().with_variant(Integer, "sqlite")


# ---------------------------------------------------------------------------
# Product-owned tables read by the league
# ---------------------------------------------------------------------------


class User(Base):
    """Minimal profile view of a learner."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(_BigIntPK, primary_key=True, autoincrement=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )


class UserDailyXP(Base):
    """Transient per-activity XP counters, drained by the daily rollup."""

    __tablename__ = "user_daily_xp"

    user_id: Mapped[int] = mapped_column(
        _BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    matching_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    flashcard_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reading_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    puzzle_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def total(self) -> int:
        return (
            (self.matching_xp or 0)
            + (self.flashcard_xp or 0)
            + (self.reading_xp or 0)
            + (self.puzzle_xp or 0)
        )


# Column names summed into a user's daily score
DAILY_XP_COLUMNS: tuple[str, ...] = ("matching_xp", "flashcard_xp", "reading_xp", "puzzle_xp")


# ---------------------------------------------------------------------------
# League
# ---------------------------------------------------------------------------


class LeagueMembership(Base):
    """A real learner's place in the league ladder."""

    __tablename__ = "league_memberships"
    __table_args__ = (Index("idx_league_memberships_tier", "tier"),)

    user_id: Mapped[int] = mapped_column(
        _BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    tier: Mapped[str] = mapped_column(String(16), nullable=False, default="bronze")
    period_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Destination fixed when the closing period was ranked, cleared by the move
    pending_tier: Mapped[str | None] = mapped_column(String(16), nullable=True)
    pending_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class LeagueBot(Base):
    """A persisted synthetic competitor created by the population balancer."""

    __tablename__ = "league_bots"
    __table_args__ = (Index("idx_league_bots_tier_created", "tier", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bot_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_male: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tier: Mapped[str] = mapped_column(String(16), nullable=False)
    daily_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    period_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    pending_tier: Mapped[str | None] = mapped_column(String(16), nullable=True)
    pending_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class LeagueSettings(Base):
    """Single-row global markers (id='main')."""

    __tablename__ = "league_settings"

    id: Mapped[str] = mapped_column(String(16), primary_key=True, default="main")
    daily_window_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
