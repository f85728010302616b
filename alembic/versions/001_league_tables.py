"""League tables — memberships, bots, global markers.

Also creates the minimal users and user_daily_xp tables when the wider
product has not created them already.

Revision ID: 001_league_tables
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_league_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Product tables read by the league ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            display_name VARCHAR(64),
            avatar_url VARCHAR(512),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_daily_xp (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            matching_xp INTEGER NOT NULL DEFAULT 0,
            flashcard_xp INTEGER NOT NULL DEFAULT 0,
            reading_xp INTEGER NOT NULL DEFAULT 0,
            puzzle_xp INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ
        )
    """)

    # --- League Memberships ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS league_memberships (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            tier VARCHAR(16) NOT NULL DEFAULT 'bronze',
            period_score INTEGER NOT NULL DEFAULT 0,
            period_start TIMESTAMPTZ NOT NULL,
            pending_tier VARCHAR(16),
            pending_period_start TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_league_memberships_tier
        ON league_memberships(tier)
    """)

    # --- League Bots ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS league_bots (
            id UUID PRIMARY KEY,
            bot_number INTEGER,
            name VARCHAR(64) NOT NULL,
            avatar_url VARCHAR(512),
            is_male BOOLEAN NOT NULL DEFAULT TRUE,
            tier VARCHAR(16) NOT NULL,
            daily_rate INTEGER NOT NULL,
            period_score INTEGER NOT NULL DEFAULT 0,
            period_start TIMESTAMPTZ,
            pending_tier VARCHAR(16),
            pending_period_start TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_league_bots_tier_created
        ON league_bots(tier, created_at)
    """)

    # --- Global markers ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS league_settings (
            id VARCHAR(16) PRIMARY KEY DEFAULT 'main',
            daily_window_start TIMESTAMPTZ,
            updated_at TIMESTAMPTZ
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS league_settings CASCADE")
    op.execute("DROP TABLE IF EXISTS league_bots CASCADE")
    op.execute("DROP TABLE IF EXISTS league_memberships CASCADE")
