"""Pydantic request and response models for league endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class TierResponse(BaseModel):
    order: int
    id: str
    name: str
    score_min: int
    score_max: int


class TierListResponse(BaseModel):
    tiers: list[TierResponse]


class StandingEntryResponse(BaseModel):
    rank: int
    id: str
    display_name: str
    avatar_url: str | None = None
    score: int
    is_bot: bool
    is_current_user: bool
    zone: str


class StandingsResponse(BaseModel):
    user_id: int
    tier: TierResponse
    period_start: datetime
    period_end: datetime
    seconds_remaining: int
    rank: int | None
    zone: str | None
    passer_name: str | None = None
    entries: list[StandingEntryResponse]


class AdminRunRequest(BaseModel):
    force: bool = False


class AdminRunResponse(BaseModel):
    rollup: dict[str, object]
    transition: dict[str, object]
    balance: dict[str, object] = {}
