"""Deterministic bot generator — ZERO shared state.

Every caller that asks for the bots of a tier with the same global seed and
the same number of elapsed hours gets the same names, avatars and scores,
so clients can render a full league without fetching bot rows.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from wordleague.league.prng import (
    PURPOSE_AVATAR,
    PURPOSE_GENDER,
    PURPOSE_HOUR_BASE,
    PURPOSE_NAME,
    PURPOSE_RATE,
    next_unit_float,
    tier_seed,
)
from wordleague.league.tiers import Tier

BOT_NAMES_MALE: tuple[str, ...] = (
    "Ahmet", "Mehmet", "Mustafa", "Ali", "Hüseyin", "Hasan", "Emre", "Can", "Burak", "Kaan",
    "Berk", "Emir", "Yusuf", "Ömer", "Mert", "Arda", "Kerem", "Barış", "Cem", "Doruk",
)

BOT_NAMES_FEMALE: tuple[str, ...] = (
    "Ayşe", "Fatma", "Zeynep", "Elif", "Ece", "Selin", "Ceren", "Dilara", "İrem", "Defne",
    "Ada", "Derin", "Asya", "Ela", "Lina", "Mira", "Nisa", "Pelin", "Sude", "Tuana",
)

AVATAR_POOL_SIZE = 99
DAILY_RATE_JITTER = 0.10
HOURLY_JITTER = 0.20


def avatar_url(is_male: bool, number: int) -> str:
    """Avatar reference for a pool slot (1-based)."""
    folder = "men" if is_male else "women"
    return f"https://randomuser.me/api/portraits/{folder}/{number}.jpg"


@dataclass(frozen=True)
class GeneratedBot:
    identity: str
    display_name: str
    avatar_ref: str
    is_male: bool
    daily_rate: float
    score: int


def simulate_score(
    daily_rate: float,
    hours: int,
    seed: int,
    index: int = 0,
    period_length_hours: int = 72,
) -> int:
    """Score a bot has earned after `hours` whole hours of a period.

    Accumulates daily_rate/24 per hour with seeded ±20% jitter, then caps the
    total at daily_rate * hours / 24 so jitter never lets a bot outrun its own
    rate. Monotone non-decreasing in `hours`.
    """
    if hours < 0:
        raise ValueError(f"hours must be non-negative, got {hours}")
    hours = min(hours, period_length_hours)

    hourly_rate = daily_rate / 24
    total = 0.0
    for hour in range(hours):
        draw = next_unit_float(seed, index, PURPOSE_HOUR_BASE + hour)
        total += hourly_rate * (1 + (draw * 2 * HOURLY_JITTER - HOURLY_JITTER))

    cap = daily_rate * hours / 24
    return math.floor(min(total, cap))


def _pick_name(pool: tuple[str, ...], draw: float, used: set[str]) -> str:
    start = int(draw * len(pool))
    for step in range(len(pool)):
        candidate = pool[(start + step) % len(pool)]
        if candidate not in used:
            return candidate
    # Pool exhausted; repeats are acceptable past this point
    return pool[start]


def generate_bots(
    tier: Tier,
    global_seed: int,
    hours_elapsed: int,
    count_needed: int,
    period_length_hours: int = 72,
) -> list[GeneratedBot]:
    """Generate the synthetic competitors that fill a tier for display.

    Bots come back in index order, which is also ascending base daily rate.
    """
    if count_needed < 0:
        raise ValueError(f"count_needed must be non-negative, got {count_needed}")
    if hours_elapsed < 0:
        raise ValueError(f"hours_elapsed must be non-negative, got {hours_elapsed}")
    if count_needed == 0:
        return []

    seed = tier_seed(global_seed, tier.id)
    hours = min(hours_elapsed, period_length_hours)
    score_range = tier.score_max - tier.score_min
    avatar_offset = int(next_unit_float(seed, 0, PURPOSE_AVATAR) * AVATAR_POOL_SIZE)

    used_names: set[str] = set()
    bots: list[GeneratedBot] = []
    for i in range(count_needed):
        is_male = next_unit_float(seed, i, PURPOSE_GENDER) < 0.5
        pool = BOT_NAMES_MALE if is_male else BOT_NAMES_FEMALE
        name = _pick_name(pool, next_unit_float(seed, i, PURPOSE_NAME), used_names)
        used_names.add(name)

        avatar_number = (avatar_offset + i) % AVATAR_POOL_SIZE + 1

        base_rate = tier.score_min + score_range * (i + 0.5) / count_needed
        jitter = next_unit_float(seed, i, PURPOSE_RATE) * 2 * DAILY_RATE_JITTER - DAILY_RATE_JITTER
        daily_rate = base_rate * (1 + jitter)

        bots.append(GeneratedBot(
            identity=f"bot-{tier.id}-{i}",
            display_name=name,
            avatar_ref=avatar_url(is_male, avatar_number),
            is_male=is_male,
            daily_rate=daily_rate,
            score=simulate_score(daily_rate, hours, seed, i, period_length_hours),
        ))

    return bots
