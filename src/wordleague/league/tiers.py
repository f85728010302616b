"""League tier ladder and league-wide configuration checks."""

from __future__ import annotations

from dataclasses import dataclass

from wordleague.config import Settings


class ConfigurationError(ValueError):
    """Raised for malformed league configuration. Fatal at startup."""


@dataclass(frozen=True)
class Tier:
    order: int
    id: str
    name: str
    score_min: int
    score_max: int


# Bottom to top. score_min/score_max bound bot daily XP rates.
TIERS: tuple[Tier, ...] = (
    Tier(0, "bronze", "Bronze League", 3000, 6000),
    Tier(1, "silver", "Silver League", 6000, 12000),
    Tier(2, "gold", "Gold League", 12000, 18000),
    Tier(3, "platinum", "Platinum League", 18000, 24000),
    Tier(4, "emerald", "Emerald League", 24000, 30000),
    Tier(5, "diamond", "Diamond League", 30000, 36000),
    Tier(6, "sapphire", "Sapphire League", 36000, 42000),
    Tier(7, "ruby", "Ruby League", 42000, 48000),
    Tier(8, "obsidian", "Obsidian League", 48000, 54000),
    Tier(9, "titan", "Titan League", 54000, 60000),
)

_BY_ID: dict[str, Tier] = {t.id: t for t in TIERS}


def validate_tiers(tiers: tuple[Tier, ...] | list[Tier]) -> None:
    """Check a ladder is non-empty, uniquely named, contiguous and well-ranged."""
    if not tiers:
        raise ConfigurationError("Tier ladder is empty")

    seen: set[str] = set()
    for expected_order, tier in enumerate(tiers):
        if tier.order != expected_order:
            raise ConfigurationError(
                f"Tier {tier.id!r} has order {tier.order}, expected {expected_order}"
            )
        if not tier.id:
            raise ConfigurationError(f"Tier at order {tier.order} has no id")
        if tier.id in seen:
            raise ConfigurationError(f"Duplicate tier id {tier.id!r}")
        seen.add(tier.id)
        if tier.score_min < 0 or tier.score_max <= tier.score_min:
            raise ConfigurationError(
                f"Tier {tier.id!r} has invalid score range "
                f"[{tier.score_min}, {tier.score_max})"
            )


def validate_league_config(settings: Settings, tiers: tuple[Tier, ...] = TIERS) -> None:
    """Fail fast on a ladder or league parameters that cannot work together."""
    validate_tiers(tiers)

    if settings.league_size < 1:
        raise ConfigurationError(f"league_size must be positive, got {settings.league_size}")
    if settings.promotion_count < 0 or 2 * settings.promotion_count > settings.league_size:
        raise ConfigurationError(
            f"promotion_count {settings.promotion_count} does not fit "
            f"league_size {settings.league_size}"
        )
    if settings.period_length_hours <= 0 or settings.period_length_hours % 24:
        raise ConfigurationError(
            f"period_length_hours must be a positive multiple of 24, "
            f"got {settings.period_length_hours}"
        )
    if settings.daily_window_hours <= 0:
        raise ConfigurationError(
            f"daily_window_hours must be positive, got {settings.daily_window_hours}"
        )
    if not -12 <= settings.utc_offset_hours <= 14:
        raise ConfigurationError(
            f"utc_offset_hours out of range: {settings.utc_offset_hours}"
        )
    if settings.period_reference.tzinfo is None:
        raise ConfigurationError("period_reference must be timezone-aware")


def get_tier(tier_id: str) -> Tier:
    """Look up a tier by id. Raises ValueError for unknown ids."""
    tier = _BY_ID.get(tier_id)
    if tier is None:
        raise ValueError(f"Unknown tier: {tier_id}")
    return tier


def bottom_tier() -> Tier:
    return TIERS[0]


def is_top(tier: Tier) -> bool:
    return tier.order == len(TIERS) - 1


def is_bottom(tier: Tier) -> bool:
    return tier.order == 0


def next_tier(tier: Tier) -> Tier:
    """Tier above, or the same tier at the top of the ladder."""
    return tier if is_top(tier) else TIERS[tier.order + 1]


def previous_tier(tier: Tier) -> Tier:
    """Tier below, or the same tier at the bottom of the ladder."""
    return tier if is_bottom(tier) else TIERS[tier.order - 1]
