"""Stateless, seedable pseudo-random draws for bot generation.

Each draw is a pure function of (seed, index, purpose): the three integers
are folded through the SplitMix64 finaliser and the top 53 bits become a
float in [0, 1). Any process on any platform gets the same value for the
same inputs. Not suitable for anything security related.
"""

from __future__ import annotations

import zlib

_MASK64 = (1 << 64) - 1
_GOLDEN_GAMMA = 0x9E3779B97F4A7C15

# Purpose tags keep the draws for different attributes independent.
PURPOSE_GENDER = 1
PURPOSE_NAME = 2
PURPOSE_AVATAR = 3
PURPOSE_RATE = 4
PURPOSE_HOUR_BASE = 1000  # hour h uses PURPOSE_HOUR_BASE + h


def _splitmix64(value: int) -> int:
    z = (value + _GOLDEN_GAMMA) & _MASK64
    z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK64
    return z ^ (z >> 31)


def next_unit_float(seed: int, index: int, purpose: int) -> float:
    """Deterministic draw in [0, 1) for the given seed, index and purpose."""
    h = _splitmix64(seed & _MASK64)
    h = _splitmix64(h ^ (index & _MASK64))
    h = _splitmix64(h ^ (purpose & _MASK64))
    return (h >> 11) / float(1 << 53)


def tier_seed(global_seed: int, tier_id: str) -> int:
    """Per-tier seed: the global seed plus the sum of the tier id's character codes."""
    return global_seed + sum(ord(ch) for ch in tier_id)


def identity_seed(global_seed: int, identity: str) -> int:
    """Per-bot seed for persisted bots, stable across processes."""
    return global_seed + zlib.crc32(identity.encode("utf-8"))
