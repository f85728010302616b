"""Ranking assembly — merges real learners and bots into one ordered table.

Sort order: score DESC, then real learners ahead of bots, then identity ASC.
The tiebreak is fully deterministic so every caller ranks ties the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union


@dataclass(frozen=True)
class RealParticipant:
    identity: str
    display_name: str
    score: int
    avatar_ref: str | None = None
    kind: Literal["real"] = "real"


@dataclass(frozen=True)
class BotParticipant:
    identity: str
    display_name: str
    score: int
    daily_rate: float
    avatar_ref: str | None = None
    kind: Literal["bot"] = "bot"


Participant = Union[RealParticipant, BotParticipant]


@dataclass(frozen=True)
class RankedEntry:
    rank: int
    participant: Participant

    @property
    def identity(self) -> str:
        return self.participant.identity

    @property
    def score(self) -> int:
        return self.participant.score

    @property
    def is_bot(self) -> bool:
        return self.participant.kind == "bot"


def _sort_key(p: Participant) -> tuple[int, int, str]:
    return (-p.score, 0 if p.kind == "real" else 1, p.identity)


def assemble(
    real: list[RealParticipant],
    bots: list[BotParticipant],
) -> list[RankedEntry]:
    """Rank real participants and bots together. Ranks are 1-based."""
    ordered = sorted([*real, *bots], key=_sort_key)
    return [RankedEntry(rank=idx + 1, participant=p) for idx, p in enumerate(ordered)]


def rank_of(ranked: list[RankedEntry], identity: str) -> int | None:
    """Rank of `identity` in an assembled table, or None if absent."""
    for entry in ranked:
        if entry.identity == identity:
            return entry.rank
    return None


def detect_rank_loss(
    previous_rank: int | None,
    current_rank: int | None,
    caller_id: str,
    ranked: list[RankedEntry],
) -> Participant | None:
    """Who passed the caller, if the caller's rank got numerically worse.

    Returns the participant now directly ahead of the caller. Advisory only:
    nothing is persisted from the result.
    """
    if previous_rank is None or current_rank is None or current_rank <= previous_rank:
        return None
    if current_rank < 2:
        return None
    ahead = ranked[current_rank - 2]
    if ahead.identity == caller_id:
        return None
    return ahead.participant


def rank_zone(rank: int, league_size: int, promotion_count: int) -> str:
    """'promotion', 'demotion' or 'safe' for a rank in a full league."""
    if rank <= promotion_count:
        return "promotion"
    if rank > league_size - promotion_count:
        return "demotion"
    return "safe"
