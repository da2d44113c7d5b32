"""Shared input records for the rating and prediction engines."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Side(int, Enum):
    """One of the two fixed team slots of a match."""

    TEAM1 = 1
    TEAM2 = 2

    @property
    def opponent(self) -> Side:
        return Side.TEAM2 if self is Side.TEAM1 else Side.TEAM1


@dataclass(frozen=True)
class AppearanceRecord:
    """One player's participation in one match, with optional raw counters."""

    player_id: int | None
    side: Side
    faction: str | None = None
    hero_kills: int | None = None
    unit_kills: int | None = None
    castles_razed: int | None = None
    main_bases_destroyed: int | None = None
    team_heal: float | None = None
    # One entry per core hero; None when that hero survived the match.
    hero_death_times: tuple[float | None, ...] = ()
    # One entry per faction base; None when that base stood to the end.
    base_death_times: tuple[float | None, ...] = ()
    is_early_leaver: bool = False

    @property
    def is_rated(self) -> bool:
        return self.player_id is not None


@dataclass(frozen=True)
class TeamPair:
    """Appearances of a match grouped into the two fixed slots."""

    team1: tuple[AppearanceRecord, ...]
    team2: tuple[AppearanceRecord, ...]

    def side(self, side: Side) -> tuple[AppearanceRecord, ...]:
        return self.team1 if side is Side.TEAM1 else self.team2

    def opponents(self, side: Side) -> tuple[AppearanceRecord, ...]:
        return self.side(side.opponent)

    @property
    def both_represented(self) -> bool:
        return bool(self.team1) and bool(self.team2)


@dataclass(frozen=True)
class MatchRecord:
    """An already-validated historical match.

    ``sequence`` is the position of the match in the externally defined total order.
    ``order_key`` holds the values that order is built from; unlike ``sequence`` it does
    not shift when an older match is inserted later. Engines consume matches in the order
    given and never re-sort them.
    """

    match_id: int
    sequence: int
    team1_won: bool
    appearances: tuple[AppearanceRecord, ...]
    is_draw: bool = False
    ignored: bool = False
    duration_seconds: float | None = None
    order_key: tuple[Any, ...] = ()

    def chronological_key(self) -> tuple[Any, ...]:
        return self.order_key or (self.sequence, self.match_id)

    def teams(self) -> TeamPair:
        return TeamPair(
            team1=tuple(a for a in self.appearances if a.side is Side.TEAM1),
            team2=tuple(a for a in self.appearances if a.side is Side.TEAM2),
        )

    @property
    def winning_side(self) -> Side | None:
        if self.is_draw:
            return None
        return Side.TEAM1 if self.team1_won else Side.TEAM2

    @property
    def has_early_leaver(self) -> bool:
        return any(appearance.is_early_leaver for appearance in self.appearances)

    def is_rateable(self) -> bool:
        """True when the match has both slots filled and was not excluded upstream."""
        return not self.ignored and self.teams().both_represented

    def player_ids(self) -> tuple[int, ...]:
        return tuple(a.player_id for a in self.appearances if a.player_id is not None)


@dataclass(frozen=True)
class PlayerSeed:
    """Seed values a recalculation pass starts from; None means engine default."""

    player_id: int
    elo_seed: float | None = None
    custom_rating_seed: float | None = None
    glicko_rating: float | None = None
    glicko_deviation: float | None = None
    glicko_volatility: float | None = None


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, sending exact halves away from zero."""
    magnitude = math.floor(abs(value) + 0.5)
    return int(magnitude) if value >= 0.0 else -int(magnitude)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


__all__ = [
    "AppearanceRecord",
    "MatchRecord",
    "PlayerSeed",
    "Side",
    "TeamPair",
    "clamp",
    "round_half_away_from_zero",
]
