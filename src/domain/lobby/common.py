"""Lobby slots, proposed lineups and lobby tuning parameters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Final

from domain.defaults import DEFAULT_CUSTOM_RATING

FACTION_IMPACT_WEIGHTS: Final[Mapping[str, float]] = MappingProxyType(
    {
        "Mordor": 1.08,
        "Gondor": 1.05,
        "Easterlings": 0.99,
        "Harad": 0.98,
        "Isengard": 0.99,
        "Minas Morgul": 0.96,
        "Fellowship": 0.96,
        "Dol Amroth": 0.99,
    }
)


@dataclass(frozen=True)
class LobbyParameters:
    max_iterations: int = 10
    balanced_gap: float = 1.0
    first_swap_threshold: float = 0.5
    next_swap_threshold: float = 0.1
    rating_floor: float = 1200.0
    rating_ceiling: float = 1800.0
    default_rating: float = DEFAULT_CUSTOM_RATING
    games_for_full_rating_trust: int = 30
    max_score_rating_adjustment: float = 200.0
    familiarity_max_penalty: float = 80.0
    familiarity_decay_games: float = 5.0
    familiarity_min_games: int = 5
    default_faction_weight: float = 1.0
    faction_weights: Mapping[str, float] = field(default_factory=lambda: FACTION_IMPACT_WEIGHTS)

    def faction_weight(self, faction: str | None) -> float:
        if faction is None:
            return self.default_faction_weight
        return float(self.faction_weights.get(faction, self.default_faction_weight))


@dataclass(frozen=True)
class LobbySlot:
    """A fixed position (faction) on one side plus whoever currently occupies it.

    ``player_id=None`` with ``is_new_player=True`` is an unknown newcomer; with
    ``is_new_player=False`` the slot is empty.
    """

    faction: str | None = None
    player_id: int | None = None
    is_new_player: bool = False

    @property
    def is_occupied(self) -> bool:
        return self.player_id is not None or self.is_new_player

    def with_occupant_of(self, other: LobbySlot) -> LobbySlot:
        return replace(self, player_id=other.player_id, is_new_player=other.is_new_player)


@dataclass(frozen=True)
class Lobby:
    team1: tuple[LobbySlot, ...]
    team2: tuple[LobbySlot, ...]

    def swapped(self, team1_index: int, team2_index: int) -> Lobby:
        """Exchange the occupants of two slots; factions stay where they are."""
        team1 = list(self.team1)
        team2 = list(self.team2)
        first, second = team1[team1_index], team2[team2_index]
        team1[team1_index] = first.with_occupant_of(second)
        team2[team2_index] = second.with_occupant_of(first)
        return Lobby(team1=tuple(team1), team2=tuple(team2))


__all__ = ["FACTION_IMPACT_WEIGHTS", "Lobby", "LobbyParameters", "LobbySlot"]
