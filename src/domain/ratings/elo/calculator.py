"""Player-level classic Elo logic."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from domain.common import MatchRecord, PlayerSeed, Side, round_half_away_from_zero
from domain.defaults import DEFAULT_ELO
from domain.ratings.player_mixin import PlayerCalculatorMixin
from domain.ratings.protocol import RatingSystem


@dataclass(frozen=True)
class EloParameters:
    initial_elo: float = DEFAULT_ELO
    k_factor: float = 32.0
    scale_factor: float = 400.0


@dataclass(frozen=True)
class EloState:
    rating: float


@dataclass(frozen=True)
class PlayerEloEvent:
    player_id: int
    match_id: int
    side: Side
    won: bool
    actual_score: float
    expected_score: float
    opponent_average: float
    rating_before_match: float
    rating_change: float
    post_rating: float


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


class EloEngine(PlayerCalculatorMixin):
    """Stateful match-by-match player Elo engine with a fixed K-factor."""

    system = RatingSystem.ELO

    def __init__(self, params: EloParameters | None = None) -> None:
        self.params = params or EloParameters()
        self._states: dict[int, EloState] = {}

    def reset(self, seeds: Iterable[PlayerSeed]) -> None:
        self._states = {
            seed.player_id: EloState(
                rating=seed.elo_seed if seed.elo_seed is not None else self.params.initial_elo
            )
            for seed in seeds
        }

    def load_states(self, states: Mapping[int, EloState]) -> None:
        self._states = dict(states)

    def get_rating(self, player_id: int) -> float:
        state = self._states.get(player_id)
        return state.rating if state is not None else self.params.initial_elo

    def states(self) -> dict[int, EloState]:
        return dict(self._states)

    def ratings(self) -> dict[int, float]:
        return {player_id: state.rating for player_id, state in self._states.items()}

    def tracked_entity_count(self) -> int:
        return len(self._states)

    def apply(self, match: MatchRecord) -> list[PlayerEloEvent]:
        """Apply one match; every change is computed from the pre-match snapshot first."""
        self._validate_match(match)
        if not match.is_rateable():
            return []

        teams = match.teams()
        averages = {
            side: self._average_rating(teams.side(side), self.get_rating) for side in Side
        }

        events: list[PlayerEloEvent] = []
        for side in Side:
            opponent_average = averages[side.opponent]
            if opponent_average is None:
                continue
            actual = self._actual_score(match, side)
            for appearance in teams.side(side):
                if appearance.player_id is None:
                    continue
                pre_rating = self.get_rating(appearance.player_id)
                expected = calculate_expected_score(
                    rating=pre_rating,
                    opponent_rating=opponent_average,
                    scale_factor=self.params.scale_factor,
                )
                change = 0.0
                if not match.is_draw:
                    change = float(round_half_away_from_zero(self.params.k_factor * (actual - expected)))
                events.append(
                    PlayerEloEvent(
                        player_id=appearance.player_id,
                        match_id=match.match_id,
                        side=side,
                        won=match.winning_side is side,
                        actual_score=actual,
                        expected_score=expected,
                        opponent_average=opponent_average,
                        rating_before_match=pre_rating,
                        rating_change=change,
                        post_rating=pre_rating + change,
                    )
                )

        for event in events:
            self._states[event.player_id] = EloState(rating=event.post_rating)
        return events


__all__ = [
    "EloEngine",
    "EloParameters",
    "EloState",
    "PlayerEloEvent",
    "calculate_expected_score",
]
