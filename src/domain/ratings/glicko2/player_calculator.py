"""Player-level Glicko-2 against per-side composite opponents."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from math import sqrt

from domain.common import AppearanceRecord, MatchRecord, PlayerSeed, Side, clamp
from domain.ratings.glicko2.calculator import (
    Glicko2OpponentResult,
    Glicko2Parameters,
    calculate_expected_score,
    update_glicko2_player,
)
from domain.ratings.player_mixin import PlayerCalculatorMixin
from domain.ratings.protocol import RatingSystem


@dataclass(frozen=True)
class Glicko2State:
    rating: float
    rd: float
    volatility: float


@dataclass(frozen=True)
class CompositeOpponent:
    """Synthetic single opponent standing in for one side of a match."""

    rating: float
    rd: float
    volatility: float
    player_count: int


@dataclass(frozen=True)
class PlayerGlicko2Event:
    player_id: int
    match_id: int
    side: Side
    won: bool
    actual_score: float
    expected_score: float
    opponent_rating: float
    opponent_rd: float
    rating_before_match: float
    rd_before_match: float
    volatility_before_match: float
    rating_change: float
    post_rating: float
    post_rd: float
    post_volatility: float


def build_composite(states: Iterable[Glicko2State], params: Glicko2Parameters) -> CompositeOpponent:
    """Average rating and volatility; deviation pooled as sqrt(mean(rd^2))."""
    side_states = list(states)
    if not side_states:
        return CompositeOpponent(
            rating=params.initial_rating,
            rd=params.initial_rd,
            volatility=params.initial_volatility,
            player_count=0,
        )
    count = float(len(side_states))
    return CompositeOpponent(
        rating=sum(state.rating for state in side_states) / count,
        rd=sqrt(sum(state.rd**2 for state in side_states) / count),
        volatility=sum(state.volatility for state in side_states) / count,
        player_count=len(side_states),
    )


class Glicko2Engine(PlayerCalculatorMixin):
    """Stateful match-by-match player Glicko-2 engine."""

    system = RatingSystem.GLICKO2

    def __init__(self, params: Glicko2Parameters | None = None) -> None:
        self.params = params or Glicko2Parameters()
        self._states: dict[int, Glicko2State] = {}

    def _initial_state(self, seed: PlayerSeed | None = None) -> Glicko2State:
        def pick(value: float | None, default: float) -> float:
            return value if value is not None else default

        return Glicko2State(
            rating=pick(seed.glicko_rating if seed else None, self.params.initial_rating),
            rd=pick(seed.glicko_deviation if seed else None, self.params.initial_rd),
            volatility=pick(seed.glicko_volatility if seed else None, self.params.initial_volatility),
        )

    def reset(self, seeds: Iterable[PlayerSeed]) -> None:
        self._states = {seed.player_id: self._initial_state(seed) for seed in seeds}

    def load_states(self, states: Mapping[int, Glicko2State]) -> None:
        self._states = dict(states)

    def _get_or_create_state(self, player_id: int) -> Glicko2State:
        state = self._states.get(player_id)
        if state is None:
            state = self._initial_state()
            self._states[player_id] = state
        return state

    def get_rating(self, player_id: int) -> float:
        return self._get_or_create_state(player_id).rating

    def states(self) -> dict[int, Glicko2State]:
        return dict(self._states)

    def ratings(self) -> dict[int, float]:
        return {player_id: state.rating for player_id, state in self._states.items()}

    def tracked_entity_count(self) -> int:
        return len(self._states)

    def _side_pre_state(self, appearances: tuple[AppearanceRecord, ...]) -> dict[int, Glicko2State]:
        return {
            appearance.player_id: self._get_or_create_state(appearance.player_id)
            for appearance in appearances
            if appearance.player_id is not None
        }

    def apply(self, match: MatchRecord) -> list[PlayerGlicko2Event]:
        self._validate_match(match)
        if not match.is_rateable():
            return []

        teams = match.teams()
        pre_states = {side: self._side_pre_state(teams.side(side)) for side in Side}
        composites = {
            side: build_composite(pre_states[side].values(), self.params) for side in Side
        }
        early_leaver_match = match.has_early_leaver

        events: list[PlayerGlicko2Event] = []
        for side in Side:
            opponent = composites[side.opponent]
            actual = self._actual_score(match, side)
            for appearance in teams.side(side):
                if appearance.player_id is None:
                    continue
                pre = pre_states[side][appearance.player_id]
                expected = calculate_expected_score(
                    rating=pre.rating,
                    rd=pre.rd,
                    opponent_rating=opponent.rating,
                    opponent_rd=opponent.rd,
                    params=self.params,
                )

                if match.is_draw or appearance.is_early_leaver:
                    post = pre
                    change = 0.0
                else:
                    new_rating, new_rd, new_volatility = update_glicko2_player(
                        rating=pre.rating,
                        rd=pre.rd,
                        volatility=pre.volatility,
                        results=[
                            Glicko2OpponentResult(
                                opponent_rating=opponent.rating,
                                opponent_rd=opponent.rd,
                                score=actual,
                            )
                        ],
                        params=self.params,
                    )
                    change = new_rating - pre.rating
                    if early_leaver_match:
                        change *= self.params.early_leaver_scale
                    change = round(change, 2)
                    post = Glicko2State(
                        rating=round(
                            clamp(pre.rating + change, self.params.min_rating, self.params.max_rating), 2
                        ),
                        rd=round(new_rd, 2),
                        volatility=round(new_volatility, 6),
                    )

                events.append(
                    PlayerGlicko2Event(
                        player_id=appearance.player_id,
                        match_id=match.match_id,
                        side=side,
                        won=match.winning_side is side,
                        actual_score=actual,
                        expected_score=expected,
                        opponent_rating=opponent.rating,
                        opponent_rd=opponent.rd,
                        rating_before_match=pre.rating,
                        rd_before_match=pre.rd,
                        volatility_before_match=pre.volatility,
                        rating_change=change,
                        post_rating=post.rating,
                        post_rd=post.rd,
                        post_volatility=post.volatility,
                    )
                )

        for event in events:
            self._states[event.player_id] = Glicko2State(
                rating=event.post_rating,
                rd=event.post_rd,
                volatility=event.post_volatility,
            )
        return events


__all__ = [
    "CompositeOpponent",
    "Glicko2Engine",
    "Glicko2State",
    "PlayerGlicko2Event",
    "build_composite",
]
