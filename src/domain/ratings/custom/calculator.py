"""Player-level custom rating: team-blended Elo with variable K and bonus wins."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from math import exp

from domain.common import MatchRecord, PlayerSeed, Side, clamp, round_half_away_from_zero
from domain.defaults import DEFAULT_CUSTOM_RATING
from domain.ratings.elo.calculator import calculate_expected_score
from domain.ratings.player_mixin import PlayerCalculatorMixin
from domain.ratings.protocol import RatingSystem


@dataclass(frozen=True)
class CustomRatingParameters:
    initial_rating: float = DEFAULT_CUSTOM_RATING
    scale_factor: float = 400.0
    individual_weight: float = 0.2
    high_watermark: float = 2000.0
    high_rating_threshold: float = 1800.0
    provisional_games: int = 30
    k_high: float = 20.0
    k_provisional: float = 40.0
    k_default: float = 30.0
    max_bonus_wins: int = 20
    bonus_full_seed: float = 1300.0
    bonus_zero_seed: float = 1500.0
    early_leaver_scale: float = 0.7
    prediction_scale: float = 150.0

    @property
    def team_weight(self) -> float:
        return 1.0 - self.individual_weight


@dataclass(frozen=True)
class CustomRatingState:
    rating: float
    games_played: int
    bonus_wins_remaining: int
    reached_high_watermark: bool


@dataclass(frozen=True)
class PlayerCustomRatingEvent:
    player_id: int
    match_id: int
    side: Side
    won: bool
    expected_score: float
    k_factor: float
    rating_before_match: float
    base_change: int
    bonus: int
    rating_change: float
    post_rating: float
    games_played: int
    bonus_wins_remaining: int


@dataclass(frozen=True)
class MatchPredictionSnapshot:
    """Pre-match team averages and the implied team-1 win percentage."""

    match_id: int
    team1_average: float
    team2_average: float
    team1_win_pct: float


def bonus_wins_for_seed(seed: float, params: CustomRatingParameters) -> int:
    """Size of the bonus-win bank for a player starting at ``seed``."""
    span = params.bonus_zero_seed - params.bonus_full_seed
    ratio = clamp((params.bonus_zero_seed - seed) / span, 0.0, 1.0) if span > 0.0 else 0.0
    return round_half_away_from_zero(params.max_bonus_wins * ratio)


def select_k_factor(state: CustomRatingState, params: CustomRatingParameters) -> float:
    """Highest-precedence rule wins: ratchet, high rating, provisional, default."""
    if state.reached_high_watermark:
        return params.k_high
    if state.rating >= params.high_rating_threshold:
        return params.k_high
    if state.games_played < params.provisional_games:
        return params.k_provisional
    return params.k_default


class CustomRatingEngine(PlayerCalculatorMixin):
    """Stateful match-by-match custom rating engine."""

    system = RatingSystem.CUSTOM

    def __init__(self, params: CustomRatingParameters | None = None) -> None:
        self.params = params or CustomRatingParameters()
        self._states: dict[int, CustomRatingState] = {}
        self._predictions: dict[int, MatchPredictionSnapshot] = {}

    def _initial_state(self, seed: float | None) -> CustomRatingState:
        rating = seed if seed is not None else self.params.initial_rating
        return CustomRatingState(
            rating=rating,
            games_played=0,
            bonus_wins_remaining=bonus_wins_for_seed(rating, self.params),
            reached_high_watermark=rating >= self.params.high_watermark,
        )

    def reset(self, seeds: Iterable[PlayerSeed]) -> None:
        self._states = {seed.player_id: self._initial_state(seed.custom_rating_seed) for seed in seeds}
        self._predictions = {}

    def load_states(self, states: Mapping[int, CustomRatingState]) -> None:
        self._states = dict(states)

    def _get_or_create_state(self, player_id: int) -> CustomRatingState:
        state = self._states.get(player_id)
        if state is None:
            state = self._initial_state(None)
            self._states[player_id] = state
        return state

    def get_rating(self, player_id: int | None) -> float:
        if player_id is None:
            return self.params.initial_rating
        state = self._states.get(player_id)
        return state.rating if state is not None else self.params.initial_rating

    def states(self) -> dict[int, CustomRatingState]:
        return dict(self._states)

    def ratings(self) -> dict[int, float]:
        return {player_id: state.rating for player_id, state in self._states.items()}

    def predictions(self) -> dict[int, MatchPredictionSnapshot]:
        return dict(self._predictions)

    def tracked_entity_count(self) -> int:
        return len(self._states)

    def apply(self, match: MatchRecord) -> list[PlayerCustomRatingEvent]:
        self._validate_match(match)
        if not match.is_rateable():
            return []

        teams = match.teams()
        # Unrated participants count at the default rating in team averages.
        averages = {
            side: sum(self.get_rating(a.player_id) for a in teams.side(side)) / float(len(teams.side(side)))
            for side in Side
        }
        self._predictions[match.match_id] = MatchPredictionSnapshot(
            match_id=match.match_id,
            team1_average=averages[Side.TEAM1],
            team2_average=averages[Side.TEAM2],
            team1_win_pct=100.0
            / (1.0 + exp(-(averages[Side.TEAM1] - averages[Side.TEAM2]) / self.params.prediction_scale)),
        )

        events: list[PlayerCustomRatingEvent] = []
        pending: dict[int, CustomRatingState] = {}
        early_leaver_match = match.has_early_leaver

        for side in Side:
            actual = self._actual_score(match, side)
            won = match.winning_side is side
            for appearance in teams.side(side):
                if appearance.player_id is None:
                    continue
                state = self._get_or_create_state(appearance.player_id)
                effective = (
                    self.params.individual_weight * state.rating
                    + self.params.team_weight * averages[side]
                )
                expected = calculate_expected_score(
                    rating=effective,
                    opponent_rating=averages[side.opponent],
                    scale_factor=self.params.scale_factor,
                )
                k_factor = select_k_factor(state, self.params)

                base_change = 0
                bonus = 0
                bank = state.bonus_wins_remaining
                if not match.is_draw and not appearance.is_early_leaver:
                    base_change = round_half_away_from_zero(k_factor * (actual - expected))
                    if won and bank > 0:
                        bonus = bank
                        bank -= 1
                    if early_leaver_match:
                        base_change = round_half_away_from_zero(base_change * self.params.early_leaver_scale)
                        bonus = round_half_away_from_zero(bonus * self.params.early_leaver_scale)

                change = float(base_change + bonus)
                post_rating = state.rating + change
                new_state = replace(
                    state,
                    rating=post_rating,
                    games_played=state.games_played + 1,
                    bonus_wins_remaining=bank,
                    reached_high_watermark=state.reached_high_watermark
                    or post_rating >= self.params.high_watermark,
                )
                pending[appearance.player_id] = new_state
                events.append(
                    PlayerCustomRatingEvent(
                        player_id=appearance.player_id,
                        match_id=match.match_id,
                        side=side,
                        won=won,
                        expected_score=expected,
                        k_factor=k_factor,
                        rating_before_match=state.rating,
                        base_change=base_change,
                        bonus=bonus,
                        rating_change=change,
                        post_rating=post_rating,
                        games_played=new_state.games_played,
                        bonus_wins_remaining=bank,
                    )
                )

        self._states.update(pending)
        return events


__all__ = [
    "CustomRatingEngine",
    "CustomRatingParameters",
    "CustomRatingState",
    "MatchPredictionSnapshot",
    "PlayerCustomRatingEvent",
    "bonus_wins_for_seed",
    "select_k_factor",
]
