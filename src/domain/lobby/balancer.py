"""Bounded greedy swap search that narrows the predicted gap between two sides.

Each slot is scored on a 0-100 points scale where rating ``rating_floor`` maps to 0 and
``rating_ceiling`` to 100. Players short of ``games_for_full_rating_trust`` games have
their rating nudged by their composite score, linearly less as they play more. A player
with enough total games who is new to the slot's faction loses points that decay
exponentially with games on that faction. The slot's faction impact weight then scales
the result, and a side's score is the mean over its occupied slots.

On every iteration all cross-side pairs are tried in a fixed order (team-1 index outer,
team-2 index inner) and the single best strict improvement is taken, so ties go to the
first pair visited.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from math import exp

from domain.lobby.common import Lobby, LobbyParameters, LobbySlot
from domain.lobby.predictor import LobbyPrediction, LobbyPredictor
from domain.prediction.features import PlayerProfile
from domain.prediction.score import ScoreEngine


@dataclass(frozen=True)
class Swap:
    team1_index: int
    team2_index: int
    team1_player_id: int | None
    team2_player_id: int | None
    improvement: float
    gap_after: float


@dataclass(frozen=True)
class BalanceResult:
    lobby: Lobby
    swaps: tuple[Swap, ...]
    initial_gap: float
    final_gap: float
    prediction: LobbyPrediction | None


class LobbyBalancer:
    def __init__(
        self,
        profiles: Mapping[int, PlayerProfile],
        *,
        score_engine: ScoreEngine | None = None,
        predictor: LobbyPredictor | None = None,
        params: LobbyParameters | None = None,
    ) -> None:
        self.profiles = profiles
        self.score_engine = score_engine or ScoreEngine()
        self.predictor = predictor or LobbyPredictor(profiles, self.score_engine.weights)
        self.params = params or LobbyParameters()

    def familiarity_penalty(self, profile: PlayerProfile, faction: str | None) -> float:
        """Rating points lost on an unfamiliar faction."""
        if faction is None or profile.games_played < self.params.familiarity_min_games:
            return 0.0
        faction_games = profile.games_on_faction(faction)
        return self.params.familiarity_max_penalty * exp(
            -faction_games / self.params.familiarity_decay_games
        )

    def effective_rating(self, slot: LobbySlot) -> float | None:
        if not slot.is_occupied:
            return None
        profile = self.profiles.get(slot.player_id) if slot.player_id is not None else None
        if profile is None:
            return self.params.default_rating

        rating = profile.current_rating
        games = profile.games_played
        trust_games = self.params.games_for_full_rating_trust
        if games < trust_games:
            neutral = self.score_engine.params.neutral_score
            deviation = (self.score_engine.score(profile) - neutral) / neutral
            rating += deviation * self.params.max_score_rating_adjustment * (1.0 - games / trust_games)
        return rating - self.familiarity_penalty(profile, slot.faction)

    def slot_points(self, slot: LobbySlot) -> float | None:
        rating = self.effective_rating(slot)
        if rating is None:
            return None
        span = self.params.rating_ceiling - self.params.rating_floor
        points = (rating - self.params.rating_floor) / span * 100.0
        return points * self.params.faction_weight(slot.faction)

    def side_points(self, slots: tuple[LobbySlot, ...]) -> float | None:
        points = [value for value in (self.slot_points(slot) for slot in slots) if value is not None]
        if not points:
            return None
        return sum(points) / len(points)

    def gap(self, lobby: Lobby) -> float | None:
        """Team-1 points minus team-2 points, or None when a side has nobody scoreable."""
        team1 = self.side_points(lobby.team1)
        team2 = self.side_points(lobby.team2)
        if team1 is None or team2 is None:
            return None
        return team1 - team2

    def find_swaps(self, lobby: Lobby) -> BalanceResult:
        initial_gap = self.gap(lobby)
        if initial_gap is None:
            return BalanceResult(lobby=lobby, swaps=(), initial_gap=0.0, final_gap=0.0, prediction=None)

        current = lobby
        current_gap = initial_gap
        swaps: list[Swap] = []
        for _ in range(self.params.max_iterations):
            if abs(current_gap) < self.params.balanced_gap:
                break

            best: tuple[int, int] | None = None
            best_lobby = current
            best_gap = current_gap
            for team1_index in range(len(current.team1)):
                for team2_index in range(len(current.team2)):
                    candidate = current.swapped(team1_index, team2_index)
                    candidate_gap = self.gap(candidate)
                    if candidate_gap is None:
                        continue
                    if abs(candidate_gap) < abs(best_gap):
                        best = (team1_index, team2_index)
                        best_lobby = candidate
                        best_gap = candidate_gap

            if best is None:
                break
            improvement = abs(current_gap) - abs(best_gap)
            threshold = self.params.next_swap_threshold if swaps else self.params.first_swap_threshold
            if improvement <= threshold:
                break

            team1_index, team2_index = best
            swaps.append(
                Swap(
                    team1_index=team1_index,
                    team2_index=team2_index,
                    team1_player_id=current.team1[team1_index].player_id,
                    team2_player_id=current.team2[team2_index].player_id,
                    improvement=improvement,
                    gap_after=best_gap,
                )
            )
            current = best_lobby
            current_gap = best_gap

        return BalanceResult(
            lobby=current,
            swaps=tuple(swaps),
            initial_gap=initial_gap,
            final_gap=current_gap,
            prediction=self.predictor.predict(current),
        )


__all__ = ["BalanceResult", "LobbyBalancer", "Swap"]
