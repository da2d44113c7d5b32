"""Win probability of a proposed lobby from averaged team features."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from domain.lobby.common import Lobby, LobbySlot
from domain.prediction.features import FeatureVector, PlayerProfile, average_features
from domain.prediction.weights import ModelWeights, feature_difference, sigmoid


@dataclass(frozen=True)
class TeamBreakdown:
    player_count: int
    new_player_count: int
    features: FeatureVector


@dataclass(frozen=True)
class LobbyPrediction:
    team1_win_pct: float
    team2_win_pct: float
    raw_score: float
    team1: TeamBreakdown
    team2: TeamBreakdown


class LobbyPredictor:
    """Predicts a lobby outcome; returns None when either side has nobody scoreable."""

    def __init__(self, profiles: Mapping[int, PlayerProfile], weights: ModelWeights | None = None) -> None:
        self.profiles = profiles
        self.weights = weights or ModelWeights.baseline()

    def slot_features(self, slot: LobbySlot) -> FeatureVector | None:
        if not slot.is_occupied:
            return None
        if slot.player_id is not None:
            profile = self.profiles.get(slot.player_id)
            if profile is not None:
                return profile.features
        return FeatureVector.neutral()

    def team_breakdown(self, slots: tuple[LobbySlot, ...]) -> TeamBreakdown | None:
        vectors: list[FeatureVector] = []
        new_players = 0
        for slot in slots:
            features = self.slot_features(slot)
            if features is None:
                continue
            vectors.append(features)
            if slot.player_id is None or slot.player_id not in self.profiles:
                new_players += 1
        if not vectors:
            return None
        return TeamBreakdown(
            player_count=len(vectors),
            new_player_count=new_players,
            features=average_features(vectors),
        )

    def predict(self, lobby: Lobby) -> LobbyPrediction | None:
        team1 = self.team_breakdown(lobby.team1)
        team2 = self.team_breakdown(lobby.team2)
        if team1 is None or team2 is None:
            return None

        raw_score = self.weights.linear(feature_difference(team1.features, team2.features))
        team1_win_pct = round(sigmoid(raw_score) * 100.0, 1)
        return LobbyPrediction(
            team1_win_pct=team1_win_pct,
            team2_win_pct=round(100.0 - team1_win_pct, 1),
            raw_score=raw_score,
            team1=team1,
            team2=team2,
        )


__all__ = ["LobbyPrediction", "LobbyPredictor", "TeamBreakdown"]
