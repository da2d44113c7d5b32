"""Confidence-shrunk 0-100 composite score from trained weights and lifetime features."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from math import exp

from domain.defaults import FEATURE_KEYS, NEUTRAL_FEATURES
from domain.prediction.features import PlayerProfile
from domain.prediction.weights import ModelWeights, sigmoid


@dataclass(frozen=True)
class ScoreParameters:
    raw_scale: float = 0.5
    confidence_games: float = 10.0
    neutral_score: float = 50.0


class ScoreEngine:
    def __init__(self, weights: ModelWeights | None = None, params: ScoreParameters | None = None) -> None:
        self.weights = weights or ModelWeights.baseline()
        self.params = params or ScoreParameters()

    def raw_score(self, features: Mapping[str, float]) -> float:
        """bias + sum of w_i * (feature_i - neutral baseline_i)."""
        return self.weights.bias + sum(
            self.weights.weight(key) * (features.get(key, NEUTRAL_FEATURES[key]) - NEUTRAL_FEATURES[key])
            for key in FEATURE_KEYS
        )

    def mapped_score(self, features: Mapping[str, float]) -> float:
        return sigmoid(self.raw_score(features) * self.params.raw_scale) * 100.0

    def confidence(self, games_played: int) -> float:
        return 1.0 - exp(-games_played / self.params.confidence_games)

    def shrink(self, mapped: float, games_played: int) -> float:
        neutral = self.params.neutral_score
        return neutral + (mapped - neutral) * self.confidence(games_played)

    def score(self, profile: PlayerProfile) -> float:
        return self.shrink(self.mapped_score(profile.features.as_dict()), profile.games_played)

    def score_all(self, profiles: Mapping[int, PlayerProfile]) -> dict[int, float]:
        return {player_id: self.score(profile) for player_id, profile in profiles.items()}


__all__ = ["ScoreEngine", "ScoreParameters"]
