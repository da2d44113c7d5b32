"""Trained logistic-regression weights consumed by scoring and lobby prediction."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from math import exp
from types import MappingProxyType
from typing import Any

from domain.defaults import BASELINE_BIAS, BASELINE_WEIGHTS, FEATURE_KEYS
from domain.prediction.features import FeatureVector

SIGMOID_CLIP = 500.0


def sigmoid(z: float) -> float:
    z = max(-SIGMOID_CLIP, min(SIGMOID_CLIP, z))
    return 1.0 / (1.0 + exp(-z))


@dataclass(frozen=True)
class ModelWeights:
    """One weight per feature key plus a bias; immutable once produced."""

    weights: Mapping[str, float]
    bias: float
    games_trained_on: int = 0
    accuracy: float | None = None
    trained_at: datetime | None = None

    @classmethod
    def baseline(cls) -> ModelWeights:
        return cls(weights=MappingProxyType(dict(BASELINE_WEIGHTS)), bias=BASELINE_BIAS)

    def weight(self, key: str) -> float:
        return float(self.weights.get(key, 0.0))

    def linear(self, difference: FeatureVector) -> float:
        """``bias + w . difference`` over every feature key."""
        return self.bias + sum(self.weight(key) * value for key, value in difference.as_dict().items())

    def as_config_json(self) -> dict[str, Any]:
        return {
            "weights": {key: self.weight(key) for key in FEATURE_KEYS},
            "bias": self.bias,
            "games_trained_on": self.games_trained_on,
            "accuracy": self.accuracy,
        }


def feature_difference(first: FeatureVector, second: FeatureVector) -> FeatureVector:
    return FeatureVector(
        **{key: getattr(first, key) - getattr(second, key) for key in FEATURE_KEYS}
    )


__all__ = ["ModelWeights", "feature_difference", "sigmoid"]
