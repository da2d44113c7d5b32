"""Full-batch gradient-descent logistic regression over match feature differences."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType

import numpy as np

from domain.common import MatchRecord
from domain.defaults import FEATURE_KEYS
from domain.prediction.features import FeatureExtractor, MatchFeatures, RatingLookup, average_features
from domain.prediction.weights import SIGMOID_CLIP, ModelWeights, feature_difference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingParameters:
    iterations: int = 1000
    learning_rate: float = 0.01
    l2_lambda: float = 0.001
    min_std: float = 0.001


@dataclass(frozen=True)
class TrainingExamples:
    """Design matrix (one row per match, columns in ``FEATURE_KEYS`` order) and labels."""

    features: np.ndarray
    labels: np.ndarray

    @property
    def size(self) -> int:
        return int(self.labels.shape[0])


def _sigmoid(z: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(z, -SIGMOID_CLIP, SIGMOID_CLIP)))


def build_examples(match_features: Iterable[MatchFeatures]) -> TrainingExamples:
    """Team-1 average minus team-2 average per decided match; label is team-1 won."""
    rows: list[tuple[float, ...]] = []
    labels: list[float] = []
    for match in match_features:
        if match.is_draw or not match.team1 or not match.team2:
            continue
        team1 = average_features([player.features for player in match.team1])
        team2 = average_features([player.features for player in match.team2])
        rows.append(feature_difference(team1, team2).values())
        labels.append(1.0 if match.team1_won else 0.0)

    features = np.asarray(rows, dtype=float).reshape(len(rows), len(FEATURE_KEYS))
    return TrainingExamples(features=features, labels=np.asarray(labels, dtype=float))


class ModelTrainer:
    """Fits ``ModelWeights`` that apply directly to unnormalized feature differences."""

    def __init__(
        self,
        params: TrainingParameters | None = None,
        *,
        extractor: FeatureExtractor | None = None,
    ) -> None:
        self.params = params or TrainingParameters()
        self.extractor = extractor or FeatureExtractor()

    def fit(self, examples: TrainingExamples, *, trained_at: datetime | None = None) -> ModelWeights | None:
        """Return trained weights, or None when there is nothing to train on."""
        if examples.size == 0:
            return None

        x = examples.features
        y = examples.labels
        n = float(examples.size)

        mean = x.mean(axis=0)
        std = x.std(axis=0)
        std = np.where(std < self.params.min_std, 1.0, std)
        z = (x - mean) / std

        weights = np.zeros(x.shape[1], dtype=float)
        bias = 0.0
        for _ in range(self.params.iterations):
            error = _sigmoid(z @ weights + bias) - y
            grad_weights = (z.T @ error) / n + self.params.l2_lambda * weights
            grad_bias = float(error.sum() / n)
            weights = weights - self.params.learning_rate * grad_weights
            bias -= self.params.learning_rate * grad_bias

        predicted = (_sigmoid(z @ weights + bias) >= 0.5).astype(float)
        accuracy = round(float((predicted == y).mean() * 100.0), 1)

        raw_bias = bias
        raw_weights: dict[str, float] = {}
        for index, key in enumerate(FEATURE_KEYS):
            raw_weights[key] = float(weights[index] / std[index])
            raw_bias -= float(weights[index] * mean[index] / std[index])

        logger.info(
            "Trained prediction model on %d matches (accuracy=%.1f%%)", examples.size, accuracy
        )
        return ModelWeights(
            weights=MappingProxyType(raw_weights),
            bias=raw_bias,
            games_trained_on=examples.size,
            accuracy=accuracy,
            trained_at=trained_at or datetime.now(UTC).replace(tzinfo=None),
        )

    def train(
        self,
        history: Iterable[MatchRecord],
        *,
        ratings_before: RatingLookup | None = None,
        trained_at: datetime | None = None,
    ) -> ModelWeights | None:
        match_features = self.extractor.match_features(history, ratings_before=ratings_before)
        examples = build_examples(match_features)
        if examples.size == 0:
            logger.info("No usable training data; keeping current model")
            return None
        return self.fit(examples, trained_at=trained_at)


__all__ = [
    "ModelTrainer",
    "TrainingExamples",
    "TrainingParameters",
    "build_examples",
]
