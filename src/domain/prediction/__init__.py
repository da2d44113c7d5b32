"""Feature extraction, model training and composite scoring."""

from domain.prediction.features import (
    FeatureExtractor,
    FeatureParameters,
    FeatureVector,
    MatchFeatures,
    PlayerFeatures,
    PlayerProfile,
    average_features,
)
from domain.prediction.score import ScoreEngine, ScoreParameters
from domain.prediction.trainer import ModelTrainer, TrainingExamples, TrainingParameters, build_examples
from domain.prediction.weights import ModelWeights, feature_difference, sigmoid

__all__ = [
    "FeatureExtractor",
    "FeatureParameters",
    "FeatureVector",
    "MatchFeatures",
    "ModelTrainer",
    "ModelWeights",
    "PlayerFeatures",
    "PlayerProfile",
    "ScoreEngine",
    "ScoreParameters",
    "TrainingExamples",
    "TrainingParameters",
    "average_features",
    "build_examples",
    "feature_difference",
    "sigmoid",
]
