"""Tests for logistic-regression training and weight denormalization."""

from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest

from domain.common import AppearanceRecord, MatchRecord, Side
from domain.defaults import FEATURE_KEYS
from domain.prediction.features import FeatureVector, MatchFeatures, PlayerFeatures
from domain.prediction.trainer import ModelTrainer, TrainingExamples, build_examples
from domain.prediction.weights import ModelWeights, sigmoid

ELO_COLUMN = FEATURE_KEYS.index("elo")


def _separable_examples() -> TrainingExamples:
    diffs = [50.0 + 5.0 * i for i in range(50)]
    rows = np.zeros((100, len(FEATURE_KEYS)))
    rows[:50, ELO_COLUMN] = diffs
    rows[50:, ELO_COLUMN] = [-diff for diff in diffs]
    labels = np.array([1.0] * 50 + [0.0] * 50)
    return TrainingExamples(features=rows, labels=labels)


def _difference(**values: float) -> FeatureVector:
    zeros = {key: 0.0 for key in FEATURE_KEYS}
    zeros.update(values)
    return FeatureVector(**zeros)


def test_fit_separates_linearly_separable_data() -> None:
    weights = ModelTrainer().fit(_separable_examples(), trained_at=datetime(2026, 1, 1))

    assert weights is not None
    assert weights.accuracy is not None and weights.accuracy >= 99.0
    assert weights.games_trained_on == 100
    assert weights.trained_at == datetime(2026, 1, 1)
    assert weights.weight("elo") > 0.0
    # Constant columns carry no signal.
    assert weights.weight("hero_kd") == pytest.approx(0.0)


def test_denormalized_weights_apply_to_raw_differences() -> None:
    weights = ModelTrainer().fit(_separable_examples())

    assert weights is not None
    assert sigmoid(weights.linear(_difference(elo=120.0))) > 0.5
    assert sigmoid(weights.linear(_difference(elo=-120.0))) < 0.5


def test_fit_returns_none_without_examples() -> None:
    empty = TrainingExamples(features=np.zeros((0, len(FEATURE_KEYS))), labels=np.zeros(0))
    assert ModelTrainer().fit(empty) is None


def test_train_returns_none_for_empty_or_drawn_history() -> None:
    trainer = ModelTrainer()
    draw = MatchRecord(
        match_id=1,
        sequence=1,
        team1_won=False,
        is_draw=True,
        appearances=(
            AppearanceRecord(player_id=1, side=Side.TEAM1),
            AppearanceRecord(player_id=2, side=Side.TEAM2),
        ),
    )

    assert trainer.train([]) is None
    assert trainer.train([draw]) is None


def test_build_examples_uses_side_average_difference() -> None:
    match = MatchFeatures(
        match_id=1,
        team1_won=True,
        is_draw=False,
        team1=(
            PlayerFeatures(player_id=1, faction=None, features=FeatureVector(elo=1400.0)),
            PlayerFeatures(player_id=2, faction=None, features=FeatureVector(elo=1200.0)),
        ),
        team2=(PlayerFeatures(player_id=3, faction=None, features=FeatureVector(elo=1250.0)),),
    )
    drawn = MatchFeatures(match_id=2, team1_won=False, is_draw=True, team1=match.team1, team2=match.team2)

    examples = build_examples([match, drawn])

    assert examples.size == 1
    assert examples.features[0, ELO_COLUMN] == pytest.approx(50.0)
    assert examples.labels.tolist() == [1.0]


def test_train_on_history_where_higher_rating_wins() -> None:
    history = []
    ratings_before: dict[tuple[int, int], float] = {}
    for match_id in range(1, 41):
        strong, weak = (1, 2) if match_id % 2 else (3, 4)
        team1_strong = match_id % 4 in (0, 1)
        team1, team2 = (strong, weak) if team1_strong else (weak, strong)
        ratings_before[(match_id, strong)] = 1500.0
        ratings_before[(match_id, weak)] = 1200.0
        history.append(
            MatchRecord(
                match_id=match_id,
                sequence=match_id,
                team1_won=team1_strong,
                appearances=(
                    AppearanceRecord(player_id=team1, side=Side.TEAM1),
                    AppearanceRecord(player_id=team2, side=Side.TEAM2),
                ),
            )
        )

    weights = ModelTrainer().train(history, ratings_before=ratings_before)

    assert isinstance(weights, ModelWeights)
    assert weights.games_trained_on == 40
    assert weights.accuracy == 100.0
    assert weights.weight("elo") > 0.0
