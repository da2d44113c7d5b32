"""Tests for the confidence-shrunk composite score."""

from __future__ import annotations

from math import exp

import pytest

from domain.prediction.features import FeatureVector, PlayerProfile
from domain.prediction.score import ScoreEngine, ScoreParameters
from domain.prediction.weights import ModelWeights


def _profile(games_played: int, **features: float) -> PlayerProfile:
    return PlayerProfile(
        player_id=1,
        games_played=games_played,
        current_rating=features.get("elo", 1300.0),
        features=FeatureVector(**features),
    )


def test_player_without_games_scores_exactly_neutral() -> None:
    engine = ScoreEngine()
    assert engine.score(_profile(0, elo=1700.0, hero_kd=4.0)) == 50.0


def test_neutral_features_map_to_fifty() -> None:
    engine = ScoreEngine()
    assert engine.raw_score(FeatureVector().as_dict()) == pytest.approx(0.0)
    assert engine.score(_profile(200)) == pytest.approx(50.0)


def test_confidence_approaches_one_with_games() -> None:
    engine = ScoreEngine()
    profile = _profile(50, elo=1302.0)
    mapped = engine.mapped_score(profile.features.as_dict())

    assert engine.confidence(50) == pytest.approx(1.0 - exp(-5.0))
    assert abs(engine.score(profile) - mapped) <= 0.01 * abs(mapped - 50.0)


def test_score_orders_players_by_weighted_deviation() -> None:
    engine = ScoreEngine()
    strong = engine.score(_profile(20, elo=1301.0))
    weak = engine.score(_profile(20, elo=1299.0))

    assert 50.0 < strong < 100.0
    assert 0.0 < weak < 50.0
    assert strong - 50.0 == pytest.approx(50.0 - weak)


def test_trained_weights_and_scale_are_used() -> None:
    weights = ModelWeights(weights={"hero_kd": 2.0}, bias=0.0)
    engine = ScoreEngine(weights, ScoreParameters(raw_scale=1.0, confidence_games=1.0))
    profile = _profile(1000, hero_kd=2.0)

    # raw = 2.0 * (2.0 - 1.0)
    assert engine.raw_score(profile.features.as_dict()) == pytest.approx(2.0)
    assert engine.score(profile) == pytest.approx(100.0 / (1.0 + exp(-2.0)))


def test_score_all_covers_every_profile() -> None:
    engine = ScoreEngine()
    profiles = {
        1: _profile(0),
        2: PlayerProfile(player_id=2, games_played=5, current_rating=1300.0, features=FeatureVector()),
    }
    assert set(engine.score_all(profiles)) == {1, 2}
