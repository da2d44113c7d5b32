"""Tests for the full recalculation pass, the fast path and the rebuild workflow."""

from __future__ import annotations

from dataclasses import replace

import pytest

from domain.common import AppearanceRecord, MatchRecord, PlayerSeed, Side
from domain.config import EngineConfig
from domain.pipeline import RatingRecalculationPipeline, rebuild_all
from domain.prediction.weights import ModelWeights
from domain.ratings.protocol import RatingSystem


def _match(
    match_id: int,
    *,
    team1: tuple[int | None, ...],
    team2: tuple[int | None, ...],
    team1_won: bool = True,
    sequence: int | None = None,
) -> MatchRecord:
    return MatchRecord(
        match_id=match_id,
        sequence=sequence if sequence is not None else match_id,
        team1_won=team1_won,
        duration_seconds=900.0,
        appearances=tuple(
            AppearanceRecord(player_id=p, side=Side.TEAM1, hero_kills=2, unit_kills=40, hero_death_times=(None,))
            for p in team1
        )
        + tuple(
            AppearanceRecord(player_id=p, side=Side.TEAM2, hero_kills=1, unit_kills=30, hero_death_times=(450.0,))
            for p in team2
        ),
    )


def _history() -> list[MatchRecord]:
    return [
        _match(1, team1=(1, 2), team2=(3, 4)),
        _match(2, team1=(1, 3), team2=(2, 4), team1_won=False),
        _match(3, team1=(1, 4), team2=(2, 3)),
        _match(4, team1=(2, 3), team2=(1, 4), team1_won=False),
        _match(5, team1=(1, 2), team2=(3, None)),
    ]


def _seeds() -> list[PlayerSeed]:
    return [PlayerSeed(player_id=p) for p in range(1, 5)]


def test_run_replays_every_system_and_records_snapshots() -> None:
    result = RatingRecalculationPipeline().run(_history(), _seeds())

    assert result.processed_matches == 5
    assert result.skipped_matches == 0
    assert result.failures == ()
    systems = {snapshot.system for snapshot in result.snapshots}
    assert systems == {RatingSystem.ELO, RatingSystem.CUSTOM, RatingSystem.GLICKO2}
    assert set(result.predictions) == {1, 2, 3, 4, 5}
    assert dict(result.state.last_match_key) == {1: (5, 5), 2: (5, 5), 3: (5, 5), 4: (4, 4)}
    assert result.state.processed_match_ids == frozenset({1, 2, 3, 4, 5})


def test_ratings_before_matches_engine_pre_match_values() -> None:
    result = RatingRecalculationPipeline().run(_history(), _seeds())
    before = result.ratings_before(RatingSystem.CUSTOM)

    assert before[(1, 1)] == 1300.0
    assert before[(2, 1)] == pytest.approx(1340.0)


def test_run_is_idempotent() -> None:
    pipeline = RatingRecalculationPipeline()
    first = pipeline.run(_history(), _seeds())
    second = pipeline.run(_history(), _seeds())

    assert dict(first.state.custom) == dict(second.state.custom)
    assert dict(first.state.glicko2) == dict(second.state.glicko2)
    assert dict(first.state.elo) == dict(second.state.elo)


def test_failing_match_is_recorded_and_others_continue() -> None:
    history = _history()
    broken = _match(3, team1=(1, 2), team2=(2, 3))
    history[2] = broken

    result = RatingRecalculationPipeline().run(history, _seeds())

    assert {failure.system for failure in result.failures} == set(RatingSystem)
    assert all(failure.match_id == 3 for failure in result.failures)
    assert str(result.failures[0]).startswith("Match #3: ")
    assert result.processed_matches == 4
    assert 3 not in result.state.processed_match_ids


def test_ignored_match_is_skipped() -> None:
    history = _history()
    ignored = history[1]
    history[1] = MatchRecord(
        match_id=ignored.match_id,
        sequence=ignored.sequence,
        team1_won=ignored.team1_won,
        appearances=ignored.appearances,
        ignored=True,
    )

    result = RatingRecalculationPipeline().run(history, _seeds())

    assert result.skipped_matches == 1
    assert 2 not in result.predictions


def test_fast_path_equals_full_pass() -> None:
    history = _history()
    full = RatingRecalculationPipeline().run(history, _seeds())

    pipeline = RatingRecalculationPipeline()
    pipeline.run(history[:-1], _seeds())
    incremental = pipeline.apply_latest_match(history[-1])

    assert incremental is not None
    assert incremental.failures == ()
    assert dict(incremental.state.elo) == dict(full.state.elo)
    assert dict(incremental.state.custom) == dict(full.state.custom)
    assert dict(incremental.state.glicko2) == dict(full.state.glicko2)
    assert dict(incremental.state.last_match_key) == dict(full.state.last_match_key)
    assert set(incremental.predictions) == {5}


def test_fast_path_from_loaded_state() -> None:
    history = _history()
    full = RatingRecalculationPipeline().run(history, _seeds())
    partial = RatingRecalculationPipeline().run(history[:-1], _seeds())

    pipeline = RatingRecalculationPipeline()
    pipeline.load_state(partial.state)
    incremental = pipeline.apply_latest_match(history[-1])

    assert incremental is not None
    assert dict(incremental.state.custom) == dict(full.state.custom)


def test_fast_path_refuses_processed_or_out_of_order_matches() -> None:
    history = _history()
    pipeline = RatingRecalculationPipeline()
    pipeline.run(history, _seeds())
    before = pipeline.state()

    assert pipeline.apply_latest_match(history[-1]) is None
    late = _match(6, team1=(1,), team2=(2,), sequence=3)
    assert pipeline.can_apply_incrementally(late) is False
    assert pipeline.apply_latest_match(late) is None
    assert dict(pipeline.state().custom) == dict(before.custom)


def test_fast_path_compares_order_keys_after_back_dated_inserts() -> None:
    # Sequences stay as first assigned; only the order keys put the inserts before B.
    a = replace(_match(1, team1=(1,), team2=(2,), sequence=1), order_key=(1, 1))
    b = replace(_match(2, team1=(3,), team2=(4,), sequence=2), order_key=(3, 2))
    n = replace(_match(3, team1=(1,), team2=(2,), sequence=2), order_key=(2, 3))
    after_b_player = replace(_match(4, team1=(3,), team2=(5,), sequence=3), order_key=(2, 4))
    unrelated = replace(_match(5, team1=(1,), team2=(5,), sequence=3), order_key=(2, 5))

    pipeline = RatingRecalculationPipeline()
    pipeline.run([a, b], _seeds())

    assert pipeline.apply_latest_match(n) is not None
    assert pipeline.can_apply_incrementally(after_b_player) is False
    assert pipeline.apply_latest_match(after_b_player) is None
    incremental = pipeline.apply_latest_match(unrelated)
    assert incremental is not None and not incremental.failures

    full = RatingRecalculationPipeline().run([a, n, unrelated, b], _seeds())
    assert dict(incremental.state.elo) == dict(full.state.elo)
    assert dict(incremental.state.custom) == dict(full.state.custom)
    assert dict(incremental.state.glicko2) == dict(full.state.glicko2)
    assert dict(incremental.state.last_match_key) == dict(full.state.last_match_key)


def test_fast_path_failure_restores_state() -> None:
    pipeline = RatingRecalculationPipeline()
    pipeline.run(_history(), _seeds())
    before = pipeline.state()

    result = pipeline.apply_latest_match(_match(6, team1=(1, 2), team2=(2,)))

    assert result is not None
    assert len(result.failures) == 1
    assert str(result.failures[0]).startswith("Match #6: ")
    assert pipeline.state() == before


def test_echo_reports_completion_per_system() -> None:
    messages: list[str] = []
    RatingRecalculationPipeline(echo=messages.append).run(_history(), _seeds())

    completed = [message for message in messages if message.startswith("completed")]
    assert len(completed) == 3
    assert "system=custom_rating" in completed[1]


def test_rebuild_all_trains_and_scores_every_player() -> None:
    summary = rebuild_all(_history(), _seeds(), config=EngineConfig())

    assert summary.trained is True
    assert summary.weights.games_trained_on == 5
    assert set(summary.composite_scores) == {1, 2, 3, 4}
    assert all(0.0 <= score <= 100.0 for score in summary.composite_scores.values())
    assert summary.profiles[1].games_played == 5


def test_rebuild_all_without_training_keeps_current_weights() -> None:
    current = ModelWeights(weights={"elo": 0.5}, bias=0.1)
    summary = rebuild_all(_history(), _seeds(), current_weights=current, train=False)

    assert summary.trained is False
    assert summary.weights is current
