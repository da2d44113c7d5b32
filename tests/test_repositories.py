"""Persistence round trips against an in-memory SQLite database."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

import pytest
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory, session_scope
from domain.pipeline import RatingRecalculationPipeline, rebuild_all
from domain.prediction.weights import ModelWeights
from models import Appearance, Match, Player
from repositories import (
    current_weights,
    ensure_schema,
    fetch_match_record,
    fetch_ordered_matches,
    fetch_player_seeds,
    fetch_rating_state,
    fetch_ratings_before,
    insert_weights,
    persist_incremental,
    persist_rebuild,
)


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_db_engine("sqlite://")
    ensure_schema(engine)
    yield create_session_factory(engine)
    engine.dispose()


def _add_match(
    session: Session,
    *,
    major_version: int,
    row_order: int,
    team1: tuple[int, ...],
    team2: tuple[int, ...],
    team1_won: bool = True,
) -> Match:
    match = Match(
        major_version=major_version,
        build_version=0,
        row_order=row_order,
        played_at=datetime(2025, 1, 1),
        team1_won=team1_won,
        seconds=1200.0,
    )
    for side, player_ids in ((1, team1), (2, team2)):
        for player_id in player_ids:
            match.appearances.append(
                Appearance(
                    player_id=player_id,
                    side=side,
                    faction="Gondor" if side == 1 else "Mordor",
                    hero_kills=2,
                    unit_kills=25,
                    hero_death_times=[None, 800.0],
                )
            )
    session.add(match)
    session.flush()
    return match


def _seed_database(factory: sessionmaker[Session]) -> dict[str, int]:
    with session_scope(factory) as session:
        for player_id, nickname in enumerate(("aragorn", "boromir", "gothmog", "witchking"), start=1):
            session.add(Player(id=player_id, nickname=nickname, custom_rating_seed=1300.0))
        session.add(Player(id=5, nickname="elendil", custom_rating_seed=1500.0, elo_rating_seed=1600.0))
        session.flush()
        late = _add_match(session, major_version=2, row_order=1, team1=(1, 3), team2=(2, 4))
        early = _add_match(session, major_version=1, row_order=2, team1=(1, 2), team2=(3, 4))
        middle = _add_match(session, major_version=1, row_order=5, team1=(1, 4), team2=(2, 3), team1_won=False)
        return {"early": early.id, "middle": middle.id, "late": late.id}


def test_history_is_loaded_in_chronological_order(session_factory: sessionmaker[Session]) -> None:
    ids = _seed_database(session_factory)

    with session_scope(session_factory) as session:
        history = fetch_ordered_matches(session)
        seeds = fetch_player_seeds(session)

    assert [match.match_id for match in history] == [ids["early"], ids["middle"], ids["late"]]
    assert [match.sequence for match in history] == [1, 2, 3]
    first = history[0]
    assert len(first.appearances) == 4
    assert first.appearances[0].hero_death_times == (None, 800.0)
    assert first.duration_seconds == 1200.0
    assert {seed.player_id for seed in seeds} == {1, 2, 3, 4, 5}
    assert next(seed for seed in seeds if seed.player_id == 5).elo_seed == 1600.0


def test_rebuild_is_persisted_and_state_reloads(session_factory: sessionmaker[Session]) -> None:
    ids = _seed_database(session_factory)

    with session_scope(session_factory) as session:
        summary = rebuild_all(fetch_ordered_matches(session), fetch_player_seeds(session))
        persist_rebuild(session, summary)
        insert_weights(session, summary.weights)

    with session_scope(session_factory) as session:
        state = fetch_rating_state(session)
        ratings_before = fetch_ratings_before(session)
        weights = current_weights(session)
        player = session.get(Player, 1)
        early = session.get(Match, ids["early"])
        assert player is not None and early is not None
        stored_score = player.ml_score
        predicted = early.predicted_team1_win_pct
        snapshot = session.execute(
            select(Appearance.elo_rating, Appearance.elo_rating_change).where(
                Appearance.match_id == ids["early"],
                Appearance.player_id == 1,
            )
        ).one()

    assert dict(state.custom) == dict(summary.result.state.custom)
    assert dict(state.glicko2) == dict(summary.result.state.glicko2)
    assert dict(state.elo) == dict(summary.result.state.elo)
    assert dict(state.last_match_key) == dict(summary.result.state.last_match_key)
    assert state.processed_match_ids == frozenset(ids.values())
    assert ratings_before == summary.result.ratings_before()
    assert stored_score == pytest.approx(summary.composite_scores[1])
    assert predicted == pytest.approx(50.0)
    assert (snapshot.elo_rating, snapshot.elo_rating_change) == (1500.0, 16.0)
    assert weights is not None
    assert weights.games_trained_on == summary.weights.games_trained_on
    assert dict(weights.weights) == pytest.approx(dict(summary.weights.as_config_json()["weights"]))


def test_fast_path_round_trip_matches_full_rebuild(session_factory: sessionmaker[Session]) -> None:
    _seed_database(session_factory)

    with session_scope(session_factory) as session:
        partial_history = fetch_ordered_matches(session)
        seeds = fetch_player_seeds(session)
        pipeline = RatingRecalculationPipeline()
        partial = pipeline.run(partial_history, seeds)
        summary = rebuild_all(partial_history, seeds, train=False)
        persist_rebuild(session, summary)

    with session_scope(session_factory) as session:
        newest = _add_match(session, major_version=3, row_order=1, team1=(2, 3), team2=(1, 4))
        newest_id = newest.id

    with session_scope(session_factory) as session:
        record = fetch_match_record(session, newest_id)
        assert record.sequence == 4
        incremental_pipeline = RatingRecalculationPipeline()
        incremental_pipeline.load_state(fetch_rating_state(session))
        result = incremental_pipeline.apply_latest_match(record)
        assert result is not None and not result.failures
        persist_incremental(session, result, player_ids=record.player_ids())

    with session_scope(session_factory) as session:
        stored = fetch_rating_state(session)
        full = RatingRecalculationPipeline().run(fetch_ordered_matches(session), fetch_player_seeds(session))

    assert dict(stored.custom) == dict(full.state.custom)
    assert dict(stored.glicko2) == dict(full.state.glicko2)
    assert partial.processed_matches == 3
    assert newest_id in stored.processed_match_ids


def _apply_stored(factory: sessionmaker[Session], match_id: int) -> bool:
    with session_scope(factory) as session:
        record = fetch_match_record(session, match_id)
        pipeline = RatingRecalculationPipeline()
        pipeline.load_state(fetch_rating_state(session))
        result = pipeline.apply_latest_match(record)
        if result is None:
            return False
        assert not result.failures
        persist_incremental(session, result, player_ids=record.player_ids())
        return True


def test_fast_path_after_two_back_dated_inserts(session_factory: sessionmaker[Session]) -> None:
    _seed_database(session_factory)
    with session_scope(session_factory) as session:
        session.add(Player(id=6, nickname="faramir", custom_rating_seed=1300.0))
        session.flush()
        persist_rebuild(session, rebuild_all(fetch_ordered_matches(session), fetch_player_seeds(session), train=False))

    with session_scope(session_factory) as session:
        first = _add_match(session, major_version=1, row_order=3, team1=(5,), team2=(6,)).id
    assert _apply_stored(session_factory, first) is True

    with session_scope(session_factory) as session:
        behind_later_match = _add_match(session, major_version=1, row_order=4, team1=(5,), team2=(1,)).id
        second = _add_match(session, major_version=1, row_order=4, team1=(6,), team2=(5,), team1_won=False).id
    assert _apply_stored(session_factory, behind_later_match) is False

    with session_scope(session_factory) as session:
        session.execute(delete(Appearance).where(Appearance.match_id == behind_later_match))
        session.execute(delete(Match).where(Match.id == behind_later_match))
    assert _apply_stored(session_factory, second) is True

    with session_scope(session_factory) as session:
        stored = fetch_rating_state(session)
        full = RatingRecalculationPipeline().run(fetch_ordered_matches(session), fetch_player_seeds(session))

    assert dict(stored.elo) == dict(full.state.elo)
    assert dict(stored.custom) == dict(full.state.custom)
    assert dict(stored.glicko2) == dict(full.state.glicko2)
    assert dict(stored.last_match_key) == dict(full.state.last_match_key)
    assert stored.processed_match_ids == full.state.processed_match_ids


def test_current_weights_returns_newest(session_factory: sessionmaker[Session]) -> None:
    with session_scope(session_factory) as session:
        assert current_weights(session) is None
        insert_weights(session, ModelWeights.baseline())
        insert_weights(session, ModelWeights(weights={"elo": 0.25}, bias=-0.5, games_trained_on=12, accuracy=61.5))

    with session_scope(session_factory) as session:
        weights = current_weights(session)

    assert weights is not None
    assert weights.weight("elo") == pytest.approx(0.25)
    assert weights.bias == pytest.approx(-0.5)
    assert weights.games_trained_on == 12
    assert weights.accuracy == pytest.approx(61.5)


def test_unknown_match_id_is_rejected(session_factory: sessionmaker[Session]) -> None:
    with session_scope(session_factory) as session:
        with pytest.raises(ValueError, match="match_id=404 does not exist"):
            fetch_match_record(session, 404)
