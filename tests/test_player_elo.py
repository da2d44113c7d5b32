"""Unit tests for player-level Elo calculations."""

from __future__ import annotations

import pytest

from domain.common import AppearanceRecord, MatchRecord, PlayerSeed, Side
from domain.ratings.elo.calculator import EloEngine, EloParameters, calculate_expected_score


def _match(
    match_id: int,
    *,
    team1: tuple[int | None, ...],
    team2: tuple[int | None, ...],
    team1_won: bool = True,
    is_draw: bool = False,
) -> MatchRecord:
    return MatchRecord(
        match_id=match_id,
        sequence=match_id,
        team1_won=team1_won,
        is_draw=is_draw,
        appearances=tuple(AppearanceRecord(player_id=p, side=Side.TEAM1) for p in team1)
        + tuple(AppearanceRecord(player_id=p, side=Side.TEAM2) for p in team2),
    )


def test_equal_five_a_side_moves_everyone_by_sixteen() -> None:
    engine = EloEngine()
    events = engine.apply(_match(1, team1=(1, 2, 3, 4, 5), team2=(6, 7, 8, 9, 10)))

    assert len(events) == 10
    for event in events:
        assert event.expected_score == pytest.approx(0.5)
        assert event.rating_before_match == pytest.approx(1500.0)
        if event.side is Side.TEAM1:
            assert event.rating_change == 16.0
        else:
            assert event.rating_change == -16.0
    assert engine.get_rating(1) == 1516.0
    assert engine.get_rating(6) == 1484.0


def test_expected_score_uses_opponent_side_average() -> None:
    engine = EloEngine()
    engine.reset([PlayerSeed(player_id=1, elo_seed=1600.0), PlayerSeed(player_id=2, elo_seed=1400.0)])
    events = engine.apply(_match(1, team1=(1,), team2=(2,)))

    by_player = {event.player_id: event for event in events}
    assert by_player[1].opponent_average == pytest.approx(1400.0)
    assert by_player[1].expected_score == pytest.approx(
        calculate_expected_score(rating=1600.0, opponent_rating=1400.0, scale_factor=400.0)
    )
    # 32 * (1 - 0.7597) = 7.69
    assert by_player[1].rating_change == 8.0
    assert by_player[2].rating_change == -8.0


def test_changes_are_computed_from_pre_match_snapshot() -> None:
    engine = EloEngine()
    engine.reset([PlayerSeed(player_id=p, elo_seed=1500.0 + 10.0 * p) for p in range(1, 5)])
    before = engine.ratings()
    events = engine.apply(_match(1, team1=(1, 2), team2=(3, 4)))

    for event in events:
        assert event.rating_before_match == before[event.player_id]
    team2_average = (before[3] + before[4]) / 2.0
    assert all(event.opponent_average == team2_average for event in events if event.side is Side.TEAM1)


def test_draw_leaves_ratings_unchanged() -> None:
    engine = EloEngine()
    events = engine.apply(_match(1, team1=(1,), team2=(2,), is_draw=True))

    assert [event.rating_change for event in events] == [0.0, 0.0]
    assert all(event.actual_score == 0.5 for event in events)


def test_unrated_players_are_ignored_in_averages() -> None:
    engine = EloEngine()
    engine.reset([PlayerSeed(player_id=1, elo_seed=1700.0), PlayerSeed(player_id=2, elo_seed=1500.0)])
    events = engine.apply(_match(1, team1=(1, None), team2=(2, None)))

    assert {event.player_id for event in events} == {1, 2}
    by_player = {event.player_id: event for event in events}
    assert by_player[2].opponent_average == pytest.approx(1700.0)


def test_side_with_only_unrated_players_is_not_updated() -> None:
    engine = EloEngine()
    events = engine.apply(_match(1, team1=(1,), team2=(None,)))

    assert events == []
    assert engine.get_rating(1) == 1500.0


def test_ignored_or_one_sided_matches_are_skipped() -> None:
    engine = EloEngine()
    ignored = MatchRecord(
        match_id=1,
        sequence=1,
        team1_won=True,
        ignored=True,
        appearances=(
            AppearanceRecord(player_id=1, side=Side.TEAM1),
            AppearanceRecord(player_id=2, side=Side.TEAM2),
        ),
    )
    one_sided = _match(2, team1=(1, 2), team2=())

    assert engine.apply(ignored) == []
    assert engine.apply(one_sided) == []
    assert engine.tracked_entity_count() == 0


def test_duplicate_player_in_match_is_rejected() -> None:
    engine = EloEngine()
    with pytest.raises(ValueError, match="player_id=1 more than once"):
        engine.apply(_match(7, team1=(1,), team2=(1,)))


def test_replay_is_deterministic_and_order_dependent() -> None:
    history = [
        _match(1, team1=(1, 2), team2=(3, 4), team1_won=True),
        _match(2, team1=(1, 3), team2=(2, 4), team1_won=False),
        _match(3, team1=(2, 3), team2=(1, 4), team1_won=True),
    ]
    seeds = [PlayerSeed(player_id=p) for p in range(1, 5)]

    def replay(matches: list[MatchRecord]) -> dict[int, float]:
        engine = EloEngine(EloParameters(k_factor=32.0))
        engine.reset(seeds)
        for match in matches:
            engine.apply(match)
        return engine.ratings()

    assert replay(history) == replay(history)
    assert replay(history) != replay(list(reversed(history)))


def test_reset_restores_seeds() -> None:
    engine = EloEngine()
    seeds = [PlayerSeed(player_id=1, elo_seed=1650.0), PlayerSeed(player_id=2)]
    engine.reset(seeds)
    engine.apply(_match(1, team1=(1,), team2=(2,)))
    engine.reset(seeds)

    assert engine.ratings() == {1: 1650.0, 2: 1500.0}
