"""Read and write per-player rating state and per-appearance snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from domain.pipeline import RatingState, RebuildSummary, RecalculationResult
from domain.ratings.common import AppearanceSnapshot
from domain.ratings.custom.calculator import CustomRatingState, MatchPredictionSnapshot
from domain.ratings.elo.calculator import EloState
from domain.ratings.glicko2.player_calculator import Glicko2State
from domain.ratings.protocol import RatingSystem
from models import Appearance, Base, Match, Player, PredictionWeight
from repositories.match_repository import match_order_key

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS: dict[RatingSystem, tuple[str, str]] = {
    RatingSystem.ELO: ("elo_rating", "elo_rating_change"),
    RatingSystem.CUSTOM: ("custom_rating", "custom_rating_change"),
    RatingSystem.GLICKO2: ("glicko2_rating", "glicko2_rating_change"),
}


def ensure_schema(engine: Engine) -> None:
    """Create every table and index if they do not exist."""
    Base.metadata.create_all(
        bind=engine,
        tables=[
            Player.__table__,
            Match.__table__,
            Appearance.__table__,
            PredictionWeight.__table__,
        ],
    )


def fetch_rating_state(session: Session) -> RatingState:
    """Rebuild the engine state stored on players, for the single-match fast path."""
    players = session.execute(select(Player).order_by(Player.id)).scalars().all()

    elo: dict[int, EloState] = {}
    custom: dict[int, CustomRatingState] = {}
    glicko2: dict[int, Glicko2State] = {}
    for player in players:
        if player.elo_rating is not None:
            elo[player.id] = EloState(rating=player.elo_rating)
        if player.custom_rating is not None:
            custom[player.id] = CustomRatingState(
                rating=player.custom_rating,
                games_played=player.custom_rating_games_played,
                bonus_wins_remaining=player.custom_rating_bonus_wins,
                reached_high_watermark=player.custom_rating_reached_2000,
            )
        if (
            player.glicko2_rating is not None
            and player.glicko2_rating_deviation is not None
            and player.glicko2_volatility is not None
        ):
            glicko2[player.id] = Glicko2State(
                rating=player.glicko2_rating,
                rd=player.glicko2_rating_deviation,
                volatility=player.glicko2_volatility,
            )

    processed = frozenset(
        session.execute(
            select(Appearance.match_id).where(Appearance.custom_rating.is_not(None)).distinct()
        ).scalars()
    )
    rated = session.execute(
        select(Appearance.player_id, Match)
        .select_from(Appearance)
        .join(Match, Appearance.match_id == Match.id)
        .where(Appearance.custom_rating.is_not(None), Appearance.player_id.is_not(None))
    ).all()
    last_match_key: dict[int, tuple[Any, ...]] = {}
    for row in rated:
        key = match_order_key(row.Match)
        if row.player_id not in last_match_key or key > last_match_key[row.player_id]:
            last_match_key[row.player_id] = key
    return RatingState(
        elo=elo,
        custom=custom,
        glicko2=glicko2,
        last_match_key=last_match_key,
        processed_match_ids=processed,
    )


def update_players(
    session: Session,
    result: RecalculationResult,
    *,
    player_ids: Iterable[int] | None = None,
) -> int:
    """Write current rating state onto player rows; returns the number of rows updated."""
    players = result.players()
    if player_ids is not None:
        wanted = set(player_ids)
        players = {player_id: row for player_id, row in players.items() if player_id in wanted}
    if not players:
        return 0

    now = datetime.now(UTC).replace(tzinfo=None)
    payload = [
        {
            "id": row.player_id,
            "elo_rating": row.elo,
            "custom_rating": row.custom_rating,
            "custom_rating_games_played": row.custom_rating_games_played,
            "custom_rating_bonus_wins": row.custom_rating_bonus_wins_remaining,
            "custom_rating_reached_2000": row.custom_rating_reached_high_watermark,
            "glicko2_rating": row.glicko_rating,
            "glicko2_rating_deviation": row.glicko_deviation,
            "glicko2_volatility": row.glicko_volatility,
            "updated_at": now,
        }
        for row in players.values()
    ]
    session.execute(update(Player), payload)
    return len(payload)


def clear_snapshots(session: Session) -> None:
    """Null every appearance snapshot and match prediction before a full rewrite."""
    columns = {column: None for pair in SNAPSHOT_COLUMNS.values() for column in pair}
    session.execute(update(Appearance).values(**columns))
    session.execute(update(Match).values(predicted_team1_win_pct=None))


def write_snapshots(session: Session, snapshots: Sequence[AppearanceSnapshot]) -> int:
    """Write per-appearance rating-before/change values; returns the number of appearances touched."""
    if not snapshots:
        return 0

    match_ids = {snapshot.match_id for snapshot in snapshots}
    appearance_ids: dict[tuple[int, int], int] = {}
    for row in session.execute(
        select(Appearance.id, Appearance.match_id, Appearance.player_id).where(
            Appearance.match_id.in_(match_ids),
            Appearance.player_id.is_not(None),
        )
    ).all():
        appearance_ids[(row.match_id, row.player_id)] = row.id

    empty = {column: None for pair in SNAPSHOT_COLUMNS.values() for column in pair}
    rows: dict[int, dict[str, Any]] = {}
    for snapshot in snapshots:
        appearance_id = appearance_ids.get((snapshot.match_id, snapshot.player_id))
        if appearance_id is None:
            raise ValueError(
                f"match_id={snapshot.match_id} has no appearance for player_id={snapshot.player_id}"
            )
        row = rows.setdefault(appearance_id, {"id": appearance_id, **empty})
        before_column, change_column = SNAPSHOT_COLUMNS[snapshot.system]
        row[before_column] = snapshot.rating_before_match
        row[change_column] = snapshot.rating_change

    session.execute(update(Appearance), list(rows.values()))
    return len(rows)


def write_predictions(session: Session, predictions: Mapping[int, MatchPredictionSnapshot]) -> None:
    if not predictions:
        return
    payload = [
        {"id": match_id, "predicted_team1_win_pct": prediction.team1_win_pct}
        for match_id, prediction in predictions.items()
    ]
    session.execute(update(Match), payload)


def write_composite_scores(session: Session, scores: Mapping[int, float]) -> None:
    if not scores:
        return
    session.execute(update(Player), [{"id": player_id, "ml_score": score} for player_id, score in scores.items()])


def persist_rebuild(session: Session, summary: RebuildSummary) -> None:
    """Replace stored ratings, snapshots, predictions and composite scores with a full rebuild."""
    result = summary.result
    clear_snapshots(session)
    player_count = update_players(session, result)
    appearance_count = write_snapshots(session, result.snapshots)
    write_predictions(session, result.predictions)
    write_composite_scores(session, summary.composite_scores)
    logger.info(
        "stored rebuild players=%s appearances=%s predictions=%s scores=%s",
        player_count,
        appearance_count,
        len(result.predictions),
        len(summary.composite_scores),
    )


def persist_incremental(session: Session, result: RecalculationResult, *, player_ids: Iterable[int]) -> None:
    """Store the outcome of one fast-path match for the players that took part in it."""
    update_players(session, result, player_ids=player_ids)
    write_snapshots(session, result.snapshots)
    write_predictions(session, result.predictions)


def fetch_ratings_before(session: Session) -> dict[tuple[int, int], float]:
    """Stored pre-match custom rating of every rated appearance, keyed by (match_id, player_id)."""
    rows = session.execute(
        select(Appearance.match_id, Appearance.player_id, Appearance.custom_rating).where(
            Appearance.player_id.is_not(None),
            Appearance.custom_rating.is_not(None),
        )
    ).all()
    return {(row.match_id, row.player_id): float(row.custom_rating) for row in rows}
