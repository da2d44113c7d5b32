"""Load match history and player seeds in the canonical chronological order."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from domain.common import AppearanceRecord, MatchRecord, PlayerSeed, Side
from models import Appearance, Match, Player


def chronological_order() -> tuple[Any, ...]:
    """Order-by clauses of the total match order: game version, manual order, map version, time, id."""
    return (
        func.coalesce(Match.major_version, 0),
        func.coalesce(Match.build_version, 0),
        func.coalesce(Match.row_order, 0),
        func.coalesce(Match.map_version, ""),
        func.coalesce(Match.played_at, Match.created_at),
        Match.id,
    )


def match_order_key(match: Match) -> tuple[Any, ...]:
    """The values ``chronological_order`` sorts by, read off a loaded match."""
    return (
        match.major_version or 0,
        match.build_version or 0,
        match.row_order or 0,
        match.map_version or "",
        match.played_at or match.created_at,
        match.id,
    )


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def _optional_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def to_appearance_record(appearance: Appearance) -> AppearanceRecord:
    try:
        side = Side(appearance.side)
    except ValueError as exc:
        raise ValueError(f"appearance_id={appearance.id} has invalid side={appearance.side!r}") from exc

    return AppearanceRecord(
        player_id=appearance.player_id,
        side=side,
        faction=appearance.faction,
        hero_kills=_optional_int(appearance.hero_kills),
        unit_kills=_optional_int(appearance.unit_kills),
        castles_razed=_optional_int(appearance.castles_razed),
        main_bases_destroyed=_optional_int(appearance.main_base_destroyed),
        team_heal=_optional_float(appearance.team_heal),
        hero_death_times=tuple(_optional_float(value) for value in appearance.hero_death_times or ()),
        base_death_times=tuple(_optional_float(value) for value in appearance.base_death_times or ()),
        is_early_leaver=bool(appearance.is_early_leaver),
    )


def to_match_record(match: Match, *, sequence: int) -> MatchRecord:
    return MatchRecord(
        match_id=match.id,
        sequence=sequence,
        team1_won=bool(match.team1_won),
        appearances=tuple(to_appearance_record(appearance) for appearance in match.appearances),
        is_draw=bool(match.is_draw),
        ignored=bool(match.ignored),
        duration_seconds=_optional_float(match.seconds),
        order_key=match_order_key(match),
    )


def fetch_ordered_matches(session: Session) -> list[MatchRecord]:
    """Fetch every match with its appearances; ``sequence`` is the 1-based chronological position."""
    statement = select(Match).options(selectinload(Match.appearances)).order_by(*chronological_order())
    matches = session.execute(statement).scalars().all()
    return [to_match_record(match, sequence=index) for index, match in enumerate(matches, start=1)]


def fetch_match_record(session: Session, match_id: int) -> MatchRecord:
    """Fetch one match with the same ``sequence`` it would get in a full history load."""
    ordered_ids = session.execute(select(Match.id).order_by(*chronological_order())).scalars().all()
    try:
        sequence = ordered_ids.index(match_id) + 1
    except ValueError as exc:
        raise ValueError(f"match_id={match_id} does not exist") from exc

    match = session.execute(
        select(Match).options(selectinload(Match.appearances)).where(Match.id == match_id)
    ).scalar_one()
    return to_match_record(match, sequence=sequence)


def fetch_player_seeds(session: Session) -> list[PlayerSeed]:
    rows = session.execute(
        select(
            Player.id,
            Player.elo_rating_seed,
            Player.custom_rating_seed,
            Player.glicko2_rating_seed,
            Player.glicko2_rating_deviation_seed,
            Player.glicko2_volatility_seed,
        ).order_by(Player.id)
    ).all()
    return [
        PlayerSeed(
            player_id=row.id,
            elo_seed=_optional_float(row.elo_rating_seed),
            custom_rating_seed=_optional_float(row.custom_rating_seed),
            glicko_rating=_optional_float(row.glicko2_rating_seed),
            glicko_deviation=_optional_float(row.glicko2_rating_deviation_seed),
            glicko_volatility=_optional_float(row.glicko2_volatility_seed),
        )
        for row in rows
    ]


def fetch_player_names(session: Session, player_ids: list[int] | None = None) -> dict[int, str]:
    statement = select(Player.id, Player.nickname)
    if player_ids is not None:
        statement = statement.where(Player.id.in_(player_ids))
    return {row.id: row.nickname for row in session.execute(statement).all()}
