"""matches and appearances table models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, JSONType


class Match(Base):
    """One played match plus the columns that define the chronological order."""

    __tablename__ = "matches"
    __table_args__ = (
        Index(
            "idx_matches_chronological",
            "major_version",
            "build_version",
            "row_order",
            "map_version",
            "played_at",
            "id",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    replay_id: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)
    major_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    build_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    row_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    map_version: Mapped[str | None] = mapped_column(String(64), nullable=True)
    played_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    team1_won: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_draw: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ignored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    predicted_team1_win_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    appearances: Mapped[list[Appearance]] = relationship(
        back_populates="match",
        order_by="Appearance.id",
        cascade="all, delete-orphan",
    )


class Appearance(Base):
    """One player's participation in one match, with per-system rating snapshots."""

    __tablename__ = "appearances"
    __table_args__ = (
        UniqueConstraint("match_id", "player_id", name="uq_appearances_match_player"),
        CheckConstraint("side IN (1, 2)", name="ck_appearances_side"),
        Index("idx_appearances_match", "match_id"),
        Index("idx_appearances_player", "player_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), nullable=False)
    player_id: Mapped[int | None] = mapped_column(ForeignKey("players.id"), nullable=True)
    side: Mapped[int] = mapped_column(Integer, nullable=False)
    faction: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hero_kills: Mapped[int | None] = mapped_column(Integer, nullable=True)
    unit_kills: Mapped[int | None] = mapped_column(Integer, nullable=True)
    castles_razed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    main_base_destroyed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_heal: Mapped[float | None] = mapped_column(Float, nullable=True)
    hero_death_times: Mapped[list[Any] | None] = mapped_column(JSONType, nullable=True)
    base_death_times: Mapped[list[Any] | None] = mapped_column(JSONType, nullable=True)
    is_early_leaver: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    elo_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    elo_rating_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    custom_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    custom_rating_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    glicko2_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    glicko2_rating_change: Mapped[float | None] = mapped_column(Float, nullable=True)

    match: Mapped[Match] = relationship(back_populates="appearances")
