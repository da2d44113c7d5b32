"""players table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Player(Base):
    """A player with the current value of every rating system and its seeds."""

    __tablename__ = "players"
    __table_args__ = (
        CheckConstraint("custom_rating_games_played >= 0", name="ck_players_custom_rating_games"),
        CheckConstraint("custom_rating_bonus_wins >= 0", name="ck_players_custom_rating_bonus"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    nickname: Mapped[str] = mapped_column(String(128), nullable=False)

    elo_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    elo_rating_seed: Mapped[float | None] = mapped_column(Float, nullable=True)

    custom_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    custom_rating_seed: Mapped[float | None] = mapped_column(Float, nullable=True)
    custom_rating_games_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    custom_rating_bonus_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    custom_rating_reached_2000: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    glicko2_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    glicko2_rating_deviation: Mapped[float | None] = mapped_column(Float, nullable=True)
    glicko2_volatility: Mapped[float | None] = mapped_column(Float, nullable=True)
    glicko2_rating_seed: Mapped[float | None] = mapped_column(Float, nullable=True)
    glicko2_rating_deviation_seed: Mapped[float | None] = mapped_column(Float, nullable=True)
    glicko2_volatility_seed: Mapped[float | None] = mapped_column(Float, nullable=True)

    ml_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
