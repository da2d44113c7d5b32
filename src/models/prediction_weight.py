"""prediction_weights table model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, Index, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType


class PredictionWeight(Base):
    """One trained set of outcome-model weights; the newest row is the active model."""

    __tablename__ = "prediction_weights"
    __table_args__ = (Index("idx_prediction_weights_created", "created_at", "id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    weights: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    bias: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    games_trained_on: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)
    trained_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
