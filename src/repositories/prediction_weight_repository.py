"""Persistence helpers for trained prediction weights."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.prediction.weights import ModelWeights
from models import PredictionWeight


def current_weights(session: Session) -> ModelWeights | None:
    """Return the newest stored weight set, or None when nothing was trained yet."""
    row = session.execute(
        select(PredictionWeight)
        .order_by(PredictionWeight.created_at.desc(), PredictionWeight.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    if row is None:
        return None

    return ModelWeights(
        weights={str(key): float(value) for key, value in (row.weights or {}).items()},
        bias=float(row.bias),
        games_trained_on=int(row.games_trained_on),
        accuracy=row.accuracy,
        trained_at=row.trained_at,
    )


def insert_weights(session: Session, weights: ModelWeights) -> PredictionWeight:
    """Store a new weight set; it becomes the active model."""
    payload = weights.as_config_json()
    row = PredictionWeight(
        weights=payload["weights"],
        bias=payload["bias"],
        games_trained_on=payload["games_trained_on"],
        accuracy=payload["accuracy"],
        trained_at=weights.trained_at or datetime.now(UTC).replace(tzinfo=None),
    )
    session.add(row)
    session.flush()
    return row
