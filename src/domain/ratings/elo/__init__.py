"""Elo rating modules."""

from domain.ratings.elo.calculator import (
    EloEngine,
    EloParameters,
    EloState,
    PlayerEloEvent,
    calculate_expected_score,
)

__all__ = [
    "EloEngine",
    "EloParameters",
    "EloState",
    "PlayerEloEvent",
    "calculate_expected_score",
]
