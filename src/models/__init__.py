"""ORM models."""

from models.base import Base
from models.match import Appearance, Match
from models.player import Player
from models.prediction_weight import PredictionWeight

__all__ = [
    "Appearance",
    "Base",
    "Match",
    "Player",
    "PredictionWeight",
]
