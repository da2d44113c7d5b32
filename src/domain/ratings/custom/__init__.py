"""Custom (team-blended, variable-K) rating modules."""

from domain.ratings.custom.calculator import (
    CustomRatingEngine,
    CustomRatingParameters,
    CustomRatingState,
    MatchPredictionSnapshot,
    PlayerCustomRatingEvent,
    bonus_wins_for_seed,
    select_k_factor,
)

__all__ = [
    "CustomRatingEngine",
    "CustomRatingParameters",
    "CustomRatingState",
    "MatchPredictionSnapshot",
    "PlayerCustomRatingEvent",
    "bonus_wins_for_seed",
    "select_k_factor",
]
