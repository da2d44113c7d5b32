"""Glicko-2 rating modules."""

from domain.ratings.glicko2.calculator import (
    GLICKO2_SCALE,
    Glicko2OpponentResult,
    Glicko2Parameters,
    VolatilityBracket,
    VolatilityProblem,
    calculate_expected_score,
    illinois_step,
    initial_bracket,
    solve_volatility,
    update_glicko2_player,
    volatility_objective,
)
from domain.ratings.glicko2.player_calculator import (
    CompositeOpponent,
    Glicko2Engine,
    Glicko2State,
    PlayerGlicko2Event,
    build_composite,
)

__all__ = [
    "GLICKO2_SCALE",
    "CompositeOpponent",
    "Glicko2Engine",
    "Glicko2OpponentResult",
    "Glicko2Parameters",
    "Glicko2State",
    "PlayerGlicko2Event",
    "VolatilityBracket",
    "VolatilityProblem",
    "build_composite",
    "calculate_expected_score",
    "illinois_step",
    "initial_bracket",
    "solve_volatility",
    "update_glicko2_player",
    "volatility_objective",
]
