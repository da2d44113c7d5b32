"""Neutral defaults shared by every engine component.

New-player ratings, neutral feature values and contribution caps are declared once
here. Calculators, the feature extractor, the score engine and the lobby components
all import these values instead of restating them.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

DEFAULT_ELO: Final[float] = 1500.0
DEFAULT_CUSTOM_RATING: Final[float] = 1300.0

DEFAULT_GLICKO2_RATING: Final[float] = 1500.0
DEFAULT_GLICKO2_DEVIATION: Final[float] = 350.0
DEFAULT_GLICKO2_VOLATILITY: Final[float] = 0.06

DEFAULT_TEAM_SIZE: Final[int] = 5

# Equal 1/teamSize share of a side's totals, in percent.
NEUTRAL_CONTRIBUTION_PCT: Final[float] = 100.0 / DEFAULT_TEAM_SIZE
NEUTRAL_HERO_KD: Final[float] = 1.0
NEUTRAL_HERO_UPTIME_PCT: Final[float] = 80.0
NEUTRAL_BASE_UPTIME_PCT: Final[float] = 80.0

HERO_KD_MIN: Final[float] = 0.1
HERO_KD_MAX: Final[float] = 10.0

HERO_KILL_CAP_PER_KILL_PCT: Final[float] = 10.0
CASTLE_RAZE_CAP_PER_RAZE_PCT: Final[float] = 20.0
MAIN_BASE_CAP_PER_DESTRUCTION_PCT: Final[float] = 20.0
TEAM_HEAL_CAP_PCT: Final[float] = 40.0

FEATURE_KEYS: Final[tuple[str, ...]] = (
    "hero_kd",
    "hero_kill_contribution",
    "unit_kill_contribution",
    "castle_raze_contribution",
    "main_base_contribution",
    "team_heal_contribution",
    "hero_uptime",
    "games_played",
    "elo",
    "enemy_elo_diff",
)

NEUTRAL_FEATURES: Final[Mapping[str, float]] = MappingProxyType(
    {
        "hero_kd": NEUTRAL_HERO_KD,
        "hero_kill_contribution": NEUTRAL_CONTRIBUTION_PCT,
        "unit_kill_contribution": NEUTRAL_CONTRIBUTION_PCT,
        "castle_raze_contribution": NEUTRAL_CONTRIBUTION_PCT,
        "main_base_contribution": NEUTRAL_CONTRIBUTION_PCT,
        "team_heal_contribution": NEUTRAL_CONTRIBUTION_PCT,
        "hero_uptime": NEUTRAL_HERO_UPTIME_PCT,
        "games_played": 0.0,
        "elo": DEFAULT_CUSTOM_RATING,
        "enemy_elo_diff": 0.0,
    }
)

BASELINE_WEIGHTS: Final[Mapping[str, float]] = MappingProxyType(
    {
        "hero_kd": 0.1,
        "hero_kill_contribution": 0.02,
        "unit_kill_contribution": 0.02,
        "castle_raze_contribution": 0.02,
        "main_base_contribution": 0.0,
        "team_heal_contribution": 0.0,
        "hero_uptime": 0.0,
        "games_played": 0.01,
        "elo": 1.0,
        "enemy_elo_diff": 0.0,
    }
)
BASELINE_BIAS: Final[float] = 0.0


__all__ = [
    "BASELINE_BIAS",
    "BASELINE_WEIGHTS",
    "CASTLE_RAZE_CAP_PER_RAZE_PCT",
    "DEFAULT_CUSTOM_RATING",
    "DEFAULT_ELO",
    "DEFAULT_GLICKO2_DEVIATION",
    "DEFAULT_GLICKO2_RATING",
    "DEFAULT_GLICKO2_VOLATILITY",
    "DEFAULT_TEAM_SIZE",
    "FEATURE_KEYS",
    "HERO_KD_MAX",
    "HERO_KD_MIN",
    "HERO_KILL_CAP_PER_KILL_PCT",
    "MAIN_BASE_CAP_PER_DESTRUCTION_PCT",
    "NEUTRAL_BASE_UPTIME_PCT",
    "NEUTRAL_CONTRIBUTION_PCT",
    "NEUTRAL_FEATURES",
    "NEUTRAL_HERO_KD",
    "NEUTRAL_HERO_UPTIME_PCT",
    "TEAM_HEAL_CAP_PCT",
]
