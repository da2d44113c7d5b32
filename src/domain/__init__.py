"""Rating and outcome-prediction domain modules."""

from domain.common import AppearanceRecord, MatchRecord, PlayerSeed, Side, TeamPair

__all__ = ["AppearanceRecord", "MatchRecord", "PlayerSeed", "Side", "TeamPair"]
