"""Read-only lobby prediction and balancing."""

from domain.lobby.balancer import BalanceResult, LobbyBalancer, Swap
from domain.lobby.common import FACTION_IMPACT_WEIGHTS, Lobby, LobbyParameters, LobbySlot
from domain.lobby.predictor import LobbyPrediction, LobbyPredictor, TeamBreakdown

__all__ = [
    "BalanceResult",
    "FACTION_IMPACT_WEIGHTS",
    "Lobby",
    "LobbyBalancer",
    "LobbyParameters",
    "LobbyPrediction",
    "LobbyPredictor",
    "LobbySlot",
    "Swap",
    "TeamBreakdown",
]
