"""Rating-system domain modules."""

from domain.ratings.common import AppearanceSnapshot, snapshots_from_events
from domain.ratings.protocol import RatingEngine, RatingSystem

__all__ = [
    "AppearanceSnapshot",
    "RatingEngine",
    "RatingSystem",
    "snapshots_from_events",
]
