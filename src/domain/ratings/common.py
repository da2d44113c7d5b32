"""Shared result types for rating engines."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from domain.ratings.protocol import RatingSystem


@dataclass(frozen=True)
class AppearanceSnapshot:
    """Audit values written back onto one appearance by one rating system."""

    system: RatingSystem
    match_id: int
    player_id: int
    rating_before_match: float
    rating_change: float


def snapshots_from_events(system: RatingSystem, events: Sequence[Any]) -> list[AppearanceSnapshot]:
    """Project engine events onto the per-appearance snapshot fields."""
    return [
        AppearanceSnapshot(
            system=system,
            match_id=event.match_id,
            player_id=event.player_id,
            rating_before_match=event.rating_before_match,
            rating_change=event.rating_change,
        )
        for event in events
    ]


__all__ = ["AppearanceSnapshot", "snapshots_from_events"]
