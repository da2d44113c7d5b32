"""Shared helpers for player-level rating engines (validation, side averages, outcome)."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from domain.common import AppearanceRecord, MatchRecord, Side


class PlayerCalculatorMixin:
    """Mixin providing shared match validation, side averaging and outcome extraction.

    Subclasses implement algorithm-specific pre-match snapshots, updates and events.
    """

    def _validate_match(self, match: MatchRecord) -> None:
        seen: set[int] = set()
        for appearance in match.appearances:
            if not isinstance(appearance.side, Side):
                raise ValueError(
                    f"match_id={match.match_id} has an appearance on unknown side {appearance.side!r}"
                )
            if appearance.player_id is None:
                continue
            if appearance.player_id in seen:
                raise ValueError(
                    f"match_id={match.match_id} lists player_id={appearance.player_id} more than once"
                )
            seen.add(appearance.player_id)

    @staticmethod
    def _average_rating(
        appearances: Iterable[AppearanceRecord],
        rating_of: Callable[[int], float],
    ) -> float | None:
        """Mean rating of the rated appearances, or None when nobody on the side is rated."""
        ratings = [rating_of(a.player_id) for a in appearances if a.player_id is not None]
        if not ratings:
            return None
        return sum(ratings) / float(len(ratings))

    @staticmethod
    def _actual_score(match: MatchRecord, side: Side) -> float:
        """Return 1.0 when ``side`` won, 0.5 for a draw and 0.0 otherwise."""
        winner = match.winning_side
        if winner is None:
            return 0.5
        return 1.0 if winner is side else 0.0
