"""Shared protocols and enums for rating engines."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Protocol, TypeVar, runtime_checkable

from domain.common import MatchRecord, PlayerSeed


class RatingSystem(str, Enum):
    """Rating systems replayed by a recalculation pass, in replay order."""

    ELO = "elo"
    CUSTOM = "custom_rating"
    GLICKO2 = "glicko2"


E = TypeVar("E")


@runtime_checkable
class RatingEngine(Protocol[E]):
    """Contract every rating engine satisfies."""

    system: RatingSystem

    def reset(self, seeds: Iterable[PlayerSeed]) -> None: ...

    def load_states(self, states: Mapping[int, Any]) -> None: ...

    def states(self) -> dict[int, Any]: ...

    def apply(self, match: MatchRecord) -> list[E]: ...

    def tracked_entity_count(self) -> int: ...


__all__ = ["RatingEngine", "RatingSystem"]
