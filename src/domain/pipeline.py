"""Full recalculation pass, single-match fast path and the rebuild workflow."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from domain.common import MatchRecord, PlayerSeed
from domain.config import EngineConfig
from domain.prediction.features import FeatureExtractor, PlayerProfile
from domain.prediction.score import ScoreEngine
from domain.prediction.trainer import ModelTrainer
from domain.prediction.weights import ModelWeights
from domain.ratings.common import AppearanceSnapshot, snapshots_from_events
from domain.ratings.custom.calculator import (
    CustomRatingEngine,
    CustomRatingState,
    MatchPredictionSnapshot,
)
from domain.ratings.elo.calculator import EloEngine, EloState
from domain.ratings.glicko2.player_calculator import Glicko2Engine, Glicko2State
from domain.ratings.protocol import RatingEngine, RatingSystem

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10_000


@dataclass(frozen=True)
class MatchFailure:
    match_id: int
    system: RatingSystem
    message: str

    def __str__(self) -> str:
        return f"Match #{self.match_id}: {self.message}"


@dataclass(frozen=True)
class RatingState:
    """Per-player state of every rating system after a pass."""

    elo: Mapping[int, EloState] = field(default_factory=dict)
    custom: Mapping[int, CustomRatingState] = field(default_factory=dict)
    glicko2: Mapping[int, Glicko2State] = field(default_factory=dict)
    last_match_key: Mapping[int, tuple[Any, ...]] = field(default_factory=dict)
    processed_match_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class PlayerRatings:
    """Flattened rating fields of one player, ready to be stored."""

    player_id: int
    elo: float | None
    custom_rating: float | None
    custom_rating_games_played: int
    custom_rating_bonus_wins_remaining: int
    custom_rating_reached_high_watermark: bool
    glicko_rating: float | None
    glicko_deviation: float | None
    glicko_volatility: float | None


@dataclass(frozen=True)
class RecalculationResult:
    state: RatingState
    snapshots: tuple[AppearanceSnapshot, ...]
    predictions: Mapping[int, MatchPredictionSnapshot]
    processed_matches: int
    skipped_matches: int
    failures: tuple[MatchFailure, ...]

    def players(self) -> dict[int, PlayerRatings]:
        player_ids = (
            set(self.state.elo) | set(self.state.custom) | set(self.state.glicko2) | set(self.state.last_match_key)
        )
        players: dict[int, PlayerRatings] = {}
        for player_id in sorted(player_ids):
            elo = self.state.elo.get(player_id)
            custom = self.state.custom.get(player_id)
            glicko2 = self.state.glicko2.get(player_id)
            players[player_id] = PlayerRatings(
                player_id=player_id,
                elo=elo.rating if elo else None,
                custom_rating=custom.rating if custom else None,
                custom_rating_games_played=custom.games_played if custom else 0,
                custom_rating_bonus_wins_remaining=custom.bonus_wins_remaining if custom else 0,
                custom_rating_reached_high_watermark=custom.reached_high_watermark if custom else False,
                glicko_rating=glicko2.rating if glicko2 else None,
                glicko_deviation=glicko2.rd if glicko2 else None,
                glicko_volatility=glicko2.volatility if glicko2 else None,
            )
        return players

    def ratings_before(self, system: RatingSystem = RatingSystem.CUSTOM) -> dict[tuple[int, int], float]:
        return {
            (snapshot.match_id, snapshot.player_id): snapshot.rating_before_match
            for snapshot in self.snapshots
            if snapshot.system is system
        }

    def current_ratings(self) -> dict[int, float]:
        """Current custom rating of every player."""
        return {player_id: state.rating for player_id, state in self.state.custom.items()}


class RatingRecalculationPipeline:
    """Replays ordered history through Elo, custom rating and Glicko-2 engines."""

    def __init__(
        self,
        *,
        elo: EloEngine | None = None,
        custom: CustomRatingEngine | None = None,
        glicko2: Glicko2Engine | None = None,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self.elo = elo or EloEngine()
        self.custom = custom or CustomRatingEngine()
        self.glicko2 = glicko2 or Glicko2Engine()
        self.echo = echo
        self._last_match_key: dict[int, tuple[Any, ...]] = {}
        self._processed: set[int] = set()

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        *,
        echo: Callable[[str], None] | None = None,
    ) -> RatingRecalculationPipeline:
        return cls(
            elo=EloEngine(config.elo),
            custom=CustomRatingEngine(config.custom_rating),
            glicko2=Glicko2Engine(config.glicko2),
            echo=echo,
        )

    @property
    def engines(self) -> tuple[RatingEngine[Any], ...]:
        return (self.elo, self.custom, self.glicko2)

    def _echo(self, message: str) -> None:
        if self.echo is not None:
            self.echo(message)

    def state(self) -> RatingState:
        return RatingState(
            elo=MappingProxyType(self.elo.states()),
            custom=MappingProxyType(self.custom.states()),
            glicko2=MappingProxyType(self.glicko2.states()),
            last_match_key=MappingProxyType(dict(self._last_match_key)),
            processed_match_ids=frozenset(self._processed),
        )

    def load_state(self, state: RatingState) -> None:
        """Restore engines from a stored state, e.g. before using the fast path."""
        self.elo.load_states(state.elo)
        self.custom.load_states(state.custom)
        self.glicko2.load_states(state.glicko2)
        self._last_match_key = dict(state.last_match_key)
        self._processed = set(state.processed_match_ids)

    def _mark_processed(self, match: MatchRecord) -> None:
        self._processed.add(match.match_id)
        for player_id in match.player_ids():
            self._last_match_key[player_id] = match.chronological_key()

    def run(self, history: Sequence[MatchRecord], seeds: Iterable[PlayerSeed]) -> RecalculationResult:
        """Reset every engine from ``seeds`` and replay ``history`` in the given order."""
        seed_list = list(seeds)
        self._last_match_key = {}
        self._processed = set()

        snapshots: list[AppearanceSnapshot] = []
        failures: list[MatchFailure] = []
        failed_ids: set[int] = set()
        total = len(history)

        for engine in self.engines:
            engine.reset(seed_list)
            for index, match in enumerate(history, start=1):
                try:
                    events = engine.apply(match)
                except Exception as exc:
                    logger.warning("%s failed on match #%s: %s", engine.system.value, match.match_id, exc)
                    failures.append(MatchFailure(match_id=match.match_id, system=engine.system, message=str(exc)))
                    failed_ids.add(match.match_id)
                    continue
                snapshots.extend(snapshots_from_events(engine.system, events))

                if index % PROGRESS_EVERY == 0:
                    self._echo(f"system={engine.system.value} processed_matches={index}/{total}")

            self._echo(
                f"completed system={engine.system.value} "
                f"processed_matches={total} tracked_players={engine.tracked_entity_count()}"
            )

        processed = 0
        skipped = 0
        for match in history:
            if match.match_id in failed_ids:
                continue
            if not match.is_rateable():
                skipped += 1
                continue
            processed += 1
            self._mark_processed(match)

        return RecalculationResult(
            state=self.state(),
            snapshots=tuple(snapshots),
            predictions=MappingProxyType(self.custom.predictions()),
            processed_matches=processed,
            skipped_matches=skipped,
            failures=tuple(failures),
        )

    def can_apply_incrementally(self, match: MatchRecord) -> bool:
        """True when ``match`` orders after every processed match of each of its players.

        Keys are compared rather than positions, which go stale once an older match
        has been inserted into the history.
        """
        if match.match_id in self._processed:
            return False
        key = match.chronological_key()
        for player_id in match.player_ids():
            last = self._last_match_key.get(player_id)
            if last is not None and last >= key:
                return False
        return True

    def apply_latest_match(self, match: MatchRecord) -> RecalculationResult | None:
        """Apply one new match on top of the current state.

        Returns None, leaving every engine untouched, when the match cannot be applied
        incrementally; the caller then runs a full pass instead.
        """
        if not self.can_apply_incrementally(match):
            return None

        saved = self.state()
        snapshots: list[AppearanceSnapshot] = []
        for engine in self.engines:
            try:
                events = engine.apply(match)
            except Exception as exc:
                logger.warning("%s failed on match #%s: %s", engine.system.value, match.match_id, exc)
                self.load_state(saved)
                return RecalculationResult(
                    state=saved,
                    snapshots=(),
                    predictions=MappingProxyType({}),
                    processed_matches=0,
                    skipped_matches=0,
                    failures=(MatchFailure(match_id=match.match_id, system=engine.system, message=str(exc)),),
                )
            snapshots.extend(snapshots_from_events(engine.system, events))

        rateable = match.is_rateable()
        if rateable:
            self._mark_processed(match)
        prediction = self.custom.predictions().get(match.match_id)
        return RecalculationResult(
            state=self.state(),
            snapshots=tuple(snapshots),
            predictions=MappingProxyType({match.match_id: prediction} if prediction else {}),
            processed_matches=1 if rateable else 0,
            skipped_matches=0 if rateable else 1,
            failures=(),
        )


@dataclass(frozen=True)
class RebuildSummary:
    """Outcome of a full rebuild: ratings, the trained model and composite scores."""

    result: RecalculationResult
    weights: ModelWeights
    trained: bool
    profiles: Mapping[int, PlayerProfile]
    composite_scores: Mapping[int, float]


def rebuild_all(
    history: Sequence[MatchRecord],
    seeds: Iterable[PlayerSeed],
    *,
    config: EngineConfig | None = None,
    current_weights: ModelWeights | None = None,
    train: bool = True,
    echo: Callable[[str], None] | None = None,
) -> RebuildSummary:
    """Recalculate every rating system, retrain the model and rescore every player."""
    config = config or EngineConfig()
    pipeline = RatingRecalculationPipeline.from_config(config, echo=echo)
    result = pipeline.run(history, seeds)
    ratings_before = result.ratings_before(RatingSystem.CUSTOM)

    extractor = FeatureExtractor(config.features)
    weights = current_weights or ModelWeights.baseline()
    trained = False
    if train:
        trainer = ModelTrainer(config.training, extractor=extractor)
        new_weights = trainer.train(history, ratings_before=ratings_before)
        if new_weights is not None:
            weights = new_weights
            trained = True

    profiles = extractor.profiles(
        history,
        current_ratings=result.current_ratings(),
        ratings_before=ratings_before,
    )
    scores = ScoreEngine(weights, config.score).score_all(profiles)
    if echo is not None:
        echo(
            f"rebuild processed_matches={result.processed_matches} "
            f"skipped_matches={result.skipped_matches} failures={len(result.failures)} "
            f"trained={trained} scored_players={len(scores)}"
        )

    return RebuildSummary(
        result=result,
        weights=weights,
        trained=trained,
        profiles=MappingProxyType(profiles),
        composite_scores=MappingProxyType(scores),
    )


__all__ = [
    "MatchFailure",
    "PlayerRatings",
    "RatingRecalculationPipeline",
    "RatingState",
    "RebuildSummary",
    "RecalculationResult",
    "rebuild_all",
]
