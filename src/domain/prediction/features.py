"""Per-player feature vectors built from strictly prior match history."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from math import log1p
from types import MappingProxyType

from domain.common import AppearanceRecord, MatchRecord, Side, TeamPair, clamp
from domain.defaults import (
    CASTLE_RAZE_CAP_PER_RAZE_PCT,
    DEFAULT_CUSTOM_RATING,
    FEATURE_KEYS,
    HERO_KD_MAX,
    HERO_KD_MIN,
    HERO_KILL_CAP_PER_KILL_PCT,
    MAIN_BASE_CAP_PER_DESTRUCTION_PCT,
    NEUTRAL_BASE_UPTIME_PCT,
    NEUTRAL_FEATURES,
    TEAM_HEAL_CAP_PCT,
)

logger = logging.getLogger(__name__)

# Keyed by (match_id, player_id).
RatingLookup = Mapping[tuple[int, int], float]


@dataclass(frozen=True)
class FeatureParameters:
    hero_kill_cap_per_kill: float = HERO_KILL_CAP_PER_KILL_PCT
    castle_raze_cap_per_raze: float = CASTLE_RAZE_CAP_PER_RAZE_PCT
    main_base_cap_per_destruction: float = MAIN_BASE_CAP_PER_DESTRUCTION_PCT
    team_heal_cap: float = TEAM_HEAL_CAP_PCT
    default_rating: float = DEFAULT_CUSTOM_RATING


@dataclass(frozen=True)
class FeatureVector:
    """Fixed set of named model inputs; every field defaults to its neutral value."""

    hero_kd: float = NEUTRAL_FEATURES["hero_kd"]
    hero_kill_contribution: float = NEUTRAL_FEATURES["hero_kill_contribution"]
    unit_kill_contribution: float = NEUTRAL_FEATURES["unit_kill_contribution"]
    castle_raze_contribution: float = NEUTRAL_FEATURES["castle_raze_contribution"]
    main_base_contribution: float = NEUTRAL_FEATURES["main_base_contribution"]
    team_heal_contribution: float = NEUTRAL_FEATURES["team_heal_contribution"]
    hero_uptime: float = NEUTRAL_FEATURES["hero_uptime"]
    games_played: float = NEUTRAL_FEATURES["games_played"]
    elo: float = NEUTRAL_FEATURES["elo"]
    enemy_elo_diff: float = NEUTRAL_FEATURES["enemy_elo_diff"]

    @classmethod
    def neutral(cls) -> FeatureVector:
        return cls()

    @classmethod
    def from_mapping(cls, values: Mapping[str, float]) -> FeatureVector:
        return cls(**{key: float(values[key]) for key in FEATURE_KEYS if key in values})

    def as_dict(self) -> dict[str, float]:
        return {key: getattr(self, key) for key in FEATURE_KEYS}

    def values(self) -> tuple[float, ...]:
        return tuple(getattr(self, key) for key in FEATURE_KEYS)


def average_features(vectors: Sequence[FeatureVector]) -> FeatureVector:
    if not vectors:
        raise ValueError("Cannot average an empty set of feature vectors")
    count = float(len(vectors))
    return FeatureVector(
        **{key: sum(getattr(vector, key) for vector in vectors) / count for key in FEATURE_KEYS}
    )


@dataclass(frozen=True)
class AppearanceStats:
    """Performance of one appearance relative to its side; None where there is no data."""

    hero_kills: int | None
    hero_deaths: int | None
    hero_seconds_alive: float | None
    hero_seconds_possible: float | None
    hero_kill_contribution: float | None
    unit_kill_contribution: float | None
    castle_raze_contribution: float | None
    main_base_contribution: float | None
    team_heal_contribution: float | None
    base_seconds_alive: float | None = None
    base_seconds_possible: float | None = None


@dataclass
class RunningMean:
    total: float = 0.0
    count: int = 0

    def add(self, value: float | None) -> None:
        if value is None:
            return
        self.total += value
        self.count += 1

    def mean(self, default: float) -> float:
        return self.total / self.count if self.count else default


@dataclass
class PlayerHistory:
    """Accumulated history of one player, folded one appearance at a time."""

    games: int = 0
    hero_kills: int = 0
    hero_deaths: int = 0
    hero_samples: int = 0
    hero_seconds_alive: float = 0.0
    hero_seconds_possible: float = 0.0
    base_seconds_alive: float = 0.0
    base_seconds_possible: float = 0.0
    hero_kill_contribution: RunningMean = field(default_factory=RunningMean)
    unit_kill_contribution: RunningMean = field(default_factory=RunningMean)
    castle_raze_contribution: RunningMean = field(default_factory=RunningMean)
    main_base_contribution: RunningMean = field(default_factory=RunningMean)
    team_heal_contribution: RunningMean = field(default_factory=RunningMean)
    enemy_elo_diff: RunningMean = field(default_factory=RunningMean)
    faction_games: dict[str, int] = field(default_factory=dict)

    def fold(
        self,
        stats: AppearanceStats,
        *,
        faction: str | None,
        enemy_elo_diff: float,
        counts_performance: bool,
    ) -> None:
        self.games += 1
        if faction is not None:
            self.faction_games[faction] = self.faction_games.get(faction, 0) + 1
        self.enemy_elo_diff.add(enemy_elo_diff)
        if not counts_performance:
            return

        if stats.hero_kills is not None and stats.hero_deaths is not None:
            self.hero_kills += stats.hero_kills
            self.hero_deaths += stats.hero_deaths
            self.hero_samples += 1
        if stats.hero_seconds_alive is not None and stats.hero_seconds_possible is not None:
            self.hero_seconds_alive += stats.hero_seconds_alive
            self.hero_seconds_possible += stats.hero_seconds_possible
        if stats.base_seconds_alive is not None and stats.base_seconds_possible is not None:
            self.base_seconds_alive += stats.base_seconds_alive
            self.base_seconds_possible += stats.base_seconds_possible
        self.hero_kill_contribution.add(stats.hero_kill_contribution)
        self.unit_kill_contribution.add(stats.unit_kill_contribution)
        self.castle_raze_contribution.add(stats.castle_raze_contribution)
        self.main_base_contribution.add(stats.main_base_contribution)
        self.team_heal_contribution.add(stats.team_heal_contribution)

    def base_uptime(self) -> float:
        """Share of base-seconds survived, in percent; not a model input."""
        if self.base_seconds_possible <= 0.0:
            return NEUTRAL_BASE_UPTIME_PCT
        return clamp(self.base_seconds_alive / self.base_seconds_possible * 100.0, 0.0, 100.0)

    def features(self, *, rating: float) -> FeatureVector:
        neutral = FeatureVector.neutral()
        hero_kd = neutral.hero_kd
        if self.hero_samples:
            hero_kd = clamp(self.hero_kills / max(self.hero_deaths, 1), HERO_KD_MIN, HERO_KD_MAX)
        hero_uptime = neutral.hero_uptime
        if self.hero_seconds_possible > 0.0:
            hero_uptime = clamp(self.hero_seconds_alive / self.hero_seconds_possible * 100.0, 0.0, 100.0)
        return FeatureVector(
            hero_kd=hero_kd,
            hero_kill_contribution=self.hero_kill_contribution.mean(neutral.hero_kill_contribution),
            unit_kill_contribution=self.unit_kill_contribution.mean(neutral.unit_kill_contribution),
            castle_raze_contribution=self.castle_raze_contribution.mean(neutral.castle_raze_contribution),
            main_base_contribution=self.main_base_contribution.mean(neutral.main_base_contribution),
            team_heal_contribution=self.team_heal_contribution.mean(neutral.team_heal_contribution),
            hero_uptime=hero_uptime,
            games_played=log1p(self.games),
            elo=rating,
            enemy_elo_diff=self.enemy_elo_diff.mean(neutral.enemy_elo_diff),
        )


@dataclass(frozen=True)
class PlayerFeatures:
    player_id: int | None
    faction: str | None
    features: FeatureVector


@dataclass(frozen=True)
class MatchFeatures:
    """Pre-match features of every participant, grouped into the two slots."""

    match_id: int
    team1_won: bool
    is_draw: bool
    team1: tuple[PlayerFeatures, ...]
    team2: tuple[PlayerFeatures, ...]

    def side(self, side: Side) -> tuple[PlayerFeatures, ...]:
        return self.team1 if side is Side.TEAM1 else self.team2


@dataclass(frozen=True)
class PlayerProfile:
    """Lifetime view of one player used for scoring and lobby decisions."""

    player_id: int
    games_played: int
    current_rating: float
    features: FeatureVector
    faction_games: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    base_uptime: float = NEUTRAL_BASE_UPTIME_PCT

    def games_on_faction(self, faction: str | None) -> int:
        if faction is None:
            return 0
        return self.faction_games.get(faction, 0)


def _side_total(values: Iterable[float | int | None]) -> float | None:
    present = [float(value) for value in values if value is not None]
    if not present:
        return None
    return sum(present)


def _contribution(value: float | int | None, total: float | None, cap: float) -> float | None:
    if value is None or total is None or total <= 0.0:
        return None
    return min(float(value) / total * 100.0, cap)


class FeatureExtractor:
    """Replays ordered history and emits causal per-player features."""

    def __init__(self, params: FeatureParameters | None = None) -> None:
        self.params = params or FeatureParameters()

    def _validate_appearance(self, match: MatchRecord, appearance: AppearanceRecord) -> None:
        counters = {
            "hero_kills": appearance.hero_kills,
            "unit_kills": appearance.unit_kills,
            "castles_razed": appearance.castles_razed,
            "main_bases_destroyed": appearance.main_bases_destroyed,
            "team_heal": appearance.team_heal,
        }
        for name, value in counters.items():
            if value is not None and value < 0:
                raise ValueError(
                    f"match_id={match.match_id} player_id={appearance.player_id} has negative {name}={value}"
                )

    def appearance_stats(self, match: MatchRecord, teams: TeamPair, appearance: AppearanceRecord) -> AppearanceStats:
        """Counters of one appearance expressed relative to its own side."""
        self._validate_appearance(match, appearance)
        teammates = teams.side(appearance.side)

        hero_deaths: int | None = None
        seconds_alive: float | None = None
        seconds_possible: float | None = None
        duration = match.duration_seconds
        if appearance.hero_death_times:
            hero_deaths = sum(1 for time in appearance.hero_death_times if time is not None)
            if duration is not None and duration > 0.0:
                seconds_possible = duration * len(appearance.hero_death_times)
                seconds_alive = sum(
                    duration if time is None else clamp(time, 0.0, duration)
                    for time in appearance.hero_death_times
                )

        base_alive: float | None = None
        base_possible: float | None = None
        if appearance.base_death_times and duration is not None and duration > 0.0:
            base_possible = duration * len(appearance.base_death_times)
            base_alive = sum(
                duration if time is None else clamp(time, 0.0, duration)
                for time in appearance.base_death_times
            )

        hero_kills = appearance.hero_kills
        return AppearanceStats(
            hero_kills=hero_kills if hero_deaths is not None else None,
            hero_deaths=hero_deaths if hero_kills is not None else None,
            hero_seconds_alive=seconds_alive,
            hero_seconds_possible=seconds_possible,
            hero_kill_contribution=_contribution(
                hero_kills,
                _side_total(a.hero_kills for a in teammates),
                (hero_kills or 0) * self.params.hero_kill_cap_per_kill,
            ),
            unit_kill_contribution=_contribution(
                appearance.unit_kills,
                _side_total(a.unit_kills for a in teammates),
                100.0,
            ),
            castle_raze_contribution=_contribution(
                appearance.castles_razed,
                _side_total(a.castles_razed for a in teammates),
                (appearance.castles_razed or 0) * self.params.castle_raze_cap_per_raze,
            ),
            main_base_contribution=_contribution(
                appearance.main_bases_destroyed,
                _side_total(a.main_bases_destroyed for a in teammates),
                (appearance.main_bases_destroyed or 0) * self.params.main_base_cap_per_destruction,
            ),
            team_heal_contribution=_contribution(
                appearance.team_heal,
                _side_total(a.team_heal for a in teammates),
                self.params.team_heal_cap,
            ),
            base_seconds_alive=base_alive,
            base_seconds_possible=base_possible,
        )

    def _rating_before(self, ratings_before: RatingLookup, match_id: int, player_id: int | None) -> float:
        if player_id is None:
            return self.params.default_rating
        return ratings_before.get((match_id, player_id), self.params.default_rating)

    def _walk(
        self,
        history: Iterable[MatchRecord],
        ratings_before: RatingLookup,
        histories: dict[int, PlayerHistory],
    ) -> Iterator[MatchFeatures]:
        for match in history:
            if not match.is_rateable():
                continue
            teams = match.teams()
            try:
                stats = {
                    side: [self.appearance_stats(match, teams, a) for a in teams.side(side)]
                    for side in Side
                }
            except ValueError as exc:
                logger.warning("Skipping match #%s in feature extraction: %s", match.match_id, exc)
                continue
            side_ratings = {
                side: [self._rating_before(ratings_before, match.match_id, a.player_id) for a in teams.side(side)]
                for side in Side
            }
            side_averages = {side: sum(values) / len(values) for side, values in side_ratings.items()}

            grouped: dict[Side, list[PlayerFeatures]] = {Side.TEAM1: [], Side.TEAM2: []}
            for side in Side:
                for appearance, rating in zip(teams.side(side), side_ratings[side]):
                    history_so_far = (
                        histories.get(appearance.player_id, PlayerHistory())
                        if appearance.player_id is not None
                        else PlayerHistory()
                    )
                    grouped[side].append(
                        PlayerFeatures(
                            player_id=appearance.player_id,
                            faction=appearance.faction,
                            features=history_so_far.features(rating=rating),
                        )
                    )

            yield MatchFeatures(
                match_id=match.match_id,
                team1_won=match.team1_won,
                is_draw=match.is_draw,
                team1=tuple(grouped[Side.TEAM1]),
                team2=tuple(grouped[Side.TEAM2]),
            )

            counts_performance = not match.has_early_leaver
            for side in Side:
                for appearance, rating, appearance_stats in zip(
                    teams.side(side), side_ratings[side], stats[side]
                ):
                    if appearance.player_id is None:
                        continue
                    histories.setdefault(appearance.player_id, PlayerHistory()).fold(
                        appearance_stats,
                        faction=appearance.faction,
                        enemy_elo_diff=rating - side_averages[side.opponent],
                        counts_performance=counts_performance,
                    )

    def match_features(
        self,
        history: Iterable[MatchRecord],
        *,
        ratings_before: RatingLookup | None = None,
    ) -> list[MatchFeatures]:
        """Features of every participant of every rateable match, prior history only."""
        return list(self._walk(history, ratings_before or {}, {}))

    def profiles(
        self,
        history: Iterable[MatchRecord],
        *,
        current_ratings: Mapping[int, float] | None = None,
        ratings_before: RatingLookup | None = None,
    ) -> dict[int, PlayerProfile]:
        """Lifetime-average features of every player seen in ``history``."""
        histories: dict[int, PlayerHistory] = {}
        for _ in self._walk(history, ratings_before or {}, histories):
            pass
        current_ratings = current_ratings or {}
        profiles: dict[int, PlayerProfile] = {}
        for player_id, player_history in histories.items():
            rating = current_ratings.get(player_id, self.params.default_rating)
            profiles[player_id] = PlayerProfile(
                player_id=player_id,
                games_played=player_history.games,
                current_rating=rating,
                features=player_history.features(rating=rating),
                faction_games=MappingProxyType(dict(player_history.faction_games)),
                base_uptime=player_history.base_uptime(),
            )
        return profiles


__all__ = [
    "AppearanceStats",
    "FeatureExtractor",
    "FeatureParameters",
    "FeatureVector",
    "MatchFeatures",
    "PlayerFeatures",
    "PlayerHistory",
    "PlayerProfile",
    "RunningMean",
    "average_features",
]
