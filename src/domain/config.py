"""Load engine tuning from a TOML file with one table per component."""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, TypeVar
import tomllib

from domain.lobby.common import LobbyParameters
from domain.prediction.features import FeatureParameters
from domain.prediction.score import ScoreParameters
from domain.prediction.trainer import TrainingParameters
from domain.ratings.custom.calculator import CustomRatingParameters
from domain.ratings.elo.calculator import EloParameters
from domain.ratings.glicko2.calculator import Glicko2Parameters

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "engine.toml"

P = TypeVar("P")


@dataclass(frozen=True)
class EngineConfig:
    """Parameters of every engine component; defaults when a table or key is absent."""

    file_path: Path | None = None
    elo: EloParameters = field(default_factory=EloParameters)
    custom_rating: CustomRatingParameters = field(default_factory=CustomRatingParameters)
    glicko2: Glicko2Parameters = field(default_factory=Glicko2Parameters)
    features: FeatureParameters = field(default_factory=FeatureParameters)
    training: TrainingParameters = field(default_factory=TrainingParameters)
    score: ScoreParameters = field(default_factory=ScoreParameters)
    lobby: LobbyParameters = field(default_factory=LobbyParameters)


def _parse_table(raw: dict[str, Any], table: str, cls: type[P], file_path: Path) -> P:
    """Build a parameters dataclass from ``[table]``, casting to each default's type."""
    table_raw = raw.get(table, {})
    if not isinstance(table_raw, dict):
        raise ValueError(f"{file_path}: [{table}] must be a table")

    scalar_fields = {
        item.name: item
        for item in fields(cls)  # type: ignore[arg-type]
        if item.default is not MISSING
    }
    values: dict[str, Any] = {}
    for key, value in table_raw.items():
        if isinstance(value, dict):
            continue
        spec = scalar_fields.get(key)
        if spec is None:
            raise ValueError(f"{file_path}: [{table}].{key} is not a known setting")
        default = spec.default
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ValueError(f"{file_path}: [{table}].{key} must be a boolean")
            values[key] = value
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{file_path}: [{table}].{key} must be an integer")
            values[key] = value
        else:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{file_path}: [{table}].{key} must be a number")
            values[key] = float(value)
    return cls(**values)


def _parse_faction_weights(raw: dict[str, Any], file_path: Path) -> dict[str, float] | None:
    lobby_raw = raw.get("lobby", {})
    weights_raw = lobby_raw.get("faction_weights") if isinstance(lobby_raw, dict) else None
    if weights_raw is None:
        return None
    if not isinstance(weights_raw, dict):
        raise ValueError(f"{file_path}: [lobby.faction_weights] must be a table")
    weights: dict[str, float] = {}
    for faction, weight in weights_raw.items():
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight <= 0.0:
            raise ValueError(f"{file_path}: [lobby.faction_weights].{faction} must be > 0")
        weights[str(faction)] = float(weight)
    return weights


def _validate(config: EngineConfig, file_path: Path) -> None:
    if config.elo.k_factor <= 0.0:
        raise ValueError(f"{file_path}: [elo].k_factor must be > 0")
    if config.elo.scale_factor <= 0.0:
        raise ValueError(f"{file_path}: [elo].scale_factor must be > 0")

    custom = config.custom_rating
    if not 0.0 <= custom.individual_weight <= 1.0:
        raise ValueError(f"{file_path}: [custom_rating].individual_weight must be between 0 and 1")
    if custom.bonus_zero_seed <= custom.bonus_full_seed:
        raise ValueError(f"{file_path}: [custom_rating].bonus_zero_seed must be > bonus_full_seed")
    if custom.max_bonus_wins < 0:
        raise ValueError(f"{file_path}: [custom_rating].max_bonus_wins must be >= 0")
    if not 0.0 <= custom.early_leaver_scale <= 1.0:
        raise ValueError(f"{file_path}: [custom_rating].early_leaver_scale must be between 0 and 1")

    glicko2 = config.glicko2
    if glicko2.tau <= 0.0:
        raise ValueError(f"{file_path}: [glicko2].tau must be > 0")
    if glicko2.epsilon <= 0.0:
        raise ValueError(f"{file_path}: [glicko2].epsilon must be > 0")
    if glicko2.max_iterations <= 0:
        raise ValueError(f"{file_path}: [glicko2].max_iterations must be > 0")
    if glicko2.min_rd <= 0.0 or glicko2.min_rd > glicko2.max_rd:
        raise ValueError(f"{file_path}: [glicko2].min_rd must be > 0 and <= max_rd")
    if glicko2.min_volatility <= 0.0 or glicko2.min_volatility > glicko2.max_volatility:
        raise ValueError(f"{file_path}: [glicko2].min_volatility must be > 0 and <= max_volatility")
    if glicko2.min_rating > glicko2.max_rating:
        raise ValueError(f"{file_path}: [glicko2].min_rating must be <= max_rating")

    if config.training.iterations <= 0:
        raise ValueError(f"{file_path}: [training].iterations must be > 0")
    if config.training.learning_rate <= 0.0:
        raise ValueError(f"{file_path}: [training].learning_rate must be > 0")
    if config.training.l2_lambda < 0.0:
        raise ValueError(f"{file_path}: [training].l2_lambda must be >= 0")

    if config.score.confidence_games <= 0.0:
        raise ValueError(f"{file_path}: [score].confidence_games must be > 0")

    lobby = config.lobby
    if lobby.max_iterations <= 0:
        raise ValueError(f"{file_path}: [lobby].max_iterations must be > 0")
    if lobby.rating_ceiling <= lobby.rating_floor:
        raise ValueError(f"{file_path}: [lobby].rating_ceiling must be > rating_floor")
    if lobby.games_for_full_rating_trust <= 0:
        raise ValueError(f"{file_path}: [lobby].games_for_full_rating_trust must be > 0")
    if lobby.familiarity_decay_games <= 0.0:
        raise ValueError(f"{file_path}: [lobby].familiarity_decay_games must be > 0")


def load_engine_config(file_path: Path = DEFAULT_CONFIG_PATH) -> EngineConfig:
    """Load and validate an engine TOML config file."""
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    with file_path.open("rb") as file:
        raw = tomllib.load(file)

    lobby = _parse_table(raw, "lobby", LobbyParameters, file_path)
    faction_weights = _parse_faction_weights(raw, file_path)
    if faction_weights is not None:
        lobby = replace(lobby, faction_weights=MappingProxyType(faction_weights))

    config = EngineConfig(
        file_path=file_path,
        elo=_parse_table(raw, "elo", EloParameters, file_path),
        custom_rating=_parse_table(raw, "custom_rating", CustomRatingParameters, file_path),
        glicko2=_parse_table(raw, "glicko2", Glicko2Parameters, file_path),
        features=_parse_table(raw, "features", FeatureParameters, file_path),
        training=_parse_table(raw, "training", TrainingParameters, file_path),
        score=_parse_table(raw, "score", ScoreParameters, file_path),
        lobby=lobby,
    )
    _validate(config, file_path)
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "EngineConfig", "load_engine_config"]
