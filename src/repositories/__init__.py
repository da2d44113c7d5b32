"""Database repository helpers."""

from repositories.match_repository import (
    chronological_order,
    fetch_match_record,
    fetch_ordered_matches,
    fetch_player_names,
    fetch_player_seeds,
    match_order_key,
)
from repositories.prediction_weight_repository import current_weights, insert_weights
from repositories.rating_repository import (
    ensure_schema,
    fetch_rating_state,
    fetch_ratings_before,
    persist_incremental,
    persist_rebuild,
)

__all__ = [
    "chronological_order",
    "current_weights",
    "ensure_schema",
    "fetch_match_record",
    "fetch_ordered_matches",
    "fetch_player_names",
    "fetch_player_seeds",
    "fetch_rating_state",
    "fetch_ratings_before",
    "insert_weights",
    "match_order_key",
    "persist_incremental",
    "persist_rebuild",
]
