"""Utility functions for smflow."""

from smflow.utils.identifiers import (
    edge_id_for,
    generate_node_id,
    normalize_id_part,
    utc_timestamp,
)

__all__ = [
    "edge_id_for",
    "generate_node_id",
    "normalize_id_part",
    "utc_timestamp",
]
