"""ID generation and timestamp utilities."""

import re
import uuid
from datetime import datetime, timezone


def generate_node_id(kind: str = "node") -> str:
    """Generate a node id such as ``choice-3f2a9c1d``."""
    return f"{normalize_id_part(kind)}-{uuid.uuid4().hex[:8]}"


def edge_id_for(source: str, target: str) -> str:
    """Default id for an edge between two nodes."""
    return f"edge-{source}-{target}"


def normalize_id_part(value: str) -> str:
    normalized = re.sub(r"[^a-zA-Z0-9_-]+", "-", value).strip("-").lower()
    return normalized or "node"


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
