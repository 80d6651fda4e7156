"""Realtime node-state messages pushed by the execution backend."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class NodeState(str, Enum):
    """Runtime status of a node."""

    running = "running"
    paused = "paused"
    completed = "completed"
    failed = "failed"
    normal = "normal"


class NodeStateMessage(BaseModel):
    """One text frame on the realtime channel: ``{"nodeId": ..., "state": ...}``."""

    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(alias="nodeId", min_length=1)
    state: NodeState

    def to_frame(self) -> str:
        return self.model_dump_json(by_alias=True)


def decode_frame(frame: str | bytes) -> NodeStateMessage | None:
    """Decode a realtime frame, returning None when it does not match the shape."""
    try:
        return NodeStateMessage.model_validate_json(frame)
    except ValidationError:
        return None
