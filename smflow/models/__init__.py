"""Core data models for smflow."""

from smflow.models.flow import (
    FALLBACK_HEIGHT,
    FALLBACK_WIDTH,
    Dimensions,
    FlowData,
    FlowEdge,
    FlowNode,
    LayoutDirection,
    NodeAck,
    NodeData,
    NodeKind,
    OptionItem,
    PortSide,
    Position,
    SaveAck,
)
from smflow.models.node_state import (
    NodeState,
    NodeStateMessage,
    decode_frame,
)

__all__ = [
    # Flow definitions
    "FALLBACK_HEIGHT",
    "FALLBACK_WIDTH",
    "Dimensions",
    "FlowData",
    "FlowEdge",
    "FlowNode",
    "LayoutDirection",
    "NodeData",
    "NodeKind",
    "OptionItem",
    "PortSide",
    "Position",
    # Persistence acknowledgements
    "NodeAck",
    "SaveAck",
    # Realtime
    "NodeState",
    "NodeStateMessage",
    "decode_frame",
]
