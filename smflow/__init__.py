"""smflow - state-machine flow designer core and live node-state monitor."""

from smflow.adapters import FlowPersistenceAdapter, HttpxTransport, Transport
from smflow.errors import (
    EdgeNotFoundError,
    FlowError,
    InvalidGraphError,
    NodeNotFoundError,
    TransportError,
)
from smflow.graph import FlowGraph
from smflow.layout import LayoutOptions, compute_layout, layout_graph
from smflow.models import (
    Dimensions,
    FlowData,
    FlowEdge,
    FlowNode,
    LayoutDirection,
    NodeData,
    NodeKind,
    NodeState,
    NodeStateMessage,
    PortSide,
    Position,
)
from smflow.projection import StateProjection
from smflow.realtime import (
    ChannelEvent,
    ChannelEventKind,
    RealtimeChannel,
    ReconnectPolicy,
    Reconnector,
    channel_url,
)
from smflow.session import FlowSession

__all__ = [
    # Graph model
    "Dimensions",
    "FlowData",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "NodeData",
    "NodeKind",
    "PortSide",
    "Position",
    # Layout
    "LayoutDirection",
    "LayoutOptions",
    "compute_layout",
    "layout_graph",
    # Realtime
    "ChannelEvent",
    "ChannelEventKind",
    "NodeState",
    "NodeStateMessage",
    "RealtimeChannel",
    "ReconnectPolicy",
    "Reconnector",
    "StateProjection",
    "channel_url",
    # Persistence
    "FlowPersistenceAdapter",
    "HttpxTransport",
    "Transport",
    # High-level API
    "FlowSession",
    # Errors
    "EdgeNotFoundError",
    "FlowError",
    "InvalidGraphError",
    "NodeNotFoundError",
    "TransportError",
]
