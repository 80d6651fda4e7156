"""Designer session: one loaded flow, its layout and its live node states.

Usage:

    adapter = FlowPersistenceAdapter(HttpxTransport("http://localhost:8080/api"))
    channel = RealtimeChannel(channel_url("http://localhost:8080"))
    session = FlowSession(adapter, channel)
    session.load("1")
    session.attach(ReconnectPolicy())   # inside a running event loop
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable

from smflow.adapters.persistence import FlowPersistenceAdapter
from smflow.errors import FlowError, InvalidGraphError
from smflow.graph import FlowGraph
from smflow.layout.engine import layout_graph, needs_layout
from smflow.models.flow import (
    Dimensions,
    FlowEdge,
    FlowNode,
    LayoutDirection,
    NodeAck,
    NodeData,
    NodeKind,
    Position,
    SaveAck,
)
from smflow.models.node_state import NodeState
from smflow.projection import StateProjection
from smflow.realtime.channel import RealtimeChannel
from smflow.realtime.events import ChannelEvent, ChannelEventKind
from smflow.realtime.reconnect import ReconnectPolicy, Reconnector
from smflow.utils.identifiers import generate_node_id

logger = logging.getLogger(__name__)


class FlowSession:
    """Keeps the graph, the layout direction and the state projection consistent."""

    def __init__(
        self,
        adapter: FlowPersistenceAdapter,
        channel: RealtimeChannel | None = None,
        projection: StateProjection | None = None,
    ) -> None:
        self.adapter = adapter
        self.channel = channel
        self.projection = projection or StateProjection()
        self.graph = FlowGraph()
        self.state_machine_id: str | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._reconnector: Reconnector | None = None

    # persistence

    def load(
        self,
        state_machine_id: str | None,
        measured: Mapping[str, Dimensions | None] | None = None,
    ) -> FlowGraph:
        """Load a flow and lay it out if it has no usable stored positions.

        Replacing a previously loaded flow resets every node status to
        ``normal``. Statuses received before the first load are kept for
        the nodes that flow contains.
        """
        data = self.adapter.load_flow(state_machine_id)
        direction = self.graph.direction
        try:
            graph = FlowGraph.from_flow_data(data, direction=direction)
        except InvalidGraphError as e:
            logger.warning("Flow %s is inconsistent, using an empty flow: %s", state_machine_id, e)
            graph = FlowGraph(direction=direction)

        if needs_layout(graph):
            layout_graph(graph, measured=measured)

        # statuses belong to the flow they were shown on; a reload starts clean
        if self.state_machine_id is not None:
            self.projection.reset()
        self.graph = graph
        self.state_machine_id = state_machine_id
        self.projection.sync_nodes(graph.node_ids())
        return graph

    def save(self) -> SaveAck:
        return self.adapter.save_flow(self._require_id(), self.graph)

    def save_node(self, node_id: str, create: bool = False) -> NodeAck:
        node = self.graph.get_node(node_id)
        if create:
            return self.adapter.create_node(self._require_id(), node)
        return self.adapter.upsert_node(self._require_id(), node)

    # editing

    def add_node(self, node: FlowNode) -> FlowNode:
        added = self.graph.add_node(node)
        self.projection.sync_nodes(self.graph.node_ids())
        return added

    def create_node(
        self,
        kind: NodeKind,
        label: str = "",
        position: Position | None = None,
    ) -> FlowNode:
        """Add a new node of ``kind`` with a generated id."""
        kind = NodeKind(kind)
        node = FlowNode(
            id=generate_node_id(kind.value),
            type=kind,
            position=position or Position(),
            data=NodeData(label=label),
        )
        return self.add_node(node)

    def update_node(self, node_id: str, patch: Mapping[str, Any]) -> FlowNode:
        return self.graph.update_node(node_id, patch)

    def remove_node(self, node_id: str) -> FlowNode:
        removed = self.graph.remove_node(node_id)
        self.projection.sync_nodes(self.graph.node_ids())
        return removed

    def add_edge(self, edge: FlowEdge) -> FlowEdge:
        return self.graph.add_edge(edge)

    def remove_edge(self, edge_id: str) -> FlowEdge:
        return self.graph.remove_edge(edge_id)

    def relayout(
        self,
        direction: LayoutDirection | None = None,
        measured: Mapping[str, Dimensions | None] | None = None,
    ) -> list[FlowNode]:
        return layout_graph(self.graph, direction, measured)

    # live monitoring

    def attach(self, reconnect: ReconnectPolicy | None = None) -> None:
        """Route channel frames into the projection and connect.

        With a policy, closes caused by the transport are retried and the
        projection's reconnect rule applies on every reopen.
        """
        if self.channel is None:
            raise FlowError("Session has no realtime channel")
        if self._unsubscribe is None:
            self._unsubscribe = self.channel.subscribe(self._on_channel_event)
        if reconnect is not None and self._reconnector is None:
            self._reconnector = Reconnector(
                self.channel, reconnect, on_reconnect=self.projection.on_reconnect
            )
        self.channel.connect()

    def detach(self) -> None:
        if self._reconnector is not None:
            self._reconnector.stop()
            self._reconnector = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.channel is not None:
            self.channel.disconnect()

    def node_states(self) -> dict[str, NodeState]:
        return self.projection.snapshot()

    def _on_channel_event(self, event: ChannelEvent) -> None:
        if event.kind is ChannelEventKind.message and event.data is not None:
            self.projection.handle_frame(event.data)

    def _require_id(self) -> str:
        if not self.state_machine_id:
            raise FlowError("No state machine loaded")
        return self.state_machine_id
