"""In-memory flow graph with id indexes and integrity checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from smflow.errors import EdgeNotFoundError, InvalidGraphError, NodeNotFoundError
from smflow.models.flow import (
    FlowData,
    FlowEdge,
    FlowNode,
    LayoutDirection,
    NodeData,
)
from smflow.utils.identifiers import edge_id_for

logger = logging.getLogger(__name__)


def _aliased(model: type[BaseModel], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite snake_case field names in a patch to the model's wire aliases."""
    result = {}
    for key, value in patch.items():
        field = model.model_fields.get(key)
        result[field.alias if field is not None and field.alias else key] = value
    return result


class FlowGraph:
    """Ordered nodes and edges of one state machine.

    Nodes and edges keep insertion order for stable rendering. Lookups by
    id go through dict indexes. ``direction`` records the last layout
    direction so a re-layout without an explicit direction reuses it.
    """

    def __init__(self, direction: LayoutDirection = LayoutDirection.LR) -> None:
        self.direction = direction
        self._nodes: dict[str, FlowNode] = {}
        self._edges: dict[str, FlowEdge] = {}

    @classmethod
    def from_flow_data(
        cls,
        data: FlowData,
        direction: LayoutDirection = LayoutDirection.LR,
    ) -> FlowGraph:
        """Build a graph from a persisted snapshot.

        Edges whose endpoints are missing are pruned; duplicate node ids
        are rejected.
        """
        graph = cls(direction=direction)
        for node in data.nodes:
            graph.add_node(node)
        for edge in data.edges:
            if edge.source not in graph._nodes or edge.target not in graph._nodes:
                logger.warning(
                    "Pruning dangling edge %s (%s -> %s)",
                    edge.id or "<no id>", edge.source, edge.target,
                )
                continue
            graph.add_edge(edge)
        return graph

    def to_flow_data(self) -> FlowData:
        return FlowData(
            nodes=[node.model_copy(deep=True) for node in self._nodes.values()],
            edges=[edge.model_copy() for edge in self._edges.values()],
        )

    # read access

    @property
    def nodes(self) -> list[FlowNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[FlowEdge]:
        return list(self._edges.values())

    def node_ids(self) -> list[str]:
        return list(self._nodes)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> FlowNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def get_edge(self, edge_id: str) -> FlowEdge:
        try:
            return self._edges[edge_id]
        except KeyError:
            raise EdgeNotFoundError(edge_id) from None

    def incident_edges(self, node_id: str) -> list[FlowEdge]:
        return [
            edge for edge in self._edges.values()
            if edge.source == node_id or edge.target == node_id
        ]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # mutation

    def add_node(self, node: FlowNode) -> FlowNode:
        if node.id in self._nodes:
            raise InvalidGraphError(f"Duplicate node id: {node.id}")
        self._nodes[node.id] = node
        return node

    def update_node(self, node_id: str, patch: Mapping[str, Any]) -> FlowNode:
        """Apply a partial update to an existing node.

        ``data`` is merged key by key; every other field is replaced. The
        merged node is validated again before it is stored.
        """
        current = self.get_node(node_id)
        patch = dict(patch)
        if patch.get("id", node_id) != node_id:
            raise InvalidGraphError(f"Cannot change node id {node_id} to {patch['id']}")

        merged = current.model_dump(by_alias=True)
        data_patch = patch.pop("data", None)
        if isinstance(data_patch, NodeData):
            data_patch = data_patch.model_dump(by_alias=True, exclude_unset=True)
        merged.update(_aliased(FlowNode, patch))
        if data_patch:
            merged["data"] = {**merged["data"], **_aliased(NodeData, data_patch)}

        try:
            updated = FlowNode.model_validate(merged)
        except ValidationError as e:
            raise InvalidGraphError(f"Invalid update for node {node_id}: {e}") from e
        self._nodes[node_id] = updated
        return updated

    def set_positions(self, nodes: Iterable[FlowNode]) -> None:
        """Store layout output: position and port sides only."""
        for laid_out in nodes:
            node = self.get_node(laid_out.id)
            self._nodes[node.id] = node.model_copy(update={
                "position": laid_out.position,
                "source_position": laid_out.source_position,
                "target_position": laid_out.target_position,
            })

    def remove_node(self, node_id: str) -> FlowNode:
        """Remove a node together with every edge that touches it."""
        node = self.get_node(node_id)
        del self._nodes[node_id]
        self._edges = {
            edge_id: edge for edge_id, edge in self._edges.items()
            if edge.source != node_id and edge.target != node_id
        }
        return node

    def add_edge(self, edge: FlowEdge) -> FlowEdge:
        for endpoint in (edge.source, edge.target):
            if endpoint not in self._nodes:
                raise InvalidGraphError(
                    f"Edge {edge.source} -> {edge.target} references missing node {endpoint}"
                )

        base_id = edge.id or edge_id_for(edge.source, edge.target)
        edge_id = base_id
        suffix = 1
        while edge_id in self._edges:
            edge_id = f"{base_id}-{suffix}"
            suffix += 1
        if edge_id != edge.id:
            edge = edge.model_copy(update={"id": edge_id})

        self._edges[edge_id] = edge
        return edge

    def remove_edge(self, edge_id: str) -> FlowEdge:
        edge = self.get_edge(edge_id)
        del self._edges[edge_id]
        return edge
