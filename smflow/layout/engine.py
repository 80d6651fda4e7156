"""Auto-arrange flow nodes along a layout direction."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence

import networkx as nx

from smflow.graph import FlowGraph
from smflow.layout.sugiyama import LayoutOptions, layered_layout
from smflow.models.flow import (
    FALLBACK_HEIGHT,
    FALLBACK_WIDTH,
    Dimensions,
    FlowEdge,
    FlowNode,
    LayoutDirection,
    PortSide,
    Position,
)

logger = logging.getLogger(__name__)


def node_size(dimensions: Dimensions | None) -> tuple[float, float]:
    """Width and height used for layout; unusable sizes fall back to 150x50."""
    if dimensions is None:
        return FALLBACK_WIDTH, FALLBACK_HEIGHT
    width, height = dimensions.width, dimensions.height
    if not (math.isfinite(width) and width > 0):
        width = FALLBACK_WIDTH
    if not (math.isfinite(height) and height > 0):
        height = FALLBACK_HEIGHT
    return width, height


def port_sides(direction: LayoutDirection) -> tuple[PortSide, PortSide]:
    """``(target side, source side)`` for a direction."""
    if direction.is_horizontal:
        return PortSide.left, PortSide.right
    return PortSide.top, PortSide.bottom


def compute_layout(
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
    direction: LayoutDirection,
    measured: Mapping[str, Dimensions | None] | None = None,
    options: LayoutOptions | None = None,
) -> list[FlowNode]:
    """Return copies of ``nodes`` with new positions and port sides.

    When ``measured`` is given it lists the nodes the renderer has mounted;
    nodes missing from it are left where they are. Without it every node
    takes part, sized by its own ``dimensions``. The input is not modified.
    """
    direction = LayoutDirection(direction)
    layering = nx.MultiDiGraph()
    for node in nodes:
        if measured is None:
            dimensions = node.dimensions
        elif node.id in measured:
            dimensions = measured[node.id]
        else:
            continue
        width, height = node_size(dimensions)
        layering.add_node(node.id, width=width, height=height)

    for edge in edges:
        if edge.source in layering and edge.target in layering:
            layering.add_edge(edge.source, edge.target)

    centres = layered_layout(layering, direction.is_horizontal, options)

    corners = {}
    for node_id, (cx, cy) in centres.items():
        attrs = layering.nodes[node_id]
        corners[node_id] = (cx - attrs["width"] / 2, cy - attrs["height"] / 2)
    if corners:
        dx = min(x for x, _ in corners.values())
        dy = min(y for _, y in corners.values())
        corners = {node_id: (x - dx, y - dy) for node_id, (x, y) in corners.items()}

    target_side, source_side = port_sides(direction)
    laid_out = []
    for node in nodes:
        update = {"target_position": target_side, "source_position": source_side}
        if node.id in corners:
            x, y = corners[node.id]
            update["position"] = Position(x=x, y=y)
        laid_out.append(node.model_copy(update=update))

    logger.debug(
        "Laid out %d of %d nodes (%s)", len(corners), len(nodes), direction.value
    )
    return laid_out


def layout_graph(
    graph: FlowGraph,
    direction: LayoutDirection | None = None,
    measured: Mapping[str, Dimensions | None] | None = None,
    options: LayoutOptions | None = None,
) -> list[FlowNode]:
    """Lay out ``graph`` in place.

    Without an explicit direction the graph's last used direction is
    reused; the direction used is stored back on the graph.
    """
    direction = LayoutDirection(direction) if direction is not None else graph.direction
    laid_out = compute_layout(graph.nodes, graph.edges, direction, measured, options)
    graph.set_positions(laid_out)
    graph.direction = direction
    return laid_out


def needs_layout(graph: FlowGraph) -> bool:
    """True when a stored flow has no usable positions.

    That is the case when some node arrived without a stored position, or
    when the graph has more than one node and every one sits at (0, 0).
    """
    nodes = graph.nodes
    if any("position" not in node.model_fields_set for node in nodes):
        return True
    return len(nodes) > 1 and all(node.position.x == 0 and node.position.y == 0 for node in nodes)
