"""Layered auto-layout for flow graphs."""

from smflow.layout.engine import (
    compute_layout,
    layout_graph,
    needs_layout,
    node_size,
    port_sides,
)
from smflow.layout.sugiyama import LayoutOptions, layered_layout

__all__ = [
    "LayoutOptions",
    "compute_layout",
    "layered_layout",
    "layout_graph",
    "needs_layout",
    "node_size",
    "port_sides",
]
