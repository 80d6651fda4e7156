"""Layered (Sugiyama-style) drawing of a directed multigraph.

The input is a ``networkx.MultiDiGraph`` whose nodes carry ``width`` and
``height`` attributes. The output maps every node to the centre of its box.
Steps: break cycles, rank by longest path, split long arcs with virtual
nodes, order ranks by barycenter sweeps, then assign coordinates.

Everything iterates in insertion order, so equal input gives equal output.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

import networkx as nx


@dataclass(frozen=True)
class LayoutOptions:
    """Spacing parameters, in canvas units."""

    rank_sep: float = 50.0  # between adjacent ranks
    node_sep: float = 50.0  # between two real nodes in a rank
    edge_sep: float = 10.0  # next to a virtual node
    order_sweeps: int = 24
    coordinate_passes: int = 8


@dataclass
class _Layering:
    """Working state: real and virtual nodes as consecutive integers."""

    ranks: list[int]
    extents: list[tuple[float, float]]  # (along rank axis, across rank axis)
    virtual: list[bool]
    arcs: list[tuple[int, int]]  # only between adjacent ranks

    def add_virtual(self, rank: int) -> int:
        self.ranks.append(rank)
        self.extents.append((0.0, 0.0))
        self.virtual.append(True)
        return len(self.ranks) - 1


def layered_layout(
    graph: nx.MultiDiGraph,
    horizontal: bool,
    options: LayoutOptions | None = None,
) -> dict[str, tuple[float, float]]:
    """Return the ``(x, y)`` centre of every node in ``graph``."""
    options = options or LayoutOptions()
    if graph.number_of_nodes() == 0:
        return {}

    ids = list(graph.nodes)
    index = {node_id: i for i, node_id in enumerate(ids)}
    arcs = [(index[u], index[v]) for u, v in _acyclic_arcs(graph)]
    ranks = _longest_path_ranks(len(ids), arcs)

    extents = []
    for node_id in ids:
        attrs = graph.nodes[node_id]
        width, height = attrs["width"], attrs["height"]
        extents.append((width, height) if horizontal else (height, width))

    layering = _Layering(
        ranks=ranks, extents=extents, virtual=[False] * len(ids), arcs=[]
    )
    _split_long_arcs(layering, arcs)

    layers: list[list[int]] = [[] for _ in range(max(ranks) + 1)]
    for node, rank in enumerate(layering.ranks):
        layers[rank].append(node)

    layers = _order_layers(layers, layering.arcs, options.order_sweeps)
    along, across = _assign_coordinates(layers, layering, options)

    centres = {}
    for i, node_id in enumerate(ids):
        rank_coord = along[layering.ranks[i]]
        centres[node_id] = (rank_coord, across[i]) if horizontal else (across[i], rank_coord)
    return centres


def _acyclic_arcs(graph: nx.MultiDiGraph) -> list[tuple[str, str]]:
    """Every non-loop arc, with DFS back edges reversed."""
    visiting: set[str] = set()
    done: set[str] = set()
    back_edges: set[tuple[str, str, int]] = set()

    for root in graph.nodes:
        if root in done:
            continue
        visiting.add(root)
        stack = [(root, iter(graph.out_edges(root, keys=True)))]
        while stack:
            node, out_edges = stack[-1]
            for _, succ, key in out_edges:
                if succ == node:
                    continue
                if succ in visiting:
                    back_edges.add((node, succ, key))
                elif succ not in done:
                    visiting.add(succ)
                    stack.append((succ, iter(graph.out_edges(succ, keys=True))))
                    break
            else:
                stack.pop()
                visiting.discard(node)
                done.add(node)

    arcs = []
    for u, v, key in graph.edges(keys=True):
        if u == v:
            continue
        arcs.append((v, u) if (u, v, key) in back_edges else (u, v))
    return arcs


def _longest_path_ranks(count: int, arcs: list[tuple[int, int]]) -> list[int]:
    dag = nx.MultiDiGraph()
    dag.add_nodes_from(range(count))
    dag.add_edges_from(arcs)

    ranks = [0] * count
    for node in nx.topological_sort(dag):
        for pred in dag.predecessors(node):
            ranks[node] = max(ranks[node], ranks[pred] + 1)
    return ranks


def _split_long_arcs(layering: _Layering, arcs: list[tuple[int, int]]) -> None:
    for u, v in arcs:
        previous = u
        for rank in range(layering.ranks[u] + 1, layering.ranks[v]):
            dummy = layering.add_virtual(rank)
            layering.arcs.append((previous, dummy))
            previous = dummy
        layering.arcs.append((previous, v))


def _order_layers(
    layers: list[list[int]],
    arcs: list[tuple[int, int]],
    sweeps: int,
) -> list[list[int]]:
    preds: dict[int, list[int]] = defaultdict(list)
    succs: dict[int, list[int]] = defaultdict(list)
    for u, v in arcs:
        succs[u].append(v)
        preds[v].append(u)

    current = [list(layer) for layer in layers]
    best = [list(layer) for layer in current]
    best_crossings = _count_crossings(best, succs)

    for sweep in range(sweeps):
        if best_crossings == 0:
            break
        if sweep % 2 == 0:
            for r in range(1, len(current)):
                current[r] = _barycenter_order(current[r], current[r - 1], preds)
        else:
            for r in range(len(current) - 2, -1, -1):
                current[r] = _barycenter_order(current[r], current[r + 1], succs)

        crossings = _count_crossings(current, succs)
        if crossings < best_crossings:
            best = [list(layer) for layer in current]
            best_crossings = crossings

    return best


def _barycenter_order(
    layer: list[int],
    fixed: list[int],
    neighbours: dict[int, list[int]],
) -> list[int]:
    fixed_pos = {node: i for i, node in enumerate(fixed)}
    keys = []
    for i, node in enumerate(layer):
        adjacent = [fixed_pos[n] for n in neighbours[node] if n in fixed_pos]
        # nodes without neighbours in the fixed rank hold their slot
        barycenter = sum(adjacent) / len(adjacent) if adjacent else float(i)
        keys.append((barycenter, i, node))
    keys.sort()
    return [node for _, _, node in keys]


def _count_crossings(layers: list[list[int]], succs: dict[int, list[int]]) -> int:
    total = 0
    for upper, lower in zip(layers, layers[1:]):
        lower_pos = {node: i for i, node in enumerate(lower)}
        segments = [
            (i, lower_pos[target])
            for i, node in enumerate(upper)
            for target in succs[node]
            if target in lower_pos
        ]
        for a in range(len(segments)):
            for b in range(a + 1, len(segments)):
                (s1, t1), (s2, t2) = segments[a], segments[b]
                if (s1 - s2) * (t1 - t2) < 0:
                    total += 1
    return total


def _assign_coordinates(
    layers: list[list[int]],
    layering: _Layering,
    options: LayoutOptions,
) -> tuple[list[float], list[float]]:
    """Rank-axis coordinate per rank and cross-axis coordinate per node."""
    along: list[float] = []
    previous_extent = 0.0
    for r, layer in enumerate(layers):
        extent = max(layering.extents[node][0] for node in layer)
        if r == 0:
            along.append(extent / 2)
        else:
            along.append(along[-1] + previous_extent / 2 + options.rank_sep + extent / 2)
        previous_extent = extent

    def separation(a: int, b: int) -> float:
        sep_a = options.edge_sep if layering.virtual[a] else options.node_sep
        sep_b = options.edge_sep if layering.virtual[b] else options.node_sep
        return (
            layering.extents[a][1] / 2
            + (sep_a + sep_b) / 2
            + layering.extents[b][1] / 2
        )

    across = [0.0] * len(layering.ranks)
    for layer in layers:
        coord = 0.0
        for i, node in enumerate(layer):
            if i > 0:
                coord += separation(layer[i - 1], node)
            across[node] = coord
        shift = (across[layer[0]] + across[layer[-1]]) / 2
        for node in layer:
            across[node] -= shift

    preds: dict[int, list[int]] = defaultdict(list)
    succs: dict[int, list[int]] = defaultdict(list)
    for u, v in layering.arcs:
        succs[u].append(v)
        preds[v].append(u)

    for p in range(options.coordinate_passes):
        if p % 2 == 0:
            order, neighbours = range(1, len(layers)), preds
        else:
            order, neighbours = range(len(layers) - 2, -1, -1), succs
        for r in order:
            layer = layers[r]
            desired = []
            for node in layer:
                adjacent = neighbours[node]
                if adjacent:
                    desired.append(sum(across[n] for n in adjacent) / len(adjacent))
                else:
                    desired.append(across[node])
            for node, coord in zip(layer, _separate(layer, desired, separation)):
                across[node] = coord

    return along, across


def _separate(layer, desired, separation) -> list[float]:
    """Closest coordinates to ``desired`` that respect minimum separation.

    Mean of a left-packed and a right-packed solution; both satisfy the
    separation constraints, so their mean does too.
    """
    n = len(layer)
    left = list(desired)
    for i in range(1, n):
        left[i] = max(left[i], left[i - 1] + separation(layer[i - 1], layer[i]))
    right = list(desired)
    for i in range(n - 2, -1, -1):
        right[i] = min(right[i], right[i + 1] - separation(layer[i], layer[i + 1]))
    return [(a + b) / 2 for a, b in zip(left, right)]
