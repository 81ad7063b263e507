"""
Order parameters computed from a graph.

Traversal-heavy quantities are delegated to ``networkx``.  Functions accept
a :class:`~netwl.graph.Graph` or an ensemble exposing ``.graph``; those that
have no meaningful value for a given graph return ``None`` (which the
samplers treat as a rejected configuration).
"""

from __future__ import annotations

from typing import Optional

import networkx as nx

from .graph import Graph


def _as_graph(obj) -> Graph:
    return obj if isinstance(obj, Graph) else obj.graph


def _nx(obj) -> nx.Graph:
    return _as_graph(obj).to_networkx()


def edge_count(obj) -> int:
    return _as_graph(obj).edge_count


def is_connected(obj) -> Optional[bool]:
    """``None`` for the empty graph, as connectivity is undefined there."""
    g = _as_graph(obj)
    if g.vertex_count == 0:
        return None
    return nx.is_connected(g.to_networkx())


def largest_component_size(obj) -> int:
    g = _as_graph(obj)
    if g.vertex_count == 0:
        return 0
    return max(len(c) for c in nx.connected_components(g.to_networkx()))


def connected_components(obj) -> list:
    """Component sizes in descending order."""
    return sorted(
        (len(c) for c in nx.connected_components(_nx(obj))), reverse=True
    )


def diameter(obj) -> Optional[int]:
    """Diameter, ``None`` if the graph is empty or disconnected."""
    g = _as_graph(obj)
    if g.vertex_count == 0:
        return None
    h = g.to_networkx()
    if not nx.is_connected(h):
        return None
    return int(nx.diameter(h))


def q_core(obj, q: int) -> Optional[int]:
    """Size of the q-core, ``None`` if it is empty."""
    h = _nx(obj)
    core = nx.k_core(h, k=q)
    size = core.number_of_nodes()
    return size if size > 0 else None


def largest_biconnected_component_size(obj) -> int:
    h = _nx(obj)
    sizes = [len(c) for c in nx.biconnected_components(h)]
    return max(sizes) if sizes else 0


def transitivity(obj) -> float:
    return float(nx.transitivity(_nx(obj)))


def average_degree(obj) -> float:
    return _as_graph(obj).average_degree()
