import numpy as np
import pytest

from netwl import Graph, SwGraph
from netwl.exceptions import (
    EdgeDoesNotExistError,
    EdgeExistsError,
    InvalidAdjacencyError,
    SelfLoopError,
)
from netwl.steps import SwStepKind


def test_add_remove():
    g = Graph(4)
    g.add_edge(0, 1)
    g.add_edge(1, 2)
    assert g.edge_count == 2
    assert g.is_adjacent(1, 0)
    assert g.degree_vec().tolist() == [1, 2, 1, 0]
    with pytest.raises(EdgeExistsError):
        g.add_edge(1, 0)
    with pytest.raises(SelfLoopError):
        g.add_edge(3, 3)
    with pytest.raises(IndexError):
        g.add_edge(0, 4)
    g.remove_edge(0, 1)
    assert g.edge_count == 1
    with pytest.raises(EdgeDoesNotExistError):
        g.remove_edge(0, 1)
    assert g.average_degree() == 0.5


def test_equality_after_sort():
    a, b = Graph(3), Graph(3)
    a.add_edge(0, 1)
    a.add_edge(0, 2)
    b.add_edge(0, 2)
    b.add_edge(0, 1)
    assert a != b
    a.sort_adj()
    b.sort_adj()
    assert a == b
    assert a.edges() == [(0, 1), (0, 2)]


def test_adjacency_arrays_roundtrip():
    g = Graph(5)
    for i, j in [(0, 3), (4, 1), (2, 3), (1, 3)]:
        g.add_edge(i, j)
    offsets, targets = g.adjacency_arrays()
    assert Graph.from_adjacency_arrays(offsets, targets) == g


def test_ring_2():
    g = SwGraph(6)
    g.init_ring_2()
    assert g.edge_count == 12
    assert all(g.degree(i) == 4 for i in range(6))
    assert all(g.count_root(i) == 2 for i in range(6))
    assert sorted(g.root_edges(0)) == [1, 2]


def test_rewire_and_reset():
    g = SwGraph(6)
    g.init_ring_2()

    step = g.rewire_edge(0, 1, 3)
    assert step.kind is SwStepKind.REWIRE
    assert g.is_adjacent(0, 3) and not g.is_adjacent(0, 1)
    assert g.count_root(0) == 2
    assert g.edge_count == 12

    assert g.rewire_edge(0, 3, 2).kind is SwStepKind.BLOCKED
    assert g.rewire_edge(0, 3, 3).kind is SwStepKind.NOTHING

    step = g.reset_edge(0, 3)
    assert step.kind is SwStepKind.RESET
    assert step.new == 1
    assert g.is_adjacent(0, 1)
    assert g.reset_edge(0, 1).kind is SwStepKind.NOTHING


def test_rewire_invalid_adjacency():
    g = SwGraph(6)
    g.init_ring_2()
    with pytest.raises(InvalidAdjacencyError):
        g.rewire_edge(0, 3, 4)
    # (1, 0) exists but is rooted at 0
    with pytest.raises(InvalidAdjacencyError):
        g.rewire_edge(1, 0, 4)
    with pytest.raises(InvalidAdjacencyError):
        g.reset_edge(1, 0)


def test_sw_arrays_roundtrip():
    g = SwGraph(7)
    g.init_ring_2()
    g.rewire_edge(2, 3, 6)
    offsets, targets = g.adjacency_arrays()
    restored = SwGraph.from_adjacency_arrays(offsets, targets, g.origin_array())
    assert restored == g
    assert restored.copy() == g
    assert np.all(g.origin_array() >= -1)
