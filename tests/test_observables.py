import pytest

from netwl import ErEnsembleC, Graph, SwEnsemble, observables


def _path(n):
    g = Graph(n)
    for i in range(n - 1):
        g.add_edge(i, i + 1)
    return g


def test_complete_graph():
    ensemble = ErEnsembleC(20, 19.0, rng=3)
    assert observables.edge_count(ensemble) == 190
    assert observables.is_connected(ensemble)
    assert observables.largest_component_size(ensemble) == 20
    assert observables.diameter(ensemble) == 1
    assert observables.q_core(ensemble, 19) == 20
    assert observables.transitivity(ensemble) == pytest.approx(1.0)
    assert observables.largest_biconnected_component_size(ensemble) == 20
    assert observables.average_degree(ensemble) == pytest.approx(19.0)


def test_empty_graph():
    g = Graph(5)
    assert observables.is_connected(g) is False
    assert observables.diameter(g) is None
    assert observables.q_core(g, 1) is None
    assert observables.largest_component_size(g) == 1
    assert observables.connected_components(g) == [1, 1, 1, 1, 1]
    assert observables.largest_biconnected_component_size(g) == 0
    assert observables.is_connected(Graph(0)) is None
    assert observables.largest_component_size(Graph(0)) == 0


def test_path_graph():
    g = _path(6)
    assert observables.diameter(g) == 5
    assert observables.q_core(g, 2) is None
    assert observables.largest_biconnected_component_size(g) == 2
    g.remove_edge(2, 3)
    assert observables.diameter(g) is None
    assert observables.connected_components(g) == [3, 3]


def test_small_world_is_two_core():
    ensemble = SwEnsemble(20, 0.3, rng=0)
    assert observables.q_core(ensemble, 2) == 20
