from __future__ import annotations

import numpy as np
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .exceptions import (
    DegreeSequenceError,
    GraphError,
    InvalidAdjacencyError,
)
from .graph import Graph, SwGraph
from .persistence import as_str, rng_from_json, rng_to_json
from .steps import (
    ConfigStep,
    ConfigStepKind,
    ErMStep,
    ErStep,
    ErStepKind,
    SwStep,
    SwStepKind,
)

RngLike = Union[None, int, np.random.Generator]
OrderParameter = Callable[["MarkovChain"], Any]

_ENSEMBLES: Dict[str, type] = {}


def _register(cls):
    _ENSEMBLES[cls.__name__] = cls
    return cls


# ---------------------------------------------------------------------------
# Common interface
# ---------------------------------------------------------------------------

class MarkovChain:
    """Reversible ensemble: a graph plus the random source that mutates it.

    Subclasses implement :meth:`randomize`, :meth:`m_step` and
    :meth:`undo_step`.  Everything else (batches, quiet variants, order
    parameter, snapshots) is shared.

    Parameters
    ----------
    rng : int, numpy.random.Generator or None
        Random source, or a seed for ``np.random.default_rng``.
    order_parameter : callable, optional
        ``order_parameter(ensemble) -> value``.  Defaults to the edge count.
        Use a module-level function if the ensemble has to be pickled
        (e.g. for :func:`netwl.parallel.run_windows`).
    """

    graph: Graph

    def __init__(self, rng: RngLike = None, order_parameter: Optional[OrderParameter] = None):
        self.rng: np.random.Generator = np.random.default_rng(rng)
        self._order_parameter = order_parameter

    # ---- to be provided by subclasses ------------------------------------

    def randomize(self) -> None:
        """Draw a fresh, uncorrelated configuration."""
        raise NotImplementedError

    def m_step(self):
        """Perform one elementary move and return its record."""
        raise NotImplementedError

    def undo_step(self, step):
        """Invert one move, checking the adjacency on the way."""
        raise NotImplementedError

    def undo_step_quiet(self, step) -> None:
        self.undo_step(step)

    # ---- batches ---------------------------------------------------------

    def propose_and_apply_moves(self, count: int) -> list:
        """Perform *count* moves; the returned list undoes them."""
        return [self.m_step() for _ in range(count)]

    m_steps = propose_and_apply_moves

    def apply_moves_quiet(self, count: int) -> None:
        for _ in range(count):
            self.m_step()

    def undo_moves(self, batch: Sequence) -> list:
        """Undo a batch in reverse order; returns the per-move results."""
        return [self.undo_step(step) for step in reversed(batch)]

    def undo_moves_quiet(self, batch: Sequence) -> None:
        for step in reversed(batch):
            self.undo_step_quiet(step)

    # ---- sampling helpers ------------------------------------------------

    def simple_sample(self, times: int, f: Callable[["MarkovChain"], None]) -> None:
        """Call ``f(self)`` then :meth:`randomize`, *times* times."""
        for _ in range(times):
            f(self)
            self.randomize()

    def simple_sample_vec(self, times: int, f: Callable[["MarkovChain"], Any]) -> list:
        result = []
        for _ in range(times):
            result.append(f(self))
            self.randomize()
        return result

    # ---- read access -----------------------------------------------------

    def order_parameter(self) -> Any:
        if self._order_parameter is None:
            return self.graph.edge_count
        return self._order_parameter(self)

    def set_order_parameter(self, order_parameter: Optional[OrderParameter]) -> None:
        self._order_parameter = order_parameter

    def container_iter(self):
        return self.graph.container_iter()

    def degree(self, index: int) -> int:
        return self.graph.degree(index)

    def sort_adj(self) -> None:
        self.graph.sort_adj()

    # ---- snapshots -------------------------------------------------------

    def _snapshot_extra(self) -> Dict[str, np.ndarray]:
        return {}

    def snapshot(self) -> Dict[str, np.ndarray]:
        """Arrays describing the full ensemble state, adjacency order included."""
        offsets, targets = self.graph.adjacency_arrays()
        data = {
            "ensemble": np.array(type(self).__name__),
            "offsets": offsets,
            "targets": targets,
            "rng_state": np.array(rng_to_json(self.rng)),
        }
        data.update(self._snapshot_extra())
        return data

    @staticmethod
    def from_snapshot(data, order_parameter: Optional[OrderParameter] = None) -> "MarkovChain":
        """Rebuild an ensemble from :meth:`snapshot` output (or a loaded npz)."""
        name = as_str(data["ensemble"])
        try:
            cls = _ENSEMBLES[name]
        except KeyError:
            raise ValueError(f"Unknown ensemble type '{name}' in snapshot.") from None
        ensemble = cls.__new__(cls)
        MarkovChain.__init__(ensemble, rng_from_json(as_str(data["rng_state"])), order_parameter)
        ensemble._restore(data)
        return ensemble

    def _restore(self, data) -> None:
        self.graph = Graph.from_adjacency_arrays(data["offsets"], data["targets"])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.graph!r})"


def _draw_two(rng: np.random.Generator, high: int) -> Tuple[int, int]:
    """Two distinct integers from ``[0, high)``."""
    first = int(rng.integers(high))
    second = int(rng.integers(high - 1))
    if second >= first:
        second += 1
    return first, second


# ---------------------------------------------------------------------------
# Erdős–Rényi, fixed connectivity
# ---------------------------------------------------------------------------

@_register
class ErEnsembleC(MarkovChain):
    """Erdős–Rényi graphs with edge probability ``p = c_target / (n - 1)``.

    A move draws a vertex pair and, with probability ``p``, tries to add the
    edge, otherwise tries to remove it.
    """

    def __init__(
        self, n: int, c_target: float, rng: RngLike = None,
        order_parameter: Optional[OrderParameter] = None,
    ):
        if n < 2:
            raise ValueError(f"ErEnsembleC needs at least 2 vertices, got {n}.")
        super().__init__(rng, order_parameter)
        self.graph = Graph(n)
        self.set_target_connectivity(c_target)
        self.randomize()

    @property
    def target_connectivity(self) -> float:
        return self._c_target

    @property
    def prob(self) -> float:
        return self._prob

    def set_target_connectivity(self, c_target: float) -> None:
        self._c_target = float(c_target)
        self._prob = self._c_target / (self.graph.vertex_count - 1)

    def randomize(self) -> None:
        self.graph.clear_edges()
        rows, cols = np.triu_indices(self.graph.vertex_count, k=1)
        keep = self.rng.random(len(rows)) <= self._prob
        for i, j in zip(rows[keep], cols[keep]):
            self.graph.add_edge(int(i), int(j))

    def m_step(self) -> ErStep:
        i, j = _draw_two(self.rng, self.graph.vertex_count)
        if self.rng.random() <= self._prob:
            if self.graph.is_adjacent(i, j):
                return ErStep(ErStepKind.NOTHING)
            self.graph.add_edge(i, j)
            return ErStep(ErStepKind.ADDED, i, j)
        if not self.graph.is_adjacent(i, j):
            return ErStep(ErStepKind.NOTHING)
        self.graph.remove_edge(i, j)
        return ErStep(ErStepKind.REMOVED, i, j)

    def undo_step(self, step: ErStep) -> ErStep:
        try:
            if step.kind is ErStepKind.ADDED:
                self.graph.remove_edge(step.i, step.j)
            elif step.kind is ErStepKind.REMOVED:
                self.graph.add_edge(step.i, step.j)
        except GraphError as e:
            raise InvalidAdjacencyError(f"Cannot undo {step}: {e}") from e
        return step

    def _snapshot_extra(self):
        return {"c_target": np.array(self._c_target)}

    def _restore(self, data) -> None:
        super()._restore(data)
        self.set_target_connectivity(float(data["c_target"]))


# ---------------------------------------------------------------------------
# Erdős–Rényi, fixed edge count
# ---------------------------------------------------------------------------

@_register
class ErEnsembleM(MarkovChain):
    """Erdős–Rényi graphs with exactly *m* edges.

    A move swaps one present edge for one absent edge.
    """

    def __init__(
        self, n: int, m: int, rng: RngLike = None,
        order_parameter: Optional[OrderParameter] = None,
    ):
        max_edges = n * (n - 1) // 2
        if m < 0 or m > max_edges:
            raise ValueError(
                f"A graph with {n} vertices has at most {max_edges} edges, "
                f"requested {m}."
            )
        super().__init__(rng, order_parameter)
        self.graph = Graph(n)
        self._m = int(m)
        rows, cols = np.triu_indices(n, k=1)
        self._all_edges: List[Tuple[int, int]] = list(zip(rows.tolist(), cols.tolist()))
        self._current: List[Tuple[int, int]] = []
        self._possible: List[Tuple[int, int]] = []
        self.randomize()

    @property
    def m(self) -> int:
        return self._m

    def randomize(self) -> None:
        self.graph.clear_edges()
        order = self.rng.permutation(len(self._all_edges))
        shuffled = [self._all_edges[k] for k in order]
        self._current = shuffled[:self._m]
        self._possible = shuffled[self._m:]
        for i, j in self._current:
            self.graph.add_edge(i, j)

    def _apply(self, step: ErMStep) -> None:
        self.graph.remove_edge(*step.removed)
        self.graph.add_edge(*step.inserted)
        self._current[step.i_removed], self._possible[step.i_inserted] = (
            self._possible[step.i_inserted], self._current[step.i_removed]
        )

    def m_step(self) -> ErMStep:
        if not self._current or not self._possible:
            return ErMStep(None, -1, None, -1)
        i = int(self.rng.integers(len(self._current)))
        j = int(self.rng.integers(len(self._possible)))
        step = ErMStep(self._current[i], i, self._possible[j], j)
        self._apply(step)
        return step

    def undo_step(self, step: ErMStep) -> ErMStep:
        if step.is_nothing:
            return step
        inverse = step.inverted()
        try:
            self._apply(inverse)
        except GraphError as e:
            raise InvalidAdjacencyError(f"Cannot undo {step}: {e}") from e
        return inverse

    def _snapshot_extra(self):
        return {
            "m": np.array(self._m),
            "current_edges": np.array(self._current, dtype=np.int64).reshape(-1, 2),
            "possible_edges": np.array(self._possible, dtype=np.int64).reshape(-1, 2),
        }

    def _restore(self, data) -> None:
        super()._restore(data)
        n = self.graph.vertex_count
        rows, cols = np.triu_indices(n, k=1)
        self._all_edges = list(zip(rows.tolist(), cols.tolist()))
        self._m = int(data["m"])
        self._current = [tuple(e) for e in data["current_edges"].tolist()]
        self._possible = [tuple(e) for e in data["possible_edges"].tolist()]


# ---------------------------------------------------------------------------
# Small world
# ---------------------------------------------------------------------------

@_register
class SwEnsemble(MarkovChain):
    """Small-world graphs built from a ring where every vertex roots two edges.

    Each root edge is, with probability *r_prob*, rewired to a uniformly
    drawn vertex, otherwise reset to its ring neighbour.  Every vertex keeps
    its two root edges, so the minimum degree is 2.

    Parameters
    ----------
    n : int
        Number of vertices, at least 5.
    r_prob : float
        Rewire probability.
    """

    def __init__(
        self, n: int, r_prob: float, rng: RngLike = None,
        order_parameter: Optional[OrderParameter] = None,
    ):
        if n < 5:
            raise ValueError(f"SwEnsemble needs at least 5 vertices, got {n}.")
        super().__init__(rng, order_parameter)
        self.graph = SwGraph(n)
        self.graph.init_ring_2()
        self.r_prob = r_prob
        self.randomize()

    def _draw_remaining(self, index: int, high: int) -> int:
        num = int(self.rng.integers(high))
        return num if num < index else num + 1

    def randomize_edge(self, index0: int, index1: int) -> SwStep:
        """Rewire (probability *r_prob*) or reset the root edge ``(index0, index1)``."""
        if self.rng.random() <= self.r_prob:
            target = self._draw_remaining(index0, self.graph.vertex_count - 1)
            return self.graph.rewire_edge(index0, index1, target)
        return self.graph.reset_edge(index0, index1)

    def randomize(self) -> None:
        for i in range(self.graph.vertex_count):
            first, second = self.graph.root_edges(i)
            self.randomize_edge(i, first)
            self.randomize_edge(i, second)

    def m_step(self) -> SwStep:
        i = int(self.rng.integers(self.graph.vertex_count))
        roots = self.graph.root_edges(i)
        return self.randomize_edge(i, roots[int(self.rng.integers(len(roots)))])

    def undo_step(self, step: SwStep) -> SwStep:
        if not step.changed:
            return step
        result = self.graph.rewire_edge(step.root, step.new, step.old)
        if result.kind is not SwStepKind.REWIRE:
            raise InvalidAdjacencyError(f"Cannot undo {step}: got {result}.")
        return result

    def _snapshot_extra(self):
        return {
            "r_prob": np.array(self.r_prob),
            "origins": self.graph.origin_array(),
        }

    def _restore(self, data) -> None:
        self.graph = SwGraph.from_adjacency_arrays(
            data["offsets"], data["targets"], data["origins"]
        )
        self.r_prob = float(data["r_prob"])


# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------

@_register
class ConfigurationModel(MarkovChain):
    """Simple graphs with a prescribed degree sequence.

    A move picks two edges ``(a0, a1)`` and ``(b0, b1)`` and swaps their
    endpoints into ``(a0, b0)`` and ``(a1, b1)``; moves that would create a
    self loop or a double edge are rejected.  The degree sequence never
    changes.

    Raises
    ------
    DegreeSequenceError
        The degree sequence has fewer than two entries, a degree of at least
        ``len - 1``, or an odd sum.
    """

    def __init__(
        self, degree_vec: Sequence[int], rng: RngLike = None,
        order_parameter: Optional[OrderParameter] = None,
    ):
        degree_vec = np.asarray(degree_vec, dtype=np.int64)
        if not self.degree_vec_is_valid(degree_vec):
            raise DegreeSequenceError(
                f"Degree sequence {degree_vec.tolist()} cannot be realized."
            )
        super().__init__(rng, order_parameter)
        self._set_degree_vec(degree_vec)
        self.graph = Graph(len(degree_vec))
        self.randomize()

    @classmethod
    def from_const(
        cls, constant: int, size: int, rng: RngLike = None,
        order_parameter: Optional[OrderParameter] = None,
    ) -> "ConfigurationModel":
        return cls(np.full(size, constant, dtype=np.int64), rng, order_parameter)

    @classmethod
    def from_graph(
        cls, graph: Graph, rng: RngLike = None,
        order_parameter: Optional[OrderParameter] = None,
    ) -> "ConfigurationModel":
        return cls(graph.degree_vec(), rng, order_parameter)

    @staticmethod
    def degree_vec_is_valid(degree_vec) -> bool:
        degree_vec = np.asarray(degree_vec)
        n = len(degree_vec)
        if n <= 1:
            return False
        if np.any(degree_vec < 0) or np.any(degree_vec >= n - 1):
            return False
        return int(degree_vec.sum()) % 2 == 0

    @property
    def degree_vec(self) -> np.ndarray:
        return self._degree_vec.copy()

    def _set_degree_vec(self, degree_vec: np.ndarray) -> None:
        self._degree_vec = degree_vec
        self._edge_halves = np.repeat(np.arange(len(degree_vec)), degree_vec)

    def swap_degree_vec(self, degree_vec: Sequence[int]) -> np.ndarray:
        """Replace the degree sequence (same length) and redraw the graph."""
        degree_vec = np.asarray(degree_vec, dtype=np.int64)
        if len(degree_vec) != len(self._degree_vec):
            raise DegreeSequenceError(
                f"Degree sequence length {len(degree_vec)} != {len(self._degree_vec)}."
            )
        if not self.degree_vec_is_valid(degree_vec):
            raise DegreeSequenceError(
                f"Degree sequence {degree_vec.tolist()} cannot be realized."
            )
        old = self._degree_vec
        self._set_degree_vec(degree_vec)
        self.randomize()
        return old

    def _try_pairing(self) -> bool:
        """Pair shuffled edge halves; False on a double edge or dead end."""
        self.graph.clear_edges()
        halves = self.rng.permutation(self._edge_halves).tolist()
        while halves:
            node1 = halves.pop()
            k = len(halves) - 1
            while k >= 0 and halves[k] == node1:
                k -= 1
            if k < 0:
                return False
            node2 = halves[k]
            halves[k] = halves[-1]
            halves.pop()
            if self.graph.is_adjacent(node1, node2):
                return False
            self.graph.add_edge(node1, node2)
        return True

    def randomize(self) -> None:
        while not self._try_pairing():
            pass

    def m_step(self) -> ConfigStep:
        if len(self._edge_halves) < 2:
            return ConfigStep(ConfigStepKind.REJECTED)
        while True:
            p, q = self.rng.choice(len(self._edge_halves), size=2, replace=False)
            v0, v1 = int(self._edge_halves[p]), int(self._edge_halves[q])
            if v0 != v1:
                break
        adj0, adj1 = self.graph.neighbors(v0), self.graph.neighbors(v1)
        edge_1 = (v0, adj0[int(self.rng.integers(len(adj0)))])
        edge_2 = (v1, adj1[int(self.rng.integers(len(adj1)))])

        if edge_1[1] == edge_2[1]:
            return ConfigStep(ConfigStepKind.REJECTED)
        if self.graph.is_adjacent(edge_1[0], edge_2[0]):
            return ConfigStep(ConfigStepKind.REJECTED)
        if self.graph.is_adjacent(edge_1[1], edge_2[1]):
            return ConfigStep(ConfigStepKind.REJECTED)

        self.graph.add_edge(edge_1[0], edge_2[0])
        self.graph.add_edge(edge_1[1], edge_2[1])
        self.graph.remove_edge(*edge_1)
        self.graph.remove_edge(*edge_2)
        return ConfigStep(ConfigStepKind.SWAPPED, edge_1, edge_2)

    def undo_step(self, step: ConfigStep) -> ConfigStep:
        if step.kind is ConfigStepKind.REJECTED:
            return step
        edge_1, edge_2 = step.edge_1, step.edge_2
        try:
            self.graph.add_edge(*edge_2)
            self.graph.add_edge(*edge_1)
            self.graph.remove_edge(edge_1[1], edge_2[1])
            self.graph.remove_edge(edge_1[0], edge_2[0])
        except GraphError as e:
            raise InvalidAdjacencyError(f"Cannot undo {step}: {e}") from e
        return step

    def _snapshot_extra(self):
        return {"degree_vec": self._degree_vec.copy()}

    def _restore(self, data) -> None:
        super()._restore(data)
        self._set_degree_vec(np.asarray(data["degree_vec"], dtype=np.int64))
