from __future__ import annotations

import numpy as np
from typing import Iterator, List, Optional, Tuple, TYPE_CHECKING

from .exceptions import (
    EdgeDoesNotExistError,
    EdgeExistsError,
    InvalidAdjacencyError,
    SelfLoopError,
)
from .steps import SwStep, SwStepKind

if TYPE_CHECKING:
    import networkx as nx


# ---------------------------------------------------------------------------
# Plain adjacency-list graph
# ---------------------------------------------------------------------------

class Graph:
    """Undirected simple graph on vertices ``0 ... n-1``.

    Adjacency is stored as one Python list per vertex.  Removing an edge
    swaps the last neighbour into the freed slot, so adjacency order is not
    stable under add/remove sequences; call :meth:`sort_adj` before
    comparing two graphs.

    Parameters
    ----------
    n : int
        Number of vertices.
    """

    def __init__(self, n: int):
        if n < 0:
            raise ValueError(f"Vertex count has to be non-negative, got {n}.")
        self._adj: List[List[int]] = [[] for _ in range(n)]
        self._edge_count: int = 0

    # ---- size ------------------------------------------------------------

    @property
    def vertex_count(self) -> int:
        return len(self._adj)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def average_degree(self) -> float:
        if self.vertex_count == 0:
            return float("nan")
        return 2.0 * self._edge_count / self.vertex_count

    # ---- access ----------------------------------------------------------

    def degree(self, index: int) -> int:
        return len(self._adj[index])

    def degree_vec(self) -> np.ndarray:
        return np.array([len(a) for a in self._adj], dtype=np.int64)

    def neighbors(self, index: int) -> Tuple[int, ...]:
        return tuple(self._adj[index])

    def is_adjacent(self, i: int, j: int) -> bool:
        return j in self._adj[i]

    def container_iter(self) -> Iterator[Tuple[int, ...]]:
        """Iterate over the adjacency tuple of every vertex."""
        for adj in self._adj:
            yield tuple(adj)

    def edges(self) -> List[Tuple[int, int]]:
        """All edges as ``(i, j)`` with ``i < j``, sorted."""
        return sorted(
            (i, j) for i, adj in enumerate(self._adj) for j in adj if i < j
        )

    # ---- mutation --------------------------------------------------------

    def _check_pair(self, i: int, j: int) -> None:
        n = self.vertex_count
        if not (0 <= i < n and 0 <= j < n):
            raise IndexError(f"Vertex pair ({i}, {j}) out of range [0, {n}).")
        if i == j:
            raise SelfLoopError(f"Self loop at vertex {i} is not allowed.")

    def add_edge(self, i: int, j: int) -> None:
        self._check_pair(i, j)
        if self.is_adjacent(i, j):
            raise EdgeExistsError(f"Edge ({i}, {j}) already exists.")
        self._push(i, j)
        self._edge_count += 1

    def remove_edge(self, i: int, j: int) -> None:
        self._check_pair(i, j)
        if not self.is_adjacent(i, j):
            raise EdgeDoesNotExistError(f"Edge ({i}, {j}) does not exist.")
        self._swap_remove(i, self._adj[i].index(j))
        self._swap_remove(j, self._adj[j].index(i))
        self._edge_count -= 1

    def _push(self, i: int, j: int) -> None:
        self._adj[i].append(j)
        self._adj[j].append(i)

    def _swap_remove(self, vertex: int, position: int) -> None:
        adj = self._adj[vertex]
        adj[position] = adj[-1]
        adj.pop()

    def clear_edges(self) -> None:
        for adj in self._adj:
            adj.clear()
        self._edge_count = 0

    def sort_adj(self) -> None:
        for adj in self._adj:
            adj.sort()

    # ---- conversion ------------------------------------------------------

    def copy(self) -> "Graph":
        new = self.__class__.__new__(self.__class__)
        new._adj = [list(a) for a in self._adj]
        new._edge_count = self._edge_count
        return new

    def adjacency_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Flattened adjacency ``(offsets, targets)`` preserving order."""
        offsets = np.zeros(self.vertex_count + 1, dtype=np.int64)
        offsets[1:] = np.cumsum([len(a) for a in self._adj])
        targets = np.array(
            [j for adj in self._adj for j in adj], dtype=np.int64
        )
        return offsets, targets

    @classmethod
    def from_adjacency_arrays(cls, offsets: np.ndarray, targets: np.ndarray) -> "Graph":
        graph = cls(len(offsets) - 1)
        graph._adj = [
            [int(t) for t in targets[offsets[i]:offsets[i + 1]]]
            for i in range(len(offsets) - 1)
        ]
        graph._edge_count = int(len(targets) // 2)
        return graph

    def to_networkx(self) -> "nx.Graph":
        import networkx as nx

        g = nx.Graph()
        g.add_nodes_from(range(self.vertex_count))
        g.add_edges_from(self.edges())
        return g

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph) or type(other) is not type(self):
            return NotImplemented
        return self._adj == other._adj

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(vertices={self.vertex_count}, "
            f"edges={self.edge_count})"
        )


# ---------------------------------------------------------------------------
# Small-world topology
# ---------------------------------------------------------------------------

class SwGraph(Graph):
    """Graph whose edges remember the vertex they were originally wired to.

    Every edge is owned by one endpoint (its *root*).  The owner's side of
    the edge stores ``origin[i][k]``, the vertex it was created for; the
    other side stores ``None`` (a *loose* link).  Root edges can be rewired
    to a different target or reset to their origin.
    """

    def __init__(self, n: int):
        super().__init__(n)
        self._origin: List[List[Optional[int]]] = [[] for _ in range(n)]

    def _push(self, i: int, j: int) -> None:
        self._adj[i].append(j)
        self._origin[i].append(j)
        self._adj[j].append(i)
        self._origin[j].append(None)

    def _swap_remove(self, vertex: int, position: int) -> None:
        super()._swap_remove(vertex, position)
        origin = self._origin[vertex]
        origin[position] = origin[-1]
        origin.pop()

    def clear_edges(self) -> None:
        super().clear_edges()
        for origin in self._origin:
            origin.clear()

    def sort_adj(self) -> None:
        for v in range(self.vertex_count):
            pairs = sorted(zip(self._adj[v], self._origin[v]), key=lambda p: p[0])
            self._adj[v] = [p[0] for p in pairs]
            self._origin[v] = [p[1] for p in pairs]

    def root_edges(self, index: int) -> List[int]:
        """Current targets of the edges rooted at vertex *index*."""
        return [
            to for to, orig in zip(self._adj[index], self._origin[index])
            if orig is not None
        ]

    def count_root(self, index: int) -> int:
        return sum(1 for orig in self._origin[index] if orig is not None)

    def init_ring_2(self) -> None:
        """Ring where every vertex roots edges to its next two successors."""
        self.clear_edges()
        n = self.vertex_count
        for i in range(n):
            self.add_edge(i, (i + 1) % n)
            self.add_edge(i, (i + 2) % n)

    # ---- root edge moves -------------------------------------------------

    def rewire_edge(self, index0: int, index1: int, index2: int):
        """Move the root edge ``(index0, index1)`` to ``(index0, index2)``.

        Returns the resulting :class:`~netwl.steps.SwStep`.
        """
        if index1 == index2:
            return SwStep(SwStepKind.NOTHING)
        adj0 = self._adj[index0]
        if index1 not in adj0:
            raise InvalidAdjacencyError(
                f"Cannot rewire missing edge ({index0}, {index1})."
            )
        if index2 in adj0:
            return SwStep(SwStepKind.BLOCKED)
        pos0 = adj0.index(index1)
        if self._origin[index0][pos0] is None:
            raise InvalidAdjacencyError(
                f"Edge ({index0}, {index1}) is not rooted at {index0}."
            )
        self._swap_remove(index1, self._adj[index1].index(index0))
        adj0[pos0] = index2
        self._adj[index2].append(index0)
        self._origin[index2].append(None)
        return SwStep(SwStepKind.REWIRE, index0, index1, index2)

    def reset_edge(self, index0: int, index1: int):
        """Reset the root edge ``(index0, index1)`` to its original target."""
        adj0 = self._adj[index0]
        if index1 not in adj0:
            raise InvalidAdjacencyError(
                f"Cannot reset missing edge ({index0}, {index1})."
            )
        pos0 = adj0.index(index1)
        origin = self._origin[index0][pos0]
        if origin is None:
            raise InvalidAdjacencyError(
                f"Edge ({index0}, {index1}) is not rooted at {index0}."
            )
        if origin == index1:
            return SwStep(SwStepKind.NOTHING)
        if origin in adj0:
            return SwStep(SwStepKind.BLOCKED)
        adj0[pos0] = origin
        self._swap_remove(index1, self._adj[index1].index(index0))
        self._adj[origin].append(index0)
        self._origin[origin].append(None)
        return SwStep(SwStepKind.RESET, index0, index1, origin)

    # ---- conversion ------------------------------------------------------

    def copy(self) -> "SwGraph":
        new = super().copy()
        new._origin = [list(o) for o in self._origin]
        return new

    def origin_array(self) -> np.ndarray:
        """Flattened origins aligned with :meth:`adjacency_arrays`; -1 = loose."""
        return np.array(
            [-1 if o is None else o for origin in self._origin for o in origin],
            dtype=np.int64,
        )

    @classmethod
    def from_adjacency_arrays(
        cls, offsets: np.ndarray, targets: np.ndarray,
        origins: Optional[np.ndarray] = None,
    ) -> "SwGraph":
        graph = super().from_adjacency_arrays(offsets, targets)
        if origins is None:
            raise ValueError("SwGraph needs the edge origins to be restored.")
        graph._origin = [
            [None if o < 0 else int(o) for o in origins[offsets[i]:offsets[i + 1]]]
            for i in range(len(offsets) - 1)
        ]
        return graph

    def __eq__(self, other: object) -> bool:
        result = super().__eq__(other)
        if result is NotImplemented or not result:
            return result
        return self._origin == other._origin
