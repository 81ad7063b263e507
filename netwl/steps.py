"""
Move records of the ensembles.

Each record carries exactly the data needed to invert one elementary
mutation.  Batches of moves are plain lists, replayed in reverse order for
undo.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ErStepKind(Enum):
    ADDED = "added"
    REMOVED = "removed"
    NOTHING = "nothing"


@dataclass(frozen=True)
class ErStep:
    """Edge ``(i, j)`` was added, removed, or nothing happened."""

    kind: ErStepKind
    i: int = -1
    j: int = -1


@dataclass(frozen=True)
class ErMStep:
    """Swap of ``current[i_removed]`` (edge *removed*) with
    ``possible[i_inserted]`` (edge *inserted*)."""

    removed: Optional[Tuple[int, int]]
    i_removed: int
    inserted: Optional[Tuple[int, int]]
    i_inserted: int

    @property
    def is_nothing(self) -> bool:
        return self.removed is None

    def inverted(self) -> "ErMStep":
        return ErMStep(self.inserted, self.i_removed, self.removed, self.i_inserted)


class SwStepKind(Enum):
    REWIRE = "rewire"
    RESET = "reset"
    NOTHING = "nothing"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class SwStep:
    """Root edge of *root* moved from vertex *old* to vertex *new*.

    Both ``REWIRE`` and ``RESET`` are undone by rewiring the root edge from
    *new* back to *old*.  ``NOTHING`` and ``BLOCKED`` changed nothing.
    """

    kind: SwStepKind
    root: int = -1
    old: int = -1
    new: int = -1

    @property
    def changed(self) -> bool:
        return self.kind in (SwStepKind.REWIRE, SwStepKind.RESET)


class ConfigStepKind(Enum):
    SWAPPED = "swapped"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ConfigStep:
    """Endpoint swap of ``edge_1 = (a0, a1)`` and ``edge_2 = (b0, b1)``.

    After the swap the graph contains ``(a0, b0)`` and ``(a1, b1)`` instead.
    """

    kind: ConfigStepKind
    edge_1: Tuple[int, int] = (-1, -1)
    edge_2: Tuple[int, int] = (-1, -1)
