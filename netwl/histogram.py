from __future__ import annotations

import numpy as np
from typing import List, Optional, Sequence, Union

from .exceptions import (
    IntervalWidthZeroError,
    InvalidValueError,
    ModuloError,
    NoBinsError,
    OutOfRangeError,
)

Number = Union[int, float, np.integer, np.floating]


# ---------------------------------------------------------------------------
# Histogram
# ---------------------------------------------------------------------------

class Histogram:
    """One-dimensional histogram over a fixed partition of the order parameter.

    Bin ``i`` covers the half-open interval ``[borders[i], borders[i+1])``.
    The partition is fixed at construction; only the visit counts change.

    Parameters
    ----------
    borders : array_like
        Strictly increasing, finite bin borders (at least two).  Integer
        borders give an integer histogram, everything else is stored as
        ``float64``.

    Raises
    ------
    NoBinsError
        Fewer than two borders.
    InvalidValueError
        NaN or infinite border.
    IntervalWidthZeroError
        Borders are not strictly increasing.

    Notes
    -----
    Use :meth:`integer` for integer-valued order parameters with an
    inclusive right end (the usual case for edge counts, component sizes
    and similar graph observables).
    """

    def __init__(self, borders: Union[Sequence[Number], np.ndarray]):
        borders = np.asarray(borders)
        if borders.ndim != 1 or len(borders) < 2:
            raise NoBinsError(
                f"A histogram needs at least two borders, got shape {borders.shape}."
            )
        if np.issubdtype(borders.dtype, np.integer):
            borders = borders.astype(np.int64)
        else:
            borders = borders.astype(np.float64)
            if not np.all(np.isfinite(borders)):
                raise InvalidValueError("Histogram borders have to be finite.")
        if np.any(np.diff(borders) <= 0):
            raise IntervalWidthZeroError(
                "Histogram borders have to be strictly increasing."
            )
        self._borders: np.ndarray = borders
        self._borders.setflags(write=False)
        self._hist: np.ndarray = np.zeros(len(borders) - 1, dtype=np.int64)

    # ---- alternative constructors ----------------------------------------

    @classmethod
    def uniform(cls, left: float, right: float, bins: int) -> "Histogram":
        """Equal-width float bins covering ``[left, right)``."""
        if bins < 1:
            raise NoBinsError(f"bins has to be at least 1, got {bins}.")
        if not (np.isfinite(left) and np.isfinite(right)):
            raise InvalidValueError("left and right have to be finite.")
        if right <= left:
            raise IntervalWidthZeroError(
                f"right ({right}) has to be larger than left ({left})."
            )
        borders = left + (right - left) / bins * np.arange(bins + 1, dtype=np.float64)
        borders[-1] = right
        return cls(borders)

    @classmethod
    def integer(cls, left: int, right: int, inclusive: bool = True) -> "Histogram":
        """One bin per integer from *left* to *right*.

        With ``inclusive=True`` the value *right* gets its own bin, i.e. the
        borders are ``left, left+1, ..., right+1``.
        """
        left, right = int(left), int(right)
        stop = right + 1 if inclusive else right
        if stop <= left:
            raise IntervalWidthZeroError(
                f"Empty integer interval [{left}, {right}] (inclusive={inclusive})."
            )
        return cls(np.arange(left, stop + 1, dtype=np.int64))

    @classmethod
    def integer_binned(cls, left: int, right: int, bins: int) -> "Histogram":
        """Equal-width integer bins covering ``left ... right`` (inclusive)."""
        left, right = int(left), int(right)
        if bins < 1:
            raise NoBinsError(f"bins has to be at least 1, got {bins}.")
        if right < left:
            raise IntervalWidthZeroError(
                f"right ({right}) has to be at least left ({left})."
            )
        size = right - left + 1
        if size % bins != 0:
            raise ModuloError(
                f"{size} values cannot be split into {bins} bins of equal width."
            )
        width = size // bins
        return cls(left + width * np.arange(bins + 1, dtype=np.int64))

    # ---- introspection ---------------------------------------------------

    @property
    def borders(self) -> np.ndarray:
        """Read-only view of the bin borders, length ``bin_count + 1``."""
        return self._borders

    @property
    def hist(self) -> np.ndarray:
        """Visit counts per bin (a copy)."""
        return self._hist.copy()

    @property
    def bin_count(self) -> int:
        return len(self._hist)

    @property
    def left(self) -> Number:
        return self._borders[0]

    @property
    def right(self) -> Number:
        """Right (exclusive) border of the last bin."""
        return self._borders[-1]

    @property
    def is_integer(self) -> bool:
        return np.issubdtype(self._borders.dtype, np.integer)

    @property
    def interval_length(self) -> Number:
        return self.right - self.left

    @property
    def bin_centers(self) -> np.ndarray:
        return (self._borders[:-1] + self._borders[1:]) / 2.0

    @property
    def total(self) -> int:
        """Sum of all visit counts."""
        return int(self._hist.sum())

    # ---- binning ---------------------------------------------------------

    def is_inside(self, value: Optional[Number]) -> bool:
        if value is None:
            return False
        return bool(self._borders[0] <= value < self._borders[-1])

    def not_inside(self, value: Optional[Number]) -> bool:
        return not self.is_inside(value)

    def bin_of(self, value: Number) -> int:
        """Index of the bin containing *value*.

        Raises
        ------
        OutOfRangeError
            *value* is outside ``[left, right)`` or not finite.
        """
        if value is None or not np.isfinite(value):
            raise OutOfRangeError(f"Value {value} is not a finite number.")
        if not self.is_inside(value):
            raise OutOfRangeError(
                f"Value {value} outside of histogram [{self.left}, {self.right})."
            )
        return int(np.searchsorted(self._borders, value, side="right")) - 1

    def record(self, value: Number) -> int:
        """Count *value*; returns the index of the incremented bin."""
        index = self.bin_of(value)
        self._hist[index] += 1
        return index

    def count_index(self, index: int) -> None:
        """Increment bin *index* directly."""
        if index < 0 or index >= self.bin_count:
            raise OutOfRangeError(
                f"Bin index {index} out of range [0, {self.bin_count})."
            )
        self._hist[index] += 1

    def count_multiple_index(self, index: int, count: int) -> None:
        """Add *count* visits to bin *index*."""
        if index < 0 or index >= self.bin_count:
            raise OutOfRangeError(
                f"Bin index {index} out of range [0, {self.bin_count})."
            )
        self._hist[index] += count

    def reset(self) -> None:
        self._hist[:] = 0

    def any_bin_zero(self) -> bool:
        return bool(np.any(self._hist == 0))

    def is_flat(self, flatness: float = 0.0) -> bool:
        """Flatness check used by the Wang-Landau refinement.

        True if every bin was visited and the smallest count is at least
        ``flatness * mean``.  ``flatness=0`` only requires every bin to be
        visited.
        """
        if self.any_bin_zero():
            return False
        return bool(self._hist.min() >= flatness * self._hist.mean())

    # ---- distances used by the initialization heuristics -----------------

    def distance(self, value: Optional[Number]) -> float:
        """Distance of *value* to the histogram interval.

        0 inside, ``inf`` for ``None`` or non-finite values.  Values at or
        beyond the exclusive right border get a strictly positive distance.
        """
        if value is None or not np.isfinite(value):
            return np.inf
        if self.is_inside(value):
            return 0.0
        if value < self.left:
            return float(self.left - value)
        if self.is_integer:
            return float(value - self.right + 1)
        return float(value - self.right) + float(np.spacing(self.right))

    def interval_distance_overlap(self, value: Optional[Number], overlap: int) -> int:
        """Coarse distance counted in overlapping sub-intervals.

        The histogram is thought of as split into *overlap* intervals of
        ``bin_count // overlap`` bins.  Returns 0 inside, otherwise
        ``1 + d // bins_per_interval`` where ``d`` is the distance in bin
        widths.  A greedy walk on this distance accepts any step that stays
        within the same coarse interval.
        """
        if value is None or not np.isfinite(value):
            return np.iinfo(np.int64).max
        if self.is_inside(value):
            return 0
        overlap = max(1, int(overlap))
        bins_per_interval = max(1, self.bin_count // overlap)
        width = float(self.interval_length) / self.bin_count
        if value < self.left:
            dist = int(np.floor((self.left - value) / width))
        else:
            dist = int(np.floor((value - self.right) / width))
        return 1 + dist // bins_per_interval

    # ---- partitioning ----------------------------------------------------

    def sub_histogram(self, left_index: int, right_index: int) -> "Histogram":
        """Window histogram over bins ``left_index ... right_index - 1``.

        The window reuses the exact reference borders, so it aligns with
        *self* when gluing.
        """
        if not 0 <= left_index < right_index <= self.bin_count:
            raise OutOfRangeError(
                f"Invalid bin range [{left_index}, {right_index}) for a "
                f"histogram with {self.bin_count} bins."
            )
        return Histogram(self._borders[left_index:right_index + 1].copy())

    def overlapping_partition(self, n: int, overlap: int) -> List["Histogram"]:
        """Split into *n* windows that share roughly *overlap* bins.

        Window ``c`` covers bins ``[c * s / (n + overlap),
        (c + overlap + 1) * s / (n + overlap)]`` with ``s = bin_count - 1``.
        Neighbouring windows always overlap by at least one bin.

        Raises
        ------
        NoBinsError
            ``n < 1``.
        OutOfRangeError
            More windows requested than the histogram has bins.
        """
        if n < 1:
            raise NoBinsError(f"n has to be at least 1, got {n}.")
        if n > self.bin_count:
            raise OutOfRangeError(
                f"Cannot split {self.bin_count} bins into {n} windows."
            )
        overlap = max(0, int(overlap))
        size = self.bin_count - 1
        denom = n + overlap
        windows = []
        for c in range(n):
            left = (c * size) // denom
            right = ((c + overlap + 1) * size) // denom
            if c == n - 1:
                right = size
            right = max(right, left + 1) if self.bin_count > 1 else right
            windows.append(self.sub_histogram(left, min(right, size) + 1))
        return windows

    # ---- misc ------------------------------------------------------------

    def copy(self) -> "Histogram":
        new = Histogram(self._borders.copy())
        new._hist[:] = self._hist
        return new

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Histogram):
            return NotImplemented
        return (
            self._borders.dtype == other._borders.dtype
            and np.array_equal(self._borders, other._borders)
            and np.array_equal(self._hist, other._hist)
        )

    def __repr__(self) -> str:
        kind = "int" if self.is_integer else "float"
        return (
            f"Histogram({kind}, [{self.left}, {self.right}), "
            f"bins={self.bin_count}, counts={self.total})"
        )
