"""
Two-dimensional histograms for correlating two order parameters.

A heatmap spans the bins of a *width* histogram (x) and a *height*
histogram (y).  Entry ``(x, y)`` is stored at ``heatmap[y, x]``, so row
``y`` of the array is one line of constant height value.  The two
histograms keep the projections of all hits.
"""

from __future__ import annotations

import sys
import numpy as np
from pathlib import Path
from typing import Callable, Optional, TextIO, Tuple, Union

from .exceptions import (
    HeatmapDimensionError,
    HeatmapXError,
    HeatmapYError,
    OutOfRangeError,
)
from .histogram import Histogram, Number
from .persistence import npz_path


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------

class _HeatmapBase:
    _dtype = np.int64

    def __init__(self, width_hist: Histogram, height_hist: Histogram):
        self._hist_width = width_hist.copy()
        self._hist_height = height_hist.copy()
        self._hist_width.reset()
        self._hist_height.reset()
        self._heatmap = np.zeros(
            (height_hist.bin_count, width_hist.bin_count), dtype=self._dtype
        )
        self._misses = 0

    # ---- introspection ---------------------------------------------------

    @property
    def width(self) -> int:
        return self._heatmap.shape[1]

    @property
    def height(self) -> int:
        return self._heatmap.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        """``(height, width)``, the shape of :attr:`heatmap`."""
        return self._heatmap.shape

    @property
    def width_projection(self) -> Histogram:
        """Hits per width bin."""
        return self._hist_width

    @property
    def height_projection(self) -> Histogram:
        """Hits per height bin."""
        return self._hist_height

    @property
    def heatmap(self) -> np.ndarray:
        """The entries, shape ``(height, width)`` (a copy)."""
        return self._heatmap.copy()

    def get(self, x: int, y: int):
        """Entry at ``(x, y)``, ``None`` if out of range."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self._heatmap[y, x].item()
        return None

    def get_row(self, y: int) -> Optional[np.ndarray]:
        if 0 <= y < self.height:
            return self._heatmap[y].copy()
        return None

    def total(self) -> int:
        """Number of successful calls to :meth:`count`."""
        return self._hist_width.total

    def total_misses(self) -> int:
        """Number of value pairs that fell outside the heatmap."""
        return self._misses

    # ---- counting --------------------------------------------------------

    def _index(self, width_val: Number, height_val: Number) -> Tuple[int, int]:
        try:
            x = self._hist_width.bin_of(width_val)
        except OutOfRangeError as err:
            self._misses += 1
            raise HeatmapXError(str(err)) from err
        try:
            y = self._hist_height.record(height_val)
        except OutOfRangeError as err:
            self._misses += 1
            raise HeatmapYError(str(err)) from err
        self._hist_width.count_index(x)
        return x, y

    def reset(self) -> None:
        self._hist_width.reset()
        self._hist_height.reset()
        self._heatmap[:] = 0
        self._misses = 0

    def _check_shape(self, other: "_HeatmapBase") -> None:
        if self.shape != other.shape:
            raise HeatmapDimensionError(
                f"Cannot combine heatmaps of shape {self.shape} and {other.shape}."
            )

    def _add_projections(self, other: "_HeatmapBase") -> None:
        for i, c in enumerate(other._hist_width.hist):
            self._hist_width.count_multiple_index(i, int(c))
        for i, c in enumerate(other._hist_height.hist):
            self._hist_height.count_multiple_index(i, int(c))
        self._misses += other._misses

    def _derived(self, cls, values: np.ndarray, transpose: bool = False):
        new = cls.__new__(cls)
        if transpose:
            new._hist_width = self._hist_height.copy()
            new._hist_height = self._hist_width.copy()
            values = values.T
        else:
            new._hist_width = self._hist_width.copy()
            new._hist_height = self._hist_height.copy()
        new._heatmap = np.array(values, dtype=cls._dtype)
        new._misses = self._misses
        return new

    # ---- output ----------------------------------------------------------

    def write(self, stream: Optional[TextIO] = None) -> None:
        """Write one line per row (constant height), values space separated."""
        stream = sys.stdout if stream is None else stream
        for row in self._heatmap:
            stream.write(" ".join(str(v) for v in row.tolist()) + "\n")

    def plot(
        self,
        savefn: Optional[Union[str, Path]] = None,
        figsize: Tuple[float, float] = (7, 6),
        cmap: str = "viridis",
        xlabel: str = r"$x$",
        ylabel: str = r"$y$",
    ):
        """Show the heatmap on the border grid of both histograms.

        Parameters
        ----------
        savefn : str or Path, optional
            Base filename (without extension).  The figure is saved as
            ``<savefn>.pdf``, ``<savefn>.png``, and ``<savefn>.svg``.
            If *None* the figure is shown.
        figsize : tuple of float
            Figure size in inches.
        cmap : str
            Matplotlib colormap name.
        xlabel, ylabel : str
            Axis labels.

        Returns
        -------
        fig : matplotlib.figure.Figure
        ax : matplotlib.axes.Axes
        """
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=figsize)
        mesh = ax.pcolormesh(
            self._hist_width.borders, self._hist_height.borders,
            self._heatmap, cmap=cmap, shading="flat",
        )
        fig.colorbar(mesh, ax=ax)
        ax.set_xlabel(xlabel, fontsize=13)
        ax.set_ylabel(ylabel, fontsize=13)
        fig.tight_layout()

        if savefn is not None:
            savefn = Path(savefn)
            for ext in ("pdf", "png", "svg"):
                fig.savefig(
                    str(savefn.with_suffix(f".{ext}")),
                    transparent=True if ext in ("pdf", "svg") else False,
                    bbox_inches="tight",
                    dpi=300,
                )
            plt.close(fig)
        else:
            plt.show()

        return fig, ax

    # ---- serialization ---------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Save entries, projections and misses to a single ``.npz`` file."""
        np.savez_compressed(
            str(Path(path)),
            heatmap=self._heatmap,
            width_borders=self._hist_width.borders,
            width_hist=self._hist_width.hist,
            height_borders=self._hist_height.borders,
            height_hist=self._hist_height.hist,
            misses=np.array(self._misses),
        )

    @classmethod
    def load(cls, path: Union[str, Path]):
        with np.load(str(npz_path(path)), allow_pickle=False) as f:
            new = cls(Histogram(f["width_borders"]), Histogram(f["height_borders"]))
            for i, c in enumerate(f["width_hist"]):
                new._hist_width.count_multiple_index(i, int(c))
            for i, c in enumerate(f["height_hist"]):
                new._hist_height.count_multiple_index(i, int(c))
            new._heatmap[:] = f["heatmap"]
            new._misses = int(f["misses"])
        return new

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(width={self.width}, height={self.height}, "
            f"total={self.total()}, misses={self._misses})"
        )


# ---------------------------------------------------------------------------
# Hit counts
# ---------------------------------------------------------------------------

class Heatmap(_HeatmapBase):
    """Hit counts over pairs of values.

    Parameters
    ----------
    width_hist : Histogram
        Bins of the first value (x, columns).
    height_hist : Histogram
        Bins of the second value (y, rows).

    Notes
    -----
    Both histograms are copied and reset, so histograms that already
    contain counts can be passed in.
    """

    def count(self, width_val: Number, height_val: Number) -> Tuple[int, int]:
        """Count the pair; returns its bin coordinate ``(x, y)``.

        Raises
        ------
        HeatmapXError, HeatmapYError
            The value lies outside its histogram.  The miss is counted and
            nothing else changes.
        """
        x, y = self._index(width_val, height_val)
        self._heatmap[y, x] += 1
        return x, y

    def combine(self, other: "Heatmap") -> None:
        """Add all hits, projections and misses of *other*."""
        self._check_shape(other)
        self._heatmap += other._heatmap
        self._add_projections(other)

    def bins_hit(self) -> int:
        return int(np.count_nonzero(self._heatmap))

    def bins_not_hit(self) -> int:
        return self._heatmap.size - self.bins_hit()

    def transpose(self) -> "Heatmap":
        """Copy with width and height swapped."""
        return self._derived(Heatmap, self._heatmap, transpose=True)

    # ---- normalization ---------------------------------------------------

    def normalized(self) -> "FloatHeatmap":
        """Entries divided by :meth:`total`; all zeros if nothing was hit."""
        total = self.total()
        values = self._heatmap.astype(np.float64)
        if total > 0:
            values /= total
        return self._derived(FloatHeatmap, values)

    def normalized_columns(self) -> "FloatHeatmap":
        """Every hit column (constant x) sums to 1, empty columns stay 0."""
        values = self._heatmap.astype(np.float64)
        sums = values.sum(axis=0)
        hit = sums > 0
        values[:, hit] /= sums[hit]
        return self._derived(FloatHeatmap, values)

    def normalized_rows(self) -> "FloatHeatmap":
        """Every hit row (constant y) sums to 1, empty rows stay 0."""
        values = self._heatmap.astype(np.float64)
        sums = values.sum(axis=1)
        hit = sums > 0
        values[hit] /= sums[hit, None]
        return self._derived(FloatHeatmap, values)


# ---------------------------------------------------------------------------
# Weighted entries
# ---------------------------------------------------------------------------

class FloatHeatmap(_HeatmapBase):
    """Heatmap with float entries.

    Produced by the normalizations of :class:`Heatmap`, or filled directly
    with weighted hits via :meth:`count`.  :meth:`total` still counts hits,
    not the sum of the weights.
    """

    _dtype = np.float64

    def count(self, width_val: Number, height_val: Number, value: float) -> Tuple[int, int]:
        """Add *value* at the bin of the pair; see :meth:`Heatmap.count`."""
        x, y = self._index(width_val, height_val)
        self._heatmap[y, x] += value
        return x, y

    def combine(
        self,
        other: "FloatHeatmap",
        combine_fn: Callable[[np.ndarray, np.ndarray], np.ndarray] = np.add,
    ) -> None:
        """Set every entry to ``combine_fn(self, other)``.

        Projections and misses of *other* are added.
        """
        self._check_shape(other)
        self._heatmap = np.asarray(
            combine_fn(self._heatmap, other._heatmap), dtype=np.float64
        )
        self._add_projections(other)

    def transpose(self) -> "FloatHeatmap":
        return self._derived(FloatHeatmap, self._heatmap, transpose=True)

    def normalize_total(self) -> None:
        """Scale all entries to sum 1 (unchanged if they sum to 0)."""
        s = self._heatmap.sum()
        if s != 0:
            self._heatmap /= s

    def normalize_columns(self) -> None:
        sums = self._heatmap.sum(axis=0)
        nz = sums != 0
        self._heatmap[:, nz] /= sums[nz]

    def normalize_rows(self) -> None:
        sums = self._heatmap.sum(axis=1)
        nz = sums != 0
        self._heatmap[nz] /= sums[nz, None]
