"""
Gluing of overlapping Wang-Landau windows into one density of states.

Every window estimate of ``ln g(E)`` is only known up to an additive
constant.  ``glue_wl`` puts all windows on one scale by matching the curves
of neighbouring windows over their overlap, merges them and normalizes the
result to a probability distribution (in log10).
"""

from __future__ import annotations

import sys
import warnings
import numpy as np
from scipy.special import logsumexp
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Tuple, Union

from .exceptions import (
    AlignmentError,
    BorderCreationError,
    EmptyListError,
    HistogramError,
    NoOverlapError,
    OutOfBoundsError,
)
from .histogram import Histogram
from .persistence import npz_path
from .wang_landau import WangLandauResult

_LN10 = np.log(10.0)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------

@dataclass
class GlueResult:
    """Glued, normalized log10 density of states.

    Attributes
    ----------
    glued_log10_density : np.ndarray
        One value per bin of the reference histogram, normalized such that
        ``sum(10**v)`` over covered bins is 1.  ``NaN`` where no window
        covers a bin.
    borders : np.ndarray
        Borders of the reference histogram, length ``bin_count + 1``.
    log10_curves : list of np.ndarray
        Per-window log10 densities after the height correction, on the same
        scale as the glued curve.  Windows are in left-border order.
    left_indices : np.ndarray
        For every window, the reference bin index of its first bin.
    """

    glued_log10_density: np.ndarray
    borders: np.ndarray
    log10_curves: List[np.ndarray]
    left_indices: np.ndarray

    @property
    def bin_count(self) -> int:
        return len(self.glued_log10_density)

    @property
    def n_windows(self) -> int:
        return len(self.log10_curves)

    @property
    def right_indices(self) -> np.ndarray:
        """Exclusive reference bin index past the last bin of each window."""
        return self.left_indices + np.array(
            [len(c) for c in self.log10_curves], dtype=np.int64
        )

    @property
    def bin_centers(self) -> np.ndarray:
        b = self.borders.astype(np.float64)
        return 0.5 * (b[:-1] + b[1:])

    def probability(self) -> np.ndarray:
        """``10**glued``, zero for uncovered bins."""
        p = np.zeros(self.bin_count, dtype=np.float64)
        covered = np.isfinite(self.glued_log10_density)
        p[covered] = 10.0 ** self.glued_log10_density[covered]
        return p

    def log_density_base(self, base: float) -> np.ndarray:
        return self.glued_log10_density * (_LN10 / np.log(base))

    def curve_on_grid(self, index: int) -> np.ndarray:
        """Window curve *index* padded with ``NaN`` to the reference bins."""
        full = np.full(self.bin_count, np.nan, dtype=np.float64)
        left = int(self.left_indices[index])
        curve = self.log10_curves[index]
        full[left:left + len(curve)] = curve
        return full

    # -- output ------------------------------------------------------------

    def write(self, stream: Optional[TextIO] = None) -> None:
        """Write the glued curve and all window curves as a text table.

        Columns: left and right bin border, glued log10 density, one column
        per window.  Bins a curve does not cover read ``NONE``.
        """
        stream = sys.stdout if stream is None else stream
        header = ["#bin_left", "bin_right", "glued_log_density"]
        header += [f"curve_{k}" for k in range(self.n_windows)]
        stream.write(" ".join(header) + "\n")

        grid = [self.curve_on_grid(k) for k in range(self.n_windows)]
        for i in range(self.bin_count):
            row = [_fmt_border(self.borders[i]), _fmt_border(self.borders[i + 1])]
            row.append(_fmt_value(self.glued_log10_density[i]))
            row += [_fmt_value(curve[i]) for curve in grid]
            stream.write(" ".join(row) + "\n")

    def plot(
        self,
        savefn: Optional[Union[str, Path]] = None,
        figsize: Tuple[float, float] = (8, 6),
        cmap: str = "tab10",
    ):
        """Plot the glued curve on top of the height-corrected windows.

        Parameters
        ----------
        savefn : str or Path, optional
            Base filename (without extension).  The figure is saved as
            ``<savefn>.pdf``, ``<savefn>.png``, and ``<savefn>.svg``.
            If *None* the figure is shown.
        figsize : tuple of float
            Figure size in inches.
        cmap : str
            Matplotlib colormap name used for window colours.

        Returns
        -------
        fig : matplotlib.figure.Figure
        ax : matplotlib.axes.Axes
        """
        import matplotlib.pyplot as plt

        centers = self.bin_centers
        cm = plt.get_cmap(cmap)
        K = self.n_windows

        fig, ax = plt.subplots(figsize=figsize)
        for k in range(K):
            ax.plot(
                centers, self.curve_on_grid(k),
                color=cm(k / max(K, 1)), alpha=0.6, linewidth=0.8,
                label=f"Window {k}",
            )
        ax.plot(
            centers, self.glued_log10_density,
            color="black", linewidth=2.0, linestyle="--", label="Glued",
        )
        ax.set_xlabel(r"$E$", fontsize=13)
        ax.set_ylabel(r"$\log_{10} P(E)$", fontsize=13)
        ax.legend(fontsize=7, ncol=max(1, (K + 2) // 6), loc="best", framealpha=0.8)
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
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

    # -- serialization -----------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Save the result to a single ``.npz`` file."""
        data = {
            "glued_log10_density": self.glued_log10_density,
            "borders": self.borders,
            "left_indices": self.left_indices,
            "n_windows": np.array(self.n_windows),
        }
        for k, curve in enumerate(self.log10_curves):
            data[f"curve_{k}"] = curve
        np.savez_compressed(str(Path(path)), **data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "GlueResult":
        """Load a ``GlueResult`` from a ``.npz`` file."""
        with np.load(str(npz_path(path)), allow_pickle=False) as f:
            n_windows = int(f["n_windows"])
            return cls(
                glued_log10_density=f["glued_log10_density"],
                borders=f["borders"],
                log10_curves=[f[f"curve_{k}"] for k in range(n_windows)],
                left_indices=f["left_indices"],
            )

    def __repr__(self) -> str:
        return f"GlueResult(n_windows={self.n_windows}, bin_count={self.bin_count})"


def _fmt_border(value) -> str:
    if isinstance(value, (np.integer, int)):
        return str(int(value))
    return f"{value:e}"


def _fmt_value(value: float) -> str:
    return f"{value:e}" if np.isfinite(value) else "NONE"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _as_result(window) -> WangLandauResult:
    if isinstance(window, WangLandauResult):
        return window
    return window.result()


def _reference_borders(reference) -> np.ndarray:
    if isinstance(reference, Histogram):
        return reference.borders
    try:
        return Histogram(reference).borders
    except HistogramError as err:
        raise BorderCreationError(
            f"Cannot build reference borders: {err}"
        ) from err


def _align(borders: np.ndarray, ref: np.ndarray, index: int) -> int:
    """Reference bin index of the first bin of a window with *borders*."""
    left, right = borders[0], borders[-1]
    if left < ref[0] or right > ref[-1]:
        raise OutOfBoundsError(
            f"Window {index} [{left}, {right}) exceeds the reference "
            f"interval [{ref[0]}, {ref[-1]})."
        )
    l = int(np.searchsorted(ref, left))
    if ref[l] != left:
        raise AlignmentError(
            f"Left border {left} of window {index} is not a reference border."
        )
    r = l + len(borders) - 1
    if r > len(ref) - 1:
        raise OutOfBoundsError(
            f"Window {index} has more bins than the reference offers after {left}."
        )
    if ref[r] != right:
        raise AlignmentError(
            f"Window {index} has {len(borders) - 1} bins but its right border "
            f"{right} does not match reference border {ref[r]}."
        )
    if not np.array_equal(ref[l:r + 1], borders):
        raise AlignmentError(
            f"Interior borders of window {index} differ from the reference."
        )
    return l


def _height_offsets(curves: List[np.ndarray], lefts: List[int]) -> np.ndarray:
    """Cumulative vertical offset of every curve relative to the first one."""
    z = np.zeros(len(curves), dtype=np.float64)
    for k in range(1, len(curves)):
        prev, cur = curves[k - 1], curves[k]
        l_prev, l_cur = lefts[k - 1], lefts[k]
        lm = max(l_prev, l_cur)
        rm = min(l_prev + len(prev), l_cur + len(cur))
        if lm >= rm:
            raise NoOverlapError(f"Windows {k - 1} and {k} do not overlap.")

        diff = prev[lm - l_prev:rm - l_prev] - cur[lm - l_cur:rm - l_cur]
        finite = np.isfinite(diff)
        if not finite.any():
            raise NoOverlapError(
                f"Windows {k - 1} and {k} share no bin with finite values."
            )
        if not finite.all():
            warnings.warn(
                f"Overlap of windows {k - 1} and {k}: {int((~finite).sum())} "
                "non-finite entries excluded from the alignment.",
                stacklevel=3,
            )
        z[k] = diff[finite].mean() + z[k - 1]
    return z


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def glue_wl(
    windows: List,
    reference: Union[Histogram, Sequence, np.ndarray],
    sort: bool = True,
) -> GlueResult:
    """Glue Wang-Landau window results into one normalized log10 density.

    Parameters
    ----------
    windows : list
        ``WangLandauResult`` objects, or samplers exposing ``result()``.
        With ``sort=True`` the list is sorted in place by left border;
        otherwise a sorted copy is used.
    reference : Histogram or array-like
        Histogram (or its borders) spanning the full domain.  Every window
        must use an aligned, contiguous subsequence of its borders.
    sort : bool
        Whether to sort *windows* in place.

    Returns
    -------
    GlueResult

    Raises
    ------
    EmptyListError
        *windows* is empty.
    BorderCreationError
        *reference* does not form a valid histogram.
    AlignmentError
        A window's borders do not coincide with reference borders.
    OutOfBoundsError
        A window reaches outside the reference interval.
    NoOverlapError
        Two neighbouring windows share no bin with finite values.

    Notes
    -----
    Bins covered by several windows get the unweighted mean of the
    height-corrected window values (in log space).
    """
    if len(windows) == 0:
        raise EmptyListError("Cannot glue an empty list of windows.")

    def _left(w):
        return _as_result(w).left

    if sort:
        windows.sort(key=_left)
        ordered = windows
    else:
        ordered = sorted(windows, key=_left)
    results = [_as_result(w) for w in ordered]

    ref = _reference_borders(reference)
    lefts = [_align(np.asarray(res.borders), ref, k) for k, res in enumerate(results)]

    # log10, shifted to max 0 for conditioning
    curves = []
    for res in results:
        curve = np.asarray(res.log_density, dtype=np.float64) / _LN10
        finite = np.isfinite(curve)
        if finite.any():
            curve = curve - curve[finite].max()
        curves.append(curve)

    z = _height_offsets(curves, lefts)
    curves = [curve + z[k] for k, curve in enumerate(curves)]

    bin_count = len(ref) - 1
    total = np.zeros(bin_count, dtype=np.float64)
    count = np.zeros(bin_count, dtype=np.int64)
    for left, curve in zip(lefts, curves):
        finite = np.isfinite(curve)
        idx = np.arange(left, left + len(curve))[finite]
        total[idx] += curve[finite]
        count[idx] += 1

    glued = np.full(bin_count, np.nan, dtype=np.float64)
    covered = count > 0
    glued[covered] = total[covered] / count[covered]

    norm = logsumexp(glued[covered] * _LN10) / _LN10
    glued[covered] -= norm
    curves = [curve - norm for curve in curves]

    return GlueResult(
        glued_log10_density=glued,
        borders=ref.copy(),
        log10_curves=curves,
        left_indices=np.array(lefts, dtype=np.int64),
    )
