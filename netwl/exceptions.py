"""
Exception hierarchy for netwl.

Every exception derives from :class:`NetWlError` and from the builtin that
best describes it (``ValueError`` for rejected input, ``RuntimeError`` for
failed runs, ``IndexError`` for out-of-range lookups), so callers can catch
either the specific class, the netwl base, or the builtin.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


class NetWlError(Exception):
    """Base class of all netwl errors."""


# ---------------------------------------------------------------------------
# Histogram
# ---------------------------------------------------------------------------

class HistogramError(NetWlError):
    """Base class of histogram construction and lookup errors."""


class NoBinsError(HistogramError, ValueError):
    """A histogram needs at least one bin (two borders)."""


class IntervalWidthZeroError(HistogramError, ValueError):
    """Borders are not strictly increasing, nothing can hit a bin."""


class InvalidValueError(HistogramError, ValueError):
    """NaN or infinite border."""


class ModuloError(HistogramError, ValueError):
    """The requested interval cannot be split into bins of equal width."""


class OutOfRangeError(HistogramError, IndexError):
    """Value (or bin index) lies outside of the histogram."""


# ---------------------------------------------------------------------------
# Graph and ensembles
# ---------------------------------------------------------------------------

class GraphError(NetWlError):
    """Base class of adjacency errors."""


class EdgeExistsError(GraphError, ValueError):
    pass


class EdgeDoesNotExistError(GraphError, ValueError):
    pass


class SelfLoopError(GraphError, ValueError):
    pass


class DegreeSequenceError(GraphError, ValueError):
    """Degree sequence cannot be realized by a simple graph."""


class EnsembleInvariantError(NetWlError, RuntimeError):
    """An ensemble-internal invariant was broken.

    Signals a defect, not bad input: the adjacency of an ensemble is no
    longer consistent with the moves that were applied to it.
    """


class InvalidAdjacencyError(EnsembleInvariantError):
    """A move referenced an edge that is not present in the adjacency."""


# ---------------------------------------------------------------------------
# Simulation state
# ---------------------------------------------------------------------------

class InvalidStepSizeError(NetWlError, ValueError):
    """Step size has to be a positive integer."""


class InvalidTemperatureError(NetWlError, ValueError):
    """Temperature has to be finite and non-zero."""


class EnergyMismatchError(NetWlError, RuntimeError):
    """Ensemble energy differs from the energy stored in a resumed state."""


# ---------------------------------------------------------------------------
# Wang-Landau
# ---------------------------------------------------------------------------

class WangLandauError(NetWlError):
    """Base class of Wang-Landau sampler errors."""


class InvalidMinMaxTrialStepsError(WangLandauError, ValueError):
    """``trial_step_min <= trial_step_max`` has to hold."""


class InvalidLogFThresholdError(WangLandauError, ValueError):
    """``log_f_threshold`` has to be finite and positive."""


class InvalidBestofError(WangLandauError, ValueError):
    """``min_best_of_count`` has to lie in ``[1, max_step - min_step + 1]``."""


class CheckRefineEveryZeroError(WangLandauError, ValueError):
    """``check_refine_every`` has to be at least 1."""


class InvalidFlatnessError(WangLandauError, ValueError):
    """Flatness tolerance has to lie in ``[0, 1]``."""


class InvalidLogFError(WangLandauError, ValueError):
    """Initial ``log_f`` has to be finite and positive."""


class InvalidStepGoalError(WangLandauError, ValueError):
    """``step_goal`` has to be at least 1."""


class InvalidMixedPeriodError(WangLandauError, ValueError):
    """The mixed heuristic needs ``0 < mid < period``."""


class InvalidSamplesPerTrialError(WangLandauError, ValueError):
    """``samples_per_trial`` has to be at least 1."""


class NotInitializedError(WangLandauError, RuntimeError):
    """One of the ``init_*`` heuristics has to succeed before sampling."""


class InitFailedError(WangLandauError, RuntimeError):
    """Step limit exhausted before the ensemble entered the histogram.

    The sampled interval may be unreachable from the chosen start.
    """


class NotEnoughStatisticsError(WangLandauError, RuntimeError):
    """Some trial step sizes have not been tried yet."""


class EstimatedStatisticError(WangLandauError, RuntimeError):
    """Statistics are still being gathered; ``estimate`` is provisional."""

    def __init__(self, estimate: np.ndarray, message: Optional[str] = None):
        self.estimate = estimate
        super().__init__(
            message or "Still gathering statistics, estimate is provisional."
        )


# ---------------------------------------------------------------------------
# Entropic sampling
# ---------------------------------------------------------------------------

class EntropicError(NetWlError):
    """Base class of entropic sampling errors."""


class InvalidWangLandauError(EntropicError, ValueError):
    """The Wang-Landau sampler was never initialized."""


# ---------------------------------------------------------------------------
# Glue
# ---------------------------------------------------------------------------

class GlueError(NetWlError):
    """Base class of gluing errors."""


class EmptyListError(GlueError, ValueError):
    pass


class BorderCreationError(GlueError, ValueError):
    """The reference histogram could not provide its borders."""


class AlignmentError(GlueError, ValueError):
    """A window's borders do not align with the reference borders."""


class OutOfBoundsError(GlueError, IndexError):
    """A window reaches beyond the reference histogram."""


class NoOverlapError(GlueError, ValueError):
    """Two neighbouring windows do not share any bin."""


# ---------------------------------------------------------------------------
# Heatmap
# ---------------------------------------------------------------------------

class HeatmapError(NetWlError):
    """Base class of heatmap errors."""


class HeatmapXError(HeatmapError, IndexError):
    """The width value lies outside the width histogram."""


class HeatmapYError(HeatmapError, IndexError):
    """The height value lies outside the height histogram."""


class HeatmapDimensionError(HeatmapError, ValueError):
    """Heatmaps of different shape cannot be combined."""
