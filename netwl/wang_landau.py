from __future__ import annotations

import sys
import warnings
import numpy as np
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, TextIO, Union

from .ensembles import MarkovChain
from .exceptions import (
    CheckRefineEveryZeroError,
    EstimatedStatisticError,
    InitFailedError,
    InvalidBestofError,
    InvalidFlatnessError,
    InvalidLogFError,
    InvalidLogFThresholdError,
    InvalidMinMaxTrialStepsError,
    InvalidMixedPeriodError,
    InvalidSamplesPerTrialError,
    InvalidStepGoalError,
    InvalidStepSizeError,
    NotEnoughStatisticsError,
    NotInitializedError,
)
from .histogram import Histogram
from .persistence import as_str, npz_path

EnergyFn = Callable[[MarkovChain], Any]

_LOG10_E = np.log10(np.e)


class WangLandauMode(Enum):
    """Refinement rule of the modification factor ``log_f``.

    ``REFINE_ORIGINAL`` halves ``log_f`` whenever the histogram is flat
    (Wang and Landau 2001).  ``REFINE_1T`` sets ``log_f = bin_count / t``
    after every step (Belardinelli and Pereyra 2007).
    """

    REFINE_ORIGINAL = "refine_original"
    REFINE_1T = "refine_1t"


class WangLandauStatus(Enum):
    INITIALIZING = "initializing"
    SAMPLING = "sampling"
    REFINING = "refining"
    FINISHED = "finished"
    INIT_FAILED = "init_failed"


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------

@dataclass
class WangLandauResult:
    """Log density of states of one sampled window.

    Attributes
    ----------
    borders : np.ndarray
        Bin borders of the window histogram, length ``bin_count + 1``.
    log_density : np.ndarray
        Natural log of the (unnormalized) density of states per bin.
    step_counter : int
        Number of steps performed.
    step_goal : int or None
        Step budget of the run, ``None`` if unbounded.
    mode : str
        ``"refine_original"``, ``"refine_1t"`` or ``"entropic"``.
    log_f : float
        Final modification factor (0 for entropic sampling).
    hist : np.ndarray
        Visit counts since the last histogram reset.
    """

    borders: np.ndarray
    log_density: np.ndarray
    step_counter: int
    step_goal: Optional[int]
    mode: str
    log_f: float
    hist: np.ndarray

    @property
    def left(self):
        return self.borders[0]

    @property
    def right(self):
        return self.borders[-1]

    @property
    def bin_count(self) -> int:
        return len(self.log_density)

    def histogram(self) -> Histogram:
        """Empty histogram over the window's partition."""
        return Histogram(self.borders.copy())

    def log_density_base10(self) -> np.ndarray:
        return self.log_density * _LOG10_E

    def log_density_base(self, base: float) -> np.ndarray:
        return self.log_density / np.log(base)

    def result(self) -> "WangLandauResult":
        return self

    # -- serialization -----------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Save the result to a single ``.npz`` file."""
        np.savez_compressed(
            str(Path(path)),
            borders=self.borders,
            log_density=self.log_density,
            step_counter=np.array(self.step_counter),
            step_goal=np.array(-1 if self.step_goal is None else self.step_goal),
            mode=np.array(self.mode),
            log_f=np.array(self.log_f),
            hist=self.hist,
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "WangLandauResult":
        """Load a ``WangLandauResult`` from a ``.npz`` file."""
        with np.load(str(npz_path(path)), allow_pickle=False) as f:
            step_goal = int(f["step_goal"])
            return cls(
                borders=f["borders"],
                log_density=f["log_density"],
                step_counter=int(f["step_counter"]),
                step_goal=None if step_goal < 0 else step_goal,
                mode=as_str(f["mode"]),
                log_f=float(f["log_f"]),
                hist=f["hist"],
            )


# ---------------------------------------------------------------------------
# Wang-Landau with fixed step size
# ---------------------------------------------------------------------------

class WangLandau:
    """Wang-Landau sampler of the density of states of an ensemble.

    Each Wang-Landau step performs ``step_size`` moves on the ensemble and
    accepts the result with probability ``exp(ln g(E_old) - ln g(E_new))``.
    Moves leaving the histogram, or whose energy is ``None``, are rejected
    and undone.  Either way the bin of the current state is counted and its
    log density raised by ``log_f``.

    In ``REFINE_ORIGINAL`` mode, every ``check_refine_every`` steps the
    histogram is checked for flatness; if flat, ``log_f`` is halved and the
    histogram cleared.  Once the halved value falls below
    ``bin_count / t`` the sampler switches to ``REFINE_1T`` for good.

    Parameters
    ----------
    ensemble : MarkovChain
        Ensemble to explore; its current state is the starting point for
        the ``init_*`` heuristics.
    histogram : Histogram
        Partition of the sampled energy window.  The sampler owns it.
    log_f_threshold : float
        Run is converged once ``log_f <= log_f_threshold``.  Finite and > 0.
    step_size : int
        Moves per Wang-Landau step.
    check_refine_every : int
        Interval (in steps) of the flatness check, at least 1.
    rng : int, Generator or None
        Random source of the acceptance decisions.
    energy_fn : callable, optional
        ``energy_fn(ensemble) -> value or None``.  Defaults to
        ``ensemble.order_parameter()``.
    mode : WangLandauMode
        Starting refinement mode.
    step_goal : int, optional
        Hard step budget; the run finishes once it is reached.
    flatness : float
        Histogram is flat if every bin was hit and the smallest count is at
        least ``flatness * mean``.  Must lie in ``[0, 1]``.
    log_f : float
        Initial modification factor.

    References
    ----------
    F. Wang and D. P. Landau, Phys. Rev. Lett. 86, 2050 (2001).
    R. E. Belardinelli and V. D. Pereyra, Phys. Rev. E 75, 046701 (2007).
    """

    def __init__(
        self,
        ensemble: MarkovChain,
        histogram: Histogram,
        log_f_threshold: float = 1e-6,
        step_size: int = 1,
        check_refine_every: int = 1000,
        rng: Union[None, int, np.random.Generator] = None,
        energy_fn: Optional[EnergyFn] = None,
        mode: WangLandauMode = WangLandauMode.REFINE_ORIGINAL,
        step_goal: Optional[int] = None,
        flatness: float = 0.0,
        log_f: float = 1.0,
    ):
        self._check_log_f_threshold(log_f_threshold)
        if check_refine_every < 1:
            raise CheckRefineEveryZeroError(
                f"check_refine_every has to be at least 1, got {check_refine_every}."
            )
        if step_size < 1:
            raise InvalidStepSizeError(f"Step size has to be at least 1, got {step_size}.")
        self._check_flatness(flatness)
        self._check_step_goal(step_goal)
        if not (np.isfinite(log_f) and log_f > 0):
            raise InvalidLogFError(
                f"Initial log_f has to be finite and positive, got {log_f}."
            )

        self.ensemble = ensemble
        self.rng: np.random.Generator = np.random.default_rng(rng)
        self.energy_fn = energy_fn
        self._hist: Histogram = histogram
        self._step_size: int = step_size

        # settings
        self._log_f_threshold: float = float(log_f_threshold)
        self._check_refine_every: int = check_refine_every
        self._step_goal: Optional[int] = step_goal
        self._flatness: float = float(flatness)

        # progress
        self._mode: WangLandauMode = mode
        self._log_f_initial: float = float(log_f)
        self._log_f: float = float(log_f)
        self._log_density: np.ndarray = np.zeros(histogram.bin_count, dtype=np.float64)
        self._step_count: int = 0
        self._refinements: int = 0
        self._old_energy: Any = None
        self._old_bin: Optional[int] = None
        self._init_failed: bool = False

        self._accepted_total = 0
        self._rejected_total = 0
        self._accepted_current = 0
        self._rejected_current = 0

    # ---- validation ------------------------------------------------------

    @staticmethod
    def _check_log_f_threshold(log_f_threshold: float) -> None:
        if not np.isfinite(log_f_threshold) or log_f_threshold <= 0:
            raise InvalidLogFThresholdError(
                f"log_f_threshold has to be finite and positive, got {log_f_threshold}."
            )

    @staticmethod
    def _check_flatness(flatness: float) -> None:
        if not 0.0 <= flatness <= 1.0:
            raise InvalidFlatnessError(f"flatness has to lie in [0, 1], got {flatness}.")

    @staticmethod
    def _check_step_goal(step_goal: Optional[int]) -> None:
        if step_goal is not None and step_goal < 1:
            raise InvalidStepGoalError(
                f"step_goal has to be at least 1, got {step_goal}."
            )

    # ---- settings --------------------------------------------------------

    def set_log_f_threshold(self, log_f_threshold: float) -> float:
        """Set a new threshold, returns the old one."""
        self._check_log_f_threshold(log_f_threshold)
        old = self._log_f_threshold
        self._log_f_threshold = float(log_f_threshold)
        return old

    def set_step_goal(self, step_goal: Optional[int]) -> None:
        self._check_step_goal(step_goal)
        self._step_goal = step_goal

    def set_flatness(self, flatness: float) -> None:
        self._check_flatness(flatness)
        self._flatness = float(flatness)

    # ---- introspection ---------------------------------------------------

    @property
    def log_f(self) -> float:
        return self._log_f

    @property
    def log_f_threshold(self) -> float:
        return self._log_f_threshold

    @property
    def mode(self) -> WangLandauMode:
        return self._mode

    @property
    def step_counter(self) -> int:
        return self._step_count

    @property
    def step_goal(self) -> Optional[int]:
        return self._step_goal

    @property
    def step_size(self) -> int:
        return self._step_size

    @property
    def check_refine_every(self) -> int:
        return self._check_refine_every

    @property
    def flatness(self) -> float:
        return self._flatness

    @property
    def refinements(self) -> int:
        """Number of times ``log_f`` was halved on a flat histogram."""
        return self._refinements

    @property
    def hist(self) -> Histogram:
        return self._hist

    @property
    def energy(self) -> Any:
        """Energy of the current state, ``None`` before initialization."""
        return self._old_energy

    @property
    def current_bin(self) -> Optional[int]:
        """Bin of the current state, ``None`` before initialization."""
        return self._old_bin

    @property
    def is_initialized(self) -> bool:
        return self._old_bin is not None

    @property
    def status(self) -> WangLandauStatus:
        if self._init_failed:
            return WangLandauStatus.INIT_FAILED
        if not self.is_initialized:
            return WangLandauStatus.INITIALIZING
        if self.is_finished():
            return WangLandauStatus.FINISHED
        if self._mode is WangLandauMode.REFINE_1T:
            return WangLandauStatus.REFINING
        return WangLandauStatus.SAMPLING

    def log_density(self) -> np.ndarray:
        """Current estimate of ``ln g(E)`` (unnormalized), a copy."""
        return self._log_density.copy()

    def log_density_base10(self) -> np.ndarray:
        return self._log_density * _LOG10_E

    def log_density_base(self, base: float) -> np.ndarray:
        return self._log_density / np.log(base)

    def is_converged(self) -> bool:
        return self._log_f <= self._log_f_threshold

    def is_finished(self) -> bool:
        """``log_f`` reached the threshold or the step budget is used up."""
        if self.is_converged():
            return True
        return self._step_goal is not None and self._step_count >= self._step_goal

    def fraction_accepted_total(self) -> float:
        total = self._accepted_total + self._rejected_total
        return self._accepted_total / total if total else float("nan")

    def fraction_accepted_current(self) -> float:
        total = self._accepted_current + self._rejected_current
        return self._accepted_current / total if total else float("nan")

    def write_log(self, stream: Optional[TextIO] = None) -> None:
        """Write a ``#key: value`` progress summary to *stream* (stdout by default)."""
        stream = sys.stdout if stream is None else stream
        stream.write(
            f"#Acceptance prob_total: {self.fraction_accepted_total()}\n"
            f"#Acceptance prob current: {self.fraction_accepted_current()}\n"
            f"#total_steps: {self._step_count}\n"
            f"#log_f: {self._log_f:e}\n"
            f"#Current_mode: {self._mode.value}\n"
            f"#total_steps_accepted: {self._accepted_total}\n"
            f"#total_steps_rejected: {self._rejected_total}\n"
            f"#current_accepted_steps: {self._accepted_current}\n"
            f"#current_rejected_steps: {self._rejected_current}\n"
        )

    def result(self) -> WangLandauResult:
        return WangLandauResult(
            borders=self._hist.borders.copy(),
            log_density=self._log_density.copy(),
            step_counter=self._step_count,
            step_goal=self._step_goal,
            mode=self._mode.value,
            log_f=self._log_f,
            hist=self._hist.hist,
        )

    # ---- hooks for the adaptive sampler ----------------------------------

    def _get_stepsize(self) -> int:
        return self._step_size

    def _count_accepted(self, size: int) -> None:
        self._accepted_current += 1
        self._accepted_total += 1

    def _count_rejected(self, size: int) -> None:
        self._rejected_current += 1
        self._rejected_total += 1

    def _on_refine(self, switched: bool) -> None:
        self._accepted_current = 0
        self._rejected_current = 0

    def _on_1t_step(self) -> None:
        pass

    def _end_init(self) -> None:
        self._old_bin = self._hist.bin_of(self._old_energy)

    # ---- internals -------------------------------------------------------

    def _energy(self) -> Any:
        if self.energy_fn is None:
            return self.ensemble.order_parameter()
        return self.energy_fn(self.ensemble)

    def _log_f_1_t(self) -> float:
        return self._hist.bin_count / self._step_count

    def _check_refine(self) -> None:
        if self._mode is WangLandauMode.REFINE_1T:
            self._log_f = min(self._log_f, self._log_f_1_t())
            self._on_1t_step()
            return
        if (
            self._step_count % self._check_refine_every == 0
            and self._hist.is_flat(self._flatness)
        ):
            ref_1_t = self._log_f_1_t()
            self._log_f *= 0.5
            self._refinements += 1
            switched = self._log_f < ref_1_t
            if switched:
                self._log_f = ref_1_t
                self._mode = WangLandauMode.REFINE_1T
            self._on_refine(switched)
            self._hist.reset()

    # ---- initialization --------------------------------------------------

    def _fail_init(self) -> None:
        self._init_failed = True
        raise InitFailedError(
            "Step limit exhausted before the ensemble entered the histogram "
            f"[{self._hist.left}, {self._hist.right})."
        )

    def _init(self, step_limit: Optional[int]) -> None:
        self._init_failed = False
        self._old_bin = None
        self._old_energy = self._energy()
        if self._old_energy is not None:
            return
        count = 0
        while step_limit is None or count < step_limit:
            size = self._get_stepsize()
            self.ensemble.apply_moves_quiet(size)
            self._old_energy = self._energy()
            if self._old_energy is not None:
                self._count_accepted(size)
                return
            self._count_rejected(size)
            count += 1
        self._fail_init()

    def _greedy_helper(self, old_distance, distance_fn):
        size = self._get_stepsize()
        steps = self.ensemble.m_steps(size)
        energy = self._energy()
        if energy is not None:
            distance = distance_fn(energy)
            if distance <= old_distance:
                self._old_energy = energy
                self._count_accepted(size)
                return distance
        self._count_rejected(size)
        self.ensemble.undo_moves_quiet(steps)
        return old_distance

    def _walk(self, distance_fn, zero, step_limit: Optional[int]) -> None:
        old_distance = distance_fn(self._old_energy)
        count = 0
        while old_distance != zero:
            old_distance = self._greedy_helper(old_distance, distance_fn)
            if step_limit is not None:
                if count == step_limit:
                    self._fail_init()
                count += 1
        self._end_init()

    def init_greedy_heuristic(self, step_limit: Optional[int] = None) -> None:
        """Find a starting point inside the histogram.

        Performs Markov steps and keeps those that do not increase the
        distance to the histogram interval.  Leaves the ensemble untouched
        if it already is inside.

        Raises
        ------
        InitFailedError
            No valid state within *step_limit* steps.
        """
        self._init(step_limit)
        self._walk(self._hist.distance, 0.0, step_limit)

    def init_interval_heuristic(self, overlap: int = 3, step_limit: Optional[int] = None) -> None:
        """Like :meth:`init_greedy_heuristic`, on the coarse interval distance.

        Steps are accepted as long as they stay in the same (or a closer)
        coarse interval of width ``bin_count // overlap`` bins, which lets
        the walk cross plateaus of the plain distance.
        """
        overlap = max(1, overlap)
        self._init(step_limit)
        self._walk(
            lambda e: self._hist.interval_distance_overlap(e, overlap), 0, step_limit
        )

    def init_mixed_heuristic(
        self,
        overlap: int = 3,
        mid: int = 6400,
        step_limit: Optional[int] = None,
        period: Optional[int] = None,
    ) -> None:
        """Alternate between the greedy and the interval heuristic.

        A counter cycles through ``0 ... period-1`` (``period`` defaults to
        ``2 * mid``); the greedy distance is used while the counter is below
        *mid*, the interval distance otherwise.
        """
        overlap = max(1, overlap)
        period = 2 * mid if period is None else period
        if not 0 < mid < period:
            raise InvalidMixedPeriodError(
                f"Need 0 < mid < period, got mid={mid}, period={period}."
            )
        self._init(step_limit)
        if self._hist.is_inside(self._old_energy):
            self._end_init()
            return

        def dist_interval(e):
            return self._hist.interval_distance_overlap(e, overlap)

        old_dist = np.inf
        old_dist_interval = np.iinfo(np.int64).max
        counter = 0
        count = 0
        while True:
            if counter == 0:
                old_dist = self._hist.distance(self._old_energy)
            elif counter == mid:
                old_dist_interval = dist_interval(self._old_energy)
            if counter < mid:
                old_dist = self._greedy_helper(old_dist, self._hist.distance)
                if old_dist == 0.0:
                    break
            else:
                old_dist_interval = self._greedy_helper(old_dist_interval, dist_interval)
                if old_dist_interval == 0:
                    break
            counter = (counter + 1) % period
            if step_limit is not None:
                if count == step_limit:
                    self._fail_init()
                count += 1
        self._end_init()

    # ---- sampling --------------------------------------------------------

    def wang_landau_step(self) -> None:
        """Perform a single Wang-Landau step.

        Raises
        ------
        NotInitializedError
            None of the ``init_*`` heuristics succeeded yet.
        """
        if self._old_bin is None:
            raise NotInitializedError(
                "Call one of the init_* heuristics before sampling."
            )
        self._step_count += 1
        size = self._get_stepsize()
        steps = self.ensemble.m_steps(size)

        energy = self._energy()
        if energy is None or self._hist.not_inside(energy):
            self._count_rejected(size)
            self.ensemble.undo_moves_quiet(steps)
        else:
            new_bin = self._hist.bin_of(energy)
            delta = self._log_density[self._old_bin] - self._log_density[new_bin]
            accept_prob = 1.0 if delta >= 0 else np.exp(delta)
            if self.rng.random() > accept_prob:
                self._count_rejected(size)
                self.ensemble.undo_moves_quiet(steps)
            else:
                self._count_accepted(size)
                self._old_energy = energy
                self._old_bin = new_bin

        self._hist.count_index(self._old_bin)
        self._log_density[self._old_bin] += self._log_f
        self._check_refine()

    def wang_landau_while(self, condition: Callable[["WangLandau"], bool]) -> None:
        """Step until finished or until ``condition(self)`` is False."""
        while not self.is_finished() and condition(self):
            self.wang_landau_step()

    def wang_landau_convergence(self) -> None:
        while not self.is_finished():
            self.wang_landau_step()

    def run(self, verbose: bool = False, print_every: int = 100_000) -> WangLandauResult:
        """Step until finished and return the result.

        Warns if the step budget ran out before ``log_f`` reached the
        threshold.
        """
        while not self.is_finished():
            self.wang_landau_step()
            if verbose and self._step_count % print_every == 0:
                print(
                    f"step {self._step_count}: log_f = {self._log_f:.3e}, "
                    f"mode = {self._mode.value}, "
                    f"acceptance = {self.fraction_accepted_current():.3f}"
                )
        if not self.is_converged():
            warnings.warn(
                f"Wang-Landau stopped at step budget {self._step_goal} with "
                f"log_f = {self._log_f:.3e} > threshold {self._log_f_threshold:.3e}.",
                stacklevel=2,
            )
        return self.result()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(bins={self._hist.bin_count}, "
            f"steps={self._step_count}, log_f={self._log_f:.3e}, "
            f"status={self.status.value})"
        )


# ---------------------------------------------------------------------------
# Adaptive step size
# ---------------------------------------------------------------------------

class WangLandauAdaptive(WangLandau):
    """Wang-Landau sampler that tunes its step size on the fly.

    Every step size in ``[trial_step_min, trial_step_max]`` is first tried
    ``samples_per_trial`` times in shuffled order.  Afterwards step sizes
    are drawn uniformly from the *best-of* set: the sizes whose acceptance
    rate is within ``best_of_threshold`` of 0.5, and at least
    ``min_best_of_count`` of them.  The statistics are rebuilt after every
    refinement in ``REFINE_ORIGINAL`` mode; in ``REFINE_1T`` mode the best-of
    set is re-evaluated every ``max(2000, 4 * check_refine_every)`` steps.

    Parameters
    ----------
    ensemble, histogram, log_f_threshold, check_refine_every, rng,
    energy_fn, step_goal, flatness, log_f
        See :class:`WangLandau`.
    samples_per_trial : int
        How often each trial step size is tried.
    trial_step_min, trial_step_max : int
        Range of step sizes, ``1 <= trial_step_min <= trial_step_max``.
    min_best_of_count : int
        Minimum size of the best-of set, in ``[1, max - min + 1]``.
    best_of_threshold : float
        Acceptance-rate tolerance around 0.5.  Non-finite values mean 0.

    References
    ----------
    Y. Feld and A. K. Hartmann, Chaos 29, 113113 (2019).
    """

    def __init__(
        self,
        ensemble: MarkovChain,
        histogram: Histogram,
        log_f_threshold: float = 1e-6,
        samples_per_trial: int = 50,
        trial_step_min: int = 1,
        trial_step_max: int = 10,
        min_best_of_count: int = 2,
        best_of_threshold: float = 0.075,
        check_refine_every: int = 1000,
        rng: Union[None, int, np.random.Generator] = None,
        energy_fn: Optional[EnergyFn] = None,
        step_goal: Optional[int] = None,
        flatness: float = 0.0,
        log_f: float = 1.0,
    ):
        if trial_step_max < trial_step_min:
            raise InvalidMinMaxTrialStepsError(
                f"trial_step_min ({trial_step_min}) > trial_step_max ({trial_step_max})."
            )
        self._check_log_f_threshold(log_f_threshold)
        if check_refine_every < 1:
            raise CheckRefineEveryZeroError(
                f"check_refine_every has to be at least 1, got {check_refine_every}."
            )
        if trial_step_min < 1:
            raise InvalidStepSizeError(
                f"trial_step_min has to be at least 1, got {trial_step_min}."
            )
        distinct = trial_step_max - trial_step_min + 1
        if not 1 <= min_best_of_count <= distinct:
            raise InvalidBestofError(
                f"min_best_of_count has to lie in [1, {distinct}], got {min_best_of_count}."
            )
        if samples_per_trial < 1:
            raise InvalidSamplesPerTrialError(
                f"samples_per_trial has to be at least 1, got {samples_per_trial}."
            )
        if not np.isfinite(best_of_threshold):
            best_of_threshold = 0.0

        super().__init__(
            ensemble, histogram,
            log_f_threshold=log_f_threshold,
            step_size=trial_step_min,
            check_refine_every=check_refine_every,
            rng=rng,
            energy_fn=energy_fn,
            step_goal=step_goal,
            flatness=flatness,
            log_f=log_f,
        )
        self._samples_per_trial = samples_per_trial
        self._min_step = trial_step_min
        self._min_best_of_count = min_best_of_count
        self._best_of_threshold = float(best_of_threshold)
        self._best_of_steps: List[int] = []

        trial_list = np.repeat(
            np.arange(trial_step_min, trial_step_max + 1), samples_per_trial
        )
        self._trial_list: List[int] = self.rng.permutation(trial_list).tolist()
        self._counter = 0
        self._accepted_step_hist = np.zeros(distinct, dtype=np.int64)
        self._rejected_step_hist = np.zeros(distinct, dtype=np.int64)

    # ---- introspection ---------------------------------------------------

    @property
    def min_step_size(self) -> int:
        return self._min_step

    @property
    def max_step_size(self) -> int:
        return self._min_step + len(self._accepted_step_hist) - 1

    @property
    def best_of_steps(self) -> List[int]:
        return list(self._best_of_steps)

    @property
    def step_size(self) -> int:
        """Representative step size: first best-of entry or the middle of the range."""
        if self._best_of_steps:
            return self._best_of_steps[0]
        return self._min_step + (self.max_step_size - self._min_step) // 2

    def is_rebuilding_statistics(self) -> bool:
        return self._counter < len(self._trial_list)

    def fraction_of_statistics_gathered(self) -> float:
        return min(1.0, self._counter / len(self._trial_list))

    def fraction_accepted_total(self) -> float:
        accepted = self._accepted_total + int(self._accepted_step_hist.sum())
        total = accepted + self._rejected_total + int(self._rejected_step_hist.sum())
        return accepted / total if total else float("nan")

    def fraction_accepted_current(self) -> float:
        accepted = int(self._accepted_step_hist.sum())
        total = accepted + int(self._rejected_step_hist.sum())
        return accepted / total if total else float("nan")

    def _calc_estimate(self) -> np.ndarray:
        total = self._accepted_step_hist + self._rejected_step_hist
        with np.errstate(invalid="ignore", divide="ignore"):
            return self._accepted_step_hist / total

    def estimate_statistics(self) -> np.ndarray:
        """Acceptance rate per step size.

        Raises
        ------
        NotEnoughStatisticsError
            Some step size was not tried yet.
        EstimatedStatisticError
            Still gathering statistics; ``err.estimate`` holds the
            provisional rates.
        """
        if self.is_rebuilding_statistics():
            total = self._accepted_step_hist + self._rejected_step_hist
            if np.any(total == 0):
                raise NotEnoughStatisticsError(
                    "Some trial step sizes have not been tried yet."
                )
            raise EstimatedStatisticError(self._calc_estimate())
        return self._calc_estimate()

    def write_log(self, stream: Optional[TextIO] = None) -> None:
        stream = sys.stdout if stream is None else stream
        stream.write(
            f"#Acceptance prob_total: {self.fraction_accepted_total()}\n"
            f"#Acceptance prob current: {self.fraction_accepted_current()}\n"
            f"#total_steps: {self._step_count}\n"
            f"#log_f: {self._log_f:e}\n"
            f"#Current_mode: {self._mode.value}\n"
            f"#min_step_size: {self.min_step_size}\n"
            f"#max_step_size: {self.max_step_size}\n"
            "#Current acception histogram: "
            + " ".join(str(v) for v in self._accepted_step_hist) + "\n"
            "#Current rejection histogram: "
            + " ".join(str(v) for v in self._rejected_step_hist) + "\n"
            f"#bestof threshold: {self._best_of_threshold}\n"
            f"#min_bestof_count: {self._min_best_of_count}\n"
            "#Current_Bestof: " + " ".join(str(v) for v in self._best_of_steps) + "\n"
        )
        try:
            estimate = " ".join(str(v) for v in self.estimate_statistics())
        except (NotEnoughStatisticsError, EstimatedStatisticError):
            estimate = "None"
        stream.write(f"#current_statistics_estimate: {estimate}\n")

    # ---- step size selection ---------------------------------------------

    def _reset_statistics(self) -> None:
        self._best_of_steps.clear()
        self._accepted_total += int(self._accepted_step_hist.sum())
        self._rejected_total += int(self._rejected_step_hist.sum())
        self._accepted_step_hist[:] = 0
        self._rejected_step_hist[:] = 0
        self._counter = 0

    def _generate_bestof(self) -> None:
        statistics = self._calc_estimate()
        # diff = -|0.5 - p|, best first
        diff = -np.abs(0.5 - statistics)
        order = np.argsort(-diff, kind="stable")
        self._best_of_steps = []
        for index in order:
            if (
                diff[index] >= -self._best_of_threshold
                or len(self._best_of_steps) < self._min_best_of_count
            ):
                self._best_of_steps.append(int(index) + self._min_step)
            else:
                break

    def _get_stepsize(self) -> int:
        if self._counter < len(self._trial_list):
            return self._trial_list[self._counter]
        if not self._best_of_steps:
            self._generate_bestof()
        return self._best_of_steps[int(self.rng.integers(len(self._best_of_steps)))]

    def _count_accepted(self, size: int) -> None:
        self._accepted_step_hist[size - self._min_step] += 1
        self._counter += 1

    def _count_rejected(self, size: int) -> None:
        self._rejected_step_hist[size - self._min_step] += 1
        self._counter += 1

    def _on_refine(self, switched: bool) -> None:
        if not switched:
            self._reset_statistics()

    def _on_1t_step(self) -> None:
        adjust = max(2000, 4 * self._check_refine_every)
        if self._step_count % adjust == 0 and not self.is_rebuilding_statistics():
            self._generate_bestof()

    def _end_init(self) -> None:
        self._reset_statistics()
        super()._end_init()
