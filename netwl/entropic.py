"""
Entropic sampling on top of a converged Wang-Landau estimate.

The Wang-Landau log density is frozen and used as the sampling weight:
states are accepted with probability ``exp(ln g(E_old) - ln g(E_new))``
without further modification of ``ln g``.  If the estimate were exact, the
visited histogram would be flat; its deviations from flatness give a
correction, ``ln g_refined = ln g + ln H`` on every visited bin.

References
----------
J. Lee, Phys. Rev. Lett. 71, 211 (1993).
"""

from __future__ import annotations

import sys
import numpy as np
from typing import Any, Callable, Optional, TextIO

from .exceptions import InvalidWangLandauError
from .histogram import Histogram
from .wang_landau import WangLandau, WangLandauResult

_LOG10_E = np.log10(np.e)


class EntropicSampling:
    """Entropic sampler continuing from a Wang-Landau sampler.

    Use :meth:`from_wang_landau` to construct; it takes over the
    ensemble, the random source, the log density and the current bin of the
    Wang-Landau sampler.
    """

    def __init__(
        self,
        ensemble,
        histogram: Histogram,
        log_density: np.ndarray,
        old_energy: Any,
        old_bin: int,
        step_size: int,
        step_goal: int,
        rng: np.random.Generator,
        energy_fn: Optional[Callable] = None,
    ):
        self.ensemble = ensemble
        self.rng = rng
        self.energy_fn = energy_fn
        self._hist = histogram
        self._log_density = np.asarray(log_density, dtype=np.float64).copy()
        self._old_energy = old_energy
        self._old_bin = old_bin
        self._step_size = step_size
        self._step_goal = step_goal
        self._step_count = 0
        self._accepted = 0
        self._rejected = 0

    @classmethod
    def from_wang_landau(cls, wl: WangLandau) -> "EntropicSampling":
        """Build from a (usually finished) Wang-Landau sampler.

        The step goal is the number of steps the Wang-Landau run took.  An
        adaptive sampler contributes the best step size it found, or the
        middle of its trial range if it never built a best-of set.

        Raises
        ------
        InvalidWangLandauError
            *wl* was never initialized, so it has no current energy.
        """
        if wl.energy is None or not wl.is_initialized:
            raise InvalidWangLandauError(
                "Wang-Landau sampler has no valid energy; initialize it first."
            )
        hist = wl.hist
        hist.reset()
        return cls(
            ensemble=wl.ensemble,
            histogram=hist,
            log_density=wl.log_density(),
            old_energy=wl.energy,
            old_bin=wl.current_bin,
            step_size=wl.step_size,
            step_goal=wl.step_counter,
            rng=wl.rng,
            energy_fn=wl.energy_fn,
        )

    # ---- introspection ---------------------------------------------------

    @property
    def step_counter(self) -> int:
        return self._step_count

    @property
    def step_goal(self) -> int:
        return self._step_goal

    def set_step_goal(self, step_goal: int) -> None:
        self._step_goal = step_goal

    @property
    def step_size(self) -> int:
        return self._step_size

    @property
    def hist(self) -> Histogram:
        return self._hist

    @property
    def energy(self) -> Any:
        return self._old_energy

    def is_finished(self) -> bool:
        return self._step_count >= self._step_goal

    def fraction_accepted_total(self) -> float:
        total = self._accepted + self._rejected
        return self._accepted / total if total else float("nan")

    def log_density(self) -> np.ndarray:
        return self._log_density.copy()

    def log_density_base10(self) -> np.ndarray:
        return self._log_density * _LOG10_E

    def log_density_base(self, base: float) -> np.ndarray:
        return self._log_density / np.log(base)

    def log_density_refined(self) -> np.ndarray:
        """``ln g + ln H`` on visited bins, ``ln g`` elsewhere."""
        refined = self._log_density.copy()
        counts = self._hist.hist
        visited = counts > 0
        refined[visited] += np.log(counts[visited])
        return refined

    def refine_estimate(self) -> np.ndarray:
        """Replace the sampling weights by the refined estimate.

        Resets the step counter, the histogram and the acceptance counts.

        Returns
        -------
        np.ndarray
            The previous log density.
        """
        old = self._log_density
        self._log_density = self.log_density_refined()
        self._step_count = 0
        self._accepted = 0
        self._rejected = 0
        self._hist.reset()
        return old

    def write_log(self, stream: Optional[TextIO] = None) -> None:
        stream = sys.stdout if stream is None else stream
        stream.write(
            f"#Acceptance prob_total: {self.fraction_accepted_total()}\n"
            f"#total_steps: {self._step_count}\n"
            f"#step_goal: {self._step_goal}\n"
        )

    def result(self) -> WangLandauResult:
        """Refined estimate as a window result."""
        return WangLandauResult(
            borders=self._hist.borders.copy(),
            log_density=self.log_density_refined(),
            step_counter=self._step_count,
            step_goal=self._step_goal,
            mode="entropic",
            log_f=0.0,
            hist=self._hist.hist,
        )

    # ---- sampling --------------------------------------------------------

    def _energy(self) -> Any:
        if self.energy_fn is None:
            return self.ensemble.order_parameter()
        return self.energy_fn(self.ensemble)

    def entropic_step(self) -> None:
        self._step_count += 1
        steps = self.ensemble.m_steps(self._step_size)
        energy = self._energy()
        if energy is None or self._hist.not_inside(energy):
            self._rejected += 1
            self.ensemble.undo_moves_quiet(steps)
        else:
            new_bin = self._hist.bin_of(energy)
            delta = self._log_density[self._old_bin] - self._log_density[new_bin]
            accept_prob = 1.0 if delta >= 0 else np.exp(delta)
            if self.rng.random() > accept_prob:
                self._rejected += 1
                self.ensemble.undo_moves_quiet(steps)
            else:
                self._accepted += 1
                self._old_energy = energy
                self._old_bin = new_bin
        self._hist.count_index(self._old_bin)

    def entropic_sampling_while(
        self, condition: Callable[["EntropicSampling"], bool]
    ) -> None:
        while not self.is_finished() and condition(self):
            self.entropic_step()

    def entropic_sampling(
        self,
        print_fn: Optional[Callable[["EntropicSampling"], None]] = None,
        print_every: int = 100_000,
    ) -> None:
        """Run until the step goal, calling ``print_fn(self)`` every *print_every* steps."""
        while not self.is_finished():
            self.entropic_step()
            if print_fn is not None and self._step_count % print_every == 0:
                print_fn(self)

    def run(self, verbose: bool = False, print_every: int = 100_000) -> WangLandauResult:
        def _report(es):
            print(
                f"step {es.step_counter}/{es.step_goal}: "
                f"acceptance = {es.fraction_accepted_total():.3f}"
            )

        self.entropic_sampling(_report if verbose else None, print_every)
        return self.result()

    def __repr__(self) -> str:
        return (
            f"EntropicSampling(bins={self._hist.bin_count}, "
            f"steps={self._step_count}/{self._step_goal})"
        )

