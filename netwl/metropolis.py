from __future__ import annotations

import numpy as np
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from .ensembles import MarkovChain, OrderParameter
from .exceptions import (
    EnergyMismatchError,
    InvalidStepSizeError,
    InvalidTemperatureError,
)
from .persistence import npz_path, rng_from_json, rng_to_json

EnergyFn = Callable[[MarkovChain], float]
ValidFn = Callable[[MarkovChain], bool]
MeasureFn = Callable[[MarkovChain, int, float, bool], None]
BreakFn = Callable[[MarkovChain, int], bool]


# ---------------------------------------------------------------------------
# Simulation state
# ---------------------------------------------------------------------------

@dataclass
class MetropolisState:
    """Progress of a Metropolis run, sufficient to resume it exactly.

    Attributes
    ----------
    stepsize : int
        Moves per Markov step, at least 1.
    step_target : int
        Total number of Markov steps the run should perform.
    m_beta : float
        ``-1 / temperature``.
    current_energy : float
        Energy of the ensemble after the last completed step.
    counter : int
        Index of the next step, i.e. where to resume.
    rng : numpy.random.Generator
        Random source used for the acceptance decisions.
    """

    stepsize: int
    step_target: int
    m_beta: float
    current_energy: float
    counter: int
    rng: np.random.Generator

    def __post_init__(self):
        self._check_stepsize(self.stepsize)

    @staticmethod
    def _check_stepsize(stepsize: int) -> None:
        if stepsize < 1:
            raise InvalidStepSizeError(f"Step size has to be at least 1, got {stepsize}.")

    @staticmethod
    def _check_temperature(temperature: float) -> None:
        if not np.isfinite(temperature) or temperature == 0:
            raise InvalidTemperatureError(
                f"Temperature has to be finite and non-zero, got {temperature}."
            )

    @property
    def temperature(self) -> float:
        return -1.0 / self.m_beta

    @property
    def is_finished(self) -> bool:
        return self.counter >= self.step_target

    def set_stepsize(self, stepsize: int) -> None:
        self._check_stepsize(stepsize)
        self.stepsize = stepsize

    def increase_step_target(self, new_target: int) -> bool:
        """Raise the step target; returns False (unchanged) if *new_target* is smaller."""
        if self.step_target <= new_target:
            self.step_target = new_target
            return True
        return False

    # -- serialization -----------------------------------------------------

    def to_arrays(self, prefix: str = "") -> dict:
        return {
            f"{prefix}stepsize": np.array(self.stepsize),
            f"{prefix}step_target": np.array(self.step_target),
            f"{prefix}m_beta": np.array(self.m_beta),
            f"{prefix}current_energy": np.array(self.current_energy),
            f"{prefix}counter": np.array(self.counter),
            f"{prefix}rng_state": np.array(rng_to_json(self.rng)),
        }

    @classmethod
    def from_arrays(cls, f, prefix: str = "") -> "MetropolisState":
        return cls(
            stepsize=int(f[f"{prefix}stepsize"]),
            step_target=int(f[f"{prefix}step_target"]),
            m_beta=float(f[f"{prefix}m_beta"]),
            current_energy=float(f[f"{prefix}current_energy"]),
            counter=int(f[f"{prefix}counter"]),
            rng=rng_from_json(str(f[f"{prefix}rng_state"][()])),
        )

    def save(self, path: Union[str, Path]) -> None:
        """Save the state to a single ``.npz`` file."""
        np.savez_compressed(str(Path(path)), **self.to_arrays())

    @classmethod
    def load(cls, path: Union[str, Path]) -> "MetropolisState":
        with np.load(str(npz_path(path)), allow_pickle=False) as f:
            return cls.from_arrays(f)


@dataclass
class MetropolisSave:
    """Ensemble plus Metropolis state, saved and restored together."""

    ensemble: MarkovChain
    state: MetropolisState

    def unpack(self):
        return self.ensemble, self.state

    def save(self, path: Union[str, Path]) -> None:
        data = self.state.to_arrays(prefix="state_")
        data.update(self.ensemble.snapshot())
        np.savez_compressed(str(Path(path)), **data)

    @classmethod
    def load(
        cls, path: Union[str, Path], order_parameter: Optional[OrderParameter] = None,
    ) -> "MetropolisSave":
        with np.load(str(npz_path(path)), allow_pickle=False) as f:
            state = MetropolisState.from_arrays(f, prefix="state_")
            ensemble = MarkovChain.from_snapshot(f, order_parameter)
        return cls(ensemble=ensemble, state=state)


# ---------------------------------------------------------------------------
# Sampling loops
# ---------------------------------------------------------------------------

def _energy_of(ensemble: MarkovChain, energy: Optional[EnergyFn]) -> float:
    if energy is None:
        return float(ensemble.order_parameter())
    return float(energy(ensemble))


def _run(
    ensemble: MarkovChain,
    rng: np.random.Generator,
    m_beta: float,
    stepsize: int,
    start: int,
    steps: int,
    old_energy: float,
    energy: Optional[EnergyFn],
    valid_self: Optional[ValidFn],
    measure: Optional[MeasureFn],
    break_if: Optional[BreakFn],
) -> MetropolisState:
    current_energy = old_energy
    for i in range(start, steps):
        last_steps = ensemble.m_steps(stepsize)

        rejected = valid_self is not None and not valid_self(ensemble)
        if not rejected:
            current_energy = _energy_of(ensemble, energy)
            exponent = m_beta * (current_energy - old_energy)
            a_prob = 1.0 if exponent >= 0 else np.exp(exponent)
            rejected = rng.random() > a_prob

        if rejected:
            ensemble.undo_moves_quiet(last_steps)
            current_energy = old_energy
        else:
            old_energy = current_energy

        if measure is not None:
            measure(ensemble, i, current_energy, rejected)

        if break_if is not None and break_if(ensemble, i):
            return MetropolisState(stepsize, steps, m_beta, current_energy, i + 1, rng)

    return MetropolisState(stepsize, steps, m_beta, current_energy, steps, rng)


def metropolis_while(
    ensemble: MarkovChain,
    rng: Union[None, int, np.random.Generator],
    temperature: float,
    stepsize: int,
    steps: int,
    energy: Optional[EnergyFn] = None,
    valid_self: Optional[ValidFn] = None,
    measure: Optional[MeasureFn] = None,
    break_if: Optional[BreakFn] = None,
) -> MetropolisState:
    """Metropolis sampling of *ensemble* at *temperature*.

    Every Markov step performs *stepsize* moves and is accepted with
    probability ``min(1, exp(-(E_new - E_old) / temperature))``.  Rejected
    steps (including those where ``valid_self`` is False) are undone.

    Parameters
    ----------
    ensemble : MarkovChain
        Mutated in place.
    rng : int, Generator or None
        Random source of the acceptance decisions (separate from the
        ensemble's own random source).
    temperature : float
        Negative temperatures favour large energies.
    stepsize : int
        Moves per Markov step, at least 1.
    steps : int
        Number of Markov steps.
    energy : callable, optional
        ``energy(ensemble) -> float``, defaults to ``ensemble.order_parameter()``.
    valid_self : callable, optional
        ``valid_self(ensemble) -> bool``; invalid states are rejected.
    measure : callable, optional
        ``measure(ensemble, i, energy, rejected)`` called after each step.
    break_if : callable, optional
        ``break_if(ensemble, i) -> bool``; stops early when True.

    Returns
    -------
    MetropolisState
        State to resume from with :func:`continue_metropolis_while`.

    Raises
    ------
    InvalidStepSizeError
        *stepsize* is smaller than 1.
    InvalidTemperatureError
        *temperature* is zero or not finite.
    """
    MetropolisState._check_stepsize(stepsize)
    MetropolisState._check_temperature(temperature)
    rng = np.random.default_rng(rng)
    m_beta = -1.0 / temperature
    old_energy = _energy_of(ensemble, energy)
    return _run(
        ensemble, rng, m_beta, stepsize, 0, steps, old_energy,
        energy, valid_self, measure, break_if,
    )


def metropolis(
    ensemble: MarkovChain,
    rng: Union[None, int, np.random.Generator],
    temperature: float,
    stepsize: int,
    steps: int,
    energy: Optional[EnergyFn] = None,
    valid_self: Optional[ValidFn] = None,
    measure: Optional[MeasureFn] = None,
) -> MetropolisState:
    """Same as :func:`metropolis_while` without an early stop."""
    return metropolis_while(
        ensemble, rng, temperature, stepsize, steps,
        energy=energy, valid_self=valid_self, measure=measure,
    )


def continue_metropolis_while(
    ensemble: MarkovChain,
    state: MetropolisState,
    energy: Optional[EnergyFn] = None,
    ignore_energy_mismatch: bool = False,
    valid_self: Optional[ValidFn] = None,
    measure: Optional[MeasureFn] = None,
    break_if: Optional[BreakFn] = None,
) -> MetropolisState:
    """Resume a run from *state* up to ``state.step_target``.

    Raises
    ------
    EnergyMismatchError
        The ensemble's energy differs from ``state.current_energy`` and
        *ignore_energy_mismatch* is False.
    """
    old_energy = _energy_of(ensemble, energy)
    if not ignore_energy_mismatch and old_energy != state.current_energy:
        raise EnergyMismatchError(
            f"Ensemble energy {old_energy} != stored energy {state.current_energy}."
        )
    return _run(
        ensemble, state.rng, state.m_beta, state.stepsize, state.counter,
        state.step_target, old_energy, energy, valid_self, measure, break_if,
    )


def continue_metropolis(
    ensemble: MarkovChain,
    state: MetropolisState,
    energy: Optional[EnergyFn] = None,
    ignore_energy_mismatch: bool = False,
    valid_self: Optional[ValidFn] = None,
    measure: Optional[MeasureFn] = None,
) -> MetropolisState:
    """Same as :func:`continue_metropolis_while` without an early stop."""
    return continue_metropolis_while(
        ensemble, state, energy=energy,
        ignore_energy_mismatch=ignore_energy_mismatch,
        valid_self=valid_self, measure=measure,
    )
