import numpy as np
import pytest

from netwl import (
    ErEnsembleC,
    MetropolisSave,
    MetropolisState,
    continue_metropolis,
    metropolis,
    metropolis_while,
)
from netwl.exceptions import (
    EnergyMismatchError,
    InvalidStepSizeError,
    InvalidTemperatureError,
)


def _recorder(store):
    def measure(ensemble, i, energy, rejected):
        store.append((i, energy, rejected))
    return measure


def test_state_validation():
    with pytest.raises(InvalidStepSizeError):
        MetropolisState(0, 10, -1.0, 0.0, 0, np.random.default_rng(0))
    state = MetropolisState(1, 10, -0.5, 0.0, 0, np.random.default_rng(0))
    assert state.temperature == pytest.approx(2.0)
    with pytest.raises(InvalidStepSizeError):
        state.set_stepsize(0)
    state.set_stepsize(3)
    assert state.stepsize == 3
    assert not state.increase_step_target(5)
    assert state.step_target == 10
    assert state.increase_step_target(20)
    assert state.step_target == 20


def test_stepsize_zero_rejected():
    ensemble = ErEnsembleC(10, 2.0, rng=0)
    with pytest.raises(InvalidStepSizeError):
        metropolis(ensemble, 0, 1.0, 0, 10)


def test_measure_and_counter():
    ensemble = ErEnsembleC(12, 2.0, rng=1)
    store = []
    state = metropolis(ensemble, 2, 1.5, 2, 100, measure=_recorder(store))
    assert [i for i, _, _ in store] == list(range(100))
    assert state.counter == 100
    assert state.is_finished
    assert state.current_energy == ensemble.graph.edge_count


def test_rejected_steps_are_undone():
    ensemble = ErEnsembleC(12, 2.0, rng=1)
    energies = []

    def measure(e, i, energy, rejected):
        energies.append(energy)
        assert energy == e.graph.edge_count

    metropolis(ensemble, 5, 0.5, 3, 200, measure=measure)
    assert len(energies) == 200


def test_valid_self_rejects():
    ensemble = ErEnsembleC(12, 2.0, rng=1)
    start = ensemble.graph.copy()
    store = []
    metropolis(
        ensemble, 0, 1.0, 1, 50,
        valid_self=lambda e: False, measure=_recorder(store),
    )
    assert all(rejected for _, _, rejected in store)
    ensemble.sort_adj()
    start.sort_adj()
    assert ensemble.graph == start


def test_negative_temperature_favours_large_energy():
    low = ErEnsembleC(20, 2.0, rng=3)
    high = ErEnsembleC(20, 2.0, rng=3)
    metropolis(low, 4, 0.5, 1, 3000)
    metropolis(high, 4, -0.5, 1, 3000)
    assert high.graph.edge_count > low.graph.edge_count


def test_resume_reproduces_trajectory(tmp_path):
    full = []
    ensemble = ErEnsembleC(15, 2.0, rng=7)
    metropolis(ensemble, 9, 2.0, 2, 200, measure=_recorder(full))

    first = []
    ensemble = ErEnsembleC(15, 2.0, rng=7)
    state = metropolis_while(
        ensemble, 9, 2.0, 2, 200,
        measure=_recorder(first), break_if=lambda e, i: i == 99,
    )
    assert state.counter == 100
    assert not state.is_finished

    MetropolisSave(ensemble, state).save(tmp_path / "save.npz")
    loaded = MetropolisSave.load(tmp_path / "save")
    resumed_ensemble, resumed_state = loaded.unpack()

    second = []
    final = continue_metropolis(resumed_ensemble, resumed_state, measure=_recorder(second))
    assert final.counter == 200
    assert first + second == full


def test_state_save_load(tmp_path):
    rng = np.random.default_rng(4)
    rng.random(10)
    state = MetropolisState(2, 50, -0.25, 7.0, 13, rng)
    state.save(tmp_path / "state.npz")
    loaded = MetropolisState.load(tmp_path / "state.npz")
    assert loaded.stepsize == 2
    assert loaded.step_target == 50
    assert loaded.m_beta == -0.25
    assert loaded.current_energy == 7.0
    assert loaded.counter == 13
    assert loaded.rng.random() == rng.random()


def test_energy_mismatch():
    ensemble = ErEnsembleC(15, 2.0, rng=7)
    state = metropolis_while(ensemble, 1, 1.0, 1, 100, break_if=lambda e, i: i == 9)
    ensemble.graph.clear_edges()
    with pytest.raises(EnergyMismatchError):
        continue_metropolis(ensemble, state)
    state = continue_metropolis(ensemble, state, ignore_energy_mismatch=True)
    assert state.counter == 100


@pytest.mark.parametrize("temperature", [0.0, np.inf, -np.inf, np.nan])
def test_invalid_temperature(temperature):
    ensemble = ErEnsembleC(10, 2.0, rng=0)
    with pytest.raises(InvalidTemperatureError):
        metropolis(ensemble, 0, temperature, 1, 10)
    with pytest.raises(ValueError):
        metropolis_while(ensemble, 0, temperature, 1, 10)
