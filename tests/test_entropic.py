import io

import numpy as np
import pytest

from netwl import (
    EntropicSampling,
    ErEnsembleC,
    Histogram,
    WangLandau,
    WangLandauAdaptive,
    glue_wl,
)
from netwl.exceptions import InvalidWangLandauError

MAX_EDGES = 15


def _converged_wl(seed=0, adaptive=False):
    ensemble = ErEnsembleC(6, 2.5, rng=seed)
    hist = Histogram.integer(0, MAX_EDGES)
    if adaptive:
        wl = WangLandauAdaptive(
            ensemble, hist, log_f_threshold=1e-2, samples_per_trial=10,
            trial_step_min=1, trial_step_max=3, min_best_of_count=1,
            check_refine_every=50, rng=seed,
        )
    else:
        wl = WangLandau(ensemble, hist, log_f_threshold=1e-2, check_refine_every=50, rng=seed)
    wl.init_greedy_heuristic()
    wl.wang_landau_convergence()
    return wl


def test_requires_initialized_wang_landau():
    wl = WangLandau(ErEnsembleC(6, 2.5, rng=0), Histogram.integer(0, MAX_EDGES))
    with pytest.raises(InvalidWangLandauError):
        EntropicSampling.from_wang_landau(wl)


def test_takes_over_wang_landau_state():
    wl = _converged_wl(1)
    log_density = wl.log_density()
    es = EntropicSampling.from_wang_landau(wl)
    assert es.step_goal == wl.step_counter
    assert es.step_counter == 0
    assert es.step_size == wl.step_size
    assert es.energy == wl.energy
    assert es.hist.total == 0
    np.testing.assert_array_equal(es.log_density(), log_density)


def test_sampling_runs_to_step_goal():
    wl = _converged_wl(2)
    es = EntropicSampling.from_wang_landau(wl)
    log_density = es.log_density()
    es.entropic_sampling()
    assert es.is_finished()
    assert es.step_counter == es.step_goal
    assert es.hist.total == es.step_goal
    # weights stay frozen during entropic sampling
    np.testing.assert_array_equal(es.log_density(), log_density)
    assert es.energy == es.ensemble.graph.edge_count


def test_refined_estimate():
    wl = _converged_wl(3)
    es = EntropicSampling.from_wang_landau(wl)
    es.entropic_sampling()
    counts = es.hist.hist
    refined = es.log_density_refined()
    visited = counts > 0
    np.testing.assert_allclose(
        refined[visited], es.log_density()[visited] + np.log(counts[visited])
    )

    result = es.result()
    assert result.mode == "entropic"
    np.testing.assert_allclose(result.log_density, refined)

    old = es.refine_estimate()
    np.testing.assert_allclose(es.log_density(), refined)
    assert es.step_counter == 0
    assert es.hist.total == 0
    assert len(old) == MAX_EDGES + 1


def test_sampling_while_and_print_fn():
    wl = _converged_wl(4, adaptive=True)
    es = EntropicSampling.from_wang_landau(wl)
    assert 1 <= es.step_size <= 3
    es.entropic_sampling_while(lambda s: s.step_counter < 100)
    assert es.step_counter == min(100, es.step_goal)

    calls = []
    es.entropic_sampling(print_fn=calls.append, print_every=200)
    assert es.is_finished()
    assert len(calls) == es.step_goal // 200

    out = io.StringIO()
    es.write_log(out)
    assert f"#step_goal: {es.step_goal}" in out.getvalue()


def test_entropic_result_can_be_glued():
    wl = _converged_wl(5)
    es = EntropicSampling.from_wang_landau(wl)
    es.entropic_sampling()
    glued = glue_wl([es], Histogram.integer(0, MAX_EDGES))
    assert np.sum(10.0 ** glued.glued_log10_density) == pytest.approx(1.0, abs=1e-6)
