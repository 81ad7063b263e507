import numpy as np
import pytest

from netwl import ErEnsembleC, Histogram, WangLandau, glue_wl, run_window, run_windows

N = 6
MAX_EDGES = N * (N - 1) // 2


def _samplers():
    reference = Histogram.integer(0, MAX_EDGES)
    windows = [reference.sub_histogram(0, 10), reference.sub_histogram(6, 16)]
    samplers = [
        WangLandau(
            ErEnsembleC(N, 2.5, rng=seed), hist,
            log_f_threshold=1e-2, check_refine_every=50, rng=seed,
        )
        for seed, hist in enumerate(windows)
    ]
    return reference, samplers


def test_results_keep_input_order():
    reference, samplers = _samplers()
    results = run_windows(samplers, max_workers=2, use_processes=False)
    assert len(results) == 2
    assert results[0].left == 0
    assert results[1].left == 6
    for sampler, result in zip(samplers, results):
        assert sampler.is_finished()
        np.testing.assert_array_equal(result.log_density, sampler.log_density())

    glued = glue_wl(results, reference)
    assert glued.n_windows == 2
    assert np.sum(10.0 ** glued.glued_log10_density) == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("init", ["greedy", "interval", "mixed"])
def test_run_window(init):
    _, samplers = _samplers()
    result = run_window(samplers[1], init=init, step_limit=100_000)
    assert result.left == 6
    assert np.all(np.isfinite(result.log_density))


def test_unknown_init():
    _, samplers = _samplers()
    with pytest.raises(ValueError):
        run_window(samplers[0], init="random")
    with pytest.raises(ValueError):
        run_windows(samplers, use_processes=False, init="random")
