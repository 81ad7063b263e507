import numpy as np
import pytest

from netwl import BootstrapResult, bootstrap


def test_constant_data_has_no_spread():
    result = bootstrap(np.full(40, 3.5), n_samples=25, seed=0)
    assert result.mean == pytest.approx(3.5)
    assert result.variance == 0.0
    assert result.std == 0.0
    assert result.n_samples == 25


def test_seed_determinism():
    data = np.random.default_rng(1).normal(size=200)
    a = bootstrap(data, seed=7)
    b = bootstrap(data, seed=7)
    np.testing.assert_array_equal(a.replicates, b.replicates)
    c = bootstrap(data, seed=8)
    assert not np.array_equal(a.replicates, c.replicates)


def test_mean_and_error_of_the_mean():
    data = np.random.default_rng(2).normal(loc=1.0, scale=2.0, size=2000)
    result = bootstrap(data, n_samples=400, seed=3)
    assert result.mean == pytest.approx(data.mean(), abs=0.05)
    # standard error of the mean is scale / sqrt(n)
    assert result.std == pytest.approx(2.0 / np.sqrt(2000), rel=0.25)
    assert result.std == pytest.approx(np.sqrt(result.variance))


def test_custom_reduction():
    data = np.arange(10, dtype=float)
    result = bootstrap(data, reduction=np.max, n_samples=50, seed=0)
    assert np.all(result.replicates <= 9.0)
    assert np.all(result.replicates >= 0.0)


def test_invalid_input():
    with pytest.raises(ValueError):
        bootstrap([])
    with pytest.raises(ValueError):
        bootstrap([1.0, 2.0], n_samples=0)


def test_verbose(capsys):
    bootstrap(np.arange(5.0), n_samples=100, seed=0, verbose=True)
    out = capsys.readouterr().out
    assert "Bootstrap replicate 50/100" in out
    assert "Bootstrap replicate 100/100" in out


def test_save_load(tmp_path):
    result = bootstrap(np.arange(20.0), n_samples=30, seed=4)
    result.save(tmp_path / "boot.npz")
    loaded = BootstrapResult.load(tmp_path / "boot")
    assert loaded.mean == result.mean
    assert loaded.variance == result.variance
    assert loaded.std == result.std
    np.testing.assert_array_equal(loaded.replicates, result.replicates)
