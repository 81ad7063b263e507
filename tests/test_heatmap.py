import io

import matplotlib
import numpy as np
import pytest

from netwl import ErEnsembleC, FloatHeatmap, Heatmap, Histogram, observables
from netwl.exceptions import HeatmapDimensionError, HeatmapXError, HeatmapYError

matplotlib.use("Agg")


def _filled():
    hm = Heatmap(Histogram.integer(0, 4), Histogram.integer(0, 2))
    for x, y in [(0, 0), (1, 2), (1, 2), (4, 1)]:
        hm.count(x, y)
    return hm


def test_count_and_projections():
    hm = _filled()
    assert hm.width == 5
    assert hm.height == 3
    assert hm.shape == (3, 5)
    assert hm.heatmap[2, 1] == 2
    assert hm.get(1, 2) == 2
    assert hm.get(5, 0) is None
    assert hm.get_row(3) is None
    np.testing.assert_array_equal(hm.get_row(2), [0, 2, 0, 0, 0])
    assert hm.total() == 4
    assert hm.bins_hit() == 3
    assert hm.bins_not_hit() == 12
    np.testing.assert_array_equal(hm.width_projection.hist, [1, 2, 0, 0, 1])
    np.testing.assert_array_equal(hm.height_projection.hist, [1, 1, 2])


def test_count_returns_coordinate():
    hm = Heatmap(Histogram.uniform(0.0, 1.0, 4), Histogram.integer(10, 12))
    assert hm.count(0.6, 11) == (2, 1)


def test_misses_leave_counts_untouched():
    hm = _filled()
    before = hm.heatmap
    with pytest.raises(HeatmapXError):
        hm.count(5, 0)
    with pytest.raises(HeatmapYError):
        hm.count(0, 3)
    with pytest.raises(IndexError):
        hm.count(-1, -1)
    assert hm.total_misses() == 3
    assert hm.total() == 4
    np.testing.assert_array_equal(hm.heatmap, before)
    np.testing.assert_array_equal(hm.height_projection.hist, [1, 1, 2])


def test_input_histograms_are_not_modified():
    width = Histogram.integer(0, 4)
    width.record(2)
    hm = Heatmap(width, Histogram.integer(0, 2))
    assert width.total == 1
    assert hm.width_projection.total == 0
    hm.count(3, 0)
    assert width.total == 1


def test_reset():
    hm = _filled()
    with pytest.raises(HeatmapXError):
        hm.count(9, 0)
    hm.reset()
    assert hm.total() == 0
    assert hm.total_misses() == 0
    assert hm.bins_hit() == 0


def test_combine():
    a = _filled()
    b = _filled()
    with pytest.raises(HeatmapYError):
        b.count(0, 7)
    a.combine(b)
    assert a.total() == 8
    assert a.total_misses() == 1
    assert a.get(1, 2) == 4
    np.testing.assert_array_equal(a.height_projection.hist, [2, 2, 4])

    other = Heatmap(Histogram.integer(0, 2), Histogram.integer(0, 4))
    with pytest.raises(HeatmapDimensionError):
        a.combine(other)


def test_transpose():
    hm = _filled()
    t = hm.transpose()
    assert t.shape == (5, 3)
    np.testing.assert_array_equal(t.heatmap, hm.heatmap.T)
    assert t.width_projection == hm.height_projection
    assert t.height_projection == hm.width_projection
    assert t.total() == hm.total()


def test_normalizations():
    hm = _filled()
    total = hm.normalized()
    assert isinstance(total, FloatHeatmap)
    assert total.heatmap.sum() == pytest.approx(1.0)
    assert total.get(1, 2) == pytest.approx(0.5)

    columns = hm.normalized_columns().heatmap
    np.testing.assert_allclose(columns.sum(axis=0), [1, 1, 0, 0, 1])

    rows = hm.normalized_rows().heatmap
    np.testing.assert_allclose(rows.sum(axis=1), [1, 1, 1])
    assert rows[1, 4] == pytest.approx(1.0)

    empty = Heatmap(Histogram.integer(0, 4), Histogram.integer(0, 2))
    assert np.all(empty.normalized().heatmap == 0.0)
    assert np.all(empty.normalized_rows().heatmap == 0.0)


def test_float_heatmap():
    fm = FloatHeatmap(Histogram.integer(0, 2), Histogram.integer(0, 1))
    fm.count(0, 0, 2.0)
    fm.count(2, 1, 6.0)
    fm.count(2, 1, 1.0)
    assert fm.total() == 3
    assert fm.get(2, 1) == pytest.approx(7.0)

    other = FloatHeatmap(Histogram.integer(0, 2), Histogram.integer(0, 1))
    other.count(0, 0, 5.0)
    fm.combine(other, np.maximum)
    assert fm.get(0, 0) == pytest.approx(5.0)
    assert fm.total() == 4

    fm.normalize_rows()
    np.testing.assert_allclose(fm.heatmap.sum(axis=1), [1.0, 1.0])
    fm.normalize_columns()
    np.testing.assert_allclose(fm.heatmap.sum(axis=0), [1.0, 0.0, 1.0])
    fm.normalize_total()
    assert fm.heatmap.sum() == pytest.approx(1.0)


def test_write():
    out = io.StringIO()
    _filled().write(out)
    lines = out.getvalue().splitlines()
    assert lines == ["1 0 0 0 0", "0 0 0 0 1", "0 2 0 0 0"]


def test_save_load(tmp_path):
    hm = _filled()
    with pytest.raises(HeatmapXError):
        hm.count(7, 0)
    hm.save(tmp_path / "hm.npz")
    loaded = Heatmap.load(tmp_path / "hm")
    np.testing.assert_array_equal(loaded.heatmap, hm.heatmap)
    assert loaded.width_projection == hm.width_projection
    assert loaded.height_projection == hm.height_projection
    assert loaded.total_misses() == 1

    normalized = hm.normalized()
    normalized.save(tmp_path / "norm.npz")
    np.testing.assert_allclose(
        FloatHeatmap.load(tmp_path / "norm.npz").heatmap, normalized.heatmap
    )


def test_edges_against_largest_component():
    ensemble = ErEnsembleC(10, 2.0, rng=5)
    hm = Heatmap(Histogram.integer(0, 45), Histogram.integer(1, 10))
    for _ in range(200):
        ensemble.m_steps(3)
        hm.count(ensemble.graph.edge_count, observables.largest_component_size(ensemble))
    assert hm.total() == 200
    assert hm.total_misses() == 0
    # a component of size s needs at least s - 1 edges
    edges, sizes = np.nonzero(hm.heatmap.T)
    assert np.all(edges >= sizes)


def test_plot_saves_files(tmp_path):
    fig, ax = _filled().plot(savefn=tmp_path / "heat")
    for ext in ("pdf", "png", "svg"):
        assert (tmp_path / f"heat.{ext}").exists()
