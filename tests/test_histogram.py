import numpy as np
import pytest

from netwl import Histogram
from netwl.exceptions import (
    IntervalWidthZeroError,
    InvalidValueError,
    ModuloError,
    NoBinsError,
    OutOfRangeError,
)


def test_construction_errors():
    with pytest.raises(NoBinsError):
        Histogram([1.0])
    with pytest.raises(IntervalWidthZeroError):
        Histogram([0, 1, 1, 2])
    with pytest.raises(IntervalWidthZeroError):
        Histogram([0.0, 2.0, 1.0])
    with pytest.raises(InvalidValueError):
        Histogram([0.0, np.nan, 2.0])
    with pytest.raises(InvalidValueError):
        Histogram.uniform(0.0, np.inf, 4)
    with pytest.raises(IntervalWidthZeroError):
        Histogram.uniform(1.0, 1.0, 4)
    with pytest.raises(NoBinsError):
        Histogram.uniform(0.0, 1.0, 0)
    with pytest.raises(ModuloError):
        Histogram.integer_binned(0, 9, 3)


def test_integer_constructors():
    h = Histogram.integer(2, 5)
    assert h.is_integer
    assert h.bin_count == 4
    assert h.borders.tolist() == [2, 3, 4, 5, 6]
    assert h.bin_of(5) == 3

    h = Histogram.integer(2, 5, inclusive=False)
    assert h.bin_count == 3
    with pytest.raises(OutOfRangeError):
        h.bin_of(5)

    h = Histogram.integer_binned(0, 11, 4)
    assert h.borders.tolist() == [0, 3, 6, 9, 12]
    assert h.bin_of(11) == 3


def test_uniform_borders_exact():
    h = Histogram.uniform(-1.0, 2.0, 7)
    assert h.bin_count == 7
    assert h.left == -1.0
    assert h.right == 2.0
    assert not h.is_integer
    np.testing.assert_allclose(np.diff(h.borders), 3.0 / 7)


def test_borders_read_only():
    h = Histogram.integer(0, 3)
    with pytest.raises(ValueError):
        h.borders[0] = 5


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_coverage_and_total(seed):
    rng = np.random.default_rng(seed)
    h = Histogram.uniform(-3.0, 5.0, 13)
    values = rng.uniform(-3.0, 5.0, size=1000)
    for v in values:
        index = h.bin_of(v)
        assert 0 <= index < h.bin_count
        assert h.borders[index] <= v < h.borders[index + 1]
        h.record(v)
    assert h.total == len(values)
    assert h.hist.sum() == len(values)


def test_out_of_range():
    h = Histogram.uniform(0.0, 1.0, 4)
    for value in (-0.1, 1.0, 1.5, np.nan, np.inf, None):
        with pytest.raises(OutOfRangeError):
            h.bin_of(value)
    with pytest.raises(OutOfRangeError):
        h.record(2.0)
    with pytest.raises(OutOfRangeError):
        h.count_index(4)
    assert h.total == 0


def test_inside():
    h = Histogram.integer(0, 9)
    assert h.is_inside(0)
    assert h.is_inside(9)
    assert not h.is_inside(10)
    assert not h.is_inside(-1)
    assert not h.is_inside(None)
    assert h.not_inside(None)


def test_flatness_and_reset():
    h = Histogram.integer(0, 3)
    assert h.any_bin_zero()
    assert not h.is_flat()
    for v in (0, 1, 2, 3, 3, 3, 3, 3):
        h.record(v)
    assert h.is_flat()
    assert h.is_flat(0.5)
    assert not h.is_flat(0.8)
    h.reset()
    assert h.total == 0
    assert h.any_bin_zero()


def test_distance():
    h = Histogram.integer(0, 10)
    assert h.distance(5) == 0.0
    assert h.distance(-3) == 3.0
    assert h.distance(11) == 1.0
    assert h.distance(14) == 4.0
    assert h.distance(None) == np.inf
    assert h.distance(np.nan) == np.inf

    f = Histogram.uniform(0.0, 1.0, 4)
    assert f.distance(1.0) > 0.0
    assert f.distance(0.999) == 0.0


def test_interval_distance_overlap():
    h = Histogram.integer(0, 9)
    assert h.interval_distance_overlap(4, 2) == 0
    assert h.interval_distance_overlap(10, 2) == 1
    assert h.interval_distance_overlap(15, 2) == 2
    assert h.interval_distance_overlap(-1, 2) == 1
    assert h.interval_distance_overlap(None, 2) == np.iinfo(np.int64).max


def test_sub_histogram():
    h = Histogram.integer(0, 19)
    w = h.sub_histogram(5, 12)
    assert w.bin_count == 7
    assert w.left == 5
    assert w.right == 12
    np.testing.assert_array_equal(w.borders, h.borders[5:13])
    with pytest.raises(OutOfRangeError):
        h.sub_histogram(5, 5)
    with pytest.raises(OutOfRangeError):
        h.sub_histogram(0, 21)


@pytest.mark.parametrize("n, overlap", [(1, 0), (3, 2), (4, 1), (5, 3)])
def test_overlapping_partition(n, overlap):
    h = Histogram.integer(0, 29)
    windows = h.overlapping_partition(n, overlap)
    assert len(windows) == n
    assert windows[0].left == h.left
    assert windows[-1].right == h.right
    for w in windows:
        l = int(np.searchsorted(h.borders, w.left))
        np.testing.assert_array_equal(w.borders, h.borders[l:l + w.bin_count + 1])
    for a, b in zip(windows, windows[1:]):
        assert a.left <= b.left
        assert b.left < a.right


def test_copy_and_eq():
    h = Histogram.integer(0, 4)
    h.record(2)
    c = h.copy()
    assert c == h
    c.record(1)
    assert c != h
    assert Histogram.integer(0, 4) != Histogram(np.arange(6, dtype=float))
