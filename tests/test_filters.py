"""Tests for analytics/filters.py -- conditioning helpers."""

import numpy as np
import pytest

from hrvstream.analytics.filters import (
    bandpass,
    cutoff_window,
    differentiate,
    median_mad,
    moving_average,
    moving_average_highpass,
    single_pole_highpass,
    trailing_max,
)


class TestMovingAverage:
    def test_constant_unchanged(self):
        out = moving_average(np.full(20, 2.5), 5)
        assert np.allclose(out, 2.5)

    def test_centered(self):
        out = moving_average([0, 0, 3, 0, 0], 3)
        assert out.tolist() == pytest.approx([0, 1, 1, 1, 0])

    def test_short_input_copied(self):
        data = [1.0, 2.0]
        out = moving_average(data, 5)
        assert out.tolist() == data

    def test_does_not_mutate(self):
        data = np.array([1.0, 5.0, 1.0])
        moving_average(data, 3)
        assert data.tolist() == [1.0, 5.0, 1.0]


class TestHighpass:
    def test_moving_average_highpass_removes_offset(self):
        out = moving_average_highpass(np.full(50, 4.0), 10)
        assert np.allclose(out, 0.0)

    def test_single_pole_decays_step(self):
        out = single_pole_highpass(np.ones(200), cutoff_hz=0.5, sampling_rate=50.0)
        assert out[0] > 0.9
        assert abs(out[-1]) < 0.01

    def test_single_pole_empty(self):
        assert len(single_pole_highpass([], 0.5, 50.0)) == 0


class TestBandpass:
    def test_length_preserved(self):
        assert len(bandpass(np.random.default_rng(0).normal(size=300), 130.0)) == 300

    def test_cutoff_window(self):
        assert cutoff_window(130.0, 5.0) == 26
        assert cutoff_window(130.0, 15.0) == 8
        assert cutoff_window(10.0, 15.0) == 3


class TestDifferentiate:
    def test_first_is_zero(self):
        assert differentiate([1.0, 3.0, 2.0]).tolist() == [0.0, 2.0, -1.0]

    def test_single(self):
        assert differentiate([5.0]).tolist() == [0.0]


class TestMedianMAD:
    def test_known(self):
        med, mad = median_mad([1, 2, 3, 4, 100])
        assert med == 3.0
        assert mad == 1.0

    def test_empty(self):
        assert median_mad([]) == (0.0, 0.0)


class TestTrailingMax:
    def test_window(self):
        assert trailing_max([1, 3, 2, 0, 0], 2).tolist() == [1, 3, 3, 2, 0]

    def test_window_one(self):
        assert trailing_max([1, 3, 2], 1).tolist() == [1, 3, 2]
