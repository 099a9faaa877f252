"""Tests for config.py -- StreamConfig defaults, derived capacities and validation."""

import pytest

from hrvstream.analytics.hrv import RRSource
from hrvstream.config import StreamConfig


class TestDefaults:
    def test_rates(self):
        cfg = StreamConfig()
        assert cfg.ecg_sampling_rate == 130.0
        assert cfg.acc_sampling_rate == 50.0

    def test_capacities(self):
        cfg = StreamConfig()
        assert cfg.display_capacity == 1300
        assert cfg.hrv_capacity == 2600
        assert cfg.robust_capacity == 15600
        assert cfg.acc_capacity == 6000

    def test_rr_capacity(self):
        # 20 s of beats at the shortest allowed interval
        assert StreamConfig.rr_capacity(20.0) == 67

    def test_derived_sample_counts(self):
        cfg = StreamConfig()
        assert cfg.stabilization_samples == 1300
        assert cfg.live_update_samples == 130

    def test_robust_source(self):
        assert StreamConfig().robust_rr_source is RRSource.SENSOR


class TestValidation:
    def test_window_order(self):
        with pytest.raises(ValueError):
            StreamConfig(display_window_s=30.0, hrv_window_s=20.0)

    def test_hrv_longer_than_robust(self):
        with pytest.raises(ValueError):
            StreamConfig(hrv_window_s=200.0)

    def test_non_positive_rate(self):
        with pytest.raises(ValueError):
            StreamConfig(ecg_sampling_rate=0)

    def test_negative_stabilization(self):
        with pytest.raises(ValueError):
            StreamConfig(stabilization_s=-1.0)

    def test_zero_stabilization_allowed(self):
        assert StreamConfig(stabilization_s=0.0).stabilization_samples == 0


class TestOverrides:
    def test_copy(self):
        cfg = StreamConfig()
        fast = cfg.with_overrides(robust_window_s=60.0)
        assert fast.robust_window_s == 60.0
        assert cfg.robust_window_s == 120.0

    def test_revalidated(self):
        with pytest.raises(ValueError):
            StreamConfig().with_overrides(robust_window_s=5.0)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            StreamConfig().hrv_window_s = 5.0
