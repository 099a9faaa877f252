"""Tests for analytics/jump.py -- flight-time jump detection."""

import numpy as np
import pytest

from hrvstream.analytics.jump import (
    JumpDetector,
    JumpEvent,
    MAX_HEIGHT_CM,
    best_jump,
    flight_height_cm,
)
from hrvstream.samples import AccelSample

from tests.conftest import jump_trace


class TestFlightHeight:
    def test_formula(self):
        # h = g t^2 / 8
        assert flight_height_cm(0.4) == pytest.approx(9.81 * 0.16 / 8 * 100)

    def test_zero(self):
        assert flight_height_cm(0.0) == 0.0


class TestJumpDetector:
    def test_single_clean_jump(self):
        z = jump_trace(flight_samples=20)  # 0.4 s at 50 Hz
        events = JumpDetector(sampling_rate=50.0).detect_z(z)
        assert len(events) == 1
        event = events[0]
        assert not event.fallback
        assert event.flight_seconds == pytest.approx(0.4, abs=0.02)
        assert event.height_cm == pytest.approx(flight_height_cm(event.flight_seconds))
        assert event.height_cm == pytest.approx(19.62, abs=2.0)
        assert event.takeoff_index < event.landing_index

    def test_with_gravity_baseline(self):
        z = jump_trace(flight_samples=25, baseline=1.0)
        events = JumpDetector().detect_z(z)
        assert len(events) == 1
        assert events[0].flight_seconds == pytest.approx(0.5, abs=0.02)

    def test_flight_too_long(self):
        z = jump_trace(flight_samples=60)  # 1.2 s
        assert JumpDetector().detect_z(z) == []

    def test_two_jumps_in_order(self):
        first = jump_trace(flight_samples=20, n=200, takeoff_at=50)
        second = jump_trace(flight_samples=30, n=200, takeoff_at=50)
        events = JumpDetector().detect_z(np.concatenate([first, second]))
        assert len(events) == 2
        assert events[0].landing_index < events[1].takeoff_index
        assert events[1].flight_seconds > events[0].flight_seconds

    def test_detect_uses_vertical_axis(self):
        z = jump_trace(flight_samples=20)
        samples = [AccelSample(timestamp=i * 20.0, x=0.3, y=-0.2, z=v) for i, v in enumerate(z)]
        assert len(JumpDetector().detect(samples)) == 1

    def test_without_highpass_flat_pulses(self):
        # Square pulses stay flat after smoothing; the plateau's first sample counts
        z = jump_trace(flight_samples=20, pulse=5)
        events = JumpDetector(highpass=False).detect_z(z)
        assert len(events) == 1
        assert not events[0].fallback
        assert events[0].flight_seconds == pytest.approx(0.4, abs=0.02)

    def test_without_highpass_narrow_pulses(self):
        z = jump_trace(flight_samples=25, pulse=3)
        events = JumpDetector(highpass=False).detect_z(z)
        assert len(events) == 1
        assert events[0].flight_seconds == pytest.approx(0.5, abs=0.02)

    def test_short_window(self):
        assert JumpDetector().detect_z(np.zeros(10)) == []

    def test_quiet_window(self):
        assert JumpDetector().detect_z(np.zeros(300)) == []

    def test_non_finite_window(self):
        z = jump_trace()
        z[3] = np.inf
        assert JumpDetector().detect_z(z) == []

    def test_height_clamped(self):
        z = jump_trace(flight_samples=50)  # 1.0 s, the upper bound
        det = JumpDetector(max_flight_s=1.2)
        events = det.detect_z(z)
        assert len(events) == 1
        assert 0.0 <= events[0].height_cm <= MAX_HEIGHT_CM

    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            JumpDetector(sampling_rate=-1)


class TestFallback:
    def test_mean_crossing_pair(self):
        # A shallow dip that never reaches the takeoff threshold
        z = np.full(200, 0.1)
        z[80:100] = -0.5
        det = JumpDetector(takeoff_threshold=-5.0)
        events = det.detect_z(z)
        assert len(events) == 1
        event = events[0]
        assert event.fallback
        assert event.flight_seconds == pytest.approx(0.4)
        assert 5.0 <= event.height_cm <= 40.0

    def test_disabled(self):
        z = np.full(200, 0.1)
        z[80:100] = -0.5
        det = JumpDetector(takeoff_threshold=-5.0, use_fallback=False)
        assert det.detect_z(z) == []


class TestBestJump:
    def test_highest(self):
        a = JumpEvent(0, 10, 0.2, 4.9)
        b = JumpEvent(20, 40, 0.4, 19.6)
        assert best_jump([a, b]) is b

    def test_empty(self):
        assert best_jump([]) is None

    def test_repr(self):
        assert "h=19.6cm" in repr(JumpEvent(20, 40, 0.4, 19.62))
