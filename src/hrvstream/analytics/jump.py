"""Vertical-jump detection from accelerometer flight time.

The vertical axis is high-passed to remove gravity, lightly smoothed, and
scanned for a takeoff (a negative dip below the takeoff threshold)
followed within the flight horizon by a landing (a positive spike above
the landing threshold).  Height comes from the free-fall relation for a
symmetric flight of duration t:

    h = g * t^2 / 8

If nothing crosses the thresholds, a more conservative fallback pairs a
falling and a rising crossing of the raw signal's mean.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from hrvstream.analytics.filters import moving_average, single_pole_highpass
from hrvstream.samples import AccelSample

G = 9.81  # m/s^2

# Thresholds on the high-passed vertical axis (g)
TAKEOFF_THRESHOLD = -0.6
LANDING_THRESHOLD = 0.8

# Accepted flight times (s)
MIN_FLIGHT_S = 0.15
MAX_FLIGHT_S = 1.0

# Height bounds (cm)
MIN_HEIGHT_CM = 0.0
MAX_HEIGHT_CM = 120.0

# Mean-crossing fallback
FALLBACK_MIN_FLIGHT_S = 0.15
FALLBACK_MAX_FLIGHT_S = 0.8
FALLBACK_MIN_HEIGHT_CM = 5.0
FALLBACK_MAX_HEIGHT_CM = 40.0
FALLBACK_HEIGHT_COEFF = 100.0  # cm / s^2

HIGHPASS_CUTOFF_HZ = 0.5
SMOOTHING_WINDOW = 3
MIN_SAMPLES = 20


def flight_height_cm(flight_s: float) -> float:
    """Jump height (cm) for a flight of *flight_s* seconds."""
    return G * flight_s ** 2 / 8.0 * 100.0


@dataclass(frozen=True)
class JumpEvent:
    """A detected jump."""

    takeoff_index: int
    landing_index: int
    flight_seconds: float
    height_cm: float
    fallback: bool = False  # True if found by the mean-crossing method

    def __repr__(self) -> str:
        tag = ", fallback" if self.fallback else ""
        return (
            f"JumpEvent({self.takeoff_index}->{self.landing_index}, "
            f"t={self.flight_seconds:.3f}s, h={self.height_cm:.1f}cm{tag})"
        )


def best_jump(events: Sequence[JumpEvent]) -> JumpEvent | None:
    """Highest jump in *events*, or None."""
    if not events:
        return None
    return max(events, key=lambda e: e.height_cm)


class JumpDetector:
    """Stateless flight-time jump detector."""

    def __init__(
        self,
        sampling_rate: float = 50.0,
        takeoff_threshold: float = TAKEOFF_THRESHOLD,
        landing_threshold: float = LANDING_THRESHOLD,
        min_flight_s: float = MIN_FLIGHT_S,
        max_flight_s: float = MAX_FLIGHT_S,
        highpass: bool = True,
        highpass_cutoff_hz: float = HIGHPASS_CUTOFF_HZ,
        smoothing_window: int = SMOOTHING_WINDOW,
        use_fallback: bool = True,
    ) -> None:
        if sampling_rate <= 0:
            raise ValueError(f"sampling_rate must be positive, got {sampling_rate}")
        self.sampling_rate = float(sampling_rate)
        self.takeoff_threshold = takeoff_threshold
        self.landing_threshold = landing_threshold
        self.min_flight_s = min_flight_s
        self.max_flight_s = max_flight_s
        self.highpass = highpass
        self.highpass_cutoff_hz = highpass_cutoff_hz
        self.smoothing_window = smoothing_window
        self.use_fallback = use_fallback

    def detect(self, samples: Sequence[AccelSample]) -> list[JumpEvent]:
        """Detect jumps in a window of accelerometer samples (vertical = z)."""
        return self.detect_z([s.z for s in samples])

    def detect_z(self, z_values: Sequence[float] | np.ndarray) -> list[JumpEvent]:
        """Detect jumps in a window of vertical acceleration values (g).

        Events are returned in chronological order.
        """
        z = np.asarray(z_values, dtype=np.float64)
        if len(z) < MIN_SAMPLES or not np.all(np.isfinite(z)):
            return []

        conditioned = z
        if self.highpass:
            conditioned = single_pole_highpass(z, self.highpass_cutoff_hz, self.sampling_rate)
        conditioned = moving_average(conditioned, self.smoothing_window)

        events = self._threshold_pairs(conditioned)
        if not events and self.use_fallback:
            events = self._mean_crossing_pairs(z)
        return events

    def _threshold_pairs(self, z: np.ndarray) -> list[JumpEvent]:
        fs = self.sampling_rate
        horizon = int(self.max_flight_s * fs)
        events: list[JumpEvent] = []
        takeoff: int | None = None

        for i in range(1, len(z) - 1):
            prev, curr, nxt = z[i - 1], z[i], z[i + 1]

            if takeoff is None:
                if curr < self.takeoff_threshold and curr < prev and curr <= nxt:
                    takeoff = i
                continue

            if curr > self.landing_threshold and curr > prev and curr >= nxt:
                flight = (i - takeoff) / fs
                if self.min_flight_s <= flight <= self.max_flight_s:
                    height = min(max(flight_height_cm(flight), MIN_HEIGHT_CM), MAX_HEIGHT_CM)
                    events.append(JumpEvent(takeoff, i, flight, height))
                takeoff = None
            elif i - takeoff > horizon:
                # No landing inside the flight horizon
                takeoff = None

        return events

    def _mean_crossing_pairs(self, z: np.ndarray) -> list[JumpEvent]:
        fs = self.sampling_rate
        mean = float(np.mean(z))

        # (index, rising?) for every crossing of the mean
        crossings: list[tuple[int, bool]] = []
        for i in range(1, len(z)):
            if z[i - 1] < mean <= z[i]:
                crossings.append((i, True))
            elif z[i - 1] > mean >= z[i]:
                crossings.append((i, False))

        for (first, rising_first), (second, rising_second) in zip(crossings, crossings[1:]):
            if rising_first or not rising_second:
                continue
            flight = (second - first) / fs
            if FALLBACK_MIN_FLIGHT_S <= flight <= FALLBACK_MAX_FLIGHT_S:
                height = FALLBACK_HEIGHT_COEFF * flight ** 2
                height = min(max(height, FALLBACK_MIN_HEIGHT_CM), FALLBACK_MAX_HEIGHT_CM)
                return [JumpEvent(first, second, flight, height, fallback=True)]
        return []

    def __repr__(self) -> str:
        return f"JumpDetector({self.sampling_rate:g}Hz)"
