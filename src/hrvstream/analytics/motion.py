"""Accelerometer motion helpers: vertical speed series and lap peaks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from hrvstream.samples import AccelSample, Sample

# Lap-peak defaults
PEAK_WINDOW_S = 10.0
PEAK_STD_MULTIPLIER = 1.0
PEAK_MIN_INTERVAL_S = 0.3


def vertical_speed(samples: Sequence[AccelSample]) -> list[Sample]:
    """Rate of change of vertical acceleration, ``dz/dt`` per second.

    Pairs with non-increasing timestamps are skipped.
    """
    speeds: list[Sample] = []
    for prev, curr in zip(samples, samples[1:]):
        dt = (curr.timestamp - prev.timestamp) / 1000.0  # ms -> s
        if dt > 0:
            speeds.append(Sample(value=(curr.z - prev.z) / dt, source_time=curr.timestamp / 1000.0))
    return speeds


@dataclass
class MotionPeaks:
    """Vertical-axis peaks and the spacing between them."""

    peaks: list[Sample] = field(default_factory=list)  # value = z (g), time in s
    intervals_s: list[float] = field(default_factory=list)
    threshold: float = 0.0

    def __repr__(self) -> str:
        return f"MotionPeaks({len(self.peaks)} peaks, thr={self.threshold:.3f}g)"


def detect_motion_peaks(
    samples: Sequence[AccelSample],
    window_s: float = PEAK_WINDOW_S,
    std_multiplier: float = PEAK_STD_MULTIPLIER,
    min_interval_s: float = PEAK_MIN_INTERVAL_S,
) -> MotionPeaks:
    """Find strides/laps as large vertical excursions in either direction.

    The threshold is ``mean + k * std`` of z over the trailing *window_s*;
    a sample counts as a peak when its deviation from the mean exceeds
    ``k * std``, it is a local maximum of ``|z|`` and it lies at least
    *min_interval_s* after the previous peak.
    """
    if len(samples) < 3:
        return MotionPeaks()

    t_end = samples[-1].timestamp
    recent = [s for s in samples if s.timestamp >= t_end - window_s * 1000.0]
    if len(recent) < 3:
        return MotionPeaks()

    z = np.asarray([s.z for s in recent], dtype=np.float64)
    mean = float(np.mean(z))
    std = float(np.std(z))
    band = std_multiplier * std
    if band <= 0:
        return MotionPeaks(threshold=mean)

    peaks: list[Sample] = []
    last_t: float | None = None
    for i in range(1, len(recent) - 1):
        curr = recent[i]
        if abs(curr.z - mean) <= band:
            continue
        if not (abs(curr.z) > abs(recent[i - 1].z) and abs(curr.z) > abs(recent[i + 1].z)):
            continue
        if last_t is not None and curr.timestamp - last_t <= min_interval_s * 1000.0:
            continue
        peaks.append(Sample(value=curr.z, source_time=curr.timestamp / 1000.0))
        last_t = curr.timestamp

    times = [p.source_time for p in peaks]
    intervals = [b - a for a, b in zip(times, times[1:])]
    return MotionPeaks(peaks=peaks, intervals_s=intervals, threshold=mean + band)
