"""R-peak detection on a finite ECG window.

A simplified Pan-Tompkins pipeline:

1. Bandpass (moving-average high-pass at ~5 Hz, then low-pass at ~15 Hz).
2. First difference.
3. Square.
4. Moving-window integration over one QRS width (~120 ms): the energy
   envelope.
5. Threshold the envelope, find the envelope maximum in a QRS-wide window
   after each crossing, and relocate the R-peak to the largest sample of the
   *original* signal near that maximum.

Candidates closer than the refractory period (or than the shortest
physiological RR) to the previous accepted peak are merged: the one with
the larger amplitude is kept.
A candidate that follows an accepted peak by less than the T-wave window and
reaches under half of its amplitude is taken for that beat's T wave and
skipped.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np

from hrvstream.analytics.filters import (
    bandpass,
    differentiate,
    median_mad,
    moving_average,
    trailing_max,
)
from hrvstream.analytics.hrv import RR_MAX_S, RR_MIN_S, filter_rr


class ThresholdMode(str, Enum):
    """How the envelope threshold is derived."""

    ROBUST = "robust"  # median + k * MAD over the whole window
    ADAPTIVE = "adaptive"  # fraction of the trailing local maximum


# Pipeline defaults
LOWCUT_HZ = 5.0
HIGHCUT_HZ = 15.0
QRS_WIDTH_S = 0.12
SEARCH_RADIUS_S = 0.06
REFRACTORY_S = 0.25
MAD_MULTIPLIER = 4.0
ADAPTIVE_FRACTION = 0.3
ADAPTIVE_LOOKBACK_S = 10.0
# Floor for the threshold, as a fraction of the envelope maximum; keeps a
# flat baseline (MAD == 0) from turning every sample into a crossing.
MIN_THRESHOLD_RATIO = 0.1
# A smaller deflection this soon after a beat is its T wave
T_WAVE_WINDOW_S = 0.36
T_WAVE_RATIO = 0.5


class PeakDetector:
    """Stateless R-peak detector; one instance per sampling rate/config.

    Args:
        sampling_rate: ECG sampling rate in Hz.
        mode: ``ThresholdMode.ROBUST`` or ``ThresholdMode.ADAPTIVE``.
        mad_multiplier: k in ``median + k * MAD``.
        adaptive_fraction: Fraction of the trailing maximum (adaptive mode).
        adaptive_lookback_s: Trailing window for the adaptive maximum.
        qrs_width_s: Integration window and forward search window.
        search_radius_s: Radius around the envelope peak searched in the
            original signal for the R-peak.
        refractory_s: Minimum spacing between accepted peaks.
        rr_min / rr_max: Physiological RR bounds (s).
        t_wave_window_s: Spacing after a peak inside which a candidate below
            ``t_wave_ratio`` times that peak's amplitude is skipped.
    """

    def __init__(
        self,
        sampling_rate: float = 130.0,
        mode: ThresholdMode = ThresholdMode.ROBUST,
        mad_multiplier: float = MAD_MULTIPLIER,
        adaptive_fraction: float = ADAPTIVE_FRACTION,
        adaptive_lookback_s: float = ADAPTIVE_LOOKBACK_S,
        qrs_width_s: float = QRS_WIDTH_S,
        search_radius_s: float = SEARCH_RADIUS_S,
        refractory_s: float = REFRACTORY_S,
        rr_min: float = RR_MIN_S,
        rr_max: float = RR_MAX_S,
        min_threshold_ratio: float = MIN_THRESHOLD_RATIO,
        t_wave_window_s: float = T_WAVE_WINDOW_S,
        t_wave_ratio: float = T_WAVE_RATIO,
    ) -> None:
        if sampling_rate <= 0:
            raise ValueError(f"sampling_rate must be positive, got {sampling_rate}")
        self.sampling_rate = float(sampling_rate)
        self.mode = ThresholdMode(mode)
        self.mad_multiplier = mad_multiplier
        self.adaptive_fraction = adaptive_fraction
        self.adaptive_lookback_s = adaptive_lookback_s
        self.qrs_width_s = qrs_width_s
        self.search_radius_s = search_radius_s
        self.refractory_s = refractory_s
        self.rr_min = rr_min
        self.rr_max = rr_max
        self.min_threshold_ratio = min_threshold_ratio
        self.t_wave_window_s = t_wave_window_s
        self.t_wave_ratio = t_wave_ratio

    def _samples(self, seconds: float) -> int:
        return max(1, int(seconds * self.sampling_rate))

    # -- pipeline stages --------------------------------------------------

    def envelope(self, ecg: Sequence[float] | np.ndarray) -> np.ndarray:
        """Stages 1-4: the integrated QRS energy envelope."""
        filtered = bandpass(ecg, self.sampling_rate, LOWCUT_HZ, HIGHCUT_HZ)
        squared = differentiate(filtered) ** 2
        return moving_average(squared, self._samples(self.qrs_width_s))

    def threshold(self, envelope: np.ndarray) -> np.ndarray:
        """Per-sample threshold for *envelope*."""
        if len(envelope) == 0:
            return envelope.copy()
        floor = self.min_threshold_ratio * float(np.max(envelope))
        if self.mode is ThresholdMode.ADAPTIVE:
            local = trailing_max(envelope, self._samples(self.adaptive_lookback_s))
            return np.maximum(self.adaptive_fraction * local, floor)
        med, mad = median_mad(envelope)
        return np.full(len(envelope), max(med + self.mad_multiplier * mad, floor))

    # -- public API -------------------------------------------------------

    def detect(self, ecg: Sequence[float] | np.ndarray) -> list[int]:
        """Return R-peak sample indices in *ecg*, ascending.

        Windows of one second or less yield an empty list.
        """
        data = np.asarray(ecg, dtype=np.float64)
        n = len(data)
        if n <= int(self.sampling_rate) or not np.all(np.isfinite(data)):
            return []

        env = self.envelope(data)
        if float(np.max(env)) <= 0.0:
            return []
        thr = self.threshold(env)

        search = self._samples(self.qrs_width_s)
        radius = self._samples(self.search_radius_s)
        refractory = self._samples(self.refractory_s)
        min_gap = max(refractory, int(self.rr_min * self.sampling_rate))
        t_wave = self._samples(self.t_wave_window_s)

        peaks: list[int] = []
        i = 0
        while i < n:
            if env[i] <= thr[i]:
                i += 1
                continue

            end = min(i + search, n - 1)
            env_peak = i + int(np.argmax(env[i:end + 1]))

            lo = max(0, env_peak - radius)
            hi = min(n - 1, env_peak + radius)
            r_peak = lo + int(np.argmax(data[lo:hi + 1]))

            if peaks and r_peak - peaks[-1] < min_gap:
                # Conflict with the previous beat: keep the taller one
                if data[r_peak] > data[peaks[-1]]:
                    peaks[-1] = r_peak
            elif not (peaks and self._is_t_wave(data, peaks[-1], r_peak, t_wave)):
                peaks.append(r_peak)

            i = env_peak + refractory

        return peaks

    def _is_t_wave(self, data: np.ndarray, prev: int, candidate: int, window: int) -> bool:
        if candidate - prev >= window or data[prev] <= 0.0:
            return False
        return bool(data[candidate] < self.t_wave_ratio * data[prev])

    def rr_from_peaks(self, peaks: Sequence[int]) -> list[float]:
        """Successive peak spacing in seconds, limited to the RR bounds."""
        if len(peaks) < 2:
            return []
        spacing = np.diff(np.asarray(peaks, dtype=np.float64)) / self.sampling_rate
        return filter_rr(spacing.tolist(), self.rr_min, self.rr_max)

    def detect_rr_intervals(self, ecg: Sequence[float] | np.ndarray) -> list[float]:
        """RR intervals (s) between the R-peaks detected in *ecg*."""
        return self.rr_from_peaks(self.detect(ecg))

    def __repr__(self) -> str:
        return f"PeakDetector({self.sampling_rate:g}Hz, mode={self.mode.value})"
