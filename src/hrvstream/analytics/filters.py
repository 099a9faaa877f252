"""Small signal-conditioning helpers shared by the detectors.

All helpers take a 1-D sequence and return a new float64 array of the same
length; none of them mutate their input.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy import signal as sig
from scipy.ndimage import uniform_filter1d


def moving_average(data: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Centered moving average; edges are padded with the nearest sample.

    Inputs shorter than *window* (or a window below 2) come back unchanged.
    """
    arr = np.asarray(data, dtype=np.float64)
    if window < 2 or len(arr) < window:
        return arr.copy()
    return uniform_filter1d(arr, size=window, mode="nearest")


def moving_average_highpass(data: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """High-pass by subtracting the moving average (baseline) from the signal."""
    arr = np.asarray(data, dtype=np.float64)
    if len(arr) <= window:
        return arr.copy()
    return arr - moving_average(arr, window)


def cutoff_window(sampling_rate: float, cutoff_hz: float, minimum: int = 3) -> int:
    """Moving-average length approximating a cutoff at *cutoff_hz*."""
    if cutoff_hz <= 0:
        return minimum
    return max(minimum, int(sampling_rate / cutoff_hz))


def bandpass(
    data: Sequence[float] | np.ndarray,
    sampling_rate: float,
    lowcut: float = 5.0,
    highcut: float = 15.0,
) -> np.ndarray:
    """Sequential moving-average high-pass then low-pass."""
    hp = moving_average_highpass(data, cutoff_window(sampling_rate, lowcut))
    return moving_average(hp, cutoff_window(sampling_rate, highcut))


def single_pole_highpass(
    data: Sequence[float] | np.ndarray,
    cutoff_hz: float,
    sampling_rate: float,
) -> np.ndarray:
    """First-order RC high-pass, ``y[n] = a * (y[n-1] + x[n] - x[n-1])``.

    Starts from rest (``x[-1] = y[-1] = 0``).
    """
    arr = np.asarray(data, dtype=np.float64)
    if len(arr) == 0:
        return arr.copy()
    dt = 1.0 / sampling_rate
    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    alpha = rc / (rc + dt)
    return sig.lfilter([alpha, -alpha], [1.0, -alpha], arr)


def differentiate(data: Sequence[float] | np.ndarray) -> np.ndarray:
    """First difference with the first sample defined as zero."""
    arr = np.asarray(data, dtype=np.float64)
    if len(arr) < 2:
        return np.zeros_like(arr)
    return np.concatenate(([0.0], np.diff(arr)))


def median_mad(data: Sequence[float] | np.ndarray) -> tuple[float, float]:
    """Median and median absolute deviation; ``(0.0, 0.0)`` for empty input."""
    arr = np.asarray(data, dtype=np.float64)
    if len(arr) == 0:
        return 0.0, 0.0
    med = float(np.median(arr))
    mad = float(np.median(np.abs(arr - med)))
    return med, mad


def trailing_max(data: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Maximum over the trailing *window* samples (inclusive) at each index."""
    arr = np.asarray(data, dtype=np.float64)
    if len(arr) == 0 or window < 2:
        return arr.copy()
    padded = np.pad(arr, (window - 1, 0), mode="edge")
    return np.lib.stride_tricks.sliding_window_view(padded, window).max(axis=1)
