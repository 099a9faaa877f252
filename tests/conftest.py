"""Shared fixtures and helpers for the hrvstream test suite."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from hrvstream.config import StreamConfig


# ---------------------------------------------------------------------------
# Synthetic ECG
# ---------------------------------------------------------------------------


def ecg_pulse_train(
    duration_s: float = 10.0,
    spacing_s: float = 0.8,
    fs: float = 130.0,
    first_s: float = 0.5,
    amplitude: float = 1.0,
    noise: float = 0.0,
    seed: int = 0,
) -> tuple[np.ndarray, list[int]]:
    """Flat baseline with a narrow triangular "R wave" every *spacing_s*.

    Returns the signal and the true pulse indices.
    """
    n = int(duration_s * fs)
    ecg = np.zeros(n)
    positions = list(range(int(round(first_s * fs)), n - 1, int(round(spacing_s * fs))))
    for p in positions:
        ecg[p] += amplitude
        ecg[p - 1] += amplitude / 2
        ecg[p + 1] += amplitude / 2
    if noise:
        ecg += np.random.default_rng(seed).normal(0.0, noise, n)
    return ecg, positions


def batches(values, size: int) -> list[list]:
    """Split *values* into consecutive transport batches of *size*."""
    values = list(values)
    return [values[i:i + size] for i in range(0, len(values), size)]


# ---------------------------------------------------------------------------
# Synthetic accelerometer
# ---------------------------------------------------------------------------


def jump_trace(
    flight_samples: int = 20,
    n: int = 300,
    takeoff_at: int = 100,
    pulse: int = 5,
    baseline: float = 0.0,
) -> np.ndarray:
    """Vertical acceleration with a -1 g takeoff and a +1 g landing pulse.

    The landing pulse starts *flight_samples* after the takeoff pulse.
    """
    z = np.full(n, baseline, dtype=np.float64)
    z[takeoff_at:takeoff_at + pulse] -= 1.0
    landing = takeoff_at + flight_samples
    z[landing:landing + pulse] += 1.0
    return z


def accel_tuples(z: np.ndarray) -> list[tuple[float, float, float]]:
    """``(x, y, z)`` tuples as the transport delivers them."""
    return [(0.0, 0.0, float(v)) for v in z]


# ---------------------------------------------------------------------------
# JSONL recording helpers
# ---------------------------------------------------------------------------


def write_jsonl(path: Path, entries: list[dict]) -> Path:
    """Write a list of dicts as JSONL to the given path."""
    with open(path, "w") as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")
    return path


def make_batch_entry(channel: str, t: float, samples: list) -> dict:
    """Create a single recorded batch entry."""
    return {"channel": channel, "t": t, "samples": samples}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def fast_config(**overrides) -> StreamConfig:
    """Short windows and no stabilization period."""
    config = StreamConfig(
        display_window_s=10.0,
        hrv_window_s=20.0,
        robust_window_s=20.0,
        stabilization_s=0.0,
    )
    return config.with_overrides(**overrides)
