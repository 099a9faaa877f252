"""Time-domain heart-rate-variability statistics.

All functions take RR intervals in **seconds**, in chronological order, and
never sort them: RMSSD, NN50 and pNN50 are built from successive
differences.  Every metric is defined as 0 when fewer than two intervals
are available, so callers never see NaN.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence

import numpy as np

# Physiological RR bounds (s); values outside are discarded, not clamped
RR_MIN_S = 0.3
RR_MAX_S = 2.0

# Successive-difference threshold for NN50 (s)
NN50_THRESHOLD_S = 0.05


class RRSource(str, Enum):
    """Where a series of RR intervals came from."""

    SENSOR = "sensor"  # beat-to-beat intervals reported by the strap
    DETECTED = "detected"  # derived locally from the ECG waveform


# ---------------------------------------------------------------------------
# RR series helpers
# ---------------------------------------------------------------------------


def filter_rr(
    rr_intervals: Sequence[float],
    rr_min: float = RR_MIN_S,
    rr_max: float = RR_MAX_S,
) -> list[float]:
    """Drop intervals outside ``[rr_min, rr_max]``, keeping order."""
    return [float(rr) for rr in rr_intervals if rr_min <= rr <= rr_max]


def trailing_rr(rr_intervals: Sequence[float], window_s: float) -> list[float]:
    """The most recent intervals whose summed duration fits in *window_s*."""
    selected: list[float] = []
    total = 0.0
    for rr in reversed(rr_intervals):
        if total + rr > window_s:
            break
        total += rr
        selected.append(float(rr))
    selected.reverse()
    return selected


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def compute_rmssd(rr_intervals: Sequence[float]) -> float:
    """Root mean square of successive differences, in ms."""
    if len(rr_intervals) < 2:
        return 0.0
    diffs = np.diff(np.asarray(rr_intervals, dtype=np.float64))
    return float(np.sqrt(np.mean(diffs ** 2)) * 1000.0)


def sdnn(rr_intervals: Sequence[float]) -> float:
    """Sample standard deviation of the intervals, in ms."""
    if len(rr_intervals) < 2:
        return 0.0
    arr = np.asarray(rr_intervals, dtype=np.float64)
    return float(np.std(arr, ddof=1) * 1000.0)


def mean_hr(rr_intervals: Sequence[float]) -> float:
    """Mean heart rate (bpm) as 60 / mean RR; 0 for empty or zero-mean input."""
    if len(rr_intervals) == 0:
        return 0.0
    mean_rr = float(np.mean(np.asarray(rr_intervals, dtype=np.float64)))
    if mean_rr <= 0:
        return 0.0
    return 60.0 / mean_rr


def nn50(rr_intervals: Sequence[float], threshold: float = NN50_THRESHOLD_S) -> int:
    """Number of successive differences strictly greater than 50 ms."""
    if len(rr_intervals) < 2:
        return 0
    diffs = np.abs(np.diff(np.asarray(rr_intervals, dtype=np.float64)))
    return int(np.sum(diffs > threshold))


def pnn50(rr_intervals: Sequence[float], threshold: float = NN50_THRESHOLD_S) -> float:
    """NN50 as a percentage of all successive differences."""
    if len(rr_intervals) < 2:
        return 0.0
    return 100.0 * nn50(rr_intervals, threshold) / (len(rr_intervals) - 1)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HRVSnapshot:
    """HRV statistics for one window, immutable once produced."""

    rmssd: float  # ms
    sdnn: float  # ms
    mean_hr: float  # bpm
    nn50: int
    pnn50: float  # %
    beat_count: int
    window_seconds: float
    source: RRSource
    computed_at: float = field(default_factory=time.time)  # epoch seconds

    @property
    def rr_count(self) -> int:
        return max(self.beat_count - 1, 0)

    @property
    def timestamp(self) -> str:
        return datetime.fromtimestamp(self.computed_at, tz=timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Plain dict (JSON-friendly)."""
        d = asdict(self)
        d["source"] = self.source.value
        d["timestamp"] = self.timestamp
        return d

    def __repr__(self) -> str:
        return (
            f"HRVSnapshot({self.source.value}, rmssd={self.rmssd:.1f}ms, "
            f"sdnn={self.sdnn:.1f}ms, hr={self.mean_hr:.0f}bpm, "
            f"pnn50={self.pnn50:.1f}%, beats={self.beat_count})"
        )


def compute_hrv(
    rr_intervals: Sequence[float],
    window_seconds: float,
    source: RRSource,
    computed_at: float | None = None,
) -> HRVSnapshot:
    """Compute every statistic over *rr_intervals* and wrap it in a snapshot."""
    rr = list(rr_intervals)
    return HRVSnapshot(
        rmssd=compute_rmssd(rr),
        sdnn=sdnn(rr),
        mean_hr=mean_hr(rr),
        nn50=nn50(rr),
        pnn50=pnn50(rr),
        beat_count=len(rr) + 1 if rr else 0,
        window_seconds=float(window_seconds),
        source=source,
        computed_at=time.time() if computed_at is None else computed_at,
    )
