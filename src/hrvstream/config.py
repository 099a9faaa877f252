"""Stream configuration: sampling rates, window lengths and schedules."""

from __future__ import annotations

from dataclasses import dataclass, replace

from hrvstream.analytics.hrv import RR_MIN_S, RRSource
from hrvstream.buffer import capacity_for

# Polar H10 defaults
ECG_SAMPLING_RATE = 130.0  # Hz
ACC_SAMPLING_RATE = 50.0  # Hz


@dataclass(frozen=True)
class StreamConfig:
    """Settings for one ingestion session."""

    ecg_sampling_rate: float = ECG_SAMPLING_RATE
    acc_sampling_rate: float = ACC_SAMPLING_RATE

    # Window lengths (seconds)
    display_window_s: float = 10.0
    hrv_window_s: float = 20.0
    robust_window_s: float = 120.0
    acc_window_s: float = 120.0
    jump_window_s: float = 10.0
    motion_window_s: float = 10.0

    # Samples from the first N seconds never start an HRV window
    stabilization_s: float = 10.0

    # Per-batch ECG conditioning
    clamp_amplitude: float = 3.0
    smoothing_window: int = 3

    # Live metric cadence
    live_update_s: float = 1.0
    history_max: int = 60 * 60 * 2  # two hours of per-second entries

    # Robust recalculation
    robust_poll_s: float = 1.0
    robust_interval_s: float = 10.0
    robust_rr_source: RRSource = RRSource.SENSOR

    def __post_init__(self) -> None:
        for name in (
            "ecg_sampling_rate",
            "acc_sampling_rate",
            "display_window_s",
            "hrv_window_s",
            "robust_window_s",
            "acc_window_s",
            "jump_window_s",
            "motion_window_s",
            "live_update_s",
            "robust_poll_s",
            "robust_interval_s",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.stabilization_s < 0:
            raise ValueError("stabilization_s must be >= 0")
        if self.smoothing_window < 1:
            raise ValueError("smoothing_window must be >= 1")
        if not self.display_window_s <= self.hrv_window_s <= self.robust_window_s:
            raise ValueError(
                "windows must satisfy display <= hrv <= robust, got "
                f"{self.display_window_s}/{self.hrv_window_s}/{self.robust_window_s}"
            )

    @property
    def display_capacity(self) -> int:
        return capacity_for(self.ecg_sampling_rate, self.display_window_s)

    @property
    def hrv_capacity(self) -> int:
        return capacity_for(self.ecg_sampling_rate, self.hrv_window_s)

    @property
    def robust_capacity(self) -> int:
        return capacity_for(self.ecg_sampling_rate, self.robust_window_s)

    @property
    def acc_capacity(self) -> int:
        return capacity_for(self.acc_sampling_rate, self.acc_window_s)

    @property
    def stabilization_samples(self) -> int:
        return int(self.ecg_sampling_rate * self.stabilization_s)

    @property
    def live_update_samples(self) -> int:
        return max(1, int(self.ecg_sampling_rate * self.live_update_s))

    @staticmethod
    def rr_capacity(window_s: float) -> int:
        """Most beats a window of *window_s* seconds can hold."""
        return int(window_s / RR_MIN_S) + 1

    def with_overrides(self, **changes) -> StreamConfig:
        """Return a copy with *changes* applied (validated again)."""
        return replace(self, **changes)
