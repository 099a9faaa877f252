"""Stream ingestion: conditions incoming batches and keeps the rolling views.

:class:`StreamIngestManager` is the only writer of every buffer.  Sensor
batches arrive through :meth:`StreamIngestManager.append_samples`; the
manager appends them to each window registered for the channel and, once
enough new data accumulated, recomputes the live HRV metric.  Detectors and
statistics only ever receive copies of the windows.

Per channel:

    ECG -- display, HRV and robust sample windows
    RR  -- live and robust interval windows (strap-reported, in seconds)
    ACC -- one accelerometer window; jump and lap detection read its tail
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, Sequence

import numpy as np

from hrvstream.analytics.filters import moving_average
from hrvstream.analytics.hrv import (
    HRVSnapshot,
    RRSource,
    compute_hrv,
    filter_rr,
    trailing_rr,
)
from hrvstream.analytics.jump import JumpDetector, JumpEvent
from hrvstream.analytics.motion import MotionPeaks, detect_motion_peaks, vertical_speed
from hrvstream.analytics.peaks import PeakDetector
from hrvstream.buffer import RollingBuffer, capacity_for
from hrvstream.config import StreamConfig
from hrvstream.export import SessionExport
from hrvstream.robust import RobustCalculationState, RobustRecalculationScheduler
from hrvstream.samples import AccelSample, Sample

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    ECG = "ecg"  # mV
    ACC = "acc"  # g, tri-axial
    RR = "rr"  # ms, strap-reported beat-to-beat intervals


@dataclass(frozen=True)
class BatchReport:
    """Outcome of one ``append_samples`` call."""

    channel: Channel
    accepted: int = 0
    non_finite: int = 0
    discontinuity: bool = False
    recomputed: bool = False

    @property
    def flagged(self) -> bool:
        return self.non_finite > 0 or self.discontinuity


def condition_ecg_batch(
    raw: Sequence[float] | np.ndarray,
    clamp: float = 3.0,
    smoothing_window: int = 3,
) -> tuple[np.ndarray, int]:
    """De-mean, clamp and smooth one ECG batch.

    Non-finite samples are excluded from the mean and set to zero.

    Returns:
        ``(conditioned, non_finite_count)``.
    """
    values = np.asarray(raw, dtype=np.float64)
    if len(values) == 0:
        return values, 0
    finite = np.isfinite(values)
    bad = int(len(values) - np.count_nonzero(finite))
    if bad == len(values):
        return np.zeros(0), bad

    centered = np.where(finite, values - float(np.mean(values[finite])), 0.0)
    clamped = np.clip(centered, -clamp, clamp)
    return moving_average(clamped, smoothing_window), bad


LiveListener = Callable[[HRVSnapshot], None]


class StreamIngestManager:
    """Owns every rolling window and drives live and robust HRV metrics.

    Args:
        config: Window lengths, rates and schedules.
        peak_detector: R-peak detector for the ECG channel.
        jump_detector: Jump detector for the accelerometer channel.
        clock: Wall-clock time source (epoch seconds) for timestamps.
    """

    def __init__(
        self,
        config: StreamConfig | None = None,
        peak_detector: PeakDetector | None = None,
        jump_detector: JumpDetector | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or StreamConfig()
        cfg = self.config
        self.peak_detector = peak_detector or PeakDetector(sampling_rate=cfg.ecg_sampling_rate)
        self.jump_detector = jump_detector or JumpDetector(sampling_rate=cfg.acc_sampling_rate)
        self._clock = clock

        # ECG
        self.ecg_display: RollingBuffer[float] = RollingBuffer(cfg.display_capacity)
        self.ecg_hrv: RollingBuffer[float] = RollingBuffer(cfg.hrv_capacity)
        self.ecg_robust: RollingBuffer[float] = RollingBuffer(cfg.robust_capacity)
        # Strap RR (s)
        self.rr_live: RollingBuffer[float] = RollingBuffer(cfg.rr_capacity(cfg.hrv_window_s))
        self.rr_robust: RollingBuffer[float] = RollingBuffer(cfg.rr_capacity(cfg.robust_window_s))
        # Accelerometer
        self.acc: RollingBuffer[AccelSample] = RollingBuffer(cfg.acc_capacity)

        self.robust = RobustRecalculationScheduler(
            fill=self._robust_fill,
            capture=self._robust_window,
            rr_intervals=self._robust_rr,
            source=cfg.robust_rr_source,
            window_seconds=cfg.robust_window_s,
            poll_interval=cfg.robust_poll_s,
            interval=cfg.robust_interval_s,
        )

        self._listeners: list[LiveListener] = []
        self._history: Deque[HRVSnapshot] = deque(maxlen=cfg.history_max)
        self.jump_mode = False
        self.lap_mode = False
        self._reset_state()

    def _reset_state(self) -> None:
        for buf in (self.ecg_display, self.ecg_hrv, self.ecg_robust,
                    self.rr_live, self.rr_robust, self.acc):
            buf.clear()
        self._history.clear()
        self._session_started: float | None = None
        self._ecg_total = 0
        self._ecg_since_update = 0
        self._rr_since_update = 0.0
        self._rr_elapsed = 0.0
        self._ecg_at_last_rr: int | None = None  # ECG sample count when strap RR last arrived
        self._last_source_time: dict[Channel, float] = {}
        self._live: HRVSnapshot | None = None
        self._beats: list[int] = []
        self._jumps: list[JumpEvent] = []
        self._speed: list[Sample] = []
        self._motion = MotionPeaks()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def append_samples(
        self,
        raw: Sequence,
        channel: Channel | str,
        source_time: float | None = None,
    ) -> BatchReport:
        """Ingest one transport batch for *channel*.

        Args:
            raw: ECG values (mV), accelerometer samples or ``(x, y, z)``
                tuples (g), or RR intervals (ms).
            channel: Which stream the batch belongs to.
            source_time: Optional transport timestamp of the batch (s).
                Timestamps that go backwards are flagged, not rejected.
        """
        channel = Channel(channel)
        discontinuity = self._check_time(channel, source_time)
        if channel is Channel.ECG:
            report = self._append_ecg(raw)
        elif channel is Channel.RR:
            report = self._append_rr(raw)
        else:
            report = self._append_acc(raw, source_time)
        if discontinuity:
            report = replace(report, discontinuity=True)
        return report

    def append_ecg(self, raw: Sequence[float], source_time: float | None = None) -> BatchReport:
        return self.append_samples(raw, Channel.ECG, source_time)

    def append_rr_intervals(self, rr_ms: Sequence[float], source_time: float | None = None) -> BatchReport:
        return self.append_samples(rr_ms, Channel.RR, source_time)

    def append_acceleration(self, samples: Sequence, source_time: float | None = None) -> BatchReport:
        return self.append_samples(samples, Channel.ACC, source_time)

    def _check_time(self, channel: Channel, source_time: float | None) -> bool:
        if source_time is None:
            return False
        if not math.isfinite(source_time):
            logger.warning("%s batch with non-finite timestamp %r", channel.value, source_time)
            return True
        last = self._last_source_time.get(channel)
        self._last_source_time[channel] = source_time
        if last is not None and source_time < last:
            logger.warning(
                "%s timestamps went backwards (%.3f -> %.3f)", channel.value, last, source_time
            )
            return True
        return False

    def _mark_session_start(self) -> None:
        if self._session_started is None:
            self._session_started = self._clock()

    def _append_ecg(self, raw: Sequence[float]) -> BatchReport:
        cfg = self.config
        conditioned, bad = condition_ecg_batch(raw, cfg.clamp_amplitude, cfg.smoothing_window)
        if bad:
            logger.warning("ECG batch had %d non-finite sample(s); zeroed", bad)
        if len(conditioned) == 0:
            return BatchReport(Channel.ECG, non_finite=bad)

        self._mark_session_start()
        values = conditioned.tolist()
        self.ecg_display.extend(values)
        self.ecg_hrv.extend(values)
        self.ecg_robust.extend(values)
        logger.debug(
            "ECG buffers: display=%d hrv=%d robust=%d/%d",
            len(self.ecg_display), len(self.ecg_hrv),
            len(self.ecg_robust), self.ecg_robust.capacity,
        )

        self._ecg_total += len(values)
        self._ecg_since_update += len(values)
        recomputed = False
        if self._ecg_since_update >= cfg.live_update_samples:
            self._ecg_since_update = 0
            self._update_live()
            recomputed = True
        return BatchReport(Channel.ECG, accepted=len(values), non_finite=bad, recomputed=recomputed)

    def _append_rr(self, rr_ms: Sequence[float]) -> BatchReport:
        values = np.asarray(rr_ms, dtype=np.float64)
        finite = values[np.isfinite(values)]
        bad = len(values) - len(finite)
        if len(finite) == 0:
            return BatchReport(Channel.RR, non_finite=bad)

        self._mark_session_start()
        if len(self.rr_live) and not self._sensor_rr_current():
            # The strap was silent for a whole HRV window; do not splice across the gap
            self.rr_live.clear()
        accepted: list[float] = []
        for rr in filter_rr((finite / 1000.0).tolist()):
            # Intervals inside the stabilization period never enter a window
            settled = self._rr_elapsed >= self.config.stabilization_s
            self._rr_elapsed += rr
            if settled:
                accepted.append(rr)
        self.rr_live.extend(accepted)
        self.rr_robust.extend(accepted)
        if accepted:
            self._ecg_at_last_rr = self._ecg_total

        self._rr_since_update += sum(accepted)
        recomputed = False
        if accepted and self._rr_since_update >= self.config.live_update_s:
            self._rr_since_update = 0.0
            self._update_live()
            recomputed = True
        return BatchReport(Channel.RR, accepted=len(accepted), non_finite=bad, recomputed=recomputed)

    def _append_acc(self, raw: Sequence, source_time: float | None) -> BatchReport:
        cfg = self.config
        step_ms = 1000.0 / cfg.acc_sampling_rate
        if source_time is not None:
            base_ms = source_time * 1000.0
        elif len(self.acc):
            base_ms = self.acc.tail(1)[0].timestamp + step_ms
        else:
            base_ms = 0.0
        samples: list[AccelSample] = []
        bad = 0
        for i, item in enumerate(raw):
            sample = AccelSample.coerce(item, timestamp=base_ms + i * step_ms)
            if not all(math.isfinite(v) for v in (sample.x, sample.y, sample.z)):
                bad += 1
                continue
            samples.append(sample)
        if bad:
            logger.warning("ACC batch had %d non-finite sample(s); dropped", bad)
        if not samples:
            return BatchReport(Channel.ACC, non_finite=bad)

        self._mark_session_start()
        self.acc.extend(samples)
        self._speed = vertical_speed(self.acc.snapshot())
        if self.lap_mode:
            self._motion = detect_motion_peaks(self.acc.snapshot(), window_s=cfg.motion_window_s)
        recomputed = False
        if self.jump_mode:
            self.detect_jumps()
            recomputed = True
        return BatchReport(Channel.ACC, accepted=len(samples), non_finite=bad, recomputed=recomputed)

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------

    def _stabilization_skip(self, window_len: int) -> int:
        """Leading samples of a trailing ECG window that are still settling."""
        first_index = self._ecg_total - window_len
        return min(max(self.config.stabilization_samples - first_index, 0), window_len)

    def _detected_rr(self, window: np.ndarray, skip: int) -> tuple[list[int], list[float]]:
        """Peaks in *window* and the RR series of the peaks at or after *skip*."""
        peaks = self.peak_detector.detect(window)
        settled = [p for p in peaks if p >= skip]
        return peaks, self.peak_detector.rr_from_peaks(settled)

    def _robust_fill(self) -> tuple[float, float]:
        if self.config.robust_rr_source is RRSource.SENSOR:
            return float(sum(self.rr_robust.snapshot())), self.config.robust_window_s
        return float(len(self.ecg_robust)), float(self.ecg_robust.capacity)

    def _robust_window(self) -> tuple[Sequence[float], int]:
        """Copy of the robust buffer for *source*, with its stabilization skip."""
        if self.config.robust_rr_source is RRSource.SENSOR:
            return self.rr_robust.snapshot(), 0
        window = self.ecg_robust.as_array()
        return window, self._stabilization_skip(len(window))

    def _robust_rr(self, captured: tuple[Sequence[float], int]) -> list[float]:
        values, skip = captured
        if self.config.robust_rr_source is RRSource.SENSOR:
            return trailing_rr(values, self.config.robust_window_s)
        _, rr = self._detected_rr(np.asarray(values), skip)
        return rr

    def _sensor_rr_current(self) -> bool:
        """True if strap RR arrived within the last HRV window of ECG."""
        if self._ecg_at_last_rr is None:
            return False
        return self._ecg_total - self._ecg_at_last_rr <= self.config.hrv_capacity

    # ------------------------------------------------------------------
    # Live metric
    # ------------------------------------------------------------------

    def _update_live(self) -> HRVSnapshot:
        cfg = self.config
        hrv_window = self.ecg_hrv.as_array()
        peaks, detected = self._detected_rr(hrv_window, self._stabilization_skip(len(hrv_window)))

        # Beats relative to the display window, which is the tail of the HRV window
        offset = len(hrv_window) - len(self.ecg_display)
        self._beats = [p - offset for p in peaks if p >= offset]

        sensor = trailing_rr(self.rr_live.snapshot(), cfg.hrv_window_s)
        if len(sensor) >= 2 and self._sensor_rr_current():
            rr, source = sensor, RRSource.SENSOR
        else:
            rr, source = detected, RRSource.DETECTED

        snapshot = compute_hrv(rr, cfg.hrv_window_s, source, computed_at=self._clock())
        self._live = snapshot
        self._history.append(snapshot)
        self._notify(snapshot)
        return snapshot

    def subscribe(self, listener: LiveListener) -> Callable[[], None]:
        """Call *listener* with every new live metric; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, snapshot: HRVSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Live metric listener %r failed", listener)

    # ------------------------------------------------------------------
    # Jumps
    # ------------------------------------------------------------------

    def set_jump_mode(self, enabled: bool) -> None:
        self.jump_mode = enabled
        if not enabled:
            self._jumps = []

    def set_lap_mode(self, enabled: bool) -> None:
        self.lap_mode = enabled
        if not enabled:
            self._motion = MotionPeaks()

    def detect_jumps(self) -> list[JumpEvent]:
        """Run jump detection over the trailing jump window now."""
        n = capacity_for(self.config.acc_sampling_rate, self.config.jump_window_s)
        self._jumps = self.jump_detector.detect(self.acc.tail(n))
        return list(self._jumps)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_live_metric(self) -> HRVSnapshot | None:
        return self._live

    def get_robust_state(self) -> RobustCalculationState:
        return self.robust.state

    def get_detected_beats(self) -> list[int]:
        """Latest R-peak indices into :meth:`get_display_window`."""
        return list(self._beats)

    def get_jump_events(self) -> list[JumpEvent]:
        return list(self._jumps)

    def get_display_window(self) -> list[float]:
        return self.ecg_display.snapshot()

    def get_hrv_history(self) -> list[HRVSnapshot]:
        return list(self._history)

    def get_vertical_speed(self) -> list[Sample]:
        return list(self._speed)

    def get_motion_peaks(self) -> MotionPeaks:
        return self._motion

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_robust_calculation(self, preserve_buffers: bool = False) -> None:
        """(Re)start the robust scheduler, by default from empty robust buffers."""
        if not preserve_buffers:
            self.ecg_robust.clear()
            self.rr_robust.clear()
        self.robust.start()

    def stop_robust_calculation(self) -> None:
        self.robust.stop()

    def reset_session(self) -> None:
        """Drop all session data and restart the stabilization period."""
        was_active = self.robust.active
        self.robust.stop()
        self._reset_state()
        logger.info("Session reset")
        if was_active:
            self.robust.start()

    def session_export(self) -> SessionExport:
        """Plain-data snapshot of the session for persistence layers."""
        started = self._session_started
        robust = self.robust.state.last_snapshot
        return SessionExport(
            sampling_rate=self.config.ecg_sampling_rate,
            started_at=(
                datetime.fromtimestamp(started, tz=timezone.utc).isoformat()
                if started is not None else None
            ),
            ecg=self.ecg_display.snapshot(),
            hrv_per_second=[s.to_dict() for s in self._history],
            robust_summary=robust.to_dict() if robust is not None else None,
            jumps=[
                {
                    "takeoff_index": j.takeoff_index,
                    "landing_index": j.landing_index,
                    "flight_seconds": j.flight_seconds,
                    "height_cm": j.height_cm,
                    "fallback": j.fallback,
                }
                for j in self._jumps
            ],
        )

    def __repr__(self) -> str:
        return (
            f"StreamIngestManager(ecg={len(self.ecg_hrv)}, rr={len(self.rr_live)}, "
            f"acc={len(self.acc)}, robust={self.robust.state!r})"
        )
