"""Periodic HRV recomputation over the long ("robust") window.

The scheduler is a two-state machine:

    IDLE  -- the robust buffer is still filling; progress is reported as
             fill / capacity and polled every ``poll_interval`` seconds.
    READY -- the buffer filled once; a snapshot is computed immediately and
             then every ``interval`` seconds for as long as it runs.

``stop()`` (or ``reset()``) returns it to IDLE with progress 0 and no
snapshot.  ``tick()`` performs one step synchronously; ``start()`` runs
the same steps from an asyncio task when an event loop is available, with
the RR derivation handed to the loop's default executor.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence

from hrvstream.analytics.hrv import HRVSnapshot, RRSource, compute_hrv

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 1.0
RECOMPUTE_INTERVAL_S = 10.0


class RobustPhase(str, Enum):
    IDLE = "idle"
    READY = "ready"


@dataclass(frozen=True)
class RobustCalculationState:
    """What consumers may observe about the robust calculation."""

    progress: float = 0.0  # 0.0 .. 1.0
    ready: bool = False
    last_snapshot: HRVSnapshot | None = None
    phase: RobustPhase = RobustPhase.IDLE

    def __repr__(self) -> str:
        return (
            f"RobustCalculationState({self.phase.value}, "
            f"progress={self.progress:.0%}, snapshot={self.last_snapshot is not None})"
        )


# (retained, capacity) in matching units
FillFn = Callable[[], tuple[float, float]]
# Copy of the data behind the robust window, taken where ingestion runs
CaptureFn = Callable[[], Any]
# RR intervals (s) derived from a captured window; may run on a worker thread
RRFn = Callable[[Any], Sequence[float]]


class RobustRecalculationScheduler:
    """Long-period recomputation of an ``HRVSnapshot``.

    Args:
        fill: Returns ``(retained, capacity)`` of the buffer backing *source*.
        capture: Returns a private copy of the robust window.
        rr_intervals: Turns a captured window into the RR series to summarise.
        source: Which RR source the snapshot is tagged with.
        window_seconds: Window length recorded on each snapshot.
        poll_interval: Seconds between fill checks while idle.
        interval: Seconds between recomputations once ready.
        clock: Monotonic time source, seconds.
    """

    def __init__(
        self,
        fill: FillFn,
        capture: CaptureFn,
        rr_intervals: RRFn,
        source: RRSource,
        window_seconds: float,
        poll_interval: float = POLL_INTERVAL_S,
        interval: float = RECOMPUTE_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fill = fill
        self._capture = capture
        self._rr_intervals = rr_intervals
        self.source = source
        self.window_seconds = window_seconds
        self.poll_interval = poll_interval
        self.interval = interval
        self._clock = clock

        self._state = RobustCalculationState()
        self._next_due: float | None = None
        self._active = False
        self._task: asyncio.Task | None = None

    # -- observation -------------------------------------------------------

    @property
    def state(self) -> RobustCalculationState:
        return self._state

    @property
    def active(self) -> bool:
        return self._active

    @property
    def running(self) -> bool:
        """True while an asyncio task is driving the scheduler."""
        return self._task is not None and not self._task.done()

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Reset to IDLE and begin ticking.

        Inside a running event loop a background task is created; otherwise
        the caller drives the scheduler with ``tick()``.
        """
        self._cancel_task()
        self.reset()
        self._active = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; robust calculation is driven by tick()")
            return
        self._task = loop.create_task(self._run(), name="robust-hrv")

    def stop(self) -> None:
        """Cancel the background task and reset state. Safe to call twice."""
        self._cancel_task()
        self._active = False
        self.reset()

    def reset(self) -> None:
        """Back to IDLE without changing whether the scheduler is active."""
        if self._state.ready:
            logger.info("Robust HRV calculation reset")
        self._state = RobustCalculationState()
        self._next_due = None

    def _cancel_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            now = self._clock()
            if self._due(now):
                window = self._capture()
                # Beat detection over the robust window stays off the event loop
                rr = await loop.run_in_executor(None, self._rr_intervals, window)
                delay = self._publish(rr, now)
            else:
                delay = self._delay(now)
            await asyncio.sleep(delay)

    # -- state machine ------------------------------------------------------

    def tick(self, now: float | None = None) -> float:
        """Advance the state machine once; return seconds until the next wake.

        The snapshot, when due, is computed on the calling thread.
        """
        if not self._active:
            return self.poll_interval
        if now is None:
            now = self._clock()
        if not self._due(now):
            return self._delay(now)
        return self._publish(self._rr_intervals(self._capture()), now)

    def _due(self, now: float) -> bool:
        """Update idle progress; True when a snapshot should be computed."""
        if self._state.phase is RobustPhase.IDLE:
            retained, capacity = self._fill()
            fraction = min(max(retained / capacity, 0.0), 1.0) if capacity > 0 else 0.0
            progress = max(self._state.progress, fraction)
            if progress >= 1.0:
                return True
            self._state = RobustCalculationState(progress=progress)
            logger.debug("Robust HRV progress %.0f%% (%.0f/%.0f)", progress * 100, retained, capacity)
            return False
        return self._next_due is None or now >= self._next_due

    def _delay(self, now: float) -> float:
        if self._state.phase is RobustPhase.IDLE or self._next_due is None:
            return self.poll_interval
        return max(self._next_due - now, 0.0)

    def _publish(self, rr_intervals: Sequence[float], now: float) -> float:
        first = not self._state.ready
        self._state = RobustCalculationState(
            progress=1.0,
            ready=True,
            last_snapshot=self._snapshot(rr_intervals),
            phase=RobustPhase.READY,
        )
        self._next_due = now + self.interval
        if first:
            logger.info("Robust HRV ready: %r", self._state.last_snapshot)
        else:
            logger.debug("Robust HRV recomputed: %r", self._state.last_snapshot)
        return self.interval

    def _snapshot(self, rr_intervals: Sequence[float]) -> HRVSnapshot | None:
        rr = list(rr_intervals)
        if len(rr) < 2:
            # Not enough data yet, as opposed to a computed flat result
            return None
        return compute_hrv(rr, self.window_seconds, self.source)

    def __repr__(self) -> str:
        return f"RobustRecalculationScheduler({self.source.value}, {self._state!r})"
