"""Signal analytics for ECG and accelerometer windows.

Modules:
    filters -- Moving-average and first-order filters, median/MAD
    peaks   -- Pan-Tompkins style R-peak detection
    hrv     -- Time-domain HRV statistics and snapshots
    jump    -- Flight-time vertical jump detection
    motion  -- Vertical speed and lap-peak detection
"""

from hrvstream.analytics.hrv import (
    RRSource,
    HRVSnapshot,
    compute_hrv,
    compute_rmssd,
    sdnn,
    mean_hr,
    nn50,
    pnn50,
    filter_rr,
    trailing_rr,
)
from hrvstream.analytics.peaks import PeakDetector, ThresholdMode
from hrvstream.analytics.jump import JumpDetector, JumpEvent, best_jump, flight_height_cm
from hrvstream.analytics.motion import MotionPeaks, detect_motion_peaks, vertical_speed

__all__ = [
    # hrv
    "RRSource",
    "HRVSnapshot",
    "compute_hrv",
    "compute_rmssd",
    "sdnn",
    "mean_hr",
    "nn50",
    "pnn50",
    "filter_rr",
    "trailing_rr",
    # peaks
    "PeakDetector",
    "ThresholdMode",
    # jump
    "JumpDetector",
    "JumpEvent",
    "best_jump",
    "flight_height_cm",
    # motion
    "MotionPeaks",
    "detect_motion_peaks",
    "vertical_speed",
]
