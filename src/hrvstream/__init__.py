"""hrvstream: streaming heartbeat, HRV and jump analysis for wearable ECG/IMU data."""

from hrvstream.buffer import RollingBuffer
from hrvstream.config import StreamConfig
from hrvstream.ingest import BatchReport, Channel, StreamIngestManager
from hrvstream.robust import RobustCalculationState, RobustPhase, RobustRecalculationScheduler

__version__ = "0.1.0"

__all__ = [
    "RollingBuffer",
    "StreamConfig",
    "BatchReport",
    "Channel",
    "StreamIngestManager",
    "RobustCalculationState",
    "RobustPhase",
    "RobustRecalculationScheduler",
]
