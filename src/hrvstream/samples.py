"""Sample value objects delivered by the sensor transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Sample:
    """A single scalar reading and the source time it was taken at."""

    value: float
    source_time: float  # seconds, monotonic


@dataclass(frozen=True)
class AccelSample:
    """A single accelerometer reading."""

    timestamp: float  # ms
    x: float  # g
    y: float  # g
    z: float  # g

    @property
    def magnitude(self) -> float:
        return (self.x ** 2 + self.y ** 2 + self.z ** 2) ** 0.5

    @classmethod
    def from_millig(cls, timestamp: float, x: float, y: float, z: float) -> AccelSample:
        """Build a sample from milli-g axis values, as the strap reports them."""
        return cls(
            timestamp=float(timestamp),
            x=x / 1000.0,
            y=y / 1000.0,
            z=z / 1000.0,
        )

    @classmethod
    def coerce(cls, raw: AccelSample | Sequence[float], timestamp: float = 0.0) -> AccelSample:
        """Accept an ``AccelSample``, an ``(x, y, z)`` or a ``(t, x, y, z)`` tuple."""
        if isinstance(raw, AccelSample):
            return raw
        if len(raw) == 4:
            t, x, y, z = raw
            return cls(timestamp=float(t), x=float(x), y=float(y), z=float(z))
        if len(raw) == 3:
            x, y, z = raw
            return cls(timestamp=float(timestamp), x=float(x), y=float(y), z=float(z))
        raise ValueError(f"expected 3 or 4 accelerometer fields, got {len(raw)}")

    def __repr__(self) -> str:
        return (
            f"Accel(t={self.timestamp:.0f}ms, x={self.x:.3f}g, y={self.y:.3f}g, "
            f"z={self.z:.3f}g, mag={self.magnitude:.3f}g)"
        )
