"""Plain-data session snapshot handed to persistence/export layers.

Everything here is JSON-serializable as-is; the choice of on-disk format
belongs to the caller.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class SessionExport:
    """A recording session's data at one point in time."""

    sampling_rate: float
    started_at: str | None = None  # ISO timestamp of the first batch
    ecg: list[float] = field(default_factory=list)  # display window, mV
    hrv_per_second: list[dict[str, Any]] = field(default_factory=list)
    robust_summary: dict[str, Any] | None = None
    jumps: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict (JSON-friendly)."""
        return asdict(self)

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        robust = "yes" if self.robust_summary else "no"
        return (
            f"SessionExport({len(self.ecg)} ecg samples, "
            f"{len(self.hrv_per_second)} hrv entries, robust={robust}, "
            f"jumps={len(self.jumps)})"
        )
