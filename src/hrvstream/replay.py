"""Replay recorded sample batches through a StreamIngestManager.

A recording is a JSON-lines file with one transport batch per line::

    {"channel": "ecg", "t": 12.0, "samples": [0.01, 0.02, ...]}
    {"channel": "rr",  "t": 12.4, "samples": [812, 798]}
    {"channel": "acc", "t": 12.0, "samples": [[0.01, -0.02, 0.98], ...]}

``t`` is the batch time in seconds and also drives the robust scheduler,
so a replay reproduces the session's timing without waiting for it.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from hrvstream.config import StreamConfig
from hrvstream.ingest import Channel, StreamIngestManager


def replay_file(
    capture_path: str,
    config: StreamConfig | None = None,
    jump_mode: bool = False,
    verbose: bool = False,
) -> StreamIngestManager | None:
    """Feed every batch in *capture_path* to a fresh manager.

    Args:
        capture_path: Path to the .jsonl recording.
        config: Stream configuration (defaults to ``StreamConfig()``).
        jump_mode: Run jump detection on every accelerometer batch.
        verbose: Print every live metric update and skipped line.

    Returns:
        The manager after the last batch, or None if the file is missing.
    """
    path = Path(capture_path)
    if not path.exists():
        print(f"File not found: {capture_path}")
        return None

    manager = StreamIngestManager(config)
    manager.set_jump_mode(jump_mode)
    manager.start_robust_calculation()

    counts = {channel: 0 for channel in Channel}
    flagged = 0
    skipped = 0

    print(f"Replaying {path.name}...\n")

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                entry = json.loads(line)
                channel = Channel(entry.get("channel", ""))
            except (json.JSONDecodeError, ValueError, AttributeError):
                skipped += 1
                if verbose:
                    print(f"  [line {line_num}] Not a sample batch, skipping")
                continue

            t = entry.get("t")
            source_time = float(t) if isinstance(t, (int, float)) else None
            try:
                report = manager.append_samples(entry.get("samples", []), channel, source_time)
            except (TypeError, ValueError):
                skipped += 1
                if verbose:
                    print(f"  [line {line_num}] Malformed {channel.value} samples, skipping")
                continue
            counts[channel] += 1
            if report.flagged:
                flagged += 1

            if channel is not Channel.ACC and source_time is not None:
                manager.robust.tick(now=source_time)

            if verbose and report.recomputed and channel is not Channel.ACC:
                print(f"  [t={source_time}] live: {manager.get_live_metric()!r}")

    total = sum(counts.values())
    print(
        f"\nSummary: {total} batches "
        f"({counts[Channel.ECG]} ecg, {counts[Channel.RR]} rr, {counts[Channel.ACC]} acc), "
        f"{flagged} flagged, {skipped} skipped"
    )
    print(f"Live:   {manager.get_live_metric()!r}")
    print(f"Robust: {manager.get_robust_state()!r}")
    if jump_mode:
        for event in manager.get_jump_events():
            print(f"Jump:   {event!r}")

    return manager


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python -m hrvstream.replay <recording.jsonl> [--jump] [-v]")
        sys.exit(1)

    verbose = "--verbose" in sys.argv or "-v" in sys.argv
    replay_file(sys.argv[1], jump_mode="--jump" in sys.argv, verbose=verbose)


if __name__ == "__main__":
    main()
