"""CLI for the hrvstream ECG/accelerometer analysis toolkit."""

import json
import logging
from pathlib import Path

import click


def _read_numbers(file: str) -> list[float]:
    """Numbers from a JSON array file, or one/several per line (comma or space separated)."""
    text = Path(file).read_text().strip()
    if text.startswith("["):
        return [float(v) for v in json.loads(text)]
    values: list[float] = []
    for line in text.splitlines():
        line = line.split("#", 1)[0].replace(",", " ")
        values.extend(float(tok) for tok in line.split())
    return values


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """hrvstream: streaming ECG heartbeat, HRV and jump analysis."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--output", "-o", default=None, help="Write the session export JSON to this file.")
@click.option("--ecg-rate", default=130.0, help="ECG sampling rate in Hz.")
@click.option("--acc-rate", default=50.0, help="Accelerometer sampling rate in Hz.")
@click.option("--robust-source", type=click.Choice(["sensor", "detected"]), default="sensor",
              help="RR source used for the robust HRV window.")
@click.option("--jump", "jump_mode", is_flag=True, help="Detect jumps on every accelerometer batch.")
@click.option("--show-updates", is_flag=True, help="Print every live metric update.")
def replay(
    file: str,
    output: str | None,
    ecg_rate: float,
    acc_rate: float,
    robust_source: str,
    jump_mode: bool,
    show_updates: bool,
) -> None:
    """Replay a recorded session (JSON lines) through the stream pipeline."""
    from hrvstream.analytics.hrv import RRSource
    from hrvstream.config import StreamConfig
    from hrvstream.replay import replay_file

    config = StreamConfig(
        ecg_sampling_rate=ecg_rate,
        acc_sampling_rate=acc_rate,
        robust_rr_source=RRSource(robust_source),
    )
    manager = replay_file(file, config, jump_mode=jump_mode, verbose=show_updates)
    if manager is None:
        return

    if output:
        with open(output, "w") as f:
            f.write(manager.session_export().to_json())
        click.echo(f"\nSession export written to {output}")


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--window", "-w", default=None, type=float,
              help="Only use the most recent WINDOW seconds of intervals.")
def hrv(file: str, window: float | None) -> None:
    """Time-domain HRV statistics from a file of RR intervals in ms."""
    from hrvstream.analytics.hrv import RRSource, compute_hrv, filter_rr, trailing_rr

    raw = _read_numbers(file)
    rr = filter_rr([v / 1000.0 for v in raw])
    if window is not None:
        rr = trailing_rr(rr, window)
    snap = compute_hrv(rr, window if window is not None else sum(rr), RRSource.SENSOR)

    click.echo(f"\n{'=' * 40}")
    click.echo(f"  Intervals:  {len(rr)} used / {len(raw)} read")
    click.echo(f"  Mean HR:    {snap.mean_hr:.1f} bpm")
    click.echo(f"  RMSSD:      {snap.rmssd:.1f} ms")
    click.echo(f"  SDNN:       {snap.sdnn:.1f} ms")
    click.echo(f"  NN50:       {snap.nn50}")
    click.echo(f"  pNN50:      {snap.pnn50:.1f} %")
    click.echo(f"{'=' * 40}")


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--rate", "-r", default=130.0, help="ECG sampling rate in Hz.")
@click.option("--mode", type=click.Choice(["robust", "adaptive"]), default="robust",
              help="Envelope threshold mode.")
def beats(file: str, rate: float, mode: str) -> None:
    """Detect R-peaks in a file of ECG samples."""
    from hrvstream.analytics.peaks import PeakDetector, ThresholdMode

    ecg = _read_numbers(file)
    detector = PeakDetector(sampling_rate=rate, mode=ThresholdMode(mode))
    peaks = detector.detect(ecg)
    rr = detector.rr_from_peaks(peaks)

    click.echo(f"{len(peaks)} beat(s) in {len(ecg) / rate:.1f} s")
    for idx in peaks:
        click.echo(f"  {idx:>7d}  t={idx / rate:8.3f}s  {ecg[idx]:+.3f}")
    if rr:
        click.echo(f"RR: {', '.join(f'{v * 1000:.0f}' for v in rr)} ms")


if __name__ == "__main__":
    main()
