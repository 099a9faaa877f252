"""Tests for cli.py -- the click command group."""

import json

from click.testing import CliRunner

from hrvstream.cli import main

from tests.conftest import batches, ecg_pulse_train, make_batch_entry, write_jsonl


class TestHrvCommand:
    def test_one_per_line(self, tmp_path):
        path = tmp_path / "rr.txt"
        path.write_text("800\n850\n800\n900\n")
        result = CliRunner().invoke(main, ["hrv", str(path)])
        assert result.exit_code == 0
        assert "Intervals:  4 used / 4 read" in result.output
        assert "NN50:       1" in result.output

    def test_json_list(self, tmp_path):
        path = tmp_path / "rr.json"
        path.write_text(json.dumps([800, 800, 800, 800]))
        result = CliRunner().invoke(main, ["hrv", str(path)])
        assert result.exit_code == 0
        assert "Mean HR:    75.0 bpm" in result.output
        assert "RMSSD:      0.0 ms" in result.output

    def test_out_of_range_dropped(self, tmp_path):
        path = tmp_path / "rr.txt"
        path.write_text("800, 100, 3000\n800\n")
        result = CliRunner().invoke(main, ["hrv", str(path)])
        assert "2 used / 4 read" in result.output

    def test_window(self, tmp_path):
        path = tmp_path / "rr.txt"
        path.write_text("\n".join(["1000"] * 10 + ["750"] * 4))
        result = CliRunner().invoke(main, ["hrv", str(path), "--window", "3"])
        assert "4 used / 14 read" in result.output
        assert "Mean HR:    80.0 bpm" in result.output

    def test_missing_file(self):
        result = CliRunner().invoke(main, ["hrv", "/nonexistent.txt"])
        assert result.exit_code != 0


class TestBeatsCommand:
    def test_detects_pulses(self, tmp_path):
        ecg, truth = ecg_pulse_train(duration_s=10.0)
        path = tmp_path / "ecg.json"
        path.write_text(json.dumps(ecg.tolist()))
        result = CliRunner().invoke(main, ["beats", str(path)])
        assert result.exit_code == 0
        assert f"{len(truth)} beat(s) in 10.0 s" in result.output
        assert "RR: 800, 800" in result.output

    def test_no_beats(self, tmp_path):
        path = tmp_path / "ecg.txt"
        path.write_text("0\n" * 50)
        result = CliRunner().invoke(main, ["beats", str(path)])
        assert "0 beat(s)" in result.output
        assert "RR:" not in result.output


class TestReplayCommand:
    def test_writes_export(self, tmp_path):
        ecg, _ = ecg_pulse_train(duration_s=12.0)
        entries = [
            make_batch_entry("ecg", float(t), batch)
            for t, batch in enumerate(batches(ecg.tolist(), 130))
        ]
        recording = write_jsonl(tmp_path / "session.jsonl", entries)
        output = tmp_path / "export.json"
        result = CliRunner().invoke(
            main, ["replay", str(recording), "--output", str(output), "--robust-source", "detected"]
        )
        assert result.exit_code == 0
        assert "Summary: 12 batches" in result.output
        data = json.loads(output.read_text())
        assert data["sampling_rate"] == 130.0
        assert len(data["ecg"]) == 1300
        assert len(data["hrv_per_second"]) == 12

    def test_invalid_source(self, tmp_path):
        recording = write_jsonl(tmp_path / "session.jsonl", [])
        result = CliRunner().invoke(main, ["replay", str(recording), "--robust-source", "ppg"])
        assert result.exit_code != 0
