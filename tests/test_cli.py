"""Tests for the handgrab command line."""

import numpy as np
import pytest
from typer.testing import CliRunner

from handgrab.cli import app
from handgrab.config import InteractionConfig
from handgrab.landmarks import HandFrame, Handedness
from handgrab.recorder import HandFrameRecorder

runner = CliRunner()


def make_hand(pinch=False, t=0.0):
    lm = np.zeros((21, 3), dtype=np.float32)
    lm[0] = [0.5, 0.9, 0]
    lm[1:5] = [[0.42, 0.85, 0], [0.36, 0.80, 0], [0.32, 0.75, 0], [0.28, 0.70, 0]]
    for mcp, x in zip((5, 9, 13, 17), (0.44, 0.50, 0.56, 0.62)):
        lm[mcp] = [x, 0.70, 0]
        lm[mcp + 1] = [x, 0.60, 0]
        lm[mcp + 2] = [x, 0.55, 0]
        lm[mcp + 3] = [x, 0.50, 0]
    if pinch:
        lm[4] = lm[8] + [0.01, 0, 0]
    return HandFrame.from_array(Handedness.RIGHT, lm, t)


@pytest.fixture
def recording(tmp_path):
    rec = HandFrameRecorder()
    rec.start()
    for i in range(6):
        rec.add_frames([make_hand(pinch=2 <= i < 5, t=i * 40.0)], timestamp=i * 0.04)
    rec.stop()
    path = tmp_path / "pinch.json"
    rec.save(path)
    return path


class TestReplay:
    def test_replay_reports_drag(self, recording):
        result = runner.invoke(app, ["replay", str(recording)])
        assert result.exit_code == 0, result.output
        assert "Right: Pinch" in result.output
        assert "1 drag starts" in result.output
        assert "Final state: idle" in result.output

    def test_missing_recording(self, tmp_path):
        result = runner.invoke(app, ["replay", str(tmp_path / "nope.json")])
        assert result.exit_code == 1

    def test_bad_config(self, recording, tmp_path):
        cfg = tmp_path / "bad.yml"
        cfg.write_text("hold_ms: -5\n")
        result = runner.invoke(app, ["replay", str(recording), "--config", str(cfg)])
        assert result.exit_code == 1


class TestClassify:
    def test_per_frame_gestures(self, recording):
        result = runner.invoke(app, ["classify", str(recording), "--fingers"])
        assert result.exit_code == 0, result.output
        assert "Open" in result.output
        assert "[1111]" in result.output
        assert "Pinch  3" in result.output


class TestConfig:
    def test_prints_defaults(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "hold_ms: 80.0" in result.output

    def test_writes_file(self, tmp_path):
        out = tmp_path / "handgrab.yml"
        result = runner.invoke(app, ["config", "-o", str(out)])
        assert result.exit_code == 0
        assert InteractionConfig.from_yaml(out) == InteractionConfig()


class TestBenchmark:
    def test_runs(self):
        result = runner.invoke(app, ["benchmark", "--iterations", "20", "--hands", "1"])
        assert result.exit_code == 0
        assert "classify" in result.output
