"""Tests for the hand-tracking tick: debounced pinch edges driving desktop drags."""

import numpy as np
import pytest

from handgrab.camera import PerspectiveCamera
from handgrab.classifier import Gesture
from handgrab.config import InteractionConfig
from handgrab.controller import InteractionController
from handgrab.geometry import Bounds, vec3
from handgrab.grab import DesktopDrag
from handgrab.landmarks import HandFrame, Handedness
from handgrab.pipeline import HandInputPipeline, display_label, fingertip_to_ndc
from handgrab.recorder import HandFrameRecorder
from handgrab.scene import SceneNode
from handgrab.tracking import ReplayHandSource

LEFT, RIGHT = Handedness.LEFT, Handedness.RIGHT


def make_hand(side=RIGHT, pinch=False, point=False, t=0.0):
    lm = np.zeros((21, 3), dtype=np.float32)
    lm[0] = [0.5, 0.9, 0]
    lm[1:5] = [[0.42, 0.85, 0], [0.36, 0.80, 0], [0.32, 0.75, 0], [0.28, 0.70, 0]]
    for mcp, x in zip((5, 9, 13, 17), (0.44, 0.50, 0.56, 0.62)):
        lm[mcp] = [x, 0.70, 0]
        lm[mcp + 1] = [x, 0.60, 0]
        straight = point and mcp == 5
        lm[mcp + 2] = [x, 0.55 if straight else 0.66, 0]
        lm[mcp + 3] = [x, 0.50 if straight else 0.75, 0]
    if pinch:
        lm[4] = lm[8] + [0.01, 0, 0]
    return HandFrame.from_array(side, lm, t)


def make_setup(**config):
    cfg = InteractionConfig(frame_on_load=False, **config)
    ctl = InteractionController(camera=PerspectiveCamera(position=vec3(0, 0, 5)), config=cfg)
    ctl.set_main_object(SceneNode("cube", bounds=Bounds.from_center_size(vec3(), vec3(0.4, 0.4, 0.4))))
    return ctl, HandInputPipeline(ctl)


class TestDragEdges:
    def test_drag_waits_for_debounce(self):
        ctl, pipe = make_setup()
        pipe.process_frames([make_hand(pinch=True)], now=0)
        assert ctl.is_idle
        pipe.process_frames([make_hand(pinch=True)], now=40)
        assert ctl.is_idle
        snap = pipe.process_frames([make_hand(pinch=True)], now=80)
        assert snap.drag_signal
        assert isinstance(ctl.grab, DesktopDrag)

    def test_release_is_immediate(self):
        ctl, pipe = make_setup()
        for t in (0, 40, 80):
            pipe.process_frames([make_hand(pinch=True)], now=t)
        pipe.process_frames([make_hand()], now=90)
        assert ctl.is_idle

    def test_hand_lost_releases(self):
        ctl, pipe = make_setup()
        for t in (0, 80):
            pipe.process_frames([make_hand(pinch=True)], now=t)
        pipe.process_frames([], now=100)
        assert ctl.is_idle

    def test_flicker_restarts_hold(self):
        ctl, pipe = make_setup()
        pipe.process_frames([make_hand(pinch=True)], now=0)
        pipe.process_frames([make_hand()], now=40)
        pipe.process_frames([make_hand(pinch=True)], now=50)
        pipe.process_frames([make_hand(pinch=True)], now=100)
        assert ctl.is_idle
        pipe.process_frames([make_hand(pinch=True)], now=130)
        assert isinstance(ctl.grab, DesktopDrag)

    def test_raw_or_debounced_option(self):
        ctl, pipe = make_setup(drag_accepts_raw_pinch=True)
        snap = pipe.process_frames([make_hand(pinch=True)], now=0)
        assert snap.drag_signal
        assert isinstance(ctl.grab, DesktopDrag)

    def test_left_pinch_does_not_drag(self):
        ctl, pipe = make_setup()
        for t in (0, 80, 160):
            snap = pipe.process_frames([make_hand(LEFT, pinch=True)], now=t)
        assert ctl.is_idle
        assert snap.pinch[LEFT] and not snap.pinch[RIGHT]
        assert snap.label == "Left: Pinch"

    def test_edge_counts(self):
        ctl, pipe = make_setup()
        for t in (0, 80, 120):
            pipe.process_frames([make_hand(pinch=True)], now=t)
        pipe.process_frames([make_hand()], now=150)
        stats = pipe.stats
        assert stats.total_ticks == 4
        assert stats.drag_starts == 1
        assert stats.drag_ends == 1
        assert "classify" in stats.profiler_summary
        assert stats.profiler_summary["tracking"]["calls"] == 4


class TestPerHandDebounce:
    def test_hands_debounce_independently(self):
        _, pipe = make_setup()
        pipe.process_frames([make_hand(LEFT, pinch=True)], now=0)
        snap = pipe.process_frames(
            [make_hand(LEFT, pinch=True), make_hand(RIGHT, pinch=True)], now=80
        )
        assert snap.pinch[LEFT] is True
        assert snap.pinch[RIGHT] is False

    def test_first_frame_per_side_wins(self):
        _, pipe = make_setup()
        snap = pipe.process_frames([make_hand(RIGHT, point=True), make_hand(RIGHT, pinch=True)], now=0)
        assert snap.gestures[RIGHT] is Gesture.POINT


class TestPointer:
    def test_fingertip_mapping(self):
        lm = make_hand().to_array()
        lm[8] = [0.75, 0.25, 0]
        frame = HandFrame.from_array(RIGHT, lm, 0)
        assert fingertip_to_ndc(frame) == pytest.approx((0.5, 0.5))
        assert fingertip_to_ndc(frame, flip_x=True) == pytest.approx((-0.5, 0.5))

    def test_short_frame_has_no_pointer(self):
        frame = HandFrame.from_array(RIGHT, np.zeros((5, 3)), 0)
        assert fingertip_to_ndc(frame) is None

    def test_right_hand_moves_pointer(self):
        ctl, pipe = make_setup()
        snap = pipe.process_frames([make_hand(RIGHT)], now=0)
        assert ctl.pointer_ndc == pytest.approx(snap.pointer_ndc)
        assert snap.pointer_ndc == pytest.approx((-0.12, -0.5))

    def test_left_hand_does_not_move_pointer(self):
        ctl, pipe = make_setup()
        snap = pipe.process_frames([make_hand(LEFT)], now=0)
        assert snap.pointer_ndc is None
        assert ctl.pointer_ndc == (0.0, 0.0)


class TestSnapshot:
    def test_labels(self):
        none = {LEFT: Gesture.NONE, RIGHT: Gesture.NONE}
        no_pinch = {LEFT: False, RIGHT: False}
        assert display_label(none, no_pinch) == "—"
        assert display_label({LEFT: Gesture.OPEN, RIGHT: Gesture.NONE}, no_pinch) == "Left: Open"
        assert display_label({LEFT: Gesture.OPEN, RIGHT: Gesture.FIST}, no_pinch) == "Right: Fist"
        assert display_label(none, {LEFT: True, RIGHT: True}) == "Right: Pinch"

    def test_callbacks(self):
        _, pipe = make_setup()
        seen = []
        pipe.on_update(seen.append)
        pipe.process_frames([make_hand(point=True)], now=0)
        assert len(seen) == 1
        assert seen[0] is pipe.snapshot
        assert seen[0].gestures[RIGHT] is Gesture.POINT

    def test_reset_ends_drag(self):
        ctl, pipe = make_setup()
        for t in (0, 80):
            pipe.process_frames([make_hand(pinch=True)], now=t)
        pipe.reset()
        assert ctl.is_idle
        assert pipe.snapshot is None
        assert pipe.stats.total_ticks == 0


class TestReplaySource:
    def test_poll_recorded_session(self, tmp_path):
        rec = HandFrameRecorder()
        rec.start()
        for i in range(4):
            rec.add_frames([make_hand(pinch=True, t=i * 40.0)], timestamp=i * 0.04)
        rec.add_frames([make_hand(t=200.0)], timestamp=0.2)
        rec.stop()
        path = tmp_path / "pinch.json"
        rec.save(path)

        ctl, pipe = make_setup()
        pipe.source = ReplayHandSource.from_file(path)
        started = False
        for t in (0, 40, 80, 120, 200):
            pipe.poll(now=t)
            started = started or isinstance(ctl.grab, DesktopDrag)
        assert started
        assert ctl.is_idle
        assert pipe.source.exhausted
        assert pipe.source.next_frames() == []

    def test_poll_without_source(self):
        _, pipe = make_setup()
        with pytest.raises(RuntimeError):
            pipe.poll()
