"""Hand-tracking tick: frames → gestures → debounced edges → controller.

The pipeline runs once per tracking tick (typically 30 Hz) and publishes a
snapshot. The render tick runs independently and only ever reads the most
recent published state (pointer position, drag ownership).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from handgrab.classifier import Gesture, GestureClassifier
from handgrab.config import InteractionConfig
from handgrab.controller import InteractionController
from handgrab.debounce import EdgeDebouncer
from handgrab.landmarks import INDEX_TIP, HandFrame, Handedness
from handgrab.profiler import TRACKING_TICK, TickProfiler
from handgrab.tracking import HandFrameSource

logger = logging.getLogger("handgrab.pipeline")

NO_LABEL = "—"


@dataclass
class HandInputSnapshot:
    """What one tracking tick concluded."""
    timestamp: float  # ms
    gestures: dict[Handedness, Gesture]
    pinch: dict[Handedness, bool]  # debounced
    drag_signal: bool
    label: str
    hands_seen: int
    pointer_ndc: Optional[tuple[float, float]] = None


@dataclass
class PipelineStats:
    total_ticks: int
    total_hands: int
    drag_starts: int
    drag_ends: int
    profiler_summary: dict = field(default_factory=dict)


def fingertip_to_ndc(frame: HandFrame, flip_x: bool = False) -> Optional[tuple[float, float]]:
    """Map the index fingertip from image space to normalized device coords."""
    if len(frame.landmarks) <= INDEX_TIP:
        return None
    tip = frame.landmarks[INDEX_TIP]
    x = 1.0 - tip.x if flip_x else tip.x
    return x * 2.0 - 1.0, -(tip.y * 2.0 - 1.0)


def display_label(gestures: dict[Handedness, Gesture], pinch: dict[Handedness, bool]) -> str:
    """HUD text: confirmed pinches first, right hand before left."""
    if pinch[Handedness.RIGHT]:
        return "Right: Pinch"
    if pinch[Handedness.LEFT]:
        return "Left: Pinch"
    for side in (Handedness.RIGHT, Handedness.LEFT):
        if gestures[side] is not Gesture.NONE:
            return f"{side.value}: {gestures[side].value}"
    return NO_LABEL


class HandInputPipeline:
    """Drives the desktop pointer and drag edges from hand frames.

    - Right index fingertip steers the pointer.
    - Each hand has its own pinch debouncer, sampled once per tick.
    - A rising edge of the right-hand drag signal starts a desktop drag; the
      falling edge ends it.
    """

    def __init__(
        self,
        controller: InteractionController,
        classifier: Optional[GestureClassifier] = None,
        config: Optional[InteractionConfig] = None,
        source: Optional[HandFrameSource] = None,
        enable_profiling: bool = True,
    ):
        self.controller = controller
        self.config = config or controller.config
        self.classifier = classifier or GestureClassifier.from_config(self.config)
        self.source = source

        self._pinch_debouncers = {
            side: EdgeDebouncer(self.config.hold_ms)
            for side in (Handedness.LEFT, Handedness.RIGHT)
        }
        self._drag_signal = False
        self._snapshot: Optional[HandInputSnapshot] = None
        self._callbacks: list[Callable[[HandInputSnapshot], None]] = []

        self._total_ticks = 0
        self._total_hands = 0
        self._drag_starts = 0
        self._drag_ends = 0

        self.profiler = TickProfiler()
        self.profiler.enabled = enable_profiling

    def on_update(self, callback: Callable[[HandInputSnapshot], None]):
        """Register a callback invoked with every published snapshot."""
        self._callbacks.append(callback)

    @property
    def snapshot(self) -> Optional[HandInputSnapshot]:
        return self._snapshot

    def poll(self, now: Optional[float] = None) -> HandInputSnapshot:
        """Pull frames from the attached source and process them."""
        if self.source is None:
            raise RuntimeError("HandInputPipeline has no source attached")
        return self.process_frames(self.source.next_frames(), now)

    def process_frames(self, frames: list[HandFrame], now: Optional[float] = None) -> HandInputSnapshot:
        """Run one tracking tick. `now` is in milliseconds."""
        now = time.monotonic() * 1000.0 if now is None else now
        self._total_ticks += 1
        self._total_hands += len(frames)

        with self.profiler.stage(TRACKING_TICK):
            snapshot = self._track(frames, now)
        self._snapshot = snapshot

        for cb in self._callbacks:
            cb(snapshot)
        return snapshot

    def _track(self, frames: list[HandFrame], now: float) -> HandInputSnapshot:
        by_side: dict[Handedness, HandFrame] = {}
        for frame in frames:
            by_side.setdefault(frame.handedness, frame)
        right = by_side.get(Handedness.RIGHT)

        ndc = fingertip_to_ndc(right, self.config.flip_x) if right is not None else None
        if ndc is not None:
            self.controller.set_pointer_ndc(*ndc)

        with self.profiler.stage("classify"):
            gestures = {
                side: self.classifier.classify(by_side[side]) if side in by_side else Gesture.NONE
                for side in (Handedness.LEFT, Handedness.RIGHT)
            }

        with self.profiler.stage("debounce"):
            pinch = {
                side: self._pinch_debouncers[side].update(gestures[side] is Gesture.PINCH, now)
                for side in (Handedness.LEFT, Handedness.RIGHT)
            }

        drag_signal = pinch[Handedness.RIGHT]
        if self.config.drag_accepts_raw_pinch:
            drag_signal = drag_signal or gestures[Handedness.RIGHT] is Gesture.PINCH

        with self.profiler.stage("dispatch"):
            if drag_signal and not self._drag_signal:
                self._drag_starts += 1
                started = self.controller.start_drag()
                logger.debug("Pinch press edge at %.1f ms (drag started: %s)", now, started)
            elif not drag_signal and self._drag_signal:
                self._drag_ends += 1
                self.controller.end_drag()
                logger.debug("Pinch release edge at %.1f ms", now)
        self._drag_signal = drag_signal

        return HandInputSnapshot(
            timestamp=now,
            gestures=gestures,
            pinch=pinch,
            drag_signal=drag_signal,
            label=display_label(gestures, pinch),
            hands_seen=len(frames),
            pointer_ndc=ndc,
        )

    @property
    def stats(self) -> PipelineStats:
        return PipelineStats(
            total_ticks=self._total_ticks,
            total_hands=self._total_hands,
            drag_starts=self._drag_starts,
            drag_ends=self._drag_ends,
            profiler_summary=self.profiler.summary(),
        )

    def reset(self):
        """Clear debouncers, edge state and counters. Ends a desktop drag."""
        for debouncer in self._pinch_debouncers.values():
            debouncer.reset()
        if self._drag_signal:
            self.controller.end_drag()
        self._drag_signal = False
        self._snapshot = None
        self._total_ticks = 0
        self._total_hands = 0
        self._drag_starts = 0
        self._drag_ends = 0
        self.profiler.reset()

    def close(self):
        if self.source is not None:
            self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
