"""Hand frame producers.

The interaction core only sees `HandFrameSource.next_frames()`; the shape of
the vision library's results never leaks past this module.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from handgrab.landmarks import HandFrame, Handedness
from handgrab.recorder import HandFramePlayer

try:
    import mediapipe as mp
except ImportError:
    mp = None


class HandFrameSource(ABC):
    """Produces zero, one or two HandFrames per tracking tick."""

    @abstractmethod
    def next_frames(self) -> list[HandFrame]:
        ...

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class MediaPipeHandSource(HandFrameSource):
    """Runs MediaPipe Hands on webcam frames.

    Landmarks are MediaPipe's normalized image coordinates (x, y in [0, 1],
    origin top-left). Handedness comes from MediaPipe's own label.
    """

    def __init__(
        self,
        camera_index: int = 0,
        max_hands: int = 2,
        min_detection_confidence: float = 0.7,
        min_tracking_confidence: float = 0.5,
        capture=None,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install 'handgrab[live]'"
            )

        self.max_hands = max_hands
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=max_hands,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._capture = capture
        self._camera_index = camera_index
        self._owns_capture = capture is None

    def _open(self):
        import cv2

        if self._capture is None:
            self._capture = cv2.VideoCapture(self._camera_index)
            if not self._capture.isOpened():
                raise RuntimeError(f"Could not open camera {self._camera_index}")
        return self._capture

    def next_frames(self) -> list[HandFrame]:
        import cv2

        ok, frame = self._open().read()
        if not ok:
            return []
        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return self.detect(frame_rgb, time.monotonic() * 1000.0)

    def detect(self, frame_rgb: np.ndarray, timestamp: float) -> list[HandFrame]:
        """Landmark one RGB image (H, W, 3), uint8."""
        results = self._hands.process(frame_rgb)
        if not results.multi_hand_landmarks:
            return []

        labels = results.multi_handedness or []
        hands = []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            label = labels[i].classification[0].label if i < len(labels) else "Right"
            points = [[lm.x, lm.y, lm.z] for lm in hand_landmarks.landmark]
            hands.append(HandFrame.from_array(Handedness.parse(label), points, timestamp))
        return hands

    def close(self):
        self._hands.close()
        if self._owns_capture and self._capture is not None:
            self._capture.release()
            self._capture = None


class ReplayHandSource(HandFrameSource):
    """Feeds a recording back one tick per call, then empty lists."""

    def __init__(self, player: HandFramePlayer):
        self._ticks = list(player.play())
        self._index = 0

    @classmethod
    def from_file(cls, path) -> ReplayHandSource:
        return cls(HandFramePlayer.load(path))

    @property
    def exhausted(self) -> bool:
        return self._index >= len(self._ticks)

    @property
    def last_timestamp(self) -> Optional[float]:
        """Recording time (seconds) of the tick most recently returned."""
        if self._index == 0:
            return None
        return self._ticks[self._index - 1].timestamp

    def next_frames(self) -> list[HandFrame]:
        if self.exhausted:
            return []
        tick = self._ticks[self._index]
        self._index += 1
        return tick.hands
