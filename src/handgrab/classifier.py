"""Rule-based single-hand gesture classification."""

from __future__ import annotations

from enum import Enum

import numpy as np

from handgrab.landmarks import (
    HandFrame,
    INDEX_MCP,
    INDEX_PIP,
    INDEX_TIP,
    MIDDLE_MCP,
    MIDDLE_PIP,
    MIDDLE_TIP,
    NUM_LANDMARKS,
    PINKY_MCP,
    PINKY_PIP,
    PINKY_TIP,
    RING_MCP,
    RING_PIP,
    RING_TIP,
    THUMB_TIP,
    WRIST,
)

EPSILON = 1e-6


class Gesture(Enum):
    NONE = "None"
    OPEN = "Open"
    FIST = "Fist"
    PINCH = "Pinch"
    POINT = "Point"


# (tip, pip, mcp) for the four non-thumb fingers
FINGERS = (
    (INDEX_TIP, INDEX_PIP, INDEX_MCP),
    (MIDDLE_TIP, MIDDLE_PIP, MIDDLE_MCP),
    (RING_TIP, RING_PIP, RING_MCP),
    (PINKY_TIP, PINKY_PIP, PINKY_MCP),
)


def _dist(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a - b))


class GestureClassifier:
    """Classifies one hand frame into Open, Fist, Pinch, Point or None.

    Works on the image-plane (x, y) landmark coordinates only. The result
    depends on the current frame alone; temporal filtering belongs to
    EdgeDebouncer.

    Decision order:
    1. Anything but 21 landmarks is None.
    2. Thumb tip close to index tip, relative to palm size, is Pinch and
       wins over every other label.
    3. A finger counts as extended when it is both straight at the PIP joint
       and reaches farther from the wrist than its knuckle.
    4. Index alone extended is Point; three or more is Open; at most one is
       Fist; two is left unclassified.
    """

    def __init__(
        self,
        pinch_ratio: float = 0.35,
        extension_cos: float = -0.35,
        extension_reach: float = 0.85,
    ):
        self.pinch_ratio = pinch_ratio
        self.extension_cos = extension_cos
        self.extension_reach = extension_reach

    @classmethod
    def from_config(cls, config) -> GestureClassifier:
        return cls(
            pinch_ratio=config.pinch_ratio,
            extension_cos=config.extension_cos,
            extension_reach=config.extension_reach,
        )

    def classify(self, frame: HandFrame) -> Gesture:
        if len(frame.landmarks) != NUM_LANDMARKS:
            return Gesture.NONE

        points = frame.to_array()[:, :2]

        if self.pinch_ratio_of(points) < self.pinch_ratio:
            return Gesture.PINCH

        index, middle, ring, pinky = self._finger_states(points)
        ext_count = sum((index, middle, ring, pinky))

        if index and not middle and not ring and not pinky:
            return Gesture.POINT
        if ext_count >= 3:
            return Gesture.OPEN
        if ext_count <= 1:
            return Gesture.FIST
        return Gesture.NONE

    def finger_states(self, frame: HandFrame) -> tuple[bool, bool, bool, bool]:
        """Extension of (index, middle, ring, pinky); all False on malformed input."""
        if len(frame.landmarks) != NUM_LANDMARKS:
            return (False, False, False, False)
        return self._finger_states(frame.to_array()[:, :2])

    @staticmethod
    def pinch_ratio_of(points: np.ndarray) -> float:
        """Thumb-index tip gap normalized by the index knuckle-to-wrist length."""
        palm = max(_dist(points[INDEX_MCP], points[WRIST]), EPSILON)
        return _dist(points[THUMB_TIP], points[INDEX_TIP]) / palm

    def _finger_states(self, points: np.ndarray) -> tuple[bool, bool, bool, bool]:
        index, middle, ring, pinky = (
            self._is_extended(points, tip, pip, mcp) for tip, pip, mcp in FINGERS
        )
        return index, middle, ring, pinky

    def _is_extended(self, points: np.ndarray, tip: int, pip: int, mcp: int) -> bool:
        # straight finger: angle at pip near 180 degrees, cosine near -1
        to_tip = points[tip] - points[pip]
        to_mcp = points[mcp] - points[pip]
        n1 = max(float(np.linalg.norm(to_tip)), EPSILON)
        n2 = max(float(np.linalg.norm(to_mcp)), EPSILON)
        cos_angle = float(np.dot(to_tip / n1, to_mcp / n2))

        wrist = points[WRIST]
        reach = _dist(points[tip], wrist) / max(_dist(points[mcp], wrist), EPSILON)

        return cos_angle < self.extension_cos and reach > self.extension_reach


_default = GestureClassifier()


def classify_hand(frame: HandFrame) -> Gesture:
    """Classify with the default thresholds."""
    return _default.classify(frame)
