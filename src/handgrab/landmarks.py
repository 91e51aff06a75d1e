"""Hand landmark data model shared by the tracker, classifier and recorder."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

NUM_LANDMARKS = 21
LANDMARK_DIM = 3  # x, y, z


class Handedness(Enum):
    LEFT = "Left"
    RIGHT = "Right"

    @classmethod
    def parse(cls, label: str) -> Handedness:
        """Map a tracker label to a side. Anything but "Left" counts as right."""
        return cls.LEFT if str(label).strip().lower() == "left" else cls.RIGHT


@dataclass(frozen=True)
class Landmark:
    """One tracked skeleton point. x/y in [0, 1] frame space, origin top-left."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class HandFrame:
    """One hand as reported by a single tracking tick."""
    handedness: Handedness
    landmarks: tuple[Landmark, ...]
    timestamp: float  # milliseconds

    @classmethod
    def from_array(
        cls,
        handedness: Handedness | str,
        landmarks: np.ndarray | Sequence[Sequence[float]],
        timestamp: float = 0.0,
    ) -> HandFrame:
        """Build a frame from an (N, 2) or (N, 3) array of coordinates."""
        if not isinstance(handedness, Handedness):
            handedness = Handedness.parse(handedness)
        points = tuple(
            Landmark(float(p[0]), float(p[1]), float(p[2]) if len(p) > 2 else 0.0)
            for p in landmarks
        )
        return cls(handedness=handedness, landmarks=points, timestamp=float(timestamp))

    def to_array(self) -> np.ndarray:
        """Landmarks as a float32 array of shape (N, 3)."""
        if not self.landmarks:
            return np.zeros((0, LANDMARK_DIM), dtype=np.float32)
        return np.array(
            [[p.x, p.y, p.z] for p in self.landmarks], dtype=np.float32
        )

    @property
    def is_complete(self) -> bool:
        return len(self.landmarks) == NUM_LANDMARKS

    def to_dict(self) -> dict:
        return {
            "handedness": self.handedness.value,
            "timestamp": self.timestamp,
            "landmarks": [[p.x, p.y, p.z] for p in self.landmarks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> HandFrame:
        return cls.from_array(
            data.get("handedness", "Right"),
            data.get("landmarks", []),
            data.get("timestamp", 0.0),
        )
