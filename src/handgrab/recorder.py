"""Hand frame recording and replay.

Recordings let the pipeline run without a camera:
- Reproducible tests and CI on headless machines
- Tuning thresholds against a captured session
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from handgrab.landmarks import LANDMARK_DIM, NUM_LANDMARKS, HandFrame, Handedness

FORMAT_VERSION = 1


@dataclass
class RecordedTick:
    """All hands reported by one tracking tick."""
    timestamp: float  # seconds from recording start
    hands: list[HandFrame]


class HandFrameRecorder:
    """Collects tracking ticks and writes them to JSON or npz.

    Usage:
        recorder = HandFrameRecorder()
        recorder.start()
        recorder.add_frames(source.next_frames())
        recorder.save("session.json")
    """

    def __init__(self):
        self._ticks: list[RecordedTick] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        self._ticks = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        self._recording = False
        return len(self._ticks)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._ticks)

    @property
    def duration(self) -> float:
        if not self._ticks:
            return 0.0
        return self._ticks[-1].timestamp

    def add_frames(self, hands: list[HandFrame], timestamp: Optional[float] = None):
        """Append one tick. Ignored unless recording."""
        if not self._recording:
            return
        if timestamp is None:
            timestamp = time.monotonic() - self._start_time
        self._ticks.append(RecordedTick(timestamp=timestamp, hands=list(hands)))

    def save(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._ticks),
            "duration": self.duration,
            "frames": [
                {"timestamp": t.timestamp, "hands": [h.to_dict() for h in t.hands]}
                for t in self._ticks
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f)

    def save_compact(self, path: str | Path) -> Path:
        """Save as compressed npz. Hands are padded to the busiest tick."""
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        n = len(self._ticks)
        max_hands = max((len(t.hands) for t in self._ticks), default=0) or 1
        landmarks = np.zeros((n, max_hands, NUM_LANDMARKS, LANDMARK_DIM), dtype=np.float32)
        landmark_counts = np.zeros((n, max_hands), dtype=np.int32)
        hand_times = np.zeros((n, max_hands), dtype=np.float64)
        handedness = np.full((n, max_hands), "", dtype="<U5")
        hand_counts = np.array([len(t.hands) for t in self._ticks], dtype=np.int32)

        for i, tick in enumerate(self._ticks):
            for j, hand in enumerate(tick.hands):
                arr = hand.to_array()[:NUM_LANDMARKS]
                landmarks[i, j, :len(arr)] = arr
                landmark_counts[i, j] = len(arr)
                hand_times[i, j] = hand.timestamp
                handedness[i, j] = hand.handedness.value

        np.savez_compressed(
            path,
            version=np.array([FORMAT_VERSION]),
            timestamps=np.array([t.timestamp for t in self._ticks], dtype=np.float64),
            hand_counts=hand_counts,
            landmarks=landmarks,
            landmark_counts=landmark_counts,
            hand_times=hand_times,
            handedness=handedness,
        )
        return path


class HandFramePlayer:
    """Replays a recording tick by tick.

    Usage:
        player = HandFramePlayer.load("session.json")
        for tick in player.play():
            pipeline.process_frames(tick.hands)
    """

    def __init__(self, ticks: list[RecordedTick]):
        self._ticks = ticks

    @classmethod
    def load(cls, path: str | Path) -> HandFramePlayer:
        path = Path(path)
        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)

        ticks = [
            RecordedTick(
                timestamp=entry["timestamp"],
                hands=[HandFrame.from_dict(h) for h in entry.get("hands", [])],
            )
            for entry in data["frames"]
        ]
        return cls(ticks)

    @classmethod
    def _load_compact(cls, path: Path) -> HandFramePlayer:
        data = np.load(path, allow_pickle=False)
        ticks = []
        for i, ts in enumerate(data["timestamps"]):
            hands = []
            for j in range(int(data["hand_counts"][i])):
                count = int(data["landmark_counts"][i, j])
                hands.append(HandFrame.from_array(
                    Handedness(str(data["handedness"][i, j])),
                    data["landmarks"][i, j, :count],
                    float(data["hand_times"][i, j]),
                ))
            ticks.append(RecordedTick(timestamp=float(ts), hands=hands))
        return cls(ticks)

    @property
    def frame_count(self) -> int:
        return len(self._ticks)

    @property
    def duration(self) -> float:
        if not self._ticks:
            return 0.0
        return self._ticks[-1].timestamp

    def play(self) -> Iterator[RecordedTick]:
        """Yield every tick immediately."""
        yield from self._ticks

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedTick]:
        """Yield ticks at their recorded pace, scaled by `speed`."""
        start = time.monotonic()
        for tick in self._ticks:
            target = tick.timestamp / speed
            elapsed = time.monotonic() - start
            if target > elapsed:
                time.sleep(target - elapsed)
            yield tick

    def get_frame(self, index: int) -> Optional[RecordedTick]:
        if 0 <= index < len(self._ticks):
            return self._ticks[index]
        return None
