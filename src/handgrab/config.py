"""Interaction tuning loaded from YAML.

Example `handgrab.yml`:

    hold_ms: 80
    pinch_ratio: 0.35
    xr_pinch_distance: 0.025
    hand_priority: [Right, Left]
    drag_accepts_raw_pinch: false
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

import yaml

from handgrab.landmarks import Handedness


@dataclass
class InteractionConfig:
    # gesture classification
    hold_ms: float = 80.0
    pinch_ratio: float = 0.35
    extension_cos: float = -0.35
    extension_reach: float = 0.85

    # XR hand grab
    xr_pinch_distance: float = 0.025  # meters
    hand_priority: list[str] = field(default_factory=lambda: ["Right", "Left"])
    place_distance: float = 1.2

    # desktop pointer
    drag_plane_far: float = 100.0
    cursor_depth: float = 1.0
    flip_x: bool = False
    drag_accepts_raw_pinch: bool = False
    frame_on_load: bool = True

    def __post_init__(self):
        if self.hold_ms < 0:
            raise ValueError(f"hold_ms must be >= 0, got {self.hold_ms}")
        for name in ("pinch_ratio", "extension_reach", "xr_pinch_distance",
                     "place_distance", "drag_plane_far", "cursor_depth"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        if not -1.0 <= self.extension_cos <= 1.0:
            raise ValueError(f"extension_cos must be in [-1, 1], got {self.extension_cos}")

        sides = [s.value if isinstance(s, Handedness) else str(s) for s in self.hand_priority]
        if sorted(sides) != [Handedness.LEFT.value, Handedness.RIGHT.value]:
            raise ValueError(
                f"hand_priority must name Left and Right once each, got {self.hand_priority}"
            )
        self.hand_priority = sides

    @property
    def priority(self) -> tuple[Handedness, ...]:
        return tuple(Handedness(s) for s in self.hand_priority)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> InteractionConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> InteractionConfig:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def dump(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
