"""Grab ownership register: which input modality holds the object."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from handgrab.geometry import Plane
from handgrab.landmarks import Handedness
from handgrab.scene import SceneNode


class InteractionState(Enum):
    IDLE = "idle"
    DESKTOP_DRAGGING = "desktop_dragging"
    XR_HAND_GRABBING = "xr_hand_grabbing"
    XR_CONTROLLER_GRABBING = "xr_controller_grabbing"


@dataclass(frozen=True)
class NoGrab:
    state = InteractionState.IDLE


@dataclass(frozen=True, eq=False)
class DesktopDrag:
    """Pointer drag on a camera-facing plane with a frozen grab offset."""
    plane: Plane
    offset: np.ndarray
    state = InteractionState.DESKTOP_DRAGGING


@dataclass(frozen=True)
class XRHand:
    side: Handedness
    previous_parent: Optional[SceneNode] = None
    state = InteractionState.XR_HAND_GRABBING


@dataclass(frozen=True)
class XRController:
    controller_id: int
    previous_parent: Optional[SceneNode] = None
    state = InteractionState.XR_CONTROLLER_GRABBING


GrabSource = Union[NoGrab, DesktopDrag, XRHand, XRController]

IDLE = NoGrab()


def is_idle(grab: GrabSource) -> bool:
    return isinstance(grab, NoGrab)


def is_xr(grab: GrabSource) -> bool:
    return isinstance(grab, (XRHand, XRController))


def describe(grab: GrabSource) -> str:
    if isinstance(grab, XRHand):
        return f"XRHand({grab.side.value})"
    if isinstance(grab, XRController):
        return f"XRController({grab.controller_id})"
    if isinstance(grab, DesktopDrag):
        return "DesktopDrag"
    return "None"
