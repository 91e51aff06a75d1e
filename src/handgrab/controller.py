"""Single-owner interaction controller for the manipulable object.

Three modalities compete for the object:
- Desktop pointer drag (pinch edges from the hand pipeline + pointer NDC)
- XR hand pinch (thumb tip to index tip distance per XR frame)
- XR controller select/squeeze edges

The controller keeps exactly one GrabSource value. Every grab start goes
through `_begin`, which refuses while any other source owns the object, so
two modalities can never hold it at once.

Usage:
    controller = InteractionController()
    controller.set_main_object(node)

    # hand-tracking tick
    controller.set_pointer_ndc(nx, ny)
    controller.start_drag()

    # render tick
    controller.tick()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Sequence

import numpy as np

from handgrab.camera import PerspectiveCamera
from handgrab.config import InteractionConfig
from handgrab.geometry import Plane, normalize, quat_rotate, vec3
from handgrab.grab import (
    IDLE,
    DesktopDrag,
    GrabSource,
    InteractionState,
    XRController,
    XRHand,
    describe,
    is_idle,
    is_xr,
)
from handgrab.landmarks import Handedness
from handgrab.scene import SceneNode, raycast, reparent

logger = logging.getLogger("handgrab.controller")

THUMB_TIP_JOINT = "thumb-tip"
INDEX_TIP_JOINT = "index-finger-tip"


class ControllerEventKind(Enum):
    SELECT_START = "selectstart"
    SELECT_END = "selectend"
    SQUEEZE_START = "squeezestart"
    SQUEEZE_END = "squeezeend"

    @property
    def is_start(self) -> bool:
        return self in (ControllerEventKind.SELECT_START, ControllerEventKind.SQUEEZE_START)


@dataclass(frozen=True)
class XRControllerEvent:
    kind: ControllerEventKind
    controller_id: int


def is_xr_pinching(joints: Optional[Mapping[str, Sequence[float]]], threshold: float = 0.025) -> bool:
    """True when thumb tip and index tip are within `threshold` meters."""
    if not joints:
        return False
    thumb = joints.get(THUMB_TIP_JOINT)
    tip = joints.get(INDEX_TIP_JOINT)
    if thumb is None or tip is None:
        return False
    return float(np.linalg.norm(np.asarray(tip, dtype=np.float64) - np.asarray(thumb, dtype=np.float64))) <= threshold


class InteractionController:
    """Owns the manipulable object's grab state and moves it while grabbed.

    States: idle, desktop dragging, XR hand grabbing (per side) and XR
    controller grabbing (per controller id). While any of them is active,
    grab starts from every modality are ignored.
    """

    def __init__(
        self,
        scene: Optional[SceneNode] = None,
        camera: Optional[PerspectiveCamera] = None,
        config: Optional[InteractionConfig] = None,
        controller_ids: Sequence[int] = (0, 1),
    ):
        self.scene = scene or SceneNode("scene")
        self.camera = camera or PerspectiveCamera()
        self.config = config or InteractionConfig()

        self.cursor = SceneNode("cursor")
        self.scene.add(self.cursor)

        self.main_object: Optional[SceneNode] = None
        self.pickables: list[SceneNode] = []
        self.hovered: Optional[SceneNode] = None
        self.xr_presenting = False

        self.hand_nodes: dict[Handedness, SceneNode] = {}
        for side in (Handedness.LEFT, Handedness.RIGHT):
            node = SceneNode(f"hand-{side.value.lower()}")
            self.scene.add(node)
            self.hand_nodes[side] = node

        self.controller_nodes: dict[int, SceneNode] = {}
        for cid in controller_ids:
            self.register_controller(cid)

        self._grab: GrabSource = IDLE
        self._ndc = (0.0, 0.0)

    # --- state ---

    @property
    def grab(self) -> GrabSource:
        return self._grab

    @property
    def state(self) -> InteractionState:
        return self._grab.state

    @property
    def is_idle(self) -> bool:
        return is_idle(self._grab)

    @property
    def pointer_ndc(self) -> tuple[float, float]:
        return self._ndc

    def register_controller(self, controller_id: int, node: Optional[SceneNode] = None) -> SceneNode:
        """Attach a scene node that follows the physical controller."""
        node = node or SceneNode(f"controller-{controller_id}")
        if node.parent is None:
            self.scene.add(node)
        self.controller_nodes[controller_id] = node
        return node

    def _begin(self, grab: GrabSource) -> bool:
        if self.main_object is None:
            logger.debug("Ignoring %s grab: no manipulable object", describe(grab))
            return False
        if not self.is_idle:
            logger.debug(
                "Ignoring %s grab: object owned by %s", describe(grab), describe(self._grab)
            )
            return False
        self._set_hovered(None)
        self._grab = grab
        logger.info("Grab started: %s", describe(grab))
        return True

    def _finish(self, reason: str = "release"):
        logger.info("Grab ended: %s (%s)", describe(self._grab), reason)
        self._grab = IDLE

    # --- object management ---

    def set_main_object(self, node: SceneNode):
        """Replace the manipulable object and rebuild the pick list."""
        if not self.is_idle:
            self.release_all("object replaced")
        if self.main_object is not None and self.main_object.parent is not None:
            self.main_object.parent.remove(self.main_object)

        self.main_object = node
        self.scene.add(node)
        self.clear_pickables()
        self.add_pickables_from(node)
        logger.info("Main object set: %r (%d pickable meshes)", node, len(self.pickables))

        if self.config.frame_on_load:
            self.frame_object(node)

    def add_pickables_from(self, root: SceneNode):
        for node in root.traverse():
            if node.is_pickable:
                self.pickables.append(node)

    def clear_pickables(self):
        self._set_hovered(None)
        self.pickables.clear()

    def frame_object(self, node: SceneNode) -> bool:
        return self.camera.frame(node.world_bounds())

    def release_all(self, reason: str = "forced"):
        """Drop whatever grab is active, restoring XR parents."""
        if is_xr(self._grab):
            self._restore_parent(self._grab.previous_parent)
        if not self.is_idle:
            self._finish(reason)

    def _restore_parent(self, parent: Optional[SceneNode]):
        if self.main_object is None:
            return
        target = parent if parent is not None else self.scene
        reparent(self.main_object, target)

    # --- desktop pointer ---

    def set_pointer_ndc(self, nx: float, ny: float, depth: Optional[float] = None):
        """Store the pointer position and move the 3D cursor along its ray."""
        self._ndc = (float(nx), float(ny))
        depth = self.config.cursor_depth if depth is None else depth
        ray = self.camera.ray_from_ndc(nx, ny)
        self.cursor.set_world_position(ray.at(depth))

    def start_drag(self) -> bool:
        """Begin a desktop drag if the pointer ray meets the drag plane."""
        if self.main_object is None:
            logger.debug("Ignoring drag start: no manipulable object")
            return False
        if self.xr_presenting:
            logger.debug("Ignoring drag start: XR session is presenting")
            return False
        if not self.is_idle:
            logger.debug("Ignoring drag start: object owned by %s", describe(self._grab))
            return False

        anchor = self.main_object.world_position()
        plane = Plane.from_normal_and_point(self.camera.world_direction(), anchor)
        ray = self.camera.ray_from_ndc(*self._ndc)
        hit = ray.intersect_plane(plane, self.config.drag_plane_far)
        if hit is None:
            logger.debug("Ignoring drag start: pointer ray misses the drag plane")
            return False

        return self._begin(DesktopDrag(plane=plane, offset=anchor - hit))

    def end_drag(self):
        if isinstance(self._grab, DesktopDrag):
            self._finish()

    def update_desktop(self):
        """Render-tick pointer work: follow the drag, or track hover."""
        if isinstance(self._grab, DesktopDrag):
            ray = self.camera.ray_from_ndc(*self._ndc)
            hit = ray.intersect_plane(self._grab.plane, self.config.drag_plane_far)
            if hit is not None:
                self.main_object.set_world_position(hit + self._grab.offset)
            return

        if not self.is_idle or not self.pickables:
            return

        hits = raycast(self.camera.ray_from_ndc(*self._ndc), self.pickables)
        self._set_hovered(hits[0][1] if hits else None)

    def _set_hovered(self, node: Optional[SceneNode]):
        if node is self.hovered:
            return
        if self.hovered is not None:
            self.hovered.highlighted = False
        self.hovered = node
        if node is not None:
            node.highlighted = True

    def tick(self):
        """Render tick. Desktop picking only runs outside an XR session."""
        if not self.xr_presenting:
            self.update_desktop()

    # --- XR hands ---

    def update_xr_hands(
        self,
        joints: Mapping[Handedness, Mapping[str, Sequence[float]]],
        poses: Optional[Mapping[Handedness, tuple[np.ndarray, np.ndarray]]] = None,
    ):
        """Per XR frame: pinch-to-grab and release for both hands.

        `joints` maps each tracked hand to joint-name -> world position.
        `poses` optionally moves each hand node to (position, rotation).
        """
        for side, (position, rotation) in (poses or {}).items():
            node = self.hand_nodes[side]
            node.position = np.asarray(position, dtype=np.float64)
            node.rotation = np.asarray(rotation, dtype=np.float64)

        threshold = self.config.xr_pinch_distance
        pinching = {
            side: is_xr_pinching(joints.get(side), threshold)
            for side in (Handedness.LEFT, Handedness.RIGHT)
        }

        if self.is_idle and self.main_object is not None:
            for side in self.config.priority:
                if pinching[side]:
                    self._grab_with_hand(side)
                    break

        if isinstance(self._grab, XRHand) and not pinching[self._grab.side]:
            reparent(self.main_object, self.scene)
            self._finish()

    def _grab_with_hand(self, side: Handedness) -> bool:
        previous = self.main_object.parent if self.main_object is not None else None
        if not self._begin(XRHand(side=side, previous_parent=previous)):
            return False
        reparent(self.main_object, self.hand_nodes[side])
        return True

    # --- XR controllers ---

    def set_controller_pose(self, controller_id: int, position: np.ndarray, rotation: np.ndarray):
        node = self.controller_nodes.get(controller_id)
        if node is None:
            return
        node.position = np.asarray(position, dtype=np.float64)
        node.rotation = np.asarray(rotation, dtype=np.float64)

    def on_controller_event(self, event: XRControllerEvent) -> bool:
        """Handle select/squeeze edges. Returns True if ownership changed."""
        node = self.controller_nodes.get(event.controller_id)
        if node is None:
            logger.debug("Ignoring %s from unknown controller %s", event.kind.value, event.controller_id)
            return False

        if event.kind.is_start:
            previous = self.main_object.parent if self.main_object is not None else None
            if not self._begin(XRController(event.controller_id, previous_parent=previous)):
                return False
            reparent(self.main_object, node)
            return True

        grab = self._grab
        if not isinstance(grab, XRController):
            return False
        if grab.controller_id != event.controller_id:
            logger.warning(
                "Ignoring %s from controller %s: held by controller %s",
                event.kind.value, event.controller_id, grab.controller_id,
            )
            return False
        self._restore_parent(grab.previous_parent)
        self._finish(event.kind.value)
        return True

    # --- XR session ---

    def on_session_start(
        self,
        head_position: Optional[np.ndarray] = None,
        head_rotation: Optional[np.ndarray] = None,
    ):
        self.xr_presenting = True
        self._set_hovered(None)
        if isinstance(self._grab, DesktopDrag):
            self._finish("xr session start")
        logger.info("XR session started")
        if head_position is not None and head_rotation is not None:
            self.place_in_front(head_position, head_rotation, self.config.place_distance)

    def on_session_end(self):
        """Cancel any XR-owned grab; no release edge is required."""
        if is_xr(self._grab):
            self._restore_parent(self._grab.previous_parent)
            self._finish("xr session end")
        self.xr_presenting = False
        logger.info("XR session ended")

    def place_in_front(self, head_position: np.ndarray, head_rotation: np.ndarray, distance: float = 1.2):
        """Put the object on the floor `distance` ahead of the head, facing it."""
        if self.main_object is None:
            return
        head = np.asarray(head_position, dtype=np.float64)
        forward = normalize(quat_rotate(head_rotation, vec3(0, 0, -1)))
        target = head + forward * distance
        target[1] = 0.0
        self.main_object.set_world_position(target)
        self.main_object.look_at(vec3(head[0], 0.0, head[2]))
