"""Minimal scene hierarchy: nodes with local transforms and parent links.

The renderer owns the real scene graph; this mirrors the parts interaction
needs (parentage, world transforms, pick bounds, hover flag).
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

import numpy as np

from handgrab.geometry import (
    Bounds,
    Ray,
    compose,
    decompose,
    look_at_matrix,
    quat_from_matrix,
    quat_identity,
    transform_point,
    vec3,
)

logger = logging.getLogger("handgrab.scene")


class SceneNode:
    """A transform in the hierarchy.

    `bounds` is the node's own local-space geometry box (None for groups and
    empty anchors). Point clouds carry bounds for framing but are never
    pickable.
    """

    def __init__(
        self,
        name: str = "",
        position: Optional[np.ndarray] = None,
        rotation: Optional[np.ndarray] = None,
        scale: Optional[np.ndarray] = None,
        bounds: Optional[Bounds] = None,
        is_point_cloud: bool = False,
    ):
        self.name = name
        self.position = vec3() if position is None else np.asarray(position, dtype=np.float64)
        self.rotation = quat_identity() if rotation is None else np.asarray(rotation, dtype=np.float64)
        self.scale = vec3(1, 1, 1) if scale is None else np.asarray(scale, dtype=np.float64)
        self.bounds = bounds
        self.is_point_cloud = is_point_cloud
        self.highlighted = False
        self.parent: Optional[SceneNode] = None
        self.children: list[SceneNode] = []

    def __repr__(self) -> str:
        return f"SceneNode({self.name!r})"

    # --- hierarchy ---

    def add(self, child: SceneNode):
        """Append a child keeping its local transform (it may visually move)."""
        if child is self:
            raise ValueError("a node cannot be its own child")
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)

    def remove(self, child: SceneNode):
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def traverse(self) -> Iterator[SceneNode]:
        yield self
        for child in self.children:
            yield from child.traverse()

    @property
    def root(self) -> SceneNode:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    # --- transforms ---

    def local_matrix(self) -> np.ndarray:
        return compose(self.position, self.rotation, self.scale)

    def world_matrix(self) -> np.ndarray:
        m = self.local_matrix()
        if self.parent is not None:
            m = self.parent.world_matrix() @ m
        return m

    def world_position(self) -> np.ndarray:
        return self.world_matrix()[:3, 3].copy()

    def world_rotation(self) -> np.ndarray:
        return decompose(self.world_matrix())[1]

    def set_world_matrix(self, world: np.ndarray):
        local = world
        if self.parent is not None:
            local = np.linalg.inv(self.parent.world_matrix()) @ world
        self.position, self.rotation, self.scale = decompose(local)

    def set_world_position(self, p: np.ndarray):
        p = np.asarray(p, dtype=np.float64)
        if self.parent is None:
            self.position = p.copy()
        else:
            self.position = transform_point(np.linalg.inv(self.parent.world_matrix()), p)

    def look_at(self, target: np.ndarray):
        """Turn so the local +Z axis faces `target` (world space)."""
        world_rot = look_at_matrix(target, self.world_position())
        if self.parent is not None:
            parent_rot = self.parent.world_matrix()[:3, :3]
            parent_rot = parent_rot / np.linalg.norm(parent_rot, axis=0)
            world_rot = parent_rot.T @ world_rot
        self.rotation = quat_from_matrix(world_rot)

    # --- geometry ---

    @property
    def is_pickable(self) -> bool:
        return self.bounds is not None and not self.is_point_cloud

    def world_bounds(self) -> Bounds:
        """World-space box around this node and all descendants."""
        box = Bounds.empty()
        for node in self.traverse():
            if node.bounds is not None and not node.bounds.is_empty:
                box = box.union(node.bounds.transformed(node.world_matrix()))
        return box

    def intersect_ray(self, ray: Ray) -> Optional[float]:
        """Distance along a world ray to this node's own bounds, or None."""
        if self.bounds is None:
            return None
        local_ray = ray.transformed(np.linalg.inv(self.world_matrix()))
        return self.bounds.intersect_ray(local_ray)


def reparent(node: SceneNode, new_parent: SceneNode):
    """Move `node` under `new_parent` without changing its world transform.

    Reads the world matrix, switches the parent link, then re-expresses the
    same world matrix relative to the new parent.
    """
    if node.parent is new_parent:
        return
    world = node.world_matrix()
    new_parent.add(node)
    node.set_world_matrix(world)
    logger.debug("Reparented %r under %r", node, new_parent)


def raycast(ray: Ray, nodes: list[SceneNode]) -> list[tuple[float, SceneNode]]:
    """Pickable nodes hit by `ray`, nearest first."""
    hits = []
    for node in nodes:
        if not node.is_pickable:
            continue
        t = node.intersect_ray(ray)
        if t is not None:
            hits.append((t, node))
    hits.sort(key=lambda h: h[0])
    return hits
