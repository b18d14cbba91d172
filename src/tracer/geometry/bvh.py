"""Bounding volume hierarchy over a flat list of shapes.

The tree is built once: each range of objects is sorted along a randomly
chosen axis by bounding-box minimum and split at the median; ranges of one
or two objects become leaves directly. Internal boxes are unions of their
children, computed bottom-up during the build.

Queries test the node box first, then search the left child and search the
right child only up to the left hit's distance, which returns the nearest
hit of the whole subtree.

Example:
    >>> from src.tracer.geometry.bvh import BvhTree
    >>> tree = BvhTree(objects, 0.0, 1.0)
    >>> record = tree.hit(ray, 1e-3, 1e10)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import Ray
from src.tracer.core.sampling import random_int
from src.tracer.geometry.hittable import HitRecord, Hittable

logger = logging.getLogger(__name__)


@dataclass
class BvhLeaf:
    index: int
    box: AABB


@dataclass
class BvhChild:
    left: BvhLeaf | BvhChild
    right: BvhLeaf | BvhChild
    box: AABB


BvhNode = BvhLeaf | BvhChild


@dataclass
class EntityInfo:
    """Name and editable fields of one scene entity."""

    name: str
    fields: dict[str, Any]


class BvhTree(Hittable):
    """Owns the object list and the node tree built over it.

    Attributes:
        objects: The shapes, in insertion order. Leaves index into this list.
        root: Root node, or None for an empty scene.
    """

    name = "BVH"

    def __init__(self, objects: list[Hittable], time0: float = 0.0, time1: float = 1.0) -> None:
        self.objects = list(objects)
        self.time0 = time0
        self.time1 = time1
        self.root = self._build_root()

    def _build_root(self) -> BvhNode | None:
        if not self.objects:
            return None
        boxes = []
        for obj in self.objects:
            box = obj.bounding_box(self.time0, self.time1)
            if box is None:
                raise ValueError(f"{obj.name} has no bounding box and cannot be placed in a BVH")
            boxes.append(box)
        root = _build(list(range(len(self.objects))), boxes)
        logger.debug("built BVH over %d objects, depth %d", len(self.objects), _depth(root))
        return root

    def rebuild(self) -> None:
        """Rebuild the tree after objects were edited."""
        self.root = self._build_root()

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        if self.root is None:
            return None
        return self._hit_node(self.root, ray, t_min, t_max)

    def _hit_node(self, node: BvhNode, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        if not node.box.hit(ray, t_min, t_max):
            return None
        if isinstance(node, BvhLeaf):
            return self.objects[node.index].hit(ray, t_min, t_max)
        left = self._hit_node(node.left, ray, t_min, t_max)
        right = self._hit_node(node.right, ray, t_min, left.t if left is not None else t_max)
        return right if right is not None else left

    def bounding_box(self, time0: float, time1: float) -> AABB:
        if self.root is None:
            return AABB.empty()
        return self.root.box

    def __len__(self) -> int:
        return len(self.objects)

    def entity_info(self) -> list[EntityInfo]:
        return [EntityInfo(obj.name, obj.fields()) for obj in self.objects]

    def update_entity(self, index: int, key: str, value: Any) -> None:
        """Edit a field of entity ``index`` and rebuild the tree.

        Raises:
            IndexError: If there is no such entity.
            KeyError: If the entity has no such field.
        """
        self.objects[index].set_field(key, value)
        self.rebuild()


def _build(indices: list[int], boxes: list[AABB]) -> BvhNode:
    axis = random_int(0, 3)
    if len(indices) == 1:
        return BvhLeaf(indices[0], boxes[indices[0]])
    ordered = sorted(indices, key=lambda i: float(boxes[i].minimum[axis]))
    if len(ordered) == 2:
        left: BvhNode = BvhLeaf(ordered[0], boxes[ordered[0]])
        right: BvhNode = BvhLeaf(ordered[1], boxes[ordered[1]])
    else:
        middle = len(ordered) // 2
        left = _build(ordered[:middle], boxes)
        right = _build(ordered[middle:], boxes)
    return BvhChild(left, right, AABB.surrounding_box(left.box, right.box))


def _depth(node: BvhNode) -> int:
    if isinstance(node, BvhLeaf):
        return 1
    return 1 + max(_depth(node.left), _depth(node.right))
