"""Front-to-back ray traversal of an octree.

The ray is expressed in the tree's local frame, where the root covers
``[0, size]^3``. At every parent the ray segment inside the node is cut at
the three mid-planes that separate the octants. Each piece lies in exactly
one child; the pieces are visited in order of distance and traversal stops
at the first child that reports a hit. Empty space is skipped a whole leaf
at a time.

The parameter ``t`` is never rescaled while descending, so a hit's ``t`` is
measured from the original ray origin.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from src.tracer.core.ray import Ray, Vec3, vec3
from src.tracer.geometry.octree.node import OctreeNode, child_index, is_solid

# (value, t_enter, t_exit, entry_axis) -> hit or None
LeafVisitor = Callable[[Any, float, float, int], "OctreeHit | None"]


@dataclass
class OctreeHit:
    """Nearest leaf hit by a ray.

    Attributes:
        value: Payload of the leaf.
        t: Ray parameter of the hit.
        position: Hit point in the tree's local frame.
        normal: Axis-aligned unit normal facing the ray.
    """

    value: Any
    t: float
    position: Vec3
    normal: Vec3


def _slab(origin, direction, size: float) -> tuple[float, float, int] | None:
    """Entry and exit parameters of the cube [0, size]^3 and the entry axis."""
    t_enter = -math.inf
    t_exit = math.inf
    axis = -1
    for i in range(3):
        o = origin[i]
        d = direction[i]
        if d == 0.0:
            if o < 0.0 or o > size:
                return None
            continue
        near = (0.0 - o) / d
        far = (size - o) / d
        if near > far:
            near, far = far, near
        if near > t_enter:
            t_enter = near
            axis = i
        if far < t_exit:
            t_exit = far
    if t_enter > t_exit:
        return None
    return t_enter, t_exit, axis


def face_normal(direction, axis: int) -> Vec3:
    """Normal of the face crossed along ``axis``, facing against the ray.

    An axis of -1 means the ray started inside the leaf; the dominant
    direction component is used instead.
    """
    if axis < 0:
        axis = max(range(3), key=lambda i: abs(direction[i]))
    normal = vec3()
    normal[axis] = -1.0 if direction[axis] > 0.0 else 1.0
    return normal


def _descend(node: OctreeNode, origin, direction, t_lo: float, t_hi: float, axis: int, visit: LeafVisitor):
    if node.children is None:
        return visit(node.value, t_lo, t_hi, axis)
    half = node.size / 2.0
    cuts = [(t_lo, axis)]
    for i in range(3):
        d = direction[i]
        if d != 0.0:
            t = (half - origin[i]) / d
            if t_lo < t < t_hi:
                cuts.append((t, i))
    cuts.sort(key=lambda cut: cut[0])
    cuts.append((t_hi, -1))
    for k in range(len(cuts) - 1):
        start, start_axis = cuts[k]
        end = cuts[k + 1][0]
        if end <= start:
            continue
        middle = 0.5 * (start + end)
        bits = [int(origin[i] + middle * direction[i] >= half) for i in range(3)]
        child = node.children[child_index(*bits)]
        child_origin = [origin[i] - bits[i] * half for i in range(3)]
        hit = _descend(child, child_origin, direction, start, end, start_axis, visit)
        if hit is not None:
            return hit
    return None


def trace_ray(
    tree,
    ray: Ray,
    t_min: float = 0.0,
    t_max: float = math.inf,
    visit: LeafVisitor | None = None,
) -> OctreeHit | None:
    """Walk ``ray`` through ``tree`` and return the first leaf hit.

    Args:
        tree: The Octree to traverse.
        ray: Ray in the tree's local frame.
        t_min: Lower bound of the accepted parameter range (at least 0).
        t_max: Upper bound of the accepted parameter range.
        visit: Called for every leaf crossed, in order. The default reports
            a hit at the entry point of the first solid leaf.
    """
    origin = [float(c) for c in ray.origin]
    direction = [float(c) for c in ray.direction]
    if visit is None:

        def visit(value, t_enter, t_exit, axis):
            if not is_solid(value):
                return None
            return OctreeHit(value, t_enter, ray.at(t_enter), face_normal(direction, axis))

    entry = _slab(origin, direction, float(tree.size))
    if entry is None:
        return None
    t_enter, t_exit, axis = entry
    t_lo = max(t_min, 0.0)
    if t_enter < t_lo:
        t_enter = t_lo
        axis = -1
    t_exit = min(t_exit, t_max)
    if t_enter >= t_exit:
        return None
    return _descend(tree.root, origin, direction, t_enter, t_exit, axis, visit)
