"""Bulk constructors that synthesize already-simplified trees.

A cube of the tree is subdivided only when the target shape neither fully
contains nor fully misses it. A unit cell belongs to the shape when its
center does, so the classification works on the box spanned by the cell
centers of a cube. "Fully inside" tests all 8 corners of that box against
the shape's implicit predicate; "fully outside" uses the shape's distance
to the box.

Example:
    >>> from src.tracer.geometry.octree.shapes import sphere
    >>> ball = sphere(8, "stone")
    >>> ball.size
    16
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Callable
from typing import Any

from src.tracer.geometry.octree.node import CHILD_OFFSETS, OctreeNode, next_power_of_two
from src.tracer.geometry.octree.tree import Octree

Point = tuple[float, float, float]

# (box_lo, box_hi) -> True if the box is entirely outside the shape
OutsideTest = Callable[[Point, Point], bool]
# point -> True if the point is inside the shape
InsideTest = Callable[[Point], bool]


def _classify(lo: Point, hi: Point, inside: InsideTest, outside: OutsideTest) -> bool | None:
    if outside(lo, hi):
        return False
    corners = itertools.product((lo[0], hi[0]), (lo[1], hi[1]), (lo[2], hi[2]))
    if all(inside(corner) for corner in corners):
        return True
    return None


def _build(origin, size: int, value: Any, inside: InsideTest, outside: OutsideTest) -> OctreeNode:
    lo = (origin[0] + 0.5, origin[1] + 0.5, origin[2] + 0.5)
    hi = (origin[0] + size - 0.5, origin[1] + size - 0.5, origin[2] + size - 0.5)
    state = _classify(lo, hi, inside, outside)
    if state is True:
        return OctreeNode.leaf(size, value)
    if state is False or size == 1:
        # a unit cell is decided by its center, which is lo == hi
        return OctreeNode.leaf(size, value if state is None and inside(lo) else None)
    half = size // 2
    children = [
        _build((origin[0] + dx * half, origin[1] + dy * half, origin[2] + dz * half), half, value, inside, outside)
        for dx, dy, dz in CHILD_OFFSETS
    ]
    return OctreeNode.parent(size, children)


def from_predicate(size: int, value: Any, inside: InsideTest, outside: OutsideTest) -> Octree:
    """Tree of side ``next_power_of_two(size)`` holding ``value`` inside a shape."""
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    return Octree(_build((0, 0, 0), next_power_of_two(size), value, inside, outside))


def rectangle(dimensions, value: Any) -> Octree:
    """Solid box of ``dimensions`` cells with its minimum corner at the origin."""
    dx, dy, dz = (int(d) for d in dimensions)
    if min(dx, dy, dz) <= 0:
        raise ValueError(f"rectangle dimensions must be positive, got {(dx, dy, dz)}")
    extent = (dx, dy, dz)

    def inside(point: Point) -> bool:
        return all(0.0 <= point[i] < extent[i] for i in range(3))

    def outside(lo: Point, hi: Point) -> bool:
        return any(lo[i] >= extent[i] for i in range(3))

    return from_predicate(max(extent), value, inside, outside)


def cube(side: int, value: Any) -> Octree:
    """Solid cube of ``side`` cells."""
    return rectangle((side, side, side), value)


def sphere(radius: float, value: Any) -> Octree:
    """Solid ball of ``radius`` cells centered at ``(radius, radius, radius)``."""
    if radius <= 0:
        raise ValueError(f"radius must be positive, got {radius}")
    center = float(radius)
    radius_squared = float(radius) * float(radius)

    def inside(point: Point) -> bool:
        return sum((point[i] - center) ** 2 for i in range(3)) <= radius_squared

    def outside(lo: Point, hi: Point) -> bool:
        nearest = 0.0
        for i in range(3):
            gap = max(lo[i] - center, 0.0, center - hi[i])
            nearest += gap * gap
        return nearest > radius_squared

    return from_predicate(int(math.ceil(2.0 * radius)), value, inside, outside)
