"""Spatial union of two octrees.

``combine(a, b, offset)`` places ``b`` at the integer ``offset`` relative to
``a``. Negative offsets are allowed: both operands are rebased so the
union's minimum corner sits at the origin.

Two strategies exist. When the union fits in ``a`` without moving it,
``a`` is modified in place. Otherwise a new tree is built top down,
classifying every cube by its overlap with the two footprints so that
regions touching a single operand are copied and regions touching neither
become an empty leaf immediately.

Cells that are solid in both operands keep the value of ``a``.
"""

from __future__ import annotations

import logging
from typing import Any

from src.tracer.geometry.octree.node import (
    CHILD_OFFSETS,
    OctreeNode,
    box_inside,
    boxes_intersect,
    is_solid,
    next_power_of_two,
)
from src.tracer.geometry.octree.tree import MAX_OCTREE_SIZE, Octree, Position

logger = logging.getLogger(__name__)


class _Placed:
    """An octree placed at an integer offset inside a larger frame."""

    __slots__ = ("tree", "offset", "lo", "hi")

    def __init__(self, tree: Octree, offset: Position) -> None:
        self.tree = tree
        self.offset = offset
        self.lo = offset
        self.hi = tuple(o + tree.size - 1 for o in offset)

    def intersects(self, origin: Position, size: int) -> bool:
        return boxes_intersect(origin, tuple(o + size - 1 for o in origin), self.lo, self.hi)

    def covers(self, origin: Position, size: int) -> bool:
        return box_inside(origin, tuple(o + size - 1 for o in origin), self.lo, self.hi)

    def get(self, position: Position) -> Any:
        return self.tree.get(tuple(p - o for p, o in zip(position, self.offset)))

    def uniform_value(self, origin: Position, size: int) -> tuple[bool, Any]:
        """Whether the cube lies in one leaf of the tree, and that leaf's value.

        Cubes outside the footprint count as uniformly empty.
        """
        if not self.intersects(origin, size):
            return True, None
        if not self.covers(origin, size):
            return False, None
        local = tuple(p - o for p, o in zip(origin, self.offset))
        chunk_origin, chunk_size, value = self.tree.get_homogeneous_chunk(local)
        if all(local[i] + size <= chunk_origin[i] + chunk_size for i in range(3)):
            return True, value
        return False, None


def _child_origin(origin: Position, index: int, half: int) -> Position:
    offset = CHILD_OFFSETS[index]
    return origin[0] + offset[0] * half, origin[1] + offset[1] * half, origin[2] + offset[2] * half


def region(placed: _Placed, origin: Position, size: int) -> OctreeNode:
    """Copy the cube ``[origin, origin + size)`` out of a placed tree.

    The placement does not need to be aligned to ``size``; non-aligned cubes
    are resolved by subdividing until each piece falls inside one leaf.
    """
    uniform, value = placed.uniform_value(origin, size)
    if uniform:
        return OctreeNode.leaf(size, value)
    if size == 1:
        return OctreeNode.leaf(1, placed.get(origin))
    half = size // 2
    return OctreeNode.parent(size, [region(placed, _child_origin(origin, i, half), half) for i in range(8)])


def _merged(first: _Placed, second: _Placed, origin: Position, size: int) -> OctreeNode:
    in_first = first.intersects(origin, size)
    in_second = second.intersects(origin, size)
    if not in_first and not in_second:
        return OctreeNode.leaf(size)
    if not in_second:
        return region(first, origin, size)
    if not in_first:
        return region(second, origin, size)
    uniform, value = first.uniform_value(origin, size)
    if uniform and is_solid(value):
        return OctreeNode.leaf(size, value)
    if uniform:
        # first operand is empty across the cube
        return region(second, origin, size)
    if size == 1:
        value = first.get(origin)
        if not is_solid(value):
            value = second.get(origin)
        return OctreeNode.leaf(1, value)
    half = size // 2
    return OctreeNode.parent(size, [_merged(first, second, _child_origin(origin, i, half), half) for i in range(8)])


def combine_resize(first: _Placed, second: _Placed, size: int) -> Octree:
    """Build the union into a fresh tree of side ``size``."""
    logger.debug("combine with resize to %d", size)
    return Octree(_merged(first, second, (0, 0, 0), size))


def _merge_in_place(node: OctreeNode, origin: Position, other: _Placed) -> None:
    if not other.intersects(origin, node.size):
        return
    if node.is_leaf:
        if is_solid(node.value):
            return
        replacement = region(other, origin, node.size)
        node.value = replacement.value
        node.children = replacement.children
        return
    half = node.size // 2
    for index, child in enumerate(node.children):
        _merge_in_place(child, _child_origin(origin, index, half), other)
    node.try_simplify()


def combine_no_resize(tree: Octree, other: _Placed) -> Octree:
    """Merge ``other`` into ``tree`` in place."""
    _merge_in_place(tree.root, (0, 0, 0), other)
    return tree


def combine(tree: Octree, other: Octree, offset: Position) -> Octree:
    """Union of ``tree`` and ``other`` placed at ``offset``; see module docs."""
    shift = tuple(max(0, -o) for o in offset)
    extent = max(
        max(tree.size + shift[i], other.size + offset[i] + shift[i]) for i in range(3)
    )
    size = next_power_of_two(extent)
    if size > MAX_OCTREE_SIZE:
        raise ValueError(f"octree size {size} exceeds maximum {MAX_OCTREE_SIZE}")
    placed_other = _Placed(other, tuple(offset[i] + shift[i] for i in range(3)))
    if size == tree.size and not any(shift):
        return combine_no_resize(tree, placed_other)
    return combine_resize(_Placed(tree, shift), placed_other, size)
