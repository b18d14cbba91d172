"""Sparse voxel octree over a power-of-two cube.

The tree stores a generic leaf payload. ``None`` marks empty space and any
other value is solid. Positions are integer triples with every coordinate
in ``[0, size)``; setting a position beyond ``size`` grows the tree by
doubling until it fits.

Example:
    >>> from src.tracer.geometry.octree import Octree
    >>> tree = Octree.empty()
    >>> tree.set((3, 0, 1), "red")
    >>> tree.size
    4
    >>> tree.get((3, 0, 1))
    'red'
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import Ray, vec3
from src.tracer.geometry.octree.node import (
    OctreeNode,
    child_index,
    is_solid,
    next_power_of_two,
)

logger = logging.getLogger(__name__)

# Hard cap on the side of any tree
MAX_OCTREE_SIZE = 2**16

Position = tuple[int, int, int]


def _as_position(position) -> Position:
    x, y, z = (int(c) for c in position)
    return x, y, z


class Octree:
    """A self-simplifying cubic tree.

    Attributes:
        size: Side of the root cube, always a power of two.
        root: Root node.
    """

    def __init__(self, root: OctreeNode) -> None:
        if root.size > MAX_OCTREE_SIZE:
            raise ValueError(f"octree size {root.size} exceeds maximum {MAX_OCTREE_SIZE}")
        if root.size != next_power_of_two(root.size):
            raise ValueError(f"octree size must be a power of two, got {root.size}")
        self.root = root

    @classmethod
    def empty(cls, size: int = 1) -> Octree:
        """An all-empty tree of the given power-of-two side."""
        return cls(OctreeNode.leaf(next_power_of_two(size)))

    @classmethod
    def filled(cls, size: int, value: Any) -> Octree:
        """A tree whose whole cube holds ``value``."""
        return cls(OctreeNode.leaf(next_power_of_two(size), value))

    @property
    def size(self) -> int:
        return self.root.size

    def copy(self) -> Octree:
        return Octree(self.root.copy())

    # =========================================================================
    # Queries
    # =========================================================================

    def in_range(self, position) -> bool:
        x, y, z = _as_position(position)
        size = self.size
        return 0 <= x < size and 0 <= y < size and 0 <= z < size

    def get(self, position) -> Any:
        """Value at ``position``; None (empty) outside the tree."""
        if not self.in_range(position):
            return None
        return self.root.get(*_as_position(position))

    def get_chunk(self, position) -> tuple[OctreeNode, Position] | None:
        """Leaf containing ``position`` and the leaf's origin, or None outside."""
        return self.root.get_chunk(*_as_position(position))

    def get_homogeneous_chunk(self, position) -> tuple[Position, int, Any] | None:
        """Largest uniform cube containing ``position``.

        Returns:
            (origin, side, value) of the leaf, or None outside the tree.
        """
        chunk = self.get_chunk(position)
        if chunk is None:
            return None
        node, origin = chunk
        return origin, node.size, node.value

    def is_optimal(self, debug_print: bool = False) -> bool:
        """True if no parent could be collapsed into a single leaf."""
        return self.root.is_optimal(debug_print)

    def leaves(self) -> Iterator[tuple[Position, int, Any]]:
        return self.root.leaves()

    def occupied_count(self) -> int:
        """Number of solid unit cells."""
        return sum(size**3 for _, size, value in self.leaves() if is_solid(value))

    def bounding_box(self) -> AABB:
        return AABB(vec3(0.0, 0.0, 0.0), vec3(self.size, self.size, self.size))

    def trace_ray(self, ray: Ray):
        """Nearest solid leaf along ``ray`` in the tree's local frame.

        Returns:
            OctreeHit or None.
        """
        from src.tracer.geometry.octree.ray_trace import trace_ray

        return trace_ray(self, ray)

    # =========================================================================
    # Mutation
    # =========================================================================

    def grow(self) -> None:
        """Double the side. The old root becomes child 0, the rest is empty."""
        new_size = self.size * 2
        if new_size > MAX_OCTREE_SIZE:
            raise ValueError(f"octree size {new_size} exceeds maximum {MAX_OCTREE_SIZE}")
        old = self.root
        if old.is_leaf and not is_solid(old.value):
            self.root = OctreeNode.leaf(new_size)
            return
        children = [old] + [OctreeNode.leaf(old.size) for _ in range(7)]
        self.root = OctreeNode(new_size, None, children)

    def set(self, position, value: Any) -> None:
        """Store ``value`` at ``position``, growing the tree if needed.

        Setting a value that is already present is a no-op.

        Raises:
            ValueError: If a coordinate is negative or the tree would have to
                grow beyond MAX_OCTREE_SIZE.
        """
        x, y, z = _as_position(position)
        if x < 0 or y < 0 or z < 0:
            raise ValueError(f"octree positions must be non-negative, got {(x, y, z)}")
        while max(x, y, z) >= self.size:
            if not is_solid(value):
                # clearing outside the tree changes nothing
                return
            self.grow()
        _set_node(self.root, x, y, z, value)

    def combine(self, other: Octree, offset=(0, 0, 0)) -> Octree:
        """Union with ``other`` placed at integer ``offset``.

        Where both trees are solid the value of ``self`` wins. ``self`` may be
        modified in place; always use the returned tree.
        """
        from src.tracer.geometry.octree.combine import combine

        return combine(self, other, _as_position(offset))

    def __repr__(self) -> str:
        return f"Octree(size={self.size}, nodes={self.root.node_count()})"


def _set_node(node: OctreeNode, x: int, y: int, z: int, value: Any) -> None:
    if node.is_leaf:
        if node.value == value:
            return
        if node.size == 1:
            node.value = value
            return
        node.split()
    half = node.size // 2
    bx, by, bz = int(x >= half), int(y >= half), int(z >= half)
    _set_node(node.children[child_index(bx, by, bz)], x - bx * half, y - by * half, z - bz * half, value)
    node.try_simplify()
