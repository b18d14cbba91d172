"""Octree nodes and the small integer helpers the operations share.

A node covers a cube of power-of-two side ``size``. It is either a leaf,
holding one uniform value, or a parent with exactly eight children of side
``size // 2``. The empty value is ``None``; anything else is solid payload.

Children are ordered by the 3-bit index ``x * 4 + y * 2 + z`` where each bit
selects the lower (0) or upper (1) half along that axis.

A parent whose eight children are leaves of equal value must be collapsed
into a single leaf. Every operation restores this after a mutation and
``is_optimal`` checks it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger(__name__)

# Child offsets in index order
CHILD_OFFSETS = (
    (0, 0, 0),
    (0, 0, 1),
    (0, 1, 0),
    (0, 1, 1),
    (1, 0, 0),
    (1, 0, 1),
    (1, 1, 0),
    (1, 1, 1),
)


def child_index(x: int, y: int, z: int) -> int:
    """Index of the child selected by three half bits."""
    return x * 4 + y * 2 + z


def next_power_of_two(value: int) -> int:
    """Smallest power of two >= value (1 for value <= 1)."""
    if value <= 1:
        return 1
    return 1 << (value - 1).bit_length()


def is_solid(value: Any) -> bool:
    """Leaf payload test: None is empty, everything else is solid."""
    return value is not None


def boxes_intersect(a_min, a_max, b_min, b_max) -> bool:
    """Inclusive integer box overlap test."""
    return all(a_min[i] <= b_max[i] and a_max[i] >= b_min[i] for i in range(3))


def box_inside(a_min, a_max, b_min, b_max) -> bool:
    """Whether box a lies fully inside box b (inclusive integer corners)."""
    return all(a_min[i] >= b_min[i] and a_max[i] <= b_max[i] for i in range(3))


class OctreeNode:
    """One cube of the tree. ``children`` is None for leaves."""

    __slots__ = ("size", "value", "children")

    def __init__(self, size: int, value: Any = None, children: list[OctreeNode] | None = None) -> None:
        self.size = size
        self.value = value
        self.children = children

    @classmethod
    def leaf(cls, size: int, value: Any = None) -> OctreeNode:
        return cls(size, value)

    @classmethod
    def parent(cls, size: int, children: list[OctreeNode]) -> OctreeNode:
        """Build a parent and collapse it if its children are uniform."""
        node = cls(size, None, children)
        node.try_simplify()
        return node

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def split(self) -> None:
        """Turn a leaf into a parent of eight leaves with the same value."""
        half = self.size // 2
        self.children = [OctreeNode(half, self.value) for _ in range(8)]
        self.value = None

    def try_simplify(self) -> bool:
        """Collapse into a leaf if all eight children are equal leaves.

        Returns:
            True if the node was collapsed.
        """
        children = self.children
        if children is None:
            return False
        first = children[0]
        if not first.is_leaf:
            return False
        for child in children[1:]:
            if not child.is_leaf or child.value != first.value:
                return False
        self.value = first.value
        self.children = None
        return True

    def copy(self) -> OctreeNode:
        if self.children is None:
            return OctreeNode(self.size, self.value)
        return OctreeNode(self.size, None, [child.copy() for child in self.children])

    # queries

    def get(self, x: int, y: int, z: int) -> Any:
        """Value at an in-range position relative to this node."""
        node = self
        while node.children is not None:
            half = node.size // 2
            bx, by, bz = int(x >= half), int(y >= half), int(z >= half)
            node = node.children[child_index(bx, by, bz)]
            x -= bx * half
            y -= by * half
            z -= bz * half
        return node.value

    def get_chunk(self, x: int, y: int, z: int) -> tuple[OctreeNode, tuple[int, int, int]] | None:
        """Largest leaf containing the position, with the leaf's origin.

        Returns None if the position is outside this node.
        """
        if not (0 <= x < self.size and 0 <= y < self.size and 0 <= z < self.size):
            return None
        node = self
        ox = oy = oz = 0
        while node.children is not None:
            half = node.size // 2
            bx = int(x - ox >= half)
            by = int(y - oy >= half)
            bz = int(z - oz >= half)
            ox += bx * half
            oy += by * half
            oz += bz * half
            node = node.children[child_index(bx, by, bz)]
        return node, (ox, oy, oz)

    def is_optimal(self, debug_print: bool = False) -> bool:
        """Check that no parent below (or at) this node is collapsible."""
        if self.children is None:
            return True
        first = self.children[0]
        if first.is_leaf and all(c.is_leaf and c.value == first.value for c in self.children[1:]):
            if debug_print:
                logger.info("node not optimal, size: %d", self.size)
            return False
        return all(child.is_optimal(debug_print) for child in self.children)

    def leaves(self, origin: tuple[int, int, int] = (0, 0, 0)) -> Iterator[tuple[tuple[int, int, int], int, Any]]:
        """Yield (origin, size, value) for every leaf."""
        if self.children is None:
            yield origin, self.size, self.value
            return
        half = self.size // 2
        for offset, child in zip(CHILD_OFFSETS, self.children):
            yield from child.leaves(
                (origin[0] + offset[0] * half, origin[1] + offset[1] * half, origin[2] + offset[2] * half)
            )

    def node_count(self) -> int:
        if self.children is None:
            return 1
        return 1 + sum(child.node_count() for child in self.children)

    def __repr__(self) -> str:
        if self.children is None:
            return f"Leaf(size={self.size}, value={self.value!r})"
        return f"Parent(size={self.size})"
