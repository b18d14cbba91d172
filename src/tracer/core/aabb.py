"""Axis-aligned bounding boxes shared by the BVH and the octree.

A box is stored as two corners. ``surrounding_box`` unions two boxes and
``hit`` is the usual slab test. A degenerate box (min == max) is allowed and
is what an empty BVH reports.
"""

from dataclasses import dataclass

import numpy as np

from src.tracer.core.ray import Ray, Vec3, as_vec3


@dataclass(frozen=True)
class AABB:
    """Axis-aligned bounding box.

    Attributes:
        minimum: Lower corner.
        maximum: Upper corner. Component-wise >= minimum once formed by union.
    """

    minimum: Vec3
    maximum: Vec3

    @classmethod
    def from_points(cls, a, b) -> "AABB":
        """Build the box spanned by two arbitrary corner points."""
        a = as_vec3(a)
        b = as_vec3(b)
        return cls(np.minimum(a, b), np.maximum(a, b))

    @classmethod
    def empty(cls) -> "AABB":
        """Degenerate box at the origin."""
        return cls(np.zeros(3), np.zeros(3))

    @staticmethod
    def surrounding_box(box0: "AABB", box1: "AABB") -> "AABB":
        """Union of two boxes."""
        return AABB(np.minimum(box0.minimum, box1.minimum), np.maximum(box0.maximum, box1.maximum))

    def hit(self, ray: Ray, t_min: float, t_max: float) -> bool:
        """Slab test against the ray's parametric window [t_min, t_max]."""
        for a in range(3):
            origin = float(ray.origin[a])
            direction = float(ray.direction[a])
            if direction == 0.0:
                if origin < self.minimum[a] or origin > self.maximum[a]:
                    return False
                continue
            inv_d = 1.0 / direction
            t0 = (float(self.minimum[a]) - origin) * inv_d
            t1 = (float(self.maximum[a]) - origin) * inv_d
            if inv_d < 0.0:
                t0, t1 = t1, t0
            t_min = t0 if t0 > t_min else t_min
            t_max = t1 if t1 < t_max else t_max
            if t_max < t_min:
                return False
        return True

    def transformed(self, matrix) -> "AABB":
        """Bounds of this box after an affine 4x4 transform."""
        corners = np.array(
            [
                [x, y, z, 1.0]
                for x in (self.minimum[0], self.maximum[0])
                for y in (self.minimum[1], self.maximum[1])
                for z in (self.minimum[2], self.maximum[2])
            ]
        )
        moved = corners @ np.asarray(matrix).T
        return AABB(moved[:, :3].min(axis=0), moved[:, :3].max(axis=0))
