"""Axis-aligned rectangles and the six-sided box built from them.

A rectangle lies in the plane ``axis = k`` and spans [a0, a1] x [b0, b1] on
the two remaining axes in increasing axis order. Its outward normal is the
positive axis direction unless ``flip_normal`` is set. Sampling is uniform
over the area; seen from behind the rectangle has zero sampling density.
"""

from __future__ import annotations

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import Ray, Vec3, as_vec3, dot, length, normalize, vec3
from src.tracer.core.sampling import get_rng
from src.tracer.geometry.hittable import HitRecord, Hittable, RayAreaInfo

# Rectangles are padded by this much along their normal so bounding boxes
# never have zero thickness.
BOX_PADDING = 1e-4


class AxisRect(Hittable):
    """Rectangle perpendicular to one coordinate axis.

    Attributes:
        axis: Index of the axis the rectangle is perpendicular to.
        a0, a1: Extent along the first in-plane axis.
        b0, b1: Extent along the second in-plane axis.
        k: Plane offset along ``axis``.
        material: Surface material.
        flip_normal: Point the outward normal along the negative axis.
    """

    name = "Rect"

    def __init__(self, axis: int, a0: float, a1: float, b0: float, b1: float, k: float, material, flip_normal: bool = False) -> None:
        if axis not in (0, 1, 2):
            raise ValueError(f"axis must be 0, 1 or 2, got {axis}")
        if a1 <= a0 or b1 <= b0:
            raise ValueError("Rectangle extents must be increasing")
        self.axis = axis
        self.a_axis, self.b_axis = [i for i in range(3) if i != axis]
        self.a0, self.a1 = float(a0), float(a1)
        self.b0, self.b1 = float(b0), float(b1)
        self.k = float(k)
        self.material = material
        self.flip_normal = flip_normal
        normal = vec3()
        normal[axis] = -1.0 if flip_normal else 1.0
        self.normal = normal

    @property
    def area(self) -> float:
        return (self.a1 - self.a0) * (self.b1 - self.b0)

    def _intersect(self, ray: Ray, t_min: float, t_max: float) -> tuple[float, float, float] | None:
        direction = float(ray.direction[self.axis])
        if direction == 0.0:
            return None
        t = (self.k - float(ray.origin[self.axis])) / direction
        if t <= t_min or t >= t_max:
            return None
        a = float(ray.origin[self.a_axis]) + t * float(ray.direction[self.a_axis])
        b = float(ray.origin[self.b_axis]) + t * float(ray.direction[self.b_axis])
        if a < self.a0 or a > self.a1 or b < self.b0 or b > self.b1:
            return None
        return t, a, b

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        found = self._intersect(ray, t_min, t_max)
        if found is None:
            return None
        t, a, b = found
        uv = ((a - self.a0) / (self.a1 - self.a0), (b - self.b0) / (self.b1 - self.b0))
        return HitRecord.new(ray, ray.at(t), self.normal, t, uv, self.material)

    def bounding_box(self, time0: float, time1: float) -> AABB:
        low = vec3()
        high = vec3()
        low[self.a_axis], high[self.a_axis] = self.a0, self.a1
        low[self.b_axis], high[self.b_axis] = self.b0, self.b1
        low[self.axis] = self.k - BOX_PADDING
        high[self.axis] = self.k + BOX_PADDING
        return AABB(low, high)

    def prob(self, ray: Ray) -> float:
        found = self._intersect(ray, 1e-6, float("inf"))
        if found is None:
            return 0.0
        cosine = dot(normalize(ray.direction), self.normal)
        if cosine >= 0.0:
            return 0.0
        distance = found[0] * length(ray.direction)
        return distance * distance / (-cosine * self.area)

    def generate_ray_in_area(self, origin: Vec3, time: float) -> RayAreaInfo:
        u, v = get_rng().random(2)
        end_point = vec3()
        end_point[self.a_axis] = self.a0 + u * (self.a1 - self.a0)
        end_point[self.b_axis] = self.b0 + v * (self.b1 - self.b0)
        end_point[self.axis] = self.k
        direction = normalize(end_point - origin)
        return RayAreaInfo(
            to_area=Ray(origin, direction, time),
            area=self.area,
            direction=direction,
            normal=self.normal,
            end_point=end_point,
        )

    def fields(self) -> dict:
        return {"k": self.k, "a0": self.a0, "a1": self.a1, "b0": self.b0, "b1": self.b1}

    def set_field(self, key: str, value) -> None:
        if key in ("k", "a0", "a1", "b0", "b1"):
            setattr(self, key, float(value))
        else:
            super().set_field(key, value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.a0}, {self.a1}, {self.b0}, {self.b1}, k={self.k}, "
            f"material={self.material!r}, flip_normal={self.flip_normal})"
        )


class XYRect(AxisRect):
    """Rectangle in the plane z = k spanning x in [x0, x1], y in [y0, y1]."""

    name = "XY Rect"

    def __init__(self, x0, x1, y0, y1, k, material, flip_normal: bool = False) -> None:
        super().__init__(2, x0, x1, y0, y1, k, material, flip_normal)


class XZRect(AxisRect):
    """Rectangle in the plane y = k spanning x in [x0, x1], z in [z0, z1]."""

    name = "XZ Rect"

    def __init__(self, x0, x1, z0, z1, k, material, flip_normal: bool = False) -> None:
        super().__init__(1, x0, x1, z0, z1, k, material, flip_normal)


class YZRect(AxisRect):
    """Rectangle in the plane x = k spanning y in [y0, y1], z in [z0, z1]."""

    name = "YZ Rect"

    def __init__(self, y0, y1, z0, z1, k, material, flip_normal: bool = False) -> None:
        super().__init__(0, y0, y1, z0, z1, k, material, flip_normal)


class RenderBox(Hittable):
    """Axis-aligned box made of six outward-facing rectangles."""

    name = "Box"

    def __init__(self, box_min, box_max, material) -> None:
        self.material = material
        self._set_corners(as_vec3(box_min), as_vec3(box_max))

    def _set_corners(self, low: Vec3, high: Vec3) -> None:
        if (high <= low).any():
            raise ValueError("box_max must exceed box_min on every axis")
        material = self.material
        self.box_min = low
        self.box_max = high
        self.sides = [
            XYRect(low[0], high[0], low[1], high[1], high[2], material),
            XYRect(low[0], high[0], low[1], high[1], low[2], material, flip_normal=True),
            XZRect(low[0], high[0], low[2], high[2], high[1], material),
            XZRect(low[0], high[0], low[2], high[2], low[1], material, flip_normal=True),
            YZRect(low[1], high[1], low[2], high[2], high[0], material),
            YZRect(low[1], high[1], low[2], high[2], low[0], material, flip_normal=True),
        ]

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        closest = None
        for side in self.sides:
            record = side.hit(ray, t_min, t_max)
            if record is not None:
                closest = record
                t_max = record.t
        return closest

    def bounding_box(self, time0: float, time1: float) -> AABB:
        return AABB(self.box_min.copy(), self.box_max.copy())

    def fields(self) -> dict:
        return {"box_min": self.box_min.copy(), "box_max": self.box_max.copy()}

    def set_field(self, key: str, value) -> None:
        if key == "box_min":
            self._set_corners(as_vec3(value), self.box_max)
        elif key == "box_max":
            self._set_corners(self.box_min, as_vec3(value))
        else:
            super().set_field(key, value)
