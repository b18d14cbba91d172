"""Affine placement of shapes in the world.

Transform is an immutable 4x4 local-to-world matrix built by chaining
operations; each call applies its operation after the ones before it, so
``Transform.identity().rotate_y(45).translate((1, 0, 0))`` rotates first and
then translates.

Object pairs a shape with a transform. Rays are mapped into the shape's
local frame, and hit positions and normals are mapped back; normals go
through the inverse transpose of the linear part so orientation survives
rotation and scaling. Light sampling densities are exact for similarity
transforms (rotation, translation, uniform scale).
"""

from __future__ import annotations

import math

import numpy as np

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import Ray, Vec3, as_vec3, normalize
from src.tracer.geometry.hittable import HitRecord, Hittable, RayAreaInfo


class Transform:
    """Local-to-world affine transform with a cached inverse."""

    def __init__(self, matrix=None) -> None:
        self.matrix = np.identity(4) if matrix is None else np.asarray(matrix, dtype=np.float64)
        self.inverse = np.linalg.inv(self.matrix)
        self.normal_matrix = self.inverse[:3, :3].T
        self.scale_factor = float(abs(np.linalg.det(self.matrix[:3, :3])) ** (1.0 / 3.0))

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    def then(self, matrix) -> Transform:
        """Apply ``matrix`` after this transform."""
        return Transform(np.asarray(matrix) @ self.matrix)

    def translate(self, offset) -> Transform:
        m = np.identity(4)
        m[:3, 3] = as_vec3(offset)
        return self.then(m)

    def scale(self, factor: float) -> Transform:
        if factor == 0.0:
            raise ValueError("Scale factor must be non-zero")
        m = np.identity(4)
        m[0, 0] = m[1, 1] = m[2, 2] = factor
        return self.then(m)

    def _rotate(self, degrees: float, first: int, second: int) -> Transform:
        theta = math.radians(degrees)
        m = np.identity(4)
        m[first, first] = math.cos(theta)
        m[first, second] = -math.sin(theta)
        m[second, first] = math.sin(theta)
        m[second, second] = math.cos(theta)
        return self.then(m)

    def rotate_x(self, degrees: float) -> Transform:
        return self._rotate(degrees, 1, 2)

    def rotate_y(self, degrees: float) -> Transform:
        return self._rotate(degrees, 2, 0)

    def rotate_z(self, degrees: float) -> Transform:
        return self._rotate(degrees, 0, 1)

    # point/vector helpers

    def point_to_world(self, point: Vec3) -> Vec3:
        return self.matrix[:3, :3] @ point + self.matrix[:3, 3]

    def point_to_local(self, point: Vec3) -> Vec3:
        return self.inverse[:3, :3] @ point + self.inverse[:3, 3]

    def vector_to_world(self, vector: Vec3) -> Vec3:
        return self.matrix[:3, :3] @ vector

    def vector_to_local(self, vector: Vec3) -> Vec3:
        return self.inverse[:3, :3] @ vector

    def normal_to_world(self, normal: Vec3) -> Vec3:
        return normalize(self.normal_matrix @ normal)

    def ray_to_local(self, ray: Ray) -> Ray:
        return Ray(self.point_to_local(ray.origin), self.vector_to_local(ray.direction), ray.time)

    def __repr__(self) -> str:
        return f"Transform({self.matrix.tolist()})"


class Object(Hittable):
    """A shape placed in the world by an affine transform."""

    def __init__(self, shape: Hittable, transform: Transform | None = None) -> None:
        self.shape = shape
        self.transform = transform if transform is not None else Transform.identity()

    @property
    def name(self) -> str:
        return self.shape.name

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        local = self.shape.hit(self.transform.ray_to_local(ray), t_min, t_max)
        if local is None:
            return None
        outward = local.normal if local.front_face else -local.normal
        return HitRecord.new(
            ray,
            self.transform.point_to_world(local.position),
            self.transform.normal_to_world(outward),
            local.t,
            local.uv,
            local.material,
        )

    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        box = self.shape.bounding_box(time0, time1)
        if box is None:
            return None
        return box.transformed(self.transform.matrix)

    def prob(self, ray: Ray) -> float:
        return self.shape.prob(self.transform.ray_to_local(ray))

    def generate_ray_in_area(self, origin: Vec3, time: float) -> RayAreaInfo:
        info = self.shape.generate_ray_in_area(self.transform.point_to_local(origin), time)
        end_point = self.transform.point_to_world(info.end_point)
        direction = normalize(end_point - origin)
        return RayAreaInfo(
            to_area=Ray(origin, direction, time),
            area=info.area * self.transform.scale_factor**2,
            direction=direction,
            normal=self.transform.normal_to_world(info.normal),
            end_point=end_point,
        )

    def fields(self) -> dict:
        out = dict(self.shape.fields())
        out["transform"] = self.transform
        return out

    def set_field(self, key: str, value) -> None:
        if key == "transform":
            if not isinstance(value, Transform):
                raise TypeError("transform must be a Transform")
            self.transform = value
        else:
            self.shape.set_field(key, value)

    def __repr__(self) -> str:
        return f"Object({self.shape!r}, {self.transform!r})"
