"""Constant-density participating medium bounded by another shape.

A ray entering the boundary travels a free-flight distance drawn from
``-ln(u) / density``. If that distance ends inside the boundary the medium
scatters there using its phase function; otherwise the ray passes through.
Sampling queries delegate to the boundary.
"""

from __future__ import annotations

import math

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import Ray, Vec3, length
from src.tracer.core.sampling import get_rng
from src.tracer.geometry.hittable import UNIT_X, HitRecord, Hittable, RayAreaInfo

# Bounds used to find both boundary crossings regardless of the query window
_FAR = 1e10


class ConstantMedium(Hittable):
    """Fog or smoke filling a closed boundary shape.

    Attributes:
        boundary: Closed shape enclosing the medium.
        phase_function: Material evaluated at scatter points (usually Isotropic).
        density: Extinction coefficient, positive.
    """

    name = "Constant Medium"

    def __init__(self, boundary: Hittable, phase_function, density: float) -> None:
        if density <= 0.0:
            raise ValueError(f"density must be positive, got {density}")
        self.boundary = boundary
        self.phase_function = phase_function
        self.density = float(density)
        self.neg_inv_density = -1.0 / density

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        first = self.boundary.hit(ray, -_FAR, _FAR)
        if first is None:
            return None
        second = self.boundary.hit(ray, first.t + 1e-4, _FAR)
        if second is None:
            return None
        t_enter = max(first.t, t_min, 0.0)
        t_exit = min(second.t, t_max)
        if t_enter >= t_exit:
            return None
        ray_length = length(ray.direction)
        inside = (t_exit - t_enter) * ray_length
        # 1 - u keeps the log argument in (0, 1]
        hit_distance = self.neg_inv_density * math.log(1.0 - float(get_rng().random()))
        if hit_distance > inside:
            return None
        t = t_enter + hit_distance / ray_length
        record = HitRecord.new(ray, ray.at(t), UNIT_X, t, (0.0, 0.0), self.phase_function)
        record.front_face = True
        return record

    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        return self.boundary.bounding_box(time0, time1)

    def prob(self, ray: Ray) -> float:
        return self.boundary.prob(ray)

    def generate_ray_in_area(self, origin: Vec3, time: float) -> RayAreaInfo:
        return self.boundary.generate_ray_in_area(origin, time)

    def fields(self) -> dict:
        return {"density": self.density}

    def set_field(self, key: str, value) -> None:
        if key == "density":
            if value <= 0.0:
                raise ValueError(f"density must be positive, got {value}")
            self.density = float(value)
            self.neg_inv_density = -1.0 / self.density
        else:
            super().set_field(key, value)
