"""Sphere primitives: a static sphere and a sphere moving over a time window.

Intersection solves the half-b quadratic. The static sphere can serve as a
light: ``generate_ray_in_area`` samples the cap visible from the shading
point uniformly by area, and ``prob`` converts the same area density into a
solid-angle density, so both queries always agree.

Example:
    >>> from src.tracer.geometry.sphere import Sphere
    >>> from src.tracer.materials import Lambertian
    >>> sphere = Sphere((0.0, 0.0, -1.0), 0.5, Lambertian((0.5, 0.5, 0.5)))
"""

from __future__ import annotations

import math

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import (
    Ray,
    Vec3,
    as_vec3,
    build_onb_from_normal,
    dot,
    length,
    local_to_world,
    normalize,
    random_in_cone,
    vec3,
)
from src.tracer.geometry.hittable import HitRecord, Hittable, RayAreaInfo, sphere_uv


def intersect_sphere(center: Vec3, radius: float, ray: Ray, t_min: float, t_max: float) -> float | None:
    """Nearest root of the ray-sphere quadratic inside (t_min, t_max)."""
    oc = ray.origin - center
    a = dot(ray.direction, ray.direction)
    if a == 0.0:
        return None
    half_b = dot(oc, ray.direction)
    c = dot(oc, oc) - radius * radius
    discriminant = half_b * half_b - a * c
    if discriminant < 0.0:
        return None
    sqrt_d = math.sqrt(discriminant)
    root = (-half_b - sqrt_d) / a
    if root <= t_min or root >= t_max:
        root = (-half_b + sqrt_d) / a
        if root <= t_min or root >= t_max:
            return None
    return root


class Sphere(Hittable):
    """A static sphere.

    Attributes:
        center: Center point.
        radius: Radius (positive).
        material: Material applied to the surface.
    """

    name = "Sphere"

    def __init__(self, center, radius: float, material) -> None:
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self.center = as_vec3(center)
        self.radius = float(radius)
        self.material = material

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        t = intersect_sphere(self.center, self.radius, ray, t_min, t_max)
        if t is None:
            return None
        position = ray.at(t)
        outward = (position - self.center) / self.radius
        return HitRecord.new(ray, position, outward, t, sphere_uv(outward), self.material)

    def bounding_box(self, time0: float, time1: float) -> AABB:
        r = vec3(self.radius, self.radius, self.radius)
        return AABB(self.center - r, self.center + r)

    def _visible_cap(self, origin: Vec3) -> tuple[Vec3, float, float]:
        """Axis, cosine of the half-angle and area of the cap seen from origin.

        From inside the sphere the whole surface is visible.
        """
        to_origin = origin - self.center
        distance = length(to_origin)
        if distance <= self.radius:
            axis = normalize(to_origin) if distance > 0.0 else vec3(0.0, 0.0, 1.0)
            cos_alpha = -1.0
        else:
            axis = to_origin / distance
            cos_alpha = self.radius / distance
        area = 2.0 * math.pi * self.radius * self.radius * (1.0 - cos_alpha)
        return axis, cos_alpha, area

    def prob(self, ray: Ray) -> float:
        t = intersect_sphere(self.center, self.radius, ray, 1e-6, math.inf)
        if t is None:
            return 0.0
        position = ray.at(t)
        normal = (position - self.center) / self.radius
        unit = normalize(ray.direction)
        cosine = abs(dot(unit, normal))
        if cosine <= 1e-12:
            return 0.0
        _, _, area = self._visible_cap(ray.origin)
        distance = t * length(ray.direction)
        return distance * distance / (cosine * area)

    def generate_ray_in_area(self, origin: Vec3, time: float) -> RayAreaInfo:
        axis, cos_alpha, area = self._visible_cap(origin)
        local = random_in_cone(cos_alpha)
        normal = local_to_world(local, *build_onb_from_normal(axis))
        end_point = self.center + self.radius * normal
        direction = normalize(end_point - origin)
        return RayAreaInfo(
            to_area=Ray(origin, direction, time),
            area=area,
            direction=direction,
            normal=normal,
            end_point=end_point,
        )

    def fields(self) -> dict:
        return {"center": self.center.copy(), "radius": self.radius}

    def set_field(self, key: str, value) -> None:
        if key == "center":
            self.center = as_vec3(value)
        elif key == "radius":
            if value <= 0.0:
                raise ValueError(f"Sphere radius must be positive, got {value}")
            self.radius = float(value)
        else:
            super().set_field(key, value)

    def __repr__(self) -> str:
        return f"Sphere(center={tuple(self.center)}, radius={self.radius}, material={self.material!r})"


class MovingSphere(Hittable):
    """A sphere whose center moves linearly from center0 to center1.

    The center at time ``t`` is interpolated over [time0, time1]. There is no
    analytic sampler, so a moving sphere cannot be used as a light.
    """

    name = "Moving Sphere"

    def __init__(self, center0, center1, time0: float, time1: float, radius: float, material) -> None:
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        if time1 == time0:
            raise ValueError("MovingSphere needs a non-empty time window")
        self.center0 = as_vec3(center0)
        self.center1 = as_vec3(center1)
        self.time0 = float(time0)
        self.time1 = float(time1)
        self.radius = float(radius)
        self.material = material

    def center(self, time: float) -> Vec3:
        fraction = (time - self.time0) / (self.time1 - self.time0)
        return self.center0 + fraction * (self.center1 - self.center0)

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        center = self.center(ray.time)
        t = intersect_sphere(center, self.radius, ray, t_min, t_max)
        if t is None:
            return None
        position = ray.at(t)
        outward = (position - center) / self.radius
        return HitRecord.new(ray, position, outward, t, sphere_uv(outward), self.material)

    def bounding_box(self, time0: float, time1: float) -> AABB:
        r = vec3(self.radius, self.radius, self.radius)
        start = self.center(time0)
        end = self.center(time1)
        return AABB.surrounding_box(AABB(start - r, start + r), AABB(end - r, end + r))

    def fields(self) -> dict:
        return {"center0": self.center0.copy(), "center1": self.center1.copy(), "radius": self.radius}

    def set_field(self, key: str, value) -> None:
        if key in ("center0", "center1"):
            setattr(self, key, as_vec3(value))
        elif key == "radius":
            if value <= 0.0:
                raise ValueError(f"Sphere radius must be positive, got {value}")
            self.radius = float(value)
        else:
            super().set_field(key, value)
