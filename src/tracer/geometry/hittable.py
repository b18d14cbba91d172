"""Hit records and the contract shared by every intersectable shape.

Every shape exposes four queries:

- ``hit(ray, t_min, t_max)``: nearest intersection inside the window, or None.
- ``bounding_box(time0, time1)``: static or motion-swept bounds.
- ``prob(ray)``: solid-angle density that a point sampled on the shape lies
  along ``ray``.
- ``generate_ray_in_area(origin, time)``: samples a surface point and returns
  what is needed to convert the sample into a solid-angle density.

The material response is evaluated eagerly when a HitRecord is built, so the
integrator only ever sees a MaterialEffect and never dispatches on material
types itself.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from src.tracer.core.ray import Ray, Vec3, dot, length_squared, vec3

if TYPE_CHECKING:
    from src.tracer.core.aabb import AABB
    from src.tracer.core.pdf import ScatterRecord
    from src.tracer.materials.base import Material


class EffectKind(IntEnum):
    """What a material does at a hit point."""

    EMIT = 0
    SCATTER = 1
    NO_EFFECT = 2


@dataclass
class MaterialEffect:
    """Tagged material response: emitted color, scatter record, or nothing."""

    kind: EffectKind
    color: Vec3 | None = None
    scatter: ScatterRecord | None = None

    @classmethod
    def emit(cls, color: Vec3) -> MaterialEffect:
        return cls(EffectKind.EMIT, color=color)

    @classmethod
    def scattered(cls, record: ScatterRecord) -> MaterialEffect:
        return cls(EffectKind.SCATTER, scatter=record)

    @classmethod
    def no_effect(cls) -> MaterialEffect:
        return cls(EffectKind.NO_EFFECT)


@dataclass
class HitRecord:
    """Record of a ray-shape intersection.

    Attributes:
        position: World-space intersection point.
        normal: Unit normal oriented against the incoming ray.
        t: Parametric distance along the ray.
        front_face: True if the ray hit the outward-facing side.
        uv: Surface texture coordinates.
        material: Material at the hit point.
        material_effect: The material response, computed on construction.
    """

    position: Vec3
    normal: Vec3
    t: float
    front_face: bool
    uv: tuple[float, float]
    material: Material | None = None
    material_effect: MaterialEffect = field(default_factory=MaterialEffect.no_effect)

    @classmethod
    def new(
        cls,
        ray: Ray,
        position: Vec3,
        outward_normal: Vec3,
        t: float,
        uv: tuple[float, float],
        material: Material | None,
    ) -> HitRecord:
        """Build a record, orienting the normal and evaluating the material.

        Args:
            ray: The incoming ray.
            position: Intersection point.
            outward_normal: Unit normal pointing out of the surface.
            t: Parametric distance.
            uv: Texture coordinates.
            material: Material to evaluate, or None for no effect.
        """
        front_face = dot(ray.direction, outward_normal) <= 0.0
        normal = outward_normal if front_face else -outward_normal
        record = cls(position, normal, t, front_face, uv, material)
        if material is not None:
            record.material_effect = material.effect(ray, record)
        return record


@dataclass
class RayAreaInfo:
    """A point sampled on a shape as seen from some origin.

    Attributes:
        to_area: Ray from the origin towards the sampled point.
        area: Area of the region the point was drawn from uniformly.
        direction: Unit direction from the origin to the point.
        normal: Outward surface normal at the point.
        end_point: The sampled point.
    """

    to_area: Ray
    area: float
    direction: Vec3
    normal: Vec3
    end_point: Vec3

    def solid_angle_density(self) -> float:
        """Convert the area density into a solid-angle density at the origin.

        Returns ``distance^2 / (|cos| * area)``, or 0 for degenerate samples.
        """
        distance_squared = length_squared(self.end_point - self.to_area.origin)
        cosine = abs(dot(self.direction, self.normal))
        if cosine <= 1e-12 or self.area <= 0.0:
            return 0.0
        return distance_squared / (cosine * self.area)


class Hittable:
    """Base class of every shape that can be hit by a ray."""

    name = "Hittable"

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        raise NotImplementedError

    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        raise NotImplementedError

    def prob(self, ray: Ray) -> float:
        """Solid-angle density of sampling ``ray``'s direction on this shape.

        Raises:
            NotImplementedError: For shapes without an analytic sampler. Such
                shapes must not be placed in a world's light list.
        """
        raise NotImplementedError(f"{self.name} does not support light sampling")

    def generate_ray_in_area(self, origin: Vec3, time: float) -> RayAreaInfo:
        """Sample a point on this shape as seen from ``origin``.

        Raises:
            NotImplementedError: For shapes without an analytic sampler.
        """
        raise NotImplementedError(f"{self.name} does not support light sampling")

    def fields(self) -> dict[str, Any]:
        """Named editable fields exposed to scene editors."""
        return {}

    def set_field(self, key: str, value: Any) -> None:
        """Update a named field.

        Raises:
            KeyError: If the shape has no such field.
        """
        raise KeyError(f"{self.name} has no field '{key}'")


def sphere_uv(point: Vec3) -> tuple[float, float]:
    """Texture coordinates of a point on the unit sphere."""
    theta = math.acos(max(-1.0, min(1.0, -float(point[1]))))
    phi = math.atan2(-float(point[2]), float(point[0])) + math.pi
    return phi / (2.0 * math.pi), theta / math.pi


UNIT_X = vec3(1.0, 0.0, 0.0)
