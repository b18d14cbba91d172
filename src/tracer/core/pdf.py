"""Sampling strategies (PDFs) and their multiple-importance combination.

Each strategy draws directions from a hit point and reports the solid-angle
density of any direction:

- CosinePdf: cosine-weighted hemisphere around the surface normal.
- LightPdf: a point on a uniformly chosen light, converted to solid angle.
- SkyPdf: uniform sphere, or the sun's disc when the world has a sun.
- MixturePdf: balance heuristic over every applicable strategy.

The mixture samples one strategy uniformly but reports the average density
of all applicable strategies at the drawn direction. Evaluating every
strategy at every sample is what keeps the estimator unbiased.

Example:
    >>> pdf = MixturePdf([CosinePdf(normal), LightPdf(origin, time)])
    >>> sample = pdf.generate(ray, origin, world)
    >>> if sample is not None:
    ...     direction, density = sample
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.tracer.core.ray import (
    Ray,
    Vec3,
    build_onb_from_normal,
    dot,
    local_to_world,
    normalize,
    random_cosine_direction,
    random_in_cone,
    random_unit_vector,
)
from src.tracer.core.sampling import random_int

if TYPE_CHECKING:
    from src.tracer.geometry.hittable import HitRecord
    from src.tracer.scene.world import World

logger = logging.getLogger(__name__)

INV_FOUR_PI = 1.0 / (4.0 * math.pi)

# Scattering density of a material: (ray_in, hit, scattered_ray) -> density or None
ScatteringPdfFn = Callable[[Ray, "HitRecord", Ray], "float | None"]


class Pdf:
    """Base class of a direction sampling strategy."""

    def is_applicable(self, world: World) -> bool:
        """Whether this strategy can produce samples in ``world``."""
        return True

    def value(self, direction: Vec3, world: World) -> float:
        raise NotImplementedError

    def generate(self, ray: Ray, hit_point: Vec3, world: World) -> tuple[Vec3, float] | None:
        """Draw a direction and report its density.

        Returns:
            (direction, density), or None if no direction could be drawn.
        """
        raise NotImplementedError


class CosinePdf(Pdf):
    """Cosine-weighted hemisphere around a unit normal, density cos / pi."""

    def __init__(self, normal: Vec3) -> None:
        self.normal = normal
        self._basis = build_onb_from_normal(normal)

    def value(self, direction: Vec3, world: World) -> float:
        cosine = dot(normalize(direction), self.normal)
        return max(cosine, 0.0) / math.pi

    def generate(self, ray: Ray, hit_point: Vec3, world: World) -> tuple[Vec3, float] | None:
        direction = local_to_world(random_cosine_direction(), *self._basis)
        return direction, self.value(direction, world)


class LightPdf(Pdf):
    """Samples a point on a uniformly chosen light.

    The density of a direction is the mean over all lights of the light's
    solid-angle density along that direction, so directions that several
    lights cover are weighted correctly.
    """

    def __init__(self, origin: Vec3, time: float = 0.0) -> None:
        self.origin = origin
        self.time = time

    def is_applicable(self, world: World) -> bool:
        return len(world.lights) > 0

    def value(self, direction: Vec3, world: World) -> float:
        if not world.lights:
            return 0.0
        ray = Ray(self.origin, direction, self.time)
        total = sum(light.prob(ray) for light in world.lights)
        return total / len(world.lights)

    def generate(self, ray: Ray, hit_point: Vec3, world: World) -> tuple[Vec3, float] | None:
        if not world.lights:
            return None
        light = world.lights[random_int(0, len(world.lights))]
        info = light.generate_ray_in_area(hit_point, self.time)
        if dot(info.direction, info.direction) == 0.0:
            logger.warning("zero length light direction from %s", hit_point)
            return None
        return info.direction, self.value(info.direction, world)


class SkyPdf(Pdf):
    """Uniform sphere without a sun; uniform in the sun's disc with one.

    Inside a mixture the strategy only joins the pool when the world has a
    sun, since a uniform sphere adds nothing a cosine lobe does not cover.
    """

    def __init__(self, in_mixture: bool = True) -> None:
        self.in_mixture = in_mixture

    def is_applicable(self, world: World) -> bool:
        return world.sun is not None or not self.in_mixture

    def value(self, direction: Vec3, world: World) -> float:
        sun = world.sun
        if sun is None:
            return INV_FOUR_PI
        cos_max = math.cos(sun.radius)
        if dot(normalize(direction), sun.direction()) >= cos_max:
            return 1.0 / sun.solid_angle()
        return 0.0

    def generate(self, ray: Ray, hit_point: Vec3, world: World) -> tuple[Vec3, float] | None:
        sun = world.sun
        if sun is None:
            return random_unit_vector(), INV_FOUR_PI
        local = random_in_cone(math.cos(sun.radius))
        direction = local_to_world(local, *build_onb_from_normal(sun.direction()))
        return direction, 1.0 / sun.solid_angle()


class MixturePdf(Pdf):
    """Balance-heuristic combination of several strategies."""

    def __init__(self, pdfs: Sequence[Pdf]) -> None:
        if not pdfs:
            raise ValueError("MixturePdf needs at least one strategy")
        self.pdfs = list(pdfs)

    def _pool(self, world: World) -> list[Pdf]:
        return [pdf for pdf in self.pdfs if pdf.is_applicable(world)]

    def is_applicable(self, world: World) -> bool:
        return bool(self._pool(world))

    def value(self, direction: Vec3, world: World) -> float:
        pool = self._pool(world)
        if not pool:
            return 0.0
        return sum(pdf.value(direction, world) for pdf in pool) / len(pool)

    def generate(self, ray: Ray, hit_point: Vec3, world: World) -> tuple[Vec3, float] | None:
        pool = self._pool(world)
        if not pool:
            return None
        sample = pool[random_int(0, len(pool))].generate(ray, hit_point, world)
        if sample is None:
            return None
        direction = sample[0]
        return direction, sum(pdf.value(direction, world) for pdf in pool) / len(pool)


@dataclass
class ScatterRecord:
    """How a ray continues after hitting a material.

    Attributes:
        specular_ray: Continuation ray for delta materials, else None.
        attenuation: Color multiplier for the continuation.
        pdf: Sampling strategy for non-specular materials.
        scattering_pdf: The material's own scattering density (BRDF * cos)
            used to weight samples drawn from ``pdf``.
    """

    specular_ray: Ray | None
    attenuation: Vec3
    pdf: Pdf | None = None
    scattering_pdf: ScatteringPdfFn | None = None


def lambertian_scattering_pdf(ray_in: Ray, hit: HitRecord, scattered: Ray) -> float | None:
    """Cosine lobe density cos / pi, None below the horizon."""
    cosine = dot(hit.normal, normalize(scattered.direction))
    if cosine < 0.0:
        return None
    return cosine / math.pi
