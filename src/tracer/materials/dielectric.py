"""Dielectric (glass-like) material.

Chooses between reflection and refraction with Schlick's Fresnel
approximation, reflecting always under total internal reflection. The
choice is stochastic so the scatter record carries a single specular ray.
"""

import math

from src.tracer.core.pdf import ScatterRecord
from src.tracer.core.ray import Ray, as_vec3, dot, normalize, reflect, refract, schlick_fresnel
from src.tracer.core.sampling import random_float
from src.tracer.materials.base import Material


def will_reflect(cos_theta: float, refraction_ratio: float) -> bool:
    """Decide whether a ray reflects instead of refracting.

    Args:
        cos_theta: Cosine between the incoming ray and the normal.
        refraction_ratio: n_incident / n_transmitted.
    """
    sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
    if refraction_ratio * sin_theta > 1.0:
        return True
    return schlick_fresnel(cos_theta, refraction_ratio) > random_float()


class Dielectric(Material):
    """Transparent material with an index of refraction and a tint."""

    name = "Dielectric"

    def __init__(self, index_of_refraction: float, color=(1.0, 1.0, 1.0)) -> None:
        if index_of_refraction <= 0.0:
            raise ValueError(f"index_of_refraction must be positive, got {index_of_refraction}")
        self.index_of_refraction = index_of_refraction
        self.color = as_vec3(color)

    def scatter(self, ray: Ray, hit) -> ScatterRecord:
        if hit.front_face:
            ratio = 1.0 / self.index_of_refraction
        else:
            ratio = self.index_of_refraction
        unit_direction = normalize(ray.direction)
        cos_theta = min(dot(-unit_direction, hit.normal), 1.0)
        if will_reflect(cos_theta, ratio):
            direction = reflect(unit_direction, hit.normal)
        else:
            direction = refract(unit_direction, hit.normal, ratio)
        return ScatterRecord(
            specular_ray=Ray(hit.position, direction, ray.time),
            attenuation=self.color,
        )

    def __repr__(self) -> str:
        return f"Dielectric({self.index_of_refraction})"
