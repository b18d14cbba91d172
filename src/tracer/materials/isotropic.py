"""Isotropic phase function for participating media.

Scatters uniformly over the sphere. The continuation is returned as a
specular ray, so the integrator multiplies by the albedo without a density
division.
"""

from src.tracer.core.pdf import ScatterRecord
from src.tracer.core.ray import Ray, random_unit_vector
from src.tracer.materials.base import Material
from src.tracer.materials.texture import Texture, as_texture


class Isotropic(Material):
    name = "Isotropic"

    def __init__(self, albedo: Texture | tuple[float, float, float]) -> None:
        self.albedo = as_texture(albedo)

    def scatter(self, ray: Ray, hit) -> ScatterRecord:
        return ScatterRecord(
            specular_ray=Ray(hit.position, random_unit_vector(), ray.time),
            attenuation=self.albedo.color(hit.uv, hit.position),
        )
