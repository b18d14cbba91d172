"""Lambertian (ideal diffuse) material.

The Lambertian BRDF is albedo / pi, so its scattering density including the
cosine term is cos(theta) / pi. Scatter directions are drawn from a mixture
of the cosine lobe, the world's lights and the sun, and the integrator
weights each sample by scattering density over mixture density.

Example:
    >>> from src.tracer.materials.lambertian import Lambertian
    >>> gray = Lambertian((0.5, 0.5, 0.5))
"""

from src.tracer.core.pdf import (
    CosinePdf,
    LightPdf,
    MixturePdf,
    ScatterRecord,
    SkyPdf,
    lambertian_scattering_pdf,
)
from src.tracer.core.ray import Ray
from src.tracer.materials.base import Material
from src.tracer.materials.texture import Texture, as_texture


class Lambertian(Material):
    """Ideal diffuse material.

    Attributes:
        albedo: Texture giving the diffuse reflectance.
    """

    name = "Lambertian"

    def __init__(self, albedo: Texture | tuple[float, float, float]) -> None:
        self.albedo = as_texture(albedo)

    def scatter(self, ray: Ray, hit) -> ScatterRecord:
        pdf = MixturePdf(
            [
                CosinePdf(hit.normal),
                LightPdf(hit.position, ray.time),
                SkyPdf(),
            ]
        )
        return ScatterRecord(
            specular_ray=None,
            attenuation=self.albedo.color(hit.uv, hit.position),
            pdf=pdf,
            scattering_pdf=lambertian_scattering_pdf,
        )

    def __repr__(self) -> str:
        return f"Lambertian({self.albedo!r})"
