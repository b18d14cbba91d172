"""Metal (specular reflection) material with optional fuzz.

The reflected direction is perturbed by a random point in a sphere of
radius ``fuzz``. Metal is a delta material: its scatter record carries a
specular ray and no sampling density. Rays perturbed below the surface are
absorbed.
"""

from src.tracer.core.pdf import ScatterRecord
from src.tracer.core.ray import Ray, dot, normalize, random_in_unit_sphere, reflect
from src.tracer.materials.base import Material
from src.tracer.materials.texture import Texture, as_texture


class Metal(Material):
    """Reflective material.

    Attributes:
        albedo: Texture giving the reflectance.
        fuzz: Roughness in [0, 1]; 0 is a perfect mirror.
    """

    name = "Metal"

    def __init__(self, albedo: Texture | tuple[float, float, float], fuzz: float = 0.0) -> None:
        if fuzz < 0.0:
            raise ValueError(f"fuzz must be non-negative, got {fuzz}")
        self.albedo = as_texture(albedo)
        self.fuzz = min(fuzz, 1.0)

    def scatter(self, ray: Ray, hit) -> ScatterRecord | None:
        reflected = reflect(normalize(ray.direction), hit.normal)
        if self.fuzz > 0.0:
            reflected = reflected + self.fuzz * random_in_unit_sphere()
        if dot(reflected, hit.normal) <= 0.0:
            return None
        return ScatterRecord(
            specular_ray=Ray(hit.position, reflected, ray.time),
            attenuation=self.albedo.color(hit.uv, hit.position),
        )

    def __repr__(self) -> str:
        return f"Metal({self.albedo!r}, fuzz={self.fuzz})"
