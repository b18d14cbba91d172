"""Materials module.

Components:
    base: Material interface (emit / scatter) and MaterialEffect folding
    lambertian: Ideal diffuse reflection sampled with MIS
    metal: Specular reflection with optional fuzz
    dielectric: Glass-like refraction with Schlick Fresnel
    diffuse_light: One-sided area light emitter
    isotropic: Phase function for participating media
    texture: Solid and checker textures
"""

from .base import Material
from .dielectric import Dielectric, will_reflect
from .diffuse_light import DiffuseLight
from .isotropic import Isotropic
from .lambertian import Lambertian
from .metal import Metal
from .texture import CheckerTexture, SolidColor, Texture, as_texture

__all__ = [
    "Material",
    "Lambertian",
    "Metal",
    "Dielectric",
    "will_reflect",
    "DiffuseLight",
    "Isotropic",
    "Texture",
    "SolidColor",
    "CheckerTexture",
    "as_texture",
]
