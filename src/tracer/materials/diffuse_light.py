"""Area light material: emits on front faces, black on back faces."""

import numpy as np

from src.tracer.core.ray import Ray
from src.tracer.materials.base import Material
from src.tracer.materials.texture import Texture, as_texture


class DiffuseLight(Material):
    """Emitter. Never scatters, so light paths end on it."""

    name = "Diffuse Light"

    def __init__(self, emit: Texture | tuple[float, float, float]) -> None:
        self.emit_texture = as_texture(emit)

    def emit(self, ray: Ray, hit):
        if hit.front_face:
            return self.emit_texture.color(hit.uv, hit.position)
        return np.zeros(3)

    def __repr__(self) -> str:
        return f"DiffuseLight({self.emit_texture!r})"
