"""Textures: the color lookup a material performs at a hit point."""

import math

from src.tracer.core.ray import Vec3, as_vec3


class Texture:
    """Base texture. ``color(uv, position)`` returns an RGB array."""

    def color(self, uv: tuple[float, float], position: Vec3) -> Vec3:
        raise NotImplementedError


class SolidColor(Texture):
    """A single constant color."""

    def __init__(self, color) -> None:
        self.value = as_vec3(color)

    def color(self, uv: tuple[float, float], position: Vec3) -> Vec3:
        return self.value

    def __repr__(self) -> str:
        return f"SolidColor({tuple(float(c) for c in self.value)})"


class CheckerTexture(Texture):
    """3-D checker pattern alternating between two textures.

    Attributes:
        even: Texture used where the sine product is positive.
        odd: Texture used elsewhere.
        scale: Spatial frequency of the pattern.
    """

    def __init__(self, even: Texture, odd: Texture, scale: float = 10.0) -> None:
        self.even = even
        self.odd = odd
        self.scale = scale

    def color(self, uv: tuple[float, float], position: Vec3) -> Vec3:
        sines = (
            math.sin(self.scale * float(position[0]))
            * math.sin(self.scale * float(position[1]))
            * math.sin(self.scale * float(position[2]))
        )
        if sines < 0.0:
            return self.odd.color(uv, position)
        return self.even.color(uv, position)


def as_texture(value) -> Texture:
    """Wrap a color tuple in SolidColor; pass textures through."""
    if isinstance(value, Texture):
        return value
    return SolidColor(value)
