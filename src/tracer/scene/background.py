"""Background models: the radiance returned for rays that hit nothing."""

from __future__ import annotations

import math

from src.tracer.core.ray import Ray, Vec3, as_vec3, dot, normalize, vec3
from src.tracer.scene.sun import Sun

WHITE = vec3(1.0, 1.0, 1.0)
SKY_BLUE = vec3(0.5, 0.7, 1.0)


class Background:
    """Base class. ``color(ray)`` depends only on the ray direction."""

    def color(self, ray: Ray) -> Vec3:
        raise NotImplementedError


class ConstantColor(Background):
    def __init__(self, color=(0.0, 0.0, 0.0)) -> None:
        self._color = as_vec3(color)

    def color(self, ray: Ray) -> Vec3:
        return self._color.copy()

    def __repr__(self) -> str:
        return f"ConstantColor({tuple(self._color)})"


def _gradient(ray: Ray, intensity: float) -> Vec3:
    unit = normalize(ray.direction)
    t = 0.5 * (unit[1] + 1.0)
    return intensity * ((1.0 - t) * WHITE + t * SKY_BLUE)


class Sky(Background):
    """White-to-blue vertical gradient."""

    def __init__(self, intensity: float = 1.0) -> None:
        self.intensity = float(intensity)

    def color(self, ray: Ray) -> Vec3:
        return _gradient(ray, self.intensity)

    def __repr__(self) -> str:
        return f"Sky(intensity={self.intensity})"


class SunSky(Background):
    """Gradient sky with a bright disc around the sun direction."""

    def __init__(self, sun: Sun | None = None, intensity: float = 1.0, sun_brightness: float = 1.0) -> None:
        self.sun = sun if sun is not None else Sun()
        self.intensity = float(intensity)
        self.sun_brightness = float(sun_brightness)

    def color(self, ray: Ray) -> Vec3:
        sun_cos = dot(self.sun.direction(), normalize(ray.direction))
        if sun_cos > math.cos(self.sun.radius) and sun_cos > 0.0:
            return self.sun_brightness * WHITE
        return _gradient(ray, self.intensity)

    def __repr__(self) -> str:
        return f"SunSky(sun={self.sun!r}, intensity={self.intensity}, sun_brightness={self.sun_brightness})"
