"""Directional sun used by SunSky backgrounds and sky sampling."""

from __future__ import annotations

import math
from dataclasses import dataclass

from src.tracer.core.ray import Vec3, vec3


@dataclass(frozen=True)
class Sun:
    """A disc in the sky.

    Attributes:
        phi: Elevation above the horizon in radians.
        theta: Azimuth around the vertical axis in radians.
        radius: Angular radius of the disc in radians.
    """

    phi: float = math.pi / 4.0
    theta: float = 0.0
    radius: float = 0.1

    def __post_init__(self) -> None:
        if not 0.0 < self.radius < math.pi:
            raise ValueError(f"sun radius must be in (0, pi), got {self.radius}")

    def direction(self) -> Vec3:
        """Unit vector pointing from the scene towards the sun."""
        r = math.cos(self.phi)
        return vec3(r * math.cos(self.theta), math.sin(self.phi), r * math.sin(self.theta))

    def solid_angle(self) -> float:
        """Solid angle subtended by the disc."""
        return 2.0 * math.pi * (1.0 - math.cos(self.radius))
