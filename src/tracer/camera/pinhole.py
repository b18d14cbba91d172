"""Look-at camera with an optional thin lens and a shutter interval.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The image plane sits at ``focus_distance`` in front of the camera. With a
non-zero aperture, rays start from a random point on the lens disc so only
the focus plane is sharp. Every ray carries a random time inside
[start_time, end_time] for motion blur.

Example:
    >>> from src.tracer.camera.pinhole import Camera, PinholeCamera
    >>> camera = Camera(PinholeCamera(
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=16.0 / 9.0,
    ... ))
    >>> ray = camera.get_ray(0.5, 0.5)  # Ray through image center
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np

from src.tracer.core.ray import Ray, Vec3, as_vec3, random_in_unit_disk
from src.tracer.core.sampling import random_float

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class PinholeCamera:
    """Configuration for a look-at camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees (typically 40-90).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a perfect pinhole.
        focus_distance: Distance to the plane in perfect focus.
        start_time: Shutter open time.
        end_time: Shutter close time.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 40.0
    aspect_ratio: float = 1.0
    aperture: float = 0.0
    focus_distance: float = 1.0
    start_time: float = 0.0
    end_time: float = 0.0


class Camera:
    """Generates primary rays from a PinholeCamera configuration."""

    def __init__(self, config: PinholeCamera) -> None:
        self.config = config
        self._setup()

    def _setup(self) -> None:
        config = self.config
        if not 0.0 < config.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180), got {config.vfov}")
        if config.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {config.aspect_ratio}")
        if config.focus_distance <= 0.0:
            raise ValueError(f"focus_distance must be positive, got {config.focus_distance}")

        h = math.tan(math.radians(config.vfov) / 2.0)
        viewport_height = 2.0 * h
        viewport_width = config.aspect_ratio * viewport_height

        lookfrom = as_vec3(config.lookfrom)
        w = lookfrom - as_vec3(config.lookat)
        norm = np.linalg.norm(w)
        if norm == 0.0:
            raise ValueError("lookfrom and lookat must differ")
        w = w / norm
        u = np.cross(as_vec3(config.vup), w)
        norm = np.linalg.norm(u)
        if norm == 0.0:
            raise ValueError("vup must not be parallel to the view direction")
        u = u / norm
        v = np.cross(w, u)

        self.origin = lookfrom
        self.u, self.v, self.w = u, v, w
        # Viewport spans at the focus plane
        self.horizontal = config.focus_distance * viewport_width * u
        self.vertical = config.focus_distance * viewport_height * v
        self.lower_left_corner = lookfrom - self.horizontal / 2.0 - self.vertical / 2.0 - config.focus_distance * w
        self.lens_radius = config.aperture / 2.0

    def get_ray(self, s: float, t: float) -> Ray:
        """Ray through normalized image coordinates.

        Args:
            s: Horizontal coordinate in [0, 1] (left to right).
            t: Vertical coordinate in [0, 1] (bottom to top).
        """
        offset: Vec3 = np.zeros(3)
        if self.lens_radius > 0.0:
            disk = self.lens_radius * random_in_unit_disk()
            offset = self.u * disk[0] + self.v * disk[1]
        origin = self.origin + offset
        target = self.lower_left_corner + s * self.horizontal + t * self.vertical
        time = self.config.start_time
        if self.config.end_time > self.config.start_time:
            time = random_float(self.config.start_time, self.config.end_time)
        return Ray(origin, target - origin, time)

    def _reconfigure(self, **changes) -> None:
        """Apply config changes, keeping the previous config if they are rejected."""
        previous = self.config
        self.config = replace(previous, **changes)
        try:
            self._setup()
        except ValueError:
            self.config = previous
            raise

    def set_origin(self, lookfrom) -> None:
        self._reconfigure(lookfrom=tuple(float(c) for c in lookfrom))

    def set_look_at(self, lookat) -> None:
        self._reconfigure(lookat=tuple(float(c) for c in lookat))

    def set_aspect_ratio(self, aspect_ratio: float) -> None:
        self._reconfigure(aspect_ratio=float(aspect_ratio))

    def fields(self) -> dict:
        return {
            "origin": self.config.lookfrom,
            "look_at": self.config.lookat,
            "vfov": self.config.vfov,
            "aperture": self.config.aperture,
            "focus_distance": self.config.focus_distance,
        }

    def set_field(self, key: str, value) -> None:
        """Update a camera parameter by name and rebuild the basis.

        Raises:
            KeyError: For unknown parameter names.
        """
        if key == "origin":
            self.set_origin(value)
            return
        if key == "look_at":
            self.set_look_at(value)
            return
        if key not in ("vfov", "aperture", "focus_distance"):
            raise KeyError(f"camera has no field '{key}'")
        self._reconfigure(**{key: float(value)})

    def __repr__(self) -> str:
        return f"Camera({self.config!r})"
