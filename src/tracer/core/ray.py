"""Ray data structure and vector utilities for Monte Carlo ray tracing.

Vectors and colors are plain ``numpy`` arrays of shape (3,) with dtype
float64. This module provides the immutable Ray type plus the small set of
vector helpers and random direction generators shared by shapes, materials
and sampling strategies.

Example:
    >>> from src.tracer.core.ray import Ray, vec3
    >>> ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -1.0))
    >>> point = ray.at(5.0)  # Point 5 units along the ray
"""

import math
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from src.tracer.core.sampling import get_rng

Vec3 = npt.NDArray[np.float64]


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> Vec3:
    """Build a 3-component float64 vector."""
    return np.array((x, y, z), dtype=np.float64)


def as_vec3(value) -> Vec3:
    """Convert a tuple, list or array into a float64 vector."""
    return np.asarray(value, dtype=np.float64).reshape(3)


@dataclass(frozen=True)
class Ray:
    """A ray with an origin point, a direction vector and a time.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction vector. Not required to be unit length.
        time: Time the ray was emitted, used for motion blur.
    """

    origin: Vec3
    direction: Vec3
    time: float = field(default=0.0)

    def at(self, t: float) -> Vec3:
        """Compute the point origin + t * direction."""
        return self.origin + t * self.direction

    def with_direction(self, direction: Vec3) -> "Ray":
        """Return a ray sharing origin and time with a new direction."""
        return Ray(self.origin, direction, self.time)


# =============================================================================
# Vector Utility Functions
# =============================================================================


def length(v: Vec3) -> float:
    """Compute the Euclidean length of a vector."""
    return math.sqrt(float(v[0] * v[0] + v[1] * v[1] + v[2] * v[2]))


def length_squared(v: Vec3) -> float:
    """Compute the squared length of a vector."""
    return float(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def normalize(v: Vec3) -> Vec3:
    """Normalize a vector to unit length.

    Returns:
        A unit vector in the same direction as v, or a zero vector if v has
        zero length.
    """
    n = length(v)
    if n == 0.0:
        return np.zeros(3)
    return v / n


def dot(a: Vec3, b: Vec3) -> float:
    """Compute the dot product of two vectors."""
    return float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])


def cross(a: Vec3, b: Vec3) -> Vec3:
    """Compute the cross product a x b."""
    return vec3(
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def reflect(incident: Vec3, normal: Vec3) -> Vec3:
    """Reflect an incident vector about a unit normal."""
    return incident - 2.0 * dot(incident, normal) * normal


def refract(incident: Vec3, normal: Vec3, eta: float) -> Vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    Args:
        incident: The incoming direction (normalized).
        normal: The surface normal facing the incoming ray.
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction.
    """
    cos_theta = min(dot(-incident, normal), 1.0)
    r_out_perp = eta * (incident + cos_theta * normal)
    r_out_parallel = -math.sqrt(abs(1.0 - length_squared(r_out_perp))) * normal
    return r_out_perp + r_out_parallel


def schlick_fresnel(cosine: float, ref_idx: float) -> float:
    """Compute Fresnel reflectance using Schlick's approximation."""
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


def is_finite(v: Vec3) -> bool:
    """Check that no component is NaN or infinite."""
    return bool(np.all(np.isfinite(v)))


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


def random_in_unit_sphere() -> Vec3:
    """Generate a random point inside the unit sphere by rejection sampling."""
    rng = get_rng()
    while True:
        p = rng.random(3) * 2.0 - 1.0
        if length_squared(p) < 1.0:
            return p


def random_unit_vector() -> Vec3:
    """Generate a unit vector uniformly distributed on the sphere."""
    rng = get_rng()
    z = 1.0 - 2.0 * rng.random()
    phi = 2.0 * math.pi * rng.random()
    r = math.sqrt(max(0.0, 1.0 - z * z))
    return vec3(r * math.cos(phi), r * math.sin(phi), z)


def random_in_unit_disk() -> Vec3:
    """Generate a random point (x, y, 0) inside the unit disk."""
    rng = get_rng()
    while True:
        x, y = rng.random(2) * 2.0 - 1.0
        if x * x + y * y < 1.0:
            return vec3(x, y, 0.0)


def random_cosine_direction() -> Vec3:
    """Generate a cosine-weighted direction in the local frame (z-up).

    The distribution has density cos(theta) / pi.
    """
    rng = get_rng()
    r1, r2 = rng.random(2)
    phi = 2.0 * math.pi * r1
    sqrt_r2 = math.sqrt(r2)
    return vec3(math.cos(phi) * sqrt_r2, math.sin(phi) * sqrt_r2, math.sqrt(1.0 - r2))


def random_in_cone(cos_max: float) -> Vec3:
    """Generate a direction uniformly inside a cone around local +z.

    Args:
        cos_max: Cosine of the cone half-angle.

    Returns:
        A unit direction in the local frame with density
        1 / (2 pi (1 - cos_max)).
    """
    rng = get_rng()
    r1, r2 = rng.random(2)
    z = 1.0 - r1 * (1.0 - cos_max)
    phi = 2.0 * math.pi * r2
    r = math.sqrt(max(0.0, 1.0 - z * z))
    return vec3(r * math.cos(phi), r * math.sin(phi), z)


def build_onb_from_normal(normal: Vec3) -> tuple[Vec3, Vec3, Vec3]:
    """Build an orthonormal basis whose z-axis is the given unit normal.

    Returns:
        A tuple (tangent, bitangent, normal).
    """
    a = vec3(0.0, 1.0, 0.0) if abs(normal[0]) > 0.9 else vec3(1.0, 0.0, 0.0)
    tangent = normalize(cross(a, normal))
    bitangent = cross(normal, tangent)
    return tangent, bitangent, normal


def local_to_world(local_dir: Vec3, tangent: Vec3, bitangent: Vec3, normal: Vec3) -> Vec3:
    """Transform a direction from a local (z-up) frame to world coordinates."""
    return local_dir[0] * tangent + local_dir[1] * bitangent + local_dir[2] * normal
