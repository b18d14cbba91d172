"""Core rendering module.

Components:
    ray: Ray type and numpy vector helpers
    aabb: Axis-aligned bounding boxes
    sampling: Thread-local random number generation
    pdf: Direction sampling densities used for importance sampling
    config: Render configuration and limits
    logging_config: Logger setup shared by the renderer and its workers
    integrator: Radiance estimation and the Taichi accumulation buffers
    workers: Tile worker threads and the shared scene lock
    progressive: Progressive renderer driving the workers

Rays are traced in plain Python on worker threads; Taichi kernels only
accumulate and resolve the image.
"""

from .aabb import AABB
from .config import MAX_DEPTH, MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, RenderConfig
from .ray import (
    Ray,
    as_vec3,
    cross,
    dot,
    length,
    length_squared,
    normalize,
    reflect,
    refract,
    vec3,
)
from .sampling import get_rng, random_float, random_int, seed_rng

# Note: pdf, integrator, workers and progressive are NOT imported here. pdf
# depends on geometry (circular import), and integrator allocates Taichi
# fields, which needs ti.init() to have run first.
#
# For progressive rendering, use:
#   from src.tracer.core.progressive import ProgressiveRenderer

__all__ = [
    "AABB",
    "MAX_DEPTH",
    "MAX_IMAGE_HEIGHT",
    "MAX_IMAGE_WIDTH",
    "Ray",
    "RenderConfig",
    "as_vec3",
    "cross",
    "dot",
    "get_rng",
    "length",
    "length_squared",
    "normalize",
    "random_float",
    "random_int",
    "reflect",
    "refract",
    "seed_rng",
    "vec3",
]
