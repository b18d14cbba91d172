"""Path tracing integrator and the accumulation render target.

Radiance is estimated in plain Python by ``ray_color``, which any worker
thread may call. Samples are accumulated on the consumer side into
preallocated Taichi fields holding a per-pixel color sum and sample count;
the displayed image is always sum / count, so a partially rendered image is
valid at any time.

Three shaders are available:
    RAYTRACING: recursive multiple-importance-sampled path tracing
    DIFFUSE: attenuation or emission of the first hit, background on miss
    LIGHT_MAP: summed distance from each light sample to its first blocker

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.core.integrator import render_image, setup_render_target
    >>> from src.tracer.scene.scenarios import default_registry
    >>>
    >>> world = default_registry().build("Cornell Box")
    >>> setup_render_target(64, 64)
    >>> render_image(world, num_samples=4)
"""

import logging
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.tracer.core.config import MAX_DEPTH, MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH
from src.tracer.core.ray import Ray, Vec3, is_finite, length, vec3
from src.tracer.core.sampling import get_rng
from src.tracer.geometry.hittable import EffectKind

logger = logging.getLogger(__name__)

# t_min and t_max for scene queries
T_MIN = 1e-3
T_MAX = 1e10


class Shader(IntEnum):
    """Which estimator computes a pixel sample."""

    RAYTRACING = 0
    DIFFUSE = 1
    LIGHT_MAP = 2

    @classmethod
    def from_name(cls, name: str) -> "Shader":
        """Parse ``"raytracing"``, ``"diffuse"`` or ``"light_map"``.

        Raises:
            ValueError: For unknown names.
        """
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"unknown shader '{name}'") from None


# =============================================================================
# Shaders
# =============================================================================


def _black() -> Vec3:
    return vec3(0.0, 0.0, 0.0)


def ray_tracing_color(ray: Ray, world, depth: int) -> Vec3:
    """Recursive path-tracing estimate of the radiance arriving along ``ray``."""
    if depth <= 0:
        return _black()
    record = world.nearest_hit(ray, T_MIN, T_MAX)
    if record is None:
        return world.background.color(ray)

    effect = record.material_effect
    if effect.kind == EffectKind.EMIT:
        if not is_finite(effect.color):
            logger.error("emitted color is not finite: %s", effect.color)
        return effect.color
    if effect.kind == EffectKind.NO_EFFECT:
        return _black()

    scatter = effect.scatter
    if scatter.specular_ray is not None:
        return scatter.attenuation * ray_tracing_color(scatter.specular_ray, world, depth - 1)

    if scatter.pdf is None or scatter.scattering_pdf is None:
        logger.error("diffuse scatter without a sampling density at %s", record.position)
        return _black()
    sample = scatter.pdf.generate(ray, record.position, world)
    if sample is None:
        return _black()
    direction, density = sample
    if not density > 0.0 or length(direction) == 0.0:
        return _black()
    scattered = Ray(record.position, direction, ray.time)
    scattering = scatter.scattering_pdf(ray, record, scattered)
    if scattering is None or scattering <= 0.0:
        return _black()
    incoming = ray_tracing_color(scattered, world, depth - 1)
    return scatter.attenuation * incoming * (scattering / density)


def diffuse_color(ray: Ray, world, depth: int) -> Vec3:
    """Flat preview: emitted color or attenuation of the first hit."""
    if depth <= 0:
        return _black()
    record = world.nearest_hit(ray, T_MIN, T_MAX)
    if record is None:
        return world.background.color(ray)
    effect = record.material_effect
    if effect.kind == EffectKind.EMIT:
        return effect.color
    if effect.kind == EffectKind.SCATTER:
        return effect.scatter.attenuation
    return _black()


def light_map_color(ray: Ray, world, depth: int) -> Vec3:
    """Sum over lights of the gap between a light sample and its first blocker."""
    if depth <= 0:
        return _black()
    record = world.nearest_hit(ray, T_MIN, T_MAX)
    if record is None:
        return _black()
    total = 0.0
    for light in world.lights:
        area = light.generate_ray_in_area(record.position, ray.time)
        blocker = world.nearest_hit(area.to_area, T_MIN, T_MAX)
        if blocker is None:
            continue
        gap = length(area.end_point - blocker.position)
        if gap != gap:
            logger.warning("light map distance is NaN at %s", record.position)
            return vec3(1.0, 0.0, 0.0)
        total += gap
    return vec3(total, total, total)


_SHADERS = {
    Shader.RAYTRACING: ray_tracing_color,
    Shader.DIFFUSE: diffuse_color,
    Shader.LIGHT_MAP: light_map_color,
}


def ray_color(ray: Ray, world, depth: int = MAX_DEPTH, shader: Shader = Shader.RAYTRACING) -> Vec3:
    """Radiance estimate along ``ray`` with the selected shader."""
    return _SHADERS[shader](ray, world, depth)


def sanitize_color(color: Vec3) -> Vec3:
    """Replace non-finite and negative components, logging any NaN or inf."""
    if not is_finite(color):
        logger.warning("non-finite sample color %s clamped", color)
        color = np.nan_to_num(color, nan=0.0, posinf=0.0, neginf=0.0)
    return np.maximum(color, 0.0)


def render_pixel(
    world,
    i: int,
    j: int,
    width: int,
    height: int,
    shader: Shader = Shader.RAYTRACING,
    max_depth: int = MAX_DEPTH,
) -> Vec3:
    """One jittered sample of pixel (i, j); j = 0 is the bottom row."""
    rng = get_rng()
    u = (i + rng.random()) / width
    v = (j + rng.random()) / height
    return sanitize_color(ray_color(world.camera.get_ray(u, v), world, max_depth, shader))


def render_tile(
    world,
    x0: int,
    y0: int,
    tile_width: int,
    tile_height: int,
    width: int,
    height: int,
    shader: Shader = Shader.RAYTRACING,
    max_depth: int = MAX_DEPTH,
) -> npt.NDArray[np.float32]:
    """One sample for every pixel of a tile.

    Returns:
        Array of shape (tile_width, tile_height, 3) indexed [i, j].
    """
    out = np.zeros((tile_width, tile_height, 3), dtype=np.float32)
    for i in range(tile_width):
        for j in range(tile_height):
            out[i, j] = render_pixel(world, x0 + i, y0 + j, width, height, shader, max_depth)
    return out


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel color sum and sample count (preallocated to max size). Sums are
# single precision, so resolved colors are float32 roundings of the samples.
_color_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_min_count = ti.field(dtype=ti.i32, shape=())

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image dimensions and clear the buffers.

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


@ti.kernel
def _accumulate_tile(x0: ti.i32, y0: ti.i32, tile: ti.types.ndarray()):
    for i, j in ti.ndrange(tile.shape[0], tile.shape[1]):
        _color_sum[x0 + i, y0 + j] += tm.vec3(tile[i, j, 0], tile[i, j, 1], tile[i, j, 2])
        _sample_count[x0 + i, y0 + j] += 1


@ti.kernel
def _clear_region(x0: ti.i32, y0: ti.i32, w: ti.i32, h: ti.i32):
    for i, j in ti.ndrange(w, h):
        _color_sum[x0 + i, y0 + j] = tm.vec3(0.0, 0.0, 0.0)
        _sample_count[x0 + i, y0 + j] = 0


@ti.kernel
def _resolve(width: ti.i32, height: ti.i32, out: ti.types.ndarray()):
    for i, j in ti.ndrange(width, height):
        n = _sample_count[i, j]
        color = tm.vec3(0.0, 0.0, 0.0)
        if n > 0:
            color = _color_sum[i, j] / ti.cast(n, ti.f32)
        for c in ti.static(range(3)):
            out[i, j, c] = color[c]


@ti.kernel
def _reduce_min_count(width: ti.i32, height: ti.i32):
    for i, j in ti.ndrange(width, height):
        ti.atomic_min(_min_count[None], _sample_count[i, j])


def accumulate_tile(x0: int, y0: int, tile: npt.NDArray[np.float32]) -> None:
    """Add one sample per pixel of ``tile`` at offset (x0, y0).

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If the tile does not fit inside the active image.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    if x0 < 0 or y0 < 0 or x0 + tile.shape[0] > width or y0 + tile.shape[1] > height:
        raise ValueError(f"tile {tile.shape[:2]} at ({x0}, {y0}) outside {width}x{height} image")
    _accumulate_tile(x0, y0, np.ascontiguousarray(tile, dtype=np.float32))


def clear_region(x0: int, y0: int, w: int, h: int) -> None:
    """Reset the pixels of one tile to black with zero samples."""
    _check_render_target_initialized()
    _clear_region(x0, y0, w, h)


def get_total_samples() -> int:
    """Smallest per-pixel sample count over the active image."""
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    _min_count[None] = 2**31 - 1
    _reduce_min_count(width, height)
    return int(_min_count[None])


def get_pixel_sample_count(i: int, j: int) -> int:
    _check_render_target_initialized()
    return int(_sample_count[i, j])


def get_normalized_image_numpy(clamp: bool = True) -> npt.NDArray[np.float32]:
    """The average color per pixel as a (height, width, 3) float32 array.

    Rows run top to bottom. Pixels without samples are black.

    Args:
        clamp: Clip values to [0, 1]. Disable to keep HDR radiance.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    out = np.zeros((width, height, 3), dtype=np.float32)
    _resolve(width, height, out)
    # Taichi uses a bottom-left origin, images use top-left
    image = np.flipud(np.transpose(out, (1, 0, 2)))
    if clamp:
        image = np.clip(image, 0.0, 1.0)
    return np.ascontiguousarray(image, dtype=np.float32)


def render_image(
    world,
    num_samples: int = 1,
    shader: Shader = Shader.RAYTRACING,
    max_depth: int = MAX_DEPTH,
) -> None:
    """Render samples for the whole image in the calling thread."""
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    for _ in range(num_samples):
        accumulate_tile(0, 0, render_tile(world, 0, 0, width, height, width, height, shader, max_depth))


def save_image(filepath: str, gamma: float = 2.2) -> None:
    """Save the averaged image, gamma corrected, with Pillow."""
    from PIL import Image as PILImage

    image = np.power(get_normalized_image_numpy(), 1.0 / gamma)
    PILImage.fromarray((image * 255).astype(np.uint8)).save(filepath)
