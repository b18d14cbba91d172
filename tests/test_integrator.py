"""Tests for the path tracing integrator and the accumulation render target.

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run, so module-level
imports of modules containing ti.field() declarations would fail.
"""

import math

import numpy as np
import pytest

from src.tracer.camera.pinhole import Camera, PinholeCamera
from src.tracer.core.ray import Ray, vec3
from src.tracer.geometry.rect import XZRect
from src.tracer.geometry.sphere import Sphere
from src.tracer.materials import DiffuseLight, Lambertian
from src.tracer.scene.background import ConstantColor
from src.tracer.scene.sun import Sun
from src.tracer.scene.world import WorldInfo

DOWN = vec3(0.0, -1.0, 0.0)


def _world(objects, lights=(), background=(0.0, 0.0, 0.0), sun=None):
    camera = Camera(PinholeCamera(lookfrom=(0.0, 1.0, 3.0), lookat=(0.0, 0.0, 0.0), vfov=60.0))
    return WorldInfo(list(objects), list(lights), ConstantColor(background), camera, sun).build_world()


def _floor(albedo=0.5):
    return XZRect(-1000.0, 1000.0, -1000.0, 1000.0, 0.0, Lambertian((albedo, albedo, albedo)))


def _sample_floor(world, n):
    """Single-sample estimates looking straight down onto the floor."""
    from src.tracer.core.integrator import ray_color

    ray = Ray(vec3(0.0, 1.0, 0.0), DOWN)
    return np.array([ray_color(ray, world, 10)[0] for _ in range(n)])


class TestShader:
    def test_from_name(self):
        from src.tracer.core.integrator import Shader

        assert Shader.from_name("raytracing") == Shader.RAYTRACING
        assert Shader.from_name("light_map") == Shader.LIGHT_MAP
        assert Shader.from_name("Diffuse") == Shader.DIFFUSE

    def test_unknown_name(self):
        from src.tracer.core.integrator import Shader

        with pytest.raises(ValueError, match="unknown shader"):
            Shader.from_name("phong")

    def test_sanitize_color(self):
        from src.tracer.core.integrator import sanitize_color

        color = sanitize_color(np.array([math.nan, -1.0, math.inf]))
        np.testing.assert_array_equal(color, [0.0, 0.0, 0.0])
        np.testing.assert_array_equal(sanitize_color(vec3(0.1, 2.0, 0.0)), [0.1, 2.0, 0.0])


class TestRayColor:
    def test_escaping_ray_returns_background(self):
        from src.tracer.core.integrator import ray_color

        world = _world([], background=(0.2, 0.3, 0.4))
        color = ray_color(Ray(vec3(), vec3(0.0, 0.0, -1.0)), world)
        np.testing.assert_array_equal(color, [0.2, 0.3, 0.4])

    def test_depth_zero_is_black(self):
        from src.tracer.core.integrator import ray_color

        world = _world([], background=(1.0, 1.0, 1.0))
        np.testing.assert_array_equal(ray_color(Ray(vec3(), DOWN), world, 0), [0.0, 0.0, 0.0])

    def test_light_returns_its_emission(self):
        from src.tracer.core.integrator import ray_color

        light = Sphere((0.0, 0.0, -3.0), 1.0, DiffuseLight((4.0, 5.0, 6.0)))
        world = _world([light], [light])
        color = ray_color(Ray(vec3(), vec3(0.0, 0.0, -1.0)), world)
        np.testing.assert_array_equal(color, [4.0, 5.0, 6.0])

    def test_closed_scene_without_lights_is_black(self, gray):
        from src.tracer.core.integrator import ray_color

        shell = Sphere((0.0, 0.0, 0.0), 5.0, gray)
        world = _world([shell], background=(1.0, 1.0, 1.0))
        for _ in range(20):
            color = ray_color(Ray(vec3(), vec3(0.0, 0.0, -1.0)), world, 8)
            np.testing.assert_array_equal(color, [0.0, 0.0, 0.0])

    def test_floor_under_uniform_sky_is_exact(self):
        # cosine sampling against a constant sky makes every sample equal the albedo
        world = _world([_floor(0.5)], background=(1.0, 1.0, 1.0))
        np.testing.assert_allclose(_sample_floor(world, 50), 0.5)

    def test_mixture_with_sun_is_unbiased(self):
        sun = Sun(phi=math.pi / 2.5, theta=0.3, radius=0.3)
        world = _world([_floor(0.5)], background=(1.0, 1.0, 1.0), sun=sun)
        assert _sample_floor(world, 3000).mean() == pytest.approx(0.5, rel=0.05)

    def test_mixture_with_light_is_unbiased(self):
        # the light matches the sky, so the expected radiance is unchanged
        light = XZRect(-0.5, 0.5, -0.5, 0.5, 2.0, DiffuseLight((1.0, 1.0, 1.0)), flip_normal=True)
        world = _world([_floor(0.5), light], [light], background=(1.0, 1.0, 1.0))
        assert _sample_floor(world, 3000).mean() == pytest.approx(0.5, rel=0.05)

    def test_standard_error_shrinks_with_samples(self):
        sun = Sun(phi=math.pi / 2.5, theta=0.3, radius=0.3)
        world = _world([_floor(0.5)], background=(1.0, 1.0, 1.0), sun=sun)
        small = [_sample_floor(world, 8).mean() for _ in range(100)]
        large = [_sample_floor(world, 32).mean() for _ in range(100)]
        ratio = np.var(small) / np.var(large)
        assert 2.0 < ratio < 8.0

    def test_floor_lit_by_small_sphere(self):
        light = Sphere((0.0, 2.0, 0.0), 0.5, DiffuseLight((4.0, 4.0, 4.0)))
        world = _world([_floor(1.0), light], [light])
        samples = _sample_floor(world, 500)
        assert np.isfinite(samples).all()
        # the mixture weight never exceeds two, so one bounce is bounded by twice the emission
        assert samples.max() <= 8.0 + 1e-9
        assert samples.mean() > 0.0

    def test_one_sphere_scenario(self):
        from src.tracer.core.integrator import get_normalized_image_numpy, render_image, setup_render_target
        from src.tracer.scene.scenarios import default_registry

        world = default_registry().build("One Sphere")
        setup_render_target(16, 16)
        render_image(world, num_samples=4)
        image = get_normalized_image_numpy(clamp=False)
        center = image[8, 8]
        assert np.isfinite(center).all()
        assert center.sum() > 0.0

    def test_diffuse_shader_shows_albedo(self):
        from src.tracer.core.integrator import Shader, ray_color

        world = _world([_floor(0.25)], background=(1.0, 1.0, 1.0))
        color = ray_color(Ray(vec3(0.0, 1.0, 0.0), DOWN), world, shader=Shader.DIFFUSE)
        np.testing.assert_allclose(color, [0.25, 0.25, 0.25])

    def test_light_map_without_lights_is_black(self):
        from src.tracer.core.integrator import Shader, ray_color

        world = _world([_floor()], background=(1.0, 1.0, 1.0))
        color = ray_color(Ray(vec3(0.0, 1.0, 0.0), DOWN), world, shader=Shader.LIGHT_MAP)
        np.testing.assert_array_equal(color, [0.0, 0.0, 0.0])

    def test_light_map_measures_gap_to_blocker(self):
        from src.tracer.core.integrator import Shader, ray_color

        light = XZRect(-0.5, 0.5, -0.5, 0.5, 4.0, DiffuseLight((1.0, 1.0, 1.0)), flip_normal=True)
        blocker = XZRect(-10.0, 10.0, -10.0, 10.0, 3.0, Lambertian((0.5, 0.5, 0.5)))
        world = _world([_floor(), light, blocker], [light])
        color = ray_color(Ray(vec3(0.0, 1.0, 0.0), DOWN), world, shader=Shader.LIGHT_MAP)
        # every light sample is stopped one unit short of the light
        assert color[0] > 0.99


class TestRenderTile:
    def test_shape_and_dtype(self):
        from src.tracer.core.integrator import render_tile

        world = _world([], background=(0.1, 0.2, 0.3))
        tile = render_tile(world, 2, 1, 3, 2, 8, 8)
        assert tile.shape == (3, 2, 3)
        assert tile.dtype == np.float32
        np.testing.assert_allclose(tile[1, 1], [0.1, 0.2, 0.3], rtol=1e-6)


class TestRenderTarget:
    def test_setup_rejects_oversized_images(self):
        from src.tracer.core.integrator import setup_render_target

        with pytest.raises(ValueError, match="exceed maximum"):
            setup_render_target(4096, 16)
        with pytest.raises(ValueError):
            setup_render_target(0, 16)

    def test_accumulate_and_average(self):
        from src.tracer.core.integrator import (
            accumulate_tile,
            get_normalized_image_numpy,
            get_total_samples,
            setup_render_target,
        )

        setup_render_target(4, 3)
        accumulate_tile(0, 0, np.full((4, 3, 3), 0.2, dtype=np.float32))
        accumulate_tile(0, 0, np.full((4, 3, 3), 0.6, dtype=np.float32))
        image = get_normalized_image_numpy()
        assert image.shape == (3, 4, 3)
        np.testing.assert_allclose(image, 0.4, rtol=1e-6)
        assert get_total_samples() == 2

    def test_total_samples_is_the_minimum(self):
        from src.tracer.core.integrator import (
            accumulate_tile,
            get_pixel_sample_count,
            get_total_samples,
            setup_render_target,
        )

        setup_render_target(4, 4)
        accumulate_tile(0, 0, np.zeros((2, 4, 3), dtype=np.float32))
        assert get_pixel_sample_count(0, 0) == 1
        assert get_pixel_sample_count(3, 0) == 0
        assert get_total_samples() == 0

    def test_tile_outside_image(self):
        from src.tracer.core.integrator import accumulate_tile, setup_render_target

        setup_render_target(4, 4)
        with pytest.raises(ValueError):
            accumulate_tile(3, 0, np.zeros((2, 2, 3), dtype=np.float32))

    def test_clear_region(self):
        from src.tracer.core.integrator import (
            accumulate_tile,
            clear_region,
            get_normalized_image_numpy,
            get_pixel_sample_count,
            setup_render_target,
        )

        setup_render_target(4, 4)
        accumulate_tile(0, 0, np.ones((4, 4, 3), dtype=np.float32))
        clear_region(0, 0, 2, 4)
        assert get_pixel_sample_count(1, 1) == 0
        assert get_pixel_sample_count(2, 1) == 1
        image = get_normalized_image_numpy()
        np.testing.assert_array_equal(image[:, :2], 0.0)
        np.testing.assert_array_equal(image[:, 2:], 1.0)

    def test_bottom_left_origin(self):
        from src.tracer.core.integrator import accumulate_tile, get_normalized_image_numpy, setup_render_target

        setup_render_target(3, 2)
        accumulate_tile(0, 0, np.ones((1, 1, 3), dtype=np.float32))
        image = get_normalized_image_numpy()
        assert image[-1, 0, 0] == 1.0
        assert image[0, 0, 0] == 0.0

    def test_hdr_values_survive_without_clamp(self):
        from src.tracer.core.integrator import accumulate_tile, get_normalized_image_numpy, setup_render_target

        setup_render_target(2, 2)
        accumulate_tile(0, 0, np.full((2, 2, 3), 3.0, dtype=np.float32))
        assert get_normalized_image_numpy().max() == 1.0
        assert get_normalized_image_numpy(clamp=False).max() == pytest.approx(3.0)

    def test_render_image_of_empty_world(self):
        from src.tracer.core.integrator import get_normalized_image_numpy, render_image, setup_render_target

        setup_render_target(6, 4)
        render_image(_world([], background=(0.25, 0.5, 0.75)), num_samples=2)
        np.testing.assert_allclose(get_normalized_image_numpy(), np.broadcast_to([0.25, 0.5, 0.75], (4, 6, 3)), rtol=1e-6)

    def test_background_pixel_is_stored_as_float32(self):
        from src.tracer.core.integrator import get_normalized_image_numpy, render_image, setup_render_target

        background = np.array([0.02, 0.02, 0.03])
        setup_render_target(3, 2)
        render_image(_world([], background=tuple(background)), num_samples=2)
        image = get_normalized_image_numpy()
        assert image.dtype == np.float32
        # the target holds single precision sums, so a miss reads back as the rounded background
        np.testing.assert_array_equal(image[0, 0], background.astype(np.float32))
        np.testing.assert_array_equal(image[1, 2], background.astype(np.float32))

    def test_save_image(self, tmp_path):
        from PIL import Image

        from src.tracer.core.integrator import accumulate_tile, save_image, setup_render_target

        setup_render_target(4, 2)
        accumulate_tile(0, 0, np.ones((4, 2, 3), dtype=np.float32))
        path = tmp_path / "out.png"
        save_image(str(path))
        with Image.open(path) as image:
            assert image.size == (4, 2)
