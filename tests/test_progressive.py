"""Tests for the progressive renderer and its worker pool.

Every test renders tiny images against cheap scenes and closes the renderer
so no worker threads outlive the test.
"""

import numpy as np
import pytest

from src.tracer.camera.pinhole import Camera, PinholeCamera
from src.tracer.core.aabb import AABB
from src.tracer.core.config import RenderConfig
from src.tracer.core.ray import vec3
from src.tracer.geometry.hittable import Hittable
from src.tracer.scene.background import ConstantColor
from src.tracer.scene.scenarios import BUILTIN_SCENARIOS, ScenarioRegistry
from src.tracer.scene.world import WorldInfo

FLAT = (0.2, 0.4, 0.6)


class _Faulty(Hittable):
    name = "Faulty"

    def hit(self, ray, t_min, t_max):
        raise RuntimeError("broken shape")

    def bounding_box(self, time0, time1):
        return AABB(vec3(-1.0, -1.0, -1.0), vec3(1.0, 1.0, 1.0))


def _camera():
    return Camera(PinholeCamera(lookfrom=(0.0, 0.0, 3.0), lookat=(0.0, 0.0, 0.0)))


def _flat():
    return WorldInfo([], [], ConstantColor(FLAT), _camera())


def _faulty():
    return WorldInfo([_Faulty()], [], ConstantColor(FLAT), _camera())


@pytest.fixture
def registry():
    registry = ScenarioRegistry(default="Flat")
    registry.register("Flat", _flat)
    registry.register("Empty", BUILTIN_SCENARIOS["Empty"])
    registry.register("Faulty", _faulty)
    return registry


@pytest.fixture
def renderer(registry):
    from src.tracer.core.progressive import ProgressiveRenderer

    with ProgressiveRenderer(8, 6, scenario="Flat", registry=registry, tile_count=4, seed=11) as renderer:
        yield renderer


class TestConstruction:
    def test_dimensions_and_tiles(self, renderer):
        assert (renderer.width, renderer.height) == (8, 6)
        assert sum(t.width * t.height for t in renderer.tiles) == 48
        assert renderer.sample_count == 0
        assert renderer.generation == 0

    def test_oversized_image(self, registry):
        from src.tracer.core.progressive import ProgressiveRenderer

        with pytest.raises(ValueError, match="exceed maximum"):
            ProgressiveRenderer(4096, 8, registry=registry)

    def test_camera_matches_aspect_ratio(self, renderer):
        assert renderer.world.camera.config.aspect_ratio == pytest.approx(8 / 6)

    def test_from_config(self, registry):
        from src.tracer.core.integrator import Shader
        from src.tracer.core.progressive import ProgressiveRenderer

        config = RenderConfig(width=6, height=4, samples=1, tile_count=2, scenario="Empty", shader="diffuse", seed=5)
        with ProgressiveRenderer.from_config(config) as renderer:
            assert renderer.shader == Shader.DIFFUSE
            assert renderer.scenario == "Empty"
            renderer.render(1)
            assert renderer.sample_count == 1

    def test_repr(self, renderer):
        assert "Flat" in repr(renderer)


class TestRender:
    def test_render_accumulates(self, renderer):
        renderer.render(3)
        assert renderer.sample_count == 3
        image = renderer.get_image_numpy()
        assert image.shape == (6, 8, 3)
        np.testing.assert_allclose(image, np.broadcast_to(FLAT, image.shape), rtol=1e-6)

    def test_render_continues(self, renderer):
        renderer.render(2)
        renderer.render(2, batch_size=2)
        assert renderer.sample_count == 4

    def test_zero_samples(self, renderer):
        renderer.render(0)
        assert renderer.sample_count == 0

    def test_callback(self, renderer):
        progress = []
        renderer.render(3, callback=lambda current, target: progress.append((current, target)))
        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_batches(self, renderer):
        progress = list(renderer.render_progressive(5, batch_size=2))
        assert progress == [(2, 5), (4, 5), (5, 5)]

    def test_reset(self, renderer):
        renderer.render(2)
        renderer.reset()
        assert renderer.sample_count == 0

    def test_gamma(self, renderer):
        renderer.render(1)
        corrected = renderer.get_image_numpy(gamma=2.0)
        np.testing.assert_allclose(corrected[0, 0], np.sqrt(FLAT), rtol=1e-5)

    def test_uint8_and_save(self, renderer, tmp_path):
        from PIL import Image

        renderer.render(1)
        image = renderer.get_image_uint8()
        assert image.dtype == np.uint8
        assert image.shape == (6, 8, 3)
        path = tmp_path / "render.png"
        renderer.save_image(str(path))
        with Image.open(path) as saved:
            assert saved.size == (8, 6)

    def test_worker_failure_surfaces(self, renderer):
        renderer.set_scenario("Faulty")
        with pytest.raises(RuntimeError, match="failed"):
            renderer.render(1)


class TestChanges:
    def test_set_scenario_restarts_accumulation(self, renderer):
        renderer.render(2)
        renderer.set_scenario("Empty")
        assert renderer.sample_count == 0
        assert renderer.generation == 1
        assert renderer.scenario == "Empty"
        renderer.render(1)
        assert renderer.sample_count == 1
        image = renderer.get_image_numpy()
        # the sky gradient is no longer the flat color
        assert not np.allclose(image, np.broadcast_to(FLAT, image.shape))

    def test_unknown_scenario_loads_default(self, renderer):
        renderer.set_scenario("Missing")
        assert renderer.scenario == "Flat"

    def test_set_shader(self, renderer):
        from src.tracer.core.integrator import Shader

        renderer.render(1)
        renderer.set_shader(Shader.LIGHT_MAP)
        assert renderer.sample_count == 0
        renderer.render(1)
        assert renderer.shader == Shader.LIGHT_MAP
        assert not renderer.get_image_numpy().any()

    def test_set_camera_field(self, renderer):
        renderer.render(1)
        renderer.set_camera_field("vfov", 30.0)
        assert renderer.sample_count == 0
        assert renderer.generation == 1
        assert renderer.entity_info().camera["vfov"] == 30.0
        renderer.render(1)
        assert renderer.sample_count == 1

    def test_unknown_camera_field(self, renderer):
        with pytest.raises(KeyError):
            renderer.set_camera_field("zoom", 2.0)

    def test_pause(self, renderer):
        renderer.pause()
        assert renderer.paused
        with pytest.raises(RuntimeError, match="paused"):
            renderer.render(1)
        renderer.resume()
        renderer.render(1)
        assert renderer.sample_count == 1

    def test_resize(self, renderer):
        renderer.render(1)
        renderer.resize(10, 4)
        assert (renderer.width, renderer.height) == (10, 4)
        assert renderer.sample_count == 0
        assert renderer.world.camera.config.aspect_ratio == pytest.approx(2.5)
        renderer.render(2)
        assert renderer.sample_count == 2
        assert renderer.get_image_numpy().shape == (4, 10, 3)


class TestLifecycle:
    def test_close_stops_workers(self, registry):
        from src.tracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(4, 4, scenario="Flat", registry=registry, tile_count=2)
        renderer.render(1)
        renderer.close()
        assert not renderer._workers.is_alive()
        # the accumulated image stays readable
        assert renderer.get_image_numpy().shape == (4, 4, 3)
