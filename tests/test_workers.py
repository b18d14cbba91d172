"""Tests for the scene lock, tile splitting and the tile worker pool.

Note: The worker module imports the integrator, which declares Taichi
fields, so imports happen inside the tests.
"""

import queue
import threading
import time

import numpy as np
import pytest

from src.tracer.camera.pinhole import Camera, PinholeCamera
from src.tracer.scene.background import ConstantColor
from src.tracer.scene.world import WorldInfo

BACKGROUND = (0.2, 0.4, 0.6)
RESULT_WAIT = 10.0


def _flat_world():
    camera = Camera(PinholeCamera(lookfrom=(0.0, 0.0, 1.0), lookat=(0.0, 0.0, 0.0)))
    return WorldInfo([], [], ConstantColor(BACKGROUND), camera).build_world()


def _drain(results, count):
    return [results.get(timeout=RESULT_WAIT) for _ in range(count)]


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.005)


class TestRwLock:
    def test_readers_share(self):
        from src.tracer.core.workers import RwLock

        lock = RwLock()
        assert lock.try_acquire_read()
        assert lock.try_acquire_read()
        assert lock.readers == 2
        lock.release_read()
        lock.release_read()
        assert lock.readers == 0

    def test_writer_excludes_readers(self):
        from src.tracer.core.workers import RwLock

        lock = RwLock()
        with lock.write_locked():
            assert not lock.try_acquire_read()
        assert lock.try_acquire_read()
        lock.release_read()

    def test_waiting_writer_blocks_new_readers(self):
        from src.tracer.core.workers import RwLock

        lock = RwLock()
        assert lock.try_acquire_read()
        acquired = threading.Event()

        def write():
            with lock.write_locked():
                acquired.set()

        writer = threading.Thread(target=write)
        writer.start()
        try:
            _wait_for(lambda: lock._writers_waiting == 1)
            assert not lock.try_acquire_read()
            assert not acquired.is_set()
        finally:
            lock.release_read()
            writer.join(5.0)
        assert acquired.is_set()
        assert lock.try_acquire_read()
        lock.release_read()

    def test_unbalanced_release(self):
        from src.tracer.core.workers import RwLock

        lock = RwLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()


class TestSharedScene:
    def test_replace_bumps_generation(self):
        from src.tracer.core.workers import SharedScene

        scene = SharedScene("old")
        assert scene.generation == 0
        assert scene.replace("new") == 1
        assert scene.world == "new"

    def test_edit_bumps_generation(self):
        from src.tracer.core.workers import SharedScene

        scene = SharedScene(_flat_world())
        with scene.edit() as world:
            world.set_camera_field("vfov", 30.0)
            assert scene.lock.readers == 0
        assert scene.generation == 1
        assert scene.world.camera.config.vfov == 30.0


class TestSplitTiles:
    @pytest.mark.parametrize(
        "width,height,count",
        [(64, 32, 8), (32, 64, 8), (17, 13, 6), (5, 5, 1), (100, 7, 12), (2, 2, 8)],
    )
    def test_tiles_cover_image_once(self, width, height, count):
        from src.tracer.core.workers import split_tiles

        tiles = split_tiles(width, height, count)
        coverage = np.zeros((width, height), dtype=int)
        for tile in tiles:
            coverage[tile.x0 : tile.x0 + tile.width, tile.y0 : tile.y0 + tile.height] += 1
        assert (coverage == 1).all()
        assert len(tiles) <= count
        assert [t.index for t in tiles] == list(range(len(tiles)))

    def test_grid_follows_the_long_side(self):
        from src.tracer.core.workers import split_tiles

        wide = split_tiles(64, 32, 8)
        assert {t.width for t in wide} == {16}
        assert {t.height for t in wide} == {16}
        tall = split_tiles(32, 64, 8)
        assert {t.width for t in tall} == {16}
        assert {t.height for t in tall} == {16}

    def test_small_image_drops_empty_tiles(self):
        from src.tracer.core.workers import split_tiles

        assert len(split_tiles(2, 2, 8)) == 4

    def test_invalid(self):
        from src.tracer.core.workers import split_tiles

        with pytest.raises(ValueError):
            split_tiles(0, 8, 4)
        with pytest.raises(ValueError):
            split_tiles(8, 8, 0)


class TestRenderWorkers:
    @pytest.fixture
    def pool(self):
        from src.tracer.core.workers import RenderWorkers, SharedScene

        workers = RenderWorkers(SharedScene(_flat_world()), (8, 6), 4, seed=3)
        workers.start()
        yield workers
        workers.stop()

    def test_each_worker_renders_its_tile(self, pool):
        from src.tracer.core.workers import TileResult

        expected = pool.request_samples(2)
        assert expected == 2 * len(pool.workers)
        results = _drain(pool.results, expected)
        assert all(isinstance(r, TileResult) for r in results)
        counts = {}
        for result in results:
            tile = result.tile
            counts[tile.index] = counts.get(tile.index, 0) + 1
            assert result.generation == 0
            assert result.data.shape == (tile.width, tile.height, 3)
            np.testing.assert_allclose(result.data, np.broadcast_to(BACKGROUND, result.data.shape), rtol=1e-6)
        assert counts == {tile.index: 2 for tile in pool.tiles}

    def test_start_twice(self, pool):
        with pytest.raises(RuntimeError):
            pool.start()

    def test_pause_and_resume(self, pool):
        from src.tracer.core.workers import ControlKind, ControlMessage

        pool.broadcast(ControlMessage(ControlKind.PAUSE))
        expected = pool.request_samples(1)
        with pytest.raises(queue.Empty):
            pool.results.get(timeout=0.3)
        pool.broadcast(ControlMessage(ControlKind.RESUME))
        assert len(_drain(pool.results, expected)) == expected

    def test_scene_change_marks_next_sample_for_clearing(self, pool):
        from src.tracer.core.workers import ControlKind, ControlMessage

        generation = pool.scene.replace(_flat_world())
        pool.broadcast(ControlMessage(ControlKind.SCENE_CHANGED))
        first = _drain(pool.results, pool.request_samples(1))
        assert all(r.clear and r.generation == generation for r in first)
        second = _drain(pool.results, pool.request_samples(1))
        assert not any(r.clear for r in second)

    def test_shader_change(self, pool):
        from src.tracer.core.integrator import Shader
        from src.tracer.core.workers import ControlKind, ControlMessage

        pool.broadcast(ControlMessage(ControlKind.SHADER, int(Shader.LIGHT_MAP)))
        results = _drain(pool.results, pool.request_samples(1))
        assert all(r.clear for r in results)
        # light map of an empty scene is black everywhere
        assert all(not r.data.any() for r in results)
        assert all(w.shader == Shader.LIGHT_MAP for w in pool.workers)

    def test_stop_joins_threads(self, pool):
        pool.stop()
        assert not pool.is_alive()

    def test_failing_worker_reports_error(self):
        from src.tracer.core.workers import RenderWorkers, SharedScene, WorkerError

        workers = RenderWorkers(SharedScene(None), (4, 4), 1)
        workers.start()
        try:
            workers.request_samples(1)
            item = workers.results.get(timeout=RESULT_WAIT)
            assert isinstance(item, WorkerError)
            assert item.index == 0
            assert isinstance(item.error, AttributeError)
            workers.workers[0].join(5.0)
            assert not workers.is_alive()
        finally:
            workers.stop()
