"""Tile worker threads and the shared scene they read.

The image is split into a fixed number of disjoint tiles and each tile gets
one worker thread. A worker renders whole-tile samples on request and puts
them on a result queue; it never touches the render target, so workers need
no synchronization among themselves.

The World lives in a SharedScene behind a reader-writer lock. Workers take
the read side for the duration of one tile sample. Replacing the scene or
editing the camera takes the write side. A worker that finds the lock
unavailable sleeps briefly and retries instead of queueing.

Each worker polls its own control queue between tile samples. Control is
cooperative: a message takes effect at the next poll, never mid-tile.
"""

from __future__ import annotations

import logging
import math
import queue
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import numpy as np
import numpy.typing as npt

from src.tracer.core.config import MAX_DEPTH
from src.tracer.core.integrator import Shader, render_tile
from src.tracer.core.logging_config import get_worker_logger
from src.tracer.core.sampling import seed_rng

logger = logging.getLogger(__name__)

# Seconds a worker sleeps when the scene lock is unavailable
LOCK_BACKOFF = 0.002
# Attempts before a worker goes back to polling its control queue
MAX_LOCK_RETRIES = 50
# Seconds an idle worker waits for a control message per poll
POLL_INTERVAL = 0.05


class RwLock:
    """Reader-writer lock that favours writers.

    Any number of readers may hold the lock together. A writer waits for
    current readers to leave, and while it waits new readers are refused.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def try_acquire_read(self) -> bool:
        """Take the read side without blocking."""
        with self._cond:
            if self._writer or self._writers_waiting:
                return False
            self._readers += 1
            return True

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read without a matching acquire")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write without a matching acquire")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        return self._readers


class SharedScene:
    """The active World plus a generation counter bumped on every change."""

    def __init__(self, world) -> None:
        self.lock = RwLock()
        self.world = world
        self.generation = 0

    def replace(self, world) -> int:
        """Swap in a new world. Returns the new generation."""
        with self.lock.write_locked():
            self.world = world
            self.generation += 1
            return self.generation

    @contextmanager
    def edit(self) -> Iterator[Any]:
        """Exclusive access to the world for in-place edits."""
        with self.lock.write_locked():
            yield self.world
            self.generation += 1


class ControlKind(IntEnum):
    RENDER = 0
    SCENE_CHANGED = 1
    SHADER = 2
    CAMERA_CHANGED = 3
    PAUSE = 4
    RESUME = 5
    STOP = 6


@dataclass(frozen=True)
class ControlMessage:
    """A command for one worker. ``value`` is the sample count or shader."""

    kind: ControlKind
    value: Any = None


@dataclass(frozen=True)
class Tile:
    """A rectangle of pixels; (x0, y0) is its bottom-left corner."""

    index: int
    x0: int
    y0: int
    width: int
    height: int


@dataclass
class TileResult:
    """One sample for every pixel of a tile.

    Attributes:
        tile: The tile rendered.
        generation: Scene generation the sample was rendered from.
        data: Array of shape (tile.width, tile.height, 3).
        clear: The consumer must reset the tile before adding this sample.
    """

    tile: Tile
    generation: int
    data: npt.NDArray[np.float32]
    clear: bool = False


@dataclass
class WorkerError:
    """Reported by a worker that died on an unexpected exception."""

    index: int
    error: BaseException


def split_tiles(width: int, height: int, count: int) -> list[Tile]:
    """Split an image into at most ``count`` disjoint tiles covering it.

    The grid uses the divisor pair of ``count`` closest to square. Tiles
    that would be empty on small images are dropped.
    """
    if width <= 0 or height <= 0 or count <= 0:
        raise ValueError(f"invalid split of {width}x{height} into {count} tiles")
    rows = max(d for d in range(1, math.isqrt(count) + 1) if count % d == 0)
    cols = count // rows
    if width < height:
        rows, cols = cols, rows
    xs = [width * c // cols for c in range(cols + 1)]
    ys = [height * r // rows for r in range(rows + 1)]
    tiles = []
    for r in range(rows):
        for c in range(cols):
            w = xs[c + 1] - xs[c]
            h = ys[r + 1] - ys[r]
            if w > 0 and h > 0:
                tiles.append(Tile(len(tiles), xs[c], ys[r], w, h))
    return tiles


class TileWorker(threading.Thread):
    """Renders samples of one tile on request."""

    def __init__(
        self,
        tile: Tile,
        scene: SharedScene,
        image_size: tuple[int, int],
        results: queue.Queue,
        shader: Shader = Shader.RAYTRACING,
        max_depth: int = MAX_DEPTH,
        seed: int | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        super().__init__(name=f"tile-worker-{tile.index}", daemon=True)
        self.tile = tile
        self.scene = scene
        self.image_size = image_size
        self.results = results
        self.control: queue.Queue[ControlMessage] = queue.Queue()
        self.shader = shader
        self.max_depth = max_depth
        self.seed = seed
        self.log = log if log is not None else get_worker_logger(logger, tile.index)
        self._pending = 0
        self._paused = False
        self._clear = False

    def _handle(self, message: ControlMessage) -> bool:
        """Apply one control message. Returns False on STOP."""
        kind = message.kind
        if kind == ControlKind.STOP:
            return False
        if kind == ControlKind.RENDER:
            self._pending += int(message.value)
        elif kind == ControlKind.SHADER:
            self.shader = Shader(message.value)
            self._clear = True
        elif kind in (ControlKind.SCENE_CHANGED, ControlKind.CAMERA_CHANGED):
            self._clear = True
        elif kind == ControlKind.PAUSE:
            self._paused = True
        elif kind == ControlKind.RESUME:
            self._paused = False
        return True

    def _poll(self) -> bool:
        """Drain the control queue. Waits briefly when there is nothing to do."""
        idle = self._paused or self._pending == 0
        try:
            message = self.control.get(timeout=POLL_INTERVAL) if idle else self.control.get_nowait()
        except queue.Empty:
            return True
        while True:
            if not self._handle(message):
                return False
            try:
                message = self.control.get_nowait()
            except queue.Empty:
                return True

    def _render_once(self) -> TileResult | None:
        lock = self.scene.lock
        for _ in range(MAX_LOCK_RETRIES):
            if lock.try_acquire_read():
                break
            time.sleep(LOCK_BACKOFF)
        else:
            self.log.debug("scene lock busy, polling again")
            return None
        try:
            generation = self.scene.generation
            tile = self.tile
            width, height = self.image_size
            data = render_tile(
                self.scene.world, tile.x0, tile.y0, tile.width, tile.height, width, height, self.shader, self.max_depth
            )
        finally:
            lock.release_read()
        result = TileResult(self.tile, generation, data, self._clear)
        self._clear = False
        return result

    def run(self) -> None:
        seed_rng(self.seed)
        self.log.debug("started on %s", self.tile)
        try:
            while self._poll():
                if self._paused or self._pending == 0:
                    continue
                result = self._render_once()
                if result is None:
                    continue
                self._pending -= 1
                self.results.put(result)
        except Exception as error:
            self.log.exception("worker failed")
            self.results.put(WorkerError(self.tile.index, error))
            return
        self.log.debug("stopped")


class RenderWorkers:
    """A fixed pool of TileWorkers sharing one result queue."""

    def __init__(
        self,
        scene: SharedScene,
        image_size: tuple[int, int],
        tile_count: int,
        shader: Shader = Shader.RAYTRACING,
        max_depth: int = MAX_DEPTH,
        seed: int | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.scene = scene
        self.image_size = image_size
        self.tiles = split_tiles(image_size[0], image_size[1], tile_count)
        self.results: queue.Queue[TileResult | WorkerError] = queue.Queue()
        parent = log if log is not None else logger
        self.workers = [
            TileWorker(
                tile,
                scene,
                image_size,
                self.results,
                shader,
                max_depth,
                None if seed is None else seed + tile.index,
                get_worker_logger(parent, tile.index),
            )
            for tile in self.tiles
        ]
        self._started = False

    def start(self) -> None:
        if self._started:
            raise RuntimeError("worker pool already started")
        self._started = True
        for worker in self.workers:
            worker.start()
        logger.debug("started %d tile workers", len(self.workers))

    def broadcast(self, message: ControlMessage) -> None:
        for worker in self.workers:
            worker.control.put(message)

    def request_samples(self, count: int) -> int:
        """Ask every worker for ``count`` more samples. Returns results to expect."""
        self.broadcast(ControlMessage(ControlKind.RENDER, count))
        return count * len(self.workers)

    def is_alive(self) -> bool:
        return any(worker.is_alive() for worker in self.workers)

    def stop(self, timeout: float | None = 5.0) -> None:
        if not self._started:
            return
        self.broadcast(ControlMessage(ControlKind.STOP))
        for worker in self.workers:
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("%s did not stop within %s s", worker.name, timeout)
        self._started = False
