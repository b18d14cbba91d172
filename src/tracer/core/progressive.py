"""Progressive renderer backed by tile worker threads.

This module wraps the worker pool and the integrator's render target:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks for UI updates
- Scenario, shader and camera changes between batches
- Pause, resume and shutdown of the workers

Worker threads only render; every write to the render target happens on the
thread that calls ``render``. A result rendered against an older scene
generation is dropped instead of accumulated.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.core.progressive import ProgressiveRenderer
    >>>
    >>> with ProgressiveRenderer(256, 256, scenario="Cornell Box", seed=7) as renderer:
    ...     renderer.render(16)
    ...     image = renderer.get_image_numpy(gamma=2.2)
"""

import logging
import queue
from collections.abc import Callable, Generator
from typing import Any

import numpy as np
import numpy.typing as npt

from src.tracer.core.config import DEFAULT_TILE_COUNT, MAX_DEPTH, RenderConfig
from src.tracer.core.integrator import (
    Shader,
    accumulate_tile,
    clear_region,
    clear_render_target,
    get_normalized_image_numpy,
    get_total_samples,
    setup_render_target,
)
from src.tracer.core.sampling import seed_rng
from src.tracer.core.workers import (
    ControlKind,
    ControlMessage,
    RenderWorkers,
    SharedScene,
    TileResult,
    WorkerError,
)
from src.tracer.scene.scenarios import DEFAULT_SCENARIO, ScenarioRegistry, default_registry

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]

# Seconds to wait on the result queue before checking worker health
RESULT_TIMEOUT = 1.0


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer owns a SharedScene and a pool of tile workers, and
    delegates storage to the global integrator buffers (which are Taichi
    fields). Only one ProgressiveRenderer should be active at a time.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        scenario: Name of the loaded scenario.
        shader: Active shader.
    """

    def __init__(
        self,
        width: int,
        height: int,
        scenario: str = DEFAULT_SCENARIO,
        registry: ScenarioRegistry | None = None,
        shader: Shader = Shader.RAYTRACING,
        tile_count: int = DEFAULT_TILE_COUNT,
        seed: int | None = None,
        max_depth: int = MAX_DEPTH,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the renderer and start its workers.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            scenario: Scenario to load. Unknown names load the default.
            registry: Scenario registry. Defaults to the built-in scenarios.
            shader: Initial shader.
            tile_count: Number of tiles, one worker thread each.
            seed: Base seed. Worker i is seeded with seed + i.
            max_depth: Recursion cap for the integrator.
            logger: Parent logger for the renderer and its workers.

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._width = width
        self._height = height
        self._registry = registry if registry is not None else default_registry()
        self._tile_count = tile_count
        self._seed = seed
        self._max_depth = max_depth
        self._paused = False
        self.shader = Shader(shader)
        self.scenario = scenario
        setup_render_target(width, height)
        if seed is not None:
            seed_rng(seed)
        self._scene = SharedScene(self._load(scenario))
        self._workers = self._start_workers()

    @classmethod
    def from_config(cls, config: RenderConfig, logger: logging.Logger | None = None) -> "ProgressiveRenderer":
        """Build a renderer from a validated RenderConfig."""
        config.validate()
        return cls(
            config.width,
            config.height,
            scenario=config.scenario,
            shader=Shader.from_name(config.shader),
            tile_count=config.tile_count,
            seed=config.seed,
            max_depth=config.max_depth,
            logger=logger,
        )

    def _load(self, name: str):
        world = self._registry.build(name)
        world.camera.set_aspect_ratio(self._width / self._height)
        return world

    def _start_workers(self) -> RenderWorkers:
        workers = RenderWorkers(
            self._scene,
            (self._width, self._height),
            self._tile_count,
            shader=self.shader,
            max_depth=self._max_depth,
            seed=self._seed,
            log=self.logger,
        )
        workers.start()
        return workers

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def world(self):
        """The active World. Do not mutate it directly while rendering."""
        return self._scene.world

    @property
    def generation(self) -> int:
        return self._scene.generation

    @property
    def tiles(self):
        """The tiles the image is split into, one per worker."""
        return self._workers.tiles

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Reset the accumulator for a new render.

        Clears the color buffer and sample count, allowing a fresh render
        without changing the image dimensions.
        """
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target, re-tile the workers and reset.

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        setup_render_target(width, height)
        self._workers.stop()
        self._width = width
        self._height = height
        with self._scene.edit() as world:
            world.camera.set_aspect_ratio(width / height)
        self._workers = self._start_workers()
        if self._paused:
            self._workers.broadcast(ControlMessage(ControlKind.PAUSE))

    # =========================================================================
    # Scene changes
    # =========================================================================

    def set_scenario(self, name: str) -> None:
        """Load another scenario and restart accumulation.

        Unknown names load the registry's default scenario.
        """
        world = self._load(name)
        generation = self._scene.replace(world)
        self.scenario = name if name in self._registry else self._registry.default
        clear_render_target()
        self._workers.broadcast(ControlMessage(ControlKind.SCENE_CHANGED))
        self.logger.info("loaded scenario '%s' (generation %d)", self.scenario, generation)

    def set_shader(self, shader: Shader) -> None:
        self.shader = Shader(shader)
        clear_render_target()
        self._workers.broadcast(ControlMessage(ControlKind.SHADER, int(self.shader)))

    def set_camera_field(self, key: str, value: Any) -> None:
        """Edit a camera parameter and restart accumulation.

        Raises:
            KeyError: For unknown camera fields.
        """
        with self._scene.edit() as world:
            world.set_camera_field(key, value)
        clear_render_target()
        self._workers.broadcast(ControlMessage(ControlKind.CAMERA_CHANGED))

    def set_entity_field(self, index: int, key: str, value: Any) -> None:
        """Edit a field of scene entity ``index`` and restart accumulation."""
        with self._scene.edit() as world:
            world.set_entity_field(index, key, value)
        clear_render_target()
        self._workers.broadcast(ControlMessage(ControlKind.SCENE_CHANGED))

    def entity_info(self):
        return self._scene.world.entity_info()

    def pause(self) -> None:
        self._paused = True
        self._workers.broadcast(ControlMessage(ControlKind.PAUSE))

    def resume(self) -> None:
        self._paused = False
        self._workers.broadcast(ControlMessage(ControlKind.RESUME))

    # =========================================================================
    # Rendering
    # =========================================================================

    def _collect(self, expected: int) -> None:
        """Accumulate ``expected`` tile results from the workers.

        Raises:
            RuntimeError: If a worker failed or every worker has exited.
        """
        results = self._workers.results
        while expected > 0:
            try:
                item = results.get(timeout=RESULT_TIMEOUT)
            except queue.Empty:
                if not self._workers.is_alive():
                    raise RuntimeError("render workers exited before finishing") from None
                continue
            if isinstance(item, WorkerError):
                raise RuntimeError(f"render worker {item.index} failed: {item.error!r}") from item.error
            expected -= 1
            self._accumulate(item)

    def _accumulate(self, result: TileResult) -> None:
        tile = result.tile
        if result.generation != self._scene.generation:
            self.logger.debug("dropping stale sample of tile %d", tile.index)
            return
        if result.clear:
            clear_region(tile.x0, tile.y0, tile.width, tile.height)
        accumulate_tile(tile.x0, tile.y0, result.data)

    def _render_batch(self, batch: int) -> None:
        if self._paused:
            raise RuntimeError("renderer is paused")
        self._collect(self._workers.request_samples(batch))

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            RuntimeError: If the renderer is paused or a worker failed.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Example:
            >>> for current, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"Progress: {current}/{target} samples")
        """
        if num_samples <= 0:
            return

        target_samples = self.sample_count + num_samples
        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            self._render_batch(batch)
            remaining -= batch
            yield (self.sample_count, target_samples)

    # =========================================================================
    # Output
    # =========================================================================

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Returns the averaged color clamped to [0, 1] and optionally gamma
        corrected. The array shape is (height, width, 3).

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.
        """
        image = get_normalized_image_numpy()

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image

    def get_hdr_image(self) -> npt.NDArray[np.float32]:
        """The averaged radiance without clamping, shape (height, width, 3)."""
        return get_normalized_image_numpy(clamp=False)

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Get the rendered image as an 8-bit NumPy array."""
        image = self.get_image_numpy(gamma=gamma)
        return (image * 255).astype(np.uint8)

    def save_image(self, filepath: str, gamma: float = 2.2) -> None:
        """Save the rendered image to a file.

        Args:
            filepath: Path to save the image (e.g., "output.png").
            gamma: Gamma correction value. Default 2.2 for sRGB.
        """
        from PIL import Image as PILImage

        image_uint8 = self.get_image_uint8(gamma=gamma)
        pil_image = PILImage.fromarray(image_uint8)
        pil_image.save(filepath)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Stop the worker threads. The accumulated image stays readable."""
        self._workers.stop()

    def __enter__(self) -> "ProgressiveRenderer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"scenario={self.scenario!r}, shader={self.shader.name}, samples={self.sample_count})"
        )
