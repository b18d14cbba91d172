"""Render configuration.

RenderConfig gathers the knobs shared by the command-line example, the
progressive renderer and the worker pool. Values are validated eagerly so a
bad configuration fails before any thread is started.

Example:
    >>> from src.tracer.core.config import RenderConfig
    >>> config = RenderConfig(width=256, height=256, samples=16)
    >>> config.validate()
"""

import argparse
from dataclasses import dataclass, fields
from pathlib import Path

# Maximum supported image dimensions (matches the preallocated render target)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Maximum ray bounces (path length)
MAX_DEPTH = 50

# Number of render tiles, one worker thread each
DEFAULT_TILE_COUNT = 8

SHADER_NAMES = ("raytracing", "diffuse", "light_map")


@dataclass
class RenderConfig:
    """Configuration for a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Samples per pixel to accumulate.
        max_depth: Recursion cap for the integrator.
        tile_count: Number of tiles (and worker threads).
        seed: Base seed; worker i uses seed + i. None for entropy.
        scenario: Name of the scenario to load.
        shader: One of SHADER_NAMES.
        log_level: Logging level name.
        log_file: Optional rotating log file.
    """

    width: int = 512
    height: int = 512
    samples: int = 100
    max_depth: int = MAX_DEPTH
    tile_count: int = DEFAULT_TILE_COUNT
    seed: int | None = None
    scenario: str = "One Sphere"
    shader: str = "raytracing"
    log_level: str = "INFO"
    log_file: Path | None = None

    def validate(self) -> "RenderConfig":
        """Check the configuration and return it.

        Raises:
            ValueError: If any value is out of range.
        """
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")
        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if self.samples < 0:
            raise ValueError(f"samples must be >= 0, got {self.samples}")
        if self.max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.tile_count <= 0:
            raise ValueError(f"tile_count must be positive, got {self.tile_count}")
        if self.shader not in SHADER_NAMES:
            raise ValueError(f"Unknown shader: {self.shader}")
        return self

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height."""
        return self.width / self.height

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> "RenderConfig":
        """Build a configuration from parsed command-line arguments.

        Attributes missing from the namespace keep their defaults.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in vars(args).items() if k in known and v is not None}
        if "log_file" in values:
            values["log_file"] = Path(values["log_file"])
        return cls(**values).validate()
