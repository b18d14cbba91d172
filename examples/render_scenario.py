#!/usr/bin/env python3
"""Render a named scenario to a PNG.

The image is split into tiles rendered by worker threads; progress is
reported after every batch of samples.

Usage:
    python -m examples.render_scenario [options]

Options:
    --scenario NAME     Scenario to render (default: One Sphere)
    --list              List the available scenarios and exit
    --width WIDTH       Image width in pixels (default: 512)
    --height HEIGHT     Image height in pixels (default: 512)
    --samples SAMPLES   Number of samples per pixel (default: 100)
    --shader SHADER     raytracing, diffuse or light_map (default: raytracing)
    --tile-count N      Number of tiles and worker threads (default: 8)
    --seed SEED         Base random seed (default: fresh entropy)
    --output OUTPUT     Output file path (default: render.png)
    --tone-map METHOD   none, reinhard or exposure (default: reinhard)
    --batch-size SIZE   Samples per progress update (default: 10)
    --log-level LEVEL   Logging level (default: INFO)
    --log-file PATH     Also log to a rotating file
    --quiet             Suppress progress output

Example:
    python -m examples.render_scenario --scenario "Cornell Box" --width 256 --height 256 --samples 50
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti

from src.tracer.core.config import DEFAULT_TILE_COUNT, SHADER_NAMES, RenderConfig
from src.tracer.core.logging_config import setup_logging
from src.tracer.preview.display import TONE_MAP_METHODS
from src.tracer.scene.scenarios import DEFAULT_SCENARIO, default_registry


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scenario with the tile-parallel path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scenario", default=DEFAULT_SCENARIO, help=f"Scenario name (default: {DEFAULT_SCENARIO})")
    parser.add_argument("--list", action="store_true", help="List the available scenarios and exit")
    parser.add_argument("--width", type=int, default=512, help="Image width in pixels (default: 512)")
    parser.add_argument("--height", type=int, default=512, help="Image height in pixels (default: 512)")
    parser.add_argument("--samples", type=int, default=100, help="Number of samples per pixel (default: 100)")
    parser.add_argument("--shader", choices=SHADER_NAMES, default="raytracing", help="Shader (default: raytracing)")
    parser.add_argument(
        "--tile-count",
        type=int,
        default=DEFAULT_TILE_COUNT,
        help=f"Number of tiles and worker threads (default: {DEFAULT_TILE_COUNT})",
    )
    parser.add_argument("--seed", type=int, default=None, help="Base random seed")
    parser.add_argument("--output", type=str, default="render.png", help="Output file path (default: render.png)")
    parser.add_argument("--tone-map", choices=TONE_MAP_METHODS, default="reinhard", help="Tone mapping (default: reinhard)")
    parser.add_argument("--batch-size", type=int, default=10, help="Samples per progress update (default: 10)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", type=str, default=None, help="Also log to a rotating file")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args(argv)


def render_scenario(
    config: RenderConfig,
    output_path: str = "render.png",
    tone_map: str = "reinhard",
    batch_size: int = 10,
    quiet: bool = False,
) -> Path:
    """Render ``config.scenario`` and save it as a PNG.

    Returns:
        Path to the saved image file.
    """
    # Imported here so ti.init() runs before the render target is allocated
    from src.tracer.core.progressive import ProgressiveRenderer
    from src.tracer.preview.export import save_png

    logger = setup_logging("src.tracer", config.log_level, config.log_file)
    logger.info(
        "rendering '%s' at %dx%d, %d spp, %s shader, %d tiles",
        config.scenario,
        config.width,
        config.height,
        config.samples,
        config.shader,
        config.tile_count,
    )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if quiet:
            return
        elapsed = time.time() - start_time
        progress_pct = (current / target) * 100 if target > 0 else 0
        samples_per_sec = current / elapsed if elapsed > 0 else 0
        print(
            f"\r  Progress: {current}/{target} samples ({progress_pct:.1f}%) - {samples_per_sec:.2f} spp/s",
            end="",
            flush=True,
        )

    output_file = Path(output_path)
    with ProgressiveRenderer.from_config(config, logger=logger) as renderer:
        renderer.render(num_samples=config.samples, batch_size=batch_size, callback=progress_callback)
        if not quiet:
            print()
        save_png(renderer, output_file, tone_map=tone_map, gamma=2.2)

    logger.info("saved %s in %.2fs", output_file.absolute(), time.time() - start_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.list:
        for name in default_registry().names():
            print(name)
        return 0

    try:
        config = RenderConfig.from_namespace(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    # Rays are traced on the CPU; Taichi only holds the accumulation buffers
    ti.init(arch=ti.cpu)

    try:
        render_scenario(
            config,
            output_path=args.output,
            tone_map=args.tone_map,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (RuntimeError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
