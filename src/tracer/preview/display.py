"""Matplotlib preview of a progressive render.

The renderer's averaged radiance is unbounded, so the preview pipeline is:
tone map (optional) -> gamma encode -> clamp to [0, 1]. ``show_preview``
can also outline the worker tiles, which helps when a tile lags behind or
a worker has died.

Example:
    >>> from src.tracer.preview.display import show_preview
    >>> from src.tracer.core.progressive import ProgressiveRenderer
    >>>
    >>> with ProgressiveRenderer(256, 256, scenario="Cornell Box") as renderer:
    ...     renderer.render(32)
    ...     show_preview(renderer, tone_map="reinhard", show_tiles=True)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from src.tracer.core.progressive import ProgressiveRenderer
    from src.tracer.core.workers import Tile


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]

TONE_MAP_METHODS = ("none", "reinhard", "exposure")


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Reinhard global operator, c / (1 + c) per channel."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(image: npt.NDArray[np.float32], exposure: float = 1.0) -> npt.NDArray[np.float32]:
    """Exposure curve 1 - exp(-c * exposure). Larger exposure is brighter."""
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(image: npt.NDArray[np.float32], gamma: float = 2.2) -> npt.NDArray[np.float32]:
    """Gamma encode a linear image. Values are clamped to [0, 1] first."""
    if gamma == 1.0:
        return image
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    # negative inputs would give NaN under a fractional power
    return np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Turn linear radiance into a displayable [0, 1] image.

    Args:
        image: Linear radiance of shape (H, W, 3).
        tone_map: "none", "reinhard" or "exposure".
        gamma: Display gamma, 2.2 for sRGB.
        exposure: Only used by the exposure operator.

    Raises:
        ValueError: For an unknown tone mapping method.
    """
    if tone_map == "reinhard":
        result = tone_map_reinhard(image)
    elif tone_map == "exposure":
        result = tone_map_exposure(image, exposure)
    elif tone_map == "none":
        result = image.astype(np.float32, copy=True)
    else:
        raise ValueError(f"Unknown tone mapping method: {tone_map}")
    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def _draw_tiles(ax, tiles: Sequence[Tile], height: int) -> None:
    from matplotlib.patches import Rectangle

    for tile in tiles:
        # tiles use a bottom-left origin, imshow a top-left one
        top = height - (tile.y0 + tile.height)
        ax.add_patch(
            Rectangle(
                (tile.x0 - 0.5, top - 0.5),
                tile.width,
                tile.height,
                fill=False,
                edgecolor="yellow",
                linewidth=0.8,
            )
        )
        ax.text(tile.x0 + 2, top + 2, str(tile.index), color="yellow", fontsize=7, va="top")


def show_preview(
    renderer: ProgressiveRenderer,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
    title: str | None = None,
    show_tiles: bool = False,
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Show the current render in a Matplotlib window.

    The default title names the scenario, the shader and the sample count.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(
        renderer.get_hdr_image(),
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")
    if show_tiles:
        _draw_tiles(ax, renderer.tiles, renderer.height)

    if title is None:
        title = f"{renderer.scenario} - {renderer.shader.name.lower()} - {renderer.sample_count} SPP"
        if tone_map != "none":
            title += f" ({tone_map})"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    labels: tuple[str, str] = ("A", "B"),
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Show two renders and their amplified difference.

    Returns:
        RMSE between the two images in display space.
    """
    import matplotlib.pyplot as plt

    from src.tracer.preview.export import compute_rmse

    display_a = process_image_for_display(image_a, tone_map=tone_map, gamma=gamma)
    display_b = process_image_for_display(image_b, tone_map=tone_map, gamma=gamma)
    rmse = compute_rmse(display_a, display_b)
    diff = np.clip(np.abs(display_a - display_b) * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)
    for ax, shown, label in zip(
        axes,
        (display_a, display_b, diff),
        (labels[0], labels[1], f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}"),
    ):
        ax.imshow(shown)
        ax.set_title(label)
        ax.axis("off")

    plt.tight_layout()
    plt.show(block=block)
    return rmse
