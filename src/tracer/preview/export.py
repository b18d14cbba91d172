"""PNG export of rendered images.

Images are written as 8-bit sRGB through Pillow after the same tone mapping
and gamma pipeline the preview uses. The raw radiance can be kept alongside
as a ``.npy`` file for later comparison.

Example:
    >>> from src.tracer.preview.export import save_png
    >>> save_png(renderer, "cornell.png", tone_map="reinhard")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.tracer.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    from src.tracer.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Tone map, gamma encode and quantize a linear (H, W, 3) image."""
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return (processed * 255).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Write a linear (H, W, 3) image as an 8-bit PNG."""
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"expected an (H, W, 3) image, got shape {image.shape}")
    data = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(data).save(filepath)
    logger.info("saved %dx%d image to %s", image.shape[1], image.shape[0], filepath)


def save_png(
    renderer: ProgressiveRenderer,
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
    save_radiance: bool = False,
) -> None:
    """Write the renderer's current image as a PNG.

    Args:
        renderer: Source of the accumulated image.
        filepath: Output path, normally ending in ``.png``.
        tone_map: "none", "reinhard" or "exposure".
        gamma: Display gamma, 2.2 for sRGB.
        exposure: Only used by the exposure operator.
        save_radiance: Also write the unclamped radiance next to the PNG
            with a ``.npy`` suffix.
    """
    radiance = renderer.get_hdr_image()
    save_png_from_array(radiance, filepath, tone_map=tone_map, gamma=gamma, exposure=exposure)
    if save_radiance:
        np.save(Path(filepath).with_suffix(".npy"), radiance)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared error between two images of the same shape.

    Raises:
        ValueError: If the shapes differ.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")
    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
