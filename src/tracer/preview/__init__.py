"""Preview and export of rendered images.

Components:
    display: Matplotlib preview, tone mapping and side-by-side comparison
    export: PNG export through Pillow and image error metrics

Example:
    >>> from src.tracer.preview import save_png, show_preview
    >>> show_preview(renderer, tone_map="reinhard")
    >>> save_png(renderer, "output.png", gamma=2.2)
"""

from src.tracer.preview.display import (
    TONE_MAP_METHODS,
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_comparison,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from src.tracer.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)

__all__ = [
    "TONE_MAP_METHODS",
    "ToneMapMethod",
    "apply_gamma",
    "compute_rmse",
    "image_to_uint8",
    "process_image_for_display",
    "save_png",
    "save_png_from_array",
    "show_comparison",
    "show_preview",
    "tone_map_exposure",
    "tone_map_reinhard",
]
