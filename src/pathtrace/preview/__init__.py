"""Preview module for rendered output.

Components:
    export: 8-bit conversion, PNG export and image comparison

Example:
    >>> from pathtrace.preview import save_png
    >>> from pathtrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(config)
    >>> renderer.render()
    >>> save_png(renderer, "output.png")
"""

from pathtrace.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)

__all__ = [
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]
