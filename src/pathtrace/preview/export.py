"""Image export utilities for rendered images.

Rendered images arrive as float arrays of shape (height, width, 3), top row
first, already gamma corrected with values in [0, 1]. This module converts
them to 8-bit and writes them through Pillow.

Supported formats:
    - PNG (8-bit RGB via Pillow); other Pillow formats by file extension

Example:
    >>> from pathtrace.preview.export import save_png
    >>> from pathtrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(config)
    >>> renderer.render()
    >>> save_png(renderer, "output.png")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from pathtrace.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)

# Maps 1.0 to 255 while keeping the bins of [0, 1) equally wide
UINT8_SCALE = 255.99


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a display-ready float image to uint8.

    Each component becomes floor(value * 255.99), clamped to [0, 255].

    Args:
        image: Image array of shape (H, W, 3), values nominally in [0, 1].

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    scaled = np.floor(np.asarray(image, dtype=np.float64) * UINT8_SCALE)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def save_png_from_array(image: npt.NDArray[np.floating], filepath: str) -> None:
    """Save a display-ready float image as a PNG file.

    Args:
        image: Image array of shape (H, W, 3), top row first.
        filepath: Output file path (should end in .png).

    Raises:
        ValueError: If the array is not of shape (H, W, 3).
        OSError: If the file cannot be written.
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")

    pil_image = PILImage.fromarray(image_to_uint8(image), mode="RGB")
    pil_image.save(filepath)
    logger.info("Saved %dx%d image to %s", image.shape[1], image.shape[0], filepath)


def save_png(renderer: ProgressiveRenderer, filepath: str) -> None:
    """Save the renderer's current display image as a PNG file.

    Args:
        renderer: The ProgressiveRenderer instance to save.
        filepath: Output file path (should end in .png).
    """
    save_png_from_array(renderer.get_image_numpy(), filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
