"""Progressive renderer for iterative sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks for UI updates
- Easy reset and re-render functionality

Batches continue the per-pixel random streams of earlier batches, so the
final image does not depend on how the samples were split.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.core.config import RenderConfig
    >>> from pathtrace.core.progressive import ProgressiveRenderer
    >>> from pathtrace.scene.showcase import create_showcase_scene
    >>> from pathtrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_showcase_scene(seed=1)
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(RenderConfig(width=400, height=225))
    >>> renderer.render()  # Render up to samples_per_pixel
    >>> image = renderer.get_image_numpy()
"""

import logging
import time
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from pathtrace.core.config import RenderConfig
from pathtrace.core.integrator import (
    clear_render_target,
    get_image_numpy,
    get_linear_image_numpy,
    get_total_samples,
    render_image,
    resolve_workers,
    set_background,
    setup_render_target,
)

logger = logging.getLogger(__name__)

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer owns the render configuration and delegates to the
    global integrator buffers (which are Taichi fields). The camera and
    scene must be set up before rendering.

    Attributes:
        config: The validated render configuration.
    """

    def __init__(self, config: RenderConfig) -> None:
        """Initialize the progressive renderer.

        Args:
            config: Render configuration (image size, sampling, background).
        """
        self.config = config
        self._workers = resolve_workers(config.workers)
        setup_render_target(config.width, config.height)
        set_background(config.background_bottom, config.background_top)

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Clear the accumulated samples, keeping the configuration."""
        clear_render_target()

    def _render_batch(self, batch: int) -> None:
        render_image(
            batch,
            seed=self.config.seed,
            max_depth=self.config.max_depth,
            jitter=self.config.jitter,
            workers=self._workers,
        )

    def _resolve_num_samples(self, num_samples: int | None) -> int:
        if num_samples is None:
            return max(self.config.samples_per_pixel - self.sample_count, 0)
        return num_samples

    def render(
        self,
        num_samples: int | None = None,
        batch_size: int | None = None,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the samples into the existing buffer. Can be called
        multiple times to continue refining the image.

        Args:
            num_samples: Number of samples to add. Defaults to the samples
                still missing to reach config.samples_per_pixel.
            batch_size: Number of samples per kernel launch. Defaults to
                all samples in one launch.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

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
        num_samples: int | None = None,
        batch_size: int | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Args:
            num_samples: Number of samples to add (see render()).
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Example:
            >>> for current, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"Progress: {current}/{target} samples")
        """
        num_samples = self._resolve_num_samples(num_samples)
        if num_samples <= 0:
            return
        if batch_size is None:
            batch_size = num_samples
        if batch_size < 1:
            raise ValueError(f"batch_size = {batch_size} must be at least 1")

        target_samples = self.sample_count + num_samples
        logger.info(
            "Rendering %dx%d, %d spp, max depth %d, %d workers",
            self.width,
            self.height,
            num_samples,
            self.config.max_depth,
            self._workers,
        )
        start = time.perf_counter()

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            self._render_batch(batch)
            remaining -= batch
            logger.debug("Rendered %d/%d samples", self.sample_count, target_samples)
            yield (self.sample_count, target_samples)

        logger.info("Render finished in %.2fs", time.perf_counter() - start)

    def get_linear_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear image, shape (height, width, 3), top row first."""
        return get_linear_image_numpy()

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the display image: clamped to [0, 1] and gamma corrected.

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32.
        """
        return get_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the display image as 8-bit RGB."""
        from pathtrace.preview.export import image_to_uint8

        return image_to_uint8(self.get_image_numpy())

    def save_image(self, filepath: str) -> None:
        """Save the rendered image to a file (format from the extension)."""
        from pathtrace.preview.export import save_png_from_array

        save_png_from_array(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )


def render(config: RenderConfig) -> npt.NDArray[np.float32]:
    """Render the current scene and camera with one call.

    Args:
        config: Render configuration.

    Returns:
        The display image, shape (height, width, 3), values in [0, 1].
    """
    renderer = ProgressiveRenderer(config)
    renderer.render()
    return renderer.get_image_numpy()
