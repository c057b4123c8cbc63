"""Render configuration.

``RenderConfig`` groups everything a render needs besides the scene and the
camera. Values are validated when the object is created, so an invalid
configuration never reaches the kernels.

Example:
    >>> from pathtrace.core.config import RenderConfig
    >>> config = RenderConfig(width=400, height=225, samples_per_pixel=50)
    >>> config.aspect_ratio
    1.7777777777777777
"""

from dataclasses import dataclass

MAX_IMAGE_SIZE = 2048

# Seeds travel to the kernels as signed 32-bit integers
MAX_SEED = 2**31 - 1


def _check_color(name: str, color: tuple[float, float, float]) -> None:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"{name} component {i} = {component} must be non-negative")


@dataclass
class RenderConfig:
    """Image and sampling parameters for one render.

    Attributes:
        width: Image width in pixels (1 to 2048).
        height: Image height in pixels (1 to 2048).
        samples_per_pixel: Samples averaged per pixel (at least 1).
        max_depth: Maximum path length; 0 renders a black image.
        seed: Render seed in [0, 2**31 - 1]. Equal seeds give identical images.
        workers: CPU threads for the sampling kernel, None for all CPUs.
        background_bottom: Sky color for rays pointing straight down.
        background_top: Sky color for rays pointing straight up.

    Raises:
        ValueError: If any value is out of range.
    """

    width: int = 400
    height: int = 225
    samples_per_pixel: int = 50
    max_depth: int = 50
    seed: int = 0
    workers: int | None = None
    background_bottom: tuple[float, float, float] = (1.0, 1.0, 1.0)
    background_top: tuple[float, float, float] = (0.5, 0.7, 1.0)

    def __post_init__(self) -> None:
        if not 1 <= self.width <= MAX_IMAGE_SIZE:
            raise ValueError(f"width = {self.width} must be in [1, {MAX_IMAGE_SIZE}]")
        if not 1 <= self.height <= MAX_IMAGE_SIZE:
            raise ValueError(f"height = {self.height} must be in [1, {MAX_IMAGE_SIZE}]")
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel = {self.samples_per_pixel} must be at least 1")
        if self.max_depth < 0:
            raise ValueError(f"max_depth = {self.max_depth} must be non-negative")
        if not 0 <= self.seed <= MAX_SEED:
            raise ValueError(f"seed = {self.seed} must be in [0, {MAX_SEED}]")
        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers = {self.workers} must be at least 1")
        _check_color("background_bottom", self.background_bottom)
        _check_color("background_top", self.background_top)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def jitter(self) -> bool:
        """Whether samples are spread over the pixel (single samples hit its center)."""
        return self.samples_per_pixel > 1
