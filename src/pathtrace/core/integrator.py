"""Path tracing integrator for Monte Carlo light transport.

This module implements ``ray_color``, the recursive radiance estimate, and
the kernel that samples every pixel of the render target.

The estimate follows a path through the scene until it leaves (picking up
the sky gradient), is absorbed (black) or runs out of depth (black):

    ray_color(ray, 0)     = black
    ray_color(ray, depth) = attenuation * ray_color(scattered, depth - 1)
                            if the ray hits a surface that scatters it
    ray_color(ray, depth) = background(ray.direction) on a miss

Taichi functions cannot recurse, so the recursion is unrolled into a loop
carrying the product of attenuations (the path throughput).

Sampling is deterministic: the random stream of each sample is derived from
the render seed, the pixel and the sample's global index. The rendered image
is the same for any worker count and any batch split.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.core.integrator import render_image, setup_render_target
    >>> from pathtrace.scene.showcase import create_showcase_scene
    >>> from pathtrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_showcase_scene(seed=1)
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=16, seed=1)
"""

import logging
import os

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtrace.camera.thin_lens import get_ray_jittered, is_camera_initialized
from pathtrace.core.config import MAX_SEED
from pathtrace.core.ray import Ray
from pathtrace.core.sampler import pixel_seed
from pathtrace.materials.dielectric import scatter_dielectric_by_id
from pathtrace.materials.lambertian import scatter_lambertian_by_id
from pathtrace.materials.metal import scatter_metal_by_id
from pathtrace.scene.intersection import intersect_scene
from pathtrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum path length
MAX_DEPTH = 50

# Valid hits lie in [T_MIN, T_MAX); T_MIN keeps scattered rays off their origin surface
T_MIN = 1e-3
T_MAX = 1e10

DEFAULT_BACKGROUND_BOTTOM = (1.0, 1.0, 1.0)
DEFAULT_BACKGROUND_TOP = (0.5, 0.7, 1.0)

# =============================================================================
# Background (sky gradient)
# =============================================================================

_background_bottom = ti.Vector.field(3, dtype=ti.f32, shape=())
_background_top = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_background(
    bottom: tuple[float, float, float] = DEFAULT_BACKGROUND_BOTTOM,
    top: tuple[float, float, float] = DEFAULT_BACKGROUND_TOP,
) -> None:
    """Set the colors of the vertical sky gradient seen by escaping rays.

    Args:
        bottom: Color for rays pointing straight down.
        top: Color for rays pointing straight up.
    """
    _background_bottom[None] = [bottom[0], bottom[1], bottom[2]]
    _background_top[None] = [top[0], top[1], top[2]]


def get_background() -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Get the current (bottom, top) background colors."""
    bottom = _background_bottom[None]
    top = _background_top[None]
    return (
        (float(bottom[0]), float(bottom[1]), float(bottom[2])),
        (float(top[0]), float(top[1]), float(top[2])),
    )


@ti.func
def background_color(direction: vec3) -> vec3:
    """Linear blend between the bottom and top colors by direction height."""
    unit_direction = tm.normalize(direction)
    a = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - a) * _background_bottom[None] + a * _background_top[None]


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Preallocated to avoid kernel recompilation on resize
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel sum of linear sample colors, indexed [i, j] with j = 0 at the bottom
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers.

    Args:
        width: Image width in pixels (1 to MAX_IMAGE_WIDTH).
        height: Image height in pixels (1 to MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def _check_camera_initialized() -> None:
    if not is_camera_initialized():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")


def _check_seed(seed: int) -> None:
    if not 0 <= seed <= MAX_SEED:
        raise ValueError(f"seed = {seed} must be in [0, {MAX_SEED}]")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Dispatch to the scattering function of the hit material.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
        Unknown material ids absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    new_state = state

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter, new_state = scatter_lambertian_by_id(
            type_index, normal, state
        )

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter, new_state = scatter_metal_by_id(
            type_index, incident_direction, normal, state
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter, new_state = scatter_dielectric_by_id(
            type_index, incident_direction, normal, front_face, state
        )

    return scattered_direction, attenuation, did_scatter, new_state


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def ray_color(ray: Ray, max_depth: ti.i32, state: ti.u32):
    """Estimate the color seen along a ray.

    Args:
        ray: The ray to trace.
        max_depth: Maximum number of surface interactions. 0 yields black.
        state: The caller's random state.

    Returns:
        A tuple (color, new_state). The color is linear (no gamma).
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    origin = ray.origin
    direction = ray.direction
    s = state

    # Taichi functions have no break; finished paths skip the remaining bounces
    active = 1

    for _ in range(max_depth):
        if active == 1:
            hit_record = intersect_scene(origin, direction, T_MIN, T_MAX)

            if hit_record.hit == 0:
                color = throughput * background_color(direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter, s = _scatter_material(
                    hit_record.material_id,
                    direction,
                    hit_record.normal,
                    hit_record.front_face,
                    s,
                )

                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    origin = hit_record.point
                    direction = scattered_direction

    # A path still active here ran out of depth and contributes black
    return color, s


@ti.func
def render_sample_impl(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample: ti.i32,
    seed: ti.i32,
    max_depth: ti.i32,
    jitter: ti.i32,
) -> vec3:
    """Render one sample of a pixel, with non-finite components zeroed."""
    state = pixel_seed(seed, pixel_i, pixel_j, sample)
    ray, state = get_ray_jittered(pixel_i, pixel_j, width, height, jitter, state)
    color, state = ray_color(ray, max_depth, state)

    for c in ti.static(range(3)):
        if tm.isnan(color[c]) or tm.isinf(color[c]):
            color[c] = 0.0

    return color


# =============================================================================
# Rendering Kernels
# =============================================================================

_render_kernels: dict = {}


def _build_render_kernel(workers: int):
    """Compile a sampling kernel whose scanline loop uses `workers` threads."""

    @ti.kernel
    def _render_samples(
        width: ti.i32,
        height: ti.i32,
        first_sample: ti.i32,
        num_samples: ti.i32,
        seed: ti.i32,
        max_depth: ti.i32,
        jitter: ti.i32,
    ):
        # Each scanline is one task and owns its row of the buffers
        ti.loop_config(parallelize=workers)
        for j in range(height):
            for i in range(width):
                total = _color_buffer[i, j]
                for k in range(num_samples):
                    total += render_sample_impl(
                        i, j, width, height, first_sample + k, seed, max_depth, jitter
                    )
                _color_buffer[i, j] = total
                _sample_count[i, j] += num_samples

    return _render_samples


def _get_render_kernel(workers: int):
    kernel = _render_kernels.get(workers)
    if kernel is None:
        logger.debug("Compiling render kernel for %d workers", workers)
        kernel = _build_render_kernel(workers)
        _render_kernels[workers] = kernel
    return kernel


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample: ti.i32,
    seed: ti.i32,
    max_depth: ti.i32,
    jitter: ti.i32,
) -> vec3:
    return render_sample_impl(pixel_i, pixel_j, width, height, sample, seed, max_depth, jitter)


# =============================================================================
# Public Rendering API
# =============================================================================


def resolve_workers(workers: int | None) -> int:
    """Map a requested worker count to a concrete one (None = all CPUs)."""
    if workers is None:
        return os.cpu_count() or 1
    if workers < 1:
        raise ValueError(f"workers = {workers} must be at least 1")
    return workers


def render_sample(
    pixel_i: int,
    pixel_j: int,
    sample: int = 0,
    seed: int = 0,
    max_depth: int = MAX_DEPTH,
    jitter: bool = False,
) -> tuple[float, float, float]:
    """Render a single sample for a specific pixel without accumulating it.

    This is a Python-callable function for testing. For production rendering,
    use render_image() which processes all pixels in parallel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        sample: Global sample index selecting the random stream.
        seed: Render seed.
        max_depth: Maximum path length.
        jitter: Randomize the position inside the pixel.

    Returns:
        Tuple of (R, G, B) linear color values.

    Raises:
        RuntimeError: If the render target or camera has not been set up.
        ValueError: If the seed is outside [0, 2**31 - 1].
    """
    _check_render_target_initialized()
    _check_camera_initialized()
    _check_seed(seed)

    width, height = get_image_dimensions()
    color = _render_single_pixel(
        pixel_i, pixel_j, width, height, sample, seed, max_depth, int(jitter)
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(
    num_samples: int = 1,
    seed: int = 0,
    max_depth: int = MAX_DEPTH,
    jitter: bool = True,
    workers: int | None = None,
) -> None:
    """Render and accumulate samples for every pixel.

    Can be called repeatedly: sample indices continue from the samples
    already accumulated, so several calls produce the same buffer as one
    call with the summed sample count.

    Args:
        num_samples: Number of samples to add per pixel.
        seed: Render seed.
        max_depth: Maximum path length (0 renders black).
        jitter: Randomize the position inside the pixel per sample.
        workers: Number of CPU threads; None uses every available CPU.

    Raises:
        RuntimeError: If the render target or camera has not been set up.
        ValueError: If num_samples, seed, max_depth or workers is invalid.
    """
    _check_render_target_initialized()
    _check_camera_initialized()

    if num_samples < 0:
        raise ValueError(f"num_samples = {num_samples} must be non-negative")
    _check_seed(seed)
    if max_depth < 0:
        raise ValueError(f"max_depth = {max_depth} must be non-negative")
    if num_samples == 0:
        return

    width, height = get_image_dimensions()
    kernel = _get_render_kernel(resolve_workers(workers))
    kernel(
        width,
        height,
        get_total_samples(),
        num_samples,
        seed,
        max_depth,
        int(jitter),
    )


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel so far.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> npt.NDArray[np.float32]:
    """Get the averaged linear image as a NumPy array.

    The array shape is (height, width, 3), row-major with the origin at
    the top-left. Pixels without samples are black.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    sums = _color_buffer.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height].astype(np.float32)

    image = np.zeros_like(sums, dtype=np.float32)
    np.divide(sums, counts[:, :, np.newaxis], out=image, where=counts[:, :, np.newaxis] > 0)

    # (width, height, 3) -> (height, width, 3)
    image = np.transpose(image, (1, 0, 2))

    # Taichi rows start at the bottom, images at the top
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Get the display image: clamped to [0, 1] and gamma corrected (gamma 2).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    image = np.clip(get_linear_image_numpy(), 0.0, 1.0)
    return np.sqrt(image).astype(np.float32)
