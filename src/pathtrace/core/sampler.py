"""Counter-based random number generation for deterministic parallel sampling.

Every sample of every pixel draws from its own stream, keyed by the global
render seed, the pixel coordinates and the sample index. Streams are derived
with an integer hash rather than a shared generator, so the rendered image
does not depend on how many threads run the kernel or in which order the
scanlines finish.

Random state is an explicit ``ti.u32`` threaded through every function that
samples. Functions that consume randomness return the updated state together
with their result:

    value, state = rand_f32(state)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.core.sampler import pixel_seed, rand_f32
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     state = pixel_seed(7, 10, 20, 0)
    ...     value, state = rand_f32(state)
    ...     return value
"""

import taichi as ti

# Linear congruential step (Numerical Recipes constants)
LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223

# 24 mantissa bits give uniformly spaced floats in [0, 1)
FLOAT_MANTISSA_MASK = 0xFFFFFF
FLOAT_SCALE = 1.0 / 16777216.0


@ti.func
def hash_u32(x: ti.u32) -> ti.u32:
    """Wang hash of a 32-bit unsigned integer.

    Args:
        x: The value to hash.

    Returns:
        A well-mixed 32-bit hash of x.
    """
    h = (x ^ ti.cast(61, ti.u32)) ^ (x >> ti.cast(16, ti.u32))
    h = h * ti.cast(9, ti.u32)
    h = h ^ (h >> ti.cast(4, ti.u32))
    h = h * ti.cast(0x27D4EB2D, ti.u32)
    h = h ^ (h >> ti.cast(15, ti.u32))
    return h


@ti.func
def pixel_seed(seed: ti.i32, pixel_i: ti.i32, pixel_j: ti.i32, sample: ti.i32) -> ti.u32:
    """Derive the initial random state for one sample of one pixel.

    Args:
        seed: The global render seed.
        pixel_i: Pixel x-coordinate.
        pixel_j: Pixel y-coordinate.
        sample: Global sample index for this pixel (0-based).

    Returns:
        The random state for the sample's stream.
    """
    h = hash_u32(ti.cast(seed, ti.u32))
    h = hash_u32(h + ti.cast(pixel_i, ti.u32))
    h = hash_u32(h + ti.cast(pixel_j, ti.u32))
    h = hash_u32(h + ti.cast(sample, ti.u32))
    return h


@ti.func
def next_state(state: ti.u32) -> ti.u32:
    """Advance the random state by one step."""
    return state * ti.cast(LCG_MULTIPLIER, ti.u32) + ti.cast(LCG_INCREMENT, ti.u32)


@ti.func
def rand_f32(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        state: The current random state.

    Returns:
        A tuple (value, new_state).
    """
    new_state = next_state(state)
    bits = hash_u32(new_state) & ti.cast(FLOAT_MANTISSA_MASK, ti.u32)
    value = ti.cast(bits, ti.f32) * FLOAT_SCALE
    return value, new_state


@ti.func
def rand_range(state: ti.u32, low: ti.f32, high: ti.f32):
    """Draw a uniform float in [low, high).

    Returns:
        A tuple (value, new_state).
    """
    value, new_state = rand_f32(state)
    return low + (high - low) * value, new_state
