"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure, vector helpers and random direction sampling
    sampler: Counter-based random streams keyed by pixel and sample index
    config: Validated render configuration
    integrator: Radiance estimate (ray_color) and the sampling kernel
    progressive: Batched accumulation with progress reporting

Random state is explicit: every sampling function takes a ``ti.u32`` state
and returns it advanced, so a render depends only on its seed.
"""

from .config import MAX_SEED, RenderConfig
from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    random_in_hemisphere,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .sampler import hash_u32, pixel_seed, rand_f32, rand_range

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from pathtrace.core.integrator or pathtrace.core.progressive.

__all__ = [
    "RenderConfig",
    "MAX_SEED",
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_hemisphere",
    "random_in_unit_disk",
    "hash_u32",
    "pixel_seed",
    "rand_f32",
    "rand_range",
]
