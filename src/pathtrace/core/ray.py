"""Ray data structure and vector utilities for CPU/GPU path tracing.

This module provides the fundamental Ray dataclass and the vector helpers used
by the geometry, material and camera modules. All operations are Taichi
functions and run inside kernels.

Random sampling helpers take the caller's random state explicitly (see
``pathtrace.core.sampler``) and return it advanced, so no function here reads
ambient random state.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

from pathtrace.core.sampler import rand_range

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Bound on rejection sampling attempts
MAX_REJECTION_ATTEMPTS = 64


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Producers
            normalize it; intersection code does not rely on unit length.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    Callers must not pass a zero vector; the result would be NaN.
    """
    return v / tm.length(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes v - 2 * dot(v, n) * n. The normal should be unit length.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(uv: vec3, normal: vec3, etai_over_etat: ti.f32) -> vec3:
    """Refract a unit vector through a surface using Snell's law.

    The refracted ray is split into components perpendicular and parallel
    to the normal. Total internal reflection is not detected here; the
    dielectric material checks for it before calling this function.

    Args:
        uv: The incoming direction (unit length).
        normal: The surface normal facing against uv (unit length).
        etai_over_etat: Ratio of refractive indices (incident / transmitted).

    Returns:
        The refracted direction.
    """
    cos_theta = tm.min(tm.dot(-uv, normal), 1.0)
    r_out_perp = etai_over_etat * (uv + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: ti.f32, ratio: ti.f32) -> ti.f32:
    """Approximate the Fresnel reflectance with Schlick's formula.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ratio: Ratio of refractive indices.

    Returns:
        The approximate reflectance coefficient in [0, 1].
    """
    r0 = (1.0 - ratio) / (1.0 + ratio)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Returns:
        1 if all components are below 1e-8 in magnitude, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_vec3(state: ti.u32, low: ti.f32, high: ti.f32):
    """Generate a vector with components uniform in [low, high).

    Returns:
        A tuple (vector, new_state).
    """
    x, s = rand_range(state, low, high)
    y, s2 = rand_range(s, low, high)
    z, s3 = rand_range(s2, low, high)
    return vec3(x, y, z), s3


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a random point inside the unit sphere.

    Uses rejection sampling. The attempt count is bounded; if every attempt
    is rejected the origin is returned.

    Returns:
        A tuple (point, new_state) with length(point) < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    s = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            candidate, s = random_vec3(s, -1.0, 1.0)
            if length_squared(candidate) < 1.0:
                p = candidate
                found = 1
    return p, s


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a random unit vector uniformly distributed on the sphere.

    Returns:
        A tuple (unit_vector, new_state).
    """
    result = vec3(0.0, 1.0, 0.0)
    s = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            candidate, s = random_vec3(s, -1.0, 1.0)
            lensq = length_squared(candidate)
            if lensq < 1.0 and lensq > 1e-12:
                result = candidate / ti.sqrt(lensq)
                found = 1
    return result, s


@ti.func
def random_in_hemisphere(normal: vec3, state: ti.u32):
    """Generate a random unit vector in the hemisphere around a normal.

    Returns:
        A tuple (direction, new_state) with dot(direction, normal) >= 0.
    """
    on_sphere, s = random_unit_vector(state)
    result = on_sphere
    if tm.dot(on_sphere, normal) < 0.0:
        result = -on_sphere
    return result, s


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used for depth of field lens sampling.

    Returns:
        A tuple (point, new_state) where point = (x, y, 0), x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    s = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            x, s1 = rand_range(s, -1.0, 1.0)
            y, s2 = rand_range(s1, -1.0, 1.0)
            s = s2
            if x * x + y * y < 1.0:
                p = vec3(x, y, 0.0)
                found = 1
    return p, s

