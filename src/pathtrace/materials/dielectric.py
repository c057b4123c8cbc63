"""Dielectric (glass/water) material implementation.

Dielectrics reflect or refract every ray and never absorb:
    - Snell's law decides the refracted direction.
    - Total internal reflection happens when ratio * sin(theta) > 1.
    - Otherwise Schlick's approximation gives the probability of reflecting.

The refraction ratio is 1 / refractive_index when entering through the front
face and refractive_index when leaving from inside.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_dielectric(
    >>> #     refractive_index, incident_dir, normal, front_face, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtrace.core.ray import reflect, refract, schlick_reflectance
from pathtrace.core.sampler import rand_f32

vec3 = tm.vec3


@ti.func
def refraction_ratio(refractive_index: ti.f32, front_face: ti.i32) -> ti.f32:
    """Ratio of refractive indices (incident over transmitted)."""
    ratio = refractive_index
    if front_face == 1:
        ratio = 1.0 / refractive_index
    return ratio


@ti.func
def will_reflect(
    refractive_index: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Check whether total internal reflection will occur.

    Returns:
        1 if refraction is impossible, 0 otherwise.
    """
    ratio = refraction_ratio(refractive_index, front_face)
    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    sin_theta = tm.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return 1 if ratio * sin_theta > 1.0 else 0


@ti.func
def fresnel_reflectance(
    refractive_index: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.f32:
    """Schlick reflectance for a ray hitting the surface."""
    ratio = refraction_ratio(refractive_index, front_face)
    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    return schlick_reflectance(cos_theta, ratio)


@ti.func
def scatter_dielectric(
    refractive_index: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Compute the scattered ray direction for a dielectric surface.

    Args:
        refractive_index: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing against the incoming ray.
        front_face: 1 if the ray hits the outside of the surface,
            0 if it hits from within the material.
        state: The caller's random state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state):
        - scattered_direction: Unit reflected or refracted direction.
        - attenuation: Always (1, 1, 1).
        - did_scatter: Always 1.
        - state: The advanced random state.
    """
    ratio = refraction_ratio(refractive_index, front_face)
    unit_direction = tm.normalize(incident_direction)

    cannot_refract = will_reflect(refractive_index, incident_direction, normal, front_face)
    reflect_chance = fresnel_reflectance(
        refractive_index, incident_direction, normal, front_face
    )

    # The draw is taken unconditionally to keep the stream layout fixed
    draw, new_state = rand_f32(state)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract == 1 or draw < reflect_chance:
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, ratio)

    scattered_direction = tm.normalize(scattered_direction)
    return scattered_direction, vec3(1.0, 1.0, 1.0), 1, new_state


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 1024

dielectric_refractive_indices = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(refractive_index: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        refractive_index: Index of refraction, must be positive. Values
            below 1.0 model a thinner medium embedded in a denser one
            (for example an air bubble in water).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the refractive index is not positive.
    """
    if refractive_index <= 0.0:
        raise ValueError(f"Refractive index = {refractive_index} must be positive.")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_refractive_indices[idx] = refractive_index
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_refractive_index(material_idx: ti.i32) -> ti.f32:
    return dielectric_refractive_indices[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Scatter off the registered dielectric material at material_idx."""
    refractive_index = get_dielectric_refractive_index(material_idx)
    return scatter_dielectric(refractive_index, incident_direction, normal, front_face, state)
