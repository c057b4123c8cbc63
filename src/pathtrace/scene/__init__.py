"""Scene module for scene management and ray-scene queries.

Components:
    intersection: Sphere store in Taichi fields and closest-hit queries
    manager: Unified scene manager coordinating spheres and materials
    showcase: Random spheres showcase scene

Scene data is organized for kernel access:
    - Structure-of-Arrays layout for sphere data
    - Contiguous material ID arrays
    - Unified material IDs mapped to (type, type-local index)
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
    material_type_indices,
    material_types,
    num_materials,
)
from .showcase import create_showcase_scene

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    "material_types",
    "material_type_indices",
    "num_materials",
    # Showcase
    "create_showcase_scene",
]
