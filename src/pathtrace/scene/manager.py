"""Unified scene manager for coordinating spheres and materials.

This module provides a high-level scene management API that coordinates
sphere storage with material assignment. It tracks which material type
(Lambertian, Metal, Dielectric) each material ID corresponds to, enabling
material dispatch in the path tracer.

The SceneManager maintains:
- A unified material_id space across all material types
- Mapping from material_id to (material_type, type_local_index)
- High-level methods for adding spheres with materials in one call
- Conversion from and to plain scene descriptions (dicts / SceneConfig)

A scene can also be described as an ordered list of primitive descriptors,
one per sphere, each carrying its own material:

    {"shape": "sphere", "center": [0, 0, -1], "radius": 0.5,
     "material": {"type": "metal", "albedo": [0.8, 0.8, 0.8], "fuzz": 0.1}}

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> mat_id = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=mat_id)
    >>> # The integrator uses get_material_type(mat_id) for dispatch
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from pathtrace.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
)
from pathtrace.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
)
from pathtrace.materials.metal import (
    MAX_METAL_MATERIALS,
    add_metal_material,
    clear_metal_materials,
)
from pathtrace.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all types
MAX_MATERIALS = 2048

_MAX_MATERIALS_PER_TYPE = {
    MaterialType.LAMBERTIAN: MAX_LAMBERTIAN_MATERIALS,
    MaterialType.METAL: MAX_METAL_MATERIALS,
    MaterialType.DIELECTRIC: MAX_DIELECTRIC_MATERIALS,
}

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Args:
        material_id: The unified material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material ID.

    This is used to look up material properties in the type-specific
    material arrays (e.g., lambertian_albedos[type_index]).

    Returns:
        The index into the type-specific material array, or -1 for
        invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material (Lambertian, Metal, Dielectric).
        type_index: The index within the type-specific material array.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations referencing materials by id.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def _as_triple(values: Iterable[float], name: str) -> tuple[float, float, float]:
    items = tuple(float(v) for v in values)
    if len(items) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(items)}")
    return items  # type: ignore[return-value]


def _check_material_capacity() -> None:
    if num_materials[None] >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")


def _check_sphere_capacity() -> None:
    if get_sphere_count() >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")


def _parse_sphere(
    center: Iterable[float], radius: float
) -> tuple[tuple[float, float, float], float]:
    radius = float(radius)
    if radius <= 0.0:
        raise ValueError(f"Sphere radius = {radius} must be positive")
    return _as_triple(center, "center"), radius


def _parse_albedo(values: Iterable[float]) -> tuple[float, float, float]:
    albedo = _as_triple(values, "albedo")
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1].")
    return albedo


def _parse_material(material: dict[str, Any]) -> tuple[MaterialType, dict[str, Any]]:
    """Validate a material descriptor and return its type and parameters.

    Nothing is registered, so a bad descriptor leaves the scene untouched.
    Missing parameters fall back to defaults.
    """
    mat_type = str(material.get("type", "")).lower()
    if mat_type == "lambertian":
        return MaterialType.LAMBERTIAN, {
            "albedo": _parse_albedo(material.get("albedo", (0.5, 0.5, 0.5)))
        }
    if mat_type == "metal":
        fuzz = float(material.get("fuzz", 0.0))
        if fuzz < 0.0 or fuzz > 1.0:
            raise ValueError(f"Fuzz = {fuzz} is outside [0, 1].")
        return MaterialType.METAL, {
            "albedo": _parse_albedo(material.get("albedo", (0.8, 0.8, 0.8))),
            "fuzz": fuzz,
        }
    if mat_type == "dielectric":
        refractive_index = float(material.get("refractive_index", 1.5))
        if refractive_index <= 0.0:
            raise ValueError(f"Refractive index = {refractive_index} must be positive.")
        return MaterialType.DIELECTRIC, {"refractive_index": refractive_index}
    raise ValueError(f"Unknown material type: {mat_type!r}")


def _parse_primitive(descriptor: dict[str, Any]):
    """Validate a primitive descriptor without touching the scene.

    Returns:
        Tuple of (center, radius, material_type, material_params).
    """
    shape = str(descriptor.get("shape", "sphere")).lower()
    if shape != "sphere":
        raise ValueError(f"Unknown shape: {shape!r}")
    if "material" not in descriptor:
        raise ValueError("Primitive descriptor has no material")

    center, radius = _parse_sphere(
        descriptor.get("center", (0.0, 0.0, 0.0)), descriptor.get("radius", 1.0)
    )
    material_type, params = _parse_material(descriptor["material"])
    return center, radius, material_type, params


class SceneManager:
    """Unified scene manager coordinating spheres and materials.

    The SceneManager maintains a unified material_id space that maps to
    the type-specific material registries, so the path tracer can dispatch
    to the correct scattering function.

    Only one scene is active at a time: the primitive and material stores
    are module-level Taichi fields, and creating a SceneManager clears them.

    Attributes:
        materials: List of MaterialInfo for all registered materials.
        spheres: List of SphereInfo for all spheres in the scene.

    Example:
        >>> scene = SceneManager()
        >>> red_diffuse = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold_metal = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(refractive_index=1.5)
        >>> scene.add_sphere((0, 0, -1), 0.5, red_diffuse)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold_metal)
        >>> scene.add_sphere((-1, 0, -1), 0.5, glass)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    def clear(self) -> None:
        """Clear the entire scene (spheres and materials)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        """Assign a unified material ID to a type-local material."""
        material_id = num_materials[None]

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(
        self,
        albedo: tuple[float, float, float],
    ) -> int:
        """Add a Lambertian (diffuse) material to the scene.

        Args:
            albedo: The diffuse reflectance color as (R, G, B), each in [0, 1].

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        _check_material_capacity()
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": tuple(albedo)}
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (specular reflective) material to the scene.

        Args:
            albedo: The reflective color as (R, G, B), each in [0, 1].
            fuzz: The perturbation radius in [0, 1]. Default is a perfect mirror.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component or fuzz is outside [0, 1].
        """
        _check_material_capacity()
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": tuple(albedo), "fuzz": fuzz}
        )

    def add_dielectric_material(
        self,
        refractive_index: float = 1.5,
    ) -> int:
        """Add a dielectric (glass/water) material to the scene.

        Args:
            refractive_index: Index of refraction. Default is 1.5 (glass).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If the refractive index is not positive.
        """
        _check_material_capacity()
        type_index = add_dielectric_material(refractive_index)
        return self._register_material(
            MaterialType.DIELECTRIC, type_index, {"refractive_index": refractive_index}
        )

    def add_material(self, material: dict[str, Any]) -> int:
        """Add a material from its descriptor.

        Args:
            material: A dict with a "type" key ("lambertian", "metal" or
                "dielectric") plus that material's parameters.

        Returns:
            The unified material ID.

        Raises:
            ValueError: If the type is unknown or a parameter is invalid.
        """
        material_type, params = _parse_material(material)
        return self._add_parsed_material(material_type, params)

    def _add_parsed_material(self, material_type: MaterialType, params: dict[str, Any]) -> int:
        if material_type == MaterialType.LAMBERTIAN:
            return self.add_lambertian_material(**params)
        if material_type == MaterialType.METAL:
            return self.add_metal_material(**params)
        return self.add_dielectric_material(**params)

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type for a given material ID (Python side).

        For lookups inside kernels use the get_material_type() Taichi function.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id].material_type
        return None

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere, must be positive.
            material_id: The unified material ID to assign to the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the radius is not positive or material_id is invalid.
        """
        center, radius = _parse_sphere(center, radius)
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        sphere_index = add_sphere(vec3(center[0], center[1], center[2]), radius, material_id)

        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=radius,
                material_id=material_id,
            )
        )
        return sphere_index

    # =========================================================================
    # Convenience Methods (add sphere with a new material in one call)
    # =========================================================================

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        _parse_sphere(center, radius)
        _check_sphere_capacity()
        material_id = self.add_lambertian_material(albedo)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        _parse_sphere(center, radius)
        _check_sphere_capacity()
        material_id = self.add_metal_material(albedo, fuzz)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        refractive_index: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        _parse_sphere(center, radius)
        _check_sphere_capacity()
        material_id = self.add_dielectric_material(refractive_index)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_primitive(self, descriptor: dict[str, Any]) -> tuple[int, int]:
        """Add one primitive descriptor (shape, geometry and its material).

        Args:
            descriptor: A dict such as
                {"shape": "sphere", "center": [x, y, z], "radius": r,
                 "material": {"type": "lambertian", "albedo": [r, g, b]}}.

        Returns:
            Tuple of (sphere_index, material_id).

        Raises:
            RuntimeError: If the sphere or material store is full.
            ValueError: If the shape or material is unknown or invalid.

        The descriptor is validated in full before anything is stored, so a
        failed call leaves the scene unchanged.
        """
        parsed = _parse_primitive(descriptor)
        _check_sphere_capacity()
        _check_material_capacity()
        return self._add_parsed_primitive(*parsed)

    def _add_parsed_primitive(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_type: MaterialType,
        params: dict[str, Any],
    ) -> tuple[int, int]:
        material_id = self._add_parsed_material(material_type, params)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def load_primitives(self, descriptors: Iterable[dict[str, Any]]) -> None:
        """Replace the scene with an ordered collection of primitive descriptors.

        Every descriptor is validated before the current scene is cleared,
        so an invalid collection leaves the previous scene in place.

        Raises:
            RuntimeError: If the collection exceeds the sphere capacity.
            ValueError: If any descriptor is invalid.
        """
        parsed = [_parse_primitive(descriptor) for descriptor in descriptors]
        if len(parsed) > MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

        self.clear()
        for primitive in parsed:
            self._add_parsed_primitive(*primitive)
        logger.debug(
            "Loaded %d primitives with %d materials",
            self.get_sphere_count(),
            self.get_material_count(),
        )

    def to_primitives(self) -> list[dict[str, Any]]:
        """Export the scene as primitive descriptors, one per sphere."""
        primitives = []
        for sphere in self.spheres:
            mat = self.materials[sphere.material_id]
            primitives.append(
                {
                    "shape": "sphere",
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material": _material_descriptor(mat),
                }
            )
        return primitives

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            config.materials.append(_material_descriptor(mat))

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration. The whole
        configuration is validated first, so an invalid one leaves the
        current scene in place.

        Raises:
            RuntimeError: If the configuration exceeds a store's capacity.
            ValueError: If the configuration contains invalid data.
        """
        materials = [_parse_material(mat_config) for mat_config in config.materials]
        spheres = []
        for sphere_config in config.spheres:
            center, radius = _parse_sphere(
                sphere_config.get("center", (0.0, 0.0, 0.0)), sphere_config.get("radius", 1.0)
            )
            material_id = int(sphere_config.get("material_id", 0))
            if material_id < 0 or material_id >= len(materials):
                raise ValueError(f"Invalid material_id: {material_id}")
            spheres.append((center, radius, material_id))
        if len(materials) > MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
        for material_type, limit in _MAX_MATERIALS_PER_TYPE.items():
            if sum(1 for parsed_type, _ in materials if parsed_type == material_type) > limit:
                raise RuntimeError(
                    f"Maximum number of {material_type.name.lower()} materials ({limit}) exceeded"
                )
        if len(spheres) > MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

        self.clear()

        # Materials first, spheres reference them by id
        for material_type, params in materials:
            self._add_parsed_material(material_type, params)

        for center, radius, material_id in spheres:
            self.add_sphere(center, radius, material_id)

        logger.debug(
            "Loaded scene config: %d materials, %d spheres",
            self.get_material_count(),
            self.get_sphere_count(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary.

        Accepts either the to_dict() layout ('materials' and 'spheres' keys)
        or a 'primitives' list of primitive descriptors.
        """
        if "primitives" in data:
            self.load_primitives(data["primitives"])
            return

        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
        )
        self.from_config(config)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS


def _material_descriptor(mat: MaterialInfo) -> dict[str, Any]:
    descriptor: dict[str, Any] = {"type": mat.material_type.name.lower()}
    for key, value in mat.params.items():
        descriptor[key] = list(value) if isinstance(value, tuple) else value
    return descriptor
