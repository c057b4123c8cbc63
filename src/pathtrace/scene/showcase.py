"""Random spheres showcase scene.

This module provides a factory for the classic "many spheres" scene used to
exercise every material at once:

- A huge diffuse sphere acting as the ground
- A grid of small spheres with randomly chosen materials
  (80% diffuse, 15% metal, 5% glass)
- Three large feature spheres: glass, diffuse and polished metal

Random choices come from a NumPy Generator seeded by the caller, so the
same seed always builds the same scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.scene.showcase import create_showcase_scene
    >>> from pathtrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_showcase_scene(seed=42)
    >>> setup_camera(camera)
    >>> # Now render using the scene and camera
"""

import logging
import math

import numpy as np

from pathtrace.camera.thin_lens import ThinLensCamera
from pathtrace.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Showcase Constants
# =============================================================================

GROUND_CENTER = (0.0, -1000.0, -1.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.8, 0.5, 0.9)

SMALL_SPHERE_RADIUS = 0.2
SMALL_SPHERE_JITTER = 0.9

# Small spheres closer than this to the metal feature sphere are skipped
CLEARANCE_POINT = (4.0, 0.2, 0.0)
CLEARANCE_DISTANCE = 0.9

# Cumulative material probabilities for the small spheres
DIFFUSE_PROBABILITY = 0.8
METAL_PROBABILITY = 0.95

MAX_SMALL_METAL_FUZZ = 0.3
GLASS_REFRACTIVE_INDEX = 1.5

FEATURE_RADIUS = 1.0
FEATURE_DIFFUSE_ALBEDO = (0.8, 0.5, 0.2)
FEATURE_METAL_ALBEDO = (0.8, 0.8, 0.8)

CAMERA_LOOKFROM = (13.0, 2.0, 3.0)
CAMERA_LOOKAT = (0.0, 0.0, 0.0)
CAMERA_VFOV = 20.0
CAMERA_APERTURE = 0.01


# =============================================================================
# Showcase Factory
# =============================================================================


def _add_small_sphere(
    scene: SceneManager,
    rng: np.random.Generator,
    center: tuple[float, float, float],
) -> None:
    choose_material = rng.random()

    if choose_material < DIFFUSE_PROBABILITY:
        albedo = tuple(float(c) for c in rng.random(3))
        scene.add_lambertian_sphere(center, SMALL_SPHERE_RADIUS, albedo)
    elif choose_material < METAL_PROBABILITY:
        albedo = tuple(float(c) for c in rng.random(3) * 0.5 + 0.5)
        fuzz = float(rng.random() * MAX_SMALL_METAL_FUZZ)
        scene.add_metal_sphere(center, SMALL_SPHERE_RADIUS, albedo, fuzz)
    else:
        scene.add_dielectric_sphere(center, SMALL_SPHERE_RADIUS, GLASS_REFRACTIVE_INDEX)


def create_showcase_scene(
    seed: int = 0,
    grid: int = 8,
    aspect_ratio: float = 16.0 / 9.0,
    aperture: float = CAMERA_APERTURE,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random spheres showcase scene.

    Args:
        seed: Seed for the NumPy Generator choosing positions and materials.
        grid: Small spheres are placed on integer cells in [-grid, grid)
            along x and z. 0 leaves only the ground and feature spheres.
        aspect_ratio: Aspect ratio of the returned camera.
        aperture: Lens diameter of the returned camera.

    Returns:
        A tuple of (SceneManager, ThinLensCamera). The camera looks at the
        origin from (13, 2, 3) and is focused at the origin.

    Raises:
        ValueError: If grid is negative.
    """
    if grid < 0:
        raise ValueError(f"grid = {grid} must be non-negative")

    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere(GROUND_CENTER, GROUND_RADIUS, GROUND_ALBEDO)

    clearance = np.array(CLEARANCE_POINT)
    for x in range(-grid, grid):
        for z in range(-grid, grid):
            center = (
                float(rng.random() * SMALL_SPHERE_JITTER + x),
                SMALL_SPHERE_RADIUS,
                float(rng.random() * SMALL_SPHERE_JITTER + z),
            )
            if np.linalg.norm(np.array(center) - clearance) > CLEARANCE_DISTANCE:
                _add_small_sphere(scene, rng, center)

    scene.add_dielectric_sphere((0.0, 1.0, 0.0), FEATURE_RADIUS, GLASS_REFRACTIVE_INDEX)
    scene.add_metal_sphere((4.0, 1.0, 0.0), FEATURE_RADIUS, FEATURE_METAL_ALBEDO, 0.0)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), FEATURE_RADIUS, FEATURE_DIFFUSE_ALBEDO)

    camera = ThinLensCamera(
        lookfrom=CAMERA_LOOKFROM,
        lookat=CAMERA_LOOKAT,
        vup=(0.0, 1.0, 0.0),
        vfov=CAMERA_VFOV,
        aspect_ratio=aspect_ratio,
        aperture=aperture,
        focus_distance=math.dist(CAMERA_LOOKFROM, CAMERA_LOOKAT),
    )

    logger.info(
        "Built showcase scene: %d spheres, %d materials (seed=%d)",
        scene.get_sphere_count(),
        scene.get_material_count(),
        seed,
    )
    return scene, camera
