"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material and camera state around each test."""
    # Imported here so Taichi is initialized before fields are created
    from pathtrace.camera.thin_lens import reset_camera
    from pathtrace.core.integrator import clear_render_target, set_background
    from pathtrace.materials.dielectric import clear_dielectric_materials
    from pathtrace.materials.lambertian import clear_lambertian_materials
    from pathtrace.materials.metal import clear_metal_materials
    from pathtrace.scene.intersection import clear_scene
    from pathtrace.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        clear_render_target()
        set_background()
        reset_camera()

    _clear_all()
    yield
    _clear_all()
