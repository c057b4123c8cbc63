"""Tests for the random spheres showcase scene."""

import math

import pytest


class TestShowcaseScene:
    def test_feature_spheres_and_ground(self):
        from pathtrace.scene.manager import MaterialType
        from pathtrace.scene.showcase import GROUND_RADIUS, create_showcase_scene

        scene, _ = create_showcase_scene(seed=1, grid=0)

        assert scene.get_sphere_count() == 4
        assert scene.spheres[0].radius == GROUND_RADIUS
        feature_types = [scene.get_material_type_python(s.material_id) for s in scene.spheres[1:]]
        assert feature_types == [
            MaterialType.DIELECTRIC,
            MaterialType.METAL,
            MaterialType.LAMBERTIAN,
        ]

    def test_small_spheres_fill_grid(self):
        from pathtrace.scene.showcase import SMALL_SPHERE_RADIUS, create_showcase_scene

        scene, _ = create_showcase_scene(seed=1, grid=3)

        small = [s for s in scene.spheres if s.radius == SMALL_SPHERE_RADIUS]
        # 6x6 cells, a few may be skipped near the metal feature sphere
        assert 30 <= len(small) <= 36
        for sphere in small:
            x, y, z = sphere.center
            assert -3.0 <= x < 3.0
            assert -3.0 <= z < 3.0
            assert y == SMALL_SPHERE_RADIUS

    def test_small_spheres_keep_clear_of_metal_sphere(self):
        from pathtrace.scene.showcase import (
            CLEARANCE_DISTANCE,
            CLEARANCE_POINT,
            SMALL_SPHERE_RADIUS,
            create_showcase_scene,
        )

        scene, _ = create_showcase_scene(seed=7, grid=6)
        for sphere in scene.spheres:
            if sphere.radius == SMALL_SPHERE_RADIUS:
                assert math.dist(sphere.center, CLEARANCE_POINT) > CLEARANCE_DISTANCE

    def test_same_seed_same_scene(self):
        from pathtrace.scene.showcase import create_showcase_scene

        first, _ = create_showcase_scene(seed=5, grid=4)
        first_dict = first.to_dict()
        second, _ = create_showcase_scene(seed=5, grid=4)

        assert second.to_dict() == first_dict

    def test_different_seed_different_scene(self):
        from pathtrace.scene.showcase import create_showcase_scene

        first, _ = create_showcase_scene(seed=5, grid=4)
        first_dict = first.to_dict()
        second, _ = create_showcase_scene(seed=6, grid=4)

        assert second.to_dict() != first_dict

    def test_all_material_types_used(self):
        from pathtrace.scene.manager import MaterialType
        from pathtrace.scene.showcase import create_showcase_scene

        scene, _ = create_showcase_scene(seed=0, grid=8)
        types = {mat.material_type for mat in scene.materials}
        assert types == {MaterialType.LAMBERTIAN, MaterialType.METAL, MaterialType.DIELECTRIC}

    def test_camera(self):
        from pathtrace.scene.showcase import create_showcase_scene

        _, camera = create_showcase_scene(seed=0, grid=0, aspect_ratio=1.5, aperture=0.1)

        assert camera.lookfrom == (13.0, 2.0, 3.0)
        assert camera.lookat == (0.0, 0.0, 0.0)
        assert camera.vfov == 20.0
        assert camera.aspect_ratio == 1.5
        assert camera.aperture == 0.1
        assert camera.focus_distance == pytest.approx(math.sqrt(13.0**2 + 2.0**2 + 3.0**2))

    def test_negative_grid_rejected(self):
        from pathtrace.scene.showcase import create_showcase_scene

        with pytest.raises(ValueError, match="grid"):
            create_showcase_scene(grid=-1)
