"""Unit tests for the Lambertian material module.

Tests cover:
- Scatter direction (hemisphere, unit length, cosine weighting)
- Attenuation equals albedo; the surface always scatters
- Random state handling
- Material registry operations
"""

import pytest
import taichi as ti


class TestScatterLambertian:
    """Tests for scatter_lambertian."""

    def test_direction_in_hemisphere_and_normalized(self):
        from pathtrace.core.sampler import pixel_seed
        from pathtrace.materials.lambertian import scatter_lambertian

        min_dot = ti.field(dtype=ti.f32, shape=())
        max_len_err = ti.field(dtype=ti.f32, shape=())
        min_dot[None] = 10.0
        max_len_err[None] = 0.0

        @ti.kernel
        def test_kernel():
            normal = ti.math.normalize(ti.math.vec3(0.3, 1.0, -0.2))
            albedo = ti.math.vec3(0.5, 0.5, 0.5)
            for i in range(2000):
                direction, _, _, _ = scatter_lambertian(albedo, normal, pixel_seed(11, i, 0, 0))
                ti.atomic_min(min_dot[None], ti.math.dot(direction, normal))
                ti.atomic_max(max_len_err[None], ti.abs(ti.math.length(direction) - 1.0))

        test_kernel()
        assert min_dot[None] >= -1e-6
        assert max_len_err[None] < 1e-5

    def test_cosine_weighted_distribution(self):
        """Normal plus a unit vector gives E[cos theta] = 2/3."""
        from pathtrace.core.sampler import pixel_seed
        from pathtrace.materials.lambertian import scatter_lambertian

        total = ti.field(dtype=ti.f32, shape=())
        n = 20000

        @ti.kernel
        def test_kernel():
            normal = ti.math.vec3(0.0, 0.0, 1.0)
            for i in range(n):
                direction, _, _, _ = scatter_lambertian(
                    ti.math.vec3(1.0, 1.0, 1.0), normal, pixel_seed(12, i, 0, 0)
                )
                total[None] += direction.z

        test_kernel()
        assert total[None] / n == pytest.approx(2.0 / 3.0, abs=0.02)

    def test_attenuation_is_albedo_and_always_scatters(self):
        from pathtrace.core.sampler import pixel_seed
        from pathtrace.materials.lambertian import scatter_lambertian

        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())
        scatter_count = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            albedo = ti.math.vec3(0.8, 0.3, 0.1)
            for i in range(500):
                _, atten, did_scatter, _ = scatter_lambertian(
                    albedo, ti.math.vec3(0.0, 1.0, 0.0), pixel_seed(13, i, 0, 0)
                )
                scatter_count[None] += did_scatter
                if i == 0:
                    attenuation[None] = atten

        test_kernel()
        assert scatter_count[None] == 500
        assert tuple(attenuation[None]) == pytest.approx((0.8, 0.3, 0.1), abs=1e-6)

    def test_state_advances(self):
        from pathtrace.core.sampler import pixel_seed
        from pathtrace.materials.lambertian import scatter_lambertian

        changed = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            state = pixel_seed(14, 0, 0, 0)
            _, _, _, new_state = scatter_lambertian(
                ti.math.vec3(0.5, 0.5, 0.5), ti.math.vec3(0.0, 1.0, 0.0), state
            )
            changed[None] = 1 if new_state != state else 0

        test_kernel()
        assert changed[None] == 1


class TestMaterialRegistry:
    """Tests for the Lambertian material registry."""

    def test_add_and_get_material(self):
        from pathtrace.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_albedo,
            get_lambertian_material_count,
        )

        first = add_lambertian_material((0.1, 0.2, 0.3))
        second = add_lambertian_material((0.7, 0.8, 0.9))
        assert (first, second) == (0, 1)
        assert get_lambertian_material_count() == 2

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            result[None] = get_lambertian_albedo(mat_idx)

        test_kernel(second)
        assert tuple(result[None]) == pytest.approx((0.7, 0.8, 0.9), abs=1e-6)

    def test_scatter_by_id(self):
        from pathtrace.core.sampler import pixel_seed
        from pathtrace.materials.lambertian import (
            add_lambertian_material,
            scatter_lambertian_by_id,
        )

        mat_idx = add_lambertian_material((0.25, 0.5, 0.75))
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(idx: ti.i32):
            _, atten, _, _ = scatter_lambertian_by_id(
                idx, ti.math.vec3(0.0, 1.0, 0.0), pixel_seed(15, 0, 0, 0)
            )
            result[None] = atten

        test_kernel(mat_idx)
        assert tuple(result[None]) == pytest.approx((0.25, 0.5, 0.75), abs=1e-6)

    @pytest.mark.parametrize("albedo", [(-0.1, 0.5, 0.5), (0.5, 1.1, 0.5)])
    def test_albedo_out_of_range_rejected(self, albedo):
        from pathtrace.materials.lambertian import add_lambertian_material

        with pytest.raises(ValueError, match="outside"):
            add_lambertian_material(albedo)

    def test_albedo_wrong_length_rejected(self):
        from pathtrace.materials.lambertian import add_lambertian_material

        with pytest.raises(ValueError, match="3 components"):
            add_lambertian_material((0.5, 0.5))

    def test_clear(self):
        from pathtrace.materials.lambertian import (
            add_lambertian_material,
            clear_lambertian_materials,
            get_lambertian_material_count,
        )

        add_lambertian_material((0.5, 0.5, 0.5))
        clear_lambertian_materials()
        assert get_lambertian_material_count() == 0
