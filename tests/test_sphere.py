"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting sphere from outside (front face)
- Ray missing sphere, including spheres behind the ray
- Ray starting inside sphere (back face)
- The half-open [t_min, t_max) interval
- Numerical stability edge cases
"""

import math

import pytest
import taichi as ti


def _hit(origin, direction, center, radius, t_min=0.001, t_max=1000.0):
    """Run hit_sphere in a kernel and return the record as a dict."""
    from pathtrace.geometry.sphere import Sphere, hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.field(dtype=ti.math.vec3, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(
        ox: ti.f32,
        oy: ti.f32,
        oz: ti.f32,
        dx: ti.f32,
        dy: ti.f32,
        dz: ti.f32,
        cx: ti.f32,
        cy: ti.f32,
        cz: ti.f32,
        r: ti.f32,
        t_min: ti.f32,
        t_max: ti.f32,
    ):
        sphere = Sphere(center=vec3(cx, cy, cz), radius=r)
        record = hit_sphere(vec3(ox, oy, oz), vec3(dx, dy, dz), sphere, t_min, t_max)
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal
        front_face[None] = record.front_face

    test_kernel(*origin, *direction, *center, radius, t_min, t_max)
    return {
        "hit": hit[None],
        "t": t_val[None],
        "point": tuple(point[None]),
        "normal": tuple(normal[None]),
        "front_face": front_face[None],
    }


class TestSphereBasics:
    """Tests for Sphere dataclass and basic operations."""

    def test_make_sphere(self):
        from pathtrace.geometry.sphere import make_sphere, vec3

        center_result = ti.field(dtype=ti.math.vec3, shape=())
        radius_result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            sphere = make_sphere(vec3(1.0, 2.0, 3.0), 0.5)
            center_result[None] = sphere.center
            radius_result[None] = sphere.radius

        test_kernel()
        assert tuple(center_result[None]) == pytest.approx((1.0, 2.0, 3.0))
        assert radius_result[None] == pytest.approx(0.5)


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_direct_hit_from_outside(self):
        """Ray from z=5 toward a unit sphere at the origin hits at t=4."""
        rec = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(4.0, abs=1e-5)
        assert rec["point"] == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert rec["normal"] == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert rec["front_face"] == 1

    def test_root_lies_on_surface(self):
        """The reported point satisfies |P - C| = r for an off-axis hit."""
        rec = _hit((0.3, 0.2, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -1.0), 0.5)
        assert rec["hit"] == 1
        p = rec["point"]
        dist = math.sqrt(p[0] ** 2 + p[1] ** 2 + (p[2] + 1.0) ** 2)
        assert dist == pytest.approx(0.5, abs=1e-5)

    def test_miss(self):
        rec = _hit((5.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert rec["hit"] == 0

    def test_pointing_away_misses(self):
        """A sphere behind the ray origin is never hit."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, -1.0), 0.5)
        assert rec["hit"] == 0

    def test_inside_hits_back_face(self):
        """From the center the far root is used and the normal points inward."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(1.0, abs=1e-5)
        assert rec["normal"] == pytest.approx((0.0, 0.0, -1.0), abs=1e-5)
        assert rec["front_face"] == 0

    def test_tangent_hit(self):
        rec = _hit((1.0, 0.0, -5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(5.0, abs=1e-4)
        assert rec["point"] == pytest.approx((1.0, 0.0, 0.0), abs=1e-4)

    def test_near_root_before_t_min_uses_far_root(self):
        rec = _hit((0.0, 0.0, 1.001), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0, t_min=0.01)
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(2.001, abs=1e-4)
        assert rec["front_face"] == 0

    def test_hit_beyond_t_max_rejected(self):
        rec = _hit((0.0, 0.0, 100.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0, t_max=50.0)
        assert rec["hit"] == 0

    def test_t_max_is_exclusive(self):
        """A root exactly at t_max is rejected; one at t_min is accepted."""
        at_max = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0, 0.001, 4.0)
        assert at_max["hit"] == 1
        assert at_max["t"] == pytest.approx(6.0, abs=1e-5)

        only_root_at_max = _hit(
            (0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0, 0.001, 6.0
        )
        assert only_root_at_max["t"] == pytest.approx(4.0, abs=1e-5)

        at_min = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0, 4.0, 4.5)
        assert at_min["hit"] == 1
        assert at_min["t"] == pytest.approx(4.0, abs=1e-5)

    def test_normal_is_unit_length(self):
        rec = _hit((3.0, 4.0, 10.0), (-0.3, -0.4, -1.0), (0.0, 0.0, 0.0), 5.0)
        assert rec["hit"] == 1
        n = rec["normal"]
        assert math.sqrt(sum(c * c for c in n)) == pytest.approx(1.0, abs=1e-5)

    def test_unnormalized_direction(self):
        """Hit point is independent of the direction's length."""
        rec = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -2.0), (0.0, 0.0, 0.0), 1.0)
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(2.0, abs=1e-5)
        assert rec["point"] == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)


class TestRobustQuadratic:
    """Tests for numerical robustness of the quadratic formula."""

    def test_near_tangent_produces_no_nan(self):
        rec = _hit((1.0 + 1e-7, 0.0, -5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert rec["hit"] in (0, 1)
        if rec["hit"] == 1:
            assert all(c == c for c in rec["point"])

    def test_large_sphere_large_distance(self):
        rec = _hit((0.0, 0.0, 1e6), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1000.0, 0.001, 1e10)
        assert rec["hit"] == 1
        # f32 keeps about 7 significant digits
        assert rec["t"] == pytest.approx(999000.0, abs=100.0)

    def test_ground_sphere_hit_from_above(self):
        """The showcase ground sphere is hit just below the camera."""
        rec = _hit((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), (0.0, -1000.0, -1.0), 1000.0)
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(1.0, abs=1e-2)
        assert rec["normal"][1] == pytest.approx(1.0, abs=1e-3)
