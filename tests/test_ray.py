"""Tests for rays, vector helpers, bounding boxes and sampling."""

import math
import threading

import numpy as np
import pytest

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import (
    Ray,
    build_onb_from_normal,
    cross,
    dot,
    length,
    local_to_world,
    normalize,
    random_cosine_direction,
    random_in_cone,
    random_in_unit_disk,
    random_unit_vector,
    reflect,
    refract,
    vec3,
)
from src.tracer.core.sampling import get_rng, random_int, seed_rng


class TestRay:
    def test_at(self):
        ray = Ray(vec3(1.0, 2.0, 3.0), vec3(0.0, 0.0, -2.0))
        np.testing.assert_allclose(ray.at(1.5), [1.0, 2.0, 0.0])

    def test_default_time_is_zero(self):
        assert Ray(vec3(), vec3(1.0, 0.0, 0.0)).time == 0.0

    def test_with_direction_keeps_origin_and_time(self):
        ray = Ray(vec3(1.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0), 0.25)
        turned = ray.with_direction(vec3(0.0, 0.0, 1.0))
        np.testing.assert_array_equal(turned.origin, ray.origin)
        assert turned.time == 0.25


class TestVectorHelpers:
    def test_normalize(self):
        assert length(normalize(vec3(3.0, 4.0, 0.0))) == pytest.approx(1.0)

    def test_normalize_zero_vector(self):
        np.testing.assert_array_equal(normalize(vec3()), np.zeros(3))

    def test_cross_is_orthogonal(self):
        a = vec3(1.0, 2.0, 3.0)
        b = vec3(-2.0, 0.5, 1.0)
        c = cross(a, b)
        assert dot(a, c) == pytest.approx(0.0)
        assert dot(b, c) == pytest.approx(0.0)

    def test_reflect(self):
        np.testing.assert_allclose(reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0)), [1.0, 1.0, 0.0])

    def test_refract_with_unit_ratio_passes_straight(self):
        incident = normalize(vec3(1.0, -1.0, 0.0))
        np.testing.assert_allclose(refract(incident, vec3(0.0, 1.0, 0.0), 1.0), incident, atol=1e-12)

    def test_onb_is_orthonormal(self):
        for normal in (vec3(0.0, 0.0, 1.0), vec3(1.0, 0.0, 0.0), normalize(vec3(1.0, -2.0, 0.5))):
            t, b, n = build_onb_from_normal(normal)
            for axis in (t, b, n):
                assert length(axis) == pytest.approx(1.0)
            assert dot(t, b) == pytest.approx(0.0, abs=1e-12)
            assert dot(t, n) == pytest.approx(0.0, abs=1e-12)
            assert dot(b, n) == pytest.approx(0.0, abs=1e-12)

    def test_local_to_world_maps_z_to_normal(self):
        normal = normalize(vec3(0.3, 0.4, -0.2))
        np.testing.assert_allclose(local_to_world(vec3(0.0, 0.0, 1.0), *build_onb_from_normal(normal)), normal)


class TestRandomDirections:
    def test_unit_vectors(self):
        for _ in range(100):
            assert length(random_unit_vector()) == pytest.approx(1.0)

    def test_unit_disk(self):
        for _ in range(100):
            p = random_in_unit_disk()
            assert p[2] == 0.0
            assert length(p) < 1.0

    def test_cosine_directions_are_in_upper_hemisphere(self):
        for _ in range(100):
            d = random_cosine_direction()
            assert d[2] >= 0.0
            assert length(d) == pytest.approx(1.0)

    def test_cone_directions_stay_inside_cone(self):
        cos_max = math.cos(0.2)
        for _ in range(200):
            d = random_in_cone(cos_max)
            assert d[2] >= cos_max - 1e-12
            assert length(d) == pytest.approx(1.0)


class TestAABB:
    def test_hit_through_center(self):
        box = AABB(vec3(-1.0, -1.0, -1.0), vec3(1.0, 1.0, 1.0))
        assert box.hit(Ray(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -1.0)), 0.0, 100.0)

    def test_miss(self):
        box = AABB(vec3(-1.0, -1.0, -1.0), vec3(1.0, 1.0, 1.0))
        assert not box.hit(Ray(vec3(0.0, 3.0, 5.0), vec3(0.0, 0.0, -1.0)), 0.0, 100.0)

    def test_window_excludes_box_behind(self):
        box = AABB(vec3(-1.0, -1.0, -1.0), vec3(1.0, 1.0, 1.0))
        assert not box.hit(Ray(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, 1.0)), 0.0, 100.0)

    def test_surrounding_box(self):
        a = AABB(vec3(0.0, 0.0, 0.0), vec3(1.0, 1.0, 1.0))
        b = AABB(vec3(-1.0, 0.5, 0.0), vec3(0.5, 2.0, 3.0))
        union = AABB.surrounding_box(a, b)
        np.testing.assert_array_equal(union.minimum, [-1.0, 0.0, 0.0])
        np.testing.assert_array_equal(union.maximum, [1.0, 2.0, 3.0])

    def test_from_points_orders_corners(self):
        box = AABB.from_points((1.0, -1.0, 2.0), (0.0, 3.0, -2.0))
        np.testing.assert_array_equal(box.minimum, [0.0, -1.0, -2.0])
        np.testing.assert_array_equal(box.maximum, [1.0, 3.0, 2.0])

    def test_transformed_by_translation(self):
        matrix = np.identity(4)
        matrix[:3, 3] = (2.0, 0.0, -1.0)
        moved = AABB(vec3(0.0, 0.0, 0.0), vec3(1.0, 1.0, 1.0)).transformed(matrix)
        np.testing.assert_allclose(moved.minimum, [2.0, 0.0, -1.0])
        np.testing.assert_allclose(moved.maximum, [3.0, 1.0, 0.0])


class TestSampling:
    def test_seed_is_repeatable(self):
        seed_rng(7)
        first = get_rng().random(5)
        seed_rng(7)
        np.testing.assert_array_equal(get_rng().random(5), first)

    def test_random_int_upper_bound_is_exclusive(self):
        values = {random_int(0, 3) for _ in range(200)}
        assert values == {0, 1, 2}

    def test_each_thread_owns_a_generator(self):
        main = get_rng()
        seen = []

        def worker():
            seen.append(get_rng())

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        assert seen[0] is not main
