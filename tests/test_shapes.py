"""Tests for analytic shapes: spheres, rectangles, boxes, transforms and media."""

import math

import numpy as np
import pytest

from src.tracer.core.ray import Ray, normalize, vec3
from src.tracer.geometry.constant_medium import ConstantMedium
from src.tracer.geometry.rect import RenderBox, XYRect, XZRect, YZRect
from src.tracer.geometry.sphere import MovingSphere, Sphere
from src.tracer.geometry.transform import Object, Transform


class TestSphere:
    def test_hit_from_outside(self, gray):
        sphere = Sphere((0.0, 0.0, -5.0), 1.0, gray)
        record = sphere.hit(Ray(vec3(), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10)
        assert record is not None
        assert record.t == pytest.approx(4.0)
        assert record.front_face
        np.testing.assert_allclose(record.normal, [0.0, 0.0, 1.0])

    def test_hit_from_inside_flips_normal(self, gray):
        sphere = Sphere((0.0, 0.0, 0.0), 2.0, gray)
        record = sphere.hit(Ray(vec3(), vec3(1.0, 0.0, 0.0)), 1e-3, 1e10)
        assert record.t == pytest.approx(2.0)
        assert not record.front_face
        np.testing.assert_allclose(record.normal, [-1.0, 0.0, 0.0])

    def test_window_is_respected(self, gray):
        sphere = Sphere((0.0, 0.0, -5.0), 1.0, gray)
        ray = Ray(vec3(), vec3(0.0, 0.0, -1.0))
        assert sphere.hit(ray, 1e-3, 3.0) is None
        assert sphere.hit(Ray(vec3(), vec3(0.0, 1.0, 0.0)), 1e-3, 1e10) is None

    def test_non_unit_direction_gives_parametric_t(self, gray):
        sphere = Sphere((0.0, 0.0, -5.0), 1.0, gray)
        record = sphere.hit(Ray(vec3(), vec3(0.0, 0.0, -2.0)), 1e-3, 1e10)
        assert record.t == pytest.approx(2.0)

    def test_rejects_non_positive_radius(self, gray):
        with pytest.raises(ValueError):
            Sphere((0.0, 0.0, 0.0), 0.0, gray)

    def test_sampled_directions_agree_with_prob(self, gray):
        sphere = Sphere((0.0, 0.0, -4.0), 1.0, gray)
        origin = vec3()
        for _ in range(50):
            info = sphere.generate_ray_in_area(origin, 0.0)
            assert sphere.prob(info.to_area) == pytest.approx(info.solid_angle_density(), rel=1e-6)

    def test_density_covers_the_visible_cone(self, gray):
        # E[1 / p] over samples drawn with density p is the measure of its support
        distance = 3.0
        sphere = Sphere((0.0, 0.0, -distance), 1.0, gray)
        cos_max = math.sqrt(1.0 - 1.0 / distance**2)
        cone_solid_angle = 2.0 * math.pi * (1.0 - cos_max)
        n = 4000
        total = 0.0
        for _ in range(n):
            info = sphere.generate_ray_in_area(vec3(), 0.0)
            total += 1.0 / sphere.prob(info.to_area)
        assert total / n == pytest.approx(cone_solid_angle, rel=0.05)

    def test_prob_of_miss_is_zero(self, gray):
        sphere = Sphere((0.0, 0.0, -4.0), 1.0, gray)
        assert sphere.prob(Ray(vec3(), vec3(0.0, 1.0, 0.0))) == 0.0

    def test_set_field(self, gray):
        sphere = Sphere((0.0, 0.0, 0.0), 1.0, gray)
        sphere.set_field("radius", 2.5)
        assert sphere.fields()["radius"] == 2.5
        with pytest.raises(KeyError):
            sphere.set_field("colour", 1.0)


class TestMovingSphere:
    def test_center_is_interpolated(self, gray):
        sphere = MovingSphere((0.0, 0.0, 0.0), (2.0, 0.0, 0.0), 0.0, 1.0, 0.5, gray)
        np.testing.assert_allclose(sphere.center(0.5), [1.0, 0.0, 0.0])

    def test_hit_uses_ray_time(self, gray):
        sphere = MovingSphere((0.0, 0.0, -5.0), (10.0, 0.0, -5.0), 0.0, 1.0, 1.0, gray)
        ray_early = Ray(vec3(), vec3(0.0, 0.0, -1.0), 0.0)
        ray_late = Ray(vec3(), vec3(0.0, 0.0, -1.0), 1.0)
        assert sphere.hit(ray_early, 1e-3, 1e10) is not None
        assert sphere.hit(ray_late, 1e-3, 1e10) is None

    def test_bounding_box_covers_motion(self, gray):
        sphere = MovingSphere((0.0, 0.0, 0.0), (4.0, 0.0, 0.0), 0.0, 1.0, 1.0, gray)
        box = sphere.bounding_box(0.0, 1.0)
        np.testing.assert_allclose(box.minimum, [-1.0, -1.0, -1.0])
        np.testing.assert_allclose(box.maximum, [5.0, 1.0, 1.0])

    def test_set_field(self, gray):
        sphere = MovingSphere((0.0, 0.0, 0.0), (4.0, 0.0, 0.0), 0.0, 1.0, 1.0, gray)
        for key, value in sphere.fields().items():
            sphere.set_field(key, value)
        sphere.set_field("center1", (0.0, 4.0, 0.0))
        np.testing.assert_allclose(sphere.center(0.5), [0.0, 2.0, 0.0])
        with pytest.raises(ValueError):
            sphere.set_field("radius", 0.0)
        with pytest.raises(KeyError):
            sphere.set_field("time0", 0.5)


class TestRectangles:
    def test_xy_rect_hit(self, gray):
        rect = XYRect(-1.0, 1.0, -1.0, 1.0, -2.0, gray)
        record = rect.hit(Ray(vec3(0.5, 0.5, 0.0), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10)
        assert record.t == pytest.approx(2.0)
        assert record.uv == pytest.approx((0.75, 0.75))
        # +z normal faces a ray travelling towards -z
        assert record.front_face

    def test_rect_miss_outside_extent(self, gray):
        rect = YZRect(0.0, 1.0, 0.0, 1.0, 3.0, gray)
        assert rect.hit(Ray(vec3(0.0, 2.0, 0.5), vec3(1.0, 0.0, 0.0)), 1e-3, 1e10) is None

    def test_parallel_ray_misses(self, gray):
        rect = XZRect(0.0, 1.0, 0.0, 1.0, 1.0, gray)
        assert rect.hit(Ray(vec3(0.5, 0.0, 0.5), vec3(1.0, 0.0, 0.0)), 1e-3, 1e10) is None

    def test_bounding_box_is_padded(self, gray):
        box = XZRect(0.0, 2.0, 0.0, 3.0, 1.0, gray).bounding_box(0.0, 1.0)
        assert box.maximum[1] > box.minimum[1]

    def test_rejects_empty_extent(self, gray):
        with pytest.raises(ValueError):
            XYRect(1.0, 1.0, 0.0, 1.0, 0.0, gray)

    def test_prob_is_zero_from_behind(self, gray):
        light = XZRect(-1.0, 1.0, -1.0, 1.0, 2.0, gray)
        assert light.prob(Ray(vec3(), vec3(0.0, 1.0, 0.0))) == 0.0

    def test_flipped_light_is_sampled_from_below(self, gray):
        light = XZRect(-1.0, 1.0, -1.0, 1.0, 2.0, gray, flip_normal=True)
        # density of the straight-up direction: d^2 / (cos * area) = 4 / 4
        assert light.prob(Ray(vec3(), vec3(0.0, 1.0, 0.0))) == pytest.approx(1.0)
        for _ in range(20):
            info = light.generate_ray_in_area(vec3(), 0.0)
            assert light.prob(info.to_area) == pytest.approx(info.solid_angle_density(), rel=1e-6)


class TestRenderBox:
    def test_hit_nearest_face(self, gray):
        box = RenderBox((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0), gray)
        record = box.hit(Ray(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10)
        assert record.t == pytest.approx(4.0)
        np.testing.assert_allclose(record.normal, [0.0, 0.0, 1.0])

    def test_rejects_inverted_corners(self, gray):
        with pytest.raises(ValueError):
            RenderBox((1.0, 0.0, 0.0), (0.0, 1.0, 1.0), gray)

    def test_set_field_rebuilds_faces(self, gray):
        box = RenderBox((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0), gray)
        for key, value in box.fields().items():
            box.set_field(key, value)
        box.set_field("box_max", (1.0, 1.0, 3.0))
        record = box.hit(Ray(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10)
        assert record.t == pytest.approx(2.0)
        np.testing.assert_allclose(box.bounding_box(0.0, 1.0).maximum, [1.0, 1.0, 3.0])

    def test_rejected_corner_keeps_box(self, gray):
        box = RenderBox((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0), gray)
        with pytest.raises(ValueError):
            box.set_field("box_min", (2.0, 0.0, 0.0))
        np.testing.assert_allclose(box.fields()["box_min"], [-1.0, -1.0, -1.0])
        assert box.hit(Ray(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10).t == pytest.approx(4.0)


class TestTransform:
    def test_translate(self, gray):
        placed = Object(Sphere((0.0, 0.0, 0.0), 1.0, gray), Transform.identity().translate((0.0, 0.0, -5.0)))
        record = placed.hit(Ray(vec3(), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10)
        assert record.t == pytest.approx(4.0)
        np.testing.assert_allclose(record.position, [0.0, 0.0, -4.0], atol=1e-9)
        np.testing.assert_allclose(record.normal, [0.0, 0.0, 1.0], atol=1e-9)

    def test_rotation_then_translation(self, gray):
        transform = Transform.identity().rotate_y(90.0).translate((1.0, 0.0, 0.0))
        np.testing.assert_allclose(transform.point_to_world(vec3(1.0, 0.0, 0.0)), [1.0, 0.0, -1.0], atol=1e-12)
        np.testing.assert_allclose(transform.point_to_local(vec3(1.0, 0.0, -1.0)), [1.0, 0.0, 0.0], atol=1e-12)

    def test_rotated_box_bounding_box(self, gray):
        box = RenderBox((0.0, 0.0, 0.0), (2.0, 1.0, 1.0), gray)
        placed = Object(box, Transform.identity().rotate_y(90.0))
        bounds = placed.bounding_box(0.0, 1.0)
        np.testing.assert_allclose(bounds.minimum, [0.0, 0.0, -2.0], atol=1e-9)
        np.testing.assert_allclose(bounds.maximum, [1.0, 1.0, 0.0], atol=1e-9)

    def test_uniform_scale_keeps_light_density(self, gray):
        scaled = Object(Sphere((0.0, 0.0, 0.0), 1.0, gray), Transform.identity().scale(2.0).translate((0.0, 0.0, -6.0)))
        reference = Sphere((0.0, 0.0, -6.0), 2.0, gray)
        ray = Ray(vec3(), normalize(vec3(0.1, 0.05, -1.0)))
        assert scaled.prob(ray) == pytest.approx(reference.prob(ray), rel=1e-6)

    def test_zero_scale_rejected(self):
        with pytest.raises(ValueError):
            Transform.identity().scale(0.0)

    def test_transform_field(self, gray):
        placed = Object(Sphere((0.0, 0.0, 0.0), 1.0, gray))
        with pytest.raises(TypeError):
            placed.set_field("transform", "not a transform")
        placed.set_field("radius", 3.0)
        assert placed.fields()["radius"] == 3.0


class TestConstantMedium:
    def test_dense_medium_scatters_at_boundary(self):
        from src.tracer.materials import Isotropic

        medium = ConstantMedium(Sphere((0.0, 0.0, -5.0), 1.0, None), Isotropic((1.0, 1.0, 1.0)), 1e6)
        record = medium.hit(Ray(vec3(), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10)
        assert record is not None
        assert record.t == pytest.approx(4.0, abs=1e-3)
        assert record.front_face

    def test_thin_medium_is_mostly_transparent(self):
        from src.tracer.materials import Isotropic

        medium = ConstantMedium(Sphere((0.0, 0.0, -5.0), 1.0, None), Isotropic((1.0, 1.0, 1.0)), 1e-6)
        hits = sum(medium.hit(Ray(vec3(), vec3(0.0, 0.0, -1.0)), 1e-3, 1e10) is not None for _ in range(100))
        assert hits <= 1

    def test_rejects_non_positive_density(self):
        with pytest.raises(ValueError):
            ConstantMedium(Sphere((0.0, 0.0, 0.0), 1.0, None), None, 0.0)
