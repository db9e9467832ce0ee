# -*- coding: utf-8 -*-
import numpy as np
import pytest

from flatbvh import AABB, InvalidBoundsError, Mat4, Ray, merge, intersect
from flatbvh.math.intersect import ray_triangle


def test_mat4_identity():
    I = Mat4.identity()
    assert np.allclose(I.to_np(), np.eye(4, dtype=np.float32))


def test_mat4_translation():
    M = Mat4.translate(1, 2, 3)
    p = np.array([0, 0, 0, 1], dtype=np.float32)
    res = M.to_np() @ p
    assert np.allclose(res, np.array([1, 2, 3, 1], dtype=np.float32))


def test_mat4_transform_points():
    M = Mat4.translate(1, 0, 0) @ Mat4.rotate_z(90)
    pts = M.transform_points(np.array([[1, 0, 0], [0, 0, 5]], dtype=np.float32))
    assert pts.shape == (2, 3)
    assert np.allclose(pts, [[1, 1, 0], [1, 0, 5]], atol=1e-6)


def test_mat4_rejects_wrong_size():
    with pytest.raises(ValueError):
        Mat4(np.zeros(9))


def test_aabb_rejects_inverted_box():
    with pytest.raises(InvalidBoundsError):
        AABB((0, 0, 0), (1, -1, 1))
    with pytest.raises(InvalidBoundsError):
        AABB((0, np.nan, 0), (1, 1, 1))


def test_aabb_flat_box_is_valid():
    box = AABB((0, 0, 0), (1, 1, 0))
    assert box.extent.tolist() == [1, 1, 0]


def test_merge_is_componentwise():
    a = AABB((-1, 0, 2), (0, 1, 3))
    b = AABB((0, -2, 1), (4, 0, 2))
    m = merge(a, b)
    assert m.min.tolist() == [-1, -2, 1]
    assert m.max.tolist() == [4, 1, 3]


def test_merge_commutative_and_associative():
    a = AABB((0, 0, 0), (1, 1, 1))
    b = AABB((-3, 2, 0), (-1, 5, 0.5))
    c = AABB((2, -1, -4), (3, 0, -2))
    assert merge(a, b) == merge(b, a)
    assert merge(merge(a, b), c) == merge(a, merge(b, c))


def test_aabb_helpers():
    box = AABB.from_points([[0, 0, 0], [4, 1, -2], [1, 3, 0]])
    assert box.min.tolist() == [0, 0, -2]
    assert box.max.tolist() == [4, 3, 0]
    assert box.longest_axis() == 0
    assert box.contains_point((1, 1, -1))
    assert not box.contains_point((5, 1, -1))


def test_slab_hit_towards_center():
    box = AABB((-1, -1, -1), (1, 1, 1))
    ray = Ray.towards((5, 4, -3), box.center)
    hit, t_min, t_max = intersect(ray, box)
    assert hit
    assert t_min <= t_max
    assert t_max > 0


def test_slab_miss_away_from_box():
    box = AABB((-1, -1, -1), (1, 1, 1))
    ray = Ray((5, 4, -3), (1, 1, -1))
    hit, _, _ = intersect(ray, box)
    assert not hit


def test_slab_zero_direction_component():
    box = AABB((-1, -1, -1), (1, 1, 1))
    # параллельно оси z, внутри слоёв x и y
    hit, t_min, t_max = box.intersect(Ray((0.5, -0.5, -10), (0, 0, 1)))
    assert hit
    assert t_min == pytest.approx(9.0)
    assert t_max == pytest.approx(11.0)
    assert np.isfinite(t_min) and np.isfinite(t_max)

    # параллельно, но вне слоя x
    hit, _, _ = box.intersect(Ray((2.0, 0, -10), (0, 0, 1)))
    assert not hit

    # начало ровно на грани слоя: 0 * inf не должно дать NaN/промах
    hit, t_min, t_max = box.intersect(Ray((1.0, 0, -10), (0, 0, 1)))
    assert hit
    assert not np.isnan(t_min) and not np.isnan(t_max)

    # отрицательный ноль в направлении
    hit, _, _ = box.intersect(Ray((0, 0, -10), (-0.0, 0.0, 1)))
    assert hit


def test_slab_origin_inside_box():
    box = AABB((-1, -1, -1), (1, 1, 1))
    hit, t_min, t_max = box.intersect(Ray((0, 0, 0), (0, 1, 0)))
    assert hit
    assert t_min < 0 < t_max


def test_slab_box_behind_ray():
    box = AABB((-1, -1, -1), (1, 1, 1))
    hit, _, _ = box.intersect(Ray((0, 0, 5), (0, 0, 1)))
    assert not hit


def test_ray_validation():
    with pytest.raises(ValueError):
        Ray((0, 0, 0), (0, 0, 0))
    with pytest.raises(ValueError):
        Ray((0, 0), (0, 0, 1))
    r = Ray.towards((0, 0, -10), (0, 0, 0))
    assert np.allclose(r.direction, [0, 0, 1])
    assert np.allclose(r.at(2.0), [0, 0, -8])


def test_mat4_axis_rotations():
    assert np.allclose(Mat4.rotate_x(90).transform_points([[0, 1, 0]]), [[0, 0, 1]], atol=1e-6)
    assert np.allclose(Mat4.rotate_y(90).transform_points([[0, 0, 1]]), [[1, 0, 0]], atol=1e-6)
    assert np.allclose(Mat4.rotate_z(90).transform_points([[1, 0, 0]]), [[0, 1, 0]], atol=1e-6)


def test_mat4_from_euler_order():
    # roll (z) → pitch (x) → yaw (y)
    M = Mat4.from_euler(0, 90, 90)
    pts = M.transform_points([[1, 0, 0], [0, 0, 1]])
    assert np.allclose(pts, [[0, 1, 0], [1, 0, 0]], atol=1e-6)
    expected = Mat4.rotate_y(30) @ Mat4.rotate_x(45) @ Mat4.rotate_z(60)
    assert np.allclose(Mat4.from_euler(45, 30, 60).to_np(), expected.to_np())


# ----------------------------------------------------------------------
# Луч / треугольник
# ----------------------------------------------------------------------
def _tri(*verts):
    return np.array(verts, dtype=np.float32).reshape(-1)


def test_ray_triangle_small_triangle_is_hit():
    tri = _tri((0, 0, 0), (1e-4, 0, 0), (0, 1e-4, 0))
    hit, t, u, v = ray_triangle(np.array([2.5e-5, 2.5e-5, -1.0]),
                                np.array([0.0, 0.0, 1.0]), tri, 1e-7)
    assert hit
    assert t == pytest.approx(1.0)
    assert u == pytest.approx(0.25, abs=1e-3)
    assert v == pytest.approx(0.25, abs=1e-3)


def test_ray_triangle_parallel_ray_misses():
    tri = _tri((0, 0, 0), (1, 0, 0), (0, 1, 0))
    hit, t, _, _ = ray_triangle(np.array([-1.0, 0.25, 0.0]),
                                np.array([1.0, 0.0, 0.0]), tri, 1e-7)
    assert not hit
    assert t == np.inf


def test_ray_triangle_degenerate_triangle_misses():
    tri = _tri((0, 0, 0), (1, 0, 0), (2, 0, 0))
    hit, _, _, _ = ray_triangle(np.array([0.5, 0.0, -1.0]),
                                np.array([0.0, 0.0, 1.0]), tri, 1e-7)
    assert not hit
