# -*- coding: utf-8 -*-
"""
flatbvh/math/intersect.py

Базовые тесты пересечения, скомпилированные Numba (nopython).
Функции вызываются как из Python (AABB.intersect), так и из ядер
обхода в flatbvh.accel.kernels.

error_model="numpy": деление на ноль даёт ±inf, а не ZeroDivisionError –
на этом держится slab‑тест для лучей, параллельных осям.
"""

from __future__ import annotations

import math

import numpy as np
from numba import njit


# ----------------------------------------------------------------------
# Обратное направление луча
# ----------------------------------------------------------------------
@njit(nogil=True, cache=False, error_model="numpy")
def reciprocal(direction):
    inv = np.empty(3, dtype=np.float64)
    for k in range(3):
        inv[k] = 1.0 / direction[k]
    return inv


# ----------------------------------------------------------------------
# Slab‑тест
# ----------------------------------------------------------------------
@njit(nogil=True, cache=False, error_model="numpy")
def slab_bounds(origin, inv_dir,
                min_x, min_y, min_z,
                max_x, max_y, max_z):
    """
    Пересечение луча с AABB, заданным шестью числами.

    Возврат (hit, t_min, t_max).  Для нулевой компоненты направления
    (inv = ±inf) интервал по оси либо весь (-inf, inf), если начало луча
    внутри «слоя», либо пустой – так не появляется NaN от 0 * inf.
    Попадание: t_max >= t_min и t_max > 0 (плоские коробки допускаются).
    Следствие: луч, лишь касающийся ребра или угла коробки
    (t_max == t_min), тоже считается попаданием.
    """
    t_min = -np.inf
    t_max = np.inf

    for k in range(3):
        if k == 0:
            lo, hi = min_x, max_x
        elif k == 1:
            lo, hi = min_y, max_y
        else:
            lo, hi = min_z, max_z

        o = origin[k]
        inv = inv_dir[k]
        if math.isinf(inv):
            if o < lo or o > hi:
                return False, t_min, t_max
            continue

        t0 = (lo - o) * inv
        t1 = (hi - o) * inv
        if t0 > t1:
            t0, t1 = t1, t0
        if t0 > t_min:
            t_min = t0
        if t1 < t_max:
            t_max = t1

    return (t_max >= t_min and t_max > 0.0), t_min, t_max


@njit(nogil=True, cache=False, error_model="numpy")
def slab_intersect(origin, inv_dir, box_min, box_max):
    """Slab‑тест для пары массивов (3,) min/max."""
    return slab_bounds(origin, inv_dir,
                       box_min[0], box_min[1], box_min[2],
                       box_max[0], box_max[1], box_max[2])


# ----------------------------------------------------------------------
# Луч / треугольник (Möller–Trumbore)
# ----------------------------------------------------------------------
@njit(nogil=True, cache=False, error_model="numpy")
def ray_triangle(origin, direction, tri, eps):
    """
    tri – 9 чисел (v0, v1, v2).  Возврат (hit, t, u, v).
    Попадание засчитывается только при t > eps (впереди начала луча).
    """
    e1x = tri[3] - tri[0]
    e1y = tri[4] - tri[1]
    e1z = tri[5] - tri[2]
    e2x = tri[6] - tri[0]
    e2y = tri[7] - tri[1]
    e2z = tri[8] - tri[2]

    # p = direction × e2
    px = direction[1] * e2z - direction[2] * e2y
    py = direction[2] * e2x - direction[0] * e2z
    pz = direction[0] * e2y - direction[1] * e2x

    det = e1x * px + e1y * py + e1z * pz
    # порог относительный: det ~ |e1| * |e2| * |d| * sin(угла)
    scale = (math.sqrt(e1x * e1x + e1y * e1y + e1z * e1z)
             * math.sqrt(e2x * e2x + e2y * e2y + e2z * e2z)
             * math.sqrt(direction[0] * direction[0]
                         + direction[1] * direction[1]
                         + direction[2] * direction[2]))
    if det == 0.0 or abs(det) < eps * scale:
        return False, np.inf, 0.0, 0.0
    inv_det = 1.0 / det

    sx = origin[0] - tri[0]
    sy = origin[1] - tri[1]
    sz = origin[2] - tri[2]

    u = (sx * px + sy * py + sz * pz) * inv_det
    if u < 0.0 or u > 1.0:
        return False, np.inf, 0.0, 0.0

    # q = s × e1
    qx = sy * e1z - sz * e1y
    qy = sz * e1x - sx * e1z
    qz = sx * e1y - sy * e1x

    v = (direction[0] * qx + direction[1] * qy + direction[2] * qz) * inv_det
    if v < 0.0 or u + v > 1.0:
        return False, np.inf, 0.0, 0.0

    t = (e2x * qx + e2y * qy + e2z * qz) * inv_det
    if t <= eps:
        return False, np.inf, 0.0, 0.0
    return True, t, u, v
