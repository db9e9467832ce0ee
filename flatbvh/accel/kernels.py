# -*- coding: utf-8 -*-
"""
flatbvh/accel/kernels.py

Ядра обхода плоского BVH (Numba, nopython, без GIL).

Каждый вызов – один луч: локальный стек фиксированной ёмкости и
локальные переменные, буферы только читаются.  Ядра никогда не бросают
исключений – они возвращают код статуса, а обёртка в traverse.py
превращает его в TraversalStackOverflow / CorruptNodeBufferError:

    STATUS_MISS            – луч ни во что не попал
    STATUS_HIT             – есть попадание
    STATUS_STACK_OVERFLOW  – не хватило стека (результат не определён)
    STATUS_BAD_INDEX       – ссылка за пределы буфера / не после родителя
"""

from __future__ import annotations

import numpy as np
from numba import njit

from flatbvh.math.intersect import ray_triangle, reciprocal, slab_bounds

STATUS_MISS = 0
STATUS_HIT = 1
STATUS_STACK_OVERFLOW = 2
STATUS_BAD_INDEX = 3

_PAYLOAD_A = 3
_PAYLOAD_B = 7


# ----------------------------------------------------------------------
# Вспомогательные функции
# ----------------------------------------------------------------------
@njit(nogil=True, cache=False, error_model="numpy")
def _node_slab(origin, inv_dir, nodes, idx):
    return slab_bounds(origin, inv_dir,
                       nodes[idx, 0], nodes[idx, 1], nodes[idx, 2],
                       nodes[idx, 4], nodes[idx, 5], nodes[idx, 6])


@njit(nogil=True, cache=False, error_model="numpy")
def _decode_children(nodes, idx, n):
    """(ok, left, right) внутреннего узла; ok=False – битые индексы."""
    a = nodes[idx, _PAYLOAD_A]
    b = nodes[idx, _PAYLOAD_B]
    if not (np.isfinite(a) and np.isfinite(b)):
        return False, -1, -1
    # дробный индекс – порча буфера, а не повод округлять
    if a != np.floor(a) or b != np.floor(b):
        return False, -1, -1
    right = np.int64(-a) - 1
    left = np.int64(b)
    if left <= idx or left >= n or right <= idx or right >= n or left == right:
        return False, left, right
    return True, left, right


@njit(nogil=True, cache=False, error_model="numpy")
def _leaf_hit(obj, origin, direction, t_entry,
              triangles, ranges, use_triangles, eps):
    """
    Кандидат в листе: (status, t, triangle).

    Без треугольников – попадание по AABB (t = max(t_entry, 0)).
    С треугольниками – Möller–Trumbore по диапазону объекта;
    объект без меша (first < 0) снова принимается по AABB.
    """
    box_t = t_entry if t_entry > 0.0 else 0.0
    if not use_triangles:
        return STATUS_HIT, box_t, np.int64(-1)
    if obj >= ranges.shape[0]:
        return STATUS_BAD_INDEX, np.inf, np.int64(-1)

    first = ranges[obj, 0]
    count = ranges[obj, 1]
    if first < 0:
        return STATUS_HIT, box_t, np.int64(-1)
    if count < 0 or first + count > triangles.shape[0]:
        return STATUS_BAD_INDEX, np.inf, np.int64(-1)

    best_t = np.inf
    best_tri = np.int64(-1)
    for k in range(first, first + count):
        hit, t, u, v = ray_triangle(origin, direction, triangles[k], eps)
        if hit and t < best_t:
            best_t = t
            best_tri = np.int64(k)
    if best_tri < 0:
        return STATUS_MISS, np.inf, best_tri
    return STATUS_HIT, best_t, best_tri


# ----------------------------------------------------------------------
# Ближайшее попадание
# ----------------------------------------------------------------------
@njit(nogil=True, cache=False, error_model="numpy")
def walk_nearest(origin, direction, nodes, triangles, ranges,
                 use_triangles, capacity, eps):
    """
    Возврат (status, node, object, t, triangle).

    Ближний ребёнок обходится первым; узлы, чей вход дальше уже
    найденного попадания, отбрасываются.  Набор кандидатов тот же, что и
    при полном обходе – меняется только порядок и стоимость.
    При ошибке node – индекс проблемной записи.
    """
    n = nodes.shape[0]
    best_t = np.inf
    best_node = np.int64(-1)
    best_obj = np.int64(-1)
    best_tri = np.int64(-1)
    if n == 0:
        return STATUS_MISS, best_node, best_obj, best_t, best_tri

    inv_dir = reciprocal(direction)
    hit, t0, t1 = _node_slab(origin, inv_dir, nodes, 0)
    if not hit:
        return STATUS_MISS, best_node, best_obj, best_t, best_tri
    if capacity < 1:
        return STATUS_STACK_OVERFLOW, np.int64(0), best_obj, best_t, best_tri

    stack = np.empty(capacity, dtype=np.int64)
    stack_t = np.empty(capacity, dtype=np.float64)
    stack[0] = 0
    stack_t[0] = t0
    sp = 1

    while sp > 0:
        sp -= 1
        idx = stack[sp]
        t_entry = stack_t[sp]
        if t_entry > best_t:
            continue

        a = nodes[idx, _PAYLOAD_A]
        if a >= 0.0:
            if a != np.floor(a):
                return STATUS_BAD_INDEX, idx, best_obj, np.inf, best_tri
            obj = np.int64(a)
            status, t, tri = _leaf_hit(obj, origin, direction, t_entry,
                                       triangles, ranges, use_triangles, eps)
            if status == STATUS_BAD_INDEX:
                return STATUS_BAD_INDEX, idx, obj, np.inf, tri
            if status == STATUS_HIT and t < best_t:
                best_t = t
                best_node = idx
                best_obj = obj
                best_tri = tri
            continue

        ok, left, right = _decode_children(nodes, idx, n)
        if not ok:
            return STATUS_BAD_INDEX, idx, best_obj, np.inf, best_tri

        hl, tl, _ = _node_slab(origin, inv_dir, nodes, left)
        hr, tr, _ = _node_slab(origin, inv_dir, nodes, right)

        # дальний кладём первым – ближний снимется со стека раньше
        if hl and hr and tl < tr:
            first_idx, first_t, second_idx, second_t = right, tr, left, tl
        else:
            first_idx, first_t, second_idx, second_t = left, tl, right, tr
        first_hit = hr if first_idx == right else hl
        second_hit = hl if second_idx == left else hr

        if first_hit and first_t <= best_t:
            if sp >= capacity:
                return STATUS_STACK_OVERFLOW, idx, best_obj, best_t, best_tri
            stack[sp] = first_idx
            stack_t[sp] = first_t
            sp += 1
        if second_hit and second_t <= best_t:
            if sp >= capacity:
                return STATUS_STACK_OVERFLOW, idx, best_obj, best_t, best_tri
            stack[sp] = second_idx
            stack_t[sp] = second_t
            sp += 1

    if best_obj < 0:
        return STATUS_MISS, best_node, best_obj, best_t, best_tri
    return STATUS_HIT, best_node, best_obj, best_t, best_tri


# ----------------------------------------------------------------------
# Все кандидаты (базовый контракт: оба ребёнка при попадании в родителя)
# ----------------------------------------------------------------------
@njit(nogil=True, cache=False, error_model="numpy")
def walk_all(origin, direction, nodes, triangles, ranges,
             use_triangles, capacity, eps,
             out_node, out_obj, out_t, out_tri):
    """
    Заполняет out_* всеми кандидатами в порядке обнаружения.
    Возврат (status, count, bad_node).
    """
    n = nodes.shape[0]
    count = 0
    if n == 0:
        return STATUS_MISS, count, np.int64(-1)

    inv_dir = reciprocal(direction)
    hit, t0, t1 = _node_slab(origin, inv_dir, nodes, 0)
    if not hit:
        return STATUS_MISS, count, np.int64(-1)
    if capacity < 1:
        return STATUS_STACK_OVERFLOW, count, np.int64(0)

    stack = np.empty(capacity, dtype=np.int64)
    stack[0] = 0
    sp = 1

    while sp > 0:
        sp -= 1
        idx = stack[sp]
        hit, t0, t1 = _node_slab(origin, inv_dir, nodes, idx)
        if not hit:
            continue

        a = nodes[idx, _PAYLOAD_A]
        if a >= 0.0:
            if a != np.floor(a):
                return STATUS_BAD_INDEX, count, idx
            obj = np.int64(a)
            status, t, tri = _leaf_hit(obj, origin, direction, t0,
                                       triangles, ranges, use_triangles, eps)
            if status == STATUS_BAD_INDEX:
                return STATUS_BAD_INDEX, count, idx
            if status == STATUS_HIT:
                if count >= out_obj.shape[0]:
                    return STATUS_BAD_INDEX, count, idx
                out_node[count] = idx
                out_obj[count] = obj
                out_t[count] = t
                out_tri[count] = tri
                count += 1
            continue

        ok, left, right = _decode_children(nodes, idx, n)
        if not ok:
            return STATUS_BAD_INDEX, count, idx
        if sp + 2 > capacity:
            return STATUS_STACK_OVERFLOW, count, idx
        stack[sp] = right
        stack[sp + 1] = left
        sp += 2

    if count == 0:
        return STATUS_MISS, count, np.int64(-1)
    return STATUS_HIT, count, np.int64(-1)


# ----------------------------------------------------------------------
# Пакет лучей (один поток TaskPool обрабатывает кусок массива)
# ----------------------------------------------------------------------
@njit(nogil=True, cache=False, error_model="numpy")
def walk_nearest_batch(origins, directions, nodes, triangles, ranges,
                       use_triangles, capacity, eps,
                       out_status, out_node, out_obj, out_t, out_tri):
    for r in range(origins.shape[0]):
        status, node, obj, t, tri = walk_nearest(
            origins[r], directions[r], nodes, triangles, ranges,
            use_triangles, capacity, eps,
        )
        out_status[r] = status
        out_node[r] = node
        out_obj[r] = obj
        out_t[r] = t
        out_tri[r] = tri
