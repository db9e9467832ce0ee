# flatbvh/accel/traverse.py
"""
Обход плоского BVH лучом.

    traverse(ray, flat)            – ближайшее попадание (HitResult)
    traverse_all(ray, flat)        – все кандидаты, отсортированные по t
    traverse_many(origins, dirs)   – много независимых лучей через TaskPool

Обход не хранит состояния между вызовами; буферы только читаются.
Переполнение стека – TraversalStackOverflow (это НЕ промах),
битые индексы в буфере – CorruptNodeBufferError.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from flatbvh.accel import kernels
from flatbvh.accel.flatten import FlatBVH, as_flat
from flatbvh.errors import CorruptNodeBufferError, TraversalStackOverflow
from flatbvh.geometry.extract import TriangleSoup
from flatbvh.math.ray import Ray
from flatbvh.multithread.task_pool import TaskPool
from flatbvh.utils.config import default_config
from flatbvh.utils.logger import logger

_NO_TRIANGLES = np.zeros((0, 9), dtype=np.float32)
_NO_RANGES = np.zeros((0, 2), dtype=np.int64)


class HitResult:
    """Результат запроса одного луча."""

    __slots__ = ("hit", "object_index", "distance", "point", "normal",
                 "triangle_index", "node_index")

    def __init__(self, hit: bool, object_index: int = -1, distance: float = float("inf"),
                 point: Optional[np.ndarray] = None, normal: Optional[np.ndarray] = None,
                 triangle_index: int = -1, node_index: int = -1):
        self.hit = hit
        self.object_index = object_index
        self.distance = distance
        self.point = point
        self.normal = normal
        self.triangle_index = triangle_index
        self.node_index = node_index

    @staticmethod
    def miss() -> "HitResult":
        return HitResult(False)

    def __bool__(self) -> bool:
        return self.hit

    def __repr__(self) -> str:
        if not self.hit:
            return "HitResult(miss)"
        return (f"HitResult(object={self.object_index}, t={self.distance:.4f}, "
                f"triangle={self.triangle_index})")


class BatchHits:
    """Результаты traverse_many: массивы длины R (число лучей)."""

    __slots__ = ("hit", "object_index", "distance", "triangle_index")

    def __init__(self, hit, object_index, distance, triangle_index):
        self.hit = hit
        self.object_index = object_index
        self.distance = distance
        self.triangle_index = triangle_index

    def __len__(self) -> int:
        return int(self.hit.shape[0])

    def __repr__(self) -> str:
        return f"BatchHits(rays={len(self)}, hits={int(np.count_nonzero(self.hit))})"


# ----------------------------------------------------------------------
# Подготовка буферов
# ----------------------------------------------------------------------
def _triangle_buffers(flat: FlatBVH, triangles: Optional[TriangleSoup]):
    soup = triangles if triangles is not None else flat.soup
    if soup is None:
        return _NO_TRIANGLES, _NO_RANGES, False
    if not isinstance(soup, TriangleSoup):
        raise TypeError("triangles must be a TriangleSoup (buffer + per-object ranges)")
    return soup.triangles, soup.ranges, True


def _settings(max_stack: Optional[int], epsilon: Optional[float]):
    cfg = default_config()
    capacity = cfg.max_stack_depth if max_stack is None else int(max_stack)
    eps = cfg.epsilon if epsilon is None else float(epsilon)
    return capacity, eps


def _raise_for_status(status: int, node: int, capacity: int) -> None:
    if status == kernels.STATUS_STACK_OVERFLOW:
        logger.error(f"[Traverse] Stack overflow at record {node} (capacity {capacity}).")
        raise TraversalStackOverflow(capacity)
    if status == kernels.STATUS_BAD_INDEX:
        raise CorruptNodeBufferError(
            f"record {node} references a child or triangle range outside the buffer"
        )


def _box_normal(flat: FlatBVH, node: int, point: np.ndarray) -> np.ndarray:
    """Нормаль грани AABB листа, ближайшей к точке попадания."""
    lo = flat.nodes[node, 0:3].astype(np.float64)
    hi = flat.nodes[node, 4:7].astype(np.float64)
    dist = np.concatenate([np.abs(point - lo), np.abs(point - hi)])
    face = int(np.argmin(dist))
    normal = np.zeros(3, dtype=np.float64)
    normal[face % 3] = -1.0 if face < 3 else 1.0
    return normal


def _triangle_normal(tris: np.ndarray, tri: int, direction: np.ndarray) -> np.ndarray:
    v = tris[tri].astype(np.float64).reshape((3, 3))
    n = np.cross(v[1] - v[0], v[2] - v[0])
    length = np.linalg.norm(n)
    if length > 0.0:
        n /= length
    # нормаль смотрит навстречу лучу
    if np.dot(n, direction) > 0.0:
        n = -n
    return n


def _make_hit(ray: Ray, flat: FlatBVH, tris: np.ndarray,
              node: int, obj: int, t: float, tri: int) -> HitResult:
    point = ray.at(t)
    if tri >= 0:
        normal = _triangle_normal(tris, tri, ray.direction)
    else:
        normal = _box_normal(flat, node, point)
    return HitResult(True, int(obj), float(t), point, normal, int(tri), int(node))


# ----------------------------------------------------------------------
# Публичный API
# ----------------------------------------------------------------------
def traverse(ray: Ray, nodes, triangles: Optional[TriangleSoup] = None,
             max_stack: Optional[int] = None, epsilon: Optional[float] = None) -> HitResult:
    """Ближайшее попадание луча; пустое дерево – сразу промах."""
    flat = as_flat(nodes)
    if flat.is_empty:
        return HitResult.miss()

    tris, ranges, use_tris = _triangle_buffers(flat, triangles)
    capacity, eps = _settings(max_stack, epsilon)

    status, node, obj, t, tri = kernels.walk_nearest(
        ray.origin, ray.direction, flat.nodes, tris, ranges, use_tris, capacity, eps,
    )
    _raise_for_status(status, node, capacity)
    if status == kernels.STATUS_MISS:
        return HitResult.miss()
    return _make_hit(ray, flat, tris, node, obj, t, tri)


def traverse_all(ray: Ray, nodes, triangles: Optional[TriangleSoup] = None,
                 max_stack: Optional[int] = None,
                 epsilon: Optional[float] = None) -> List[HitResult]:
    """Все кандидаты без отсечения, по возрастанию расстояния."""
    flat = as_flat(nodes)
    if flat.is_empty:
        return []

    tris, ranges, use_tris = _triangle_buffers(flat, triangles)
    capacity, eps = _settings(max_stack, epsilon)

    m = flat.record_count
    out_node = np.empty(m, dtype=np.int64)
    out_obj = np.empty(m, dtype=np.int64)
    out_t = np.empty(m, dtype=np.float64)
    out_tri = np.empty(m, dtype=np.int64)

    status, count, bad = kernels.walk_all(
        ray.origin, ray.direction, flat.nodes, tris, ranges, use_tris, capacity, eps,
        out_node, out_obj, out_t, out_tri,
    )
    _raise_for_status(status, bad, capacity)

    order = np.argsort(out_t[:count], kind="stable")
    return [
        _make_hit(ray, flat, tris, out_node[i], out_obj[i], out_t[i], out_tri[i])
        for i in order
    ]


def traverse_many(origins, directions, nodes,
                  triangles: Optional[TriangleSoup] = None,
                  max_stack: Optional[int] = None, epsilon: Optional[float] = None,
                  pool: Optional[TaskPool] = None,
                  chunk_size: Optional[int] = None) -> BatchHits:
    """
    Ближайшие попадания для R лучей.  Лучи делятся на куски, каждый
    кусок – задача TaskPool (ядро отпускает GIL).
    """
    o = np.ascontiguousarray(origins, dtype=np.float64).reshape((-1, 3))
    d = np.ascontiguousarray(directions, dtype=np.float64).reshape((-1, 3))
    if o.shape != d.shape:
        raise ValueError(f"origins {o.shape} and directions {d.shape} differ")
    if np.any(np.all(d == 0.0, axis=1)):
        raise ValueError("Ray direction must be non-zero")

    r = o.shape[0]
    status = np.zeros(r, dtype=np.int64)
    node = np.full(r, -1, dtype=np.int64)
    obj = np.full(r, -1, dtype=np.int64)
    dist = np.full(r, np.inf, dtype=np.float64)
    tri = np.full(r, -1, dtype=np.int64)

    flat = as_flat(nodes)
    if flat.is_empty or r == 0:
        return BatchHits(status == kernels.STATUS_HIT, obj, dist, tri)

    tris, ranges, use_tris = _triangle_buffers(flat, triangles)
    capacity, eps = _settings(max_stack, epsilon)
    threads = default_config().section("threads")
    if chunk_size is None:
        chunk_size = int(threads["chunk_size"])
    chunk_size = max(1, int(chunk_size))

    own_pool = pool is None
    if own_pool:
        pool = TaskPool(max_workers=threads["max_workers"])
    try:
        for start, stop in pool.chunks(r, chunk_size):
            pool.submit(
                kernels.walk_nearest_batch,
                o[start:stop], d[start:stop], flat.nodes, tris, ranges,
                use_tris, capacity, eps,
                status[start:stop], node[start:stop], obj[start:stop],
                dist[start:stop], tri[start:stop],
            )
        pool.wait_all()
    finally:
        if own_pool:
            pool.shutdown()

    for code in (kernels.STATUS_STACK_OVERFLOW, kernels.STATUS_BAD_INDEX):
        failed = np.nonzero(status == code)[0]
        if failed.size:
            _raise_for_status(code, int(node[failed[0]]), capacity)

    return BatchHits(status == kernels.STATUS_HIT, obj, dist, tri)
