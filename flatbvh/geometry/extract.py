# flatbvh/geometry/extract.py
"""
Извлечение геометрии: мировые AABB объектов и плоский «треугольный суп».

Суп – массив (T, 9) float32: три вершины × xyz в мировых координатах,
порядок «объект → треугольник → вершина».  Таблица ranges (K, 2)
сопоставляет индексу объекта пару (первый треугольник, количество);
объекты без меша получают (-1, 0), и обход принимает для них
попадание по AABB.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from flatbvh.errors import MeshDataError
from flatbvh.math.aabb import AABB
from flatbvh.scene.mesh import MeshData
from flatbvh.utils.logger import logger

NO_TRIANGLES = -1


class TriangleSoup:
    """Неизменяемый суп треугольников + таблица диапазонов по объектам."""

    __slots__ = ("triangles", "ranges")

    def __init__(self, triangles: np.ndarray, ranges: np.ndarray):
        triangles = np.ascontiguousarray(triangles, dtype=np.float32).reshape((-1, 9))
        ranges = np.ascontiguousarray(ranges, dtype=np.int64).reshape((-1, 2))
        triangles.flags.writeable = False
        ranges.flags.writeable = False
        self.triangles = triangles
        self.ranges = ranges

    @staticmethod
    def empty() -> "TriangleSoup":
        return TriangleSoup(np.zeros((0, 9), np.float32), np.zeros((0, 2), np.int64))

    @property
    def triangle_count(self) -> int:
        return int(self.triangles.shape[0])

    @property
    def buffer(self) -> np.ndarray:
        """Плоский вид: triangle_count * 9 чисел."""
        return self.triangles.reshape(-1)

    def range_of(self, object_index: int) -> tuple[int, int]:
        if object_index < 0 or object_index >= self.ranges.shape[0]:
            return NO_TRIANGLES, 0
        first, count = self.ranges[object_index]
        return int(first), int(count)

    def triangles_of(self, object_index: int) -> np.ndarray:
        first, count = self.range_of(object_index)
        if first == NO_TRIANGLES:
            return self.triangles[:0]
        return self.triangles[first:first + count]

    def __len__(self) -> int:
        return self.triangle_count

    def __repr__(self) -> str:
        return f"TriangleSoup(triangles={self.triangle_count}, objects={self.ranges.shape[0]})"


# ----------------------------------------------------------------------
# Проверка буферов меша
# ----------------------------------------------------------------------
def validate_mesh(mesh: MeshData, object_index=None) -> None:
    """Fail‑fast: несогласованные буферы → MeshDataError с номером объекта."""
    who = object_index if object_index is not None else mesh.name

    if mesh.positions.size % 3 != 0:
        raise MeshDataError(who, f"position buffer length {mesh.positions.size} "
                                 "is not a multiple of 3")
    if mesh.indices.size % 3 != 0:
        raise MeshDataError(who, f"index buffer length {mesh.indices.size} "
                                 "is not a multiple of 3 (inconsistent triangle count)")
    if not np.all(np.isfinite(mesh.positions)):
        raise MeshDataError(who, "position buffer contains non-finite values")
    if mesh.world.m.shape != (4, 4):
        raise MeshDataError(who, f"world transform must be 4x4, got {mesh.world.m.shape}")

    if mesh.indices.size:
        vertex_count = mesh.vertex_count
        lo = int(mesh.indices.min())
        hi = int(mesh.indices.max())
        if lo < 0:
            bad = int(np.argmax(mesh.indices < 0))
            raise MeshDataError(who, f"index {lo} at position {bad} is negative")
        if hi >= vertex_count:
            bad = int(np.argmax(mesh.indices >= vertex_count))
            raise MeshDataError(
                who, f"index {hi} at position {bad} references a vertex "
                     f"outside the position buffer ({vertex_count} vertices)"
            )


def world_positions(mesh: MeshData, object_index=None) -> np.ndarray:
    """Все вершины меша в мировых координатах, (V, 3) float32."""
    validate_mesh(mesh, object_index)
    return mesh.world.transform_points(mesh.positions.reshape((-1, 3)))


def object_aabb(mesh: MeshData, object_index=None) -> AABB:
    """Мировой AABB по преобразованным вершинам (точнее, чем 8 углов)."""
    verts = world_positions(mesh, object_index)
    if verts.shape[0] == 0:
        raise MeshDataError(object_index if object_index is not None else mesh.name,
                            "mesh has no vertices")
    return AABB.from_points(verts)


def mesh_triangles(mesh: MeshData, object_index=None) -> np.ndarray:
    """Треугольники одного меша в мировых координатах, (T, 9) float32."""
    verts = world_positions(mesh, object_index)
    if mesh.indices.size == 0:
        return np.zeros((0, 9), dtype=np.float32)
    return verts[mesh.indices].reshape((-1, 9)).astype(np.float32)


# ----------------------------------------------------------------------
# Суп по всем объектам
# ----------------------------------------------------------------------
def build_triangle_soup(objects: Sequence | Iterable) -> TriangleSoup:
    """
    Для каждого объекта с мешем – все его треугольники в мировых
    координатах, в порядке объектов и треугольников внутри объекта.
    """
    objects = list(objects)
    if not objects:
        return TriangleSoup.empty()

    size = max(int(o.index) for o in objects) + 1
    if min(int(o.index) for o in objects) < 0:
        bad = next(o.index for o in objects if int(o.index) < 0)
        raise MeshDataError(bad, "object index must be non-negative")

    ranges = np.full((size, 2), 0, dtype=np.int64)
    ranges[:, 0] = NO_TRIANGLES
    seen = set()
    chunks = []
    offset = 0

    for obj in objects:
        idx = int(obj.index)
        if idx in seen:
            raise MeshDataError(idx, "duplicate object index")
        seen.add(idx)

        mesh = getattr(obj, "mesh", None)
        if mesh is None:
            continue
        tris = mesh_triangles(mesh, idx)
        ranges[idx] = (offset, tris.shape[0])
        chunks.append(tris)
        offset += tris.shape[0]

    triangles = np.concatenate(chunks) if chunks else np.zeros((0, 9), np.float32)
    logger.debug(f"[Extract] {offset} triangles from {len(chunks)} meshes")
    return TriangleSoup(triangles, ranges)
