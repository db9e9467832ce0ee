"""
Объект сцены с точки зрения BVH: стабильный индекс, мировой AABB и
(необязательно) меш для точного теста по треугольникам.
"""

from __future__ import annotations

from flatbvh.math.aabb import AABB
from flatbvh.scene.mesh import MeshData


class SceneObject:
    """Read‑only вход построителя: (aabb, index[, mesh])."""

    __slots__ = ("index", "aabb", "mesh", "name")

    def __init__(self, index: int, aabb: AABB, mesh: MeshData | None = None,
                 name: str | None = None):
        self.index = int(index)
        self.aabb = aabb if isinstance(aabb, AABB) else AABB(*aabb)
        self.mesh = mesh
        self.name = name if name is not None else f"Object{self.index}"

    @staticmethod
    def from_mesh(index: int, mesh: MeshData, name: str | None = None) -> "SceneObject":
        """AABB берётся из вершин меша в мировых координатах."""
        from flatbvh.geometry.extract import object_aabb

        return SceneObject(index, object_aabb(mesh, object_index=index), mesh,
                           name=name if name is not None else mesh.name)

    @staticmethod
    def from_bounds(index: int, min_corner, max_corner,
                    name: str | None = None) -> "SceneObject":
        return SceneObject(index, AABB(min_corner, max_corner), name=name)

    def __repr__(self) -> str:
        return f"SceneObject({self.index}, {self.aabb!r}, mesh={self.mesh is not None})"
