"""
Данные меша для BVH: позиции (xyz подряд), индексы треугольников и
мировая матрица.  GPU‑буферов здесь нет – только то, что нужно для
построения AABB и «треугольного супа».
"""

import numpy as np

from flatbvh.math.mat4 import Mat4


class MeshData:
    """Вершины/индексы в локальных координатах + мировая матрица."""

    def __init__(self,
                 positions: np.ndarray,
                 indices: np.ndarray = None,
                 world: Mat4 = None,
                 name="Mesh"):
        self.name = name
        self.positions = np.asarray(positions, dtype=np.float32).reshape(-1)
        if indices is None:
            # неиндексированный меш: каждые три вершины – треугольник
            indices = np.arange(self.positions.size // 3, dtype=np.int64)
        # int64, чтобы отрицательные индексы не «заворачивались» в uint32
        self.indices = np.asarray(indices, dtype=np.int64).reshape(-1)

        if world is None:
            world = Mat4.identity()
        elif not isinstance(world, Mat4):
            world = Mat4(world)
        self.world = world

    @property
    def vertex_count(self) -> int:
        return self.positions.size // 3

    @property
    def triangle_count(self) -> int:
        return self.indices.size // 3

    def __repr__(self) -> str:
        return (f"MeshData({self.name!r}, vertices={self.vertex_count}, "
                f"triangles={self.triangle_count})")


def box_mesh(center=(0.0, 0.0, 0.0), size: float = 1.0, name="Box") -> MeshData:
    """Куб со стороной size: 8 вершин, 12 треугольников, сдвиг через world."""
    h = 0.5 * size
    positions = np.array([
        [-h, -h, -h], [h, -h, -h], [h, h, -h], [-h, h, -h],
        [-h, -h, h], [h, -h, h], [h, h, h], [-h, h, h],
    ], dtype=np.float32)
    indices = np.array([
        0, 2, 1, 0, 3, 2,   # -z
        4, 5, 6, 4, 6, 7,   # +z
        0, 1, 5, 0, 5, 4,   # -y
        3, 7, 6, 3, 6, 2,   # +y
        0, 4, 7, 0, 7, 3,   # -x
        1, 2, 6, 1, 6, 5,   # +x
    ], dtype=np.int64)
    return MeshData(positions, indices, Mat4.translate(*center), name=name)
