# flatbvh/math/mat4.py
import numpy as np
from math import radians, sin, cos

# пары осей плоскости вращения: (i, j) для поворота вокруг x, y, z
_ROTATION_PLANES = {0: (1, 2), 1: (2, 0), 2: (0, 1)}


class Mat4:
    """Мировая матрица 4×4 (row‑major, столбец‑векторы: p' = M @ p)."""

    __slots__ = ("m",)

    def __init__(self, array: np.ndarray = None):
        if array is None:
            self.m = np.identity(4, dtype=np.float32)
        else:
            arr = np.asarray(array, dtype=np.float32)
            if arr.size != 16:
                raise ValueError(f"Mat4 expects 16 values, got {arr.size}")
            self.m = arr.reshape((4, 4)).copy()

    @staticmethod
    def identity():
        return Mat4()

    @staticmethod
    def translate(x: float, y: float, z: float):
        m = np.identity(4, dtype=np.float32)
        m[0:3, 3] = (x, y, z)
        return Mat4(m)

    @staticmethod
    def scale(sx: float, sy: float, sz: float):
        return Mat4(np.diag([sx, sy, sz, 1.0]))

    @staticmethod
    def rotate(axis: int, angle_deg: float):
        """Поворот вокруг оси 0/1/2 (x/y/z) на angle_deg, правая тройка."""
        i, j = _ROTATION_PLANES[axis]
        a = radians(angle_deg)
        m = np.identity(4, dtype=np.float32)
        m[i, i] = m[j, j] = cos(a)
        m[i, j] = -sin(a)
        m[j, i] = sin(a)
        return Mat4(m)

    @staticmethod
    def rotate_x(angle_deg: float):
        return Mat4.rotate(0, angle_deg)

    @staticmethod
    def rotate_y(angle_deg: float):
        return Mat4.rotate(1, angle_deg)

    @staticmethod
    def rotate_z(angle_deg: float):
        return Mat4.rotate(2, angle_deg)

    @staticmethod
    def from_euler(pitch: float, yaw: float, roll: float):
        """Ориентация объекта: сначала roll (z), затем pitch (x), затем yaw (y)."""
        return Mat4.rotate_y(yaw) @ Mat4.rotate_x(pitch) @ Mat4.rotate_z(roll)

    def __matmul__(self, other: "Mat4") -> "Mat4":
        return Mat4(self.m @ other.m)

    def to_np(self) -> np.ndarray:
        return self.m.copy()

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """
        Преобразовать массив точек (N, 3) как координаты:
        однородная w = 1, результат делится на w'.
        """
        pts = np.asarray(points, dtype=np.float64).reshape((-1, 3))
        homo = np.hstack([pts, np.ones((pts.shape[0], 1), dtype=np.float64)])
        out = homo @ self.m.astype(np.float64).T
        w = out[:, 3:4]
        w = np.where(w == 0.0, 1.0, w)
        return (out[:, :3] / w).astype(np.float32)
