"""
Математический суб‑пакет: AABB, Ray, Mat4 и numba‑тесты пересечений.
"""

from flatbvh.math.mat4 import Mat4
from flatbvh.math.ray import Ray
from flatbvh.math.aabb import AABB, merge, merge_all, intersect

__all__ = ["AABB", "Ray", "Mat4", "merge", "merge_all", "intersect"]
