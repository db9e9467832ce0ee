# flatbvh/math/aabb.py
"""
Axis‑aligned bounding box.

Инвариант: min[i] <= max[i] по каждой оси; нарушение (или NaN) –
InvalidBoundsError сразу в конструкторе, «вывернутых» коробок не бывает.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from flatbvh.errors import InvalidBoundsError
from flatbvh.math.intersect import slab_intersect
from flatbvh.math.ray import Ray


class AABB:
    __slots__ = ("min", "max")

    def __init__(self, min_corner, max_corner):
        lo = np.asarray(min_corner, dtype=np.float32).reshape(-1)
        hi = np.asarray(max_corner, dtype=np.float32).reshape(-1)
        if lo.shape != (3,) or hi.shape != (3,):
            raise InvalidBoundsError("AABB corners must have 3 components")
        if np.any(np.isnan(lo)) or np.any(np.isnan(hi)):
            raise InvalidBoundsError(f"AABB has NaN corner: {lo} .. {hi}")
        if np.any(lo > hi):
            axes = [int(a) for a in np.nonzero(lo > hi)[0]]
            raise InvalidBoundsError(
                f"AABB min > max on axis {axes}: {lo.tolist()} .. {hi.tolist()}"
            )
        lo.flags.writeable = False
        hi.flags.writeable = False
        self.min = lo
        self.max = hi

    # -----------------------------------------------------------------
    # конструкторы
    # -----------------------------------------------------------------
    @staticmethod
    def from_points(points) -> "AABB":
        pts = np.asarray(points, dtype=np.float32).reshape((-1, 3))
        if pts.shape[0] == 0:
            raise InvalidBoundsError("Cannot bound an empty point set")
        return AABB(pts.min(axis=0), pts.max(axis=0))

    @staticmethod
    def from_object(obj) -> "AABB":
        """Мировые углы объекта: нужен атрибут `aabb` или пара `min`/`max`."""
        box = getattr(obj, "aabb", obj)
        return AABB(box.min, box.max)

    @staticmethod
    def from_center(center, half_extent) -> "AABB":
        c = np.asarray(center, dtype=np.float32)
        h = np.asarray(half_extent, dtype=np.float32)
        return AABB(c - h, c + h)

    # -----------------------------------------------------------------
    # операции
    # -----------------------------------------------------------------
    def merge(self, other: "AABB") -> "AABB":
        return merge(self, other)

    def intersect(self, ray: Ray) -> Tuple[bool, float, float]:
        return intersect(ray, self)

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) * 0.5

    @property
    def extent(self) -> np.ndarray:
        return self.max - self.min

    def longest_axis(self) -> int:
        """Ось наибольшей протяжённости (при равенстве – меньший номер)."""
        return int(np.argmax(self.extent))

    def contains_point(self, p) -> bool:
        p = np.asarray(p, dtype=np.float32)
        return bool(np.all(p >= self.min) and np.all(p <= self.max))

    def as_tuple(self) -> Tuple[Tuple[float, ...], Tuple[float, ...]]:
        return tuple(self.min.tolist()), tuple(self.max.tolist())

    def __eq__(self, other):
        if not isinstance(other, AABB):
            return NotImplemented
        return bool(np.array_equal(self.min, other.min)
                    and np.array_equal(self.max, other.max))

    __hash__ = None

    def __repr__(self) -> str:
        return f"AABB(min={self.min.tolist()}, max={self.max.tolist()})"


def merge(a: AABB, b: AABB) -> AABB:
    """Минимальный AABB, содержащий оба: покомпонентные min / max."""
    return AABB(np.minimum(a.min, b.min), np.maximum(a.max, b.max))


def merge_all(boxes) -> AABB:
    boxes = list(boxes)
    if not boxes:
        raise InvalidBoundsError("Cannot merge an empty list of boxes")
    lo = np.min(np.stack([b.min for b in boxes]), axis=0)
    hi = np.max(np.stack([b.max for b in boxes]), axis=0)
    return AABB(lo, hi)


def intersect(ray: Ray, box: AABB) -> Tuple[bool, float, float]:
    """Slab‑тест: (hit, t_min, t_max)."""
    hit, t_min, t_max = slab_intersect(ray.origin, ray.inv_direction,
                                       box.min, box.max)
    return bool(hit), float(t_min), float(t_max)
