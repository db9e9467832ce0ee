# flatbvh/math/ray.py
"""
Луч: начало + направление (float64) и заранее посчитанное обратное
направление для slab‑теста.
"""

import numpy as np


class Ray:
    __slots__ = ("origin", "direction", "inv_direction")

    def __init__(self, origin, direction, normalize: bool = False):
        o = np.asarray(origin, dtype=np.float64).reshape(-1)
        d = np.asarray(direction, dtype=np.float64).reshape(-1)
        if o.shape != (3,) or d.shape != (3,):
            raise ValueError("Ray origin and direction must have 3 components")
        if not (np.all(np.isfinite(o)) and np.all(np.isfinite(d))):
            raise ValueError("Ray origin and direction must be finite")
        n = float(np.linalg.norm(d))
        if n == 0.0:
            raise ValueError("Ray direction must be non-zero")
        if normalize:
            d = d / n

        self.origin = o
        self.direction = d
        # 1/0 → ±inf (знак нуля сохраняется); это ожидаемое поведение
        with np.errstate(divide="ignore"):
            self.inv_direction = 1.0 / d

    @staticmethod
    def towards(origin, target) -> "Ray":
        """Нормализованный луч из origin в сторону target."""
        o = np.asarray(origin, dtype=np.float64)
        return Ray(o, np.asarray(target, dtype=np.float64) - o, normalize=True)

    def at(self, t: float) -> np.ndarray:
        return self.origin + t * self.direction

    def __repr__(self) -> str:
        o, d = self.origin, self.direction
        return (f"Ray(origin=({o[0]:.3f}, {o[1]:.3f}, {o[2]:.3f}), "
                f"direction=({d[0]:.3f}, {d[1]:.3f}, {d[2]:.3f}))")
