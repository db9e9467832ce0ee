# -*- coding: utf-8 -*-
"""
conftest.py – общие фикстуры: наборы коробок, треугольные объекты и
мок‑модуль OpenGL, который только записывает вызовы.
"""

from typing import Any, Tuple

import numpy as np
import pytest

from flatbvh import Mat4, MeshData, SceneObject, build, flatten


def make_box(index: int, center, half: float = 0.5) -> SceneObject:
    c = np.asarray(center, dtype=np.float32)
    return SceneObject.from_bounds(index, c - half, c + half)


def random_boxes(n: int, seed: int = 0):
    rng = np.random.default_rng(seed)
    centers = rng.uniform(-10.0, 10.0, size=(n, 3))
    halves = rng.uniform(0.1, 1.0, size=(n, 3))
    return [SceneObject.from_bounds(i, centers[i] - halves[i], centers[i] + halves[i])
            for i in range(n)]


def random_rays(n: int, seed: int = 1):
    rng = np.random.default_rng(seed)
    dirs = rng.normal(size=(n, 3))
    origins = 30.0 * dirs / np.linalg.norm(dirs, axis=1, keepdims=True)
    targets = rng.uniform(-5.0, 5.0, size=(n, 3))
    directions = targets - origins
    directions /= np.linalg.norm(directions, axis=1, keepdims=True)
    return origins, directions


def triangle_object(index: int, world: Mat4 = None) -> SceneObject:
    """Один треугольник (0,0,0), (1,0,0), (0,1,0) в плоскости z = 0."""
    positions = np.array([0, 0, 0, 1, 0, 0, 0, 1, 0], dtype=np.float32)
    mesh = MeshData(positions, np.array([0, 1, 2]), world, name=f"Tri{index}")
    return SceneObject.from_mesh(index, mesh)


@pytest.fixture
def three_boxes():
    """Три единичные коробки с центрами (-2,0,0), (0,0,0), (2,0,0)."""
    return [make_box(0, (-2, 0, 0)), make_box(1, (0, 0, 0)), make_box(2, (2, 0, 0))]


@pytest.fixture
def three_box_flat(three_boxes):
    return flatten(build(three_boxes))


@pytest.fixture
def box_row():
    """Восемь коробок вдоль оси X: дерево глубины 3."""
    return [make_box(i, (2.0 * i, 0, 0)) for i in range(8)]


# ----------------------------------------------------------------------
# Мок OpenGL – каждый вызов gl*‑функции попадает в `calls`
# ----------------------------------------------------------------------
class FakeGL:
    GL_NO_ERROR = 0

    def __init__(self, error: int = 0, texture_id: int = 7) -> None:
        self.calls: list[Tuple[str, Tuple[Any, ...]]] = []
        self.error = error
        self.texture_id = texture_id

    def glGetError(self):
        self.calls.append(("glGetError", ()))
        return self.error

    def glGenTextures(self, n):
        self.calls.append(("glGenTextures", (n,)))
        return self.texture_id

    def __getattr__(self, name: str):
        if name.startswith("GL_"):
            return name
        if name.startswith("gl"):
            return lambda *args: self.calls.append((name, args))
        raise AttributeError(name)

    def count(self, name: str) -> int:
        """Сколько раз был вызван метод `name`."""
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def fake_gl() -> FakeGL:
    return FakeGL()
