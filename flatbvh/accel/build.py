# flatbvh/accel/build.py
"""
Построение BVH по списку объектов.

Дерево хранится «ареной»: массивы mins/maxs/object/left/right, где узел –
это целочисленный индекс.  Слот узла резервируется ДО рекурсии, поэтому
порядок арены – прямой обход (узел, левое поддерево, правое поддерево),
и именно в этом порядке узлы ложатся в плоский буфер.

Разбиение:
    * ось – по стратегии ("longest": самая длинная ось общего AABB
      подсписка; "round_robin": count % 3);
    * стабильная сортировка подсписка по min‑координате этой оси;
    * разрез пополам по количеству (не по площади).
Для N объектов получается ровно 2N - 1 узлов.
"""

from __future__ import annotations

from typing import Iterator, Sequence, Tuple

import numpy as np

from flatbvh.errors import BVHBuildError
from flatbvh.math.aabb import AABB
from flatbvh.utils.config import default_config
from flatbvh.utils.logger import logger
from flatbvh.utils.profiler import Profiler

NO_NODE = -1

AXIS_STRATEGIES = ("longest", "round_robin")

# индексы и id объектов хранятся в float32 – точны только до 2**24
MAX_EXACT_INDEX = 2 ** 24


class BVHTree:
    """Неизменяемое дерево‑арена.  Пустое дерево: root is None."""

    __slots__ = ("mins", "maxs", "object_ids", "left", "right", "_depth")

    def __init__(self, mins, maxs, object_ids, left, right):
        self.mins = np.ascontiguousarray(mins, dtype=np.float32).reshape((-1, 3))
        self.maxs = np.ascontiguousarray(maxs, dtype=np.float32).reshape((-1, 3))
        self.object_ids = np.ascontiguousarray(object_ids, dtype=np.int64)
        self.left = np.ascontiguousarray(left, dtype=np.int64)
        self.right = np.ascontiguousarray(right, dtype=np.int64)
        for arr in (self.mins, self.maxs, self.object_ids, self.left, self.right):
            arr.flags.writeable = False
        self._depth = None

    @staticmethod
    def empty() -> "BVHTree":
        return BVHTree(np.zeros((0, 3)), np.zeros((0, 3)),
                       np.zeros(0), np.zeros(0), np.zeros(0))

    # -----------------------------------------------------------------
    # свойства
    # -----------------------------------------------------------------
    @property
    def root(self):
        return 0 if self.node_count else None

    @property
    def is_empty(self) -> bool:
        return self.node_count == 0

    @property
    def node_count(self) -> int:
        return int(self.object_ids.shape[0])

    @property
    def leaf_count(self) -> int:
        return int(np.count_nonzero(self.left == NO_NODE))

    @property
    def internal_count(self) -> int:
        return self.node_count - self.leaf_count

    @property
    def depth(self) -> int:
        """Число рёбер от корня до самого глубокого листа (-1 для пустого)."""
        if self._depth is None:
            self._depth = self._compute_depth()
        return self._depth

    def _compute_depth(self) -> int:
        if self.is_empty:
            return -1
        deepest = 0
        pending = [(0, 0)]
        while pending:
            node, d = pending.pop()
            if self.is_leaf(node):
                deepest = max(deepest, d)
            else:
                l, r = self.children(node)
                pending.append((l, d + 1))
                pending.append((r, d + 1))
        return deepest

    # -----------------------------------------------------------------
    # доступ к узлам
    # -----------------------------------------------------------------
    def is_leaf(self, node: int) -> bool:
        return bool(self.left[node] == NO_NODE)

    def children(self, node: int) -> Tuple[int, int]:
        if self.is_leaf(node):
            raise ValueError(f"node {node} is a leaf and has no children")
        return int(self.left[node]), int(self.right[node])

    def aabb(self, node: int) -> AABB:
        return AABB(self.mins[node], self.maxs[node])

    def object_index(self, node: int) -> int:
        if not self.is_leaf(node):
            raise ValueError(f"node {node} is internal and holds no object")
        return int(self.object_ids[node])

    def leaves(self) -> Iterator[int]:
        return (int(i) for i in np.nonzero(self.left == NO_NODE)[0])

    def __len__(self) -> int:
        return self.node_count

    def __repr__(self) -> str:
        return (f"BVHTree(nodes={self.node_count}, leaves={self.leaf_count}, "
                f"depth={self.depth})")


# ----------------------------------------------------------------------
# Арена на время построения
# ----------------------------------------------------------------------
class _Arena:
    def __init__(self, capacity: int):
        self.mins = np.zeros((capacity, 3), dtype=np.float32)
        self.maxs = np.zeros((capacity, 3), dtype=np.float32)
        self.object_ids = np.full(capacity, NO_NODE, dtype=np.int64)
        self.left = np.full(capacity, NO_NODE, dtype=np.int64)
        self.right = np.full(capacity, NO_NODE, dtype=np.int64)
        self.count = 0

    def reserve(self) -> int:
        node = self.count
        self.count += 1
        return node

    def set_leaf(self, node, box_min, box_max, object_id) -> None:
        self.mins[node] = box_min
        self.maxs[node] = box_max
        self.object_ids[node] = object_id

    def set_internal(self, node, left, right) -> None:
        self.mins[node] = np.minimum(self.mins[left], self.mins[right])
        self.maxs[node] = np.maximum(self.maxs[left], self.maxs[right])
        self.left[node] = left
        self.right[node] = right

    def freeze(self) -> BVHTree:
        n = self.count
        return BVHTree(self.mins[:n], self.maxs[:n], self.object_ids[:n],
                       self.left[:n], self.right[:n])


def choose_axis(strategy: str, members: np.ndarray,
                mins: np.ndarray, maxs: np.ndarray) -> int:
    if strategy == "round_robin":
        return int(members.size % 3)
    extent = maxs[members].max(axis=0) - mins[members].min(axis=0)
    return int(np.argmax(extent))


def _validate_objects(objects: Sequence) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    ids = np.empty(len(objects), dtype=np.int64)
    mins = np.empty((len(objects), 3), dtype=np.float32)
    maxs = np.empty((len(objects), 3), dtype=np.float32)
    seen = {}
    for pos, obj in enumerate(objects):
        idx = getattr(obj, "index", None)
        if idx is None or int(idx) != idx:
            raise BVHBuildError(f"object at position {pos} has no integer index")
        idx = int(idx)
        if idx < 0 or idx >= MAX_EXACT_INDEX:
            raise BVHBuildError(
                f"object at position {pos} has index {idx} outside [0, {MAX_EXACT_INDEX})"
            )
        if idx in seen:
            raise BVHBuildError(
                f"duplicate object index {idx} at positions {seen[idx]} and {pos}"
            )
        seen[idx] = pos
        # AABB() проверяет min <= max и бросает InvalidBoundsError
        box = AABB.from_object(obj)
        ids[pos] = idx
        mins[pos] = box.min
        maxs[pos] = box.max
    return ids, mins, maxs


def build(objects: Sequence, axis_strategy: str | None = None) -> BVHTree:
    """Построить BVH.  Чистая функция: вход не меняется."""
    objects = list(objects)
    strategy = axis_strategy if axis_strategy is not None else default_config().axis_strategy
    if strategy not in AXIS_STRATEGIES:
        raise BVHBuildError(
            f"unknown axis strategy {strategy!r}; expected one of {AXIS_STRATEGIES}"
        )

    n = len(objects)
    if n == 0:
        logger.debug("[BVH] No objects – empty tree.")
        return BVHTree.empty()
    if 2 * n - 1 >= MAX_EXACT_INDEX:
        raise BVHBuildError(f"{n} objects exceed the float32 index range")

    ids, mins, maxs = _validate_objects(objects)
    arena = _Arena(2 * n - 1)

    def emit(members: np.ndarray) -> int:
        node = arena.reserve()
        if members.size == 1:
            m = members[0]
            arena.set_leaf(node, mins[m], maxs[m], ids[m])
            return node

        axis = choose_axis(strategy, members, mins, maxs)
        ordered = members[np.argsort(mins[members, axis], kind="stable")]
        mid = ordered.size // 2
        left = emit(ordered[:mid])
        right = emit(ordered[mid:])
        arena.set_internal(node, left, right)
        return node

    with Profiler("BVH build"):
        emit(np.arange(n, dtype=np.int64))
        tree = arena.freeze()

    logger.debug(f"[BVH] Built {tree.node_count} nodes from {n} objects "
                 f"(depth {tree.depth}, axis={strategy}).")
    return tree
