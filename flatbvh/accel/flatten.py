# flatbvh/accel/flatten.py
"""
Линеаризация BVH в плоский массив записей по 8 чисел (float32):

    [minX, minY, minZ, payloadA, maxX, maxY, maxZ, payloadB]

    лист       : payloadA = индекс объекта (>= 0),  payloadB = 0
    внутренний : payloadA = -(right + 1)  (< 0),    payloadB = left

Знак payloadA – единственный признак «лист / внутренний узел».
Слот узла резервируется до рекурсии, затем в него дописываются индексы
детей (back‑patching), поэтому дети всегда лежат ПОСЛЕ родителя.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence

import numpy as np

from flatbvh.accel.build import BVHTree
from flatbvh.errors import CorruptNodeBufferError
from flatbvh.geometry.extract import TriangleSoup, build_triangle_soup
from flatbvh.utils.logger import logger
from flatbvh.utils.profiler import Profiler

RECORD_SIZE = 8
PAYLOAD_A = 3
PAYLOAD_B = 7


class NodeRecord(NamedTuple):
    index: int
    min: np.ndarray
    max: np.ndarray
    is_leaf: bool
    object_index: int   # -1 для внутренних узлов
    left: int           # -1 для листьев
    right: int          # -1 для листьев


def encode_children(left: int, right: int) -> tuple[float, float]:
    """(payloadA, payloadB) внутреннего узла."""
    return float(-(right + 1)), float(left)


def decode_record(nodes: np.ndarray, index: int) -> NodeRecord:
    row = nodes[index]
    a = float(row[PAYLOAD_A])
    if a >= 0.0:
        return NodeRecord(index, row[0:3], row[4:7], True, int(a), -1, -1)
    return NodeRecord(index, row[0:3], row[4:7], False, -1,
                      int(row[PAYLOAD_B]), int(-a) - 1)


class FlatBVH:
    """
    Результат flatten(): буфер узлов (M, 8) и, по желанию, суп треугольников.
    Оба массива read‑only.
    """

    __slots__ = ("nodes", "soup", "_depth")

    def __init__(self, nodes: np.ndarray, soup: Optional[TriangleSoup] = None,
                 depth: Optional[int] = None):
        nodes = np.ascontiguousarray(nodes, dtype=np.float32).reshape((-1, RECORD_SIZE))
        nodes.flags.writeable = False
        self.nodes = nodes
        self.soup = soup
        self._depth = depth

    @property
    def depth(self) -> int:
        """Глубина дерева (-1 для пустого); считается лениво."""
        if self._depth is None:
            self._depth = _depth_of(self.nodes)
        return self._depth

    @property
    def buffer(self) -> np.ndarray:
        """Плоский вид: record_count * 8 чисел."""
        return self.nodes.reshape(-1)

    @property
    def record_count(self) -> int:
        return int(self.nodes.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.record_count == 0

    @property
    def triangles(self) -> Optional[TriangleSoup]:
        return self.soup

    def required_stack(self) -> int:
        """Ёмкость стека, которой гарантированно хватит для обхода."""
        return 0 if self.is_empty else self.depth + 1

    def record(self, index: int) -> NodeRecord:
        if index < 0 or index >= self.record_count:
            raise CorruptNodeBufferError(
                f"record index {index} outside [0, {self.record_count})"
            )
        return decode_record(self.nodes, index)

    def leaf_object_ids(self) -> np.ndarray:
        a = self.nodes[:, PAYLOAD_A]
        return a[a >= 0.0].astype(np.int64)

    def __len__(self) -> int:
        return self.record_count

    def __repr__(self) -> str:
        tris = self.soup.triangle_count if self.soup is not None else None
        return f"FlatBVH(records={self.record_count}, depth={self.depth}, triangles={tris})"


# ----------------------------------------------------------------------
# flatten
# ----------------------------------------------------------------------
def flatten(tree: BVHTree, objects: Optional[Sequence] = None,
            validate: bool = True) -> FlatBVH:
    """
    Дерево → плоский буфер.  Если переданы objects – дополнительно
    строится суп треугольников для точного теста внутри листьев.
    """
    with Profiler("BVH flatten"):
        nodes = np.zeros((tree.node_count, RECORD_SIZE), dtype=np.float32)
        cursor = [0]

        def emit(node: int) -> int:
            slot = cursor[0]
            cursor[0] += 1
            nodes[slot, 0:3] = tree.mins[node]
            nodes[slot, 4:7] = tree.maxs[node]

            if tree.is_leaf(node):
                nodes[slot, PAYLOAD_A] = tree.object_ids[node]
                nodes[slot, PAYLOAD_B] = 0.0
                return slot

            left, right = tree.children(node)
            left_slot = emit(left)
            right_slot = emit(right)
            nodes[slot, PAYLOAD_A], nodes[slot, PAYLOAD_B] = encode_children(
                left_slot, right_slot
            )
            return slot

        if not tree.is_empty:
            emit(tree.root)

        if validate:
            validate_nodes(nodes)

        soup = build_triangle_soup(objects) if objects is not None else None

    flat = FlatBVH(nodes, soup, depth=tree.depth if not tree.is_empty else -1)
    logger.debug(f"[Flatten] {flat.record_count} records "
                 f"({flat.buffer.size} floats), stack needed {flat.required_stack()}.")
    return flat


# ----------------------------------------------------------------------
# проверка буфера
# ----------------------------------------------------------------------
def validate_nodes(nodes: np.ndarray) -> None:
    """
    Проверить инварианты плоского буфера; при нарушении –
    CorruptNodeBufferError.

    * индексы детей в [0, M), строго больше индекса родителя;
    * у каждой записи (кроме корня) ровно один родитель, циклов нет,
      недостижимых записей нет;
    * AABB внутреннего узла == merge(AABB детей) покомпонентно;
    * листья: целый неотрицательный id, payloadB == 0, id не повторяются.
    """
    nodes = np.asarray(nodes)
    if nodes.ndim == 1:
        if nodes.size % RECORD_SIZE:
            raise CorruptNodeBufferError(
                f"buffer length {nodes.size} is not a multiple of {RECORD_SIZE}"
            )
        nodes = nodes.reshape((-1, RECORD_SIZE))
    if nodes.ndim != 2 or nodes.shape[1] != RECORD_SIZE:
        raise CorruptNodeBufferError(f"expected (M, {RECORD_SIZE}) records, got {nodes.shape}")

    m = nodes.shape[0]
    if m == 0:
        return
    if not np.all(np.isfinite(nodes)):
        raise CorruptNodeBufferError("node buffer contains non-finite values")
    if np.any(nodes[:, 0:3] > nodes[:, 4:7]):
        bad = int(np.nonzero(np.any(nodes[:, 0:3] > nodes[:, 4:7], axis=1))[0][0])
        raise CorruptNodeBufferError(f"record {bad} has min > max")

    parent = np.full(m, -1, dtype=np.int64)
    parent[0] = 0
    seen_objects = {}
    pending = [0]
    while pending:
        i = pending.pop()
        rec = decode_record(nodes, i)
        if rec.is_leaf:
            a = float(nodes[i, PAYLOAD_A])
            if a != int(a):
                raise CorruptNodeBufferError(f"leaf record {i} has non-integer object id {a}")
            if nodes[i, PAYLOAD_B] != 0.0:
                raise CorruptNodeBufferError(f"leaf record {i} has non-zero payloadB")
            if rec.object_index in seen_objects:
                raise CorruptNodeBufferError(
                    f"object {rec.object_index} referenced by leaves "
                    f"{seen_objects[rec.object_index]} and {i}"
                )
            seen_objects[rec.object_index] = i
            continue

        for col in (PAYLOAD_A, PAYLOAD_B):
            value = float(nodes[i, col])
            if value != int(value):
                raise CorruptNodeBufferError(
                    f"internal record {i} has non-integer child payload {value}"
                )

        for child in (rec.left, rec.right):
            if child < 0 or child >= m:
                raise CorruptNodeBufferError(
                    f"record {i} references child {child} outside [0, {m})"
                )
            if child <= i:
                raise CorruptNodeBufferError(
                    f"record {i} references child {child} that is not after it "
                    "(self, ancestor or cycle)"
                )
            if parent[child] != -1:
                raise CorruptNodeBufferError(
                    f"record {child} has two parents ({parent[child]} and {i})"
                )
            parent[child] = i
            pending.append(child)

        lo = np.minimum(nodes[rec.left, 0:3], nodes[rec.right, 0:3])
        hi = np.maximum(nodes[rec.left, 4:7], nodes[rec.right, 4:7])
        if not (np.array_equal(lo, nodes[i, 0:3]) and np.array_equal(hi, nodes[i, 4:7])):
            raise CorruptNodeBufferError(
                f"record {i} box is not the merge of children {rec.left} and {rec.right}"
            )

    unreachable = np.nonzero(parent == -1)[0]
    if unreachable.size:
        raise CorruptNodeBufferError(
            f"records {unreachable.tolist()[:8]} are unreachable from the root"
        )


def _depth_of(nodes: np.ndarray) -> int:
    if nodes.shape[0] == 0:
        return -1
    deepest = 0
    pending = [(0, 0)]
    while pending:
        i, d = pending.pop()
        a, b = float(nodes[i, PAYLOAD_A]), float(nodes[i, PAYLOAD_B])
        if not (np.isfinite(a) and np.isfinite(b)):
            raise CorruptNodeBufferError(f"record {i} has a non-finite payload")
        if a != int(a) or b != int(b):
            raise CorruptNodeBufferError(f"record {i} has a non-integer payload")
        rec = decode_record(nodes, i)
        if rec.is_leaf:
            deepest = max(deepest, d)
            continue
        if not (i < rec.left < nodes.shape[0] and i < rec.right < nodes.shape[0]):
            raise CorruptNodeBufferError(f"record {i} references children outside the buffer")
        pending.append((rec.left, d + 1))
        pending.append((rec.right, d + 1))
    return deepest


def as_flat(nodes) -> FlatBVH:
    """Принять FlatBVH, массив (M, 8) или плоский буфер M*8."""
    if isinstance(nodes, FlatBVH):
        return nodes
    arr = np.asarray(nodes, dtype=np.float32)
    if arr.ndim == 1 and arr.size % RECORD_SIZE:
        raise CorruptNodeBufferError(
            f"buffer length {arr.size} is not a multiple of {RECORD_SIZE}"
        )
    return FlatBVH(arr.reshape((-1, RECORD_SIZE)))
