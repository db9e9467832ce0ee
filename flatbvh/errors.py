# flatbvh/errors.py
"""
Иерархия исключений пакета.

Все ошибки наследуются от FlatBVHError и одновременно от «родного»
исключения Python, чтобы вызывающий код мог ловить их привычно
(ValueError для плохих входных данных, IndexError для битых индексов).
"""


class FlatBVHError(Exception):
    """Базовое исключение flatbvh."""


class InvalidBoundsError(FlatBVHError, ValueError):
    """AABB с min > max (или NaN) хотя бы по одной оси."""


class MeshDataError(FlatBVHError, ValueError):
    """Несогласованные буферы меша (индекс вне буфера позиций и т.п.)."""

    def __init__(self, object_index, message: str):
        self.object_index = object_index
        super().__init__(f"object {object_index}: {message}")


class BVHBuildError(FlatBVHError, ValueError):
    """Некорректный список объектов для построения дерева."""


class CorruptNodeBufferError(FlatBVHError, IndexError):
    """Плоский буфер узлов ссылается за свои пределы или содержит цикл."""


class TraversalStackOverflow(FlatBVHError, RuntimeError):
    """Стек обхода переполнен – результат не определён (это не «промах»)."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(
            f"traversal stack overflow: capacity {capacity} exceeded; "
            "raise traversal.max_stack_depth"
        )
