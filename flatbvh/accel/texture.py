# flatbvh/accel/texture.py
"""
Раскладка плоских буферов в 2D RGBA‑float «текстуру» для GPU.

Тексель = 4 числа.  Запись узла (8 чисел) занимает 2 текселя,
треугольник (3 × xyz) – 3 текселя (xyz + 0 на вершину).
Запись i лежит в строке i // records_per_row, начиная со столбца
(i % records_per_row) * texels_per_record – эти числа передаются
потребителю вместе с картинкой.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from flatbvh.accel.flatten import RECORD_SIZE, as_flat
from flatbvh.geometry.extract import TriangleSoup
from flatbvh.utils.config import default_config
from flatbvh.utils.logger import logger

NODE_TEXELS = 2
TRIANGLE_TEXELS = 3


class TexelLayout:
    __slots__ = ("image", "record_count", "records_per_row", "texels_per_record")

    def __init__(self, image: np.ndarray, record_count: int,
                 records_per_row: int, texels_per_record: int):
        self.image = image
        self.record_count = record_count
        self.records_per_row = records_per_row
        self.texels_per_record = texels_per_record

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    def texel_of(self, record_index: int) -> Tuple[int, int]:
        """(строка, столбец) первого текселя записи."""
        if record_index < 0 or record_index >= self.record_count:
            raise IndexError(f"record {record_index} outside [0, {self.record_count})")
        row = record_index // self.records_per_row
        col = (record_index % self.records_per_row) * self.texels_per_record
        return row, col

    def texels(self, record_index: int) -> np.ndarray:
        """Все числа записи подряд (texels_per_record * 4)."""
        row, col = self.texel_of(record_index)
        return self.image[row, col:col + self.texels_per_record].reshape(-1)

    def __repr__(self) -> str:
        return (f"TexelLayout({self.width}x{self.height}, records={self.record_count}, "
                f"per_row={self.records_per_row})")


def pack_texels(records: np.ndarray, texels_per_record: int,
                max_width: Optional[int] = None) -> TexelLayout:
    """records: (R, texels_per_record * 4) → TexelLayout."""
    if max_width is None:
        max_width = default_config().texture_max_width
    if texels_per_record < 1 or max_width < texels_per_record:
        raise ValueError(
            f"max_width {max_width} cannot hold a record of {texels_per_record} texels"
        )
    floats = texels_per_record * 4
    records = np.asarray(records, dtype=np.float32).reshape((-1, floats))
    count = records.shape[0]

    per_row = max_width // texels_per_record
    if count == 0:
        return TexelLayout(np.zeros((0, 0, 4), np.float32), 0, per_row, texels_per_record)

    per_row = min(per_row, count)
    height = -(-count // per_row)
    padded = np.zeros((height * per_row, floats), dtype=np.float32)
    padded[:count] = records
    image = padded.reshape((height, per_row * texels_per_record, 4))
    logger.debug(f"[Texture] {count} records → {image.shape[1]}x{height} texels")
    return TexelLayout(image, count, per_row, texels_per_record)


def node_texels(nodes, max_width: Optional[int] = None) -> TexelLayout:
    """Буфер узлов: 2 текселя (min.xyz, payloadA) и (max.xyz, payloadB)."""
    flat = as_flat(nodes)
    return pack_texels(flat.nodes.reshape((-1, RECORD_SIZE)), NODE_TEXELS, max_width)


def triangle_texels(soup: TriangleSoup, max_width: Optional[int] = None) -> TexelLayout:
    """Треугольники: по текселю на вершину (x, y, z, 0)."""
    tris = soup.triangles.reshape((-1, 3, 3))
    padded = np.zeros((tris.shape[0], 3, 4), dtype=np.float32)
    padded[:, :, :3] = tris
    return pack_texels(padded.reshape((-1, TRIANGLE_TEXELS * 4)), TRIANGLE_TEXELS, max_width)
