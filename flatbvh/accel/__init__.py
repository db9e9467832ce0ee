"""
Пакет accel – построение, линеаризация и обход BVH.
gl_upload сюда не импортируется (требует PyOpenGL и GL‑контекст).
"""

from flatbvh.accel.build import BVHTree, build
from flatbvh.accel.flatten import FlatBVH, NodeRecord, flatten, validate_nodes
from flatbvh.accel.traverse import (
    BatchHits,
    HitResult,
    traverse,
    traverse_all,
    traverse_many,
)
from flatbvh.accel.texture import TexelLayout, node_texels, triangle_texels
from flatbvh.accel.bvh import BVH

__all__ = [
    "BVH",
    "BVHTree",
    "BatchHits",
    "FlatBVH",
    "HitResult",
    "NodeRecord",
    "TexelLayout",
    "build",
    "flatten",
    "node_texels",
    "traverse",
    "traverse_all",
    "traverse_many",
    "triangle_texels",
    "validate_nodes",
]
