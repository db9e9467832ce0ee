"""
flatbvh – BVH по AABB объектов, линеаризованный в плоский массив записей
для массово‑параллельного обхода лучами (один вызов – один луч).

    tree = build(objects)            # дерево‑арена
    flat = flatten(tree, objects)    # буфер узлов (+ суп треугольников)
    hit  = traverse(ray, flat)       # ближайшее попадание
"""

from flatbvh.utils import logger
from flatbvh.errors import (
    BVHBuildError,
    CorruptNodeBufferError,
    FlatBVHError,
    InvalidBoundsError,
    MeshDataError,
    TraversalStackOverflow,
)
from flatbvh.math import AABB, Mat4, Ray, merge, intersect
from flatbvh.scene import MeshData, SceneObject, box_mesh
from flatbvh.geometry import TriangleSoup, build_triangle_soup, object_aabb
from flatbvh.accel import (
    BVH,
    BVHTree,
    BatchHits,
    FlatBVH,
    HitResult,
    TexelLayout,
    build,
    flatten,
    node_texels,
    traverse,
    traverse_all,
    traverse_many,
    triangle_texels,
    validate_nodes,
)
from flatbvh.utils.config import Config

__version__ = "1.0.0"

__all__ = [
    "AABB",
    "BVH",
    "BVHBuildError",
    "BVHTree",
    "BatchHits",
    "Config",
    "CorruptNodeBufferError",
    "FlatBVH",
    "FlatBVHError",
    "HitResult",
    "InvalidBoundsError",
    "Mat4",
    "MeshData",
    "MeshDataError",
    "Ray",
    "SceneObject",
    "TexelLayout",
    "TraversalStackOverflow",
    "TriangleSoup",
    "box_mesh",
    "build",
    "build_triangle_soup",
    "flatten",
    "intersect",
    "merge",
    "node_texels",
    "object_aabb",
    "traverse",
    "traverse_all",
    "traverse_many",
    "triangle_texels",
    "validate_nodes",
]
