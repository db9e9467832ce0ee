"""
Пакет geometry – мировые AABB и треугольный суп из мешей.
"""

from flatbvh.geometry.extract import (
    TriangleSoup,
    build_triangle_soup,
    mesh_triangles,
    object_aabb,
    validate_mesh,
    world_positions,
)

__all__ = [
    "TriangleSoup",
    "build_triangle_soup",
    "mesh_triangles",
    "object_aabb",
    "validate_mesh",
    "world_positions",
]
