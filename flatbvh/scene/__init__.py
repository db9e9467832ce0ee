"""
Пакет scene – входные данные ядра: MeshData и SceneObject.
"""

from flatbvh.scene.mesh import MeshData, box_mesh
from flatbvh.scene.object import SceneObject

__all__ = ["MeshData", "SceneObject", "box_mesh"]
