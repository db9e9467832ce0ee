"""
BVH – фасад над build → flatten → traverse.

    bvh = BVH()
    bvh.build(objects)                 # один раз, при инициализации
    hit = bvh.intersect(origin, dir)   # сколько угодно раз, из любых потоков
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from flatbvh.accel.build import BVHTree, build
from flatbvh.accel.flatten import FlatBVH, flatten
from flatbvh.accel.texture import TexelLayout, node_texels, triangle_texels
from flatbvh.accel.traverse import HitResult, traverse, traverse_all, traverse_many
from flatbvh.math.ray import Ray
from flatbvh.utils.config import Config, default_config
from flatbvh.utils.logger import logger


class BVH:
    def __init__(self, config: Optional[Config] = None):
        self.config = config if config is not None else default_config()
        self.tree: Optional[BVHTree] = None
        self.flat: Optional[FlatBVH] = None

    @property
    def root(self):
        return self.tree.root if self.tree is not None else None

    def build(self, objects: Sequence, with_triangles: bool = True) -> FlatBVH:
        """Построить дерево и плоские буферы (суп – если with_triangles)."""
        objects = list(objects)
        self.tree = build(objects, axis_strategy=self.config.axis_strategy)
        self.flat = flatten(self.tree, objects if with_triangles else None)

        needed = self.flat.required_stack()
        if needed > self.config.max_stack_depth:
            logger.warning(
                f"[BVH] Tree needs a traversal stack of {needed}, configured "
                f"{self.config.max_stack_depth}; queries may overflow."
            )
        logger.info(f"[BVH] Ready: {len(objects)} objects, "
                    f"{self.flat.record_count} records, depth {self.flat.depth}.")
        return self.flat

    def _require_flat(self) -> FlatBVH:
        if self.flat is None:
            raise RuntimeError("BVH.build() must be called before querying")
        return self.flat

    def intersect(self, ray_origin, ray_dir) -> HitResult:
        """Ближайший объект на луче (HitResult; промах – hit=False)."""
        return traverse(Ray(ray_origin, ray_dir), self._require_flat(),
                        max_stack=self.config.max_stack_depth,
                        epsilon=self.config.epsilon)

    def intersect_all(self, ray_origin, ray_dir) -> List[HitResult]:
        return traverse_all(Ray(ray_origin, ray_dir), self._require_flat(),
                            max_stack=self.config.max_stack_depth,
                            epsilon=self.config.epsilon)

    def intersect_many(self, origins, directions, pool=None):
        return traverse_many(origins, directions, self._require_flat(),
                             max_stack=self.config.max_stack_depth,
                             epsilon=self.config.epsilon, pool=pool,
                             chunk_size=self.config.section("threads")["chunk_size"])

    def node_texture(self) -> TexelLayout:
        return node_texels(self._require_flat(), self.config.texture_max_width)

    def triangle_texture(self) -> Optional[TexelLayout]:
        flat = self._require_flat()
        if flat.soup is None:
            return None
        return triangle_texels(flat.soup, self.config.texture_max_width)
