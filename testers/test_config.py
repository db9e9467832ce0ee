# -*- coding: utf-8 -*-
import json
import logging

import numpy as np
import pytest

from flatbvh import BVH, TraversalStackOverflow
from flatbvh.utils.config import DEFAULT_CONFIG, Config, default_config
from flatbvh.utils.profiler import Profiler

from conftest import triangle_object


def test_in_memory_defaults():
    cfg = Config()
    assert cfg.path is None
    assert cfg.max_stack_depth == 64
    assert cfg.epsilon == pytest.approx(1e-7)
    assert cfg.axis_strategy == "longest"
    assert cfg.texture_max_width == 4096
    assert cfg["threads"]["chunk_size"] == 4096
    assert default_config() is default_config()


def test_missing_file_is_created(tmp_path):
    path = tmp_path / "flatbvh.json"
    cfg = Config(path)
    assert path.is_file()
    assert json.loads(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG
    assert cfg.data == DEFAULT_CONFIG


def test_partial_file_is_merged_with_defaults(tmp_path):
    path = tmp_path / "flatbvh.json"
    path.write_text(json.dumps({"traversal": {"max_stack_depth": 12}}), encoding="utf-8")
    cfg = Config(path)
    assert cfg.max_stack_depth == 12
    assert cfg.epsilon == pytest.approx(1e-7)
    assert cfg.texture_max_width == 4096


def test_broken_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "flatbvh.json"
    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="flatbvh"):
        cfg = Config(path)
    assert cfg.data == DEFAULT_CONFIG
    assert "[Config] Failed to read config" in caplog.text


def test_setitem_persists(tmp_path):
    path = tmp_path / "flatbvh.json"
    cfg = Config(path)
    cfg["build"] = {"axis_strategy": "round_robin"}
    assert Config(path).axis_strategy == "round_robin"


def test_profiler_measures_block():
    with Profiler("noop") as prof:
        sum(range(1000))
    assert prof.elapsed_ms >= 0.0


# ----------------------------------------------------------------------
# Фасад BVH
# ----------------------------------------------------------------------
def test_facade_round_trip(three_boxes):
    bvh = BVH(Config())
    flat = bvh.build(three_boxes)
    assert flat.record_count == 5
    assert bvh.root == 0

    hit = bvh.intersect((0, 0, -10), (0, 0, 1))
    assert hit.object_index == 1
    assert [h.object_index for h in bvh.intersect_all((10, 0, 0), (-1, 0, 0))] == [2, 1, 0]

    batch = bvh.intersect_many([[-2, 0, -10], [0, 5, -10]], [[0, 0, 1], [0, 0, 1]])
    assert batch.object_index.tolist() == [0, -1]

    layout = bvh.node_texture()
    assert layout.record_count == 5
    # коробки без меша – пустой суп
    assert bvh.triangle_texture().record_count == 0


def test_facade_without_triangles(three_boxes):
    bvh = BVH(Config())
    bvh.build(three_boxes, with_triangles=False)
    assert bvh.triangle_texture() is None


def test_facade_triangle_texture():
    bvh = BVH(Config())
    bvh.build([triangle_object(0), triangle_object(1)])
    layout = bvh.triangle_texture()
    assert layout.record_count == 2
    assert np.array_equal(layout.texels(0)[:3], [0, 0, 0])


def test_facade_requires_build():
    with pytest.raises(RuntimeError):
        BVH(Config()).intersect((0, 0, 0), (1, 0, 0))


def test_facade_warns_about_shallow_stack(box_row, caplog):
    cfg = Config()
    cfg["traversal"] = {"max_stack_depth": 2}
    bvh = BVH(cfg)
    with caplog.at_level(logging.WARNING, logger="flatbvh"):
        bvh.build(box_row)
    assert "traversal stack of 4" in caplog.text

    with pytest.raises(TraversalStackOverflow):
        bvh.intersect((-10, 0, 0), (1, 0, 0))
