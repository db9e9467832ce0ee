# -*- coding: utf-8 -*-
import math

import numpy as np
import pytest

from flatbvh import (
    AABB,
    BVHBuildError,
    InvalidBoundsError,
    SceneObject,
    build,
    merge,
)

from conftest import make_box, random_boxes


def _walk(tree):
    """Все листья, достижимые от корня (id объектов)."""
    found = []
    pending = [tree.root]
    while pending:
        node = pending.pop()
        if tree.is_leaf(node):
            found.append(tree.object_index(node))
        else:
            pending.extend(tree.children(node))
    return found


def test_empty_input_gives_empty_tree():
    tree = build([])
    assert tree.root is None
    assert tree.is_empty
    assert tree.node_count == 0
    assert tree.leaf_count == 0
    assert tree.internal_count == 0


def test_single_object_is_one_leaf():
    obj = make_box(5, (1, 2, 3))
    tree = build([obj])
    assert tree.node_count == 1
    assert tree.root == 0
    assert tree.is_leaf(0)
    assert tree.object_index(0) == 5
    assert tree.aabb(0) == obj.aabb
    assert tree.depth == 0


@pytest.mark.parametrize("n", [2, 3, 4, 5, 7, 16, 33, 100])
@pytest.mark.parametrize("strategy", ["longest", "round_robin"])
def test_node_counts_and_bijection(n, strategy):
    objects = random_boxes(n, seed=n)
    tree = build(objects, axis_strategy=strategy)

    assert tree.node_count == 2 * n - 1
    assert tree.leaf_count == n
    assert tree.internal_count == n - 1
    assert sorted(_walk(tree)) == list(range(n))


@pytest.mark.parametrize("n", [2, 9, 64])
def test_internal_boxes_are_merges(n):
    tree = build(random_boxes(n, seed=3))
    for node in range(tree.node_count):
        if tree.is_leaf(node):
            continue
        left, right = tree.children(node)
        assert tree.aabb(node) == merge(tree.aabb(left), tree.aabb(right))


def test_children_are_exclusively_owned():
    tree = build(random_boxes(40, seed=11))
    owners = {}
    for node in range(tree.node_count):
        if not tree.is_leaf(node):
            for child in tree.children(node):
                assert child not in owners
                assert child != node
                owners[child] = node
    assert len(owners) == tree.node_count - 1
    assert 0 not in owners


def test_balanced_depth():
    for n in (2, 3, 8, 9, 100, 257):
        tree = build(random_boxes(n, seed=n))
        assert tree.depth == math.ceil(math.log2(n))


def test_build_is_deterministic_and_pure():
    objects = random_boxes(25, seed=4)
    before = [(o.index, o.aabb.as_tuple()) for o in objects]
    a = build(objects)
    b = build(objects)
    assert np.array_equal(a.object_ids, b.object_ids)
    assert np.array_equal(a.left, b.left)
    assert np.array_equal(a.mins, b.mins)
    assert [(o.index, o.aabb.as_tuple()) for o in objects] == before


def test_stable_indices_are_kept():
    objects = [make_box(i * 10 + 3, (i, 0, 0)) for i in range(6)]
    tree = build(objects)
    assert sorted(_walk(tree)) == [3, 13, 23, 33, 43, 53]


def test_three_box_layout(three_boxes):
    tree = build(three_boxes)
    assert tree.node_count == 5
    assert tree.aabb(0) == AABB((-2.5, -0.5, -0.5), (2.5, 0.5, 0.5))
    # прямой порядок: дети всегда после родителя
    for node in range(tree.node_count):
        if not tree.is_leaf(node):
            left, right = tree.children(node)
            assert node < left < right


def test_duplicate_index_rejected():
    with pytest.raises(BVHBuildError, match="duplicate"):
        build([make_box(1, (0, 0, 0)), make_box(1, (3, 0, 0))])


def test_negative_index_rejected():
    with pytest.raises(BVHBuildError):
        build([make_box(-1, (0, 0, 0))])


def test_unknown_axis_strategy_rejected():
    with pytest.raises(BVHBuildError, match="axis strategy"):
        build([make_box(0, (0, 0, 0))], axis_strategy="sah")


class _RawObject:
    """Объект «снаружи»: aabb без проверок, только min/max."""

    def __init__(self, index, lo, hi):
        self.index = index
        self.aabb = type("Box", (), {"min": np.array(lo), "max": np.array(hi)})()


def test_inverted_input_box_fails_fast():
    objects = [_RawObject(0, (0, 0, 0), (1, 1, 1)), _RawObject(1, (2, 0, 0), (1, 1, 1))]
    with pytest.raises(InvalidBoundsError):
        build(objects)


def test_duck_typed_objects_accepted():
    objects = [_RawObject(i, (i, 0, 0), (i + 0.5, 1, 1)) for i in range(4)]
    tree = build(objects)
    assert tree.leaf_count == 4


def test_scene_object_from_bounds_validates():
    with pytest.raises(InvalidBoundsError):
        SceneObject.from_bounds(0, (1, 1, 1), (0, 0, 0))
