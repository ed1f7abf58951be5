# tests/pml/core/test_config_stack.py
from __future__ import annotations

import copy
import pytest

from pml.core.config_stack import mergeWithStrategy


# -------- mergeWithStrategy (dict) --------

def test_merge_replace_dict():
    left = {"a": 1, "b": {"x": 1, "y": 2}}
    right = {"__merge": "replace", "b": {"z": 3}, "c": 9}
    out = mergeWithStrategy(left, right)
    # whole object replaced (minus control key)
    assert out == {"b": {"z": 3}, "c": 9}


def test_merge_deep_default():
    left = {"a": 1, "b": {"x": 1, "y": 2}}
    right = {"b": {"y": 5, "z": 9}, "c": 7}
    out = mergeWithStrategy(left, right)
    assert out == {"a": 1, "b": {"x": 1, "y": 5, "z": 9}, "c": 7}


def test_merge_invalid_object_strategy_raises():
    with pytest.raises(ValueError):
        mergeWithStrategy({"a": 1}, {"__merge": "append"})


# -------- mergeWithStrategy (lists) --------

def test_list_replace_default_when_both_lists():
    assert mergeWithStrategy([1, 2], [3, 4]) == [3, 4]


def test_list_side_channel_append_prepend_unique():
    left = {"defaultModels": ["a.glb", "b.glb"]}
    right = {"defaultModels": ["b.glb", "c.glb"], "defaultModels__merge": "append"}
    out = mergeWithStrategy(left, right)
    assert out["defaultModels"] == ["a.glb", "b.glb", "b.glb", "c.glb"]

    right = {"defaultModels": ["z.glb"], "defaultModels__merge": "prepend"}
    out = mergeWithStrategy(left, right)
    assert out["defaultModels"] == ["z.glb", "a.glb", "b.glb"]

    right = {"defaultModels": ["b.glb", "c.glb"], "defaultModels__merge": "uniqueAppend"}
    out = mergeWithStrategy(left, right)
    assert out["defaultModels"] == ["a.glb", "b.glb", "c.glb"]


def test_list_side_channel_key_does_not_leak_into_output():
    left = {"items": [1]}
    right = {"items": [2], "items__merge": "append"}
    out = mergeWithStrategy(left, right)
    assert "items__merge" not in out
    assert out["items"] == [1, 2]


def test_orphan_merge_directive_raises():
    with pytest.raises(ValueError):
        mergeWithStrategy({"items": [1]}, {"items__merge": "append"})


def test_merge_does_not_mutate_inputs():
    left = {"a": [1], "b": {"x": 1}}
    right = {"a": [2], "a__merge": "append", "b": {"y": 2}}
    left_copy = copy.deepcopy(left)
    right_copy = copy.deepcopy(right)
    _ = mergeWithStrategy(left, right)
    assert left == left_copy
    assert right == right_copy
