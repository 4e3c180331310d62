"""
Tests for structpatch.core — operations, equality and traversal.

    §1  Operation types
    §2  Deep equality
    §3  Deep clone
    §4  Cycle detection
    §5  Depth bound
"""

import sys
import os
import dataclasses
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structpatch.core import (
    OPERATION_TYPES,
    Add,
    BatchAdd,
    BatchRemove,
    Copy,
    Move,
    Remove,
    Replace,
    Test,
    deep_clone,
    deep_equal,
    detect_circular,
    insert_op,
    validate_max_depth,
)
from structpatch.errors import MaxDepthExceededError


def _cyclic_list():
    x = [1]
    x.append(x)
    return x


# ═══════════════════════════════════════════════════════════════════
#  §1  OPERATION TYPES
# ═══════════════════════════════════════════════════════════════════

class TestOperationTypes:

    @pytest.mark.parametrize("op,name", [
        (Add("/a", 1), "add"),
        (BatchAdd("/a", [1, 2]), "add"),
        (Remove("/a"), "remove"),
        (BatchRemove("/a", 2), "remove"),
        (Replace("/a", 1), "replace"),
        (Move("/b", "/a"), "move"),
        (Copy("/b", "/a"), "copy"),
        (Test("/a", 1), "test"),
    ])
    def test_op_names(self, op, name):
        assert op.op == name
        assert isinstance(op, OPERATION_TYPES)

    def test_frozen(self):
        op = Add("/a", 1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            op.path = "/b"

    def test_batch_add_values_are_a_tuple(self):
        op = BatchAdd("/a", [1, 2])
        assert op.values == (1, 2)
        assert op == BatchAdd("/a", (1, 2))

    def test_equality_and_hash(self):
        assert Move("/b", "/a") == Move("/b", "/a")
        assert Move("/b", "/a") != Copy("/b", "/a")
        assert len({Remove("/a"), Remove("/a"), Remove("/b")}) == 2

    def test_insert_op_wraps_list_values(self):
        assert insert_op("/0", 1) == Add("/0", 1)
        assert insert_op("/0", [1, 2]) == BatchAdd("/0", ([1, 2],))


# ═══════════════════════════════════════════════════════════════════
#  §2  DEEP EQUALITY
# ═══════════════════════════════════════════════════════════════════

class TestDeepEqual:

    @pytest.mark.parametrize("a,b", [
        (None, None),
        (1, 1),
        (1, 1.0),
        ("x", "x"),
        ([], []),
        ({}, {}),
        ([1, [2, {"a": 3}]], [1, [2, {"a": 3}]]),
        ({"a": 1, "b": 2}, {"b": 2, "a": 1}),
        (True, True),
    ])
    def test_equal(self, a, b):
        assert deep_equal(a, b)
        assert deep_equal(b, a)

    @pytest.mark.parametrize("a,b", [
        (1, 2),
        (True, 1),
        (False, 0),
        (None, False),
        ([1, 2], [2, 1]),
        ([1], [1, 1]),
        ({"a": 1}, {"a": 1, "b": 2}),
        ({"a": 1}, {"b": 1}),
        ([], {}),
        ("1", 1),
        ([True], [1]),
        ({"a": None}, {}),
    ])
    def test_not_equal(self, a, b):
        assert not deep_equal(a, b)
        assert not deep_equal(b, a)

    def test_self_referential(self):
        assert deep_equal(_cyclic_list(), _cyclic_list())

    def test_self_referential_mismatch(self):
        x = _cyclic_list()
        y = _cyclic_list()
        y[0] = 2
        assert not deep_equal(x, y)


# ═══════════════════════════════════════════════════════════════════
#  §3  DEEP CLONE
# ═══════════════════════════════════════════════════════════════════

class TestDeepClone:

    def test_independent(self):
        value = {"a": [1, {"b": 2}]}
        clone = deep_clone(value)
        clone["a"][1]["b"] = 3
        assert value == {"a": [1, {"b": 2}]}

    def test_preserves_sharing(self):
        shared = [1]
        clone = deep_clone({"x": shared, "y": shared})
        assert clone["x"] is clone["y"]
        assert clone["x"] is not shared

    def test_preserves_cycles(self):
        clone = deep_clone(_cyclic_list())
        assert clone[1] is clone


# ═══════════════════════════════════════════════════════════════════
#  §4  CYCLE DETECTION
# ═══════════════════════════════════════════════════════════════════

class TestDetectCircular:

    @pytest.mark.parametrize("value", [None, 1, "s", [], {}, {"a": [1, {"b": 2}]}])
    def test_acyclic(self, value):
        assert detect_circular(value) is None

    def test_diamond_sharing_is_not_a_cycle(self):
        shared = {"k": 1}
        assert detect_circular({"a": shared, "b": [shared, shared]}) is None

    def test_list_cycle(self):
        assert detect_circular(_cyclic_list()) == "/1"

    def test_nested_cycle(self):
        doc = {"a": {}}
        doc["a"]["self"] = doc
        assert detect_circular(doc) == "/a/self"


# ═══════════════════════════════════════════════════════════════════
#  §5  DEPTH BOUND
# ═══════════════════════════════════════════════════════════════════

class TestMaxDepth:

    def test_within_bound(self):
        validate_max_depth([[[1]]], 3)
        validate_max_depth({"a": {"b": 1}}, 2)

    def test_exceeded(self):
        with pytest.raises(MaxDepthExceededError) as info:
            validate_max_depth([[[1]]], 2)
        assert info.value.path == "/0/0/0"

    def test_starting_depth(self):
        with pytest.raises(MaxDepthExceededError):
            validate_max_depth({"a": 1}, 2, current_depth=2)

    def test_cycle_terminates(self):
        with pytest.raises(MaxDepthExceededError):
            validate_max_depth(_cyclic_list(), 50)
