"""
Tests for structpatch.formats — wire format conversion.

    §1  Decoding
    §2  Encoding
    §3  JSON text
    §4  Strict RFC 6902 form
"""

import sys
import os
import json
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structpatch.core import (
    Add,
    BatchAdd,
    BatchRemove,
    Copy,
    Move,
    Remove,
    Replace,
    Test,
)
from structpatch.errors import (
    ArrayIndexError,
    InvalidOperationError,
    InvalidPatchError,
    InvalidPointerError,
    MissingFieldError,
)
from structpatch.formats import (
    WireOperation,
    expand_batched_removes,
    from_json,
    operation_to_wire,
    parse_operation,
    parse_patch,
    patch_to_wire,
    to_json,
)


# ═══════════════════════════════════════════════════════════════════
#  §1  DECODING
# ═══════════════════════════════════════════════════════════════════

class TestDecoding:

    @pytest.mark.parametrize("wire,expected", [
        ({"op": "add", "path": "/a", "value": 1}, Add("/a", 1)),
        ({"op": "add", "path": "/a", "value": None}, Add("/a", None)),
        ({"op": "add", "path": "/a", "value": {"k": [1]}}, Add("/a", {"k": [1]})),
        ({"op": "add", "path": "/a/0", "value": [1, 2]}, BatchAdd("/a/0", (1, 2))),
        ({"op": "remove", "path": "/a"}, Remove("/a")),
        ({"op": "remove", "path": "/a", "count": 1}, Remove("/a")),
        ({"op": "remove", "path": "/a/1", "count": 3}, BatchRemove("/a/1", 3)),
        ({"op": "replace", "path": "", "value": [1]}, Replace("", [1])),
        ({"op": "move", "from": "/a", "path": "/b"}, Move("/b", "/a")),
        ({"op": "copy", "from": "/a", "path": "/b"}, Copy("/b", "/a")),
        ({"op": "test", "path": "/a", "value": False}, Test("/a", False)),
    ])
    def test_operations(self, wire, expected):
        assert parse_operation(wire) == expected

    def test_unknown_members_ignored(self):
        wire = {"op": "remove", "path": "/a", "value": 3, "comment": "x"}
        assert parse_operation(wire) == Remove("/a")

    def test_operations_pass_through(self):
        op = Move("/b", "/a")
        assert parse_operation(op) is op

    def test_mixed_patch(self):
        patch = parse_patch([Add("/a", 1), {"op": "remove", "path": "/a"}])
        assert patch == [Add("/a", 1), Remove("/a")]

    def test_pointer_syntax_is_not_checked_here(self):
        assert parse_operation({"op": "remove", "path": "no-slash"}) == Remove("no-slash")

    @pytest.mark.parametrize("wire,field", [
        ({"op": "add", "value": 1}, "path"),
        ({"op": "add", "path": "/a"}, "value"),
        ({"op": "replace", "path": "/a"}, "value"),
        ({"op": "test", "path": "/a"}, "value"),
        ({"op": "move", "path": "/a"}, "from"),
        ({"op": "copy", "path": "/a"}, "from"),
    ])
    def test_missing_fields(self, wire, field):
        with pytest.raises(MissingFieldError) as info:
            parse_operation(wire, index=4)
        assert info.value.field == field
        assert info.value.op_index == 4

    @pytest.mark.parametrize("wire,error", [
        ({"op": "jump", "path": "/a"}, InvalidOperationError),
        ({"op": 5, "path": "/a"}, InvalidOperationError),
        ({"path": "/a"}, InvalidOperationError),
        ({"op": "remove", "path": 5}, InvalidPointerError),
        ({"op": "move", "path": "/a", "from": ["x"]}, InvalidPointerError),
        ({"op": "remove", "path": "/a", "count": 0}, ArrayIndexError),
        ({"op": "remove", "path": "/a", "count": -2}, ArrayIndexError),
        ({"op": "remove", "path": "/a", "count": "2"}, ArrayIndexError),
        ({"op": "add", "path": "/a", "value": 1, "count": 2}, InvalidPatchError),
        ("remove", InvalidPatchError),
        (None, InvalidPatchError),
    ])
    def test_malformed(self, wire, error):
        with pytest.raises(error):
            parse_operation(wire)

    @pytest.mark.parametrize("patch", [None, "[]", {"op": "add"}, 3])
    def test_patch_must_be_a_list(self, patch):
        with pytest.raises(InvalidPatchError):
            parse_patch(patch)

    def test_element_index_reported(self):
        with pytest.raises(InvalidPatchError) as info:
            parse_patch([{"op": "remove", "path": "/a"}, 7])
        assert info.value.op_index == 1


# ═══════════════════════════════════════════════════════════════════
#  §2  ENCODING
# ═══════════════════════════════════════════════════════════════════

class TestEncoding:

    @pytest.mark.parametrize("op,wire", [
        (Add("/a", 1), {"op": "add", "path": "/a", "value": 1}),
        (Add("/a", None), {"op": "add", "path": "/a", "value": None}),
        (BatchAdd("/a/0", (1, 2)), {"op": "add", "path": "/a/0", "value": [1, 2]}),
        (Remove("/a"), {"op": "remove", "path": "/a"}),
        (BatchRemove("/a/1", 3), {"op": "remove", "path": "/a/1", "count": 3}),
        (Replace("", {"k": 1}), {"op": "replace", "path": "", "value": {"k": 1}}),
        (Move("/b", "/a"), {"op": "move", "path": "/b", "from": "/a"}),
        (Copy("/b", "/a"), {"op": "copy", "path": "/b", "from": "/a"}),
        (Test("/a", [1]), {"op": "test", "path": "/a", "value": [1]}),
    ])
    def test_operation_to_wire(self, op, wire):
        assert operation_to_wire(op) == wire

    def test_not_an_operation(self):
        with pytest.raises(InvalidOperationError):
            operation_to_wire({"op": "add"})

    def test_decoding_encoded_patch(self):
        patch = [
            Add("/a", {"x": 1}),
            BatchAdd("/l/0", ([1], 2)),
            BatchRemove("/l/3", 2),
            Move("/b", "/a"),
            Test("/b", {"x": 1}),
        ]
        assert parse_patch(patch_to_wire(patch)) == patch

    def test_list_valued_add_reads_back_as_batch(self):
        wire = patch_to_wire([Add("/a", [1, 2])])
        assert parse_patch(wire) == [BatchAdd("/a", (1, 2))]

    def test_wire_model(self):
        wire = WireOperation.model_validate({"op": "move", "from": "/a", "path": "/b"})
        assert wire.from_path == "/a"
        assert "value" not in wire.model_fields_set


# ═══════════════════════════════════════════════════════════════════
#  §3  JSON TEXT
# ═══════════════════════════════════════════════════════════════════

class TestJSON:

    def test_round_trip(self):
        patch = [Replace("/b", 3), Add("/c", 4), BatchRemove("/l/0", 2)]
        assert from_json(to_json(patch)) == patch

    def test_to_json_kwargs(self):
        text = to_json([Remove("/a")], sort_keys=True)
        assert text == '[{"op": "remove", "path": "/a"}]'

    def test_from_json(self):
        text = json.dumps([{"op": "copy", "from": "/a", "path": "/b"}])
        assert from_json(text) == [Copy("/b", "/a")]

    @pytest.mark.parametrize("text", ["", "[", "{'op': 'add'}"])
    def test_invalid_json(self, text):
        with pytest.raises(InvalidPatchError):
            from_json(text)

    def test_json_not_a_list(self):
        with pytest.raises(InvalidPatchError):
            from_json('{"op": "remove", "path": "/a"}')


# ═══════════════════════════════════════════════════════════════════
#  §4  STRICT RFC 6902 FORM
# ═══════════════════════════════════════════════════════════════════

class TestExpandBatchedRemoves:

    def test_expands(self):
        patch = [Add("/x", 1), BatchRemove("/l/1", 3), Remove("/y")]
        assert expand_batched_removes(patch) == [
            Add("/x", 1), Remove("/l/1"), Remove("/l/1"), Remove("/l/1"), Remove("/y"),
        ]

    def test_wire_has_no_count(self):
        wire = patch_to_wire(expand_batched_removes([BatchRemove("/0", 2)]))
        assert wire == [{"op": "remove", "path": "/0"}, {"op": "remove", "path": "/0"}]
