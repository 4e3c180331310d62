"""
structpatch.core — Operations, equality and traversal
=====================================================

§1  VALUES
──────────

The library works on plain JSON-like Python values:

    None, bool, int, float, str      → primitives
    list                             → ordered sequence (ARRAY)
    dict with str keys               → mapping (OBJECT)

Two details of Python matter here:

    • bool is a subclass of int (True == 1).  JSON does not conflate
      them, so neither does deep_equal.
    • Values are mutable and may share substructure or even contain
      themselves.  deep_equal, deep_clone, detect_circular and
      validate_max_depth all terminate on such inputs.


§2  OPERATIONS
──────────────

A patch is an ordered list of operations (RFC 6902), applied strictly in
order.  Each operation is one frozen dataclass:

    Add(path, value)              insert one value
    BatchAdd(path, values)        insert a contiguous run (array) or set
                                  the key to the list (object)
    Remove(path)                  delete one value
    BatchRemove(path, count)      delete `count` contiguous array elements
    Replace(path, value)          overwrite an existing value
    Move(path, from_path)         remove at from_path, add at path
    Copy(path, from_path)         add a deep copy of from_path at path
    Test(path, value)             assert the value at path

On the wire, BatchAdd is an "add" whose value is an array and BatchRemove
is a "remove" carrying the non-standard "count" member (see formats).
"""

import copy
from dataclasses import dataclass
from typing import Any, ClassVar, Optional

from .errors import MaxDepthExceededError
from .pointer import MISSING, join_pointer

__all__ = [
    "MISSING",
    "Operation", "Add", "BatchAdd", "Remove", "BatchRemove",
    "Replace", "Move", "Copy", "Test",
    "OPERATION_TYPES", "insert_op",
    "deep_equal", "deep_clone", "detect_circular", "validate_max_depth",
]


# ═══════════════════════════════════════════════════════════════════
#  OPERATION TYPES
# ═══════════════════════════════════════════════════════════════════

class Operation:
    """Base class for patch operations.  Not instantiated directly."""
    __slots__ = ()
    op: ClassVar[str] = ""


@dataclass(frozen=True, slots=True)
class Add(Operation):
    """Insert `value` at `path` (array insert, object set)."""
    op: ClassVar[str] = "add"
    path: str
    value: Any


@dataclass(frozen=True, slots=True)
class BatchAdd(Operation):
    """
    Insert a contiguous run of values.

    Inside an array the run is spliced in starting at `path`:

        BatchAdd("/xs/1", (8, 9)) on {"xs": [1, 2]} → {"xs": [1, 8, 9, 2]}

    Inside an object the key is set to the list of values.
    """
    op: ClassVar[str] = "add"
    path: str
    values: tuple

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True, slots=True)
class Remove(Operation):
    """Delete the value at `path`."""
    op: ClassVar[str] = "remove"
    path: str


@dataclass(frozen=True, slots=True)
class BatchRemove(Operation):
    """Delete `count` contiguous array elements starting at `path`."""
    op: ClassVar[str] = "remove"
    path: str
    count: int


@dataclass(frozen=True, slots=True)
class Replace(Operation):
    """Overwrite the existing value at `path`."""
    op: ClassVar[str] = "replace"
    path: str
    value: Any


@dataclass(frozen=True, slots=True)
class Move(Operation):
    """Remove the value at `from_path` and add it at `path`."""
    op: ClassVar[str] = "move"
    path: str
    from_path: str


@dataclass(frozen=True, slots=True)
class Copy(Operation):
    """Add an independent deep copy of the value at `from_path` at `path`."""
    op: ClassVar[str] = "copy"
    path: str
    from_path: str


@dataclass(frozen=True, slots=True)
class Test(Operation):
    """Fail unless the value at `path` deep-equals `value`."""
    op: ClassVar[str] = "test"
    __test__ = False  # not a pytest test class
    path: str
    value: Any


OPERATION_TYPES = (Add, BatchAdd, Remove, BatchRemove, Replace, Move, Copy, Test)


def insert_op(path: str, value: Any) -> Operation:
    """
    Operation inserting a single array element.

    A list-valued element is wrapped in a one-element BatchAdd: on the
    wire an "add" with an array value means "splice this run", so a bare
    Add would be read back as several elements.
    """
    if isinstance(value, list):
        return BatchAdd(path, (value,))
    return Add(path, value)


# ═══════════════════════════════════════════════════════════════════
#  EQUALITY
# ═══════════════════════════════════════════════════════════════════

def deep_equal(a: Any, b: Any, _assumed: Optional[set] = None) -> bool:
    """
    Structural equality of two JSON-like values.

        • lists compare element by element, in order
        • dicts compare by key set and per-key value, ignoring key order
        • bool never equals a number; 1 == 1.0 as in JSON

    Self-referential inputs terminate: a pair of containers already being
    compared is assumed equal when met again.  If any other part of the
    comparison fails, the whole comparison fails, so the assumption can
    only ever be confirmed.
    """
    if a is b:
        return True

    # bool/non-bool mismatch must be checked before ==, since True == 1
    if (type(a) is bool) != (type(b) is bool):
        return False

    if isinstance(a, dict):
        if not isinstance(b, dict) or len(a) != len(b):
            return False
    elif isinstance(a, list):
        if not isinstance(b, list) or len(a) != len(b):
            return False
    else:
        if isinstance(b, (dict, list)):
            return False
        return a == b

    if _assumed is None:
        _assumed = set()
    pair = (id(a), id(b))
    if pair in _assumed:
        return True
    _assumed.add(pair)

    if isinstance(a, dict):
        return all(key in b and deep_equal(a[key], b[key], _assumed) for key in a)
    return all(deep_equal(x, y, _assumed) for x, y in zip(a, b))


# ═══════════════════════════════════════════════════════════════════
#  CLONING AND TRAVERSAL
# ═══════════════════════════════════════════════════════════════════

def deep_clone(value: Any) -> Any:
    """
    Independent copy of `value`.

    copy.deepcopy keeps an identity-keyed memo of already-copied nodes,
    so a node reachable twice is copied once and cycles are reproduced
    instead of recursing forever.
    """
    return copy.deepcopy(value)


def detect_circular(value: Any) -> Optional[str]:
    """
    Pointer to the first value that re-enters one of its own ancestors,
    or None for an acyclic value.

    Only the ancestors of the current node are tracked, so the same list
    reachable through two different keys ("diamond" sharing) is not a
    cycle.

        x = [];  x.append(x)   → detect_circular(x) == "/0"
    """
    open_ids: set[int] = set()

    def visit(node: Any, path: str) -> Optional[str]:
        if isinstance(node, dict):
            children = node.items()
        elif isinstance(node, list):
            children = enumerate(node)
        else:
            return None
        if id(node) in open_ids:
            return path
        open_ids.add(id(node))
        try:
            for key, child in children:
                found = visit(child, join_pointer(path, key))
                if found is not None:
                    return found
        finally:
            open_ids.discard(id(node))
        return None

    return visit(value, "")


def validate_max_depth(value: Any, max_depth: int, current_depth: int = 0, path: str = "") -> None:
    """
    Raise MaxDepthExceededError if any node of `value` sits deeper than
    `max_depth` (the value itself is at `current_depth`).

    A cyclic value is infinitely deep and always fails.
    """
    if current_depth > max_depth:
        raise MaxDepthExceededError(
            f"maximum depth of {max_depth} exceeded at {path or '(root)'}",
            path=path,
        )
    if isinstance(value, dict):
        children = value.items()
    elif isinstance(value, list):
        children = enumerate(value)
    else:
        return
    for key, child in children:
        validate_max_depth(child, max_depth, current_depth + 1, join_pointer(path, key))
