"""
structpatch.formats — Convert between wire-format patches and operations.

Supported conversions:
    • JSON Patch documents (lists of mappings) ↔ Operation lists
    • JSON text ↔ Operation lists
    • batched removes → strict RFC 6902 removes

Wire rules beyond RFC 6902:
    • an "add" whose value is an array is a BatchAdd (a run to splice
      into an array, or the list itself when the parent is an object)
    • a "remove" may carry "count" (positive integer): remove that many
      contiguous array elements starting at "path"
"""

import json
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from .core import Add, BatchAdd, BatchRemove, Copy, Move, Operation, Remove, Replace, Test
from .errors import (
    ArrayIndexError,
    InvalidOperationError,
    InvalidPatchError,
    InvalidPointerError,
    MissingFieldError,
)

OP_NAMES = ("add", "remove", "replace", "move", "copy", "test")


class WireOperation(BaseModel):
    """One operation object as it appears in a JSON Patch document."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    op: StrictStr
    path: Optional[StrictStr] = None
    from_path: Optional[StrictStr] = Field(default=None, alias="from")
    value: Any = None
    count: Optional[StrictInt] = None


# ═══════════════════════════════════════════════════════════════════
#  WIRE → OPERATIONS
# ═══════════════════════════════════════════════════════════════════

def _decode_error(exc: ValidationError, index: Optional[int]):
    """Translate the first pydantic error into the matching PatchError."""
    first = exc.errors()[0]
    field = first["loc"][0] if first["loc"] else ""
    detail = f"{field}: {first['msg']}" if field else first["msg"]
    if field in ("path", "from"):
        return InvalidPointerError(f"invalid {field!r} member ({detail})", op_index=index)
    if field == "op":
        return InvalidOperationError(f"invalid 'op' member ({detail})", op_index=index)
    if field == "count":
        return ArrayIndexError(f"invalid 'count' member ({detail})", op_index=index)
    return InvalidPatchError(f"malformed operation ({detail})", op_index=index)


def parse_operation(obj: Any, index: Optional[int] = None) -> Operation:
    """
    Decode one wire operation.  Operation instances are returned as is.

    Raises InvalidPatchError, InvalidOperationError, MissingFieldError,
    InvalidPointerError (non-string pointer) or ArrayIndexError (bad count).
    Pointer syntax itself is checked later, by validation.
    """
    if isinstance(obj, Operation):
        return obj
    if not isinstance(obj, Mapping):
        raise InvalidPatchError(
            f"operation must be an object, got {type(obj).__name__}",
            op_index=index,
        )
    try:
        wire = WireOperation.model_validate(obj)
    except ValidationError as exc:
        raise _decode_error(exc, index) from exc

    kind = wire.op
    if kind not in OP_NAMES:
        raise InvalidOperationError(f"unknown op {kind!r}", operation=kind, op_index=index)
    if wire.path is None:
        raise MissingFieldError(kind, "path", index)
    if kind in ("add", "replace", "test") and "value" not in wire.model_fields_set:
        raise MissingFieldError(kind, "value", index)
    if kind in ("move", "copy") and wire.from_path is None:
        raise MissingFieldError(kind, "from", index)
    if wire.count is not None:
        if kind != "remove":
            raise InvalidPatchError(
                f"'count' is only allowed on remove, not {kind!r}",
                path=wire.path, operation=kind, op_index=index,
            )
        if wire.count < 1:
            raise ArrayIndexError(
                f"'count' must be a positive integer, got {wire.count}",
                path=wire.path, operation=kind, op_index=index,
            )

    if kind == "add":
        if isinstance(wire.value, list):
            return BatchAdd(wire.path, wire.value)
        return Add(wire.path, wire.value)
    if kind == "remove":
        if wire.count is not None and wire.count > 1:
            return BatchRemove(wire.path, wire.count)
        return Remove(wire.path)
    if kind == "replace":
        return Replace(wire.path, wire.value)
    if kind == "move":
        return Move(wire.path, wire.from_path)
    if kind == "copy":
        return Copy(wire.path, wire.from_path)
    return Test(wire.path, wire.value)


def parse_patch(obj: Any) -> list[Operation]:
    """
    Decode a patch: a list (or tuple) whose items are wire mappings or
    Operation instances, in any mix.
    """
    if not isinstance(obj, (list, tuple)):
        raise InvalidPatchError(
            f"patch must be a list of operations, got {type(obj).__name__}"
        )
    return [parse_operation(item, index) for index, item in enumerate(obj)]


def from_json(text: str) -> list[Operation]:
    """Parse a JSON Patch document."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidPatchError(f"patch is not valid JSON: {exc}") from exc
    return parse_patch(document)


# ═══════════════════════════════════════════════════════════════════
#  OPERATIONS → WIRE
# ═══════════════════════════════════════════════════════════════════

def operation_to_wire(op: Operation) -> dict[str, Any]:
    """Encode one operation as a JSON Patch object."""
    if isinstance(op, BatchAdd):
        wire = WireOperation(op="add", path=op.path, value=list(op.values))
    elif isinstance(op, (Add, Replace, Test)):
        wire = WireOperation(op=op.op, path=op.path, value=op.value)
    elif isinstance(op, BatchRemove):
        wire = WireOperation(op="remove", path=op.path, count=op.count)
    elif isinstance(op, Remove):
        wire = WireOperation(op="remove", path=op.path)
    elif isinstance(op, (Move, Copy)):
        wire = WireOperation(op=op.op, path=op.path, from_path=op.from_path)
    else:
        raise InvalidOperationError(f"not an operation: {op!r}")
    return wire.model_dump(by_alias=True, exclude_unset=True)


def patch_to_wire(patch: Iterable[Operation]) -> list[dict[str, Any]]:
    return [operation_to_wire(op) for op in patch]


def to_json(patch: Iterable[Operation], **kwargs) -> str:
    """Serialize a patch to a JSON Patch document."""
    return json.dumps(patch_to_wire(patch), **kwargs)


def expand_batched_removes(patch: Iterable[Operation]) -> list[Operation]:
    """
    Strict RFC 6902 form of a patch's removes: BatchRemove(path, n)
    becomes n × Remove(path).  Other operations are kept as they are.
    """
    expanded: list[Operation] = []
    for op in patch:
        if isinstance(op, BatchRemove):
            expanded.extend(Remove(op.path) for _ in range(op.count))
        else:
            expanded.append(op)
    return expanded
