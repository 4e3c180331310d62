"""
structpatch.patch — Validate and execute patches.

    doc = {"a": 1}
    apply_patch(doc, [{"op": "add", "path": "/b", "value": 2}])
        → {"a": 1, "b": 2}          (doc itself, mutated)

§1  VARIANTS
────────────

    apply_patch                  mutates `doc`; stops at the first failure
                                 and leaves earlier operations applied
    apply_patch_with_rollback    mutates `doc`; on failure restores it in
                                 place and re-raises
    apply_patch_immutable        applies to a clone; `doc` is never touched
    try_apply_patch              immutable, reports failure as a PatchResult

Every variant returns the resulting document.  That is normally `doc`
itself; only an add/replace/move/copy at the root pointer "" whose value
is not the same kind of container as `doc` (dict for dict, list for list)
produces a new root object, which is then returned.

A single operation either applies completely or not at all: inserts
check their target (created intermediates and final index included)
before mutating, and a move whose destination fails puts its source back.

§2  VALIDATION
──────────────

With validate on (the default), every operation is checked before the
first one runs: pointer syntax of "path" and "from", pointer depth within
max_depth, a positive count, and inserted values within max_depth.  With
check_circular on (the default), inserted values are also scanned for
cycles, whether or not validate is on.

§3  ALIASING
────────────

Inserted values are deep-cloned, so the document never shares structure
with the patch and a copy is independent of its source.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from .core import (
    OPERATION_TYPES,
    Add,
    BatchAdd,
    BatchRemove,
    Copy,
    Move,
    Operation,
    Remove,
    Replace,
    Test,
    deep_clone,
    deep_equal,
    detect_circular,
    validate_max_depth,
)
from .errors import (
    ArrayIndexError,
    CircularReferenceError,
    InternalError,
    InvalidOperationError,
    MaxDepthExceededError,
    PatchError,
    PathNotFoundError,
    RootOperationError,
    TestFailedError,
    TypeMismatchError,
)
from .formats import parse_operation, parse_patch
from .options import PatchOptions
from .pointer import (
    MISSING,
    array_index,
    check_insertion,
    is_strict_prefix,
    parse_pointer,
    resolve,
    resolve_parent,
)

logger = logging.getLogger(__name__)

OptionsLike = Optional[Union[PatchOptions, Mapping[str, Any]]]


@dataclass(frozen=True, slots=True)
class PatchResult:
    """Outcome of try_apply_patch.

    Attributes:
        document: The patched document, or the untouched input on failure
        success: Whether every operation applied
        error: The PatchError that stopped the patch (None on success)
        patch: The decoded operations that were applied (None on failure)
    """
    document: Any
    success: bool
    error: Optional[PatchError] = None
    patch: Optional[list] = None


def _annotate(exc: PatchError, op: Operation, index: Optional[int]) -> None:
    """Fill in whatever context the raising code did not know."""
    if exc.op_index is None:
        exc.op_index = index
    if exc.operation is None:
        exc.operation = op.op
    if exc.path is None:
        exc.path = op.path


# ═══════════════════════════════════════════════════════════════════
#  VALIDATION
# ═══════════════════════════════════════════════════════════════════

def _inserted_values(op: Operation) -> tuple:
    if isinstance(op, (Add, Replace)):
        return (op.value,)
    if isinstance(op, BatchAdd):
        return op.values
    return ()


def _check_pointer(pointer: Any, max_depth: int) -> int:
    """Syntax and depth check; returns the number of tokens."""
    depth = len(parse_pointer(pointer))
    if depth > max_depth:
        raise MaxDepthExceededError(
            f"pointer {pointer!r} is {depth} levels deep (max {max_depth})",
            path=pointer,
        )
    return depth


def _check_circular(op: Operation) -> None:
    for value in _inserted_values(op):
        cycle = detect_circular(value)
        if cycle is not None:
            raise CircularReferenceError(
                f"circular reference in inserted value at {cycle or '(root)'!r}",
                path=op.path,
            )


def validate_operation(
    op: Union[Operation, Mapping[str, Any]],
    options: OptionsLike = None,
    index: Optional[int] = None,
) -> Operation:
    """
    Check one operation without touching any document.

    Accepts an Operation or its wire mapping; returns the Operation.
    Raises the PatchError subclass describing the first problem found.
    """
    options = PatchOptions.coerce(options)
    op = parse_operation(op, index)
    if not isinstance(op, OPERATION_TYPES):
        raise InvalidOperationError(f"not an operation: {op!r}", op_index=index)

    try:
        depth = _check_pointer(op.path, options.max_depth)
        if isinstance(op, (Move, Copy)):
            _check_pointer(op.from_path, options.max_depth)
        if isinstance(op, BatchRemove):
            count = op.count
            if isinstance(count, bool) or not isinstance(count, int) or count < 1:
                raise ArrayIndexError(f"count must be a positive integer, got {count!r}")
        if options.check_circular:
            _check_circular(op)
        for value in _inserted_values(op):
            validate_max_depth(value, options.max_depth, depth, op.path)
    except PatchError as exc:
        _annotate(exc, op, index)
        raise
    return op


def validate_patch(patch: Iterable[Any], options: OptionsLike = None) -> list[Operation]:
    """Validate every operation of a patch; returns the decoded operations."""
    options = PatchOptions.coerce(options)
    return [validate_operation(op, options, index) for index, op in enumerate(parse_patch(patch))]


# ═══════════════════════════════════════════════════════════════════
#  PRIMITIVES
# ═══════════════════════════════════════════════════════════════════

def _replace_root(doc: Any, value: Any) -> Any:
    """Make `value` the whole document, in place when the kinds agree."""
    if isinstance(doc, dict) and isinstance(value, dict):
        doc.clear()
        doc.update(value)
        return doc
    if isinstance(doc, list) and isinstance(value, list):
        doc[:] = value
        return doc
    return value


def _add(doc: Any, path: str, value: Any) -> Any:
    if path == "":
        return _replace_root(doc, value)
    check_insertion(doc, path)
    parent, token = resolve_parent(doc, path, create=True)
    if isinstance(parent, list):
        parent.insert(array_index(token, len(parent), allow_end=True, pointer=path), value)
    else:
        parent[token] = value
    return doc


def _splice(doc: Any, path: str, values: list) -> Any:
    if path == "":
        return _replace_root(doc, values)
    check_insertion(doc, path)
    parent, token = resolve_parent(doc, path, create=True)
    if isinstance(parent, list):
        index = array_index(token, len(parent), allow_end=True, pointer=path)
        parent[index:index] = values
    else:
        parent[token] = values
    return doc


def _remove(doc: Any, path: str, count: int = 1) -> list:
    """Delete `count` values at `path`; returns them."""
    if path == "":
        raise RootOperationError("remove")
    parent, token = resolve_parent(doc, path)
    if isinstance(parent, dict):
        if count != 1:
            raise TypeMismatchError(
                f"batched remove at {path!r} needs an array parent, found an object",
                path=path,
            )
        if token not in parent:
            raise PathNotFoundError(f"path does not exist: {path!r}", path=path)
        return [parent.pop(token)]

    index = array_index(token, len(parent), allow_end=False, pointer=path)
    if index + count > len(parent):
        raise ArrayIndexError(
            f"cannot remove {count} elements at {path!r}: array has {len(parent)}",
            path=path,
        )
    removed = parent[index:index + count]
    del parent[index:index + count]
    return removed


def _replace(doc: Any, path: str, value: Any) -> Any:
    if resolve(doc, path) is MISSING:
        raise PathNotFoundError(f"path does not exist: {path!r}", path=path)
    if path == "":
        return _replace_root(doc, value)
    parent, token = resolve_parent(doc, path)
    if isinstance(parent, list):
        parent[int(token)] = value
    else:
        parent[token] = value
    return doc


def _source(doc: Any, from_path: str) -> Any:
    value = resolve(doc, from_path)
    if value is MISSING:
        raise PathNotFoundError(f"'from' path does not exist: {from_path!r}", path=from_path)
    return value


def _move(doc: Any, op: Move) -> Any:
    if op.from_path == "":
        raise RootOperationError("move")
    value = _source(doc, op.from_path)
    if op.from_path == op.path:
        return doc
    if is_strict_prefix(op.from_path, op.path):
        raise InvalidOperationError(
            f"cannot move {op.from_path!r} into its own descendant {op.path!r}",
            path=op.path,
        )
    parent, token = resolve_parent(doc, op.from_path)
    _remove(doc, op.from_path)
    try:
        return _add(doc, op.path, value)
    except PatchError:
        # the destination is checked against the post-removal shape, so
        # a failed add has not touched doc; put the source back
        if isinstance(parent, list):
            parent.insert(int(token), value)
        else:
            parent[token] = value
        raise


def _execute(doc: Any, op: Operation) -> Any:
    if isinstance(op, Add):
        return _add(doc, op.path, deep_clone(op.value))
    if isinstance(op, BatchAdd):
        return _splice(doc, op.path, deep_clone(list(op.values)))
    if isinstance(op, BatchRemove):
        _remove(doc, op.path, op.count)
        return doc
    if isinstance(op, Remove):
        _remove(doc, op.path)
        return doc
    if isinstance(op, Replace):
        return _replace(doc, op.path, deep_clone(op.value))
    if isinstance(op, Move):
        return _move(doc, op)
    if isinstance(op, Copy):
        return _add(doc, op.path, deep_clone(_source(doc, op.from_path)))
    if isinstance(op, Test):
        actual = resolve(doc, op.path)
        if actual is MISSING or not deep_equal(actual, op.value):
            raise TestFailedError(op.path, op.value, actual)
        return doc
    raise InvalidOperationError(f"not an operation: {op!r}")


# ═══════════════════════════════════════════════════════════════════
#  APPLICATION
# ═══════════════════════════════════════════════════════════════════

def apply_operation(
    doc: Any,
    op: Union[Operation, Mapping[str, Any]],
    options: OptionsLike = None,
    index: Optional[int] = None,
) -> Any:
    """
    Apply one operation to `doc` in place and return the document.

    Exceptions other than PatchError are wrapped in InternalError.
    """
    options = PatchOptions.coerce(options)
    op = parse_operation(op, index)
    if options.validate_operations:
        validate_operation(op, options, index)
    elif options.check_circular:
        try:
            _check_circular(op)
        except PatchError as exc:
            _annotate(exc, op, index)
            raise

    try:
        return _execute(doc, op)
    except PatchError as exc:
        _annotate(exc, op, index)
        raise
    except Exception as exc:
        raise InternalError(
            f"unexpected {type(exc).__name__} while applying {op.op!r}: {exc}",
            path=op.path,
            operation=op.op,
            op_index=index,
        ) from exc


def apply_patch(doc: Any, patch: Iterable[Any], options: OptionsLike = None) -> Any:
    """
    Apply a patch to `doc` in place, strictly in order.

    Validation (when enabled) covers the whole patch before anything is
    mutated.  A failure during execution stops the patch and leaves the
    operations before it applied.
    """
    options = PatchOptions.coerce(options)
    if options.validate_operations:
        ops = validate_patch(patch, options)
    else:
        ops = parse_patch(patch)
        if options.check_circular:
            for index, op in enumerate(ops):
                try:
                    _check_circular(op)
                except PatchError as exc:
                    _annotate(exc, op, index)
                    raise

    checked = options.model_copy(update={"validate_operations": False, "check_circular": False})
    for index, op in enumerate(ops):
        doc = apply_operation(doc, op, checked, index)
    logger.debug("applied patch of %d operations", len(ops))
    return doc


def apply_patch_immutable(doc: Any, patch: Iterable[Any], options: OptionsLike = None) -> Any:
    """Apply a patch to a deep clone of `doc` and return the clone."""
    return apply_patch(deep_clone(doc), patch, options)


def _restore(doc: Any, snapshot: Any) -> None:
    if isinstance(doc, dict):
        doc.clear()
        doc.update(snapshot)
    elif isinstance(doc, list):
        doc[:] = snapshot


def apply_patch_with_rollback(doc: Any, patch: Iterable[Any], options: OptionsLike = None) -> Any:
    """
    Apply a patch to `doc` in place; on failure put `doc` back exactly as
    it was (same object, same contents) and re-raise.
    """
    snapshot = deep_clone(doc)
    try:
        return apply_patch(doc, patch, options)
    except PatchError as exc:
        _restore(doc, snapshot)
        logger.warning("patch failed (%s); document restored from snapshot", exc)
        raise


def try_apply_patch(doc: Any, patch: Iterable[Any], options: OptionsLike = None) -> PatchResult:
    """Immutable apply that returns failures instead of raising them."""
    try:
        ops = parse_patch(patch)
        result = apply_patch_immutable(doc, ops, options)
    except PatchError as exc:
        logger.debug("try_apply_patch failed: %s", exc)
        return PatchResult(document=doc, success=False, error=exc)
    return PatchResult(document=result, success=True, patch=ops)
