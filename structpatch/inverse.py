"""
structpatch.inverse — Patches that undo patches.

    create_inverse_patch({"a": 1}, [Add("/b", 2)])  → [Remove("/b")]

The patch is replayed on a scratch clone of the pre-patch document.
Before each step mutates the clone, the values it is about to overwrite
or delete are read and turned into the steps that restore them:

    add       → remove of what was inserted (an array run of the same
                length; replace with the prior value for an existing
                object key; remove of the outermost container the add
                had to create; replace of the whole prior root)
    remove    → add of the exact removed value(s) at the same index
    replace   → replace with the prior value
    move      → move back (pointers concrete, "-" resolved), or undo the
                insertion then the removal when the move overwrote a value
    copy      → nothing; with invert_copy=True, remove of the destination
                as for add
    test      → nothing

The per-step inverses are concatenated in reverse step order and sent
through the same batching pass as array diffs.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Union

from .arrays import ArrayAdd, ArrayRemove, batch_array_operations
from .core import (
    Add,
    BatchAdd,
    BatchRemove,
    Copy,
    Move,
    Operation,
    Remove,
    Replace,
    deep_clone,
)
from .errors import ArrayIndexError, PatchError
from .formats import parse_patch
from .options import InverseOptions
from .patch import apply_operation, apply_patch_with_rollback, validate_patch
from .pointer import MISSING, array_index, build_pointer, is_strict_prefix, join_pointer, parse_pointer, resolve

logger = logging.getLogger(__name__)

OptionsLike = Optional[Union[InverseOptions, Mapping[str, Any]]]


# ═══════════════════════════════════════════════════════════════════
#  PER-STEP INVERSES
# ═══════════════════════════════════════════════════════════════════
#
# Each helper reads the working document *before* the step runs.  When a
# step cannot apply (missing value, bad index) the helper returns [] and
# the replay of the step itself raises the proper error.

def _created_container(doc: Any, tokens: list[str]) -> Optional[str]:
    """Concrete pointer of the outermost intermediate an add would create."""
    current = doc
    concrete: list[Union[str, int]] = []
    for token in tokens[:-1]:
        if isinstance(current, list) and token == "-":
            return build_pointer(concrete + [len(current)])
        child = resolve(current, build_pointer([token]))
        if child is MISSING:
            return build_pointer(concrete + [token])
        concrete.append(token)
        current = child
    return None


def _invert_insert(doc: Any, path: str, values: tuple, splice: bool) -> list:
    """Undo an insertion of `values` (one value unless `splice`) at `path`."""
    if path == "":
        return [Replace("", deep_clone(doc))]

    tokens = parse_pointer(path)
    created = _created_container(doc, tokens)
    if created is not None:
        return [Remove(created)]

    base = build_pointer(tokens[:-1])
    parent = resolve(doc, base)
    token = tokens[-1]
    if isinstance(parent, list):
        try:
            index = array_index(token, len(parent), allow_end=True, pointer=path)
        except ArrayIndexError:
            return []
        return [ArrayRemove(base, index, values if splice else values[:1])]
    if isinstance(parent, dict):
        prior = parent.get(token, MISSING)
        if prior is MISSING:
            return [Remove(path)]
        return [Replace(path, deep_clone(prior))]
    return []


def _invert_remove(doc: Any, path: str, count: int = 1) -> list:
    if path == "":
        return []
    tokens = parse_pointer(path)
    base = build_pointer(tokens[:-1])
    parent = resolve(doc, base)
    token = tokens[-1]
    if isinstance(parent, list):
        try:
            index = array_index(token, len(parent), allow_end=False, pointer=path)
        except ArrayIndexError:
            return []
        removed = parent[index:index + count]
        if len(removed) < count:
            return []
        return [ArrayAdd(base, index, deep_clone(removed))]
    if isinstance(parent, dict) and count == 1 and token in parent:
        return [Add(path, deep_clone(parent[token]))]
    return []


def _as_pointer(item: Any) -> str:
    if isinstance(item, (ArrayAdd, ArrayRemove)):
        return join_pointer(item.base, item.index)
    return item.path


def _fuse_move(undo_insert: list, undo_remove: list, dest_depth: int) -> list:
    """
    A move's inverse is "undo the insertion, then undo the removal".  When
    that is a plain delete followed by a plain insert of the same value,
    it is one move in the opposite direction.
    """
    if len(undo_insert) == 1 and len(undo_remove) == 1:
        deleted, restored = undo_insert[0], undo_remove[0]
        plain_delete = (
            (isinstance(deleted, ArrayRemove) and deleted.count == 1)
            or (isinstance(deleted, Remove) and len(parse_pointer(deleted.path)) == dest_depth)
        )
        if plain_delete and isinstance(restored, (ArrayAdd, Add)):
            source, target = _as_pointer(deleted), _as_pointer(restored)
            if not is_strict_prefix(source, target):
                return [Move(target, source)]
    return undo_insert + undo_remove


# ═══════════════════════════════════════════════════════════════════
#  REPLAY
# ═══════════════════════════════════════════════════════════════════

def _replay_move(work: Any, op: Move, options: InverseOptions, index: int) -> tuple[Any, list]:
    value = resolve(work, op.from_path)
    if (
        value is MISSING
        or op.from_path in ("", op.path)
        or is_strict_prefix(op.from_path, op.path)
    ):
        # no-op or an error: let the real move decide
        return apply_operation(work, op, options, index), []

    undo_remove = _invert_remove(work, op.from_path)
    try:
        work = apply_operation(work, Remove(op.from_path), options, index)
        undo_insert = _invert_insert(work, op.path, (value,), splice=False)
        work = apply_operation(work, Add(op.path, value), options, index)
    except PatchError as exc:
        exc.operation = "move"
        raise
    return work, _fuse_move(undo_insert, undo_remove, len(parse_pointer(op.path)))


def _replay(work: Any, op: Operation, options: InverseOptions, index: int) -> tuple[Any, list]:
    """Apply `op` to `work`; returns (new work, inverse items for the step)."""
    if isinstance(op, Move):
        return _replay_move(work, op, options, index)

    if isinstance(op, Add):
        undo = _invert_insert(work, op.path, (op.value,), splice=False)
    elif isinstance(op, BatchAdd):
        undo = _invert_insert(work, op.path, op.values, splice=True)
    elif isinstance(op, BatchRemove):
        undo = _invert_remove(work, op.path, op.count)
    elif isinstance(op, Remove):
        undo = _invert_remove(work, op.path)
    elif isinstance(op, Replace):
        prior = resolve(work, op.path)
        undo = [] if prior is MISSING else [Replace(op.path, deep_clone(prior))]
    elif isinstance(op, Copy) and options.invert_copy:
        value = resolve(work, op.from_path)
        undo = [] if value is MISSING else _invert_insert(work, op.path, (value,), splice=False)
    else:
        undo = []
    return apply_operation(work, op, options, index), undo


def create_inverse_patch(
    pre_doc: Any,
    patch: Iterable[Any],
    options: OptionsLike = None,
) -> list[Operation]:
    """
    Patch that turns the result of applying `patch` to `pre_doc` back into
    `pre_doc`.  `pre_doc` is not modified.

    Raises whatever applying `patch` to `pre_doc` would raise.
    """
    options = InverseOptions.coerce(options)
    if options.validate_operations:
        ops = validate_patch(patch, options)
    else:
        ops = parse_patch(patch)
    unchecked = options.model_copy(update={"validate_operations": False})

    work = deep_clone(pre_doc)
    steps: list[list] = []
    for index, op in enumerate(ops):
        work, undo = _replay(work, op, unchecked, index)
        steps.append(undo)

    items = [item for undo in reversed(steps) for item in undo]
    inverse = batch_array_operations(items, options.max_batch_size, batch=options.batch_array_ops)
    if options.validate_inverse:
        validate_patch(inverse, options)
    logger.debug("inverse of %d operations has %d operations", len(ops), len(inverse))
    return inverse


def apply_patch_with_inverse(doc: Any, patch: Iterable[Any], options: OptionsLike = None) -> list[Operation]:
    """
    Apply `patch` to `doc` in place (rolling back on failure) and return
    the patch that undoes it.
    """
    options = InverseOptions.coerce(options)
    inverse = create_inverse_patch(doc, patch, options)
    apply_patch_with_rollback(doc, patch, options)
    return inverse
