"""
structpatch.diff — Structural diff producing a patch.

    create_patch({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4})
        → [Replace("/b", 3), Add("/c", 4)]

Objects are compared key by key (removed keys first, in old key order,
then added and changed keys in new key order), arrays positionally or,
with detect_move, by the LCS-based array differ, and anything else by
deep equality.  For fixed inputs and options the output is always the
same.
"""

import logging
from typing import Any, Mapping, Optional, Union

from .arrays import ArrayAdd, ArrayDiffer, ArrayRemove, batch_array_operations
from .core import MISSING, Add, Operation, Remove, Replace, deep_equal, detect_circular, validate_max_depth
from .errors import CircularReferenceError
from .lcs import LCSCache
from .options import DiffOptions
from .pointer import join_pointer

logger = logging.getLogger(__name__)


class Differ:
    """Recursive differ bound to one set of options (and an optional LCS cache)."""

    def __init__(
        self,
        options: Optional[Union[DiffOptions, Mapping[str, Any]]] = None,
        cache: Optional[LCSCache] = None,
    ):
        self.options = DiffOptions.coerce(options)
        self.arrays = ArrayDiffer(
            batch=self.options.batch_array_ops,
            max_batch_size=self.options.max_batch_size,
            cache=cache,
        )

    def diff(self, old: Any, new: Any) -> list[Operation]:
        """Patch transforming `old` into `new`.  MISSING stands for "absent"."""
        if self.options.check_circular:
            cycle = detect_circular(new)
            if cycle is not None:
                raise CircularReferenceError(
                    f"circular reference in target value at {cycle!r}",
                    path=cycle,
                )
        validate_max_depth(new, self.options.max_depth)

        patch: list[Operation] = []
        self._diff(old, new, "", patch)
        return patch

    def _diff(self, old: Any, new: Any, path: str, out: list[Operation]) -> None:
        if old is MISSING and new is MISSING:
            return
        if old is MISSING:
            out.append(Add(path, new))
            return
        if new is MISSING:
            out.append(Remove(path))
            return

        if isinstance(old, dict) and isinstance(new, dict):
            self._diff_objects(old, new, path, out)
        elif isinstance(old, list) and isinstance(new, list):
            self._diff_arrays(old, new, path, out)
        elif not deep_equal(old, new):
            out.append(Replace(path, new))

    def _diff_objects(self, old: dict, new: dict, path: str, out: list[Operation]) -> None:
        for key in old:
            if key not in new:
                out.append(Remove(join_pointer(path, key)))

        for key, value in new.items():
            child = join_pointer(path, key)
            if key not in old:
                out.append(Add(child, value))
            elif not deep_equal(old[key], value):
                self._diff(old[key], value, child, out)

    def _diff_arrays(self, old: list, new: list, path: str, out: list[Operation]) -> None:
        if deep_equal(old, new):
            return
        if self.options.detect_move:
            out.extend(self.arrays.diff(old, new, path))
            return

        # Positional: recurse over the shared prefix, then grow or shrink
        shared = min(len(old), len(new))
        for i in range(shared):
            if not deep_equal(old[i], new[i]):
                self._diff(old[i], new[i], join_pointer(path, i), out)

        tail: list[Any] = [ArrayAdd(path, i, (new[i],)) for i in range(shared, len(new))]
        tail.extend(ArrayRemove(path, i, (old[i],)) for i in range(len(old) - 1, shared - 1, -1))
        out.extend(batch_array_operations(
            tail,
            self.options.max_batch_size,
            batch=self.options.batch_array_ops,
        ))


def create_patch(
    old: Any,
    new: Any,
    options: Optional[Union[DiffOptions, Mapping[str, Any]]] = None,
    cache: Optional[LCSCache] = None,
) -> list[Operation]:
    """
    Compute the patch transforming `old` into `new`.

    Options (see DiffOptions): detect_move, batch_array_ops,
    max_batch_size, max_depth, check_circular.  Pass an LCSCache to reuse
    LCS results across calls.

    Raises CircularReferenceError if `new` contains a cycle and
    MaxDepthExceededError if it nests deeper than max_depth.
    """
    patch = Differ(options, cache).diff(old, new)
    logger.debug("create_patch produced %d operations", len(patch))
    return patch
