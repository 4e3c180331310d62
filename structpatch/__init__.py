"""
Structural patches for JSON-like values
=======================================

Compute, apply and undo RFC 6902 patches between plain Python values
addressed by RFC 6901 pointers.

    old = {"a": 1, "b": 2}
    new = {"a": 1, "b": 3, "c": 4}

    create_patch(old, new)          → [Replace("/b", 3), Add("/c", 4)]
    apply_patch(old, patch)         → old is now equal to new
    create_inverse_patch(pre, p)    → the patch that undoes p

Arrays are diffed positionally by default, or with an LCS-based differ
that detects moves (detect_move=True).  Contiguous array inserts and
removals are batched into one operation each: an "add" whose value is an
array, and a "remove" carrying a non-standard "count".  Use
expand_batched_removes before handing a patch to a strict RFC 6902
consumer.
"""

from structpatch.core import (
    # Operations
    Operation,
    Add,
    BatchAdd,
    Remove,
    BatchRemove,
    Replace,
    Move,
    Copy,
    Test,
    # Values
    MISSING,
    deep_equal,
    deep_clone,
    detect_circular,
    validate_max_depth,
)
from structpatch.errors import (
    ErrorKind,
    PatchError,
    InvalidPointerError,
    InvalidOperationError,
    InvalidPatchError,
    MissingFieldError,
    ArrayIndexError,
    RootOperationError,
    CircularReferenceError,
    TypeMismatchError,
    MaxDepthExceededError,
    TestFailedError,
    PathNotFoundError,
    InternalError,
)
from structpatch.pointer import (
    escape, unescape, parse_pointer, build_pointer, validate_json_pointer, resolve,
)
from structpatch.options import PatchOptions, DiffOptions, InverseOptions
from structpatch.lcs import LCSCache, find_lcs, get_array_similarity
from structpatch.arrays import ArrayDiffer, generate_array_operations, batch_array_operations
from structpatch.diff import create_patch
from structpatch.patch import (
    PatchResult,
    validate_operation,
    validate_patch,
    apply_operation,
    apply_patch,
    apply_patch_immutable,
    apply_patch_with_rollback,
    try_apply_patch,
)
from structpatch.inverse import create_inverse_patch, apply_patch_with_inverse
from structpatch.formats import (
    parse_patch, patch_to_wire, from_json, to_json, expand_batched_removes,
)

__version__ = "0.1.0"
__all__ = [
    "Operation", "Add", "BatchAdd", "Remove", "BatchRemove",
    "Replace", "Move", "Copy", "Test",
    "MISSING", "deep_equal", "deep_clone", "detect_circular", "validate_max_depth",
    "ErrorKind", "PatchError", "InvalidPointerError", "InvalidOperationError",
    "InvalidPatchError", "MissingFieldError", "ArrayIndexError",
    "RootOperationError", "CircularReferenceError", "TypeMismatchError",
    "MaxDepthExceededError", "TestFailedError", "PathNotFoundError",
    "InternalError",
    "escape", "unescape", "parse_pointer", "build_pointer",
    "validate_json_pointer", "resolve",
    "PatchOptions", "DiffOptions", "InverseOptions",
    "LCSCache", "find_lcs", "get_array_similarity",
    "ArrayDiffer", "generate_array_operations", "batch_array_operations",
    "create_patch",
    "PatchResult", "validate_operation", "validate_patch",
    "apply_operation", "apply_patch", "apply_patch_immutable",
    "apply_patch_with_rollback", "try_apply_patch",
    "create_inverse_patch", "apply_patch_with_inverse",
    "parse_patch", "patch_to_wire", "from_json", "to_json",
    "expand_batched_removes",
]
