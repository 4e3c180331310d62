"""
structpatch.errors — Error taxonomy shared by every component.

Every failure raised by the library is a PatchError subclass carrying a
machine-readable ErrorKind plus the offending pointer and operation, so
callers can handle failures as data (see PatchError.to_dict and
structpatch.patch.try_apply_patch).
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Machine-readable failure categories."""
    INVALID_POINTER = "INVALID_POINTER"
    INVALID_OPERATION = "INVALID_OPERATION"
    INVALID_PATCH = "INVALID_PATCH"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    ARRAY_INDEX_ERROR = "ARRAY_INDEX_ERROR"
    ROOT_OPERATION_ERROR = "ROOT_OPERATION_ERROR"
    CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    MAX_DEPTH_EXCEEDED = "MAX_DEPTH_EXCEEDED"
    TEST_OPERATION_FAILED = "TEST_OPERATION_FAILED"
    PATH_NOT_FOUND = "PATH_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PatchError(Exception):
    """Base class for all structpatch failures.

    Attributes:
        kind: The ErrorKind of this failure
        message: Human readable description
        path: The JSON pointer involved (optional)
        operation: The op name ("add", "move", ...) involved (optional)
        op_index: Position of the failing operation in its patch (optional)
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        operation: Optional[str] = None,
        op_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.operation = operation
        self.op_index = op_index

    def __str__(self) -> str:
        if self.op_index is None:
            return self.message
        return f"operation {self.op_index}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Structured form of the error, suitable for JSON output."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "path": self.path,
            "operation": self.operation,
            "op_index": self.op_index,
        }


class InvalidPointerError(PatchError):
    """Malformed JSON pointer syntax or escape sequence."""
    kind = ErrorKind.INVALID_POINTER


class InvalidOperationError(PatchError):
    """Unknown op, or an op that is illegal for its arguments."""
    kind = ErrorKind.INVALID_OPERATION


class InvalidPatchError(PatchError):
    """The patch document itself is not a well-formed list of operations."""
    kind = ErrorKind.INVALID_PATCH


class MissingFieldError(PatchError):
    """A field required by the op kind (path, from, value) is absent."""
    kind = ErrorKind.MISSING_REQUIRED_FIELD

    def __init__(self, operation: str, field: str, op_index: Optional[int] = None) -> None:
        super().__init__(
            f"{operation!r} operation requires {field!r} field",
            operation=operation,
            op_index=op_index,
        )
        self.field = field


class ArrayIndexError(PatchError):
    """Malformed or out-of-range array index, or a bad batch count."""
    kind = ErrorKind.ARRAY_INDEX_ERROR


class RootOperationError(PatchError):
    """The operation cannot target the document root."""
    kind = ErrorKind.ROOT_OPERATION_ERROR

    def __init__(self, operation: str, op_index: Optional[int] = None) -> None:
        super().__init__(
            f"cannot {operation} the document root",
            path="",
            operation=operation,
            op_index=op_index,
        )


class CircularReferenceError(PatchError):
    """A value being inserted or diffed contains a cycle."""
    kind = ErrorKind.CIRCULAR_REFERENCE


class TypeMismatchError(PatchError):
    """Traversal hit a value that is not a container."""
    kind = ErrorKind.TYPE_MISMATCH


class MaxDepthExceededError(PatchError):
    """Nesting went past the configured max_depth."""
    kind = ErrorKind.MAX_DEPTH_EXCEEDED


class TestFailedError(PatchError):
    """A test operation found a different value at its path."""
    kind = ErrorKind.TEST_OPERATION_FAILED
    __test__ = False  # not a pytest test class

    def __init__(self, path: str, expected: Any, actual: Any, op_index: Optional[int] = None) -> None:
        super().__init__(
            f"test failed at {path!r}: expected {expected!r}, got {actual!r}",
            path=path,
            operation="test",
            op_index=op_index,
        )
        self.expected = expected
        self.actual = actual


class PathNotFoundError(PatchError):
    """The pointer does not resolve to an existing value."""
    kind = ErrorKind.PATH_NOT_FOUND


class InternalError(PatchError):
    """Wraps an unexpected exception raised while executing an operation."""
    kind = ErrorKind.INTERNAL_ERROR
