"""
structpatch.pointer — JSON Pointer (RFC 6901) addressing.

A pointer is a string of "/"-separated reference tokens.  Inside a token,
"~1" stands for "/" and "~0" for "~"; any other "~" sequence is invalid.
The empty pointer "" addresses the whole document.

Array tokens:
    "0", "17"   → index (no leading zeros, except "0" itself)
    "-"         → one past the last element (append on write,
                  absent on read)

Reads never raise for a missing location; they return the MISSING
sentinel.  Writes and removals raise PatchError subclasses.
"""

import re
from typing import Any, Union

from .errors import (
    ArrayIndexError,
    InvalidPointerError,
    PathNotFoundError,
    RootOperationError,
    TypeMismatchError,
)


class _Missing:
    """Sentinel for "no value here" (distinct from a stored None)."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

_BAD_ESCAPE = re.compile(r"~(?![01])")
_INDEX = re.compile(r"0|[1-9][0-9]*")
_DIGITS = re.compile(r"[0-9]+")


# ═══════════════════════════════════════════════════════════════════
#  SYNTAX
# ═══════════════════════════════════════════════════════════════════

def escape(segment: str) -> str:
    """Escape one reference token: "~" → "~0", "/" → "~1"."""
    return segment.replace("~", "~0").replace("/", "~1")


def unescape(segment: str) -> str:
    """
    Inverse of escape.

    Order matters: "~1" is decoded before "~0" so that "~01" becomes
    "~1" and not "/".
    """
    if _BAD_ESCAPE.search(segment):
        raise InvalidPointerError(
            f"invalid escape sequence in pointer token {segment!r}",
            path=segment,
        )
    return segment.replace("~1", "/").replace("~0", "~")


def parse_pointer(pointer: str) -> list[str]:
    """Split a pointer into unescaped tokens.  "" → [], "/" → [""]."""
    if not isinstance(pointer, str):
        raise InvalidPointerError(
            f"pointer must be a string, got {type(pointer).__name__}",
            path=repr(pointer),
        )
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise InvalidPointerError(
            f"pointer must be empty or start with '/': {pointer!r}",
            path=pointer,
        )
    try:
        return [unescape(token) for token in pointer[1:].split("/")]
    except InvalidPointerError as exc:
        raise InvalidPointerError(exc.message, path=pointer) from None


def build_pointer(tokens: list[Union[str, int]]) -> str:
    """Join tokens (escaping each) into a pointer.  [] → ""."""
    return "".join("/" + escape(str(token)) for token in tokens)


def join_pointer(base: str, token: Union[str, int]) -> str:
    """Append one token to an existing pointer."""
    return base + "/" + escape(str(token))


def validate_json_pointer(pointer: str) -> None:
    """Raise InvalidPointerError unless `pointer` is well formed."""
    parse_pointer(pointer)


def is_strict_prefix(ancestor: str, pointer: str) -> bool:
    """True if `pointer` addresses a proper descendant of `ancestor`."""
    outer = parse_pointer(ancestor)
    inner = parse_pointer(pointer)
    return len(outer) < len(inner) and inner[:len(outer)] == outer


def is_index_token(token: str) -> bool:
    """True for tokens that read as an array index (digits or "-")."""
    return token == "-" or _DIGITS.fullmatch(token) is not None


# ═══════════════════════════════════════════════════════════════════
#  ARRAY TOKENS
# ═══════════════════════════════════════════════════════════════════

def array_index(token: str, length: int, *, allow_end: bool, pointer: str = "") -> int:
    """
    Convert an array reference token to an index.

    allow_end=True  (add, set):  valid range is [0, length], "-" → length
    allow_end=False (remove, replace, move source):  valid range is
    [0, length) and "-" is rejected.
    """
    if token == "-":
        if allow_end:
            return length
        raise ArrayIndexError(
            f"'-' does not address an existing element in {pointer!r}",
            path=pointer,
        )
    if not _INDEX.fullmatch(token):
        raise ArrayIndexError(f"invalid array index {token!r} in {pointer!r}", path=pointer)
    index = int(token)
    limit = length if allow_end else length - 1
    if index > limit:
        raise ArrayIndexError(
            f"array index {index} out of range (length {length}) in {pointer!r}",
            path=pointer,
        )
    return index


# ═══════════════════════════════════════════════════════════════════
#  RESOLUTION
# ═══════════════════════════════════════════════════════════════════

def _step(container: Any, token: str) -> Any:
    """One read step; MISSING when the token does not resolve."""
    if isinstance(container, dict):
        return container.get(token, MISSING)
    if isinstance(container, list):
        if not _INDEX.fullmatch(token):
            return MISSING
        index = int(token)
        return container[index] if index < len(container) else MISSING
    return MISSING


def resolve(doc: Any, pointer: str) -> Any:
    """Value at `pointer`, or MISSING.  The root pointer yields `doc`."""
    current = doc
    for token in parse_pointer(pointer):
        current = _step(current, token)
        if current is MISSING:
            return MISSING
    return current


def _new_container(next_token: str) -> Union[list, dict]:
    return [] if is_index_token(next_token) else {}


def _walk(doc: Any, tokens: list[str], pointer: str, *, create: bool, attach: bool) -> Any:
    """
    Follow all but the last token.  Missing intermediates raise unless
    `create`; created containers are only linked into `doc` when `attach`.
    """
    current = doc
    for position, token in enumerate(tokens[:-1]):
        following = tokens[position + 1]
        if isinstance(current, dict):
            if token in current:
                current = current[token]
                continue
            if not create:
                raise PathNotFoundError(f"path does not exist: {pointer!r}", path=pointer)
            child = _new_container(following)
            if attach:
                current[token] = child
            current = child
        elif isinstance(current, list):
            index = array_index(token, len(current), allow_end=create, pointer=pointer)
            if index < len(current):
                current = current[index]
                continue
            child = _new_container(following)
            if attach:
                current.append(child)
            current = child
        else:
            raise TypeMismatchError(
                f"cannot traverse into {type(current).__name__} at token "
                f"{token!r} of {pointer!r}",
                path=pointer,
            )

    if not isinstance(current, (dict, list)):
        raise TypeMismatchError(
            f"parent of {pointer!r} is a {type(current).__name__}, not a container",
            path=pointer,
        )
    return current


def resolve_parent(doc: Any, pointer: str, *, create: bool = False) -> tuple[Any, str]:
    """
    Return (container, last_token) for a non-root pointer.

    With create=True, missing intermediate containers are created: a list
    when the following token looks like an array index, else a dict.
    Nothing is created unless the whole walk succeeds.  Without create a
    missing intermediate raises PathNotFoundError.
    """
    tokens = parse_pointer(pointer)
    if not tokens:
        raise RootOperationError("address the parent of")
    if create:
        _walk(doc, tokens, pointer, create=True, attach=False)
    return _walk(doc, tokens, pointer, create=create, attach=True), tokens[-1]


def check_insertion(doc: Any, pointer: str) -> None:
    """
    Raise whatever inserting at `pointer` would raise, without touching
    `doc`.  Covers the intermediates an insert would create and the final
    array index.
    """
    tokens = parse_pointer(pointer)
    if not tokens:
        return
    parent = _walk(doc, tokens, pointer, create=True, attach=False)
    if isinstance(parent, list):
        array_index(tokens[-1], len(parent), allow_end=True, pointer=pointer)


def set_value(doc: Any, pointer: str, value: Any) -> None:
    """
    Store `value` at `pointer`, creating missing intermediates.

    Dict keys are overwritten; array slots are overwritten, and the index
    equal to the length (or "-") appends.  `doc` is left unchanged when
    the pointer cannot be stored to.
    """
    check_insertion(doc, pointer)
    parent, token = resolve_parent(doc, pointer, create=True)
    if isinstance(parent, dict):
        parent[token] = value
        return
    index = array_index(token, len(parent), allow_end=True, pointer=pointer)
    if index == len(parent):
        parent.append(value)
    else:
        parent[index] = value


def remove_value(doc: Any, pointer: str) -> Any:
    """Remove and return the value at `pointer`; MISSING if absent."""
    tokens = parse_pointer(pointer)
    if not tokens:
        raise RootOperationError("remove")

    parent = doc
    for token in tokens[:-1]:
        parent = _step(parent, token)
        if parent is MISSING:
            return MISSING

    last = tokens[-1]
    if isinstance(parent, dict):
        return parent.pop(last, MISSING)
    if isinstance(parent, list):
        return parent.pop(array_index(last, len(parent), allow_end=False, pointer=pointer))
    raise TypeMismatchError(
        f"parent of {pointer!r} is a {type(parent).__name__}, not a container",
        path=pointer,
    )
