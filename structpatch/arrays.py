"""
structpatch.arrays — Array diff with move detection and batching.

ALGORITHM
    1. Pair old and new elements along their LCS; those stay put.
    2. Pair each remaining new element with the first remaining old
       element equal to it: those are MOVES.
    3. Every other old element is REMOVED, back to front so that the
       indices of the removes still to come are unaffected.
    4. Walk the new array front to back.  Each added element is inserted
       right after the element placed before it; each moved element is
       relocated there.  Indices are read off a simulated copy of the
       working array, so every move's source index is the element's
       position at that moment.

    generate_array_operations([1, 2, 3, 4], [4, 2, 3, 1])
        → [ArrayMove(index=0, from_index=3), ArrayMove(index=3, from_index=1)]

The array operations are then turned into patch operations by
batch_array_operations, which merges contiguous runs of adds or removes
into one BatchAdd / BatchRemove.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from .core import BatchAdd, BatchRemove, Move, Operation, Remove, deep_equal, insert_op
from .errors import InvalidPatchError
from .lcs import LCSCache, lcs_pairs
from .options import DEFAULT_MAX_BATCH_SIZE
from .pointer import join_pointer

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  ARRAY OPERATIONS
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class ArrayAdd:
    """Insert `values` as a run starting at `index` of the array at `base`."""
    base: str
    index: int
    values: tuple

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True, slots=True)
class ArrayRemove:
    """Remove the run `values` starting at `index` of the array at `base`."""
    base: str
    index: int
    values: tuple

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    @property
    def count(self) -> int:
        return len(self.values)


@dataclass(frozen=True, slots=True)
class ArrayMove:
    """Move the element at `from_index` to `index` (post-removal index)."""
    base: str
    index: int
    from_index: int


ArrayOp = Union[ArrayAdd, ArrayRemove, ArrayMove]


# ═══════════════════════════════════════════════════════════════════
#  GENERATION
# ═══════════════════════════════════════════════════════════════════

def generate_array_operations(
    old: list,
    new: list,
    base: str = "",
    cache: Optional[LCSCache] = None,
) -> list[ArrayOp]:
    """
    Minimal add/remove/move script turning `old` into `new`.

    Replaying the result on a copy of `old` yields `new` exactly.
    """
    pairs = lcs_pairs(old, new, cache)
    stays = {j: i for i, j in pairs}
    kept = set(stays.values())

    spare = [i for i in range(len(old)) if i not in kept]
    sources: dict[int, int] = {}
    for j, value in enumerate(new):
        if j in stays:
            continue
        for position, i in enumerate(spare):
            if deep_equal(old[i], value):
                sources[j] = i
                del spare[position]
                break

    ops: list[ArrayOp] = [ArrayRemove(base, i, (old[i],)) for i in reversed(spare)]

    removed = set(spare)
    slots: list[tuple[str, int]] = [("old", i) for i in range(len(old)) if i not in removed]
    placed = -1  # slot holding new[j - 1]

    for j, value in enumerate(new):
        target = placed + 1
        if j in stays:
            placed = slots.index(("old", stays[j]))
            continue

        if j in sources:
            current = slots.index(("old", sources[j]))
            if current == target:
                placed = current
                continue
            token = slots.pop(current)
            if current < target:
                target -= 1
            slots.insert(target, token)
            ops.append(ArrayMove(base, target, current))
        else:
            slots.insert(target, ("new", j))
            ops.append(ArrayAdd(base, target, (value,)))
        placed = target

    return ops


# ═══════════════════════════════════════════════════════════════════
#  OPTIMIZATION AND BATCHING
# ═══════════════════════════════════════════════════════════════════

def coalesce_moves(ops: Iterable[Any]) -> list[Any]:
    """
    Rewrite a single-element remove immediately followed by a
    single-element add of an equal value into the same array as one move.

    Remove at r then add at a is exactly move(from r, to a), since a move's
    destination index is read after its source is removed.
    """
    result: list[Any] = []
    for op in ops:
        prev = result[-1] if result else None
        if (
            isinstance(op, ArrayAdd)
            and isinstance(prev, ArrayRemove)
            and prev.base == op.base
            and len(prev.values) == 1
            and len(op.values) == 1
            and deep_equal(prev.values[0], op.values[0])
        ):
            result.pop()
            if prev.index != op.index:
                result.append(ArrayMove(op.base, op.index, prev.index))
            continue
        result.append(op)
    return result


def _merge(run: Any, op: Any, max_batch_size: int) -> Optional[Union[ArrayAdd, ArrayRemove]]:
    """One run equivalent to applying `run` then `op`, or None."""
    if type(op) is not type(run) or op.base != run.base:
        return None
    if len(run.values) + len(op.values) > max_batch_size:
        return None

    if isinstance(run, ArrayAdd):
        # the insertion point lies inside or at either edge of the run
        offset = op.index - run.index
        if 0 <= offset <= len(run.values):
            values = run.values[:offset] + op.values + run.values[offset:]
            return ArrayAdd(run.base, run.index, values)
        return None

    # the removed range touches the hole left by the run
    offset = run.index - op.index
    if 0 <= offset <= len(op.values):
        values = op.values[:offset] + run.values + op.values[offset:]
        return ArrayRemove(run.base, op.index, values)
    return None


def _emit(item: Any, max_batch_size: int) -> list[Operation]:
    """Patch operations for one array operation, split to max_batch_size."""
    if isinstance(item, ArrayMove):
        return [Move(join_pointer(item.base, item.index), join_pointer(item.base, item.from_index))]

    if isinstance(item, ArrayAdd):
        ops: list[Operation] = []
        for offset in range(0, len(item.values), max_batch_size):
            chunk = item.values[offset:offset + max_batch_size]
            path = join_pointer(item.base, item.index + offset)
            ops.append(insert_op(path, chunk[0]) if len(chunk) == 1 else BatchAdd(path, chunk))
        return ops

    if isinstance(item, ArrayRemove):
        ops = []
        path = join_pointer(item.base, item.index)
        remaining = len(item.values)
        while remaining:
            size = min(max_batch_size, remaining)
            ops.append(Remove(path) if size == 1 else BatchRemove(path, size))
            remaining -= size
        return ops

    return [item]


def batch_array_operations(
    items: Iterable[Any],
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    batch: bool = True,
) -> list[Operation]:
    """
    Turn array operations into patch operations.

    With batch=True, adjacent adds forming one contiguous run become a
    single BatchAdd and adjacent removes of one contiguous range become a
    single BatchRemove, each at most `max_batch_size` long.  Items that are
    already patch Operations pass through untouched and end any run.
    """
    if max_batch_size < 1:
        raise InvalidPatchError(f"max_batch_size must be positive, got {max_batch_size}")

    out: list[Operation] = []
    run: Optional[Union[ArrayAdd, ArrayRemove]] = None
    for item in coalesce_moves(items):
        if run is not None:
            merged = _merge(run, item, max_batch_size)
            if merged is not None:
                run = merged
                continue
            out.extend(_emit(run, max_batch_size))
            run = None
        if batch and isinstance(item, (ArrayAdd, ArrayRemove)):
            run = item
        else:
            out.extend(_emit(item, max_batch_size))
    if run is not None:
        out.extend(_emit(run, max_batch_size))
    return out


# ═══════════════════════════════════════════════════════════════════
#  DIFFER
# ═══════════════════════════════════════════════════════════════════

class ArrayDiffer:
    """
    Array diff pipeline: LCS, move detection, batching.

    Holds an optional LCSCache so repeated diffs of similar arrays reuse
    earlier LCS tables.
    """

    def __init__(
        self,
        batch: bool = True,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        cache: Optional[LCSCache] = None,
    ):
        self.batch = batch
        self.max_batch_size = max_batch_size
        self.cache = cache

    def operations(self, old: list, new: list, base: str = "") -> list[ArrayOp]:
        return generate_array_operations(old, new, base, self.cache)

    def diff(self, old: list, new: list, base: str = "") -> list[Operation]:
        ops = self.operations(old, new, base)
        patch = batch_array_operations(ops, self.max_batch_size, self.batch)
        logger.debug(
            "array diff at %s: %d array ops → %d patch ops",
            base or "(root)", len(ops), len(patch),
        )
        return patch
