"""
structpatch.lcs — Longest common subsequence of two arrays.

The LCS of old and new array contents is the set of elements that can
stay where they are; everything else is removed, added or moved (see
structpatch.arrays).

    find_lcs([1, 2, 3, 4], [4, 2, 3, 1])  → [1, 2]     (indices into a)

The DP table is the classic (m+1) × (n+1) one, with deep_equal as the
element comparison.  Results can be memoized in an LCSCache owned by the
caller; there is no module-level cache.
"""

import logging
from collections import OrderedDict
from typing import Any, Optional

from .core import deep_clone, deep_equal
from .errors import InvalidPatchError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 1000
SAMPLE_POINTS = 20


# ═══════════════════════════════════════════════════════════════════
#  CACHE
# ═══════════════════════════════════════════════════════════════════

def _fingerprint(value: Any) -> str:
    """Cheap, lossy summary of one element."""
    if value is None:
        return "n"
    if isinstance(value, bool):
        return f"b{int(value)}"
    if isinstance(value, (int, float)):
        return f"d{value!r}"
    if isinstance(value, str):
        return f"s{len(value)}:{value[:10]}"
    if isinstance(value, list):
        return f"a{len(value)}"
    if isinstance(value, dict):
        # records frequently carry an identifying field
        for field in ("id", "key"):
            marker = value.get(field)
            if isinstance(marker, (str, int, float)) and not isinstance(marker, bool):
                return f"{field[0]}{marker!r}"
        return f"o{len(value)}"
    return f"x{type(value).__name__}"


def _sample(arr: list) -> tuple:
    """Fingerprints of up to SAMPLE_POINTS evenly spaced elements plus the last."""
    if not arr:
        return ()
    step = max(1, len(arr) // min(SAMPLE_POINTS, len(arr)))
    picks = [_fingerprint(arr[i]) for i in range(0, len(arr), step)]
    if (len(arr) - 1) % step:
        picks.append(_fingerprint(arr[-1]))
    return tuple(picks)


def cache_key(a: list, b: list) -> tuple:
    """Sampling key for a pair of arrays.  Collisions are expected."""
    return (len(a), len(b), _sample(a), _sample(b))


class LCSCache:
    """
    Bounded least-recently-used store of LCS results.

    Keys are sampling fingerprints, so two different array pairs can share
    a key.  Each entry therefore keeps a snapshot of the arrays it was
    computed for, and a lookup only hits when the snapshot deep-equals the
    arrays asked about.

    Not thread safe: guard it with a lock or keep one per thread.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE):
        if max_size < 1:
            raise InvalidPatchError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self.hits = 0
        self.misses = 0
        self._entries: OrderedDict[tuple, tuple[list, list, tuple]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, a: list, b: list) -> Optional[list[tuple[int, int]]]:
        key = cache_key(a, b)
        entry = self._entries.get(key)
        if entry is not None and deep_equal(entry[0], a) and deep_equal(entry[1], b):
            self._entries.move_to_end(key)
            self.hits += 1
            return list(entry[2])
        self.misses += 1
        return None

    def put(self, a: list, b: list, pairs: list[tuple[int, int]]) -> None:
        key = cache_key(a, b)
        self._entries[key] = (deep_clone(a), deep_clone(b), tuple(pairs))
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            logger.debug("LCS cache full (%d entries), evicted oldest", self.max_size)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


# ═══════════════════════════════════════════════════════════════════
#  LCS
# ═══════════════════════════════════════════════════════════════════

def lcs_pairs(a: list, b: list, cache: Optional[LCSCache] = None) -> list[tuple[int, int]]:
    """
    Matched (index_in_a, index_in_b) pairs of a longest common
    subsequence, in ascending order.

    Among equally long subsequences, the one using earlier elements of `a`
    is preferred: while tracing back, an element of `a` is dropped
    whenever doing so does not shorten the result.
    """
    if not a or not b:
        return []
    if cache is not None:
        cached = cache.get(a, b)
        if cached is not None:
            return cached

    # A shared prefix always belongs to some LCS
    start = 0
    limit = min(len(a), len(b))
    while start < limit and deep_equal(a[start], b[start]):
        start += 1

    m = len(a) - start
    n = len(b) - start
    table = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev = table[i], table[i - 1]
        item = a[start + i - 1]
        for j in range(1, n + 1):
            if deep_equal(item, b[start + j - 1]):
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    tail: list[tuple[int, int]] = []
    i, j = m, n
    while i > 0 and j > 0:
        if table[i - 1][j] == table[i][j]:
            i -= 1
        elif table[i][j - 1] == table[i][j]:
            j -= 1
        else:
            tail.append((start + i - 1, start + j - 1))
            i -= 1
            j -= 1
    tail.reverse()

    pairs = [(k, k) for k in range(start)] + tail
    if cache is not None:
        cache.put(a, b, pairs)
    return pairs


def find_lcs(a: list, b: list, cache: Optional[LCSCache] = None) -> list[int]:
    """Indices into `a` of a longest subsequence common with `b`."""
    return [i for i, _ in lcs_pairs(a, b, cache)]


def get_array_similarity(a: list, b: list, cache: Optional[LCSCache] = None) -> float:
    """
    len(LCS) / max(len(a), len(b)), in [0, 1].

    A heuristic only; nothing in the diff depends on it.
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return len(lcs_pairs(a, b, cache)) / max(len(a), len(b))
