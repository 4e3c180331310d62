"""
Tests for structpatch.lcs — longest common subsequence and its cache.
"""

import sys
import os
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structpatch.errors import InvalidPatchError
from structpatch.lcs import (
    LCSCache,
    cache_key,
    find_lcs,
    get_array_similarity,
    lcs_pairs,
)


def _is_common_subsequence(a, b, pairs):
    if any(a[i] != b[j] for i, j in pairs):
        return False
    return all(p[0] < q[0] and p[1] < q[1] for p, q in zip(pairs, pairs[1:]))


# ═══════════════════════════════════════════════════════════════════
#  LCS
# ═══════════════════════════════════════════════════════════════════

class TestFindLCS:

    @pytest.mark.parametrize("a,b,expected", [
        ([], [], []),
        ([], [1], []),
        ([1], [], []),
        ([1, 2, 3], [1, 2, 3], [0, 1, 2]),
        ([1, 2, 3, 4], [4, 2, 3, 1], [1, 2]),
        ([1, 2, 3], [4, 5, 6], []),
        (["a", "b", "c", "d"], ["b", "d"], [1, 3]),
    ])
    def test_indices(self, a, b, expected):
        assert find_lcs(a, b) == expected

    def test_prefers_earlier_elements(self):
        assert find_lcs([2, 1, 1], [1]) == [1]
        assert find_lcs([1, 1], [1]) == [0]

    def test_deep_equality(self):
        assert find_lcs([{"a": [1]}, {"b": 2}], [{"b": 2}]) == [1]

    def test_bool_is_not_a_number(self):
        assert find_lcs([True, 1], [1]) == [1]

    @pytest.mark.parametrize("a,b,length", [
        ([1, 2, 3, 4, 5], [5, 4, 3, 2, 1], 1),
        ([1, 3, 5, 7, 9], [1, 2, 3, 4, 5, 6, 7, 8, 9], 5),
        (list("ABCBDAB"), list("BDCABA"), 4),
    ])
    def test_pairs_form_a_longest_common_subsequence(self, a, b, length):
        pairs = lcs_pairs(a, b)
        assert len(pairs) == length
        assert _is_common_subsequence(a, b, pairs)


class TestSimilarity:

    @pytest.mark.parametrize("a,b,expected", [
        ([], [], 1.0),
        ([1], [], 0.0),
        ([], [1], 0.0),
        ([1, 2, 3, 4], [1, 2, 3, 4], 1.0),
        ([1, 2, 3, 4], [1, 2, 3, 5], 0.75),
        ([1, 2], [1, 2, 3, 4], 0.5),
    ])
    def test_similarity(self, a, b, expected):
        assert get_array_similarity(a, b) == pytest.approx(expected)


# ═══════════════════════════════════════════════════════════════════
#  CACHE
# ═══════════════════════════════════════════════════════════════════

class TestLCSCache:

    def test_hit_after_miss(self):
        cache = LCSCache()
        first = lcs_pairs([1, 2, 3], [3, 2, 1], cache)
        second = lcs_pairs([1, 2, 3], [3, 2, 1], cache)
        assert first == second
        assert (cache.hits, cache.misses) == (1, 1)
        assert len(cache) == 1

    def test_colliding_keys_are_verified(self):
        """Same sampling key, different contents: the stored result is not reused."""
        a1, b1 = ["aaaaaaaaaaX"], ["aaaaaaaaaaX"]
        a2, b2 = ["aaaaaaaaaaY"], ["aaaaaaaaaaX"]
        assert cache_key(a1, b1) == cache_key(a2, b2)

        cache = LCSCache()
        assert lcs_pairs(a1, b1, cache) == [(0, 0)]
        assert lcs_pairs(a2, b2, cache) == []
        assert cache.hits == 0

    def test_snapshot_is_independent_of_inputs(self):
        cache = LCSCache()
        a, b = [[1], [2]], [[2], [1]]
        lcs_pairs(a, b, cache)
        a[0].append(9)
        assert cache.get(a, b) is None
        assert cache.get([[1], [2]], [[2], [1]]) is not None

    def test_bounded(self):
        cache = LCSCache(max_size=2)
        for n in range(1, 5):
            lcs_pairs(list(range(n)), list(range(n, 0, -1)), cache)
        assert len(cache) == 2

    def test_least_recently_used_is_evicted(self):
        cache = LCSCache(max_size=2)
        lcs_pairs([1], [1, 1], cache)
        lcs_pairs([2], [2, 2], cache)
        lcs_pairs([1], [1, 1], cache)         # refresh the first entry
        lcs_pairs([3], [3, 3], cache)
        assert cache.get([1], [1, 1]) is not None
        assert cache.get([2], [2, 2]) is None

    def test_clear(self):
        cache = LCSCache()
        lcs_pairs([1, 2], [2, 1], cache)
        cache.clear()
        assert len(cache) == 0
        assert (cache.hits, cache.misses) == (0, 0)

    def test_invalid_size(self):
        with pytest.raises(InvalidPatchError):
            LCSCache(max_size=0)
