# src/branchguard/sortedset.py: Ordered-sequence intersection.
# Rules that restrict merge methods are folded into one allowed set by
# repeated pairwise intersection of sorted method lists.

from typing import List, Sequence, TypeVar

T = TypeVar("T")


def intersect_sorted(a: Sequence[T], b: Sequence[T]) -> List[T]:
    """
    Intersect two ascending-sorted sequences.

    Returns the elements of 'a' that also occur in 'b', keeping their
    multiplicity from 'a', in ascending order. Runs in O(len(a) + len(b)).
    """
    result: List[T] = []
    idx_a = 0
    idx_b = 0
    while idx_a < len(a) and idx_b < len(b):
        if a[idx_a] < b[idx_b]:
            idx_a += 1
        elif b[idx_b] < a[idx_a]:
            idx_b += 1
        else:
            # b[idx_b] is not advanced: later duplicates in 'a' still match it.
            result.append(a[idx_a])
            idx_a += 1
    return result
