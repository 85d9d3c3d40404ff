"""
Median used by IDHash to threshold gradient magnitudes.

Not a textbook median: when the middle of the sorted input sits inside a run
of equal values, the tie is resolved by comparing how much of that run falls
on each side of the split. Fingerprints depend on this exact behaviour, so do
not swap it for `statistics.median`.
"""

from __future__ import annotations

from typing import List, Sequence


def median(values: Sequence[int]) -> int:
    """
    Pick the threshold from `values`, which must be sorted ascending.

    Examples:
        [1, 1, 1, 2, 3, 3, 3] -> 2
        [1, 2, 2, 2, 2, 3, 3] -> 3   (more 2s left of the split than right)
        [1, 2, 2, 3, 3, 3]    -> 3

    Raises:
        ValueError: on an empty sequence.
    """
    n = len(values)
    if n == 0:
        raise ValueError("median of an empty sequence")
    if n == 1:
        return values[0]

    h = n // 2
    if values[h] != values[h - 1]:
        return values[h]

    left: List[int] = list(values[:h])
    right: List[int] = list(values[h:])
    if len(right) > len(left):
        right.pop(0)

    if left[-1] != right[0]:
        return right[0]
    if left.count(left[-1]) > right.count(right[0]):
        return _distinct(right)[1]
    return left[-1]


def _distinct(values: Sequence[int]) -> List[int]:
    """Order-preserving dedup."""
    return list(dict.fromkeys(values))
