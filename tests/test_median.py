from __future__ import annotations

import pytest

from median import median


@pytest.mark.parametrize(
    "values, expected",
    [
        ([1, 2, 2, 2, 2, 2, 3], 2),
        ([1, 2, 2, 2, 2, 3, 3], 3),
        ([1, 1, 2, 2, 3, 3, 3], 3),
        ([1, 1, 1, 2, 3, 3, 3], 2),
        ([1, 1, 2, 2, 2, 2, 3], 2),
        ([1, 2, 2, 2, 2, 3], 2),
        ([1, 2, 2, 3, 3, 3], 3),
        ([1, 1, 1], 1),
        ([1, 1], 1),
    ],
)
def test_median_reference_vectors(values: list[int], expected: int) -> None:
    assert median(values) == expected


def test_median_distinct_middle() -> None:
    assert median([0, 5, 9, 12]) == 9
    assert median([0, 5, 9]) == 5


def test_median_not_textbook() -> None:
    # statistics.median would give 2 here
    assert median([1, 2, 2, 2, 2, 3, 3]) == 3


def test_median_accepts_tuple_and_does_not_mutate() -> None:
    values = [1, 1, 2, 2, 2, 2, 3]
    snapshot = list(values)
    assert median(tuple(values)) == 2
    assert median(values) == 2
    assert values == snapshot


def test_median_edges() -> None:
    assert median([7]) == 7
    with pytest.raises(ValueError):
        median([])
