"""Vendor rating arithmetic."""
from typing import Iterable

from vendorhive.storage.base import rounded_average


def aggregate_rating(ratings: Iterable[int]) -> int:
    """
    Rounded-half-up mean of review ratings; 0 when there are none.

    Example:
        >>> aggregate_rating([5, 4])
        5
        >>> aggregate_rating([3, 2, 2])
        2
    """
    ratings = list(ratings)
    return rounded_average(sum(ratings), len(ratings))
