from __future__ import annotations

from typing import Iterable, List


def select_active_indexes(num_cars: int, num_active: int) -> List[int]:
    """Pick car indexes from the middle of the group, moving outward.

    Ties in distance from the middle keep array order, so the lower index
    wins.
    """

    indexes = list(range(num_cars))
    if not indexes:
        return []
    middle = indexes[len(indexes) // 2]
    indexes.sort(key=lambda i: abs(i - middle))
    return indexes[: max(0, num_active)]


def sort_floors_in_direction(floors: Iterable[int], going_up: bool) -> List[int]:
    """Sort stops to mirror SCAN behavior for a given direction."""

    return sorted(floors, reverse=not going_up)
