from __future__ import annotations

from dataclasses import dataclass
from typing import List, NewType, Optional

FloorId = NewType("FloorId", int)

BASEMENT = FloorId(-1)
LOBBY = FloorId(1)


def floor_label(floor: int) -> str:
    return "B1" if floor == BASEMENT else str(floor)


@dataclass(frozen=True)
class FloorLayout:
    """Maps floor numbers to vertical positions and flow-matrix indexes.

    Normal floors run from 1 to ``num_floors``. The basement is the
    sentinel ``-1``. Positions stay affine in the floor number, so it sits
    two stories below the lobby. It has no row in the flow matrix.
    """

    num_floors: int
    story_height: float = 3.5
    has_basement: bool = True

    def y_from_floor(self, floor: int) -> float:
        return self.story_height * (floor - 1)

    def floor_from_y(self, y: float) -> int:
        return int(round(y / self.story_height + 1))

    def to_index(self, floor: int) -> Optional[int]:
        if 1 <= floor <= self.num_floors:
            return floor - 1
        return None

    def from_index(self, index: int) -> FloorId:
        return FloorId(index + 1)

    @property
    def lowest_floor(self) -> FloorId:
        return BASEMENT if self.has_basement else LOBBY

    @property
    def top_floor(self) -> FloorId:
        return FloorId(self.num_floors)

    def floors(self) -> List[FloorId]:
        normal = [FloorId(f) for f in range(1, self.num_floors + 1)]
        return [BASEMENT] + normal if self.has_basement else normal

    def is_floor(self, floor: int) -> bool:
        return floor == BASEMENT and self.has_basement or 1 <= floor <= self.num_floors

    def stories_between(self, a: int, b: int) -> float:
        return abs(self.y_from_floor(a) - self.y_from_floor(b)) / self.story_height

    @property
    def max_distance(self) -> float:
        return abs(self.y_from_floor(self.top_floor) - self.y_from_floor(self.lowest_floor))
