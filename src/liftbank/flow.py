"""Floor-to-floor traffic weights used to synthesize rider arrivals.

Row and column indexes are floor index (floor 1 is index 0). The basement
has no row.
"""
from __future__ import annotations

import logging
import math
import random
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

Matrix = List[List[float]]

LOBBY_INDEX = 0
CAFETERIA_INDEX = 2
MEETING_ROOMS_INDEX = 1


def _zeros(num_floors: int) -> Matrix:
    return [[0.0] * num_floors for _ in range(num_floors)]


class FloorFlowMatrix:
    """NxN non-negative weights with a zero diagonal."""

    def __init__(self, num_floors: int) -> None:
        self.num_floors = num_floors
        self._cells: Matrix = _zeros(num_floors)

    @classmethod
    def default(cls, num_floors: int) -> "FloorFlowMatrix":
        """Weight 1 between any two floors, 3 when the lobby is involved."""

        flow = cls(num_floors)
        for i in range(num_floors):
            for j in range(num_floors):
                if i != j:
                    flow._cells[i][j] = 3.0 if LOBBY_INDEX in (i, j) else 1.0
        return flow

    def get(self, from_index: int, to_index: int) -> float:
        return self._cells[from_index][to_index]

    def set(self, from_index: int, to_index: int, value: float) -> bool:
        n = self.num_floors
        if not (0 <= from_index < n and 0 <= to_index < n) or from_index == to_index:
            logger.debug("Ignoring flow cell (%s, %s)", from_index, to_index)
            return False
        self._cells[from_index][to_index] = max(0.0, float(value))
        return True

    def set_matrix(self, matrix: Sequence[Sequence[float]]) -> bool:
        """Replace every off-diagonal cell; the whole matrix is rejected on a size mismatch."""

        n = self.num_floors
        if len(matrix) != n:
            logger.error("Invalid flow matrix dimensions: expected %d rows, got %d", n, len(matrix))
            return False
        for i, row in enumerate(matrix):
            if row is None or len(row) != n:
                logger.error("Invalid flow matrix dimensions at row %d: expected %d columns", i, n)
                return False
        cells = _zeros(n)
        for i in range(n):
            for j in range(n):
                if i != j:
                    cells[i][j] = max(0.0, float(matrix[i][j]))
        self._cells = cells
        return True

    def to_list(self) -> Matrix:
        return [list(row) for row in self._cells]

    def outbound_totals(self) -> List[float]:
        return [sum(row) for row in self._cells]

    def row(self, from_index: int) -> List[float]:
        return list(self._cells[from_index])


def pattern_floor_flow(num_floors: int, cafeteria: bool = True) -> Matrix:
    """Deterministic pattern: heavy lobby traffic and an optional cafeteria on floor 3."""

    matrix = [[0.0 if i == j else 10.0 for j in range(num_floors)] for i in range(num_floors)]

    # Morning arrivals fan out from the lobby, evening departures return to it.
    for dest in range(1, num_floors):
        matrix[LOBBY_INDEX][dest] = 50.0
    for source in range(1, num_floors):
        matrix[source][LOBBY_INDEX] = 40.0

    if cafeteria and num_floors >= 5:
        for floor in range(1, num_floors):
            if floor != CAFETERIA_INDEX:
                matrix[floor][CAFETERIA_INDEX] = 30.0
                matrix[CAFETERIA_INDEX][floor] = 30.0

    return matrix


def random_floor_flow(
    num_floors: int,
    max_flow_value: float = 10,
    lobby_factor: float = 2.5,
    rng: Optional[random.Random] = None,
) -> Matrix:
    """Uniform random weights with lobby, cafeteria and executive-floor adjustments.

    Each floor also gets a traffic factor in [0.7, 1.3); a cell is scaled by
    the mean of its two floors' factors. Every off-diagonal cell is at
    least 1.
    """

    rng = rng or random.Random()
    matrix = _zeros(num_floors)

    for i in range(num_floors):
        for j in range(num_floors):
            if i == j:
                continue
            value = math.ceil(rng.uniform(0, max_flow_value))
            if LOBBY_INDEX in (i, j):
                value = math.ceil(value * lobby_factor)
            if num_floors >= 5:
                if j == CAFETERIA_INDEX and i != LOBBY_INDEX:
                    value = math.ceil(value * 1.5)
                if i == MEETING_ROOMS_INDEX and j != LOBBY_INDEX:
                    value = math.ceil(value * 1.3)
                if i >= num_floors - 2 and j >= num_floors - 2:
                    value = max(1, math.floor(value * 0.6))
            matrix[i][j] = float(max(1, value))

    factors = [0.7 + rng.uniform(0, 0.6) for _ in range(num_floors)]
    for i in range(num_floors):
        for j in range(num_floors):
            if i != j:
                factor = (factors[i] + factors[j]) / 2
                matrix[i][j] = float(max(1, math.ceil(matrix[i][j] * factor)))

    return matrix
