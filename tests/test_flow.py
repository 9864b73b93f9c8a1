from __future__ import annotations

import random

from liftbank import FloorFlowMatrix, pattern_floor_flow, random_floor_flow


class TestFloorFlowMatrix:
    def test_default_weights_favour_the_lobby(self):
        flow = FloorFlowMatrix.default(4)
        matrix = flow.to_list()
        assert matrix[0] == [0.0, 3.0, 3.0, 3.0]
        assert matrix[2] == [3.0, 1.0, 0.0, 1.0]

    def test_set_rejects_self_loops_and_out_of_range(self):
        flow = FloorFlowMatrix.default(4)
        assert not flow.set(2, 2, 9)
        assert not flow.set(0, 4, 9)
        assert not flow.set(-1, 1, 9)
        assert flow.set(1, 3, 9)
        assert flow.get(1, 3) == 9.0
        assert flow.get(2, 2) == 0.0

    def test_set_matrix_forces_a_zero_diagonal(self):
        flow = FloorFlowMatrix(3)
        assert flow.set_matrix([[5, 1, 2], [3, 5, 4], [6, 7, 5]])
        assert flow.to_list() == [[0.0, 1.0, 2.0], [3.0, 0.0, 4.0], [6.0, 7.0, 0.0]]

    def test_wrong_dimensions_leave_the_matrix_unchanged(self):
        flow = FloorFlowMatrix.default(3)
        before = flow.to_list()
        assert not flow.set_matrix([[0, 1], [1, 0]])
        assert not flow.set_matrix([[0, 1, 1], [1, 0], [1, 1, 0]])
        assert flow.to_list() == before

    def test_to_list_is_a_copy(self):
        flow = FloorFlowMatrix.default(3)
        copy = flow.to_list()
        copy[0][1] = 99
        assert flow.get(0, 1) == 3.0

    def test_outbound_totals(self):
        flow = FloorFlowMatrix.default(3)
        assert flow.outbound_totals() == [6.0, 4.0, 4.0]


class TestGenerators:
    def test_pattern_has_lobby_and_cafeteria_traffic(self):
        matrix = pattern_floor_flow(6)
        assert all(matrix[i][i] == 0 for i in range(6))
        assert matrix[0][4] == 50
        assert matrix[4][0] == 40
        assert matrix[4][2] == 30
        assert matrix[2][5] == 30
        assert matrix[3][5] == 10

    def test_pattern_skips_cafeteria_in_small_buildings(self):
        matrix = pattern_floor_flow(4)
        assert matrix[3][2] == 10

    def test_random_cells_are_at_least_one(self):
        matrix = random_floor_flow(13, rng=random.Random(5))
        for i, row in enumerate(matrix):
            for j, value in enumerate(row):
                if i == j:
                    assert value == 0
                else:
                    assert value >= 1

    def test_random_generator_is_reproducible_with_a_seed(self):
        assert random_floor_flow(8, rng=random.Random(11)) == random_floor_flow(8, rng=random.Random(11))
