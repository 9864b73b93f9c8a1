from __future__ import annotations

from types import SimpleNamespace

import pytest

from conftest import DT, distinct_states, run_until, single_car_settings

from groupcontrol import BASEMENT, CarState
from liftbank import Car, ControlMode, Ledger


def make_car(car_number: int = 1, **overrides) -> Car:
    return Car(car_number=car_number, settings=single_car_settings(**overrides), ledger=Ledger())


def state_history(car: Car, steps: int):
    history = []
    for _ in range(steps):
        history.append(car.state)
        car.update(DT)
    history.append(car.state)
    return history


class TestGoTo:
    def test_trip_from_lobby_runs_the_full_cycle(self, car):
        assert car.go_to(5)
        history = state_history(car, 400)

        assert distinct_states(history) == [
            CarState.IDLE,
            CarState.MOVING,
            CarState.OPENING,
            CarState.OPEN,
            CarState.CLOSING,
            CarState.IDLE,
        ]
        assert car.floor == 5
        assert car.dest_floors == []
        assert car.door_open_fraction == 0

    def test_restricted_car_rejects_unreachable_floor(self):
        car = Car(car_number=2, settings=single_car_settings(num_cars=2, allowed_floors={2: [1, 2, 7, 8, 9, 10, 11, 12, 13]}))
        car.dest_floors = [9]

        assert not car.go_to(5)
        assert car.dest_floors == [9]

    def test_duplicate_calls_queue_once(self, car):
        assert car.go_to(7)
        assert not car.go_to(7)
        assert car.dest_floors == [7]

    def test_destinations_sorted_in_travel_direction(self, car):
        car.going_up = True
        for floor in (9, 3, 6):
            car.go_to(floor)
        assert car.dest_floors == [3, 6, 9]

    def test_call_to_current_floor_opens_doors(self, car):
        assert car.go_to(1)
        assert car.state is CarState.OPENING
        assert car.dest_floors == []

    def test_call_to_current_floor_while_doors_busy_is_ignored(self, car):
        car.go_to(1)
        assert not car.go_to(1)
        assert car.dest_floors == []

    def test_call_to_current_floor_while_closing_reopens_the_doors(self, car):
        car.go_to(1)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.CLOSING)
        car.update(DT)
        closing_fraction = car.door_open_fraction

        assert car.go_to(1)
        assert car.state is CarState.OPENING
        car.update(DT)
        assert car.door_open_fraction > closing_fraction
        assert car.dest_floors == []

    def test_manual_mode_blocks_automatic_calls(self):
        car = make_car(control_mode=ControlMode.MANUAL)
        assert not car.go_to(5)
        assert car.go_to(5, manual=True)
        assert car.dest_floors == [5]

    def test_excluded_cars_never_stop_at_basement(self):
        settings_table = {3: [-1, 1, 2, 3]}
        car = make_car(car_number=3, num_cars=4, allowed_floors=settings_table)
        assert not car.can_stop_at(BASEMENT)
        assert car.can_stop_at(2)
        assert not car.go_to(BASEMENT)

    def test_floors_outside_the_building_are_rejected(self):
        car = make_car(num_floors=5)
        assert not car.can_stop_at(9)


class TestMotion:
    def test_position_moves_with_direction_and_never_overshoots(self, car):
        car.go_to(9)
        car.update(DT)
        assert car.state is CarState.MOVING
        end_y = car.end_y
        previous = car.y
        while car.state is CarState.MOVING:
            car.update(DT)
            delta = car.y - previous
            assert delta >= 0 if car.going_up else delta <= 0
            assert car.y <= end_y
            previous = car.y
        assert car.y == end_y

    def test_downward_trip_moves_down(self):
        car = make_car(start_floor=10)
        car.go_to(2)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.MOVING)
        previous = car.y
        while car.state is CarState.MOVING:
            car.update(DT)
            assert car.y <= previous
            assert car.y >= car.end_y
            previous = car.y
        assert car.floor == 2

    def test_speed_never_exceeds_the_configured_maximum(self, car):
        car.go_to(13)
        car.update(DT)
        peak = 0.0
        while car.state is CarState.MOVING:
            car.update(DT)
            peak = max(peak, car.speed)
        assert 0 < peak <= car.settings.max_speed

    def test_trip_charges_movement_costs_on_arrival(self, car):
        car.go_to(5)
        car.update(DT)
        assert car.ledger.total_operating == 0

        run_until(lambda: car.update(DT), lambda: car.state is CarState.OPENING)
        expected = Ledger().add_movement_costs(4, car.settings.elevator_speed)
        assert car.ledger.total_operating == pytest.approx(expected)

    def test_stop_en_route_charges_only_floors_travelled(self, car):
        car.go_to(10)
        car.update(DT)
        car.update(DT)
        assert car.go_to(5)

        run_until(
            lambda: car.update(DT),
            lambda: car.state is CarState.IDLE and not car.dest_floors,
            max_steps=4000,
        )

        assert car.floor == 10
        expected = Ledger().add_movement_costs(9, car.settings.elevator_speed)
        assert car.ledger.total_operating == pytest.approx(expected)

    def test_floor_queued_en_route_becomes_the_next_stop(self, car):
        car.go_to(13)
        car.update(DT)
        car.update(DT)
        assert car.state is CarState.MOVING

        assert car.go_to(5)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.OPENING)

        assert car.floor == 5
        assert car.dest_floors == [13]

    def test_floor_behind_the_car_waits_for_the_return_trip(self, car):
        car.go_to(9)
        run_until(lambda: car.update(DT), lambda: car.floor >= 5 and car.state is CarState.MOVING)
        car.go_to(2)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.OPENING)
        assert car.floor == 9
        assert car.dest_floors == [2]


class TestBoundaries:
    def test_top_floor_arrival_points_down(self, car):
        car.go_to(13)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.OPENING)
        assert car.floor == 13
        assert car.going_up is False

    def test_basement_arrival_points_up(self, car):
        car.go_to(BASEMENT)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.OPENING)
        assert car.floor == BASEMENT
        assert car.going_up is True

    def test_lobby_arrival_points_up_without_basement_calls(self):
        car = make_car(start_floor=6)
        car.go_to(1)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.OPENING)
        assert car.floor == 1
        assert car.going_up is True

    def test_lobby_arrival_keeps_heading_down_for_basement_calls(self):
        car = make_car(start_floor=6)
        car.go_to(1)
        car.go_to(BASEMENT)
        run_until(lambda: car.update(DT), lambda: car.state is CarState.OPENING)
        assert car.floor == 1
        assert car.going_up is False
        assert car.dest_floors == [BASEMENT]


class TestDirectionChange:
    def test_reversal_cycles_the_doors_before_moving(self):
        car = make_car(start_floor=5)
        car.going_up = False
        car.go_to(8)

        history = state_history(car, 150)

        assert distinct_states(history)[:6] == [
            CarState.IDLE,
            CarState.OPENING,
            CarState.OPEN,
            CarState.CLOSING,
            CarState.DIRECTION_CHANGING,
            CarState.MOVING,
        ]
        assert car.going_up is True

    def test_direction_changing_without_destinations_returns_to_idle(self):
        car = make_car(start_floor=5)
        car.going_up = False
        car.go_to(8)
        car.update(DT)
        car.dest_floors = []
        run_until(lambda: car.update(DT), lambda: car.state is CarState.DIRECTION_CHANGING)
        car.update(DT)
        assert car.state is CarState.IDLE
        assert car.needs_direction_change is False

    def test_idle_car_at_lobby_takes_the_only_direction_available(self):
        car = make_car()
        car.going_up = False
        car.go_to(4)
        car.update(DT)
        assert car.state is CarState.MOVING
        assert car.going_up is True


class TestRoster:
    def test_capacity_is_enforced(self):
        car = make_car(max_riders_per_car=2)
        riders = [SimpleNamespace(rider_id=n) for n in range(3)]
        assert car.add_rider(riders[0])
        assert car.add_rider(riders[1])
        assert not car.add_rider(riders[2])
        assert len(car.riders) == 2

    def test_remove_rider(self, car):
        rider = SimpleNamespace(rider_id=1)
        car.add_rider(rider)
        car.remove_rider(rider)
        assert car.riders == []
