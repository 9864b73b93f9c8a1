from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from groupcontrol import floor_label

from .car import Car
from .config import (
    MAX_ELEVATOR_SPEED,
    MAX_PASSENGER_LOAD,
    BankSettings,
    ControlMode,
    is_valid_floor_count,
    parse_control_mode,
)
from .dispatcher import Dispatcher
from .flow import pattern_floor_flow, random_floor_flow
from .ledger import Ledger

logger = logging.getLogger(__name__)

FLOW_PATTERNS = ("pattern", "random", "default")


class ElevatorBank:
    """Application context: the cars, the dispatcher and the ledger of one building.

    A host calls :meth:`step` once per frame and reads state back through
    :meth:`snapshot` or the public attributes.
    """

    def __init__(
        self,
        settings: Optional[BankSettings] = None,
        random_seed: Optional[int] = None,
        flow_pattern: str = "pattern",
        auto_spawn: bool = True,
    ) -> None:
        if flow_pattern not in FLOW_PATTERNS:
            raise ValueError(f"Unknown flow pattern '{flow_pattern}'. Available: {', '.join(FLOW_PATTERNS)}")
        self.settings = settings or BankSettings()
        self.random = random.Random(random_seed)
        self.ledger = Ledger(self.settings.rates)
        self.cars: List[Car] = [
            Car(car_number=n, settings=self.settings, ledger=self.ledger)
            for n in range(1, self.settings.num_cars + 1)
        ]
        self.dispatcher = Dispatcher(
            self.settings, self.cars, self.ledger, rng=self.random, auto_spawn=auto_spawn
        )
        self.flow_pattern = flow_pattern
        self.apply_flow_pattern(flow_pattern)
        self.dispatcher.update_car_active_statuses()

    @property
    def current_time(self) -> float:
        return self.dispatcher.current_time

    def step(self, dt: float) -> None:
        self.ledger.add_idle_costs(dt, len(self.dispatcher.active_cars()))
        for car in self.cars:
            car.update(dt)
        self.dispatcher.process(dt)

    def run(self, duration: float, dt: float = 0.05) -> None:
        steps = int(round(duration / dt))
        for _ in range(steps):
            self.step(dt)

    def apply_flow_pattern(self, name: str) -> bool:
        num_floors = self.settings.num_floors
        if name == "default":
            self.dispatcher.init_floor_flow()
            return True
        if name == "random":
            return self.dispatcher.set_floor_flow_matrix(random_floor_flow(num_floors, rng=self.random))
        return self.dispatcher.set_floor_flow_matrix(pattern_floor_flow(num_floors))

    def set_num_floors(self, num_floors: Any) -> int:
        """Change the floor count, rebuilding the flow matrix. Invalid values leave everything as it was."""

        if not is_valid_floor_count(num_floors):
            logger.error("Number of floors must be an integer greater than 1, got %r", num_floors)
            return self.settings.num_floors
        self.settings.num_floors = num_floors
        self.dispatcher.init_floor_flow()
        self.apply_flow_pattern("pattern")
        logger.info("Updated floor flow matrix for %d floors", num_floors)
        return self.settings.num_floors

    def check_settings(
        self,
        num_active_cars: Optional[int] = None,
        control_mode: Any = None,
        elevator_speed: Optional[int] = None,
        passenger_load: Optional[int] = None,
    ) -> None:
        """Raise ValueError if any given value would be rejected by its setter. Changes nothing."""

        if num_active_cars is not None and not 0 <= num_active_cars <= len(self.cars):
            raise ValueError(f"Invalid number of active cars: {num_active_cars}")
        if control_mode is not None:
            parse_control_mode(control_mode)
        if elevator_speed is not None and not 1 <= elevator_speed <= MAX_ELEVATOR_SPEED:
            raise ValueError(f"Invalid elevator speed: {elevator_speed}")
        if passenger_load is not None and not 0 <= passenger_load <= MAX_PASSENGER_LOAD:
            raise ValueError(f"Invalid passenger load: {passenger_load}")

    def set_num_active_cars(self, num_active_cars: int) -> int:
        if not 0 <= num_active_cars <= len(self.cars):
            logger.error("Active car count must be between 0 and %d, got %r", len(self.cars), num_active_cars)
            return self.settings.num_active_cars
        self.settings.num_active_cars = num_active_cars
        self.dispatcher.update_car_active_statuses()
        return num_active_cars

    def set_control_mode(self, mode: Any) -> ControlMode:
        try:
            self.settings.control_mode = parse_control_mode(mode)
        except ValueError as exc:
            logger.error("%s", exc)
        return self.settings.control_mode

    def set_elevator_speed(self, level: int) -> int:
        if not 1 <= level <= MAX_ELEVATOR_SPEED:
            logger.error("Elevator speed must be between 1 and %d, got %r", MAX_ELEVATOR_SPEED, level)
        else:
            self.settings.elevator_speed = level
        return self.settings.elevator_speed

    def set_passenger_load(self, level: int) -> int:
        if not 0 <= level <= MAX_PASSENGER_LOAD:
            logger.error("Passenger load must be between 0 and %d, got %r", MAX_PASSENGER_LOAD, level)
        else:
            self.settings.passenger_load = level
        return self.settings.passenger_load

    def get_car(self, car_number: int) -> Optional[Car]:
        for car in self.cars:
            if car.car_number == car_number:
                return car
        return None

    def summon(self, car_number: int, floor: int) -> bool:
        """Operator call: send a car to a floor regardless of the control mode."""

        car = self.get_car(car_number)
        if car is None:
            return False
        return car.go_to(floor, manual=True)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "time": self.current_time,
            "settings": {
                "num_floors": self.settings.num_floors,
                "num_active_cars": self.settings.num_active_cars,
                "control_mode": self.settings.control_mode.name.lower(),
                "elevator_speed": self.settings.elevator_speed,
                "passenger_load": self.settings.passenger_load,
            },
            "cars": [
                {
                    "car_number": car.car_number,
                    "state": car.state.value,
                    "y": car.y,
                    "floor": floor_label(car.floor),
                    "going_up": car.going_up,
                    "door_open_fraction": car.door_open_fraction,
                    "dest_floors": list(car.dest_floors),
                    "riders": len(car.riders),
                    "active": car.active,
                }
                for car in self.cars
            ],
            "riders": [
                {
                    "id": rider.rider_id,
                    "state": rider.state.value,
                    "start_floor": rider.start_floor,
                    "dest_floor": rider.dest_floor,
                    "car": rider.car.car_number if rider.car is not None else None,
                }
                for rider in self.dispatcher.riders
            ],
            "pending_requests": len(self.dispatcher.queue),
        }
