from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple

from groupcontrol import BASEMENT, LOBBY, CarState, FloorLayout, floor_label, sort_floors_in_direction

from .config import BankSettings, ControlMode

if TYPE_CHECKING:  # pragma: no cover - import cycle safe typing
    from .ledger import Ledger
    from .rider import Rider

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Car:
    """One elevator car: trapezoidal motion, a door cycle and a fixed set of stops."""

    car_number: int
    settings: BankSettings
    ledger: Optional["Ledger"] = None
    allowed_floors: Tuple[int, ...] = field(init=False)
    y: float = field(init=False)
    going_up: bool = False
    door_open_fraction: float = 0.0
    dest_floors: List[int] = field(default_factory=list)
    riders: List["Rider"] = field(default_factory=list)
    state: CarState = CarState.IDLE
    active: bool = False
    needs_direction_change: bool = False
    speed: float = 0.0
    start_y: float = 0.0
    end_y: float = 0.0
    _max_speed: float = 0.0
    _accel: float = 0.0
    _accel_distance: float = 0.0
    _door_elapsed: float = 0.0
    _open_elapsed: float = 0.0

    def __post_init__(self) -> None:
        self.allowed_floors = self.settings.allowed_floors_for(self.car_number)
        self.y = self.layout.y_from_floor(self.settings.start_floor)
        self.start_y = self.end_y = self.y

    @property
    def layout(self) -> FloorLayout:
        return self.settings.layout

    @property
    def floor(self) -> int:
        return self.layout.floor_from_y(self.y)

    @property
    def center_x(self) -> float:
        geom = self.settings.geometry
        spacing = geom.car_width * 2
        group_width = self.settings.num_cars * geom.car_width + (self.settings.num_cars - 1) * geom.car_width
        left = (geom.lobby_width - group_width) / 2 + geom.car_width / 2
        return left + (self.car_number - 1) * spacing

    def can_stop_at(self, floor: int) -> bool:
        if floor == BASEMENT and self.car_number in self.settings.basement_excluded_cars:
            return False
        return floor in self.allowed_floors and self.layout.is_floor(floor)

    def is_stopped_at(self, floor: int) -> bool:
        return self.state is not CarState.MOVING and self.y == self.layout.y_from_floor(floor)

    def has_room(self) -> bool:
        return len(self.riders) < self.settings.max_riders_per_car

    def add_rider(self, rider: "Rider") -> bool:
        if rider in self.riders:
            return True
        if not self.has_room():
            logger.warning("Car %d is full, rider %s not added", self.car_number, rider.rider_id)
            return False
        self.riders.append(rider)
        return True

    def remove_rider(self, rider: "Rider") -> None:
        self.riders = [r for r in self.riders if r is not rider]

    def go_to(self, floor: int, manual: bool = False) -> bool:
        """Queue a stop. Returns False when the call is rejected or already queued."""

        if not self.can_stop_at(floor):
            logger.warning("Car %d cannot stop at floor %s", self.car_number, floor_label(floor))
            return False
        if not manual and self.settings.control_mode is not ControlMode.AUTO:
            return False
        if self.is_stopped_at(floor):
            if self.state is CarState.IDLE:
                self._start_opening()
                return True
            if self.state is CarState.CLOSING:
                self._reopen()
                return True
            return False
        if floor in self.dest_floors:
            return False
        self.dest_floors.append(floor)
        self.sort_destinations()
        logger.info("Car %d will go to %s", self.car_number, floor_label(floor))
        if self.state is CarState.MOVING:
            self._stop_en_route(floor)
        return True

    def will_serve(self, floor: int) -> bool:
        """True when the floor is queued or the doors are opening or open there."""

        if floor in self.dest_floors:
            return True
        return self.is_stopped_at(floor) and self.state in (CarState.OPENING, CarState.OPEN)

    def sort_destinations(self) -> None:
        stoppable = [f for f in self.dest_floors if self.can_stop_at(f)]
        self.dest_floors = sort_floors_in_direction(stoppable, self.going_up)

    def update(self, dt: float) -> None:
        if self.state is CarState.IDLE:
            self._idle()
        elif self.state is CarState.MOVING:
            self._move(dt)
        elif self.state is CarState.OPENING:
            self._door_elapsed += dt
            self.door_open_fraction = self._door_progress()
            if self.door_open_fraction == 1:
                self.state = CarState.OPEN
                self._open_elapsed = 0.0
        elif self.state is CarState.OPEN:
            self._open_elapsed += dt
            if self._open_elapsed >= self.settings.door_open_secs:
                self.state = CarState.CLOSING
                self._door_elapsed = 0.0
        elif self.state is CarState.CLOSING:
            self._door_elapsed += dt
            self.door_open_fraction = 1 - self._door_progress()
            if self.door_open_fraction == 0:
                if self.needs_direction_change:
                    self.state = CarState.DIRECTION_CHANGING
                else:
                    self.state = CarState.IDLE
        elif self.state is CarState.DIRECTION_CHANGING:
            self._change_direction()

    def _door_progress(self) -> float:
        secs = self.settings.door_movement_secs
        if secs <= 0:
            return 1.0
        return min(max(self._door_elapsed / secs, 0.0), 1.0)

    def _start_opening(self) -> None:
        self.state = CarState.OPENING
        self._door_elapsed = 0.0

    def _reopen(self) -> None:
        # Pick the door ramp up from where closing left it.
        self.state = CarState.OPENING
        self._door_elapsed = self.door_open_fraction * self.settings.door_movement_secs
        logger.info("Car %d reopening doors at %s", self.car_number, floor_label(self.floor))

    def _nearest_ahead(self) -> Optional[int]:
        best: Optional[int] = None
        best_distance = math.inf
        for floor in self.dest_floors:
            if not self.can_stop_at(floor):
                continue
            floor_y = self.layout.y_from_floor(floor)
            ahead = floor_y > self.y if self.going_up else floor_y < self.y
            distance = abs(self.y - floor_y)
            if ahead and distance < best_distance:
                best, best_distance = floor, distance
        return best

    def _nearest_any(self) -> Optional[int]:
        stoppable = [f for f in self.dest_floors if self.can_stop_at(f)]
        if not stoppable:
            return None
        return min(stoppable, key=lambda f: abs(self.y - self.layout.y_from_floor(f)))

    def _idle(self) -> None:
        if not self.dest_floors:
            return

        current = self.floor
        if current == LOBBY:
            has_upper = any(f > current and self.can_stop_at(f) for f in self.dest_floors)
            has_lower = any(f < current and self.can_stop_at(f) for f in self.dest_floors)
            if has_upper and not has_lower:
                self.going_up = True
            elif has_lower and not has_upper:
                self.going_up = False

        next_dest = self._nearest_ahead()
        if next_dest is None:
            # Reverse, and cycle the doors before setting off the other way.
            self.going_up = not self.going_up
            self.sort_destinations()
            self.needs_direction_change = True
            self._start_opening()
            logger.info("Car %d changing direction to %s", self.car_number, "up" if self.going_up else "down")
            return

        self._start_trip(next_dest)

    def _change_direction(self) -> None:
        self.needs_direction_change = False
        next_dest = self._nearest_ahead()
        if next_dest is None:
            next_dest = self._nearest_any()
        if next_dest is None:
            self.state = CarState.IDLE
            return
        self._start_trip(next_dest)

    def _start_trip(self, floor: int) -> None:
        settings = self.settings
        self.start_y = self.y
        self.end_y = self.layout.y_from_floor(floor)
        if (self.end_y > self.y) != self.going_up:
            self.going_up = self.end_y > self.y
            self.sort_destinations()
        self.speed = 0.0
        self._max_speed = settings.max_speed
        self._accel = self._max_speed * 2
        self._recompute_accel_distance()
        self.state = CarState.MOVING
        logger.info(
            "Car %d moving to %s, going %s",
            self.car_number,
            floor_label(floor),
            "up" if self.going_up else "down",
        )

    def _recompute_accel_distance(self) -> None:
        trip = abs(self.end_y - self.start_y)
        self._accel_distance = min(trip / 2, self._max_speed ** 2 / (2 * self._accel))

    def _accelerating(self) -> bool:
        return abs(self.y - self.start_y) < self._accel_distance and self.speed < self._max_speed

    def _decelerating(self) -> bool:
        return abs(self.y - self.end_y) < self._accel_distance and self.speed > 0

    def _move(self, dt: float) -> None:
        traveled = abs(self.y - self.start_y)
        left = abs(self.end_y - self.y)
        if self._accelerating():
            self.speed = min(self._max_speed, max(self.settings.min_speed, math.sqrt(2 * self._accel * traveled)))
        elif self._decelerating():
            self.speed = min(self.speed, math.sqrt(2 * self._accel * left))

        step = min(left, self.speed * dt)
        direction = 1 if self.going_up else -1
        self.y += direction * step

        if abs(self.end_y - self.y) < self.settings.arrival_epsilon:
            self._arrive()

    def _stop_en_route(self, floor: int) -> None:
        """Shorten the current trip when a newly queued floor lies ahead with room to brake."""

        floor_y = self.layout.y_from_floor(floor)
        ahead = floor_y > self.y if self.going_up else floor_y < self.y
        before_target = floor_y < self.end_y if self.going_up else floor_y > self.end_y
        if not (ahead and before_target):
            return
        braking = self.speed ** 2 / (2 * self._accel) if self._accel else 0.0
        if abs(floor_y - self.y) < braking:
            return
        self.end_y = floor_y
        self._recompute_accel_distance()
        logger.debug("Car %d will stop en route at %s", self.car_number, floor_label(floor))

    def _arrive(self) -> None:
        if self.ledger is not None:
            stories = abs(self.end_y - self.start_y) / self.layout.story_height
            self.ledger.add_movement_costs(stories, self.settings.elevator_speed)
        self.y = self.end_y
        self.speed = 0.0
        self._start_opening()
        self.dest_floors = [f for f in self.dest_floors if self.layout.y_from_floor(f) != self.y]

        current = self.floor
        if current == LOBBY:
            if not any(f < LOBBY and self.can_stop_at(f) for f in self.dest_floors):
                self.going_up = True
        if current == self.layout.top_floor:
            self.going_up = False
        if current == BASEMENT:
            self.going_up = True
        self.sort_destinations()
        logger.info("Car %d arrived at %s", self.car_number, floor_label(current))
