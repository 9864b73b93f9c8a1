from __future__ import annotations

import logging
import math
import random
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from groupcontrol import CarState, floor_label

from .config import BankSettings, ControlMode

if TYPE_CHECKING:  # pragma: no cover - import cycle safe typing
    from .car import Car
    from .dispatcher import Dispatcher
    from .ledger import Ledger

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class RiderState(str, Enum):
    ARRIVING = "arriving"
    ARRIVED_AND_CALLING = "arrived_and_calling"
    WAITING = "waiting"
    BOARDING = "boarding"
    RIDING = "riding"
    EXITING = "exiting"
    EXITED = "exited"


IN_CAR_STATES = frozenset({RiderState.BOARDING, RiderState.RIDING, RiderState.EXITING})


class Rider:
    """A person travelling from ``start_floor`` to ``dest_floor``.

    Walking is modelled on the floor plane as ``(x, z)`` positions in
    metres; the vertical position follows the floor or the car.
    """

    def __init__(
        self,
        rider_id: int,
        start_floor: int,
        dest_floor: int,
        dispatcher: "Dispatcher",
        settings: BankSettings,
        ledger: "Ledger",
        arrival_time: float,
        rng: Optional[random.Random] = None,
    ) -> None:
        if start_floor == dest_floor:
            raise ValueError("A rider's destination must differ from its start floor")
        self.rider_id = rider_id
        self.start_floor = start_floor
        self.dest_floor = dest_floor
        self.dispatcher = dispatcher
        self.settings = settings
        self.ledger = ledger
        self.arrival_time = arrival_time
        self.board_time: Optional[float] = None
        self.random = rng or random.Random()
        self.state = RiderState.ARRIVING
        self.car: Optional["Car"] = None
        self.height, self.weight = self._body_attributes()

        geom = settings.geometry
        self.walking_speed = max(
            geom.min_walking_speed, self.random.gauss(geom.walking_speed_mean, geom.walking_speed_sd)
        )
        travel_direction = self.random.choice([-1, 1])
        enter_x = geom.lobby_width / 2 - travel_direction * geom.lobby_width / 2
        self.pos: Point = (enter_x, self._random_floor_z())
        wait_x = enter_x + travel_direction * abs(self.random.gauss(geom.lobby_width / 3, geom.lobby_width / 4))
        wait_x = min(max(wait_x, 0.0), geom.lobby_width)
        self.arriving_path: List[Point] = [(wait_x, self.pos[1])]
        self.boarding_path: List[Point] = []
        self.exiting_path: List[Point] = []
        self.y = settings.layout.y_from_floor(start_floor)

        self._called_at: Optional[float] = None
        self._refused_by: Optional["Car"] = None
        self.ledger.rider_waiting(1)

    def __repr__(self) -> str:
        return (
            f"Rider({self.rider_id}, {floor_label(self.start_floor)}->{floor_label(self.dest_floor)}, "
            f"{self.state.value})"
        )

    @property
    def going_up(self) -> bool:
        return self.dest_floor > self.start_floor

    @property
    def awaiting_car(self) -> bool:
        return self.state in (RiderState.ARRIVED_AND_CALLING, RiderState.WAITING)

    def _body_attributes(self) -> Tuple[float, float]:
        height = min(max(self.random.gauss(1.7, 0.5), 1.0), 2.2)
        weight = min(max(self.random.gauss(85, 10), 30.0), 150.0)
        return height, weight

    def _random_floor_z(self) -> float:
        depth = self.settings.geometry.floor_depth
        return self.random.uniform(-depth / 2, depth / 2)

    def _fuzz(self, half: float) -> float:
        return self.random.uniform(-half, half)

    def update(self, now: float, dt: float) -> None:
        if self.state is RiderState.ARRIVING:
            self.follow_path(self.arriving_path, RiderState.ARRIVED_AND_CALLING, dt)
        elif self.state is RiderState.ARRIVED_AND_CALLING:
            self.request_car(now)
            self.state = RiderState.WAITING
        elif self.state is RiderState.WAITING:
            self.wait_for_car(now)
        elif self.state is RiderState.BOARDING:
            self._board(now, dt)
        elif self.state is RiderState.RIDING:
            self.ride()
        elif self.state is RiderState.EXITING:
            self.follow_path(self.exiting_path, RiderState.EXITED, dt, on_complete=lambda: self._exited(now))

    def request_car(self, now: float) -> None:
        self._called_at = now
        self.dispatcher.request_car(self.start_floor, self.going_up, self.dest_floor, rider=self)

    def wait_for_car(self, now: float) -> None:
        floor_y = self.settings.layout.y_from_floor(self.start_floor)
        any_direction = self.settings.control_mode is ControlMode.MANUAL
        full_car_seen = False
        open_cars: List["Car"] = []
        for car in self.dispatcher.active_cars():
            matches = (
                car.state is CarState.OPEN
                and car.y == floor_y
                and (any_direction or car.going_up == self.going_up)
            )
            if not matches:
                continue
            if car.has_room():
                open_cars.append(car)
            else:
                full_car_seen = True

        if open_cars:
            reaching = [car for car in open_cars if car.can_stop_at(self.dest_floor)]
            suitable = reaching[0] if reaching else open_cars[0]
            if reaching:
                self._start_boarding(suitable, now)
            elif suitable is not self._refused_by:
                self._refused_by = suitable
                self._called_at = now
                self.dispatcher.request_car_for_specific_rider(
                    self.start_floor, self.going_up, self.dest_floor, self, exclude_car=suitable
                )
            return

        if full_car_seen:
            self.dispatcher.emit("car_full", {"rider": self, "floor": self.start_floor})

        timeout = self.settings.request_timeout_secs
        if self._called_at is not None and now - self._called_at > timeout:
            self.request_car(now)

    def _start_boarding(self, car: "Car", now: float) -> None:
        if not car.add_rider(self):
            return
        self.car = car
        self.dispatcher.request_delivery(car, self.dest_floor, self)
        self.boarding_path = self._boarding_path(car)
        self.state = RiderState.BOARDING
        logger.debug("%r boarding car %d", self, car.car_number)

    def _board(self, now: float, dt: float) -> None:
        car = self.car
        cancelled = self.follow_path(
            self.boarding_path,
            RiderState.RIDING,
            dt,
            on_complete=lambda: self._boarded(now),
            continue_while=lambda: car.state is CarState.OPEN,
        )
        if cancelled:
            car.remove_rider(self)
            self.car = None
            self.state = RiderState.WAITING
            self.dispatcher.emit("boarding_cancelled", {"rider": self, "car": car})
            logger.debug("%r missed car %d", self, car.car_number)
            self.request_car(now)

    def _boarded(self, now: float) -> None:
        self.board_time = now
        self.ledger.record_wait_time(now - self.arrival_time)
        self.ledger.rider_waiting(-1)
        self.ledger.rider_riding(1, self.weight)

    def ride(self) -> None:
        car = self.car
        self.y = car.y
        if car.state is CarState.OPEN and car.y == self.settings.layout.y_from_floor(self.dest_floor):
            self.exiting_path = self._exiting_path(car)
            self.ledger.rider_riding(-1, -self.weight)
            self.ledger.rider_served()
            self.state = RiderState.EXITING

    def _exited(self, now: float) -> None:
        self.ledger.charge_rider(now - self.arrival_time)
        if self.car is not None:
            self.car.remove_rider(self)
        self.car = None
        self.dispatcher.emit("rider_exited", {"rider": self})

    def _outside_door(self, car: "Car") -> Point:
        geom = self.settings.geometry
        door_z = geom.car_center_z + geom.car_depth / 2
        return (car.center_x + self._fuzz(0.1), door_z + 0.5 + self._fuzz(0.1))

    def _boarding_path(self, car: "Car") -> List[Point]:
        geom = self.settings.geometry
        inside = (
            car.center_x + self._fuzz(geom.car_width * 0.4),
            geom.car_center_z + self._fuzz(geom.car_depth * 0.4),
        )
        return [self._outside_door(car), inside]

    def _exiting_path(self, car: "Car") -> List[Point]:
        geom = self.settings.geometry
        near_door = (car.center_x + self._fuzz(0.1), geom.car_center_z + geom.car_depth / 2 - 0.3)
        exit_x = geom.lobby_width / 2 - self.random.choice([-1, 1]) * geom.lobby_width / 2
        return [near_door, self._outside_door(car), (exit_x, self._random_floor_z())]

    def follow_path(
        self,
        path: List[Point],
        next_state: RiderState,
        dt: float,
        on_complete: Optional[Callable[[], None]] = None,
        continue_while: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """Walk toward the next waypoint. Returns True when ``continue_while`` cancels the walk."""

        if continue_while is not None and not continue_while():
            return True
        if not path:
            self.state = next_state
            if on_complete:
                on_complete()
            return False
        if self._move_toward(path[0], dt) == 0:
            path.pop(0)
            if not path:
                self.state = next_state
                if on_complete:
                    on_complete()
        return False

    def _move_toward(self, dest: Point, dt: float) -> float:
        dx = dest[0] - self.pos[0]
        dz = dest[1] - self.pos[1]
        distance = math.hypot(dx, dz)
        step = min(distance, self.walking_speed * dt)
        if step >= distance:
            self.pos = dest
            return 0.0
        self.pos = (self.pos[0] + dx / distance * step, self.pos[1] + dz / distance * step)
        return math.hypot(dest[0] - self.pos[0], dest[1] - self.pos[1])
