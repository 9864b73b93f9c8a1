"""Manages riders, and calls cars for them."""
from __future__ import annotations

import itertools
import logging
import math
import random
from typing import Callable, Dict, List, Optional, Sequence

from groupcontrol import (
    LOBBY,
    CarState,
    Request,
    RequestQueue,
    RequestType,
    closest_approaching_car,
    floor_label,
    has_destinations_ahead,
    make_request,
    select_active_indexes,
    select_best_car,
    serves_request,
)

from .car import Car
from .config import BankSettings, ControlMode
from .flow import FloorFlowMatrix, Matrix
from .ledger import Ledger
from .rider import Rider, RiderState

logger = logging.getLogger(__name__)


class Dispatcher:
    """Owns the request queue and the rider roster, and assigns requests to cars.

    One assignment decision is made per :meth:`process` call.
    """

    def __init__(
        self,
        settings: BankSettings,
        cars: Sequence[Car],
        ledger: Ledger,
        rng: Optional[random.Random] = None,
        auto_spawn: bool = True,
    ) -> None:
        self.settings = settings
        self.cars = list(cars)
        self.ledger = ledger
        self.random = rng or random.Random()
        self.auto_spawn = auto_spawn
        self.queue = RequestQueue(timeout=settings.request_timeout_secs)
        self.riders: List[Rider] = []
        self.current_time: float = 0.0
        self.floor_flow = FloorFlowMatrix.default(settings.num_floors)
        self.event_hooks: Dict[str, List[Callable[[object], None]]] = {}
        self._num_active_cars_in_cache: Optional[int] = None
        self._cached_active_cars: List[Car] = []
        self._rider_ids = itertools.count(1)

    # Flow matrix

    def init_floor_flow(self) -> None:
        self.floor_flow = FloorFlowMatrix.default(self.settings.num_floors)

    def set_floor_flow(self, from_floor: int, to_floor: int, value: float) -> bool:
        layout = self.settings.layout
        from_index = layout.to_index(from_floor)
        to_index = layout.to_index(to_floor)
        if from_index is None or to_index is None:
            return False
        return self.floor_flow.set(from_index, to_index, value)

    def set_floor_flow_matrix(self, matrix: Sequence[Sequence[float]]) -> bool:
        return self.floor_flow.set_matrix(matrix)

    def get_floor_flow_matrix(self) -> Matrix:
        return self.floor_flow.to_list()

    # Events

    def on_event(self, event: str, callback: Callable[[object], None]) -> None:
        self.event_hooks.setdefault(event, []).append(callback)

    def emit(self, event: str, payload: object) -> None:
        for callback in self.event_hooks.get(event, []):
            callback(payload)

    # Requests

    def _eligible_cars(self, floor: int, dest_floor: Optional[int], exclude_car: Optional[Car] = None) -> List[Car]:
        eligible = []
        for car in self.active_cars():
            if exclude_car is not None and car is exclude_car:
                continue
            if not car.can_stop_at(floor):
                continue
            if dest_floor is not None and not car.can_stop_at(dest_floor):
                continue
            eligible.append(car)
        return eligible

    def request_car(
        self,
        start_floor: int,
        going_up: bool,
        dest_floor: Optional[int] = None,
        request_type: RequestType = RequestType.PICKUP,
        rider: Optional[Rider] = None,
    ) -> bool:
        if not self._eligible_cars(start_floor, dest_floor):
            if dest_floor is not None:
                logger.warning(
                    "No car can travel from %s to %s", floor_label(start_floor), floor_label(dest_floor)
                )
            else:
                logger.warning("No car can serve floor %s", floor_label(start_floor))
            return False
        try:
            request = make_request(request_type, start_floor, going_up, self.current_time, dest_floor, rider)
        except ValueError as exc:
            logger.warning("Rejected request at %s: %s", floor_label(start_floor), exc)
            return False
        admitted = self.queue.admit(request)
        if admitted:
            logger.info(
                "New %s request at %s%s, going %s",
                request.request_type.value,
                floor_label(start_floor),
                f" to {floor_label(dest_floor)}" if dest_floor is not None else "",
                "up" if going_up else "down",
            )
        return admitted

    def request_car_for_specific_rider(
        self,
        start_floor: int,
        going_up: bool,
        dest_floor: int,
        rider: Rider,
        exclude_car: Optional[Car] = None,
        request_type: RequestType = RequestType.PICKUP,
    ) -> bool:
        """Queue a request for ``rider`` without deduplication, optionally skipping a car."""

        if not self._eligible_cars(start_floor, dest_floor, exclude_car):
            logger.warning(
                "No car can travel from %s to %s%s",
                floor_label(start_floor),
                floor_label(dest_floor),
                f" without car {exclude_car.car_number}" if exclude_car is not None else "",
            )
            return False
        request = make_request(
            request_type, start_floor, going_up, self.current_time, dest_floor, rider, exclude_car
        )
        self.queue.force(request)
        return True

    def request_delivery(self, car: Car, dest_floor: int, rider: Optional[Rider] = None) -> bool:
        if not car.can_stop_at(dest_floor):
            logger.warning("Car %d cannot deliver to %s", car.car_number, floor_label(dest_floor))
            return False
        return car.go_to(dest_floor)

    def has_waiting_riders_on_floor(self, floor: int) -> bool:
        return any(rider.start_floor == floor and rider.awaiting_car for rider in self.riders)

    # Per-tick processing

    def process(self, dt: float) -> None:
        self.current_time += dt
        self.process_riders(dt)
        self.queue.purge(self.current_time)

        if self.settings.control_mode is not ControlMode.AUTO:
            return

        request = self.queue.pop()
        if request is None:
            return

        if request.rider is not None and not request.rider.awaiting_car:
            logger.debug("Skipping request at %s: rider already boarded", floor_label(request.floor))
            return
        if not self.has_waiting_riders_on_floor(request.floor):
            logger.debug("Skipping request at %s: nobody waiting", floor_label(request.floor))
            return

        if self.assign_request_to_moving_car(request):
            return

        eligible = [car for car in self.active_cars() if serves_request(car, request)]
        if not eligible:
            self.queue.requeue(request)
            logger.debug("Requeued request at %s: no eligible car", floor_label(request.floor))
            return

        best = select_best_car(eligible, request, self.settings.layout)
        self.assign_car(best, request)

    def assign_request_to_moving_car(self, request: Request) -> bool:
        car = closest_approaching_car(self.active_cars(), request, self.settings.layout)
        if car is None:
            return False
        car.go_to(request.floor)
        logger.info(
            "Car %d (moving) picks up %s request at %s",
            car.car_number,
            request.request_type.value,
            floor_label(request.floor),
        )
        return True

    def assign_car(self, car: Car, request: Request) -> None:
        target = request.target_floor
        if car.is_stopped_at(target) and car.going_up != request.going_up:
            if car.state is CarState.IDLE and not has_destinations_ahead(car, car.floor):
                car.going_up = request.going_up
                car.sort_destinations()
            else:
                # The car is serving the other direction here; retry once it has left.
                self.queue.requeue(request)
                return
        if not car.go_to(target) and not car.will_serve(target):
            self.queue.requeue(request)
            logger.debug("Requeued request at %s: car %d turned it down", floor_label(target), car.car_number)
            return
        logger.info(
            "Assigned car %d to %s request at %s (waited %.1fs)",
            car.car_number,
            request.request_type.value,
            floor_label(target),
            request.age(self.current_time),
        )

    # Active cars

    def active_cars(self) -> List[Car]:
        """Cars selected from the middle of the group, moving outward."""

        if self.settings.num_active_cars != self._num_active_cars_in_cache:
            indexes = select_active_indexes(len(self.cars), self.settings.num_active_cars)
            self._cached_active_cars = [self.cars[i] for i in indexes]
            self._num_active_cars_in_cache = self.settings.num_active_cars
        return self._cached_active_cars

    def is_active(self, car: Car) -> bool:
        return any(c is car for c in self.active_cars())

    def update_car_active_statuses(self) -> None:
        for car in self.cars:
            car.active = self.is_active(car)

    # Riders

    def process_riders(self, dt: float) -> None:
        for rider in list(self.riders):
            rider.update(self.current_time, dt)
        self.riders = [rider for rider in self.riders if rider.state is not RiderState.EXITED]
        if self.auto_spawn:
            self.possibly_spawn_new_riders(dt)

    def spawn_rider(self, start_floor: int, dest_floor: int) -> Optional[Rider]:
        layout = self.settings.layout
        if start_floor == dest_floor or not layout.is_floor(start_floor) or not layout.is_floor(dest_floor):
            logger.warning("Cannot spawn a rider from %s to %s", floor_label(start_floor), floor_label(dest_floor))
            return None
        rider = Rider(
            rider_id=next(self._rider_ids),
            start_floor=start_floor,
            dest_floor=dest_floor,
            dispatcher=self,
            settings=self.settings,
            ledger=self.ledger,
            arrival_time=self.current_time,
            rng=self.random,
        )
        self.riders.append(rider)
        self.emit("rider_spawned", {"rider": rider, "time": self.current_time})
        return rider

    def spawn_batch(self, origin: int, count: int, destination: Optional[int] = None) -> int:
        spawned = 0
        for _ in range(max(0, count)):
            dest = destination if destination is not None else self.select_destination_floor(origin)
            if dest is None:
                continue
            if self.spawn_rider(origin, dest) is not None:
                spawned += 1
        return spawned

    def arrival_rate(self) -> float:
        load = self.settings.passenger_load
        if load == 0:
            return 0.1 + (math.sin(self.current_time / 100) + 1) / 2 * 0.4
        return 2 ** (load - 1) * 0.1

    def possibly_spawn_new_riders(self, dt: float) -> None:
        layout = self.settings.layout
        rate = self.arrival_rate()
        totals = self.floor_flow.outbound_totals()
        total_flow = sum(totals)

        # The lobby gets bursts of at least one rider.
        if self.random.random() < rate * dt:
            for _ in range(self._poisson(1.0) + 1):
                dest = self.select_destination_floor(LOBBY)
                if dest is not None:
                    self.spawn_rider(LOBBY, dest)

        if total_flow <= 0:
            return
        for index in range(1, len(totals)):
            probability = totals[index] / total_flow * rate * dt
            if self.random.random() < probability:
                source = layout.from_index(index)
                dest = self.select_destination_floor(source)
                if dest is not None:
                    self.spawn_rider(source, dest)

    def reachable_floors(self, source: int) -> List[int]:
        """Flow-matrix floors an active car can carry a rider to from ``source``."""

        layout = self.settings.layout
        reachable = set()
        for car in self.active_cars():
            if not car.can_stop_at(source):
                continue
            for index in range(self.floor_flow.num_floors):
                floor = layout.from_index(index)
                if floor != source and car.can_stop_at(floor):
                    reachable.add(floor)
        return sorted(reachable)

    def select_destination_floor(self, source: int) -> Optional[int]:
        """Weighted choice over reachable floors; None when nothing is reachable."""

        layout = self.settings.layout
        reachable = self.reachable_floors(source)
        if not reachable:
            return None
        source_index = layout.to_index(source)
        if source_index is None:
            return self.random.choice(reachable)
        weights = [self.floor_flow.get(source_index, layout.to_index(f)) for f in reachable]
        total = sum(weights)
        if total <= 0:
            return self.random.choice(reachable)
        pick = self.random.uniform(0, total)
        cumulative = 0.0
        for floor, weight in zip(reachable, weights):
            cumulative += weight
            if pick < cumulative:
                return floor
        return reachable[-1]

    def _poisson(self, lam: float) -> int:
        if lam <= 0:
            return 0
        L = math.exp(-lam)
        k = 0
        p = 1.0
        while p > L:
            k += 1
            p *= self.random.random()
        return k - 1

    # Reporting

    def elevator_info(self) -> str:
        lines = []
        for car in self.cars:
            floors = ", ".join(floor_label(f) for f in car.allowed_floors)
            lines.append(f"Car {car.car_number} stops at: {floors}")
        return "\n".join(lines)
