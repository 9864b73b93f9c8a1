from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .floors import FloorLayout
from .interface import CarState, CarView, Request

DISTANCE_WEIGHT = 100.0
IDLE_BONUS = 50.0
MOVING_BONUS = 20.0
SAME_DIRECTION_BONUS = 30.0
ON_ROUTE_BONUS = 40.0
ABOUT_TO_REVERSE_BONUS = 15.0
DESTINATION_ALIGNED_BONUS = 20.0


@dataclass(frozen=True)
class CarScore:
    car: CarView
    score: float
    distance: float


def is_on_route(car: CarView, request_floor: int, current_floor: int) -> bool:
    """Whether a car travelling in its current direction still passes ``request_floor``."""

    if car.going_up:
        return request_floor > current_floor
    return request_floor < current_floor


def has_destinations_ahead(car: CarView, current_floor: int) -> bool:
    if car.going_up:
        return any(f > current_floor and car.can_stop_at(f) for f in car.dest_floors)
    return any(f < current_floor and car.can_stop_at(f) for f in car.dest_floors)


def serves_request(car: CarView, request: Request) -> bool:
    if request.excludes(car):
        return False
    if not car.can_stop_at(request.floor):
        return False
    return request.dest_floor is None or car.can_stop_at(request.dest_floor)


def score_car(car: CarView, request: Request, layout: FloorLayout) -> CarScore:
    """Score one eligible car against a request; higher is better."""

    floor_y = layout.y_from_floor(request.floor)
    distance = abs(car.y - floor_y)
    current_floor = layout.floor_from_y(car.y)
    max_distance = layout.max_distance or 1.0

    score = (1 - distance / max_distance) * DISTANCE_WEIGHT

    if car.state is CarState.IDLE:
        score += IDLE_BONUS
    elif car.state is CarState.MOVING:
        score += MOVING_BONUS

    # Cars busy with their doors get no direction credit.
    if car.state in (CarState.IDLE, CarState.MOVING):
        if car.going_up == request.going_up:
            score += SAME_DIRECTION_BONUS
            if car.state is CarState.MOVING and is_on_route(car, request.floor, current_floor):
                score += ON_ROUTE_BONUS
        elif not has_destinations_ahead(car, current_floor):
            score += ABOUT_TO_REVERSE_BONUS

    if request.dest_floor is not None:
        if (request.dest_floor > request.floor) == request.going_up:
            score += DESTINATION_ALIGNED_BONUS

    return CarScore(car=car, score=score, distance=distance)


def select_best_car(
    cars: Iterable[CarView], request: Request, layout: FloorLayout
) -> Optional[CarView]:
    """Highest score wins; ties go to the nearest car, then to array order."""

    scores: List[CarScore] = [score_car(car, request, layout) for car in cars]
    if not scores:
        return None
    best = max(s.score for s in scores)
    leaders = [s for s in scores if s.score == best]
    return min(leaders, key=lambda s: s.distance).car


def closest_approaching_car(
    cars: Sequence[CarView], request: Request, layout: FloorLayout
) -> Optional[CarView]:
    """Nearest moving car headed the request's way that has not yet passed its floor."""

    floor_y = layout.y_from_floor(request.floor)
    candidates = [
        car
        for car in cars
        if car.state is CarState.MOVING
        and car.going_up == request.going_up
        and serves_request(car, request)
        and (car.y < floor_y if request.going_up else car.y > floor_y)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda car: abs(car.y - floor_y))
