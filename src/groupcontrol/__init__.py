"""Group-control primitives shared by the LiftBank dispatcher."""

from __future__ import annotations

from .floors import BASEMENT, LOBBY, FloorId, FloorLayout, floor_label
from .interface import (
    CarState,
    CarView,
    DeliveryRequest,
    PickupRequest,
    Request,
    RequestType,
    RiderView,
    make_request,
)
from .queue import RequestQueue
from .scoring import (
    CarScore,
    closest_approaching_car,
    has_destinations_ahead,
    is_on_route,
    score_car,
    select_best_car,
    serves_request,
)
from .utils import select_active_indexes, sort_floors_in_direction

__all__ = [
    "BASEMENT",
    "LOBBY",
    "CarScore",
    "CarState",
    "CarView",
    "DeliveryRequest",
    "FloorId",
    "FloorLayout",
    "PickupRequest",
    "Request",
    "RequestQueue",
    "RequestType",
    "RiderView",
    "closest_approaching_car",
    "floor_label",
    "has_destinations_ahead",
    "is_on_route",
    "make_request",
    "score_car",
    "select_active_indexes",
    "select_best_car",
    "serves_request",
    "sort_floors_in_direction",
]
