from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Optional, Protocol, Union


class CarState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"
    DIRECTION_CHANGING = "direction_changing"
    MOVING = "moving"


class RequestType(str, Enum):
    PICKUP = "pickup"
    DELIVER = "deliver"


class CarView(Protocol):
    """What the group controller needs to know about a car."""

    car_number: int
    y: float
    going_up: bool
    state: CarState
    dest_floors: List[int]

    def can_stop_at(self, floor: int) -> bool:
        ...


class RiderView(Protocol):
    """What the request queue needs to know about a bound rider."""

    @property
    def awaiting_car(self) -> bool:
        """True while the rider is calling or waiting for a car."""
        ...


@dataclass
class _BaseRequest:
    floor: int
    going_up: bool
    requested_at: float
    dest_floor: Optional[int] = None
    rider: Optional[RiderView] = None
    exclude_car: Optional[CarView] = None

    request_type: ClassVar[RequestType]

    @property
    def is_bound(self) -> bool:
        return self.rider is not None

    @property
    def target_floor(self) -> int:
        return self.floor

    def age(self, now: float) -> float:
        return now - self.requested_at

    def excludes(self, car: CarView) -> bool:
        return self.exclude_car is not None and car is self.exclude_car


@dataclass
class PickupRequest(_BaseRequest):
    """A car is wanted at ``floor`` to pick someone up."""

    request_type: ClassVar[RequestType] = RequestType.PICKUP


@dataclass
class DeliveryRequest(_BaseRequest):
    """A car is wanted to carry someone from ``floor`` to ``dest_floor``."""

    request_type: ClassVar[RequestType] = RequestType.DELIVER

    def __post_init__(self) -> None:
        if self.dest_floor is None:
            raise ValueError("A delivery request needs a destination floor")

    @property
    def target_floor(self) -> int:
        return self.dest_floor


Request = Union[PickupRequest, DeliveryRequest]


def make_request(
    request_type: RequestType,
    floor: int,
    going_up: bool,
    requested_at: float,
    dest_floor: Optional[int] = None,
    rider: Optional[RiderView] = None,
    exclude_car: Optional[CarView] = None,
) -> Request:
    cls = DeliveryRequest if RequestType(request_type) is RequestType.DELIVER else PickupRequest
    return cls(
        floor=floor,
        going_up=going_up,
        requested_at=requested_at,
        dest_floor=dest_floor,
        rider=rider,
        exclude_car=exclude_car,
    )
