from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from groupcontrol import FloorLayout


class ControlMode(int, Enum):
    AUTO = 0
    MANUAL = 1


def _default_allowed_floors() -> Dict[int, List[int]]:
    return {
        1: [-1, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13],
        2: [-1, 1, 2, 7, 8, 9, 10, 11, 12, 13],
        3: [1, 2, 4, 6, 8, 10, 12, 13],
        4: [1, 2, 3, 5, 7, 9, 11, 13],
    }


DEFAULT_CAR_FLOORS: List[int] = [1]


@dataclass
class Geometry:
    """Horizontal layout of the lobby, in metres, used by rider walks."""

    lobby_width: float = 12.0
    car_width: float = 1.5
    car_depth: float = 2.6
    car_center_z: float = -2.0
    floor_depth: float = 4.0
    walking_speed_mean: float = 3.0
    walking_speed_sd: float = 0.5
    min_walking_speed: float = 1.0


@dataclass
class LedgerRates:
    """Cost and fare constants for the operating ledger."""

    per_sec: float = 0.01
    per_sec_per_car: float = 0.01
    per_floor: float = 0.1
    normal_ride_cost: float = 0.25
    penalty_free_secs: float = 30.0
    penalty_span_secs: float = 300.0
    max_recent_payments: int = 150


@dataclass
class BankSettings:
    """Runtime configuration shared by the bank, its cars and its dispatcher."""

    num_cars: int = 4
    num_floors: int = 13
    has_basement: bool = True
    num_active_cars: int = 4
    start_floor: int = 1
    story_height: float = 3.5
    door_movement_secs: float = 1.0
    door_open_secs: float = 2.5
    max_riders_per_car: int = 25
    control_mode: ControlMode = ControlMode.AUTO
    elevator_speed: int = 5
    passenger_load: int = 0
    request_timeout_secs: float = 30.0
    allowed_floors: Dict[int, List[int]] = field(default_factory=_default_allowed_floors)
    basement_excluded_cars: Tuple[int, ...] = (3, 4)
    geometry: Geometry = field(default_factory=Geometry)
    rates: LedgerRates = field(default_factory=LedgerRates)

    def __post_init__(self) -> None:
        if not is_valid_floor_count(self.num_floors):
            raise ValueError(f"num_floors must be an integer greater than 1, got {self.num_floors!r}")
        if self.num_cars < 1:
            raise ValueError("num_cars must be at least 1")
        if not 1 <= self.elevator_speed <= MAX_ELEVATOR_SPEED:
            raise ValueError(f"elevator_speed must be between 1 and {MAX_ELEVATOR_SPEED}")
        if not 0 <= self.passenger_load <= MAX_PASSENGER_LOAD:
            raise ValueError(f"passenger_load must be between 0 and {MAX_PASSENGER_LOAD}")
        if self.max_riders_per_car < 1:
            raise ValueError("max_riders_per_car must be at least 1")
        self.control_mode = ControlMode(self.control_mode)
        self.basement_excluded_cars = tuple(self.basement_excluded_cars)

    @property
    def layout(self) -> FloorLayout:
        return FloorLayout(
            num_floors=self.num_floors,
            story_height=self.story_height,
            has_basement=self.has_basement,
        )

    def allowed_floors_for(self, car_number: int) -> Tuple[int, ...]:
        return tuple(self.allowed_floors.get(car_number, DEFAULT_CAR_FLOORS))

    @property
    def max_speed(self) -> float:
        """Cruise speed in metres per second for the current speed level."""

        stories_per_sec = 0.4 + (self.elevator_speed - 1) * (20.0 - 0.4) / 9
        return self.story_height * stories_per_sec

    @property
    def min_speed(self) -> float:
        return self.story_height / 50

    @property
    def arrival_epsilon(self) -> float:
        return self.story_height / 50

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BankSettings":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        kwargs = dict(data)
        if "allowed_floors" in kwargs:
            kwargs["allowed_floors"] = {
                int(car): [int(f) for f in floors] for car, floors in kwargs["allowed_floors"].items()
            }
        if "control_mode" in kwargs:
            kwargs["control_mode"] = parse_control_mode(kwargs["control_mode"])
        if "geometry" in kwargs:
            kwargs["geometry"] = Geometry(**kwargs["geometry"])
        if "rates" in kwargs:
            kwargs["rates"] = LedgerRates(**kwargs["rates"])
        return cls(**kwargs)


MAX_PASSENGER_LOAD = 6
MAX_ELEVATOR_SPEED = 10


def is_valid_floor_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 1


def parse_control_mode(value: Any) -> ControlMode:
    if isinstance(value, ControlMode):
        return value
    if isinstance(value, str):
        try:
            return ControlMode[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown control mode '{value}'") from None
    return ControlMode(value)
