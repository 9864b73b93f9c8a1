from __future__ import annotations

from typing import Callable, List

import pytest

from liftbank import BankSettings, Car, Dispatcher, Geometry, Ledger, RiderState

DT = 0.05


def fast_geometry() -> Geometry:
    """A narrow lobby and brisk, uniform walkers so boarding always fits the door dwell."""

    return Geometry(
        lobby_width=4.0,
        car_width=1.0,
        walking_speed_mean=10.0,
        walking_speed_sd=0.0,
        min_walking_speed=10.0,
    )


def single_car_settings(**overrides) -> BankSettings:
    options = dict(
        num_cars=1,
        num_active_cars=1,
        num_floors=13,
        allowed_floors={1: [-1] + list(range(1, 14))},
        geometry=fast_geometry(),
    )
    options.update(overrides)
    return BankSettings(**options)


class StubRider:
    """Stands in for a rider the dispatcher only needs to see waiting."""

    def __init__(self, start_floor: int, dest_floor: int) -> None:
        self.start_floor = start_floor
        self.dest_floor = dest_floor
        self.state = RiderState.WAITING
        self.car = None

    @property
    def awaiting_car(self) -> bool:
        return self.state in (RiderState.ARRIVED_AND_CALLING, RiderState.WAITING)

    def update(self, now: float, dt: float) -> None:
        pass


def run_until(step: Callable[[], None], condition: Callable[[], bool], max_steps: int = 2000) -> bool:
    for _ in range(max_steps):
        if condition():
            return True
        step()
    return condition()


def distinct_states(history: List) -> List:
    collapsed: List = []
    for state in history:
        if not collapsed or collapsed[-1] is not state:
            collapsed.append(state)
    return collapsed


@pytest.fixture
def settings() -> BankSettings:
    return single_car_settings()


@pytest.fixture
def ledger() -> Ledger:
    return Ledger()


@pytest.fixture
def car(settings: BankSettings, ledger: Ledger) -> Car:
    return Car(car_number=1, settings=settings, ledger=ledger)


@pytest.fixture
def dispatcher(settings: BankSettings, car: Car, ledger: Ledger) -> Dispatcher:
    d = Dispatcher(settings, [car], ledger, auto_spawn=False)
    d.update_car_active_statuses()
    return d
