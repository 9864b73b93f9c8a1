from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from .config import LedgerRates


@dataclass(frozen=True)
class LedgerSnapshot:
    total_riding: int
    total_riding_kg: float
    total_waiting: int
    served: int
    payments: float
    costs: float
    profit: float
    current_riding: int
    current_riding_kg: float
    current_waiting: int
    total_waiting_time: float
    average_wait: float
    wait_p95: float
    average_trip: float
    trip_p95: float


class Ledger:
    """Operating costs and fare revenue.

    Pure bookkeeping: nothing in the dispatcher reads these numbers.
    """

    def __init__(self, rates: Optional[LedgerRates] = None) -> None:
        self.rates = rates or LedgerRates()
        self.waiting = 0
        self.riding = 0
        self.riding_kg = 0.0
        self.total_waiting = 0
        self.total_riding = 0
        self.total_riding_kg = 0.0
        self.served = 0
        self.payments = 0.0
        self.operating = 0.0
        self.total_operating = 0.0
        self.total_waiting_time = 0.0
        self.recent_payments: Deque[float] = deque(maxlen=self.rates.max_recent_payments)
        self.recent_trip_times: Deque[float] = deque(maxlen=self.rates.max_recent_payments)
        self.wait_times: List[float] = []
        self.trip_times: List[float] = []

    def ride_fare(self, trip_time: float) -> float:
        """Flat fare, reduced linearly once the trip takes longer than the penalty-free time."""

        rates = self.rates
        penalty = min(max(trip_time - rates.penalty_free_secs, 0.0), rates.penalty_span_secs)
        fare = rates.normal_ride_cost - rates.normal_ride_cost * penalty / rates.penalty_span_secs
        return max(0.0, fare)

    def charge_rider(self, trip_time: float) -> float:
        fare = self.ride_fare(trip_time)
        self.recent_payments.append(fare)
        self.recent_trip_times.append(trip_time)
        self.trip_times.append(trip_time)
        self.payments += fare
        return fare

    def add_movement_costs(self, num_floors: float, speed_level: int) -> float:
        cost = self.rates.per_floor * (1 + speed_level / 10) * num_floors
        self.operating += cost
        self.total_operating += cost
        return cost

    def add_idle_costs(self, secs: float, num_active_cars: int) -> float:
        base = self.rates.per_sec * secs
        cars = self.rates.per_sec_per_car * secs * num_active_cars
        self.operating += base + cars
        self.total_operating += base + cars
        self.total_waiting_time += secs * self.waiting
        return base + cars

    def rider_waiting(self, change: int) -> None:
        self.waiting = max(0, self.waiting + change)
        if change > 0:
            self.total_waiting += change

    def rider_riding(self, change: int, weight: float = 0.0) -> None:
        self.riding = max(0, self.riding + change)
        self.riding_kg = max(0.0, self.riding_kg + weight)
        if change > 0:
            self.total_riding += change
            self.total_riding_kg += max(0.0, weight)

    def rider_served(self) -> None:
        self.served += 1

    def record_wait_time(self, wait_time: float) -> None:
        self.wait_times.append(wait_time)

    def _average(self, values: List[float]) -> float:
        if not values:
            return 0.0
        return sum(values) / len(values)

    def _percentile(self, values: List[float], percentile: float) -> float:
        if not values:
            return 0.0
        sorted_vals = sorted(values)
        k = (len(sorted_vals) - 1) * percentile
        f = math.floor(k)
        c = math.ceil(k)
        if f == c:
            return float(sorted_vals[int(k)])
        d0 = sorted_vals[int(f)] * (c - k)
        d1 = sorted_vals[int(c)] * (k - f)
        return float(d0 + d1)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            total_riding=self.total_riding,
            total_riding_kg=self.total_riding_kg,
            total_waiting=self.total_waiting,
            served=self.served,
            payments=self.payments,
            costs=self.total_operating,
            profit=self.payments - self.total_operating,
            current_riding=self.riding,
            current_riding_kg=self.riding_kg,
            current_waiting=self.waiting,
            total_waiting_time=self.total_waiting_time,
            average_wait=self._average(self.wait_times),
            wait_p95=self._percentile(self.wait_times, 0.95),
            average_trip=self._average(self.trip_times),
            trip_p95=self._percentile(self.trip_times, 0.95),
        )
