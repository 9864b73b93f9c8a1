"""Simulation primitives for LiftBank."""

from .bank import ElevatorBank
from .car import Car
from .config import BankSettings, ControlMode, Geometry, LedgerRates
from .dispatcher import Dispatcher
from .flow import FloorFlowMatrix, pattern_floor_flow, random_floor_flow
from .ledger import Ledger, LedgerSnapshot
from .rider import Rider, RiderState

__all__ = [
    "BankSettings",
    "Car",
    "ControlMode",
    "Dispatcher",
    "ElevatorBank",
    "FloorFlowMatrix",
    "Geometry",
    "Ledger",
    "LedgerRates",
    "LedgerSnapshot",
    "Rider",
    "RiderState",
    "pattern_floor_flow",
    "random_floor_flow",
]
