"""CLI for running offline LiftBank scenarios defined in JSON configs."""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from liftbank import BankSettings, ElevatorBank

logger = logging.getLogger("run_scenario")

# Absorbs float drift in the accumulated simulation clock.
_TIME_EPSILON = 1e-9


def build_bank(config: Dict) -> ElevatorBank:
    settings = BankSettings.from_dict(config.get("settings", {}))
    bank = ElevatorBank(
        settings=settings,
        random_seed=config.get("random_seed"),
        flow_pattern=config.get("flow_pattern", "pattern"),
        auto_spawn=config.get("auto_spawn", True),
    )
    matrix = config.get("flow_matrix")
    if matrix is not None and not bank.dispatcher.set_floor_flow_matrix(matrix):
        raise ValueError("flow_matrix must be square with one row per floor")
    return bank


def _apply_scheduled_events(bank: ElevatorBank, events: Iterable[Dict], step_start: float, step_end: float) -> None:
    for event in events:
        at = event.get("time", 0.0)
        if not step_start - _TIME_EPSILON <= at < step_end - _TIME_EPSILON:
            continue
        kind = event.get("type")
        if kind == "set_num_active_cars":
            bank.set_num_active_cars(event["value"])
        elif kind == "set_control_mode":
            bank.set_control_mode(event["value"])
        elif kind == "set_passenger_load":
            bank.set_passenger_load(event["value"])
        elif kind == "set_elevator_speed":
            bank.set_elevator_speed(event["value"])
        elif kind == "summon":
            bank.summon(event["car_number"], event["floor"])
        elif kind == "spawn":
            bank.dispatcher.spawn_batch(event["origin"], event.get("count", 1), event.get("destination"))
        else:
            logger.warning("Ignoring unknown event type %r", kind)


def run_bank(bank: ElevatorBank, config: Dict) -> List[Dict]:
    duration = config.get("duration", 300.0)
    dt = config.get("dt", 0.05)
    metrics_interval = config.get("metrics_interval", 10.0)
    events = config.get("events", [])
    snapshots: List[Dict] = []

    steps = int(round(duration / dt))
    next_report = metrics_interval
    for _ in range(steps):
        start = bank.current_time
        _apply_scheduled_events(bank, events, start, start + dt)
        bank.step(dt)
        if bank.current_time + _TIME_EPSILON >= next_report:
            snapshot = asdict(bank.ledger.snapshot())
            snapshot["time"] = round(bank.current_time, 6)
            snapshots.append(snapshot)
            next_report += metrics_interval
    return snapshots


def save_results(output_path: Optional[Path], data: Dict) -> None:
    if not output_path:
        return
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(data, indent=2))


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("config", type=Path, help="Path to a JSON scenario configuration file")
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional file path to write metrics snapshots as JSON",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for the simulation",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    config = json.loads(args.config.read_text())
    bank = build_bank(config)
    snapshots = run_bank(bank, config)

    final_metrics = asdict(bank.ledger.snapshot())
    results = {
        "scenario": config.get("name", args.config.stem),
        "description": config.get("description"),
        "duration": config.get("duration", 300.0),
        "final_metrics": final_metrics,
        "metrics_over_time": snapshots,
    }

    save_results(args.output, results)

    print(f"Scenario: {results['scenario']}")
    if results["description"]:
        print(results["description"])
    print(f"Duration: {results['duration']} s")
    print(bank.dispatcher.elevator_info())
    print("Final metrics:")
    for key, value in final_metrics.items():
        print(f"  {key}: {value}")
    if args.output:
        print(f"Saved metrics to {args.output}")


if __name__ == "__main__":
    main()
