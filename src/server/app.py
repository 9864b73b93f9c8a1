from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import asdict
from typing import AsyncIterator, List, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from groupcontrol import RequestType
from liftbank import BankSettings, ElevatorBank

logger = logging.getLogger(__name__)


class FloorCountUpdate(BaseModel):
    num_floors: int


class SettingsUpdate(BaseModel):
    num_active_cars: Optional[int] = None
    control_mode: Optional[str] = None
    elevator_speed: Optional[int] = None
    passenger_load: Optional[int] = None


class FlowMatrixUpdate(BaseModel):
    matrix: List[List[float]]


class GoToRequest(BaseModel):
    floor: int


class CarRequest(BaseModel):
    floor: int
    going_up: bool
    dest_floor: Optional[int] = None
    request_type: RequestType = RequestType.PICKUP


class SpawnBatchRequest(BaseModel):
    origin: int
    count: int = 5
    destination: Optional[int] = None


class SimulationManager:
    def __init__(
        self,
        settings: Optional[BankSettings] = None,
        random_seed: Optional[int] = None,
        tick_interval: float = 0.05,
    ) -> None:
        self.bank = ElevatorBank(settings=settings, random_seed=random_seed)
        self.tick_interval = tick_interval
        self.clients: Set[WebSocket] = set()
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())
            logger.info("Simulation loop started, tick %.3fs", self.tick_interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("Simulation loop stopped at t=%.1fs", self.bank.current_time)

    async def _run(self) -> None:
        while True:
            async with self._lock:
                self.bank.step(self.tick_interval)
                payload = self.current_state()
            await self.broadcast(payload)
            await asyncio.sleep(self.tick_interval)

    async def broadcast(self, payload: dict) -> None:
        message = json.dumps(payload)
        disconnected: Set[WebSocket] = set()
        for client in set(self.clients):
            try:
                await client.send_text(message)
            except WebSocketDisconnect:
                disconnected.add(client)
        for client in disconnected:
            await self.unregister(client)

    async def register(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.clients.add(websocket)
        await websocket.send_text(json.dumps(self.current_state()))

    async def unregister(self, websocket: WebSocket) -> None:
        self.clients.discard(websocket)
        with contextlib.suppress(RuntimeError, OSError):
            await websocket.close()

    def current_state(self) -> dict:
        state = self.bank.snapshot()
        state["ledger"] = asdict(self.bank.ledger.snapshot())
        return state

    async def set_num_floors(self, num_floors: int) -> dict:
        async with self._lock:
            if self.bank.set_num_floors(num_floors) != num_floors:
                raise ValueError(f"Invalid number of floors: {num_floors}")
            return self.current_state()

    async def update_settings(self, update: SettingsUpdate) -> dict:
        async with self._lock:
            self.bank.check_settings(
                num_active_cars=update.num_active_cars,
                control_mode=update.control_mode,
                elevator_speed=update.elevator_speed,
                passenger_load=update.passenger_load,
            )
            if update.num_active_cars is not None:
                self.bank.set_num_active_cars(update.num_active_cars)
            if update.control_mode is not None:
                self.bank.set_control_mode(update.control_mode)
            if update.elevator_speed is not None:
                self.bank.set_elevator_speed(update.elevator_speed)
            if update.passenger_load is not None:
                self.bank.set_passenger_load(update.passenger_load)
            return self.current_state()

    def flow_matrix(self) -> dict:
        return {"matrix": self.bank.dispatcher.get_floor_flow_matrix()}

    async def set_flow_matrix(self, matrix: List[List[float]]) -> dict:
        async with self._lock:
            if not self.bank.dispatcher.set_floor_flow_matrix(matrix):
                raise ValueError("Flow matrix must be square with one row per floor")
            return self.flow_matrix()

    async def summon(self, car_number: int, floor: int) -> dict:
        async with self._lock:
            if self.bank.get_car(car_number) is None:
                raise KeyError(car_number)
            accepted = self.bank.summon(car_number, floor)
            state = self.current_state()
            state["accepted"] = accepted
            return state

    async def request_car(self, request: CarRequest) -> dict:
        async with self._lock:
            accepted = self.bank.dispatcher.request_car(
                request.floor, request.going_up, request.dest_floor, request.request_type
            )
            state = self.current_state()
            state["accepted"] = accepted
            return state

    async def spawn_batch(self, origin: int, count: int, destination: Optional[int]) -> dict:
        async with self._lock:
            spawned = self.bank.dispatcher.spawn_batch(origin, count, destination)
            state = self.current_state()
            state["spawned"] = spawned
            return state


manager = SimulationManager()


@contextlib.asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await manager.start()
    try:
        yield
    finally:
        await manager.stop()


app = FastAPI(title="LiftBank Simulation API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/state")
async def get_state() -> dict:
    return manager.current_state()


@app.get("/flow-matrix")
async def get_flow_matrix() -> dict:
    return manager.flow_matrix()


@app.put("/flow-matrix")
async def put_flow_matrix(update: FlowMatrixUpdate) -> dict:
    try:
        return await manager.set_flow_matrix(update.matrix)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.post("/floors")
async def set_floors(update: FloorCountUpdate) -> dict:
    try:
        return await manager.set_num_floors(update.num_floors)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.post("/settings")
async def update_settings(update: SettingsUpdate) -> dict:
    try:
        return await manager.update_settings(update)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.post("/cars/{car_number}/goto")
async def car_goto(car_number: int, request: GoToRequest) -> dict:
    try:
        return await manager.summon(car_number, request.floor)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown car {car_number}")


@app.post("/requests")
async def request_car(request: CarRequest) -> dict:
    return await manager.request_car(request)


@app.post("/riders/spawn")
async def spawn_batch(request: SpawnBatchRequest) -> dict:
    return await manager.spawn_batch(request.origin, request.count, request.destination)


@app.websocket("/ws/stream")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await manager.register(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.unregister(websocket)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.app:app", host="0.0.0.0", port=8000, reload=False)
