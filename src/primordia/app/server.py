from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig
from ..sim.core.errors import PersistenceError, SimulationNotFoundError, WireFormatError
from ..sim.core.timeline import Timeline
from ..sim.core.world import World
from ..sim.types.snapshot import SimulationStep, step_from_wire, step_to_wire
from .persistence import SaveQueue, StepStore

logger = logging.getLogger("primordia.server")


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: AppConfig, store: Optional[StepStore] = None):
        self.config = config
        self.world = World(config.simulation)
        self.timeline = Timeline(self.world, self.world.initial_step())
        self.store = store if store is not None else StepStore()
        self.simulation_id: Optional[str] = None
        self.save_queue = SaveQueue(self._save_step, max_attempts=config.max_save_attempts)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self._save_task: asyncio.Task | None = None

    @property
    def tick(self) -> int:
        return self.timeline.current_index

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.simulation_id = None
            self.save_queue.clear()
        await self.load_step(self.world.initial_step())

    async def load_step(self, step: SimulationStep) -> None:
        """Restart the timeline from ``step`` and resend it to every client."""
        async with self._lock:
            self.timeline.reset(step)
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def advance(self) -> int:
        async with self._lock:
            self.timeline.step_forward()
            tick = self.tick
        if self.simulation_id is not None and tick % max(1, self.config.save_interval) == 0:
            self.save_queue.request(tick)
            self._schedule_save()
        return tick

    async def rewind(self) -> int:
        async with self._lock:
            self.timeline.step_backward()
            return self.tick

    def register_simulation(self, simulation_id: str) -> None:
        self.simulation_id = simulation_id
        self.save_queue.request(self.tick)
        self._schedule_save()

    async def _save_step(self, step_number: int) -> None:
        if self.simulation_id is None:
            raise PersistenceError("No simulation registered for saving")
        step = self.timeline.step_at(step_number)
        self.store.save_step(self.simulation_id, step_number, step_to_wire(step))

    def _schedule_save(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._save_task is None or self._save_task.done():
            self._save_task = asyncio.create_task(self.save_queue.drain())

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.tick_interval / self.speed_multiplier)
            if not self.running:
                continue
            await self.advance()
            await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def status(self) -> Dict[str, Any]:
        metrics = self.timeline.last_metrics
        return {
            "running": self.running,
            "tick": self.tick,
            "latestTick": self.timeline.latest_index,
            "population": len(self.timeline.current),
            "simulationId": self.simulation_id,
            "metrics": asdict(metrics) if metrics is not None else None,
            "performance": asdict(self.timeline.performance),
            "save": {
                "pending": self.save_queue.pending,
                "failed": list(self.save_queue.failed),
                "lastSavedStep": self.save_queue.last_saved_step,
                "isSaving": self.save_queue.is_saving,
            },
        }

    def _serialize_snapshot(self) -> QueuedSnapshot:
        payload = {
            "type": "snapshot",
            "tick": self.tick,
            "payload": step_to_wire(self.timeline.current),
        }
        return QueuedSnapshot(tick=self.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            # A rewound cursor supersedes snapshots queued at or past it.
            while self._snapshot_queue and self._snapshot_queue[-1].tick >= queued.tick:
                self._snapshot_queue.pop()
            self._snapshot_queue.append(queued)
        for client, last_sent in list(self._client_last_sent.items()):
            if last_sent >= queued.tick:
                self._client_last_sent[client] = queued.tick - 1
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


def _not_found(exc: SimulationNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


def _default_config() -> AppConfig:
    path = os.environ.get("PRIMORDIA_CONFIG")
    return AppConfig.from_yaml(path) if path else AppConfig()


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    config = config if config is not None else _default_config()
    logging.getLogger("primordia").setLevel(config.log_level.upper())
    app = FastAPI(title="Primordia Simulation")
    controller = SimulationController(config)
    app.state.controller = controller

    @app.get("/api/status")
    async def status() -> JSONResponse:
        return JSONResponse(controller.status())

    @app.post("/api/control/start")
    async def start_simulation() -> JSONResponse:
        await controller.start()
        return JSONResponse({"running": True})

    @app.post("/api/control/stop")
    async def stop_simulation() -> JSONResponse:
        await controller.stop()
        return JSONResponse({"running": False})

    @app.post("/api/control/reset")
    async def reset_simulation() -> JSONResponse:
        await controller.reset()
        return JSONResponse({"running": controller.running, "tick": controller.tick})

    @app.post("/api/control/step")
    async def step_simulation() -> JSONResponse:
        tick = await controller.advance()
        await controller._broadcast_snapshot()
        return JSONResponse({"tick": tick})

    @app.post("/api/control/back")
    async def step_back() -> JSONResponse:
        tick = await controller.rewind()
        await controller._broadcast_snapshot()
        return JSONResponse({"tick": tick})

    @app.post("/api/control/speed")
    async def set_speed(payload: dict) -> JSONResponse:
        speed = float(payload.get("multiplier", 1.0))
        controller.speed_multiplier = max(0.1, min(5.0, speed))
        return JSONResponse({"multiplier": controller.speed_multiplier})

    @app.get("/api/steps/current")
    async def current_step() -> JSONResponse:
        return JSONResponse({"tick": controller.tick, "step": step_to_wire(controller.timeline.current)})

    @app.post("/api/simulations")
    async def create_simulation(payload: dict) -> JSONResponse:
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise HTTPException(status_code=400, detail="Simulation name is required")
        initial = payload.get("initialStep")
        step = None
        if initial is not None:
            try:
                step = step_from_wire(initial)
            except WireFormatError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        record = controller.store.create_simulation(name, payload.get("config") or {})
        if step is not None:
            controller.store.save_step(record.id, 0, initial)
        if payload.get("attach", True):
            # Step 0 is saved from the timeline, so it must hold the posted step.
            if step is not None:
                await controller.load_step(step)
            controller.register_simulation(record.id)
        return JSONResponse(record.to_dict(), status_code=201)

    @app.get("/api/simulations")
    async def list_simulations() -> JSONResponse:
        return JSONResponse([record.to_dict() for record in controller.store.list_simulations()])

    @app.get("/api/simulations/{simulation_id}")
    async def get_simulation(simulation_id: str) -> JSONResponse:
        try:
            return JSONResponse(controller.store.get_simulation(simulation_id).to_dict())
        except SimulationNotFoundError as exc:
            raise _not_found(exc) from exc

    @app.get("/api/simulations/{simulation_id}/steps")
    async def list_steps(
        simulation_id: str, start: Optional[int] = None, end: Optional[int] = None, limit: int = 10
    ) -> JSONResponse:
        try:
            records = controller.store.list_steps(simulation_id, start, end, limit)
        except SimulationNotFoundError as exc:
            raise _not_found(exc) from exc
        return JSONResponse([record.to_dict() for record in records])

    @app.post("/api/simulations/{simulation_id}/steps")
    async def save_step(simulation_id: str, payload: dict) -> JSONResponse:
        step_number = payload.get("stepNumber")
        if not isinstance(step_number, int) or step_number < 0:
            raise HTTPException(status_code=400, detail="stepNumber must be a non-negative integer")
        step_data = payload.get("stepData")
        try:
            step_from_wire(step_data)
            record = controller.store.save_step(simulation_id, step_number, step_data)
        except WireFormatError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except SimulationNotFoundError as exc:
            raise _not_found(exc) from exc
        return JSONResponse(record.to_dict())

    @app.get("/api/simulations/{simulation_id}/steps/{step_number}")
    async def get_step(simulation_id: str, step_number: int) -> JSONResponse:
        try:
            record = controller.store.get_step(simulation_id, step_number)
        except SimulationNotFoundError as exc:
            raise _not_found(exc) from exc
        if record is None:
            raise HTTPException(status_code=404, detail=f"Step {step_number} not found")
        return JSONResponse(record.to_dict())

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        controller.clients.add(websocket)
        controller._client_last_sent[websocket] = -1
        await controller._send_pending_snapshots(websocket)
        try:
            while True:
                message = await websocket.receive_text()
                try:
                    payload = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if payload.get("type") == "ack":
                    tick = payload.get("tick")
                    if isinstance(tick, int):
                        await controller.acknowledge(tick)
        except WebSocketDisconnect:
            controller.clients.discard(websocket)
            controller._client_last_sent.pop(websocket, None)

    return app


app = create_app()

__all__ = ["app", "create_app", "SimulationController"]
