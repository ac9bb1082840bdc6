from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.errors import ConfigurationError
from ..sim.core.world import Simulation
from ..sim.types.snapshot import (
    agent_to_dict,
    environment_to_dict,
    memory_to_dict,
    timeline_event_to_dict,
    world_to_dict,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.simulation = Simulation(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    @property
    def tick(self) -> int:
        return self.simulation.tick_count

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.simulation.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def step(self) -> None:
        async with self._lock:
            self.simulation.step()
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step)
            if not self.running:
                continue
            try:
                await self.step()
            except Exception:
                logger.warning("pausing after failed tick %d", self.tick)
                self.running = False

    async def set_time_scale(self, scale: float) -> float:
        async with self._lock:
            return self.simulation.set_time_scale(scale)

    async def set_environment(self, values: Dict[str, Any]) -> None:
        async with self._lock:
            self.simulation.set_environmental_parameters(values)

    async def set_weather(self, condition: object) -> None:
        async with self._lock:
            self.simulation.set_weather_condition(condition)

    async def trigger_catastrophe(self, kind: str, intensity: float) -> Dict[str, Any]:
        async with self._lock:
            event = self.simulation.trigger_catastrophe(kind, intensity)
        return timeline_event_to_dict(event)

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        state = self.simulation.state
        metrics = self.simulation.metrics
        payload = {
            "type": "snapshot",
            "tick": self.tick,
            "payload": {
                "tick": self.tick,
                "metrics": asdict(metrics) if metrics is not None else None,
                "time": state.time,
                "time_scale": state.time_scale,
                "day_night_cycle": state.day_night_cycle,
                "agents": [agent_to_dict(agent) for agent in state.agents],
                "statistics": asdict(state.statistics),
                "metadata": {
                    "world_size": self.config.world.size,
                    "sim_dt": self.config.time_step,
                    "seed": self.config.seed,
                    "config_version": self.config.config_version,
                },
            },
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
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            logger.info("dropping disconnected client")
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app_config = AppConfig()
app = FastAPI(title="Genesis Simulation")
controller = SimulationController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)


def _bad_request(exc: ConfigurationError) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=400)


def _not_found(agent_id: str) -> JSONResponse:
    return JSONResponse({"error": f"agent {agent_id} not found"}, status_code=404)


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/health")
async def health() -> JSONResponse:
    return JSONResponse({"status": "ok"})


@app.get("/api/status")
async def status() -> JSONResponse:
    metrics = controller.simulation.metrics
    state = controller.simulation.state
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "time": state.time,
            "time_scale": state.time_scale,
            "elapsed_years": state.elapsed_years,
            "population": len(state.agents),
            "statistics": asdict(state.statistics),
            "metrics": asdict(metrics) if metrics is not None else None,
        }
    )


@app.get("/api/simulation")
async def simulation_state() -> JSONResponse:
    async with controller._lock:
        payload = world_to_dict(controller.simulation.snapshot())
    return JSONResponse(payload)


@app.get("/api/agent/{agent_id}")
async def agent_detail(agent_id: str) -> JSONResponse:
    agent = controller.simulation.get_agent(agent_id)
    if agent is None:
        return _not_found(agent_id)
    return JSONResponse(agent_to_dict(agent))


@app.get("/api/agent/{agent_id}/memories")
async def agent_memories(agent_id: str) -> JSONResponse:
    memories = controller.simulation.agent_memories(agent_id)
    if memories is None:
        return _not_found(agent_id)
    return JSONResponse({"id": agent_id, "memories": [memory_to_dict(entry) for entry in memories]})


@app.get("/api/timeline")
async def timeline() -> JSONResponse:
    return JSONResponse({"events": [timeline_event_to_dict(event) for event in controller.simulation.timeline]})


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    try:
        scale = await controller.set_time_scale(float(payload.get("time_scale", 1.0)))
    except (TypeError, ValueError) as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return JSONResponse({"time_scale": scale})


@app.post("/api/environment")
async def set_environment(payload: dict) -> JSONResponse:
    try:
        await controller.set_environment(payload)
    except ConfigurationError as exc:
        return _bad_request(exc)
    return JSONResponse(environment_to_dict(controller.simulation.state.environment))


@app.post("/api/weather")
async def set_weather(payload: dict) -> JSONResponse:
    try:
        await controller.set_weather(payload.get("condition"))
    except ConfigurationError as exc:
        return _bad_request(exc)
    return JSONResponse({"weather_condition": controller.simulation.state.environment.weather_condition.value})


@app.post("/api/catastrophe")
async def catastrophe(payload: dict) -> JSONResponse:
    kind = str(payload.get("type", "natural"))
    try:
        event = await controller.trigger_catastrophe(kind, payload.get("intensity", 0.5))
    except ConfigurationError as exc:
        return _bad_request(exc)
    return JSONResponse(event)


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


__all__ = ["app", "controller"]
