from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.flock import Flock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, queue_limit: int = 64):
        self.config = config
        self.flock = Flock(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, queue_limit))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.running = False
        if self._broadcast_task is not None:
            self._broadcast_task.cancel()
            try:
                await self._broadcast_task
            except asyncio.CancelledError:
                pass
            self._broadcast_task = None

    async def reset(self) -> None:
        async with self._lock:
            self.flock.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def update_group(self, name: str, values: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            self.flock.group(name)
            self.flock.update_parameters(values, name)
            return self.flock.group(name).as_dict()

    async def set_count(self, name: str, count: int) -> int:
        async with self._lock:
            self.flock.set_agent_count(count, name)
            return self.flock.count(name)

    async def resize(self, width: float, height: float) -> None:
        async with self._lock:
            self.flock.resize(width, height)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.flock.tick(self.config.time_step)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.flock.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "groups": snapshot.groups,
                "boundary": asdict(snapshot.boundary),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

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


def create_app(app_config: AppConfig | None = None, autostart: bool = True) -> FastAPI:
    app_config = AppConfig() if app_config is None else app_config
    app = FastAPI(title="Shoal Flock Simulation")
    controller = SimulationController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)
    app.state.controller = controller
    static_dir = Path(__file__).parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")

    @app.on_event("startup")
    async def _startup() -> None:
        if autostart:
            await controller.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await controller.shutdown()

    @app.get("/")
    async def index() -> FileResponse:
        return FileResponse(static_dir / "index.html")

    @app.get("/api/status")
    async def status() -> JSONResponse:
        snapshot = controller.flock.snapshot(controller.tick)
        return JSONResponse(
            {
                "running": controller.running,
                "tick": controller.tick,
                "population": len(controller.flock.agents),
                "metrics": asdict(snapshot.metrics),
            }
        )

    @app.get("/api/groups")
    async def list_groups() -> JSONResponse:
        snapshot = controller.flock.snapshot(controller.tick)
        return JSONResponse({"groups": snapshot.groups})

    @app.post("/api/groups/{name}")
    async def update_group(name: str, payload: dict) -> JSONResponse:
        try:
            params = await controller.update_group(name, payload)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        logger.info("group %s updated: %s", name, sorted(payload))
        return JSONResponse({"name": name, "params": params})

    @app.post("/api/groups/{name}/count")
    async def set_group_count(name: str, payload: dict) -> JSONResponse:
        try:
            count = await controller.set_count(name, int(payload.get("count", 0)))
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        logger.info("group %s count set to %d", name, count)
        return JSONResponse({"name": name, "count": count})

    @app.post("/api/boundary")
    async def set_boundary(payload: dict) -> JSONResponse:
        try:
            width = float(payload["width"])
            height = float(payload["height"])
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(status_code=422, detail="width and height are required numbers") from exc
        try:
            await controller.resize(width, height)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse({"width": width, "height": height})

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
        speed = float(payload.get("multiplier", 1.0))
        controller.speed_multiplier = max(0.1, min(5.0, speed))
        return JSONResponse({"multiplier": controller.speed_multiplier})

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("client connected")
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
            logger.info("client disconnected")
            controller.clients.discard(websocket)
            controller._client_last_sent.pop(websocket, None)

    return app


def main() -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Serve the flock simulation over HTTP/WebSocket")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--broadcast-interval", type=int, default=2)
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    simulation = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    app = create_app(AppConfig(simulation=simulation, broadcast_interval=args.broadcast_interval))
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


app = create_app()

__all__ = ["SimulationController", "app", "create_app", "main"]
