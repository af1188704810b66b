"""aiohttp entrypoint: runs the rooms and serves /ws plus a few JSON views."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from aiohttp import web

from arena_server.game.config import ServerConfig
from arena_server.game.room import Room
from arena_server.net.ws import ArenaHub

logger = logging.getLogger(__name__)


class ArenaService:
    def __init__(self, config: ServerConfig):
        self.config = config
        self.started_at = time.time()
        self.rooms: dict[str, Room] = {}
        self.hub = ArenaHub(self)
        self.ticks = 0
        self._task: asyncio.Task | None = None

    def describe(self) -> dict[str, Any]:
        return {
            "protocolVersion": self.config.protocol_version,
            "simulationHz": self.config.simulation_hz,
            "snapshotHz": self.config.snapshot_hz,
        }

    def room(self, room_id: str) -> Room | None:
        """Existing room, or a new one; None when the server is at its room cap."""
        if room_id in self.rooms:
            return self.rooms[room_id]
        if len(self.rooms) >= self.config.max_rooms:
            return None
        self.rooms[room_id] = r = Room(room_id, self.config)
        logger.info("room %s opened (seed %d)", room_id, r.seed)
        return r

    def advance(self, dt: float) -> None:
        self.ticks += 1
        for r in list(self.rooms.values()):
            try:
                r.step(dt)
            except Exception:
                # One broken room must not stall the others.
                logger.exception("room %s failed on tick %d", r.room_id, self.ticks)

    async def publish(self) -> None:
        for r in list(self.rooms.values()):
            await self.hub.publish(r)

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        dt = 1.0 / self.config.simulation_hz
        publish_every = max(1, round(self.config.simulation_hz / self.config.snapshot_hz))
        deadline = loop.time()
        while True:
            self.advance(dt)
            if self.ticks % publish_every == 0:
                await self.publish()
            deadline += dt
            lag = loop.time() - deadline
            if lag > 0.25:
                logger.warning("tick loop %.0f ms behind, skipping ahead", lag * 1000)
                deadline = loop.time()
            await asyncio.sleep(max(0.0, deadline - loop.time()))

    async def start(self) -> None:
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.hub.close_all()
        logger.info("stopped after %d ticks", self.ticks)


def create_app(config: ServerConfig) -> web.Application:
    svc = ArenaService(config)
    app = web.Application()
    app["svc"] = svc

    async def start(_: web.Application) -> None:
        await svc.start()

    async def stop(_: web.Application) -> None:
        await svc.stop()

    app.on_startup.append(start)
    app.on_cleanup.append(stop)

    async def health(_: web.Request) -> web.Response:
        return web.json_response(
            {
                "ok": True,
                "uptimeSec": time.time() - svc.started_at,
                "ticks": svc.ticks,
                "rooms": len(svc.rooms),
                **svc.describe(),
            }
        )

    async def list_rooms(_: web.Request) -> web.Response:
        return web.json_response({"rooms": [r.summary() for r in svc.rooms.values()]})

    async def room_powerups(request: web.Request) -> web.Response:
        r = svc.rooms.get(request.match_info["room_id"])
        if r is None:
            raise web.HTTPNotFound(text="no such room")
        return web.json_response({"nowMs": r.now_ms, "powerups": [pu.public_info() for pu in r.powerups.values()]})

    app.router.add_get("/health", health)
    app.router.add_get("/rooms", list_rooms)
    app.router.add_get("/rooms/{room_id}/powerups", room_powerups)
    app.router.add_get("/ws", svc.hub.handle)
    return app


def main() -> None:
    config = ServerConfig.from_env()
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    web.run_app(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
