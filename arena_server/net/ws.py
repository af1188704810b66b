"""WebSocket sessions: joins, moves, and per-room snapshot fan-out."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field

from aiohttp import WSMsgType, web

from arena_server.game import protocol

logger = logging.getLogger(__name__)


@dataclass
class Session:
    ws: web.WebSocketResponse
    player_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    room_id: str | None = None


class ArenaHub:
    def __init__(self, svc):
        self.svc = svc
        self.sessions: dict[str, Session] = {}
        self._handlers = {
            "join": self._on_join,
            "move": self._on_move,
            "leave": self._on_leave,
            "ping": self._on_ping,
        }

    async def handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=10.0, max_msg_size=64 * 1024)
        await ws.prepare(request)
        session = Session(ws=ws)
        self.sessions[session.player_id] = session
        logger.info("session %s opened from %s", session.player_id, request.remote)

        try:
            await self._send(session, "hello", self.svc.describe())
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self._receive(session, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning("session %s errored: %s", session.player_id, ws.exception())
        finally:
            await self.drop(session)
        return ws

    async def _send(self, session: Session, msg_type: str, data: dict) -> bool:
        """False when the peer is already gone; the caller decides whether to drop it."""
        if session.ws.closed:
            return False
        try:
            await session.ws.send_str(protocol.encode(msg_type, data))
        except ConnectionResetError as e:
            logger.info("session %s lost while sending %s: %s", session.player_id, msg_type, e)
            return False
        return True

    async def _receive(self, session: Session, text: str) -> None:
        try:
            msg_type, data = protocol.decode(text)
            await self._handlers[msg_type](session, data)
        except protocol.ProtocolError as e:
            logger.warning("session %s sent a bad message: %s", session.player_id, e)
            await self._send(session, "error", {"message": str(e)})

    async def _on_join(self, session: Session, data: dict) -> None:
        req = protocol.JoinRequest.parse(data)
        if session.room_id is not None:
            raise protocol.ProtocolError("already joined")
        room = self.svc.room(req.roomId or self.svc.config.default_room_id)
        if room is None:
            raise protocol.ProtocolError("server at room capacity")
        try:
            room.join(session.player_id, req.name)
        except ValueError as e:
            raise protocol.ProtocolError(str(e)) from None
        session.room_id = room.room_id
        logger.info("%s joined room %s as %r", session.player_id, room.room_id, req.name)
        await self._send(
            session,
            "welcome",
            {
                "playerId": session.player_id,
                "roomId": room.room_id,
                "world": {"min": list(room.bounds.min), "max": list(room.bounds.max)},
                "playerSpeed": self.svc.config.player_speed,
                "powerups": [pu.public_info() for pu in room.powerups.values()],
            },
        )

    async def _on_move(self, session: Session, data: dict) -> None:
        req = protocol.MoveRequest.parse(data)
        room = self.svc.rooms.get(session.room_id) if session.room_id else None
        if room is None:
            raise protocol.ProtocolError("not joined")
        room.move(session.player_id, req.seq, req.target)

    async def _on_leave(self, session: Session, data: dict) -> None:
        await self.drop(session)

    async def _on_ping(self, session: Session, data: dict) -> None:
        await self._send(session, "pong", {"t": data.get("t"), "serverTime": time.time()})

    async def drop(self, session: Session) -> None:
        if self.sessions.pop(session.player_id, None) is None:
            return
        room = self.svc.rooms.get(session.room_id) if session.room_id else None
        if room is not None:
            room.leave(session.player_id)
        logger.info("session %s closed", session.player_id)
        await session.ws.close()

    async def publish(self, room) -> None:
        """Send every session in `room` its snapshot; peers that have gone away are dropped."""
        announcements = room.take_announcements()
        members = [s for s in self.sessions.values() if s.room_id == room.room_id]
        for session in members:
            if session.player_id not in room.players:
                continue
            snap = room.snapshot_for(session.player_id, announcements)
            if not await self._send(session, "snapshot", snap):
                await self.drop(session)

    async def close_all(self) -> None:
        for session in list(self.sessions.values()):
            await self.drop(session)
