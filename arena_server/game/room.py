"""One arena: its players, its live powerups and the room clock."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any

from arena_server.game.config import ServerConfig
from arena_server.game.powerup import EffectDescriptor, Powerup, PowerupKind
from arena_server.game.systems.powerups import step_powerups
from arena_server.game.world import WorldBounds, step_towards

logger = logging.getLogger(__name__)


@dataclass
class Player:
    playerId: str
    name: str
    pos: list[float]
    # Where the client wants to be; the room walks `pos` there at player_speed.
    target: list[float] | None = None
    lastSeq: int = -1
    effects: dict[str, EffectDescriptor] = field(default_factory=dict)

    def apply_effect(self, effect: EffectDescriptor) -> None:
        # One effect per kind; a fresh pickup restarts the timer.
        self.effects[effect.kind.value] = effect

    def active_effect(self, kind: PowerupKind, now_ms: float) -> EffectDescriptor | None:
        eff = self.effects.get(kind.value)
        return eff if eff is not None and now_ms < eff.expiresAt else None

    def expire_effects(self, now_ms: float) -> list[EffectDescriptor]:
        gone = [e for e in self.effects.values() if e.expiresAt <= now_ms]
        for e in gone:
            self.effects.pop(e.kind.value)
        return gone

    def view(self) -> dict[str, Any]:
        return {
            "playerId": self.playerId,
            "name": self.name,
            "pos": self.pos,
            "effects": [e.to_payload() for e in self.effects.values()],
        }


class Room:
    def __init__(self, room_id: str, config: ServerConfig, seed: int | None = None, epoch_ms: float | None = None):
        self.room_id = room_id
        self.config = config
        self.bounds = WorldBounds.from_size(config.world_width, config.world_height)
        self.seed = random.randint(1, 2**31 - 1) if seed is None else seed
        self.rng = random.Random(self.seed)

        # Insertion order is join order; pickup ties go to whoever joined first.
        self.players: dict[str, Player] = {}
        self.powerups: dict[str, Powerup] = {}

        # Events for everyone in the room, and events for a single player.
        self.announcements: list[dict[str, Any]] = []
        self.inbox: dict[str, list[dict[str, Any]]] = {}

        self.epoch_ms = time.time() * 1000.0 if epoch_ms is None else float(epoch_ms)
        self.t = 0.0
        self.next_powerup_at = self.epoch_ms

    @property
    def now_ms(self) -> float:
        return self.epoch_ms + self.t * 1000.0

    def announce(self, event_type: str, payload: dict[str, Any]) -> None:
        self.announcements.append({"type": event_type, "payload": payload})

    def notify(self, player_id: str, event_type: str, payload: dict[str, Any]) -> None:
        self.inbox.setdefault(player_id, []).append({"type": event_type, "payload": payload})

    def join(self, player_id: str, name: str) -> Player:
        if player_id in self.players:
            return self.players[player_id]
        if len(self.players) >= self.config.max_players_per_room:
            raise ValueError("room full")
        p = Player(playerId=player_id, name=name, pos=list(self.bounds.random_point(self.rng)))
        self.players[player_id] = p
        self.announce("join", {"playerId": player_id, "name": name})
        return p

    def leave(self, player_id: str) -> None:
        self.inbox.pop(player_id, None)
        if self.players.pop(player_id, None) is not None:
            self.announce("leave", {"playerId": player_id})

    def move(self, player_id: str, seq: int, target) -> bool:
        """Record a move target. Stale or repeated sequence numbers are dropped."""
        p = self.players.get(player_id)
        if p is None or seq <= p.lastSeq:
            return False
        p.lastSeq = seq
        p.target = self.bounds.clamp_point(target)
        return True

    def step(self, dt: float) -> None:
        self.t += dt
        now_ms = self.now_ms

        reach = self.config.player_speed * dt
        for p in self.players.values():
            if p.target is not None:
                p.pos = step_towards(p.pos, p.target, reach)

        step_powerups(self, now_ms)

        for p in self.players.values():
            for eff in p.expire_effects(now_ms):
                self.notify(p.playerId, "effect_expired", {"kind": eff.kind.value})

    def snapshot_for(self, player_id: str, announcements: list[dict[str, Any]]) -> dict[str, Any]:
        """Per-player view. Drains that player's inbox."""
        me = self.players[player_id]
        return {
            "roomId": self.room_id,
            "nowMs": self.now_ms,
            "you": {**me.view(), "lastSeq": me.lastSeq},
            "others": [p.view() for pid, p in self.players.items() if pid != player_id],
            "powerups": [pu.public_info() for pu in self.powerups.values()],
            "events": announcements + self.inbox.pop(player_id, []),
        }

    def take_announcements(self) -> list[dict[str, Any]]:
        out, self.announcements = self.announcements, []
        return out

    def summary(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "players": len(self.players),
            "maxPlayers": self.config.max_players_per_room,
            "powerups": len(self.powerups),
        }
