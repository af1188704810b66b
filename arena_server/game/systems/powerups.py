"""Spawn cadence, pickup checks, despawn."""

from __future__ import annotations

import logging

from arena_server.game.powerup import Powerup

logger = logging.getLogger(__name__)


def _spawn_due(room, now_ms: float) -> None:
    if now_ms < room.next_powerup_at:
        return
    room.next_powerup_at = now_ms + room.config.powerup_spawn_interval_ms
    if len(room.powerups) >= room.config.max_powerups:
        return
    pu = Powerup.generate(room.bounds, rng=room.rng)
    room.powerups[pu.powerupId] = pu
    room.announce("powerup_spawn", pu.public_info())
    logger.debug("room %s spawned %s %s at %s", room.room_id, pu.kind.value, pu.powerupId, pu.pos)


def step_powerups(room, now_ms: float) -> None:
    _spawn_due(room, now_ms)

    roster = list(room.players.values())
    if not roster:
        return
    for pu in list(room.powerups.values()):
        collector = pu.update(roster, now_ms)
        if collector is None:
            continue
        del room.powerups[pu.powerupId]
        room.announce("powerup_despawn", {"powerupId": pu.powerupId, "kind": pu.kind.value, "playerId": collector.playerId})
        room.notify(collector.playerId, "powerup", collector.effects[pu.kind.value].to_payload())
        logger.debug("room %s: %s collected %s", room.room_id, collector.playerId, pu.powerupId)
