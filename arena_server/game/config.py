"""Tickrates, caps, world size, powerup spawning."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    protocol_version: int = 1

    host: str = "0.0.0.0"
    port: int = 8765
    log_level: str = "INFO"

    # Simulation runs at simulation_hz; clients get a snapshot at snapshot_hz.
    simulation_hz: int = 60
    snapshot_hz: int = 20

    max_rooms: int = 20
    max_players_per_room: int = 16
    default_room_id: str = "arena"

    # World is [0, width] x [0, height], in the same units as the pickup radius.
    world_width: float = 2500.0
    world_height: float = 2500.0
    player_speed: float = 300.0  # units/sec

    powerup_spawn_interval_ms: float = 5000.0
    max_powerups: int = 10

    @staticmethod
    def _env(name: str, cast, default):
        raw = os.environ.get(name)
        if not raw:
            return default
        try:
            return cast(raw)
        except ValueError:
            logger.warning("ignoring %s=%r, keeping %r", name, raw, default)
            return default

    @classmethod
    def from_env(cls) -> "ServerConfig":
        base = cls()
        return cls(
            host=os.environ.get("ARENA_HOST", base.host),
            port=cls._env("ARENA_PORT", int, base.port),
            log_level=os.environ.get("ARENA_LOG_LEVEL", base.log_level).upper(),
            world_width=cls._env("ARENA_WORLD_WIDTH", float, base.world_width),
            world_height=cls._env("ARENA_WORLD_HEIGHT", float, base.world_height),
            player_speed=cls._env("ARENA_PLAYER_SPEED", float, base.player_speed),
            powerup_spawn_interval_ms=cls._env("ARENA_POWERUP_INTERVAL_MS", float, base.powerup_spawn_interval_ms),
            max_powerups=cls._env("ARENA_MAX_POWERUPS", int, base.max_powerups),
        )
