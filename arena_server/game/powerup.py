"""Powerup entity: generation, pickup check, applied effect."""

from __future__ import annotations

import random
import uuid
from dataclasses import FrozenInstanceError, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Protocol, Sequence, TypeVar

from arena_server.game.world import dist2


class PowerupKind(str, Enum):
    HEALTHPACK = "healthpack"
    SHOTGUN = "shotgun"
    RAPIDFIRE = "rapidfire"
    SPEEDBOOST = "speedboost"


@dataclass(frozen=True)
class MagnitudeRange:
    lo: float
    hi: float
    integral: bool = False  # True: uniform int, both ends inclusive


# Pickup distance is in world units (pixels).
PICKUP_RADIUS = 30.0
PICKUP_RADIUS_SQ = PICKUP_RADIUS * PICKUP_RADIUS

MIN_DURATION_MS = 5000.0
MAX_DURATION_MS = 20000.0

POWERUP_KINDS: tuple[PowerupKind, ...] = tuple(PowerupKind)

MAGNITUDE_RANGES = MappingProxyType(
    {
        PowerupKind.HEALTHPACK: MagnitudeRange(1, 4, integral=True),  # heal
        PowerupKind.SHOTGUN: MagnitudeRange(1, 2, integral=True),  # bonus shells
        PowerupKind.RAPIDFIRE: MagnitudeRange(2.0, 3.5),  # fire rate multiplier
        PowerupKind.SPEEDBOOST: MagnitudeRange(1.2, 1.8),  # speed multiplier
    }
)


def _sample_int(rng, r: MagnitudeRange) -> int:
    return rng.randint(int(r.lo), int(r.hi))


def _sample_real(rng, r: MagnitudeRange) -> float:
    return rng.uniform(float(r.lo), float(r.hi))


_SAMPLERS: dict[bool, Callable[[Any, MagnitudeRange], float]] = {
    True: _sample_int,
    False: _sample_real,
}


def sample_magnitude(kind: PowerupKind, rng: random.Random | None = None) -> float:
    rng = rng or random
    r = MAGNITUDE_RANGES.get(kind)
    if r is None:
        raise ValueError(f"unknown powerup kind: {kind!r}")
    return _SAMPLERS[r.integral](rng, r)


@dataclass(frozen=True)
class EffectDescriptor:
    """What a player receives on pickup. Expiry is enforced by the player side."""

    kind: PowerupKind
    magnitude: float
    expiresAt: float

    def to_payload(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "magnitude": self.magnitude, "expiresAt": self.expiresAt}


class Collector(Protocol):
    """Anything with a position that can take an effect."""

    pos: Sequence[float]

    def apply_effect(self, effect: EffectDescriptor) -> None: ...


C = TypeVar("C", bound=Collector)

_FIXED_FIELDS = frozenset({"powerupId", "pos", "kind", "magnitude", "duration"})


@dataclass
class Powerup:
    """Everything but `alive` is fixed at creation; `alive` only goes True -> False."""

    powerupId: str
    pos: tuple[float, float]
    kind: PowerupKind
    magnitude: float
    duration: float  # ms
    alive: bool = field(default=True)

    @classmethod
    def generate(cls, bounds, rng: random.Random | None = None, powerup_id: str | None = None) -> "Powerup":
        """Random powerup somewhere inside `bounds`.

        `bounds` only needs `random_point(rng) -> (x, y)`.
        """
        rng = rng or random
        x, y = bounds.random_point(rng)
        kind = rng.choice(POWERUP_KINDS)
        magnitude = sample_magnitude(kind, rng)
        duration = rng.uniform(MIN_DURATION_MS, MAX_DURATION_MS)
        return cls(
            powerupId=powerup_id or uuid.uuid4().hex[:10],
            pos=(float(x), float(y)),
            kind=kind,
            magnitude=magnitude,
            duration=duration,
        )

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _FIXED_FIELDS and name in self.__dict__:
            raise FrozenInstanceError(f"cannot assign to field {name!r}")
        if name == "alive" and value and self.__dict__.get("alive") is False:
            raise FrozenInstanceError("a collected powerup cannot come back")
        super().__setattr__(name, value)

    def is_collectable_by(self, player: Collector) -> bool:
        return dist2(self.pos, player.pos) < PICKUP_RADIUS_SQ

    def build_effect_descriptor(self, now_ms: float) -> EffectDescriptor:
        return EffectDescriptor(kind=self.kind, magnitude=self.magnitude, expiresAt=now_ms + self.duration)

    def update(self, players: Iterable[C], now_ms: float) -> C | None:
        """Give the effect to the first eligible player, in the given order.

        Returns the collecting player, or None. Once collected this is a no-op.
        """
        if not self.alive:
            return None
        for p in players:
            if self.is_collectable_by(p):
                p.apply_effect(self.build_effect_descriptor(now_ms))
                self.alive = False
                return p
        return None

    def public_info(self) -> dict[str, Any]:
        return {
            "powerupId": self.powerupId,
            "kind": self.kind.value,
            "pos": list(self.pos),
            "magnitude": self.magnitude,
            "duration": self.duration,
        }
