"""World bounds + 2D vector math."""

from __future__ import annotations

import random
from dataclasses import dataclass


def v2(x: float, y: float) -> list[float]:
    return [float(x), float(y)]


def v2_sub(a, b) -> list[float]:
    return [a[0] - b[0], a[1] - b[1]]


def v2_dot(a, b) -> float:
    return a[0] * b[0] + a[1] * b[1]


def dist2(a, b) -> float:
    # Squared distance; compare against a squared radius to skip the sqrt.
    d = v2_sub(a, b)
    return v2_dot(d, d)


def step_towards(pos, target, max_dist: float) -> list[float]:
    """Move from `pos` toward `target`, covering at most `max_dist`."""
    d = v2_sub(target, pos)
    n2 = v2_dot(d, d)
    if n2 <= max_dist * max_dist:
        return [float(target[0]), float(target[1])]
    s = max_dist / n2**0.5
    return [pos[0] + d[0] * s, pos[1] + d[1] * s]


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


@dataclass(frozen=True)
class WorldBounds:
    min: tuple[float, float]
    max: tuple[float, float]

    @classmethod
    def from_size(cls, width: float, height: float) -> "WorldBounds":
        return cls(min=(0.0, 0.0), max=(float(width), float(height)))

    def random_point(self, rng: random.Random | None = None) -> tuple[float, float]:
        rng = rng or random
        return (rng.uniform(self.min[0], self.max[0]), rng.uniform(self.min[1], self.max[1]))

    def contains(self, p) -> bool:
        return self.min[0] <= p[0] <= self.max[0] and self.min[1] <= p[1] <= self.max[1]

    def clamp_point(self, p) -> list[float]:
        return [clamp(float(p[0]), self.min[0], self.max[0]), clamp(float(p[1]), self.min[1], self.max[1])]
