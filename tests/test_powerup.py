import random
from dataclasses import FrozenInstanceError, dataclass, field
from typing import List, Tuple

import pytest

from arena_server.game.powerup import (
    MAGNITUDE_RANGES,
    MAX_DURATION_MS,
    MIN_DURATION_MS,
    PICKUP_RADIUS_SQ,
    EffectDescriptor,
    MagnitudeRange,
    Powerup,
    PowerupKind,
    sample_magnitude,
)
from arena_server.game.world import WorldBounds


@dataclass
class FakePlayer:
    pos: Tuple[float, float]
    applied: List[EffectDescriptor] = field(default_factory=list)

    def apply_effect(self, effect: EffectDescriptor) -> None:
        self.applied.append(effect)


def make_powerup(
    pos: Tuple[float, float] = (100.0, 100.0),
    kind: PowerupKind = PowerupKind.HEALTHPACK,
    magnitude: float = 3,
    duration: float = 10000.0,
) -> Powerup:
    return Powerup(powerupId="pu1", pos=pos, kind=kind, magnitude=magnitude, duration=duration)


# --- generation ---


def test_generated_powerups_stay_in_ranges() -> None:
    rng = random.Random(1234)
    bounds = WorldBounds.from_size(800, 600)
    seen = set()
    for _ in range(4000):
        pu = Powerup.generate(bounds, rng=rng)
        r = MAGNITUDE_RANGES[pu.kind]
        seen.add(pu.kind)
        assert pu.alive
        assert r.lo <= pu.magnitude <= r.hi
        assert MIN_DURATION_MS <= pu.duration <= MAX_DURATION_MS
        assert bounds.contains(pu.pos)
        if pu.kind in (PowerupKind.HEALTHPACK, PowerupKind.SHOTGUN):
            assert isinstance(pu.magnitude, int)
        else:
            assert isinstance(pu.magnitude, float)
    assert seen == set(PowerupKind)


def test_integer_magnitudes_hit_both_ends() -> None:
    rng = random.Random(7)
    heals = {sample_magnitude(PowerupKind.HEALTHPACK, rng) for _ in range(500)}
    shells = {sample_magnitude(PowerupKind.SHOTGUN, rng) for _ in range(500)}
    assert heals == {1, 2, 3, 4}
    assert shells == {1, 2}


def test_unknown_kind_fails_fast() -> None:
    with pytest.raises(ValueError):
        sample_magnitude("jetpack", random.Random(0))  # type: ignore[arg-type]


def test_magnitude_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        MAGNITUDE_RANGES[PowerupKind.SHOTGUN] = MagnitudeRange(1, 9, integral=True)  # type: ignore[index]


def test_generate_uses_given_id() -> None:
    pu = Powerup.generate(WorldBounds.from_size(10, 10), rng=random.Random(0), powerup_id="abc")
    assert pu.powerupId == "abc"


# --- pickup check ---


def test_player_within_radius_can_collect() -> None:
    pu = make_powerup()
    assert pu.is_collectable_by(FakePlayer(pos=(110.0, 100.0)))
    assert pu.is_collectable_by(FakePlayer(pos=(129.0, 100.0)))


def test_player_outside_radius_cannot_collect() -> None:
    pu = make_powerup()
    assert not pu.is_collectable_by(FakePlayer(pos=(140.0, 100.0)))


def test_exact_radius_is_not_collectable() -> None:
    pu = make_powerup()
    assert PICKUP_RADIUS_SQ == 900.0
    assert not pu.is_collectable_by(FakePlayer(pos=(130.0, 100.0)))
    # 18^2 + 24^2 == 900
    assert not pu.is_collectable_by(FakePlayer(pos=(118.0, 124.0)))
    assert pu.is_collectable_by(FakePlayer(pos=(117.0, 124.0)))


# --- effect descriptor ---


def test_effect_descriptor_adds_duration() -> None:
    pu = make_powerup()
    eff = pu.build_effect_descriptor(1_000.0)
    assert eff == EffectDescriptor(kind=PowerupKind.HEALTHPACK, magnitude=3, expiresAt=11_000.0)
    assert pu.build_effect_descriptor(1_000.0) == eff
    assert pu.alive


def test_effect_payload_is_plain_json() -> None:
    eff = make_powerup(kind=PowerupKind.SPEEDBOOST, magnitude=1.5).build_effect_descriptor(0.0)
    assert eff.to_payload() == {"kind": "speedboost", "magnitude": 1.5, "expiresAt": 10000.0}


# --- update ---


def test_update_with_no_players_is_noop() -> None:
    pu = make_powerup()
    assert pu.update([], 0.0) is None
    assert pu.alive


def test_update_with_no_eligible_player_is_noop() -> None:
    pu = make_powerup()
    far = FakePlayer(pos=(500.0, 500.0))
    pu.update([far], 0.0)
    assert pu.alive
    assert far.applied == []


def test_update_gives_effect_to_eligible_player() -> None:
    pu = make_powerup()
    p = FakePlayer(pos=(110.0, 100.0))
    collector = pu.update([p], 2_000.0)
    assert collector is p
    assert not pu.alive
    assert p.applied == [EffectDescriptor(kind=PowerupKind.HEALTHPACK, magnitude=3, expiresAt=12_000.0)]


def test_first_eligible_player_wins_over_closer_one() -> None:
    pu = make_powerup()
    far = FakePlayer(pos=(400.0, 400.0))
    first = FakePlayer(pos=(125.0, 100.0))
    closer = FakePlayer(pos=(100.0, 100.0))
    pu.update([far, first, closer], 0.0)
    assert len(first.applied) == 1
    assert far.applied == []
    assert closer.applied == []


def test_update_after_collection_does_not_apply_again() -> None:
    pu = make_powerup()
    p = FakePlayer(pos=(100.0, 100.0))
    pu.update([p], 0.0)
    assert pu.update([p], 50.0) is None
    assert len(p.applied) == 1
    assert not pu.alive


# --- fixed fields ---


@pytest.mark.parametrize(
    "name, value",
    [("pos", (0.0, 0.0)), ("duration", 1.0), ("kind", PowerupKind.SHOTGUN), ("magnitude", 99), ("powerupId", "x")],
)
def test_creation_fields_cannot_be_reassigned(name: str, value) -> None:
    pu = make_powerup()
    with pytest.raises(FrozenInstanceError):
        setattr(pu, name, value)
    assert pu == make_powerup()


def test_collected_powerup_stays_collected() -> None:
    pu = make_powerup()
    pu.update([FakePlayer(pos=(100.0, 100.0))], 0.0)
    with pytest.raises(FrozenInstanceError):
        pu.alive = True
    assert not pu.alive
