from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Sequence

from questboard_engine.models import ATTRIBUTES, Effect, RewardBundle


ATTRIBUTE_BONUS_MAX = 3
LUCKY_BONUS_MAX = 1


@dataclass(frozen=True)
class RewardOutcome:
    rewards: RewardBundle
    remaining_effects: list[Effect]


def base_rewards(score: int, *, rng: random.Random) -> dict[str, float]:
    score = int(score)
    out: dict[str, float] = {
        "experience": float(score),
        "currency": float(score // 2),
    }
    for attr in ATTRIBUTES:
        out[attr] = float(rng.randint(0, ATTRIBUTE_BONUS_MAX))
    return out


def _apply_effect(values: dict[str, float], effect: Effect, *, rng: random.Random) -> None:
    if effect.type == "experienceMultiplier":
        values["experience"] *= float(effect.value)
    elif effect.type == "currencyMultiplier":
        values["currency"] *= float(effect.value)
    elif effect.type == "luckyBonus":
        for attr in ATTRIBUTES:
            values[attr] += rng.randint(0, LUCKY_BONUS_MAX)
    elif effect.type == "attributeBoost":
        assert effect.attribute is not None
        values[effect.attribute] += float(effect.value)
    else:  # pragma: no cover - EffectType is closed
        raise ValueError(f"unknown effect type: {effect.type}")


def calculate_rewards(
    score: int,
    effects: Sequence[Effect] = (),
    *,
    rng: random.Random,
) -> RewardOutcome:
    """
    Rewards for one finished session.

    Effects are applied in list order, then every effect is consumed once;
    effects whose counter ran out are dropped from `remaining_effects`.
    The input effects are not mutated.
    """
    values = base_rewards(score, rng=rng)

    remaining: list[Effect] = []
    for effect in effects:
        if effect.active:
            _apply_effect(values, effect, rng=rng)
        consumed = effect.consume()
        if consumed.active:
            remaining.append(consumed)

    rewards = RewardBundle(
        experience=max(0, math.floor(values["experience"])),
        currency=max(0, math.floor(values["currency"])),
        intelligence=max(0, math.floor(values["intelligence"])),
        strength=max(0, math.floor(values["strength"])),
        charm=max(0, math.floor(values["charm"])),
    )
    return RewardOutcome(rewards=rewards, remaining_effects=remaining)
