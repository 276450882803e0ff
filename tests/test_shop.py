from __future__ import annotations

import pytest

from conftest import FixedRandom
from questboard_engine.models import UserProgression
from questboard_engine.rewards import calculate_rewards
from questboard_engine.shop import ITEMS, PurchaseError, purchase


def test_catalog_contents() -> None:
    assert len(ITEMS) == 12
    stat_prices = sorted(i.price for i in ITEMS.values() if i.attribute == "charm")
    assert stat_prices == [50, 150, 300]
    consumables = {i.id for i in ITEMS.values() if i.consumable}
    assert consumables == {"exp-boost", "coin-doubler", "lucky-charm"}


def test_stat_item_applies_immediately() -> None:
    p = UserProgression(username="amy", currency=120)
    result = purchase(p, "brain-book")
    assert p.intelligence == 5
    assert p.currency == 70
    assert result.effect is None
    assert result.remaining_currency == 70
    assert p.active_effects == []


def test_consumable_becomes_single_use_effect() -> None:
    p = UserProgression(username="amy", currency=250)
    result = purchase(p, "exp-boost")
    assert p.currency == 50
    assert result.effect is not None
    assert result.effect.type == "experienceMultiplier"
    assert result.effect.remaining_uses == 1
    assert p.active_effects == [result.effect]

    out = calculate_rewards(30, p.active_effects, rng=FixedRandom())
    assert out.rewards.experience == 60
    assert out.remaining_effects == []


def test_insufficient_currency_changes_nothing() -> None:
    p = UserProgression(username="amy", currency=100)
    with pytest.raises(PurchaseError) as exc:
        purchase(p, "genius-potion")
    assert exc.value.code == "insufficient_currency"
    assert p.currency == 100
    assert p.intelligence == 0


def test_unknown_item() -> None:
    p = UserProgression(username="amy", currency=1000)
    with pytest.raises(PurchaseError) as exc:
        purchase(p, "time-machine")
    assert exc.value.code == "unknown_item"
    assert isinstance(exc.value, ValueError)
