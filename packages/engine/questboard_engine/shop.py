from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from questboard_engine.models import Attribute, Effect, EffectType, UserProgression


ShopCategory = Literal["intelligence", "strength", "charm", "special"]
Rarity = Literal["common", "rare", "epic"]


class PurchaseError(ValueError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class ShopItem:
    id: str
    name: str
    description: str
    category: ShopCategory
    price: int
    rarity: Rarity = "common"
    attribute: Attribute | None = None
    attribute_bonus: int = 0
    effect_type: EffectType | None = None
    effect_value: float = 1.0
    consumable: bool = False

    def to_wire(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "rarity": self.rarity,
            "consumable": self.consumable,
        }


@dataclass(frozen=True)
class PurchaseResult:
    item: ShopItem
    effect: Effect | None
    remaining_currency: int


def _stat(item_id: str, name: str, attr: Attribute, bonus: int, price: int, rarity: Rarity) -> ShopItem:
    return ShopItem(
        id=item_id,
        name=name,
        description=f"Permanently raises {attr} by {bonus}.",
        category=attr,
        price=price,
        rarity=rarity,
        attribute=attr,
        attribute_bonus=bonus,
    )


# NOTE: IDs are stable; stored effects reference them.
ITEMS: dict[str, ShopItem] = {
    item.id: item
    for item in (
        _stat("brain-book", "Book of Wisdom", "intelligence", 5, 50, "common"),
        _stat("ai-chip", "AI Chip", "intelligence", 15, 150, "rare"),
        _stat("genius-potion", "Genius Potion", "intelligence", 30, 300, "epic"),
        _stat("training-dumbbell", "Training Dumbbell", "strength", 5, 50, "common"),
        _stat("power-glove", "Power Glove", "strength", 15, 150, "rare"),
        _stat("hercules-belt", "Belt of Hercules", "strength", 30, 300, "epic"),
        _stat("gentleman-hat", "Gentleman's Hat", "charm", 5, 50, "common"),
        _stat("princess-dress", "Princess Gown", "charm", 15, 150, "rare"),
        _stat("royal-crown", "Royal Crown", "charm", 30, 300, "epic"),
        ShopItem(
            id="exp-boost",
            name="Double XP Card",
            description="Doubles experience earned in the next course.",
            category="special",
            price=200,
            rarity="rare",
            effect_type="experienceMultiplier",
            effect_value=2.0,
            consumable=True,
        ),
        ShopItem(
            id="coin-doubler",
            name="Coin Doubler",
            description="Doubles coins earned in the next course.",
            category="special",
            price=200,
            rarity="rare",
            effect_type="currencyMultiplier",
            effect_value=2.0,
            consumable=True,
        ),
        ShopItem(
            id="lucky-charm",
            name="Lucky Charm",
            description="Extra random attribute rewards in the next course.",
            category="special",
            price=100,
            effect_type="luckyBonus",
            consumable=True,
        ),
    )
}


def purchase(progression: UserProgression, item_id: str) -> PurchaseResult:
    item = ITEMS.get(str(item_id))
    if item is None:
        raise PurchaseError("unknown_item", f"unknown item: {item_id}")
    if int(progression.currency) < item.price:
        raise PurchaseError("insufficient_currency", "insufficient coins")

    progression.currency = int(progression.currency) - item.price

    effect: Effect | None = None
    if item.attribute is not None:
        attr = item.attribute
        setattr(progression, attr, int(getattr(progression, attr)) + item.attribute_bonus)
    if item.effect_type is not None:
        effect = Effect(
            type=item.effect_type,
            value=item.effect_value,
            active=True,
            remaining_uses=1,
            item_id=item.id,
            item_name=item.name,
        )
        progression.active_effects = [*progression.active_effects, effect]

    return PurchaseResult(
        item=item, effect=effect, remaining_currency=int(progression.currency)
    )
