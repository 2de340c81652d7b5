"""Static item catalog used for shop pricing.

buy_price is what the game charges a player for the item at list price;
sell_price is what the game pays a player for it.  Player-run shops derive
their own prices from these (see shop_service).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ItemCategory(str, enum.Enum):
    weapon = "Weapon"
    armor = "Armor"
    shield = "Shield"
    consumable = "Consumable"
    material = "Material"


@dataclass(frozen=True)
class ItemDefinition:
    item_id: str
    name: str
    category: ItemCategory
    buy_price: int = 0
    sell_price: int = 0


_ITEMS: list[ItemDefinition] = [
    # Weapons
    ItemDefinition("bronze_sword", "Bronze Sword", ItemCategory.weapon, buy_price=200, sell_price=100),
    ItemDefinition("iron_sword", "Iron Sword", ItemCategory.weapon, buy_price=500, sell_price=250),
    ItemDefinition("cutlass", "Cutlass", ItemCategory.weapon, buy_price=800, sell_price=400),
    ItemDefinition("flintlock", "Flintlock Pistol", ItemCategory.weapon, buy_price=1200, sell_price=600),
    # Armor and shields
    ItemDefinition("leather_armor", "Leather Armor", ItemCategory.armor, buy_price=300, sell_price=150),
    ItemDefinition("chain_mail", "Chain Mail", ItemCategory.armor, buy_price=900, sell_price=450),
    ItemDefinition("wooden_shield", "Wooden Shield", ItemCategory.shield, buy_price=150, sell_price=75),
    ItemDefinition("iron_shield", "Iron Shield", ItemCategory.shield, buy_price=600, sell_price=300),
    # Consumables
    ItemDefinition("potion", "Potion", ItemCategory.consumable, buy_price=50, sell_price=20),
    ItemDefinition("hi_potion", "Hi-Potion", ItemCategory.consumable, buy_price=150, sell_price=60),
    ItemDefinition("ration", "Ration", ItemCategory.consumable, buy_price=30, sell_price=10),
    # Sold by nobody; only the game pays for it
    ItemDefinition("driftwood", "Driftwood", ItemCategory.material, buy_price=0, sell_price=5),
]

ITEMS: dict[str, ItemDefinition] = {item.item_id: item for item in _ITEMS}


def get_item(item_id: str) -> ItemDefinition | None:
    return ITEMS.get(item_id)
