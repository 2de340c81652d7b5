"""Player-run shops and hot springs on islands.

Prices, from the shop's point of view:
  buy price  (shop pays a seller)   = item override buy_price,
                                      else floor(catalog sell_price * buy_multiplier)
  sell price (buyer pays the shop)  = item override sell_price,
                                      else floor((catalog buy_price or sell_price) * sell_multiplier)
Multipliers default to 0.7 / 1.2, so a shop buys low and sells high.

Proceeds of a purchase go to the island owner minus the nation's sales tax,
which is added to the treasury of the island's nation in the same commit as
the stock change.  Currency moves are made first through CompensatingTransfer
and reversed if the island write does not go through.
"""

import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.data.buildings import HOT_SPRING_BUILDING_ID, SHOP_BUILDING_CATEGORIES
from app.data.items import ItemDefinition, get_item
from app.models.island import Island
from app.services import nation_service, player_service, registry_service
from app.services.building_slot import active_building, active_building_id
from app.services.economy import CompensatingTransfer, EconomyService, ensure_affordable
from app.services.errors import (
    NationMismatchError,
    NotOwnerError,
    PreconditionError,
    ValidationError,
)
from app.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)

DEFAULT_BUY_MULTIPLIER = 0.7
DEFAULT_SELL_MULTIPLIER = 1.2
DEFAULT_HOT_SPRING_PRICE = 200


def _as_number(value, default):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def get_shop_pricing(island: Island) -> dict:
    pricing = island.shop_pricing or {}
    item_prices = pricing.get("item_prices")
    return {
        "buy_multiplier": _as_number(pricing.get("buy_multiplier"), DEFAULT_BUY_MULTIPLIER),
        "sell_multiplier": _as_number(pricing.get("sell_multiplier"), DEFAULT_SELL_MULTIPLIER),
        "item_prices": dict(item_prices) if isinstance(item_prices, dict) else {},
    }


def _override(pricing: dict, item_id: str, key: str) -> int | None:
    value = _as_number((pricing["item_prices"].get(item_id) or {}).get(key), None)
    return None if value is None else int(value)


def shop_buy_price(island: Island, item_id: str, item: ItemDefinition | None = None) -> int:
    """What the shop pays a player for one ``item_id``."""
    pricing = get_shop_pricing(island)
    fixed = _override(pricing, item_id, "buy_price")
    if fixed is not None:
        return fixed
    base = item.sell_price if item else 0
    return math.floor(base * pricing["buy_multiplier"])


def shop_sell_price(island: Island, item_id: str, item: ItemDefinition | None = None) -> int:
    """What a player pays the shop for one ``item_id``."""
    pricing = get_shop_pricing(island)
    fixed = _override(pricing, item_id, "sell_price")
    if fixed is not None:
        return fixed
    base = (item.buy_price or item.sell_price) if item else 0
    return math.floor(base * pricing["sell_multiplier"])


def _shop_categories(island: Island) -> tuple[str, ...]:
    return SHOP_BUILDING_CATEGORIES.get(active_building_id(island.buildings) or "", ())


def _require_shop(island: Island) -> tuple[str, ...]:
    categories = _shop_categories(island)
    if not categories:
        raise ValidationError("ShopNotAvailable", "There is no shop on this island")
    return categories


def _check_category(categories: tuple[str, ...], item: ItemDefinition | None) -> None:
    # Items missing from the catalog carry no category and are not restricted
    if item is not None and item.category.value not in categories:
        raise ValidationError(
            "InvalidItemCategory", f"This shop does not trade {item.category.value} items"
        )


def _require_owner(island: Island, actor_id: str) -> None:
    if not island.owner_id or island.owner_id != actor_id:
        raise NotOwnerError(message="You do not own this island")


def get_shop_state(island: Island) -> dict:
    pricing = get_shop_pricing(island)
    inventory = []
    for entry in island.shop_inventory or []:
        item_id = entry.get("item_id")
        item = get_item(item_id)
        inventory.append({
            "item_id": item_id,
            "count": int(entry.get("count") or 0),
            "name": item.name if item else item_id,
            "category": item.category.value if item else None,
            "shop_buy_price": shop_buy_price(island, item_id, item),
            "shop_sell_price": shop_sell_price(island, item_id, item),
        })
    return {
        "island_id": island.id,
        "map_id": island.map_id,
        "owner_id": island.owner_id,
        "building_id": active_building_id(island.buildings),
        "categories": list(_shop_categories(island)),
        "pricing": pricing,
        "inventory": inventory,
    }


async def set_shop_pricing(
    db: AsyncSession,
    map_id: str,
    island_id: str,
    actor_id: str,
    buy_multiplier: float,
    sell_multiplier: float,
) -> dict:
    buy_value = _as_number(buy_multiplier, None)
    sell_value = _as_number(sell_multiplier, None)
    if buy_value is None or sell_value is None or buy_value < 0 or sell_value < 0:
        raise ValidationError("InvalidPricing", "Multipliers must be non-negative numbers")

    async def _apply() -> dict:
        island = await registry_service.require_island(db, map_id, island_id)
        _require_owner(island, actor_id)
        pricing = get_shop_pricing(island)
        pricing.update(buy_multiplier=buy_value, sell_multiplier=sell_value)
        island.shop_pricing = pricing
        await db.flush()
        return pricing

    return await run_in_transaction(db, _apply, name="set_shop_pricing")


async def set_shop_item_price(
    db: AsyncSession,
    map_id: str,
    island_id: str,
    actor_id: str,
    item_id: str,
    buy_price: int,
    sell_price: int,
) -> dict:
    buy_value = _as_number(buy_price, None)
    sell_value = _as_number(sell_price, None)
    if not item_id or buy_value is None or sell_value is None or buy_value < 0 or sell_value < 0:
        raise ValidationError("InvalidPrice", "Item prices must be non-negative numbers")

    async def _apply() -> dict:
        island = await registry_service.require_island(db, map_id, island_id)
        _require_owner(island, actor_id)
        pricing = get_shop_pricing(island)
        pricing["item_prices"][item_id] = {"buy_price": int(buy_value), "sell_price": int(sell_value)}
        island.shop_pricing = pricing
        await db.flush()
        return pricing

    return await run_in_transaction(db, _apply, name="set_shop_item_price")


def _add_stock(inventory: list[dict], item_id: str, delta: int) -> list[dict]:
    """New inventory list with ``delta`` applied to ``item_id``; empty entries are dropped."""
    result = []
    found = False
    for entry in inventory:
        if entry.get("item_id") == item_id:
            found = True
            count = int(entry.get("count") or 0) + delta
            if count > 0:
                result.append({**entry, "count": count})
        else:
            result.append(dict(entry))
    if not found and delta > 0:
        result.append({"item_id": item_id, "count": delta})
    return result


def _stock_of(island: Island, item_id: str) -> int:
    for entry in island.shop_inventory or []:
        if entry.get("item_id") == item_id:
            return int(entry.get("count") or 0)
    return 0


async def sell_to_shop(
    db: AsyncSession,
    economy: EconomyService,
    map_id: str,
    island_id: str,
    actor_id: str,
    item_id: str,
) -> dict:
    """A player sells one ``item_id`` to the island's shop."""
    currency = settings.virtual_currency_code
    island = await registry_service.require_island(db, map_id, island_id)
    categories = _require_shop(island)
    item = get_item(item_id)
    _check_category(categories, item)
    price = shop_buy_price(island, item_id, item)
    if price <= 0:
        raise ValidationError("ItemNotPurchasable", "This shop will not buy that item")

    async def _apply() -> int:
        fresh = await registry_service.require_island(db, map_id, island_id)
        _check_category(_require_shop(fresh), item)
        fresh.shop_inventory = _add_stock(list(fresh.shop_inventory or []), item_id, 1)
        await db.flush()
        return _stock_of(fresh, item_id)

    transfer = CompensatingTransfer(economy, "sell_to_shop")
    try:
        await transfer.debit(actor_id, item_id, 1)
        await transfer.credit(actor_id, currency, price)
        stock = await run_in_transaction(db, _apply, name="sell_to_shop")
    except Exception:
        await transfer.compensate()
        raise

    logger.info("Player %s sold %s to shop %s/%s for %d %s", actor_id, item_id, map_id, island_id, price, currency)
    return {
        "item_id": item_id,
        "price": price,
        "new_balance": await economy.get_balance(actor_id, currency),
        "stock": stock,
    }


async def buy_from_shop(
    db: AsyncSession,
    economy: EconomyService,
    map_id: str,
    island_id: str,
    actor_id: str,
    item_id: str,
) -> dict:
    """A player buys one ``item_id`` from the island's shop; the owner is paid net of tax."""
    currency = settings.virtual_currency_code
    island = await registry_service.require_island(db, map_id, island_id)
    categories = _require_shop(island)
    item = get_item(item_id)
    _check_category(categories, item)
    price = shop_sell_price(island, item_id, item)
    if price <= 0:
        raise ValidationError("ItemNotForSale", "This item is not for sale")
    if _stock_of(island, item_id) <= 0:
        raise PreconditionError("OutOfStock", f"The shop has no {item_id} in stock")

    owner_id = island.owner_id
    nation = island.nation
    if owner_id:
        split = nation_service.apply_tax(price, await nation_service.get_tax_rate_bps(db, nation))
    else:
        split = nation_service.apply_tax(0, 0)

    async def _apply() -> int:
        fresh = await registry_service.require_island(db, map_id, island_id)
        if _stock_of(fresh, item_id) <= 0:
            raise PreconditionError("OutOfStock", f"The shop has no {item_id} in stock")
        fresh.shop_inventory = _add_stock(list(fresh.shop_inventory or []), item_id, -1)
        if split.tax > 0:
            await nation_service.credit_treasury(db, nation, split.tax)
        await db.flush()
        return _stock_of(fresh, item_id)

    transfer = CompensatingTransfer(economy, "buy_from_shop")
    try:
        await transfer.debit(actor_id, currency, price)
        await transfer.credit(actor_id, item_id, 1)
        if owner_id:
            await transfer.credit(owner_id, currency, split.net)
        stock = await run_in_transaction(db, _apply, name="buy_from_shop")
    except Exception:
        await transfer.compensate()
        raise

    logger.info(
        "Player %s bought %s at %s/%s for %d %s (owner %s +%d, %s treasury +%d)",
        actor_id, item_id, map_id, island_id, price, currency, owner_id, split.net, nation, split.tax,
    )
    return {
        "item_id": item_id,
        "price": price,
        "tax": split.tax,
        "owner_proceeds": split.net if owner_id else 0,
        "new_balance": await economy.get_balance(actor_id, currency),
        "stock": stock,
    }


# ---------------------------------------------------------------------------
# Hot spring
# ---------------------------------------------------------------------------

def _has_hot_spring(island: Island) -> bool:
    current = active_building(island.buildings)
    return current is not None and current.get("building_id") == HOT_SPRING_BUILDING_ID


def hot_spring_price(island: Island) -> int:
    return max(0, int(island.hot_spring_price or DEFAULT_HOT_SPRING_PRICE))


async def set_hot_spring_price(
    db: AsyncSession, map_id: str, island_id: str, actor_id: str, price: int
) -> int:
    value = _as_number(price, 0)
    new_price = max(0, math.floor(value))
    if new_price <= 0:
        raise ValidationError("InvalidPrice", "The bath price must be positive")

    async def _apply() -> int:
        island = await registry_service.require_island(db, map_id, island_id)
        _require_owner(island, actor_id)
        if not _has_hot_spring(island):
            raise PreconditionError("HotSpringNotFound", "There is no hot spring on this island")
        island.hot_spring_price = new_price
        await db.flush()
        return new_price

    return await run_in_transaction(db, _apply, name="set_hot_spring_price")


async def use_hot_spring(
    db: AsyncSession, economy: EconomyService, map_id: str, island_id: str, actor_id: str
) -> dict:
    """Pay the bath fee and recover to full HP."""
    currency = settings.virtual_currency_code
    profile = await player_service.get_player_profile(db, actor_id)
    if profile is None or profile.hp >= profile.max_hp:
        raise PreconditionError("HpAlreadyMax", "Your HP is already full")
    actor_nation = player_service.resolve_player_nation(profile)

    island = await registry_service.require_island(db, map_id, island_id)
    if not _has_hot_spring(island):
        raise PreconditionError("HotSpringNotFound", "There is no hot spring on this island")
    island_nation = (island.nation or "").lower() or None
    if island_nation and island_nation != actor_nation:
        raise NationMismatchError("NotOwnNation", "Only citizens of this nation may bathe here")

    price = hot_spring_price(island)
    await ensure_affordable(economy, actor_id, {currency: price})
    tax_nation = island_nation or actor_nation
    split = nation_service.apply_tax(price, await nation_service.get_tax_rate_bps(db, tax_nation))
    owner_id = island.owner_id

    async def _apply() -> int:
        fresh_profile = await player_service.get_player_profile(db, actor_id)
        if split.tax > 0:
            await nation_service.credit_treasury(db, tax_nation, split.tax)
        fresh_profile.hp = fresh_profile.max_hp
        await db.flush()
        return fresh_profile.hp

    transfer = CompensatingTransfer(economy, "use_hot_spring")
    try:
        await transfer.debit(actor_id, currency, price)
        if owner_id:
            await transfer.credit(owner_id, currency, split.net)
        new_hp = await run_in_transaction(db, _apply, name="use_hot_spring")
    except Exception:
        await transfer.compensate()
        raise

    logger.info("Player %s bathed at %s/%s for %d %s", actor_id, map_id, island_id, price, currency)
    return {"price": price, "tax": split.tax, "new_hp": new_hp}
