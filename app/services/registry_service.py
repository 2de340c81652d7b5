"""Island registry: per-map partitions of island records.

Islands are addressed by (map_id, island_id).  Reads always go to the
database (populate_existing) so a session never serves island state cached
from an earlier request or an earlier transaction attempt.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.data.buildings import HOME_BUILDING_ID, MAX_ISLAND_LEVEL, get_building_spec
from app.models.island import Island
from app.services.building_slot import CONSTRUCTING, active_building
from app.services.errors import IslandNotFoundError
from app.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)


def normalize_map_id(map_id: str | None) -> str | None:
    raw = str(map_id or "").strip()
    return raw or None


async def get_island(db: AsyncSession, map_id: str, island_id: str) -> Island | None:
    result = await db.execute(
        select(Island)
        .where(Island.map_id == map_id, Island.id == island_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_island(db: AsyncSession, map_id: str, island_id: str) -> Island:
    island = await get_island(db, map_id, island_id)
    if island is None:
        raise IslandNotFoundError(message=f"Island '{island_id}' not found on map '{map_id}'")
    return island


async def find_island_across_maps(
    db: AsyncSession, island_id: str, map_ids: list[str] | None = None
) -> Island | None:
    """Locate an island when the caller does not know its map."""
    query = select(Island).where(Island.id == island_id)
    if map_ids:
        query = query.where(Island.map_id.in_(map_ids))
    result = await db.execute(
        query.order_by(Island.map_id).execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def resolve_island(db: AsyncSession, map_id: str | None, island_id: str) -> Island:
    """Island by (map_id, island_id), searching every map when map_id is empty."""
    key = normalize_map_id(map_id)
    island = (
        await get_island(db, key, island_id)
        if key is not None
        else await find_island_across_maps(db, island_id)
    )
    if island is None:
        raise IslandNotFoundError(message=f"Island '{island_id}' not found")
    return island


async def list_islands(db: AsyncSession, map_id: str) -> list[Island]:
    result = await db.execute(select(Island).where(Island.map_id == map_id).order_by(Island.id))
    return list(result.scalars().all())


async def list_owned_islands(
    db: AsyncSession, owner_id: str, map_id: str | None = None
) -> list[Island]:
    query = select(Island).where(Island.owner_id == owner_id)
    if map_id:
        query = query.where(Island.map_id == map_id)
    result = await db.execute(
        query.order_by(Island.map_id, Island.id).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_owned_map_ids(db: AsyncSession, owner_id: str) -> list[str]:
    result = await db.execute(
        select(Island.map_id).where(Island.owner_id == owner_id).distinct().order_by(Island.map_id)
    )
    return list(result.scalars().all())


async def list_constructing_islands(db: AsyncSession) -> list[Island]:
    result = await db.execute(
        select(Island)
        .where(Island.construction_status == CONSTRUCTING)
        .order_by(Island.map_id, Island.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def transfer_owned_islands(
    db: AsyncSession, from_player_id: str, to_player_id: str, to_nation: str | None = None
) -> dict:
    """Hand every island of one player, on every map, to another player."""

    async def _apply() -> dict:
        islands = await list_owned_islands(db, from_player_id)
        affected: set[str] = set()
        for island in islands:
            island.owner_id = to_player_id
            island.owner_nation = to_nation
            affected.add(island.map_id)
        await db.flush()
        return {"transferred": len(islands), "map_ids": sorted(affected)}

    result = await run_in_transaction(db, _apply, name="transfer_owned_islands")
    logger.info(
        "Transferred %d islands from %s to %s on maps %s",
        result["transferred"], from_player_id, to_player_id, result["map_ids"],
    )
    return result


def upgrade_info(island: Island) -> dict | None:
    """Next island level and its home-building cost, or None at max level."""
    level = max(1, int(island.island_level or 1))
    if level >= MAX_ISLAND_LEVEL:
        return None
    spec = get_building_spec(HOME_BUILDING_ID, level + 1)
    if spec is None:
        return None
    return {"next_level": level + 1, "cost": dict(spec.cost), "building_id": HOME_BUILDING_ID}


def island_details(island: Island, now: int | None = None) -> dict:
    current = active_building(island.buildings)
    remaining_seconds = 0
    if current and current.get("status") == CONSTRUCTING and now is not None:
        remaining_seconds = max(0, -(-(int(current.get("completion_time") or 0) - now) // 1000))
    return {
        "id": island.id,
        "map_id": island.map_id,
        "name": island.name,
        "coordinate": {"x": island.x, "y": island.y},
        "size": island.size.value,
        "island_level": island.island_level,
        "owner_id": island.owner_id,
        "owner_nation": island.owner_nation,
        "nation": island.nation,
        "biome": island.biome,
        "biome_frame": island.biome_frame,
        "occupation_status": island.occupation_status.value if island.occupation_status else None,
        "building_slots": island.building_slots,
        "buildings": list(island.buildings or []),
        "active_building": current,
        "construction_status": island.construction_status,
        "remaining_seconds": remaining_seconds,
        "demolished_at": island.demolished_at,
        "shop_pricing": island.shop_pricing,
        "shop_inventory": list(island.shop_inventory or []),
        "hot_spring_price": island.hot_spring_price,
        "upgrade_info": upgrade_info(island),
    }
