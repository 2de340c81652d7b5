"""Resource harvesting from biome islands.

Each (island, player) pair has a cursor, ``last_collected_at``.  One unit of
the island's resource currency accrues per HARVEST_INTERVAL_MS since the
cursor, capped by the cargo capacity of the player's active ship:

    available = min(floor((now - last_collected_at) / interval), capacity)

Collecting advances the cursor by ``available * interval`` rather than to
``now`` so the partial interval carries over to the next collection.  When the
backlog holds more whole intervals than the hold can take, the surplus is
forfeit: the cursor moves to ``now`` minus the partial interval.  The cursor
row is versioned, so two concurrent collections cannot both spend the same
elapsed time.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.harvest_cursor import HarvestCursor
from app.models.island import Island
from app.services import player_service, registry_service
from app.services.economy import EconomyService
from app.services.errors import FatalInconsistencyError, PreconditionError
from app.services.transactions import current_time_ms, run_in_transaction

logger = logging.getLogger(__name__)

HARVEST_INTERVAL_MS = 10 * 60 * 1000

RESOURCE_BIOME_CURRENCY: dict[str, str] = {
    "volcanic": "RR",
    "rocky": "RG",
    "mushroom": "RY",
    "lake": "RB",
    "forest": "RT",
    "sacred": "RS",
}


def harvest_currency(island: Island) -> str:
    currency = RESOURCE_BIOME_CURRENCY.get((island.biome or "").lower())
    if currency is None:
        raise PreconditionError("IslandNotHarvestable", "This island has no resources to harvest")
    return currency


def available_units(last_collected_at: int, now: int, capacity: int) -> int:
    elapsed = max(0, now - last_collected_at)
    return max(0, min(elapsed // HARVEST_INTERVAL_MS, capacity))


def next_unit_in_ms(last_collected_at: int, now: int, available: int, capacity: int) -> int:
    """Milliseconds until one more unit accrues; 0 when the hold is already full."""
    if available >= capacity:
        return 0
    elapsed = max(0, now - last_collected_at)
    return HARVEST_INTERVAL_MS - elapsed % HARVEST_INTERVAL_MS


def advance_cursor(last_collected_at: int, now: int, capacity: int) -> tuple[int, int]:
    """Return ``(units, new_last_collected_at)`` for a collection at ``now``."""
    elapsed = max(0, now - last_collected_at)
    units = available_units(last_collected_at, now, capacity)
    if elapsed // HARVEST_INTERVAL_MS > units:
        # Intervals beyond the hold are not banked for the next trip
        return units, now - elapsed % HARVEST_INTERVAL_MS
    return units, last_collected_at + units * HARVEST_INTERVAL_MS


async def _get_cursor(
    db: AsyncSession, map_id: str, island_id: str, player_id: str
) -> HarvestCursor | None:
    result = await db.execute(
        select(HarvestCursor)
        .where(
            HarvestCursor.map_id == map_id,
            HarvestCursor.island_id == island_id,
            HarvestCursor.player_id == player_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_or_create_cursor(
    db: AsyncSession, map_id: str, island_id: str, player_id: str, now: int
) -> HarvestCursor:
    cursor = await _get_cursor(db, map_id, island_id, player_id)
    if cursor is None:
        # A first-time visitor finds one unit waiting
        cursor = HarvestCursor(
            map_id=map_id,
            island_id=island_id,
            player_id=player_id,
            last_collected_at=now - HARVEST_INTERVAL_MS,
        )
        db.add(cursor)
        await db.flush()
    return cursor


async def _require_capacity(db: AsyncSession, actor_id: str) -> int:
    capacity = await player_service.get_cargo_capacity(db, actor_id)
    if capacity <= 0:
        raise PreconditionError("NoCargoCapacity", "You need a ship with cargo space to harvest")
    return capacity


async def get_harvest_status(
    db: AsyncSession, map_id: str, island_id: str, actor_id: str, now: int | None = None
) -> dict:
    now = current_time_ms() if now is None else now
    island = await registry_service.require_island(db, map_id, island_id)
    currency = harvest_currency(island)
    # Plain values; a conflict rollback expires the loaded island
    island_key, map_key, biome = island.id, island.map_id, island.biome
    capacity = await _require_capacity(db, actor_id)

    async def _load() -> int:
        cursor = await _get_or_create_cursor(db, map_key, island_key, actor_id, now)
        return cursor.last_collected_at

    last_collected_at = await run_in_transaction(db, _load, name="harvest_status")
    available = available_units(last_collected_at, now, capacity)
    return {
        "island_id": island_key,
        "map_id": map_key,
        "biome": biome,
        "currency": currency,
        "capacity": capacity,
        "available": available,
        "last_collected_at": last_collected_at,
        "next_in_ms": next_unit_in_ms(last_collected_at, now, available, capacity),
        "interval_ms": HARVEST_INTERVAL_MS,
    }


async def collect_resource(
    db: AsyncSession,
    economy: EconomyService,
    map_id: str,
    island_id: str,
    actor_id: str,
    now: int | None = None,
) -> dict:
    now = current_time_ms() if now is None else now
    island = await registry_service.require_island(db, map_id, island_id)
    currency = harvest_currency(island)
    island_key, map_key = island.id, island.map_id

    async def _advance() -> tuple[int, int, int]:
        # Capacity is re-read inside the attempt; the player may have switched ships
        capacity = await _require_capacity(db, actor_id)
        cursor = await _get_or_create_cursor(db, map_key, island_key, actor_id, now)
        units, new_last = advance_cursor(cursor.last_collected_at, now, capacity)
        if units <= 0:
            raise PreconditionError(
                "NothingToCollect",
                "Nothing to collect yet",
                next_in_ms=next_unit_in_ms(cursor.last_collected_at, now, 0, capacity),
            )
        moved_ms = new_last - cursor.last_collected_at
        cursor.last_collected_at = new_last
        await db.flush()
        return units, new_last, moved_ms

    units, last_collected_at, moved_ms = await run_in_transaction(
        db, _advance, name="collect_resource"
    )

    try:
        balance = await economy.credit(actor_id, currency, units)
    except Exception:
        logger.warning(
            "collect_resource: credit of %d %s to %s failed, restoring harvest cursor",
            units, currency, actor_id,
        )
        await _restore_cursor(db, map_key, island_key, actor_id, moved_ms, units, currency)
        raise

    logger.info("Player %s collected %d %s from %s/%s", actor_id, units, currency, map_id, island_id)
    return {
        "currency": currency,
        "collected": units,
        "balance": balance,
        "last_collected_at": last_collected_at,
        "remainder_ms": max(0, now - last_collected_at),
    }


async def _restore_cursor(
    db: AsyncSession,
    map_id: str,
    island_id: str,
    player_id: str,
    moved_ms: int,
    units: int,
    currency: str,
) -> None:
    async def _rewind() -> None:
        cursor = await _get_cursor(db, map_id, island_id, player_id)
        if cursor is not None:
            cursor.last_collected_at -= moved_ms
            await db.flush()

    try:
        await run_in_transaction(db, _rewind, name="restore_harvest_cursor")
    except Exception:
        logger.critical(
            "FATAL INCONSISTENCY in collect_resource: %d %s for player %s on %s/%s were neither "
            "credited nor restored; manual reconciliation required",
            units, currency, player_id, map_id, island_id,
            exc_info=True,
        )
        raise FatalInconsistencyError(
            message="collect_resource could not be reversed",
            unreversed=[{"kind": "harvest", "player_id": player_id, "currency": currency, "amount": units}],
        )
