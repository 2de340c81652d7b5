"""Construction engine: the life cycle of the one building slot on an island.

    empty -> constructing -> completed -> demolished -(24h)-> empty
    completed my_house (level N) -> completed my_house (level N+1)   [upgrade]

Money is taken before the island write and given back if the write cannot
happen (precondition lost to a concurrent request, conflict retries exhausted).
Completion is a pure function of (buildings, now) so that the request path
and the background sweep share one implementation.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.data.buildings import HOME_BUILDING_ID, MAX_ISLAND_LEVEL, BuildingSpec, get_building_spec
from app.models.island import Island, OccupationStatus
from app.services import player_service, registry_service
from app.services.building_slot import (
    COMPLETED,
    CONSTRUCTING,
    DEMOLISHED,
    active_building,
    assert_single_occupancy,
    compute_construction_status,
    make_building_entry,
)
from app.services.economy import CompensatingTransfer, EconomyService, ensure_affordable
from app.services.errors import (
    IslandEngineError,
    NationMismatchError,
    NotOwnerError,
    PreconditionError,
    ValidationError,
)
from app.services.transactions import current_time_ms, run_in_transaction

logger = logging.getLogger(__name__)

REDUCTION_PER_HELPER = 0.1
MAX_HELPER_REDUCTION = 0.5
REBUILD_COOLDOWN_MS = 24 * 60 * 60 * 1000

UNDEMOLISHABLE = (OccupationStatus.capital, OccupationStatus.sacred)


def _require_buildable_spec(building_id: str) -> BuildingSpec:
    spec = get_building_spec(building_id)
    if spec is None or not spec.buildable:
        raise ValidationError("UnknownBuilding", f"Unknown building: '{building_id}'")
    return spec


def _require_owner(island: Island, actor_id: str) -> None:
    if island.owner_id != actor_id:
        raise NotOwnerError(message="You do not own this island")


def _set_buildings(island: Island, buildings: list[dict]) -> None:
    # JSON columns are only flushed when reassigned
    island.buildings = assert_single_occupancy(buildings)
    island.construction_status = compute_construction_status(buildings)


def _check_can_start(island: Island, spec: BuildingSpec, actor_id: str) -> None:
    if island.owner_id and island.owner_id != actor_id:
        raise NotOwnerError(message="This island belongs to another player")
    if island.occupation_status == OccupationStatus.demolished:
        raise PreconditionError("IslandDemolished", "The island must be rebuilt before building again")
    if active_building(island.buildings) is not None:
        raise PreconditionError("AlreadyBuilt", "This island already has a building")
    if spec.size_tag != island.size.value:
        raise ValidationError(
            "InvalidBuildingSize",
            f"{spec.name} needs a {spec.size_tag} island, this one is {island.size.value}",
        )


# ---------------------------------------------------------------------------
# Start
# ---------------------------------------------------------------------------

async def start_construction(
    db: AsyncSession,
    economy: EconomyService,
    map_id: str,
    island_id: str,
    building_id: str,
    actor_id: str,
    now: int | None = None,
    tutorial: bool = False,
) -> dict:
    """Claim the island and start a building on it.

    Returns the new building entry and the cost that was charged.
    """
    now = current_time_ms() if now is None else now
    spec = _require_buildable_spec(building_id)
    tutorial = tutorial and spec.building_id == HOME_BUILDING_ID

    island = await registry_service.require_island(db, map_id, island_id)
    _check_can_start(island, spec, actor_id)
    profile = await player_service.get_player_profile(db, actor_id)
    if tutorial and profile is not None and profile.tutorial_house_built:
        raise PreconditionError("TutorialAlreadyCompleted", "The tutorial house was already built")
    await ensure_affordable(economy, actor_id, spec.cost)

    display_name = (profile.display_name if profile else None) or "Player"
    actor_nation = player_service.resolve_player_nation(profile)
    status = COMPLETED if tutorial else CONSTRUCTING

    async def _apply() -> dict:
        # Re-read: another request may have claimed or built on the island meanwhile
        fresh = await registry_service.require_island(db, map_id, island_id)
        _check_can_start(fresh, spec, actor_id)
        entry = make_building_entry(spec, now, status=status)
        _set_buildings(fresh, list(fresh.buildings or []) + [entry])
        fresh.name = f"{display_name}'s {spec.name}"
        fresh.owner_id = fresh.owner_id or actor_id
        fresh.owner_nation = fresh.owner_nation or actor_nation
        fresh.nation = fresh.nation or actor_nation
        fresh.occupation_status = fresh.occupation_status or OccupationStatus.occupied
        if tutorial:
            fresh_profile = await player_service.get_player_profile(db, actor_id)
            if fresh_profile is not None:
                fresh_profile.tutorial_house_built = True
        await db.flush()
        return entry

    transfer = CompensatingTransfer(economy, "start_construction")
    try:
        await transfer.debit_all(actor_id, spec.cost)
        entry = await run_in_transaction(db, _apply, name="start_construction")
    except Exception:
        await transfer.compensate()
        raise

    logger.info(
        "Player %s started %s on %s/%s (status=%s, completes at %d)",
        actor_id, spec.building_id, map_id, island_id, status, entry["completion_time"],
    )
    return {"building": entry, "cost": dict(spec.cost)}


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------

def helper_reduction(helper_count: int) -> float:
    return min(MAX_HELPER_REDUCTION, max(0, helper_count) * REDUCTION_PER_HELPER)


def accelerated_completion_time(entry: dict, now: int) -> int:
    """Completion time after helper acceleration, never earlier than ``now``."""
    start = int(entry.get("start_time") or now)
    duration = int(entry.get("duration_ms") or max(0, int(entry.get("completion_time") or now) - start))
    reduction = helper_reduction(len(entry.get("helpers") or []))
    return max(now, start + int(duration * (1 - reduction)))


async def help_construction(
    db: AsyncSession,
    map_id: str | None,
    island_id: str,
    helper_id: str,
    now: int | None = None,
) -> dict:
    now = current_time_ms() if now is None else now

    async def _apply() -> dict:
        island = await registry_service.resolve_island(db, map_id, island_id)
        buildings = [dict(entry) for entry in island.buildings or []]
        idx = next(
            (i for i, entry in enumerate(buildings) if entry.get("status") == CONSTRUCTING), None
        )
        if idx is None:
            raise PreconditionError("NotConstructing", "Nothing is under construction on this island")
        entry = buildings[idx]
        helpers = list(entry.get("helpers") or [])
        if helper_id not in helpers:
            helpers.append(helper_id)
        entry["helpers"] = helpers
        entry["duration_ms"] = int(
            entry.get("duration_ms")
            or max(0, int(entry.get("completion_time") or now) - int(entry.get("start_time") or now))
        )
        entry["completion_time"] = accelerated_completion_time(entry, now)
        _set_buildings(island, buildings)
        await db.flush()
        return {"building": entry, "reduction": helper_reduction(len(helpers))}

    result = await run_in_transaction(db, _apply, name="help_construction")
    logger.info(
        "Player %s helped construction on %s (reduction %.0f%%)",
        helper_id, island_id, result["reduction"] * 100,
    )
    return result


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

def resolve_completion(buildings: list[dict] | None, now: int) -> tuple[list[dict], dict]:
    """Complete the constructing entry if its time has come.

    Pure: returns the (possibly) updated buildings list and a result dict with
    completed / already_completed / remaining_seconds / building.
    """
    entries = [dict(entry) for entry in buildings or []]
    idx = next((i for i, entry in enumerate(entries) if entry.get("status") == CONSTRUCTING), None)
    if idx is None:
        current = active_building(entries)
        # "already completed" only when a finished building stands on the slot
        finished = current is not None and current.get("status") == COMPLETED
        return entries, {
            "completed": finished,
            "already_completed": finished,
            "remaining_seconds": 0,
            "building": current,
        }
    entry = entries[idx]
    completion_time = int(entry.get("completion_time") or 0)
    if now < completion_time:
        return entries, {
            "completed": False,
            "already_completed": False,
            "remaining_seconds": -(-(completion_time - now) // 1000),
            "building": entry,
        }
    entry["status"] = COMPLETED
    return entries, {
        "completed": True,
        "already_completed": False,
        "remaining_seconds": 0,
        "building": entry,
    }


async def check_completion(
    db: AsyncSession, map_id: str | None, island_id: str, now: int | None = None
) -> dict:
    now = current_time_ms() if now is None else now

    async def _apply() -> dict:
        island = await registry_service.resolve_island(db, map_id, island_id)
        buildings, result = resolve_completion(island.buildings, now)
        if result["completed"] and not result["already_completed"]:
            _set_buildings(island, buildings)
            await db.flush()
            logger.info(
                "Construction of %s on %s/%s completed",
                result["building"]["building_id"], island.map_id, island.id,
            )
        return result

    return await run_in_transaction(db, _apply, name="check_completion")


async def sweep_completed_constructions(db: AsyncSession, now: int | None = None) -> int:
    """Complete every construction whose time has passed; returns how many."""
    now = current_time_ms() if now is None else now
    due = []
    for island in await registry_service.list_constructing_islands(db):
        _, preview = resolve_completion(island.buildings, now)
        if preview["completed"] and not preview["already_completed"]:
            due.append((island.map_id, island.id))

    # Keys only from here on: a rolled back attempt expires every loaded island
    completed = 0
    for map_id, island_id in due:
        try:
            result = await check_completion(db, map_id, island_id, now=now)
        except IslandEngineError as e:
            logger.warning("Completion sweep skipped %s/%s: %s", map_id, island_id, e.code)
            continue
        if result["completed"] and not result["already_completed"]:
            completed += 1
    if completed:
        logger.info("Completion sweep finished %d constructions", completed)
    return completed


# ---------------------------------------------------------------------------
# Demolish / rebuild
# ---------------------------------------------------------------------------

async def demolish_building(
    db: AsyncSession, map_id: str, island_id: str, actor_id: str, now: int | None = None
) -> dict:
    now = current_time_ms() if now is None else now

    async def _apply() -> dict:
        island = await registry_service.require_island(db, map_id, island_id)
        _require_owner(island, actor_id)
        if island.occupation_status in UNDEMOLISHABLE:
            raise PreconditionError("CannotDemolish", "Capitals and sacred islands cannot be demolished")
        if island.occupation_status == OccupationStatus.demolished:
            raise PreconditionError("AlreadyDemolished", "The building is already demolished")
        buildings = [dict(entry) for entry in island.buildings or []]
        target = active_building(buildings)
        if target is None:
            raise PreconditionError("NothingToDemolish", "There is no building to demolish")
        target["status"] = DEMOLISHED
        target["demolished_at"] = now
        _set_buildings(island, buildings)
        island.demolished_at = now
        island.occupation_status = OccupationStatus.demolished
        island.shop_inventory = []
        island.shop_pricing = None
        island.hot_spring_price = None
        await db.flush()
        return target

    entry = await run_in_transaction(db, _apply, name="demolish_building")
    logger.info("Player %s demolished %s on %s/%s", actor_id, entry["building_id"], map_id, island_id)
    return {"building": entry, "demolished_at": now, "rebuild_available_at": now + REBUILD_COOLDOWN_MS}


async def rebuild_island(
    db: AsyncSession, map_id: str, island_id: str, actor_id: str, now: int | None = None
) -> dict:
    now = current_time_ms() if now is None else now

    async def _apply() -> Island:
        island = await registry_service.require_island(db, map_id, island_id)
        _require_owner(island, actor_id)
        if island.occupation_status != OccupationStatus.demolished or island.demolished_at is None:
            raise PreconditionError("NotDemolished", "The island is not demolished")
        available_at = island.demolished_at + REBUILD_COOLDOWN_MS
        if now < available_at:
            raise PreconditionError(
                "RebuildCooldown",
                "The ruins are still being cleared",
                remaining_ms=available_at - now,
            )
        _set_buildings(
            island, [entry for entry in island.buildings or [] if entry.get("status") != DEMOLISHED]
        )
        island.demolished_at = None
        island.occupation_status = OccupationStatus.occupied
        await db.flush()
        return island

    island = await run_in_transaction(db, _apply, name="rebuild_island")
    logger.info("Player %s rebuilt %s/%s", actor_id, map_id, island_id)
    return registry_service.island_details(island, now)


# ---------------------------------------------------------------------------
# Upgrade
# ---------------------------------------------------------------------------

def _check_can_upgrade(island: Island, actor_id: str, actor_nation: str | None) -> BuildingSpec:
    _require_owner(island, actor_id)
    island_nation = (island.nation or "").lower() or None
    if island_nation != actor_nation:
        raise NationMismatchError(message="Only players of the island's nation can upgrade it")
    level = max(1, int(island.island_level or 1))
    if level >= MAX_ISLAND_LEVEL:
        raise PreconditionError("MaxLevelReached", f"The island is already level {MAX_ISLAND_LEVEL}")
    current = active_building(island.buildings)
    if current is not None and (
        current.get("building_id") != HOME_BUILDING_ID or current.get("status") != COMPLETED
    ):
        raise PreconditionError("NotHomeBuilding", "Only an island with a finished home can be upgraded")
    spec = get_building_spec(HOME_BUILDING_ID, level + 1)
    if spec is None:
        raise ValidationError("SpecNotFound", f"No home definition for level {level + 1}")
    return spec


async def upgrade_island_level(
    db: AsyncSession,
    economy: EconomyService,
    map_id: str,
    island_id: str,
    actor_id: str,
    now: int | None = None,
) -> dict:
    now = current_time_ms() if now is None else now
    actor_nation = await player_service.get_player_nation(db, actor_id)

    island = await registry_service.require_island(db, map_id, island_id)
    spec = _check_can_upgrade(island, actor_id, actor_nation)
    await ensure_affordable(economy, actor_id, spec.cost)

    async def _apply() -> dict:
        fresh = await registry_service.require_island(db, map_id, island_id)
        fresh_spec = _check_can_upgrade(fresh, actor_id, actor_nation)
        if fresh_spec.level != spec.level:
            raise PreconditionError("MaxLevelReached", "The island level changed, please retry")
        entry = make_building_entry(spec, now, status=COMPLETED, level=spec.level)
        kept = [e for e in fresh.buildings or [] if e.get("status") == DEMOLISHED]
        _set_buildings(fresh, kept + [entry])
        fresh.island_level = spec.level
        await db.flush()
        return entry

    transfer = CompensatingTransfer(economy, "upgrade_island_level")
    try:
        await transfer.debit_all(actor_id, spec.cost)
        entry = await run_in_transaction(db, _apply, name="upgrade_island_level")
    except Exception:
        await transfer.compensate()
        raise

    logger.info("Player %s upgraded %s/%s to level %d", actor_id, map_id, island_id, spec.level)
    return {"island_level": spec.level, "building": entry, "cost": dict(spec.cost)}
