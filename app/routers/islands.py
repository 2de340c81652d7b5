"""Islands router: world generation, island lookups and the construction slot."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.data.buildings import BuildingSpec, list_buildings
from app.database import get_db
from app.dependencies import get_current_player_id, get_economy
from app.schemas.island import (
    BuildingSpecResponse,
    CompletionResponse,
    ConstructionResponse,
    DemolishResponse,
    HelpConstructionResponse,
    IslandResponse,
    MapGenerateRequest,
    MapGenerateResponse,
    StartConstructionRequest,
    UpgradeResponse,
)
from app.services import construction_service, registry_service
from app.services.economy import EconomyService
from app.services.errors import IslandEngineError
from app.services.map_generator import generate_map
from app.services.transactions import current_time_ms

router = APIRouter(prefix="/maps", tags=["islands"])
islands_meta_router = APIRouter(tags=["islands"])


def _spec_response(spec: BuildingSpec) -> BuildingSpecResponse:
    logic = spec.logic_size
    visual = spec.visual_size
    return BuildingSpecResponse(
        building_id=spec.building_id,
        name=spec.name,
        category=spec.category.value,
        level=spec.level,
        size_tag=spec.size_tag,
        slots_required=spec.slots_required,
        build_time_seconds=spec.build_time_seconds,
        cost=dict(spec.cost),
        width=logic.x,
        height=logic.y,
        visual_width=visual.x,
        visual_height=visual.y,
        tile_index=spec.tile_index,
        max_hp=spec.max_hp(),
        description=spec.description,
    )


# ---------------------------------------------------------------------------
# Catalog and cross-map lookups
# ---------------------------------------------------------------------------

@islands_meta_router.get("/buildings", response_model=list[BuildingSpecResponse])
async def get_buildings(category: Optional[str] = None, island_size: Optional[str] = None):
    """Buildable definitions, optionally filtered by category and island size."""
    return [_spec_response(spec) for spec in list_buildings(category, island_size)]


@islands_meta_router.get("/islands/owned", response_model=list[IslandResponse])
async def get_owned_islands(
    map_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    now = current_time_ms()
    islands = await registry_service.list_owned_islands(db, player_id, map_id)
    return [registry_service.island_details(island, now) for island in islands]


@islands_meta_router.get("/islands/constructing", response_model=list[IslandResponse])
async def get_constructing_islands(
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    now = current_time_ms()
    islands = await registry_service.list_constructing_islands(db)
    return [registry_service.island_details(island, now) for island in islands]


@islands_meta_router.get("/islands/{island_id}", response_model=IslandResponse)
async def find_island(
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    """Look an island up by id alone, searching every map."""
    try:
        island = await registry_service.resolve_island(db, None, island_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return registry_service.island_details(island, current_time_ms())


# ---------------------------------------------------------------------------
# Maps
# ---------------------------------------------------------------------------

@router.post(
    "/{map_id}/generate", response_model=MapGenerateResponse, status_code=status.HTTP_201_CREATED
)
async def create_map(
    map_id: str,
    body: MapGenerateRequest,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    if await registry_service.list_islands(db, map_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "MapAlreadyExists", "message": f"Map '{map_id}' already has islands"},
        )
    islands = await generate_map(
        db,
        map_id,
        map_type=body.map_type,
        faction=body.faction,
        card_number=body.card_number,
        counts=body.counts,
    )
    now = current_time_ms()
    return MapGenerateResponse(
        map_id=map_id,
        island_count=len(islands),
        islands=[registry_service.island_details(island, now) for island in islands],
    )


@router.get("/{map_id}/islands", response_model=list[IslandResponse])
async def get_map_islands(
    map_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    now = current_time_ms()
    return [registry_service.island_details(i, now) for i in await registry_service.list_islands(db, map_id)]


@router.get("/{map_id}/islands/{island_id}", response_model=IslandResponse)
async def get_island_details(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        island = await registry_service.require_island(db, map_id, island_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return registry_service.island_details(island, current_time_ms())


# ---------------------------------------------------------------------------
# Construction slot
# ---------------------------------------------------------------------------

@router.post("/{map_id}/islands/{island_id}/construction", response_model=ConstructionResponse)
async def start_construction(
    map_id: str,
    island_id: str,
    body: StartConstructionRequest,
    db: AsyncSession = Depends(get_db),
    economy: EconomyService = Depends(get_economy),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await construction_service.start_construction(
            db, economy, map_id, island_id, body.building_id, player_id, tutorial=body.tutorial
        )
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/{map_id}/islands/{island_id}/construction/help", response_model=HelpConstructionResponse
)
async def help_construction(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await construction_service.help_construction(db, map_id, island_id, player_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{map_id}/islands/{island_id}/construction/check", response_model=CompletionResponse)
async def check_completion(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await construction_service.check_completion(db, map_id, island_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{map_id}/islands/{island_id}/demolish", response_model=DemolishResponse)
async def demolish_building(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await construction_service.demolish_building(db, map_id, island_id, player_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{map_id}/islands/{island_id}/rebuild", response_model=IslandResponse)
async def rebuild_island(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await construction_service.rebuild_island(db, map_id, island_id, player_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{map_id}/islands/{island_id}/upgrade", response_model=UpgradeResponse)
async def upgrade_island(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    economy: EconomyService = Depends(get_economy),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await construction_service.upgrade_island_level(db, economy, map_id, island_id, player_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
