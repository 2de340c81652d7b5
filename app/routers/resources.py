"""Resources router: harvesting biome currencies from islands."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_player_id, get_economy
from app.schemas.harvest import CollectResponse, HarvestStatusResponse
from app.services import harvest_service
from app.services.economy import EconomyService
from app.services.errors import IslandEngineError

router = APIRouter(prefix="/maps", tags=["resources"])


@router.get("/{map_id}/islands/{island_id}/harvest", response_model=HarvestStatusResponse)
async def get_harvest_status(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await harvest_service.get_harvest_status(db, map_id, island_id, player_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{map_id}/islands/{island_id}/harvest/collect", response_model=CollectResponse)
async def collect_resource(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    economy: EconomyService = Depends(get_economy),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await harvest_service.collect_resource(db, economy, map_id, island_id, player_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
