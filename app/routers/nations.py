from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.shop import TreasuryResponse
from app.services import nation_service

router = APIRouter(prefix="/nations", tags=["nations"])


@router.get("/treasury", response_model=list[TreasuryResponse])
async def get_treasury_ranking(db: AsyncSession = Depends(get_db)):
    """Every nation's treasury, richest first."""
    return await nation_service.treasury_ranking(db)


@router.get("/{nation}/treasury", response_model=TreasuryResponse)
async def get_nation_treasury(nation: str, db: AsyncSession = Depends(get_db)):
    key = nation_service.normalize_nation(nation)
    if key is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "UnknownNation", "message": f"Unknown nation: '{nation}'"},
        )
    treasury = await nation_service.get_treasury(db, key)
    return TreasuryResponse(
        nation=key,
        treasury_amount=max(0, treasury.treasury_amount) if treasury else 0,
        tax_rate_bps=nation_service.clamp_tax_rate_bps(treasury.tax_rate_bps) if treasury else 0,
    )
