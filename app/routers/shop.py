"""Shop router: player-run shops and hot springs."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_player_id, get_economy
from app.schemas.shop import (
    BuyResponse,
    HotSpringPriceRequest,
    HotSpringPriceResponse,
    HotSpringResponse,
    SellResponse,
    SetItemPriceRequest,
    SetShopPricingRequest,
    ShopPricing,
    ShopStateResponse,
    TradeRequest,
)
from app.services import registry_service, shop_service
from app.services.economy import EconomyService
from app.services.errors import IslandEngineError

router = APIRouter(prefix="/maps", tags=["shop"])


@router.get("/{map_id}/islands/{island_id}/shop", response_model=ShopStateResponse)
async def get_shop_state(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        island = await registry_service.require_island(db, map_id, island_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return shop_service.get_shop_state(island)


@router.put("/{map_id}/islands/{island_id}/shop/pricing", response_model=ShopPricing)
async def set_shop_pricing(
    map_id: str,
    island_id: str,
    body: SetShopPricingRequest,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await shop_service.set_shop_pricing(
            db, map_id, island_id, player_id, body.buy_multiplier, body.sell_multiplier
        )
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put("/{map_id}/islands/{island_id}/shop/items/{item_id}/price", response_model=ShopPricing)
async def set_shop_item_price(
    map_id: str,
    island_id: str,
    item_id: str,
    body: SetItemPriceRequest,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await shop_service.set_shop_item_price(
            db, map_id, island_id, player_id, item_id, body.buy_price, body.sell_price
        )
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{map_id}/islands/{island_id}/shop/sell", response_model=SellResponse)
async def sell_to_shop(
    map_id: str,
    island_id: str,
    body: TradeRequest,
    db: AsyncSession = Depends(get_db),
    economy: EconomyService = Depends(get_economy),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await shop_service.sell_to_shop(db, economy, map_id, island_id, player_id, body.item_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{map_id}/islands/{island_id}/shop/buy", response_model=BuyResponse)
async def buy_from_shop(
    map_id: str,
    island_id: str,
    body: TradeRequest,
    db: AsyncSession = Depends(get_db),
    economy: EconomyService = Depends(get_economy),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await shop_service.buy_from_shop(db, economy, map_id, island_id, player_id, body.item_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put("/{map_id}/islands/{island_id}/hot-spring/price", response_model=HotSpringPriceResponse)
async def set_hot_spring_price(
    map_id: str,
    island_id: str,
    body: HotSpringPriceRequest,
    db: AsyncSession = Depends(get_db),
    player_id: str = Depends(get_current_player_id),
):
    try:
        price = await shop_service.set_hot_spring_price(db, map_id, island_id, player_id, body.price)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return HotSpringPriceResponse(price=price)


@router.post("/{map_id}/islands/{island_id}/hot-spring/bath", response_model=HotSpringResponse)
async def use_hot_spring(
    map_id: str,
    island_id: str,
    db: AsyncSession = Depends(get_db),
    economy: EconomyService = Depends(get_economy),
    player_id: str = Depends(get_current_player_id),
):
    try:
        return await shop_service.use_hot_spring(db, economy, map_id, island_id, player_id)
    except IslandEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
