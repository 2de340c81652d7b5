from typing import Optional

from pydantic import BaseModel, Field


class ItemPrice(BaseModel):
    buy_price: int
    sell_price: int


class ShopPricing(BaseModel):
    buy_multiplier: float
    sell_multiplier: float
    item_prices: dict[str, ItemPrice] = {}


class ShopInventoryItem(BaseModel):
    item_id: str
    count: int
    name: str
    category: Optional[str]
    shop_buy_price: int
    shop_sell_price: int


class ShopStateResponse(BaseModel):
    island_id: str
    map_id: str
    owner_id: Optional[str]
    building_id: Optional[str]
    categories: list[str]
    pricing: ShopPricing
    inventory: list[ShopInventoryItem]


class SetShopPricingRequest(BaseModel):
    buy_multiplier: float
    sell_multiplier: float


class SetItemPriceRequest(BaseModel):
    buy_price: int
    sell_price: int


class TradeRequest(BaseModel):
    item_id: str = Field(min_length=1)


class SellResponse(BaseModel):
    item_id: str
    price: int
    new_balance: int
    stock: int


class BuyResponse(BaseModel):
    item_id: str
    price: int
    tax: int
    owner_proceeds: int
    new_balance: int
    stock: int


class HotSpringPriceRequest(BaseModel):
    price: int


class HotSpringPriceResponse(BaseModel):
    price: int


class HotSpringResponse(BaseModel):
    price: int
    tax: int
    new_hp: int


class TreasuryResponse(BaseModel):
    nation: str
    treasury_amount: int
    tax_rate_bps: int
