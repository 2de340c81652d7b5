from typing import Optional

from pydantic import BaseModel


class HarvestStatusResponse(BaseModel):
    island_id: str
    map_id: str
    biome: Optional[str]
    currency: str
    capacity: int
    available: int
    last_collected_at: int
    next_in_ms: int
    interval_ms: int


class CollectResponse(BaseModel):
    currency: str
    collected: int
    balance: int
    last_collected_at: int
    remainder_ms: int
