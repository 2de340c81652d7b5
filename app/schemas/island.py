from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.island import IslandSize, OccupationStatus


class Coordinate(BaseModel):
    x: int
    y: int


class BuildingEntry(BaseModel):
    building_id: str
    status: str
    level: int = 1
    start_time: int
    completion_time: int
    duration_ms: int
    helpers: list[str] = []
    width: int = 1
    height: int = 1
    visual_width: int = 1
    visual_height: int = 1
    tile_index: int
    max_hp: int
    current_hp: int
    x: int = 0
    y: int = 0
    demolished_at: Optional[int] = None


class UpgradeInfo(BaseModel):
    next_level: int
    cost: dict[str, int]
    building_id: str


class IslandResponse(BaseModel):
    id: str
    map_id: str
    name: Optional[str]
    coordinate: Coordinate
    size: IslandSize
    island_level: int
    owner_id: Optional[str]
    owner_nation: Optional[str]
    nation: Optional[str]
    biome: Optional[str]
    biome_frame: Optional[int]
    occupation_status: Optional[OccupationStatus]
    building_slots: Optional[dict[str, Any]]
    buildings: list[BuildingEntry]
    active_building: Optional[BuildingEntry]
    construction_status: Optional[str]
    remaining_seconds: int = 0
    demolished_at: Optional[int]
    shop_pricing: Optional[dict[str, Any]]
    shop_inventory: list[dict[str, Any]]
    hot_spring_price: Optional[int]
    upgrade_info: Optional[UpgradeInfo]


class BuildingSpecResponse(BaseModel):
    building_id: str
    name: str
    category: str
    level: int
    size_tag: str
    slots_required: int
    build_time_seconds: int
    cost: dict[str, int]
    width: int
    height: int
    visual_width: int
    visual_height: int
    tile_index: int
    max_hp: int
    description: str


class MapGenerateRequest(BaseModel):
    map_type: str = "nation"
    faction: str = "neutral"
    card_number: Optional[int] = None
    counts: Optional[dict[str, int]] = None

    @field_validator("map_type")
    @classmethod
    def validate_map_type(cls, v: str) -> str:
        if v not in ("nation", "major"):
            raise ValueError("map_type must be 'nation' or 'major'")
        return v

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and (v < 0 or v > 21):
            raise ValueError("card_number must be between 0 and 21")
        return v


class MapGenerateResponse(BaseModel):
    map_id: str
    island_count: int
    islands: list[IslandResponse]


class StartConstructionRequest(BaseModel):
    building_id: str = Field(min_length=1)
    tutorial: bool = False


class ConstructionResponse(BaseModel):
    building: BuildingEntry
    cost: dict[str, int]


class HelpConstructionResponse(BaseModel):
    building: BuildingEntry
    reduction: float


class CompletionResponse(BaseModel):
    completed: bool
    already_completed: bool
    remaining_seconds: int
    building: Optional[BuildingEntry]


class DemolishResponse(BaseModel):
    building: BuildingEntry
    demolished_at: int
    rebuild_available_at: int


class UpgradeResponse(BaseModel):
    island_level: int
    building: BuildingEntry
    cost: dict[str, int]
