"""Static definitions for every structure that can stand on an island.

Categories:
  military  - watchtower, coastal battery, fortress, shipyard
  economic  - warehouse, farm, trading post, mine, grand market
  support   - tavern, repair dock, lighthouse, temple
  commerce  - weapon/armor/item shops and the hot spring (player-run businesses)
  home      - my_house, the island's home building (one variant per island level)
  landmark  - the nation capital (placed at world generation, never buildable)

Footprint rule:
  slots_required decides both the size tag and, when no explicit footprint is
  given, the logical footprint:  1 -> 1x1 (small), 2 -> 2x1 (medium),
  4 -> 2x2 (large), 9 -> 3x3 (large).  A building may only be started on an
  island whose size matches its size tag.

HP rule:
  max_hp = logic_w * logic_h * 100 * (1 + 0.2 * (level - 1)), rounded.

The catalog is validated when this module is imported; a malformed entry
raises CatalogError instead of failing later inside a request.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Any

from app.data.currencies import is_known_currency, resolve_currency

HOME_BUILDING_ID = "my_house"
CAPITAL_BUILDING_ID = "capital"
HOT_SPRING_BUILDING_ID = "hot_spring"
MAX_ISLAND_LEVEL = 5

DEFAULT_TILE_INDEX = 17
VALID_SLOT_COUNTS = (1, 2, 4, 9)


class CatalogError(ValueError):
    """A building definition is malformed."""


class BuildingCategory(str, enum.Enum):
    military = "military"
    economic = "economic"
    support = "support"
    commerce = "commerce"
    home = "home"
    landmark = "landmark"


@dataclass(frozen=True)
class Footprint:
    x: int
    y: int

    @property
    def area(self) -> int:
        return self.x * self.y


@dataclass(frozen=True)
class BuildingSpec:
    """Definition of a building at one level."""
    building_id: str
    name: str
    category: BuildingCategory
    slots_required: int
    build_time_seconds: int
    # currency code -> amount; only positive amounts are kept
    cost: dict[str, int] = field(default_factory=dict)
    effects: dict[str, Any] = field(default_factory=dict)
    description: str = ""
    level: int = 1
    tile_index: int = DEFAULT_TILE_INDEX
    # Explicit footprints; None means "infer from slots_required"
    size_logic: Footprint | None = None
    size_visual: Footprint | None = None
    buildable: bool = True
    biome_restrictions: tuple[str, ...] = ()

    @property
    def logic_size(self) -> Footprint:
        return self.size_logic or infer_logic_size(self.slots_required)

    @property
    def visual_size(self) -> Footprint:
        return self.size_visual or self.logic_size

    @property
    def size_tag(self) -> str:
        if self.slots_required == 1:
            return "small"
        if self.slots_required == 2:
            return "medium"
        return "large"

    @property
    def build_time_ms(self) -> int:
        return self.build_time_seconds * 1000

    def max_hp(self, level: int | None = None) -> int:
        size = self.logic_size
        return compute_max_hp(size.x, size.y, level if level is not None else self.level)


def infer_logic_size(slots_required: int | None) -> Footprint:
    """Fallback logical footprint for a building without an explicit one."""
    slots = int(slots_required or 1)
    if slots == 2:
        return Footprint(2, 1)
    if slots == 4:
        return Footprint(2, 2)
    if slots == 9:
        return Footprint(3, 3)
    return Footprint(1, 1)


def compute_max_hp(logic_w: int, logic_h: int, level: int = 1) -> int:
    w = max(1, int(logic_w or 1))
    h = max(1, int(logic_h or 1))
    lv = max(1, int(level or 1))
    return round(w * h * 100 * (1 + 0.2 * (lv - 1)))


# ---------------------------------------------------------------------------
# Military
# ---------------------------------------------------------------------------

_MILITARY: list[BuildingSpec] = [
    BuildingSpec(
        building_id="watchtower",
        name="Watchtower",
        category=BuildingCategory.military,
        slots_required=1,
        build_time_seconds=1800,
        cost={"wood": 100, "stone": 50, "gold": 200},
        effects={"vision_range": 10, "early_warning": True},
        description="Watches the surrounding waters for approaching ships.",
        tile_index=20,
        size_visual=Footprint(1, 2),
    ),
    BuildingSpec(
        building_id="coastal_battery",
        name="Coastal Battery",
        category=BuildingCategory.military,
        slots_required=1,
        build_time_seconds=3600,
        cost={"wood": 50, "stone": 200, "iron": 150, "gold": 500},
        effects={"defense_bonus": 30, "attack_range": 5, "damage": 50},
        description="Heavy guns that engage hostile ships near the island.",
        tile_index=21,
    ),
    BuildingSpec(
        building_id="fortress",
        name="Fortress",
        category=BuildingCategory.military,
        slots_required=2,
        build_time_seconds=7200,
        cost={"wood": 200, "stone": 500, "iron": 300, "gold": 1000},
        effects={"defense_bonus": 100, "garrison_capacity": 50, "repair_speed": 1.5},
        description="A stronghold that protects the whole island.",
        tile_index=22,
    ),
    BuildingSpec(
        building_id="shipyard",
        name="Shipyard",
        category=BuildingCategory.military,
        slots_required=4,
        build_time_seconds=10800,
        cost={"wood": 1000, "stone": 500, "iron": 500, "gold": 2000},
        effects={"ship_production": True, "production_speed": 1.0, "max_queue_size": 3},
        description="Large dockyard able to build new ships.",
        tile_index=23,
        biome_restrictions=("beach", "rocky"),
    ),
]

# ---------------------------------------------------------------------------
# Economic
# ---------------------------------------------------------------------------

_ECONOMIC: list[BuildingSpec] = [
    BuildingSpec(
        building_id="warehouse",
        name="Warehouse",
        category=BuildingCategory.economic,
        slots_required=1,
        build_time_seconds=1800,
        cost={"wood": 200, "stone": 100, "gold": 300},
        effects={"storage_capacity": 1000, "protection": 0.5},
        description="Keeps resources safe from raids.",
        tile_index=30,
    ),
    BuildingSpec(
        building_id="farm",
        name="Farm",
        category=BuildingCategory.economic,
        slots_required=1,
        build_time_seconds=2400,
        cost={"wood": 150, "stone": 50, "gold": 400},
        effects={"food_production": 50, "crew_morale": 10},
        description="Produces food for crews.",
        tile_index=31,
        biome_restrictions=("forest", "jungle"),
    ),
    BuildingSpec(
        building_id="trading_post",
        name="Trading Post",
        category=BuildingCategory.economic,
        slots_required=2,
        build_time_seconds=5400,
        cost={"wood": 300, "stone": 200, "gold": 1000},
        effects={"trade_bonus": 0.2, "trade_routes": 2, "tax_reduction": 0.1},
        description="Opens trade routes with other players.",
        tile_index=32,
    ),
    BuildingSpec(
        building_id="mine",
        name="Mine",
        category=BuildingCategory.economic,
        slots_required=2,
        build_time_seconds=7200,
        cost={"wood": 500, "stone": 300, "iron": 200, "gold": 1500},
        effects={"stone_production": 30, "iron_production": 20, "gold_production": 10},
        description="Extracts ore; best on rocky and volcanic islands.",
        tile_index=33,
        biome_restrictions=("rocky", "volcanic"),
    ),
    BuildingSpec(
        building_id="grand_market",
        name="Grand Market",
        category=BuildingCategory.economic,
        slots_required=4,
        build_time_seconds=14400,
        cost={"wood": 1000, "stone": 800, "gold": 3000},
        effects={"trade_bonus": 0.5, "trade_routes": 5, "market_price_control": True},
        description="A sprawling market at the heart of a trade network.",
        tile_index=34,
    ),
]

# ---------------------------------------------------------------------------
# Support
# ---------------------------------------------------------------------------

_SUPPORT: list[BuildingSpec] = [
    BuildingSpec(
        building_id="tavern",
        name="Tavern",
        category=BuildingCategory.support,
        slots_required=1,
        build_time_seconds=1200,
        cost={"wood": 150, "stone": 50, "gold": 300},
        effects={"crew_recruitment": True, "morale": 15, "recruitment_speed": 1.2},
        description="Recruit new crew members.",
        tile_index=40,
    ),
    BuildingSpec(
        building_id="repair_dock",
        name="Repair Dock",
        category=BuildingCategory.support,
        slots_required=2,
        build_time_seconds=3600,
        cost={"wood": 400, "stone": 200, "iron": 200, "gold": 800},
        effects={"repair_speed": 2.0, "repair_cost_reduction": 0.3, "simultaneous_repairs": 2},
        description="Repairs ships quickly after battle.",
        tile_index=41,
        biome_restrictions=("beach", "rocky"),
    ),
    BuildingSpec(
        building_id="lighthouse",
        name="Lighthouse",
        category=BuildingCategory.support,
        slots_required=1,
        build_time_seconds=2400,
        cost={"wood": 100, "stone": 300, "gold": 500},
        effects={"navigation_bonus": 0.2, "fog_of_war_reduction": 10, "safety_bonus": True},
        description="Makes voyages safer and faster.",
        tile_index=42,
        size_visual=Footprint(1, 3),
    ),
    BuildingSpec(
        building_id="temple",
        name="Temple",
        category=BuildingCategory.support,
        slots_required=4,
        build_time_seconds=18000,
        cost={"wood": 500, "stone": 1000, "gold": 5000},
        effects={"blessings": True, "healing_rate": 2.0, "divine_protection": 0.2},
        description="A sacred building that blesses its visitors.",
        tile_index=43,
    ),
]

# ---------------------------------------------------------------------------
# Commerce (player-run businesses)
# ---------------------------------------------------------------------------

_COMMERCE: list[BuildingSpec] = [
    BuildingSpec(
        building_id="weapon_shop",
        name="Weapon Shop",
        category=BuildingCategory.commerce,
        slots_required=1,
        build_time_seconds=1800,
        cost={"wood": 150, "iron": 100, "gold": 400},
        description="Buys and sells weapons.",
        tile_index=50,
    ),
    BuildingSpec(
        building_id="armor_shop",
        name="Armor Shop",
        category=BuildingCategory.commerce,
        slots_required=2,
        build_time_seconds=3600,
        cost={"wood": 200, "iron": 250, "gold": 600},
        description="Buys and sells armor and shields.",
        tile_index=51,
    ),
    BuildingSpec(
        building_id="item_shop",
        name="Item Shop",
        category=BuildingCategory.commerce,
        slots_required=1,
        build_time_seconds=1200,
        cost={"wood": 100, "stone": 50, "gold": 250},
        description="Buys and sells consumables.",
        tile_index=52,
    ),
    BuildingSpec(
        building_id=HOT_SPRING_BUILDING_ID,
        name="Hot Spring",
        category=BuildingCategory.commerce,
        slots_required=2,
        build_time_seconds=5400,
        cost={"wood": 300, "stone": 400, "gold": 800},
        effects={"full_heal": True},
        description="Visitors pay a fee to bathe and recover their HP.",
        tile_index=53,
    ),
]

# ---------------------------------------------------------------------------
# Home building, one variant per island level
# ---------------------------------------------------------------------------

_HOME_COSTS: dict[int, dict[str, int]] = {
    1: {"wood": 50, "gold": 100},
    2: {"PS": 500, "wood": 200},
    3: {"PS": 1500, "stone": 300},
    4: {"PS": 4000, "iron": 300},
    5: {"PS": 10000, "iron": 800, "gold": 2000},
}

_HOME_LEVELS: dict[int, BuildingSpec] = {
    level: BuildingSpec(
        building_id=HOME_BUILDING_ID,
        name="My House" if level == 1 else f"My House Lv.{level}",
        category=BuildingCategory.home,
        slots_required=1,
        build_time_seconds=600 * level,
        cost=cost,
        effects={"island_level": level},
        description="The owner's residence; upgrading it raises the island level.",
        level=level,
        tile_index=DEFAULT_TILE_INDEX + level - 1,
        size_visual=Footprint(1, 2) if level >= 3 else None,
    )
    for level, cost in _HOME_COSTS.items()
}

# ---------------------------------------------------------------------------
# Landmarks (placed by the map generator only)
# ---------------------------------------------------------------------------

_LANDMARKS: list[BuildingSpec] = [
    BuildingSpec(
        building_id=CAPITAL_BUILDING_ID,
        name="Capital",
        category=BuildingCategory.landmark,
        slots_required=9,
        build_time_seconds=0,
        description="Seat of a nation's government.",
        tile_index=576,
        buildable=False,
    ),
]

# Which item categories each shop building trades in
SHOP_BUILDING_CATEGORIES: dict[str, tuple[str, ...]] = {
    "weapon_shop": ("Weapon",),
    "armor_shop": ("Armor", "Shield"),
    "item_shop": ("Consumable",),
}


def _validate(spec: BuildingSpec) -> BuildingSpec:
    """Reject malformed definitions and normalise cost currency codes."""
    if not spec.building_id:
        raise CatalogError("Building definition without an id")
    if spec.size_logic is None and spec.slots_required not in VALID_SLOT_COUNTS:
        raise CatalogError(
            f"{spec.building_id}: slots_required={spec.slots_required} needs an explicit footprint"
        )
    if spec.build_time_seconds < 0 or (spec.buildable and spec.build_time_seconds == 0):
        raise CatalogError(f"{spec.building_id}: invalid build time {spec.build_time_seconds}")
    if spec.level < 1:
        raise CatalogError(f"{spec.building_id}: invalid level {spec.level}")
    cost: dict[str, int] = {}
    for code, amount in spec.cost.items():
        if not is_known_currency(code):
            raise CatalogError(f"{spec.building_id}: unknown cost currency '{code}'")
        if not isinstance(amount, int) or amount <= 0:
            raise CatalogError(f"{spec.building_id}: cost for '{code}' must be a positive integer")
        canonical = resolve_currency(code)
        cost[canonical] = cost.get(canonical, 0) + amount
    return replace(spec, cost=cost)


def _build_catalog() -> tuple[dict[str, BuildingSpec], dict[int, BuildingSpec]]:
    catalog: dict[str, BuildingSpec] = {}
    for spec in _MILITARY + _ECONOMIC + _SUPPORT + _COMMERCE + _LANDMARKS:
        if spec.building_id in catalog or spec.building_id == HOME_BUILDING_ID:
            raise CatalogError(f"Duplicate building id '{spec.building_id}'")
        catalog[spec.building_id] = _validate(spec)
    home_levels = {level: _validate(spec) for level, spec in _HOME_LEVELS.items()}
    catalog[HOME_BUILDING_ID] = home_levels[1]
    return catalog, home_levels


BUILDINGS, HOME_LEVELS = _build_catalog()


def get_building_spec(building_id: str, level: int | None = None) -> BuildingSpec | None:
    """Return the definition of ``building_id`` at ``level``, or None if unknown.

    Leveled buildings (the home) have a distinct definition per level; other
    buildings share one definition whose level only scales HP.
    """
    if building_id == HOME_BUILDING_ID:
        return HOME_LEVELS.get(level if level is not None else 1)
    spec = BUILDINGS.get(building_id)
    if spec is None:
        return None
    if level is not None and level >= 1 and level != spec.level:
        return replace(spec, level=level)
    return spec


def list_buildings(
    category: str | None = None, island_size: str | None = None
) -> list[BuildingSpec]:
    """Buildable definitions, optionally filtered by category and island size."""
    result = []
    for spec in BUILDINGS.values():
        if not spec.buildable:
            continue
        if category and spec.category.value != category:
            continue
        if island_size and spec.size_tag != island_size.lower():
            continue
        result.append(spec)
    return result
