"""
World map generation: sizes islands and places them on a bounded grid.

Grid: map_width x map_height cells (default 100x100), origin top-left.
Island footprints (cells):
  small  3x3
  medium 4x3
  large  4x4
  giant  5x5

Layout:
- nation map (non-neutral faction, map id != "joker"): a giant capital island
  at the exact grid centre, holding a completed capital building.
- major map (card number 0-21): a sacred island at the exact grid centre,
  sized by card number (0-7 small, 8-15 large, 16-21 giant).
- then random islands: small, medium, large, giant in that order.  Each one
  tries up to MAX_PLACEMENT_ATTEMPTS uniformly random positions; an island
  that never fits is skipped (logged, not an error).

Two rectangles overlap iff their x-intervals and their y-intervals both
intersect (edges touching is not an overlap).
"""

import logging
import random
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.data.buildings import CAPITAL_BUILDING_ID, get_building_spec
from app.models.island import Island, IslandSize, OccupationStatus
from app.services.building_slot import COMPLETED, make_building_entry

logger = logging.getLogger(__name__)

SIZE_BY_KEY: dict[str, tuple[int, int]] = {
    "small": (3, 3),
    "medium": (4, 3),
    "large": (4, 4),
    "giant": (5, 5),
}

DEFAULT_COUNTS: dict[str, int] = {"small": 20, "medium": 0, "large": 10, "giant": 3}

MAX_PLACEMENT_ATTEMPTS = 200

# Chance that a small island is a resource island of the faction's biome
RESOURCE_CHANCE = 0.35

RESOURCE_BIOME_BY_FACTION: dict[str, str] = {
    "fire": "volcanic",
    "earth": "rocky",
    "wind": "mushroom",
    "water": "lake",
    "neutral": "forest",
}

BIOME_FRAME_BY_ID: dict[str, int] = {
    "volcanic": 32,
    "rocky": 33,
    "mushroom": 34,
    "lake": 35,
    "forest": 36,
    "sacred": 37,
}

MAJOR_ARCANA: list[str] = [
    "The Fool", "The Magician", "The High Priestess", "The Empress", "The Emperor",
    "The Hierophant", "The Lovers", "The Chariot", "Strength", "The Hermit",
    "Wheel of Fortune", "Justice", "The Hanged Man", "Death", "Temperance",
    "The Devil", "The Tower", "The Star", "The Moon", "The Sun", "Judgement",
    "The World",
]

NATION_LABELS: dict[str, str] = {
    "fire": "Fire Nation",
    "earth": "Earth Nation",
    "wind": "Wind Nation",
    "water": "Water Nation",
}


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    w: int
    h: int


@dataclass
class IslandPlacement:
    """A placed island, ready to be persisted."""
    id: str
    name: str
    x: int
    y: int
    size: str
    nation: str | None = None
    owner_nation: str | None = None
    biome: str | None = None
    occupation_status: str | None = None
    building_slots: dict | None = None
    buildings: list[dict] = field(default_factory=list)

    @property
    def rect(self) -> Rect:
        w, h = SIZE_BY_KEY[self.size]
        return Rect(self.x, self.y, w, h)


def rects_overlap(a: Rect, b: Rect) -> bool:
    return a.x < b.x + b.w and a.x + a.w > b.x and a.y < b.y + b.h and a.y + a.h > b.y


def can_place(occupied: list[Rect], rect: Rect) -> bool:
    return not any(rects_overlap(rect, other) for other in occupied)


def place_at_center(size_key: str, width: int, height: int) -> Rect:
    w, h = SIZE_BY_KEY.get(size_key, SIZE_BY_KEY["small"])
    return Rect((width - w) // 2, (height - h) // 2, w, h)


def place_random(
    size_key: str, occupied: list[Rect], width: int, height: int, rng: random.Random
) -> Rect | None:
    """Random non-overlapping position, or None after MAX_PLACEMENT_ATTEMPTS tries."""
    w, h = SIZE_BY_KEY.get(size_key, SIZE_BY_KEY["small"])
    max_x = width - w
    max_y = height - h
    if max_x < 0 or max_y < 0:
        return None
    for _ in range(MAX_PLACEMENT_ATTEMPTS):
        rect = Rect(rng.randint(0, max_x), rng.randint(0, max_y), w, h)
        if can_place(occupied, rect):
            return rect
    return None


def arcana_size_key(card_number: int) -> str:
    if card_number <= 7:
        return "small"
    if card_number <= 15:
        return "large"
    return "giant"


def arcana_name(card_number: int) -> str:
    if 0 <= card_number < len(MAJOR_ARCANA):
        return MAJOR_ARCANA[card_number]
    return f"Major {card_number}"


def pick_biome(faction: str, allow_resource: bool, rng: random.Random) -> str | None:
    if allow_resource and rng.random() < RESOURCE_CHANCE:
        return RESOURCE_BIOME_BY_FACTION.get(faction, "forest")
    return None


def _capital_building() -> dict:
    spec = get_building_spec(CAPITAL_BUILDING_ID)
    # now=0: the capital predates every player action
    return make_building_entry(spec, now=0, status=COMPLETED)


def generate_map_data(
    map_id: str,
    map_type: str = "nation",
    faction: str = "neutral",
    card_number: int | None = None,
    counts: dict[str, int] | None = None,
    width: int | None = None,
    height: int | None = None,
    rng: random.Random | None = None,
) -> list[IslandPlacement]:
    """Place the islands of one map without touching the database."""
    rng = rng or random.Random()
    width = width or settings.map_width
    height = height or settings.map_height
    faction = str(faction or "neutral").lower()
    wanted = {**DEFAULT_COUNTS, **(counts or {})}

    occupied: list[Rect] = []
    islands: list[IslandPlacement] = []

    # ---- Centre island ----
    if map_type == "nation":
        if faction != "neutral" and map_id != "joker":
            rect = place_at_center("giant", width, height)
            occupied.append(rect)
            islands.append(IslandPlacement(
                id=f"capital_{faction}",
                name=f"{NATION_LABELS.get(faction, faction.title())} Capital",
                x=rect.x,
                y=rect.y,
                size="giant",
                nation=faction,
                owner_nation=faction,
                biome=None,
                occupation_status=OccupationStatus.capital.value,
                building_slots={"layout": "3x3"},
                buildings=[_capital_building()],
            ))
    elif map_type == "major" and card_number is not None:
        size_key = arcana_size_key(card_number)
        rect = place_at_center(size_key, width, height)
        occupied.append(rect)
        islands.append(IslandPlacement(
            id=f"major_{card_number:02d}",
            name=f"Isle of {arcana_name(card_number)}",
            x=rect.x,
            y=rect.y,
            size=size_key,
            nation=faction,
            biome="sacred",
            occupation_status=OccupationStatus.sacred.value,
        ))

    # ---- Random islands ----
    index = 0
    for size_key in ("small", "medium", "large", "giant"):
        for _ in range(max(0, int(wanted.get(size_key, 0)))):
            rect = place_random(size_key, occupied, width, height, rng)
            if rect is None:
                logger.info("Map %s: could not place %s island, skipping", map_id, size_key)
                continue
            occupied.append(rect)
            index += 1
            biome = pick_biome(faction, size_key == "small", rng)
            label = "Resource Island" if biome else "Uninhabited Island"
            islands.append(IslandPlacement(
                id=f"{map_id}_island_{index}",
                name=f"{label} {index:03d}",
                x=rect.x,
                y=rect.y,
                size=size_key,
                nation=faction,
                biome=biome,
            ))

    return islands


def _to_island(map_id: str, placement: IslandPlacement) -> Island:
    return Island(
        map_id=map_id,
        id=placement.id,
        name=placement.name,
        x=placement.x,
        y=placement.y,
        size=IslandSize(placement.size),
        island_level=1,
        owner_id=None,
        owner_nation=placement.owner_nation,
        nation=placement.nation,
        biome=placement.biome,
        biome_frame=BIOME_FRAME_BY_ID.get(placement.biome) if placement.biome else None,
        occupation_status=(
            OccupationStatus(placement.occupation_status) if placement.occupation_status else None
        ),
        building_slots=placement.building_slots,
        buildings=list(placement.buildings),
        shop_inventory=[],
        construction_status=None,
    )


async def generate_map(
    db: AsyncSession,
    map_id: str,
    map_type: str = "nation",
    faction: str = "neutral",
    card_number: int | None = None,
    counts: dict[str, int] | None = None,
    rng: random.Random | None = None,
) -> list[Island]:
    """Generate and persist every island of ``map_id``."""
    placements = generate_map_data(
        map_id,
        map_type=map_type,
        faction=faction,
        card_number=card_number,
        counts=counts,
        rng=rng,
    )
    islands = [_to_island(map_id, placement) for placement in placements]
    db.add_all(islands)
    await db.commit()
    logger.info("Generated map %s (%s, %s): %d islands", map_id, map_type, faction, len(islands))
    return islands
