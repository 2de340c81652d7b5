"""The single building slot attached to every island.

Slot states:
  empty         no entry, or only demolished entries after a rebuild
  constructing  one entry with status "constructing"
  completed     one entry with status "completed"
  demolished    the entry was demolished; a 24h cooldown runs before rebuild

Island records carry layout metadata (building_slots) that hints at several
slots, but only one non-demolished entry may exist at any time.  Every write
of ``island.buildings`` goes through ``assert_single_occupancy``.
"""

from __future__ import annotations

from app.data.buildings import BuildingSpec

CONSTRUCTING = "constructing"
COMPLETED = "completed"
DEMOLISHED = "demolished"


class SlotOccupancyError(RuntimeError):
    """More than one non-demolished building on an island."""


def active_building(buildings: list[dict] | None) -> dict | None:
    """The non-demolished entry, or None."""
    for entry in buildings or []:
        if entry and entry.get("status") != DEMOLISHED:
            return entry
    return None


def active_building_id(buildings: list[dict] | None) -> str | None:
    entry = active_building(buildings)
    return entry.get("building_id") if entry else None


def compute_construction_status(buildings: list[dict] | None) -> str | None:
    if any(entry and entry.get("status") == CONSTRUCTING for entry in buildings or []):
        return CONSTRUCTING
    return None


def assert_single_occupancy(buildings: list[dict]) -> list[dict]:
    occupied = [entry for entry in buildings if entry and entry.get("status") != DEMOLISHED]
    if len(occupied) > 1:
        ids = [entry.get("building_id") for entry in occupied]
        raise SlotOccupancyError(f"Island would hold {len(occupied)} active buildings: {ids}")
    return buildings


def make_building_entry(
    spec: BuildingSpec,
    now: int,
    status: str = CONSTRUCTING,
    level: int | None = None,
) -> dict:
    """New slot entry for ``spec``; completed entries start and end at ``now``."""
    lv = level if level is not None else spec.level
    logic = spec.logic_size
    visual = spec.visual_size
    duration_ms = spec.build_time_ms if status == CONSTRUCTING else 0
    max_hp = spec.max_hp(lv)
    return {
        "building_id": spec.building_id,
        "status": status,
        "level": lv,
        "start_time": now,
        "completion_time": now + duration_ms,
        "duration_ms": duration_ms,
        "helpers": [],
        "width": max(1, logic.x),
        "height": max(1, logic.y),
        "visual_width": max(1, visual.x),
        "visual_height": max(1, visual.y),
        "tile_index": spec.tile_index,
        "max_hp": max_hp,
        "current_hp": max_hp,
        "x": 0,
        "y": 0,
    }
