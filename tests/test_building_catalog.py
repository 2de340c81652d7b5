"""Tests for the static building and item catalogs.

Covers:
- Lookup by id and level, unknown ids
- Footprint fallback from slots_required
- HP formula per level
- Size tags and list filtering
- Load-time validation of malformed definitions
- Currency alias resolution
"""

import pytest

from app.data.buildings import (
    BUILDINGS,
    HOME_BUILDING_ID,
    MAX_ISLAND_LEVEL,
    BuildingCategory,
    BuildingSpec,
    CatalogError,
    Footprint,
    _validate,
    compute_max_hp,
    get_building_spec,
    infer_logic_size,
    list_buildings,
)
from app.data.currencies import resolve_currency
from app.data.items import ItemCategory, get_item


class TestLookup:
    def test_known_building(self):
        spec = get_building_spec("watchtower")
        assert spec is not None
        assert spec.name == "Watchtower"
        assert spec.cost == {"wood": 100, "stone": 50, "gold": 200}
        assert spec.build_time_ms == 1_800_000

    def test_unknown_building_returns_none(self):
        assert get_building_spec("space_elevator") is None

    def test_home_has_one_definition_per_level(self):
        for level in range(1, MAX_ISLAND_LEVEL + 1):
            spec = get_building_spec(HOME_BUILDING_ID, level)
            assert spec is not None
            assert spec.level == level
        assert get_building_spec(HOME_BUILDING_ID, MAX_ISLAND_LEVEL + 1) is None

    def test_home_default_level_is_one(self):
        assert get_building_spec(HOME_BUILDING_ID).level == 1

    def test_non_home_level_only_scales_hp(self):
        base = get_building_spec("tavern")
        lv3 = get_building_spec("tavern", 3)
        assert lv3.cost == base.cost
        assert lv3.max_hp() == 140


class TestFootprint:
    @pytest.mark.parametrize(
        "slots,expected",
        [(1, Footprint(1, 1)), (2, Footprint(2, 1)), (4, Footprint(2, 2)), (9, Footprint(3, 3))],
    )
    def test_fallback_from_slots(self, slots, expected):
        assert infer_logic_size(slots) == expected

    def test_unknown_slot_count_falls_back_to_single_cell(self):
        assert infer_logic_size(None) == Footprint(1, 1)

    def test_visual_footprint_may_exceed_logical(self):
        lighthouse = get_building_spec("lighthouse")
        assert lighthouse.logic_size == Footprint(1, 1)
        assert lighthouse.visual_size == Footprint(1, 3)

    def test_capital_is_three_by_three(self):
        capital = get_building_spec("capital")
        assert capital.logic_size == Footprint(3, 3)
        assert capital.tile_index == 576
        assert capital.buildable is False


class TestHp:
    def test_level_one(self):
        assert compute_max_hp(2, 2, 1) == 400

    def test_level_scaling(self):
        # 1 * 1 * 100 * (1 + 0.2 * 4)
        assert compute_max_hp(1, 1, 5) == 180

    def test_spec_max_hp_uses_logical_footprint(self):
        assert get_building_spec("shipyard").max_hp() == 400


class TestSizeTags:
    def test_tags(self):
        assert get_building_spec("tavern").size_tag == "small"
        assert get_building_spec("fortress").size_tag == "medium"
        assert get_building_spec("temple").size_tag == "large"

    def test_list_filters_by_island_size(self):
        small = list_buildings(island_size="small")
        assert small
        assert all(spec.size_tag == "small" for spec in small)

    def test_list_filters_by_category(self):
        commerce = {spec.building_id for spec in list_buildings(category="commerce")}
        assert commerce == {"weapon_shop", "armor_shop", "item_shop", "hot_spring"}

    def test_list_excludes_landmarks(self):
        assert "capital" not in {spec.building_id for spec in list_buildings()}


class TestValidation:
    def _spec(self, **overrides) -> BuildingSpec:
        fields = dict(
            building_id="hut",
            name="Hut",
            category=BuildingCategory.support,
            slots_required=1,
            build_time_seconds=60,
            cost={"wood": 10},
        )
        fields.update(overrides)
        return BuildingSpec(**fields)

    def test_valid_definition_passes(self):
        assert _validate(self._spec()).cost == {"wood": 10}

    def test_aliases_are_resolved_and_merged(self):
        spec = _validate(self._spec(cost={"Gold": 5, "gold": 10, "PT": 3}))
        assert spec.cost == {"gold": 15, "PS": 3}

    def test_non_positive_cost_rejected(self):
        with pytest.raises(CatalogError):
            _validate(self._spec(cost={"wood": 0}))

    def test_unknown_currency_rejected(self):
        with pytest.raises(CatalogError):
            _validate(self._spec(cost={"diamonds": 1}))

    def test_odd_slot_count_needs_explicit_footprint(self):
        with pytest.raises(CatalogError):
            _validate(self._spec(slots_required=3))
        assert _validate(self._spec(slots_required=3, size_logic=Footprint(3, 1)))

    def test_buildable_needs_build_time(self):
        with pytest.raises(CatalogError):
            _validate(self._spec(build_time_seconds=0))

    def test_loaded_catalog_costs_are_canonical(self):
        for spec in BUILDINGS.values():
            for code, amount in spec.cost.items():
                assert resolve_currency(code) == code
                assert amount > 0


class TestItems:
    def test_item_lookup(self):
        potion = get_item("potion")
        assert potion.category == ItemCategory.consumable
        assert potion.buy_price == 50
        assert potion.sell_price == 20

    def test_unknown_item(self):
        assert get_item("excalibur") is None

    def test_currency_aliases(self):
        assert resolve_currency("PT") == "PS"
        assert resolve_currency("rr") == "RR"
        assert resolve_currency("GOLD") == "gold"
        assert resolve_currency("bronze_sword") == "bronze_sword"
