"""Tests for the island registry: lookups, ownership queries and transfers."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.island import IslandSize
from app.services import registry_service
from app.services.building_slot import CONSTRUCTING, make_building_entry
from app.data.buildings import get_building_spec
from app.services.errors import IslandNotFoundError

NOW = 1_700_000_000_000


class TestLookup:
    async def test_get_island_by_map_and_id(self, db_session: AsyncSession, make_island):
        await make_island("isle_1", map_id="fire")
        island = await registry_service.get_island(db_session, "fire", "isle_1")
        assert island is not None
        assert island.id == "isle_1"

    async def test_same_id_on_two_maps(self, db_session: AsyncSession, make_island):
        await make_island("isle_1", map_id="fire", nation="fire")
        await make_island("isle_1", map_id="water", nation="water")
        water = await registry_service.get_island(db_session, "water", "isle_1")
        assert water.nation == "water"

    async def test_require_missing_island(self, db_session: AsyncSession):
        with pytest.raises(IslandNotFoundError) as exc:
            await registry_service.require_island(db_session, "fire", "nowhere")
        assert exc.value.code == "IslandNotFound"
        assert exc.value.status_code == 404

    async def test_resolve_without_map_searches_all_maps(self, db_session: AsyncSession, make_island):
        await make_island("lonely", map_id="wind", nation="wind")
        island = await registry_service.resolve_island(db_session, "", "lonely")
        assert island.map_id == "wind"

    async def test_resolve_missing_raises(self, db_session: AsyncSession):
        with pytest.raises(IslandNotFoundError):
            await registry_service.resolve_island(db_session, None, "ghost")


class TestOwnership:
    async def test_owned_islands_across_maps(self, db_session: AsyncSession, make_island):
        await make_island("a", map_id="fire", owner_id="alice")
        await make_island("b", map_id="water", owner_id="alice", nation="water")
        await make_island("c", map_id="fire", owner_id="bob")

        owned = await registry_service.list_owned_islands(db_session, "alice")
        assert [(i.map_id, i.id) for i in owned] == [("fire", "a"), ("water", "b")]
        assert await registry_service.list_owned_map_ids(db_session, "alice") == ["fire", "water"]

    async def test_owned_islands_filtered_by_map(self, db_session: AsyncSession, make_island):
        await make_island("a", map_id="fire", owner_id="alice")
        await make_island("b", map_id="water", owner_id="alice", nation="water")
        owned = await registry_service.list_owned_islands(db_session, "alice", "water")
        assert [i.id for i in owned] == ["b"]

    async def test_transfer_moves_every_island(self, db_session: AsyncSession, make_island):
        await make_island("a", map_id="fire", owner_id="alice")
        await make_island("b", map_id="water", owner_id="alice", nation="water")
        await make_island("c", map_id="fire", owner_id="bob")

        result = await registry_service.transfer_owned_islands(db_session, "alice", "carol", "earth")

        assert result == {"transferred": 2, "map_ids": ["fire", "water"]}
        assert await registry_service.list_owned_islands(db_session, "alice") == []
        carol = await registry_service.list_owned_islands(db_session, "carol")
        assert {i.id for i in carol} == {"a", "b"}
        assert all(i.owner_nation == "earth" for i in carol)
        bob = await registry_service.list_owned_islands(db_session, "bob")
        assert [i.id for i in bob] == ["c"]


class TestConstructingQuery:
    async def test_lists_only_constructing(self, db_session: AsyncSession, make_island):
        entry = make_building_entry(get_building_spec("tavern"), NOW)
        await make_island("busy", owner_id="alice", buildings=[entry], construction_status=CONSTRUCTING)
        await make_island("idle")

        islands = await registry_service.list_constructing_islands(db_session)
        assert [i.id for i in islands] == ["busy"]


class TestDetails:
    async def test_upgrade_info_below_max_level(self, make_island):
        island = await make_island("home", owner_id="alice", island_level=2)
        details = registry_service.island_details(island, NOW)
        assert details["upgrade_info"] == {
            "next_level": 3,
            "cost": {"PS": 1500, "stone": 300},
            "building_id": "my_house",
        }
        assert details["coordinate"] == {"x": 10, "y": 10}
        assert details["size"] == "small"

    async def test_no_upgrade_info_at_max_level(self, make_island):
        island = await make_island("home", owner_id="alice", island_level=5)
        assert registry_service.island_details(island, NOW)["upgrade_info"] is None

    async def test_remaining_seconds_of_construction(self, make_island):
        entry = make_building_entry(get_building_spec("tavern"), NOW)
        island = await make_island(
            "busy", size=IslandSize.small, owner_id="alice", buildings=[entry],
            construction_status=CONSTRUCTING,
        )
        details = registry_service.island_details(island, NOW + 200_500)
        assert details["active_building"]["building_id"] == "tavern"
        assert details["remaining_seconds"] == 1000
