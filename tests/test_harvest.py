"""Tests for resource harvesting from biome islands."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.harvest_cursor import HarvestCursor
from app.services import harvest_service
from app.services.economy import LedgerEconomyService
from app.services.errors import PreconditionError
from app.services.harvest_service import (
    HARVEST_INTERVAL_MS,
    advance_cursor,
    available_units,
    next_unit_in_ms,
)

NOW = 1_700_000_000_000
MINUTE_MS = 60 * 1000


async def set_cursor(db: AsyncSession, last_collected_at: int, island_id: str = "rich",
                     player_id: str = "alice", map_id: str = "fire") -> None:
    db.add(HarvestCursor(
        map_id=map_id, island_id=island_id, player_id=player_id, last_collected_at=last_collected_at,
    ))
    await db.commit()


class TestAccrual:
    def test_whole_intervals_only(self):
        assert available_units(NOW - 25 * MINUTE_MS, NOW, 10) == 2

    def test_capped_by_capacity(self):
        assert available_units(NOW - 10 * HARVEST_INTERVAL_MS, NOW, 3) == 3

    def test_clock_skew_gives_nothing(self):
        assert available_units(NOW + MINUTE_MS, NOW, 3) == 0

    def test_next_unit(self):
        assert next_unit_in_ms(NOW - 25 * MINUTE_MS, NOW, 2, 3) == 5 * MINUTE_MS

    def test_full_hold_has_no_countdown(self):
        assert next_unit_in_ms(NOW - 60 * MINUTE_MS, NOW, 3, 3) == 0

    def test_advance_keeps_the_partial_interval(self):
        assert advance_cursor(NOW - 25 * MINUTE_MS, NOW, 10) == (2, NOW - 5 * MINUTE_MS)

    def test_advance_past_a_full_hold_drops_the_surplus(self):
        assert advance_cursor(NOW - 104 * MINUTE_MS, NOW, 3) == (3, NOW - 4 * MINUTE_MS)

    def test_advance_with_nothing_accrued(self):
        assert advance_cursor(NOW - 4 * MINUTE_MS, NOW, 3) == (0, NOW - 4 * MINUTE_MS)


class TestHarvestStatus:
    async def test_first_visit_creates_cursor_one_interval_back(
        self, db_session: AsyncSession, make_island, make_profile
    ):
        await make_profile("alice", cargo_capacity=5)
        await make_island("rich", biome="volcanic")

        status = await harvest_service.get_harvest_status(db_session, "fire", "rich", "alice", now=NOW)

        assert status["currency"] == "RR"
        assert status["available"] == 1
        assert status["last_collected_at"] == NOW - HARVEST_INTERVAL_MS
        assert status["next_in_ms"] == HARVEST_INTERVAL_MS
        assert status["capacity"] == 5

        # reading again does not move the cursor
        again = await harvest_service.get_harvest_status(
            db_session, "fire", "rich", "alice", now=NOW + MINUTE_MS
        )
        assert again["last_collected_at"] == NOW - HARVEST_INTERVAL_MS

    async def test_island_without_resources(self, db_session: AsyncSession, make_island, make_profile):
        await make_profile("alice", cargo_capacity=5)
        await make_island("barren", biome=None)
        with pytest.raises(PreconditionError) as exc:
            await harvest_service.get_harvest_status(db_session, "fire", "barren", "alice", now=NOW)
        assert exc.value.code == "IslandNotHarvestable"

    async def test_no_ship(self, db_session: AsyncSession, make_island, make_profile):
        await make_profile("alice", cargo_capacity=0)
        await make_island("rich", biome="forest")
        with pytest.raises(PreconditionError) as exc:
            await harvest_service.get_harvest_status(db_session, "fire", "rich", "alice", now=NOW)
        assert exc.value.code == "NoCargoCapacity"


class TestCollect:
    async def test_partial_interval_carries_over(
        self, db_session: AsyncSession, economy, make_island, make_profile
    ):
        await make_profile("alice", cargo_capacity=3)
        await make_island("rich", biome="volcanic")
        await set_cursor(db_session, NOW - 25 * MINUTE_MS)

        result = await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)

        assert result["collected"] == 2
        assert result["currency"] == "RR"
        assert result["balance"] == 2
        assert result["last_collected_at"] == NOW - 5 * MINUTE_MS
        assert result["remainder_ms"] == 5 * MINUTE_MS
        assert await economy.get_balance("alice", "RR") == 2

    async def test_collect_is_capped_by_cargo(
        self, db_session: AsyncSession, economy, make_island, make_profile
    ):
        await make_profile("alice", cargo_capacity=3)
        await make_island("rich", biome="lake")
        await set_cursor(db_session, NOW - 100 * MINUTE_MS)

        result = await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)
        assert result["collected"] == 3
        # the 7 intervals the hold could not take are forfeit, not banked
        assert result["last_collected_at"] == NOW
        assert result["remainder_ms"] == 0

    async def test_nothing_yet(self, db_session: AsyncSession, economy, make_island, make_profile):
        await make_profile("alice", cargo_capacity=3)
        await make_island("rich", biome="rocky")
        await set_cursor(db_session, NOW - 4 * MINUTE_MS)

        with pytest.raises(PreconditionError) as exc:
            await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)
        assert exc.value.code == "NothingToCollect"
        assert exc.value.details["next_in_ms"] == 6 * MINUTE_MS
        assert await economy.get_balance("alice", "RG") == 0

    async def test_second_collect_at_same_instant_gets_nothing(
        self, db_session: AsyncSession, economy, make_island, make_profile
    ):
        await make_profile("alice", cargo_capacity=3)
        await make_island("rich", biome="volcanic")
        await set_cursor(db_session, NOW - 30 * MINUTE_MS)

        first = await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)
        assert first["collected"] == 3
        with pytest.raises(PreconditionError) as exc:
            await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)
        assert exc.value.code == "NothingToCollect"
        assert await economy.get_balance("alice", "RR") == 3

    async def test_backlog_beyond_the_hold_pays_out_once(
        self, db_session: AsyncSession, economy, make_island, make_profile
    ):
        await make_profile("alice", cargo_capacity=3)
        await make_island("rich", biome="volcanic")
        await set_cursor(db_session, NOW - 104 * MINUTE_MS)

        first = await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)
        assert first["collected"] == 3
        assert first["last_collected_at"] == NOW - 4 * MINUTE_MS

        with pytest.raises(PreconditionError) as exc:
            await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)
        assert exc.value.code == "NothingToCollect"
        assert exc.value.details["next_in_ms"] == 6 * MINUTE_MS
        assert await economy.get_balance("alice", "RR") == 3

    async def test_concurrent_collects_pay_once(
        self, db_session: AsyncSession, session_factory, economy, make_island, make_profile, monkeypatch
    ):
        await make_profile("alice", cargo_capacity=3)
        await make_island("rich", biome="volcanic")
        await set_cursor(db_session, NOW - 30 * MINUTE_MS)

        real_get_cursor = harvest_service._get_cursor
        raced = False

        async def racing_get_cursor(db, map_id, island_id, player_id):
            # A second session collects between this session's cursor read and its write
            nonlocal raced
            cursor = await real_get_cursor(db, map_id, island_id, player_id)
            if db is db_session and not raced:
                raced = True
                async with session_factory() as other:
                    await harvest_service.collect_resource(
                        other, economy, map_id, island_id, player_id, now=NOW
                    )
            return cursor

        monkeypatch.setattr(harvest_service, "_get_cursor", racing_get_cursor)

        with pytest.raises(PreconditionError) as exc:
            await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)

        assert exc.value.code == "NothingToCollect"
        assert raced
        assert await economy.get_balance("alice", "RR") == 3
        status = await harvest_service.get_harvest_status(db_session, "fire", "rich", "alice", now=NOW)
        assert status["last_collected_at"] == NOW

    async def test_no_elapsed_time_is_counted_twice(
        self, db_session: AsyncSession, economy, make_island, make_profile
    ):
        await make_profile("alice", cargo_capacity=100)
        await make_island("rich", biome="mushroom")
        start = NOW - 95 * MINUTE_MS
        await set_cursor(db_session, start)

        total = 0
        for offset in (0, 7, 23, 31):
            now = NOW + offset * MINUTE_MS
            try:
                result = await harvest_service.collect_resource(
                    db_session, economy, "fire", "rich", "alice", now=now
                )
            except PreconditionError:
                continue
            total += result["collected"]

        final_now = NOW + 31 * MINUTE_MS
        assert total == (final_now - start) // HARVEST_INTERVAL_MS
        assert await economy.get_balance("alice", "RY") == total

    async def test_players_have_separate_cursors(
        self, db_session: AsyncSession, economy, make_island, make_profile
    ):
        await make_profile("alice", cargo_capacity=3)
        await make_profile("bob", cargo_capacity=3)
        await make_island("rich", biome="volcanic")
        await set_cursor(db_session, NOW - 30 * MINUTE_MS, player_id="alice")

        alice = await harvest_service.collect_resource(db_session, economy, "fire", "rich", "alice", now=NOW)
        bob = await harvest_service.collect_resource(db_session, economy, "fire", "rich", "bob", now=NOW)
        assert alice["collected"] == 3
        assert bob["collected"] == 1

    async def test_failed_credit_restores_cursor(
        self, db_session: AsyncSession, session_factory, make_island, make_profile
    ):
        class CreditOutage(LedgerEconomyService):
            async def credit(self, player_id, currency, amount):
                raise RuntimeError("economy backend unavailable")

        await make_profile("alice", cargo_capacity=3)
        await make_island("rich", biome="volcanic")
        await set_cursor(db_session, NOW - 25 * MINUTE_MS)

        with pytest.raises(RuntimeError):
            await harvest_service.collect_resource(
                db_session, CreditOutage(session_factory), "fire", "rich", "alice", now=NOW
            )

        status = await harvest_service.get_harvest_status(db_session, "fire", "rich", "alice", now=NOW)
        assert status["last_collected_at"] == NOW - 25 * MINUTE_MS
        assert status["available"] == 2
