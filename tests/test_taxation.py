"""Tests for nation sales tax and treasuries."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.services import nation_service
from app.services.nation_service import MAX_TAX_RATE_BPS, apply_tax, clamp_tax_rate_bps


class TestTaxSplit:
    @pytest.mark.parametrize("amount,bps", [(100, 1000), (99, 333), (1, 5000), (12345, 0), (7, 1)])
    def test_tax_plus_net_is_gross(self, amount, bps):
        split = apply_tax(amount, bps)
        assert split.tax + split.net == amount
        assert split.tax == amount * bps // 10000

    def test_rate_is_clamped(self):
        assert clamp_tax_rate_bps(9000) == MAX_TAX_RATE_BPS
        assert clamp_tax_rate_bps(-5) == 0
        assert clamp_tax_rate_bps("abc") == 0
        assert apply_tax(100, 9000).tax == 50

    def test_negative_amount_is_zero(self):
        split = apply_tax(-10, 1000)
        assert (split.gross, split.tax, split.net) == (0, 0, 0)


class TestTreasury:
    async def test_add_creates_treasury(self, db_session: AsyncSession):
        assert await nation_service.add_treasury(db_session, "Wind", 30) == 30
        assert await nation_service.add_treasury(db_session, "wind", 12) == 42

    async def test_unknown_nation_is_ignored(self, db_session: AsyncSession):
        assert await nation_service.add_treasury(db_session, "atlantis", 30) is None
        assert await nation_service.get_tax_rate_bps(db_session, None) == 0

    async def test_stored_rate_is_clamped(self, db_session: AsyncSession):
        assert await nation_service.set_tax_rate_bps(db_session, "earth", 7500) == MAX_TAX_RATE_BPS
        assert await nation_service.get_tax_rate_bps(db_session, "earth") == MAX_TAX_RATE_BPS

    async def test_set_rate_for_unknown_nation(self, db_session: AsyncSession):
        with pytest.raises(ValueError):
            await nation_service.set_tax_rate_bps(db_session, "atlantis", 100)

    async def test_ranking_lists_every_nation(self, db_session: AsyncSession):
        await nation_service.add_treasury(db_session, "water", 500)
        await nation_service.add_treasury(db_session, "fire", 100)
        ranking = await nation_service.treasury_ranking(db_session)
        assert [row["nation"] for row in ranking][:2] == ["water", "fire"]
        assert {row["nation"] for row in ranking} == {"fire", "earth", "wind", "water"}
        assert ranking[-1]["treasury_amount"] == 0
