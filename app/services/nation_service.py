"""Nation treasuries and the sales tax that funds them.

Tax rule:
- Each nation sets a tax rate in basis points (1 bps = 0.01%).
- The rate is clamped to [0, 5000] (max 50%) wherever it is applied, even if
  the stored value is out of range.
- tax = floor(gross * bps / 10000), net = gross - tax; the island owner gets
  net and the nation's treasury gets tax.
- Islands without a recognised nation pay no tax.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.nation_treasury import NationTreasury
from app.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)

NATIONS: tuple[str, ...] = ("fire", "earth", "wind", "water")

MAX_TAX_RATE_BPS = 5000


@dataclass(frozen=True)
class TaxSplit:
    gross: int
    tax: int
    net: int
    bps: int


def clamp_tax_rate_bps(raw) -> int:
    try:
        bps = int(raw or 0)
    except (TypeError, ValueError):
        bps = 0
    return max(0, min(MAX_TAX_RATE_BPS, bps))


def apply_tax(amount: int, tax_rate_bps: int) -> TaxSplit:
    gross = max(0, int(amount or 0))
    bps = clamp_tax_rate_bps(tax_rate_bps)
    tax = (gross * bps) // 10000
    return TaxSplit(gross=gross, tax=tax, net=gross - tax, bps=bps)


def normalize_nation(nation: str | None) -> str | None:
    key = str(nation or "").strip().lower()
    return key if key in NATIONS else None


async def get_treasury(db: AsyncSession, nation: str | None) -> NationTreasury | None:
    key = normalize_nation(nation)
    if key is None:
        return None
    result = await db.execute(
        select(NationTreasury)
        .where(NationTreasury.nation == key)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_or_create_treasury(db: AsyncSession, nation: str) -> NationTreasury:
    treasury = await get_treasury(db, nation)
    if treasury is None:
        treasury = NationTreasury(nation=nation, treasury_amount=0, tax_rate_bps=0, grant_multiplier=1.0)
        db.add(treasury)
        await db.flush()
    return treasury


async def get_tax_rate_bps(db: AsyncSession, nation: str | None) -> int:
    treasury = await get_treasury(db, nation)
    if treasury is None:
        return 0
    return clamp_tax_rate_bps(treasury.tax_rate_bps)


async def set_tax_rate_bps(db: AsyncSession, nation: str, bps: int) -> int:
    """Store a nation's tax rate (clamped) and return the stored value."""
    key = normalize_nation(nation)
    if key is None:
        raise ValueError(f"Unknown nation: '{nation}'")
    value = clamp_tax_rate_bps(bps)

    async def _apply() -> int:
        treasury = await _get_or_create_treasury(db, key)
        treasury.tax_rate_bps = value
        await db.flush()
        return value

    return await run_in_transaction(db, _apply, name="set_tax_rate_bps")


async def credit_treasury(db: AsyncSession, nation: str | None, amount: int) -> int | None:
    """Add ``amount`` inside the caller's transaction (flush only, no commit).

    Lets an island write and the tax it produced commit together.
    """
    key = normalize_nation(nation)
    if key is None:
        return None
    treasury = await _get_or_create_treasury(db, key)
    treasury.treasury_amount = max(0, treasury.treasury_amount) + max(0, int(amount or 0))
    await db.flush()
    return treasury.treasury_amount


async def add_treasury(db: AsyncSession, nation: str | None, amount: int) -> int | None:
    """Add ``amount`` to a nation's treasury; returns the new total, or None
    when the nation is not recognised."""
    key = normalize_nation(nation)
    if key is None:
        return None

    total = await run_in_transaction(
        db, lambda: credit_treasury(db, key, amount), name="add_treasury"
    )
    logger.info("Treasury of %s +%d (now %d)", key, max(0, int(amount or 0)), total)
    return total


async def treasury_ranking(db: AsyncSession) -> list[dict]:
    """Every nation with its treasury, richest first."""
    result = await db.execute(select(NationTreasury).execution_options(populate_existing=True))
    stored = {t.nation: t for t in result.scalars().all()}
    rows = [
        {
            "nation": nation,
            "treasury_amount": max(0, stored[nation].treasury_amount) if nation in stored else 0,
            "tax_rate_bps": clamp_tax_rate_bps(stored[nation].tax_rate_bps) if nation in stored else 0,
        }
        for nation in NATIONS
    ]
    rows.sort(key=lambda row: row["treasury_amount"], reverse=True)
    return rows
