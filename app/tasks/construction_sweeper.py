"""Periodic completion sweep for islands under construction.

Completion is also checked whenever a client polls an island, so the sweep is
only a backstop: each pass opens a fresh session, completes everything whose
completion time has passed and logs, never propagates, its failures so that
one bad island or a transient database error does not stop the loop.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.construction_service import sweep_completed_constructions

logger = logging.getLogger(__name__)


async def sweep_once(
    session_factory: async_sessionmaker[AsyncSession], now: int | None = None
) -> int:
    """Run one sweep; returns how many constructions were completed (0 on failure)."""
    try:
        async with session_factory() as session:
            return await sweep_completed_constructions(session, now=now)
    except Exception:
        logger.exception("Construction sweep failed")
        return 0


async def run_sweeper(
    session_factory: async_sessionmaker[AsyncSession], interval_seconds: float
) -> None:
    """Sweep every ``interval_seconds`` until cancelled."""
    logger.info("Construction sweeper started (every %ss)", interval_seconds)
    try:
        while True:
            await sweep_once(session_factory)
            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        logger.info("Construction sweeper stopped")
        raise
