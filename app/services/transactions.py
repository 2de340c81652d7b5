"""Bounded optimistic-concurrency retries around a single-record read-modify-write.

Rows that can be written concurrently (islands, harvest cursors, treasuries)
carry a ``version_id_col``.  A write that lost the race raises StaleDataError at
flush time; a lazily-created row that another request inserted first raises
IntegrityError.  Both roll the session back and the whole operation is re-run
against freshly loaded state, up to ``attempts`` times.
"""

import logging
import time
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.services.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def current_time_ms() -> int:
    return int(time.time() * 1000)


async def run_in_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    name: str = "transaction",
    attempts: int | None = None,
    on_conflict: Callable[[], Awaitable[None]] | None = None,
) -> T:
    """Run ``operation`` and commit, retrying on write conflicts.

    ``on_conflict`` runs after each rollback caused by a conflict; callers use
    it to undo side effects performed outside the session (e.g. debits).
    Domain errors raised by ``operation`` roll back and propagate unchanged.
    """
    max_attempts = max(1, attempts if attempts is not None else settings.transaction_max_attempts)
    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            await db.commit()
            return result
        except (StaleDataError, IntegrityError) as exc:
            await db.rollback()
            logger.warning(
                "%s: write conflict on attempt %d/%d (%s)",
                name, attempt, max_attempts, type(exc).__name__,
            )
            if on_conflict is not None:
                await on_conflict()
        except Exception:
            await db.rollback()
            raise
    raise ConflictError(message=f"{name} conflicted with a concurrent update, please try again")
