"""Boundary to the identity / virtual-economy service.

The engine only needs three calls from the economy backend: read a balance,
credit an amount and debit an amount (failing with InsufficientFunds).  The
backend cannot join the engine's database transaction, so every multi-step
money movement goes through CompensatingTransfer, which remembers the steps
that succeeded and reverses them if a later step (or the island commit) fails.

LedgerEconomyService is the table-backed implementation used by the service
and the tests.  It commits in its own session, exactly like a remote backend
would, so compensation paths are exercised for real.
"""

import logging
from abc import ABC, abstractmethod

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.data.currencies import resolve_currency
from app.models.currency_balance import CurrencyBalance
from app.services.errors import FatalInconsistencyError, InsufficientFundsError, ValidationError

logger = logging.getLogger(__name__)


def _validate_amount(amount: int) -> int:
    value = int(amount)
    if value <= 0:
        raise ValidationError("InvalidAmount", f"Amount must be positive, got {amount}")
    return value


class EconomyService(ABC):
    @abstractmethod
    async def get_balance(self, player_id: str, currency: str) -> int:
        """Current balance of ``currency`` (0 when the player holds none)."""

    @abstractmethod
    async def credit(self, player_id: str, currency: str, amount: int) -> int:
        """Add ``amount`` and return the new balance."""

    @abstractmethod
    async def debit(self, player_id: str, currency: str, amount: int) -> int:
        """Remove ``amount`` and return the new balance.

        Raises InsufficientFundsError without changing anything when the
        balance is too low.
        """

    async def get_balances(self, player_id: str, currencies: list[str]) -> dict[str, int]:
        return {code: await self.get_balance(player_id, code) for code in currencies}


class LedgerEconomyService(EconomyService):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_balance(self, player_id: str, currency: str) -> int:
        code = resolve_currency(currency)
        async with self._session_factory() as session:
            result = await session.execute(
                select(CurrencyBalance.amount).where(
                    CurrencyBalance.player_id == player_id,
                    CurrencyBalance.currency == code,
                )
            )
            return int(result.scalar_one_or_none() or 0)

    async def credit(self, player_id: str, currency: str, amount: int) -> int:
        code = resolve_currency(currency)
        value = _validate_amount(amount)
        async with self._session_factory() as session:
            # Two attempts: the row may be created by a concurrent credit
            for _ in range(2):
                result = await session.execute(
                    update(CurrencyBalance)
                    .where(CurrencyBalance.player_id == player_id, CurrencyBalance.currency == code)
                    .values(amount=CurrencyBalance.amount + value)
                )
                if result.rowcount == 0:
                    session.add(CurrencyBalance(player_id=player_id, currency=code, amount=value))
                try:
                    await session.commit()
                    break
                except IntegrityError:
                    await session.rollback()
            else:
                raise RuntimeError(f"Could not credit {value} {code} to {player_id}")
        return await self.get_balance(player_id, code)

    async def debit(self, player_id: str, currency: str, amount: int) -> int:
        code = resolve_currency(currency)
        value = _validate_amount(amount)
        async with self._session_factory() as session:
            # Conditional decrement: never goes below zero, no read-then-write race
            result = await session.execute(
                update(CurrencyBalance)
                .where(
                    CurrencyBalance.player_id == player_id,
                    CurrencyBalance.currency == code,
                    CurrencyBalance.amount >= value,
                )
                .values(amount=CurrencyBalance.amount - value)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise InsufficientFundsError(
                    message=f"Not enough {code}: need {value}",
                    currency=code,
                    required=value,
                )
            await session.commit()
        return await self.get_balance(player_id, code)


async def ensure_affordable(economy: EconomyService, player_id: str, cost: dict[str, int]) -> None:
    """Raise InsufficientFundsError if any currency in ``cost`` is short."""
    for currency, amount in cost.items():
        if amount <= 0:
            continue
        balance = await economy.get_balance(player_id, currency)
        if balance < amount:
            raise InsufficientFundsError(
                message=f"Not enough {currency}: need {amount}, have {balance}",
                currency=currency,
                required=amount,
                balance=balance,
            )


class CompensatingTransfer:
    """Economy moves for one operation, reversible as a unit (newest first)."""

    def __init__(self, economy: EconomyService, operation: str):
        self.economy = economy
        self.operation = operation
        self._applied: list[tuple[str, str, str, int]] = []

    @property
    def applied(self) -> list[tuple[str, str, str, int]]:
        return list(self._applied)

    async def debit(self, player_id: str, currency: str, amount: int) -> None:
        if amount <= 0:
            return
        await self.economy.debit(player_id, currency, amount)
        self._applied.append(("debit", player_id, currency, amount))

    async def credit(self, player_id: str, currency: str, amount: int) -> None:
        if amount <= 0:
            return
        await self.economy.credit(player_id, currency, amount)
        self._applied.append(("credit", player_id, currency, amount))

    async def debit_all(self, player_id: str, cost: dict[str, int]) -> None:
        for currency, amount in cost.items():
            await self.debit(player_id, currency, amount)

    async def compensate(self) -> None:
        """Reverse every applied step.

        A reversal that fails leaves money created or destroyed; it is logged
        at CRITICAL with everything needed for manual reconciliation and then
        reported as FatalInconsistencyError once all other steps were tried.
        """
        failed: list[dict] = []
        while self._applied:
            kind, player_id, currency, amount = self._applied.pop()
            try:
                if kind == "debit":
                    await self.economy.credit(player_id, currency, amount)
                else:
                    await self.economy.debit(player_id, currency, amount)
            except Exception:
                logger.critical(
                    "FATAL INCONSISTENCY in %s: could not reverse %s of %d %s for player %s; "
                    "manual reconciliation required",
                    self.operation, kind, amount, currency, player_id,
                    exc_info=True,
                )
                failed.append(
                    {"kind": kind, "player_id": player_id, "currency": currency, "amount": amount}
                )
            else:
                logger.warning(
                    "%s: compensated %s of %d %s for player %s",
                    self.operation, kind, amount, currency, player_id,
                )
        if failed:
            raise FatalInconsistencyError(
                message=f"{self.operation} could not be fully reversed",
                unreversed=failed,
            )
