from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class CurrencyBalance(Base):
    __tablename__ = "currency_balances"

    player_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Canonical currency or item code (aliases are resolved before storage)
    currency: Mapped[str] = mapped_column(String(64), primary_key=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
