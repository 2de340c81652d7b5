from sqlalchemy import BigInteger, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class NationTreasury(Base):
    __tablename__ = "nation_treasuries"

    nation: Mapped[str] = mapped_column(String(32), primary_key=True)
    treasury_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    # Stored as set by governance; clamped to [0, 5000] wherever it is applied
    tax_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    grant_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
