from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class HarvestCursor(Base):
    """Per-(island, player) timestamp of the last resource collection."""

    __tablename__ = "harvest_cursors"

    map_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    island_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    player_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_collected_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
