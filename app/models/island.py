import enum
from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class IslandSize(str, enum.Enum):
    small = "small"
    medium = "medium"
    large = "large"
    giant = "giant"


class OccupationStatus(str, enum.Enum):
    capital = "capital"
    sacred = "sacred"
    occupied = "occupied"
    demolished = "demolished"


class Island(Base):
    __tablename__ = "islands"

    # Islands are partitioned by map; ids are only unique within a map
    map_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    x: Mapped[int] = mapped_column(Integer, nullable=False)
    y: Mapped[int] = mapped_column(Integer, nullable=False)
    size: Mapped[IslandSize] = mapped_column(Enum(IslandSize), nullable=False)
    island_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    owner_id: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None, index=True)
    owner_nation: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
    nation: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
    biome: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
    biome_frame: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    occupation_status: Mapped[OccupationStatus | None] = mapped_column(
        Enum(OccupationStatus), nullable=True, default=None
    )
    # Layout metadata, e.g. {"layout": "3x3"}; the engine still allows one building
    building_slots: Mapped[dict | None] = mapped_column(JSON, nullable=True, default=None)
    # buildings: list of building entry dicts, at most one with status != "demolished"
    buildings: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # shop_pricing: {"buy_multiplier": float, "sell_multiplier": float,
    #                "item_prices": {item_id: {"buy_price": int, "sell_price": int}}}
    shop_pricing: Mapped[dict | None] = mapped_column(JSON, nullable=True, default=None)
    # shop_inventory: list of {"item_id": str, "count": int}
    shop_inventory: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    hot_spring_price: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    # Denormalized: "constructing" while any entry is constructing, else None
    construction_status: Mapped[str | None] = mapped_column(
        String(20), nullable=True, default=None, index=True
    )
    demolished_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True, default=None)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __mapper_args__ = {"version_id_col": version}
