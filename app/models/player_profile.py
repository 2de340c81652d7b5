from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class PlayerProfile(Base):
    __tablename__ = "player_profiles"

    player_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    nation: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
    race: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
    # Cargo capacity of the player's active ship (0 when no ship is active)
    cargo_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hp: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    max_hp: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    tutorial_house_built: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
