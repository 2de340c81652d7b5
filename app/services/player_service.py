"""Read access to the identity service's player data.

Profiles (display name, nation, race), the active ship's cargo capacity and
HP are owned by the identity service; the engine reads them through this
module and writes back only the tutorial flag and HP restored by a hot spring.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.player_profile import PlayerProfile

# Players who have not picked a nation explicitly belong to their race's nation
NATION_BY_RACE: dict[str, str] = {
    "Human": "fire",
    "Goblin": "water",
    "Orc": "earth",
    "Elf": "wind",
}


async def get_player_profile(db: AsyncSession, player_id: str) -> PlayerProfile | None:
    result = await db.execute(select(PlayerProfile).where(PlayerProfile.player_id == player_id))
    return result.scalar_one_or_none()


def resolve_player_nation(profile: PlayerProfile | None) -> str | None:
    if profile is None:
        return None
    if profile.nation:
        return profile.nation.lower()
    if profile.race and profile.race in NATION_BY_RACE:
        return NATION_BY_RACE[profile.race]
    return None


async def get_player_nation(db: AsyncSession, player_id: str) -> str | None:
    return resolve_player_nation(await get_player_profile(db, player_id))


async def get_cargo_capacity(db: AsyncSession, player_id: str) -> int:
    """Cargo capacity of the player's active ship; 0 without a ship."""
    profile = await get_player_profile(db, player_id)
    if profile is None:
        return 0
    return max(0, int(profile.cargo_capacity or 0))
