import os
import tempfile

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import get_db
from app.dependencies import get_economy
from app.main import app
from app.models.base import Base
from app.models.island import Island, IslandSize, OccupationStatus
from app.models.player_profile import PlayerProfile
from app.services.economy import LedgerEconomyService


@pytest.fixture
async def db_engine():
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(db_fd)
    test_db_url = f"sqlite+aiosqlite:///{db_path}"
    engine = create_async_engine(test_db_url, connect_args={"check_same_thread": False})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def economy(session_factory) -> LedgerEconomyService:
    """Ledger-backed economy committing in its own sessions, like the real backend."""
    return LedgerEconomyService(session_factory)


@pytest.fixture
async def client() -> AsyncClient:
    """HTTP client that does NOT override the DB (for endpoints that don't need DB)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_client(db_session: AsyncSession, economy: LedgerEconomyService) -> AsyncClient:
    """HTTP client with DB and economy dependencies overridden to use the test SQLite DB."""

    async def override_get_db():
        yield db_session

    async def override_get_economy():
        return economy

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_economy] = override_get_economy
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_island(db_session: AsyncSession):
    """Factory that inserts and commits an island (small, unowned, empty slot by default)."""

    async def _make(
        island_id: str = "isle_1",
        map_id: str = "fire",
        size: IslandSize = IslandSize.small,
        owner_id: str | None = None,
        nation: str | None = "fire",
        biome: str | None = None,
        occupation_status: OccupationStatus | None = None,
        buildings: list[dict] | None = None,
        **fields,
    ) -> Island:
        island = Island(
            map_id=map_id,
            id=island_id,
            name=f"Island {island_id}",
            x=10,
            y=10,
            size=size,
            island_level=fields.pop("island_level", 1),
            owner_id=owner_id,
            owner_nation=nation if owner_id else None,
            nation=nation,
            biome=biome,
            occupation_status=occupation_status,
            buildings=buildings or [],
            shop_inventory=fields.pop("shop_inventory", []),
            **fields,
        )
        db_session.add(island)
        await db_session.commit()
        return island

    return _make


@pytest.fixture
def make_profile(db_session: AsyncSession):
    """Factory that inserts and commits a player profile."""

    async def _make(
        player_id: str,
        display_name: str | None = None,
        nation: str | None = "fire",
        race: str | None = None,
        cargo_capacity: int = 0,
        hp: int = 100,
        max_hp: int = 100,
    ) -> PlayerProfile:
        profile = PlayerProfile(
            player_id=player_id,
            display_name=display_name or player_id.title(),
            nation=nation,
            race=race,
            cargo_capacity=cargo_capacity,
            hp=hp,
            max_hp=max_hp,
            tutorial_house_built=False,
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make
