from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.models.base import Base  # noqa: F401 - registers every model on Base.metadata


def _connect_args(database_url: str) -> dict:
    # The completion sweeper and request sessions write concurrently; let SQLite wait for the lock
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"timeout": settings.sqlite_busy_timeout_seconds}
    return {}


engine = create_async_engine(
    settings.database_url, echo=False, connect_args=_connect_args(settings.database_url)
)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
