import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import AsyncSessionLocal
from app.routers import islands, nations, resources, shop
from app.tasks.construction_sweeper import run_sweeper


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = None
    if settings.construction_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            run_sweeper(AsyncSessionLocal, settings.construction_sweep_interval_seconds)
        )
    yield
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(
    title="Archipelago Island Engine",
    description="Island placement, construction, harvesting and shops for a multiplayer sea world",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://127.0.0.1:8000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(islands.router)
app.include_router(islands.islands_meta_router)
app.include_router(resources.router)
app.include_router(shop.router)
app.include_router(nations.router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
