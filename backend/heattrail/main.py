"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from heattrail import __version__
from heattrail.config import get_settings
from heattrail.database import async_session_maker, close_db, init_db
from heattrail.routers import (
    health_router,
    heatmap_router,
    history_router,
    metrics_router,
    tracking_router,
)
from heattrail.services.persistence import SqlPersistenceGateway
from heattrail.services.tracker import LocationTracker

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting HeatTrail...")

    await init_db()
    logger.info("Database initialized")

    tracker = LocationTracker(SqlPersistenceGateway(async_session_maker), settings)
    await tracker.startup()
    app.state.tracker = tracker
    logger.info("Location tracker started")

    yield

    # Shutdown
    logger.info("Shutting down HeatTrail...")
    await tracker.shutdown()
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title="HeatTrail",
    description="Location history tracking with a visit heatmap",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(tracking_router)
app.include_router(heatmap_router)
app.include_router(history_router)


@app.get("/")
async def root():
    """Root endpoint - shows API info."""
    return {
        "name": "HeatTrail",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
