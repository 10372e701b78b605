"""Health check endpoint."""

from fastapi import APIRouter

from heattrail import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Liveness probe."""
    return {"status": "ok", "version": __version__}
