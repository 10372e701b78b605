"""API routers."""

from heattrail.routers.health import router as health_router
from heattrail.routers.heatmap import router as heatmap_router
from heattrail.routers.history import router as history_router
from heattrail.routers.metrics import router as metrics_router
from heattrail.routers.tracking import router as tracking_router

__all__ = [
    "health_router",
    "heatmap_router",
    "history_router",
    "metrics_router",
    "tracking_router",
]
