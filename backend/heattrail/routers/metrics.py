"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from heattrail.services.tracker import LocationTracker, get_tracker
from heattrail.services.tracking_state import TrackingState

router = APIRouter(tags=["metrics"])


async def collect_metrics(tracker: LocationTracker) -> bytes:
    """Collect all metrics and return Prometheus format."""
    registry = CollectorRegistry()

    samples_stored = Gauge(
        "heattrail_samples_stored",
        "Number of samples in the location history",
        registry=registry,
    )
    history_capacity = Gauge(
        "heattrail_history_capacity",
        "Maximum number of samples kept",
        registry=registry,
    )
    heat_cells = Gauge(
        "heattrail_heat_cells",
        "Number of heatmap cells",
        registry=registry,
    )
    tracking_state = Gauge(
        "heattrail_tracking_state",
        "Current tracking state (1 for the active state, 0 otherwise)",
        ["state"],
        registry=registry,
    )
    background_runs = Gauge(
        "heattrail_consecutive_background_runs",
        "Consecutive successful background runs",
        registry=registry,
    )
    last_sample = Gauge(
        "heattrail_last_sample_timestamp",
        "Time of the last acquired fix (Unix seconds)",
        registry=registry,
    )

    status = await tracker.status()
    samples_stored.set(status.sample_count)
    history_capacity.set(tracker.pipeline.store.capacity)
    heat_cells.set(status.cell_count)
    for state in TrackingState:
        tracking_state.labels(state=state.value).set(1 if state is status.state else 0)
    background_runs.set(status.background_runs)
    if status.last_sample_ms is not None:
        last_sample.set(status.last_sample_ms / 1000.0)

    return generate_latest(registry)


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(tracker: LocationTracker = Depends(get_tracker)) -> PlainTextResponse:
    """Prometheus metrics endpoint."""
    content = await collect_metrics(tracker)
    return PlainTextResponse(content=content, media_type=CONTENT_TYPE_LATEST)
