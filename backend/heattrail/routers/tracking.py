"""Tracking control API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from heattrail.errors import PersistenceFailure
from heattrail.schemas.tracking import (
    LifecycleRequest,
    LifecycleResponse,
    TrackingStatusResponse,
)
from heattrail.services.tracker import LocationTracker, get_tracker

router = APIRouter(prefix="/api/tracking", tags=["tracking"])


@router.get("", response_model=TrackingStatusResponse)
async def get_tracking_status(
    tracker: LocationTracker = Depends(get_tracker),
) -> TrackingStatusResponse:
    """Get the current tracking state, derived at request time."""
    try:
        status = await tracker.status()
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return TrackingStatusResponse.from_status(status)


@router.post("/start", response_model=TrackingStatusResponse)
async def start_tracking(
    tracker: LocationTracker = Depends(get_tracker),
) -> TrackingStatusResponse:
    """Start location tracking."""
    try:
        status = await tracker.start()
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return TrackingStatusResponse.from_status(status)


@router.post("/stop", response_model=TrackingStatusResponse)
async def stop_tracking(
    tracker: LocationTracker = Depends(get_tracker),
) -> TrackingStatusResponse:
    """Stop location tracking and cancel the background job."""
    try:
        status = await tracker.stop()
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return TrackingStatusResponse.from_status(status)


@router.post("/lifecycle", response_model=LifecycleResponse)
async def host_lifecycle(
    request: LifecycleRequest,
    tracker: LocationTracker = Depends(get_tracker),
) -> LifecycleResponse:
    """Report a host lifecycle transition (resumed, paused, detached)."""
    try:
        armed = await tracker.lifecycle(request.event)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return LifecycleResponse(event=request.event, armed_path=armed)
