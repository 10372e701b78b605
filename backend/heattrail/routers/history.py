"""Location history API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from heattrail.errors import PersistenceFailure
from heattrail.schemas.heatmap import HistoryResponse, SampleResponse
from heattrail.services.tracker import LocationTracker, get_tracker

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("", response_model=HistoryResponse)
async def get_history(
    tracker: LocationTracker = Depends(get_tracker),
    limit: int | None = Query(default=None, ge=1, le=100_000, description="Most recent N samples"),
) -> HistoryResponse:
    """List stored samples, oldest first."""
    samples = tracker.history(limit)
    return HistoryResponse(
        total=len(tracker.pipeline.store),
        capacity=tracker.pipeline.store.capacity,
        samples=[SampleResponse.from_sample(s) for s in samples],
    )


@router.delete("", status_code=204)
async def clear_history(tracker: LocationTracker = Depends(get_tracker)) -> None:
    """Delete all samples, the last tracking time and the background run counter."""
    try:
        await tracker.clear()
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
