"""Heatmap API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from heattrail.schemas.heatmap import HeatCellDetailResponse, HeatCellResponse
from heattrail.services.tracker import LocationTracker, get_tracker

router = APIRouter(prefix="/api/heatmap", tags=["heatmap"])


@router.get("", response_model=list[HeatCellResponse])
async def get_heat_cells(
    tracker: LocationTracker = Depends(get_tracker),
) -> list[HeatCellResponse]:
    """Get all heatmap cells for map overlay."""
    return [HeatCellResponse.from_cell(cell) for cell in tracker.heat_cells()]


@router.get("/{key}", response_model=HeatCellDetailResponse)
async def get_heat_cell(
    key: str,
    tracker: LocationTracker = Depends(get_tracker),
) -> HeatCellDetailResponse:
    """Get one cell and the samples it aggregates."""
    cell = tracker.heat_cell(key)
    if cell is None:
        raise HTTPException(status_code=404, detail=f"Heat cell {key} not found")
    return HeatCellDetailResponse.from_cell(cell)
