"""Schemas for tracking control and status."""

from datetime import datetime

from pydantic import BaseModel

from heattrail.services.scheduler import TrackingStatus
from heattrail.services.tracking_state import LifecycleEvent, SamplingPath, TrackingState
from heattrail.timeutils import dt_from_epoch_ms


class TrackingStatusResponse(BaseModel):
    """Current tracking view."""

    state: TrackingState
    is_tracking: bool
    armed_path: SamplingPath
    last_sample_at: datetime | None
    sample_count: int
    heat_cell_count: int
    consecutive_background_runs: int

    @classmethod
    def from_status(cls, status: TrackingStatus) -> "TrackingStatusResponse":
        return cls(
            state=status.state,
            is_tracking=status.is_tracking,
            armed_path=status.armed_path,
            last_sample_at=(
                dt_from_epoch_ms(status.last_sample_ms)
                if status.last_sample_ms is not None
                else None
            ),
            sample_count=status.sample_count,
            heat_cell_count=status.cell_count,
            consecutive_background_runs=status.background_runs,
        )


class LifecycleRequest(BaseModel):
    """Host lifecycle notification."""

    event: LifecycleEvent


class LifecycleResponse(BaseModel):
    event: LifecycleEvent
    armed_path: SamplingPath
