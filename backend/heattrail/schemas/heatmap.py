"""Schemas for heatmap cells and history."""

from datetime import datetime

from pydantic import BaseModel

from heattrail.schemas.sample import LocationSample, SampleSource
from heattrail.services.heatmap import HeatBand, HeatCell
from heattrail.timeutils import dt_from_epoch_ms


class SampleResponse(BaseModel):
    """One stored sample."""

    latitude: float
    longitude: float
    timestamp: int
    recorded_at: datetime
    accuracy: float | None
    source: SampleSource

    @classmethod
    def from_sample(cls, sample: LocationSample) -> "SampleResponse":
        return cls(
            latitude=sample.latitude,
            longitude=sample.longitude,
            timestamp=sample.timestamp_ms,
            recorded_at=dt_from_epoch_ms(sample.timestamp_ms),
            accuracy=sample.accuracy_m,
            source=sample.source,
        )


class HeatCellResponse(BaseModel):
    """Response schema for a heatmap cell."""

    key: str
    latitude: float
    longitude: float
    visit_count: int
    intensity: float
    band: HeatBand
    color: str
    radius_m: float

    @classmethod
    def from_cell(cls, cell: HeatCell) -> "HeatCellResponse":
        return cls(
            key=cell.key,
            latitude=cell.latitude,
            longitude=cell.longitude,
            visit_count=cell.visit_count,
            intensity=cell.intensity,
            band=cell.band,
            color=cell.color,
            radius_m=cell.radius_m,
        )


class HeatCellDetailResponse(HeatCellResponse):
    """A cell together with the samples it aggregates."""

    members: list[SampleResponse]

    @classmethod
    def from_cell(cls, cell: HeatCell) -> "HeatCellDetailResponse":
        base = HeatCellResponse.from_cell(cell)
        return cls(
            **base.model_dump(),
            members=[SampleResponse.from_sample(s) for s in cell.members],
        )


class HistoryResponse(BaseModel):
    total: int
    capacity: int
    samples: list[SampleResponse]
