"""Heatmap aggregation: bucket samples by rounded coordinates and grade each bucket."""

import enum
from collections.abc import Sequence
from dataclasses import dataclass

from heattrail.config import Settings
from heattrail.geo import coord_key, parse_coord_key
from heattrail.schemas.sample import LocationSample


class HeatBand(str, enum.Enum):
    """Color band of a cell, from coolest to hottest."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"
    EXTREME = "extreme"


# Upper (exclusive) intensity bound for each band; anything above falls into EXTREME.
BAND_THRESHOLDS: list[tuple[float, HeatBand]] = [
    (0.15, HeatBand.LOW),
    (0.35, HeatBand.MODERATE),
    (0.65, HeatBand.HIGH),
    (0.9, HeatBand.VERY_HIGH),
]

BAND_COLORS = {
    HeatBand.LOW: "rgba(65, 105, 225, 0.4)",     # Royal Blue
    HeatBand.MODERATE: "rgba(50, 205, 50, 0.5)",  # Lime Green
    HeatBand.HIGH: "rgba(255, 255, 0, 0.5)",      # Yellow
    HeatBand.VERY_HIGH: "rgba(255, 165, 0, 0.6)", # Orange
    HeatBand.EXTREME: "rgba(255, 0, 0, 0.7)",     # Red
}


def get_band_for_intensity(intensity: float) -> HeatBand:
    """Step function from intensity to color band."""
    for upper, band in BAND_THRESHOLDS:
        if intensity < upper:
            return band
    return HeatBand.EXTREME


@dataclass(frozen=True, slots=True)
class HeatmapParams:
    precision: int = 3
    saturation: float = 25.0
    base_radius_m: float = 50.0
    radius_step_m: float = 5.0
    max_radius_m: float = 150.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "HeatmapParams":
        return cls(
            precision=settings.heatmap_precision,
            saturation=settings.heatmap_saturation,
            base_radius_m=settings.heatmap_base_radius_m,
            radius_step_m=settings.heatmap_radius_step_m,
            max_radius_m=settings.heatmap_max_radius_m,
        )


def intensity_for_count(visit_count: int, saturation: float) -> float:
    """Linear ramp clipped at 1.0."""
    return min(visit_count / saturation, 1.0)


def radius_for_count(visit_count: int, params: HeatmapParams) -> float:
    """Render radius growing with visits, clipped at ``max_radius_m``."""
    radius = params.base_radius_m + params.radius_step_m * max(visit_count - 1, 0)
    return min(radius, params.max_radius_m)


@dataclass(frozen=True, slots=True)
class HeatCell:
    """One rounded-coordinate bucket.

    ``latitude``/``longitude`` are the rounded key coordinates, not the mean
    of the member samples.
    """

    key: str
    latitude: float
    longitude: float
    visit_count: int
    intensity: float
    band: HeatBand
    color: str
    radius_m: float
    members: tuple[LocationSample, ...]


def recompute(log: Sequence[LocationSample], params: HeatmapParams = HeatmapParams()) -> list[HeatCell]:
    """Rebuild every cell from the full log, ordered by key.

    Stateless: the same log always yields the same keys, counts, bands and radii.
    """
    groups: dict[str, list[LocationSample]] = {}
    for sample in log:
        key = coord_key(sample.latitude, sample.longitude, params.precision)
        groups.setdefault(key, []).append(sample)

    cells = []
    for key in sorted(groups):
        members = groups[key]
        lat, lng = parse_coord_key(key)
        count = len(members)
        intensity = intensity_for_count(count, params.saturation)
        band = get_band_for_intensity(intensity)
        cells.append(
            HeatCell(
                key=key,
                latitude=lat,
                longitude=lng,
                visit_count=count,
                intensity=intensity,
                band=band,
                color=BAND_COLORS[band],
                radius_m=radius_for_count(count, params),
                members=tuple(members),
            )
        )
    return cells


class HeatmapAggregator:
    """Holds the cells computed from the last known history snapshot."""

    def __init__(self, params: HeatmapParams = HeatmapParams()):
        self._params = params
        self._cells: dict[str, HeatCell] = {}

    @property
    def params(self) -> HeatmapParams:
        return self._params

    def recompute(self, log: Sequence[LocationSample]) -> list[HeatCell]:
        cells = recompute(log, self._params)
        self._cells = {cell.key: cell for cell in cells}
        return cells

    def cells(self) -> list[HeatCell]:
        return list(self._cells.values())

    def get(self, key: str) -> HeatCell | None:
        return self._cells.get(key)

    def __len__(self) -> int:
        return len(self._cells)
