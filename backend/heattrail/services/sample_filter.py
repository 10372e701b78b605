"""Accuracy and redundancy filter applied to every incoming fix."""

import enum
from dataclasses import dataclass

from heattrail.config import Settings
from heattrail.geo import haversine_m, is_valid_coordinate
from heattrail.schemas.sample import LocationSample, RawFix, SampleSource


class RejectReason(str, enum.Enum):
    """Why a fix was not stored."""

    LOW_ACCURACY = "low_accuracy"
    INVALID_COORDINATES = "invalid_coordinates"
    STATIONARY = "stationary"


@dataclass(frozen=True, slots=True)
class Accept:
    sample: LocationSample


@dataclass(frozen=True, slots=True)
class Reject:
    reason: RejectReason
    detail: str = ""


FilterResult = Accept | Reject


@dataclass(frozen=True, slots=True)
class FilterParams:
    """Thresholds for the accuracy gate and the stationary-point suppressor."""

    accuracy_threshold_m: float = 50.0
    min_distance_m: float = 10.0
    min_interval_ms: int = 120_000

    @classmethod
    def from_settings(cls, settings: Settings) -> "FilterParams":
        return cls(
            accuracy_threshold_m=settings.accuracy_threshold_m,
            min_distance_m=settings.min_distance_m,
            min_interval_ms=settings.min_interval_ms,
        )


def filter_fix(
    candidate: RawFix,
    last_accepted: LocationSample | None,
    *,
    source: SampleSource,
    params: FilterParams = FilterParams(),
    now_ms: int | None = None,
) -> FilterResult:
    """Decide whether a fix becomes a stored sample.

    Rules, in order:
      1. Reject when the reported accuracy is worse than the threshold (strict ``>``).
      2. Reject coordinates outside [-90, 90] x [-180, 180].
      3. Accept the first sample unconditionally.
      4. Reject when the fix moved less than ``min_distance_m`` *and* arrived
         less than ``min_interval_ms`` after the last accepted sample.

    The fix timestamp is used when the provider reports one, otherwise ``now_ms``.

    Raises:
        ValueError: If neither the fix nor the caller supplies a timestamp.
    """
    if candidate.accuracy_m is not None and candidate.accuracy_m > params.accuracy_threshold_m:
        return Reject(
            RejectReason.LOW_ACCURACY,
            f"accuracy {candidate.accuracy_m:.1f}m > {params.accuracy_threshold_m:.1f}m",
        )

    if not is_valid_coordinate(candidate.latitude, candidate.longitude):
        return Reject(
            RejectReason.INVALID_COORDINATES,
            f"({candidate.latitude}, {candidate.longitude}) out of range",
        )

    timestamp_ms = candidate.timestamp_ms if candidate.timestamp_ms is not None else now_ms
    if timestamp_ms is None:
        raise ValueError("Fix has no timestamp and no capture time was supplied")

    sample = LocationSample(
        latitude=candidate.latitude,
        longitude=candidate.longitude,
        timestamp_ms=timestamp_ms,
        accuracy_m=candidate.accuracy_m,
        source=source,
    )

    if last_accepted is None:
        return Accept(sample)

    distance_m = haversine_m(
        last_accepted.latitude, last_accepted.longitude, sample.latitude, sample.longitude
    )
    time_delta_ms = sample.timestamp_ms - last_accepted.timestamp_ms

    if distance_m < params.min_distance_m and time_delta_ms < params.min_interval_ms:
        return Reject(
            RejectReason.STATIONARY,
            f"moved {distance_m:.1f}m in {time_delta_ms}ms",
        )
    return Accept(sample)
