"""Location sample schemas and their persisted wire format."""

import enum
import json
import math

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from heattrail.errors import MalformedRecord


class SampleSource(str, enum.Enum):
    """Which sampling path produced a sample."""

    CONTINUOUS = "continuous"
    TIMER_BACKUP = "timer_backup"
    BACKGROUND = "background"


# Records written before sources were tagged came from the foreground timer.
DEFAULT_SAMPLE_SOURCE = SampleSource.TIMER_BACKUP


class RawFix(BaseModel):
    """One reading as reported by a location provider, before filtering."""

    latitude: float
    longitude: float
    accuracy_m: float | None = None
    timestamp_ms: int | None = None

    @field_validator("accuracy_m", mode="before")
    @classmethod
    def normalize_accuracy(cls, v: float | None) -> float | None:
        """Treat sentinel values (negative or NaN) as unknown accuracy."""
        if v is None:
            return None
        v = float(v)
        if math.isnan(v) or v < 0:
            return None
        return v


class LocationSample(BaseModel):
    """An accepted, immutable location sample.

    Serializes to ``{"latitude", "longitude", "timestamp", "accuracy", "source"}``,
    the format each element of the persisted history list is stored in.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    timestamp_ms: int = Field(..., alias="timestamp")
    accuracy_m: float | None = Field(default=None, alias="accuracy")
    source: SampleSource = DEFAULT_SAMPLE_SOURCE

    @field_validator("source", mode="before")
    @classmethod
    def default_unknown_source(cls, v: object) -> SampleSource:
        """Map unknown or missing source tags to the default instead of failing."""
        if isinstance(v, SampleSource):
            return v
        try:
            return SampleSource(v)
        except ValueError:
            return DEFAULT_SAMPLE_SOURCE

    def to_record(self) -> str:
        """Serialize to one persisted history element."""
        return json.dumps(self.model_dump(mode="json", by_alias=True))

    @classmethod
    def from_record(cls, record: str) -> "LocationSample":
        """Deserialize one persisted history element.

        Raises:
            MalformedRecord: If the element is not valid JSON or not a valid sample.
        """
        try:
            data = json.loads(record)
        except (TypeError, ValueError) as e:
            raise MalformedRecord(f"Invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedRecord(f"Expected an object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedRecord(str(e)) from e
