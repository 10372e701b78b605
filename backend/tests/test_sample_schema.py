"""Tests for location sample schemas and the persisted record format."""

import json

import pytest
from pydantic import ValidationError

from heattrail.errors import MalformedRecord
from heattrail.schemas.sample import (
    DEFAULT_SAMPLE_SOURCE,
    LocationSample,
    RawFix,
    SampleSource,
)


class TestRawFix:
    """Test accuracy normalization on provider readings."""

    def test_negative_accuracy_is_unknown(self):
        fix = RawFix(latitude=1.0, longitude=2.0, accuracy_m=-1)
        assert fix.accuracy_m is None

    def test_nan_accuracy_is_unknown(self):
        fix = RawFix(latitude=1.0, longitude=2.0, accuracy_m=float("nan"))
        assert fix.accuracy_m is None

    def test_zero_accuracy_kept(self):
        fix = RawFix(latitude=1.0, longitude=2.0, accuracy_m=0)
        assert fix.accuracy_m == 0.0


class TestLocationSampleRecord:
    """Test the persisted JSON record format."""

    def test_record_field_names(self):
        sample = LocationSample(
            latitude=37.5,
            longitude=-122.25,
            timestamp_ms=1_700_000_000_000,
            accuracy_m=12.5,
            source=SampleSource.CONTINUOUS,
        )
        data = json.loads(sample.to_record())
        assert data == {
            "latitude": 37.5,
            "longitude": -122.25,
            "timestamp": 1_700_000_000_000,
            "accuracy": 12.5,
            "source": "continuous",
        }

    def test_round_trip_preserves_fields(self):
        sample = LocationSample(
            latitude=-33.8688,
            longitude=151.2093,
            timestamp_ms=42,
            accuracy_m=None,
            source=SampleSource.BACKGROUND,
        )
        restored = LocationSample.from_record(sample.to_record())
        assert restored == sample

    def test_null_accuracy_serialized_as_null(self):
        sample = LocationSample(latitude=0.0, longitude=0.0, timestamp_ms=1)
        assert json.loads(sample.to_record())["accuracy"] is None

    def test_missing_source_gets_default(self):
        record = json.dumps({"latitude": 1.0, "longitude": 2.0, "timestamp": 3, "accuracy": 4.0})
        assert LocationSample.from_record(record).source == DEFAULT_SAMPLE_SOURCE

    def test_unknown_source_gets_default(self):
        record = json.dumps(
            {"latitude": 1.0, "longitude": 2.0, "timestamp": 3, "source": "satellite"}
        )
        assert LocationSample.from_record(record).source == DEFAULT_SAMPLE_SOURCE

    def test_default_source_is_timer_backup(self):
        assert DEFAULT_SAMPLE_SOURCE == SampleSource.TIMER_BACKUP


class TestMalformedRecords:
    """Test decoding failures surface as MalformedRecord."""

    @pytest.mark.parametrize(
        "record",
        [
            "not json",
            "[1, 2, 3]",
            '"just a string"',
            json.dumps({"latitude": 1.0, "longitude": 2.0}),
            json.dumps({"latitude": 95.0, "longitude": 2.0, "timestamp": 1}),
            json.dumps({"latitude": "north", "longitude": 2.0, "timestamp": 1}),
        ],
    )
    def test_malformed(self, record):
        with pytest.raises(MalformedRecord):
            LocationSample.from_record(record)

    def test_samples_are_immutable(self):
        sample = LocationSample(latitude=1.0, longitude=2.0, timestamp_ms=3)
        with pytest.raises(ValidationError):
            sample.latitude = 5.0
