"""Tests for tracking state derivation and sampling path selection."""

import pytest

from heattrail.services.tracking_state import (
    ACTIVE_WINDOW_MS,
    INACTIVE_AFTER_MS,
    ControlState,
    LifecycleEvent,
    SamplingPath,
    TrackingState,
    control_state_for,
    derive_tracking_state,
    select_sampling_path,
)

NOW = 10_000_000


class TestDeriveTrackingState:
    """Test the five-state view."""

    def test_not_tracking_is_stopped(self):
        assert derive_tracking_state(False, NOW - 1000, NOW) == TrackingState.STOPPED

    def test_no_sample_yet_is_starting(self):
        assert derive_tracking_state(True, None, NOW) == TrackingState.STARTING

    @pytest.mark.parametrize(
        "age_ms,expected",
        [
            (0, TrackingState.ACTIVE),
            (ACTIVE_WINDOW_MS - 1, TrackingState.ACTIVE),
            (ACTIVE_WINDOW_MS, TrackingState.BACKGROUND),
            (INACTIVE_AFTER_MS - 1, TrackingState.BACKGROUND),
            (INACTIVE_AFTER_MS, TrackingState.INACTIVE),
            (24 * 60 * 60 * 1000, TrackingState.INACTIVE),
        ],
    )
    def test_age_thresholds(self, age_ms, expected):
        assert derive_tracking_state(True, NOW - age_ms, NOW) == expected

    def test_depends_on_observation_time(self):
        """The same inputs age into a colder state as time passes."""
        last = NOW
        assert derive_tracking_state(True, last, NOW + 1000) == TrackingState.ACTIVE
        assert derive_tracking_state(True, last, NOW + 5 * 60 * 1000) == TrackingState.BACKGROUND
        assert derive_tracking_state(True, last, NOW + 30 * 60 * 1000) == TrackingState.INACTIVE


class TestSamplingPath:
    """Test which path is armed for each control state and lifecycle event."""

    def test_control_state_for(self):
        assert control_state_for(True) == ControlState.RUNNING
        assert control_state_for(False) == ControlState.STOPPED

    @pytest.mark.parametrize("event", list(LifecycleEvent))
    def test_stopped_arms_nothing(self, event):
        assert select_sampling_path(ControlState.STOPPED, event) == SamplingPath.NONE

    @pytest.mark.parametrize(
        "event,expected",
        [
            (LifecycleEvent.RESUMED, SamplingPath.FOREGROUND),
            (LifecycleEvent.PAUSED, SamplingPath.BACKGROUND),
            (LifecycleEvent.DETACHED, SamplingPath.BACKGROUND),
        ],
    )
    def test_running_paths(self, event, expected):
        assert select_sampling_path(ControlState.RUNNING, event) == expected
