"""Pure state derivations for the tracking scheduler."""

import enum

ACTIVE_WINDOW_MS = 2 * 60 * 1000
INACTIVE_AFTER_MS = 20 * 60 * 1000


class TrackingState(str, enum.Enum):
    """User-facing view of how fresh tracking data is."""

    STOPPED = "stopped"
    STARTING = "starting"
    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"


class ControlState(str, enum.Enum):
    """Coarse scheduler state; the only one that is persisted (as ``was_tracking``)."""

    STOPPED = "stopped"
    RUNNING = "running"


class LifecycleEvent(str, enum.Enum):
    """Host lifecycle notifications."""

    RESUMED = "resumed"
    PAUSED = "paused"
    DETACHED = "detached"


class SamplingPath(str, enum.Enum):
    """Which sampling path is armed."""

    NONE = "none"
    FOREGROUND = "foreground"
    BACKGROUND = "background"


def derive_tracking_state(
    is_tracking: bool, last_sample_ms: int | None, now_ms: int
) -> TrackingState:
    """Compute the five-state view from the persisted flag and last sample time.

    Must be called on every observation; the result depends on ``now_ms``.
    """
    if not is_tracking:
        return TrackingState.STOPPED
    if last_sample_ms is None:
        return TrackingState.STARTING

    age_ms = now_ms - last_sample_ms
    if age_ms < ACTIVE_WINDOW_MS:
        return TrackingState.ACTIVE
    if age_ms < INACTIVE_AFTER_MS:
        return TrackingState.BACKGROUND
    return TrackingState.INACTIVE


def control_state_for(is_tracking: bool) -> ControlState:
    return ControlState.RUNNING if is_tracking else ControlState.STOPPED


def select_sampling_path(control: ControlState, host_event: LifecycleEvent) -> SamplingPath:
    """Which path should be armed for a control state and the latest host event."""
    if control is ControlState.STOPPED:
        return SamplingPath.NONE
    if host_event is LifecycleEvent.RESUMED:
        return SamplingPath.FOREGROUND
    return SamplingPath.BACKGROUND
