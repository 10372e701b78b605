"""Tracking scheduler: reconciles the foreground sampling loop with the background job."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from heattrail.config import Settings
from heattrail.errors import (
    HeatTrailError,
    PermissionDenied,
    PersistenceFailure,
    ProviderUnavailable,
)
from heattrail.providers.base import GeoFixProvider, PermissionStatus
from heattrail.schemas.sample import SampleSource
from heattrail.services.background import BackgroundTaskHost, TaskConstraints
from heattrail.services.persistence import (
    BACKGROUND_RUNS_KEY,
    WAS_TRACKING_KEY,
    PersistenceGateway,
)
from heattrail.services.pipeline import SamplePipeline
from heattrail.services.tracking_state import (
    ControlState,
    LifecycleEvent,
    SamplingPath,
    TrackingState,
    control_state_for,
    derive_tracking_state,
    select_sampling_path,
)
from heattrail.timeutils import epoch_ms_now

logger = logging.getLogger(__name__)

BACKGROUND_TASK_ID = "locationTrackingTask"
STREAM_RECONNECT_SECONDS = 10.0

ProviderFactory = Callable[[], GeoFixProvider]


@dataclass(frozen=True, slots=True)
class TrackingStatus:
    """Snapshot handed to the presentation layer."""

    state: TrackingState
    is_tracking: bool
    armed_path: SamplingPath
    last_sample_ms: int | None
    sample_count: int
    cell_count: int
    background_runs: int


async def run_background_sample(
    gateway: PersistenceGateway,
    provider: GeoFixProvider,
    settings: Settings,
    clock: Callable[[], int] = epoch_ms_now,
) -> bool:
    """One self-contained background run.

    Checks service and permission, acquires one fix and stores it through a
    freshly loaded pipeline, then bumps the consecutive-run counter. Any
    failure resets the counter to 0 and is reported as False; nothing raises.
    """
    try:
        if not await provider.is_service_enabled():
            raise ProviderUnavailable("Location service is disabled")
        if await provider.has_permission() != PermissionStatus.GRANTED:
            raise PermissionDenied("Location permission not granted")

        fix = await provider.get_fix()

        pipeline = SamplePipeline(gateway, settings, clock=clock)
        await pipeline.load()
        await pipeline.ingest(fix, SampleSource.BACKGROUND)

        runs = await gateway.get_int(BACKGROUND_RUNS_KEY) or 0
        await gateway.set_int(BACKGROUND_RUNS_KEY, runs + 1)
        logger.info(f"Background location run succeeded ({runs + 1} in a row)")
        return True
    except Exception as e:
        logger.error(f"Background location tracking error: {e}")
        try:
            await gateway.set_int(BACKGROUND_RUNS_KEY, 0)
        except Exception as reset_error:
            logger.error(f"Failed to reset background run counter: {reset_error}")
        return False


class TrackingScheduler:
    """Two-state control machine (Stopped/Running) arming one sampling path.

    While running, host lifecycle events pick the armed path: the foreground
    loop (push stream plus backup poll) when resumed, the periodic background
    job when paused or detached. Both paths write through the same
    filter/append path, so a brief overlap during a switch only produces
    redundant samples.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        pipeline: SamplePipeline,
        provider_factory: ProviderFactory,
        task_host: BackgroundTaskHost,
        settings: Settings,
        constraints: TaskConstraints = TaskConstraints(),
    ):
        self._gateway = gateway
        self._pipeline = pipeline
        self._provider_factory = provider_factory
        self._provider = provider_factory()
        self._task_host = task_host
        self._settings = settings
        self._constraints = constraints

        self._control = ControlState.STOPPED
        self._host_event = LifecycleEvent.RESUMED
        self._armed = SamplingPath.NONE
        self._stream_task: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None
        self._transition_lock = asyncio.Lock()

    @property
    def control(self) -> ControlState:
        return self._control

    @property
    def armed_path(self) -> SamplingPath:
        return self._armed

    @property
    def host_event(self) -> LifecycleEvent:
        return self._host_event

    async def start(self) -> None:
        """Persist ``was_tracking = true`` and arm the path matching the host state."""
        async with self._transition_lock:
            await self._ensure_permission()
            await self._gateway.set_bool(WAS_TRACKING_KEY, True)
            self._control = ControlState.RUNNING
            logger.info("Location tracking started")
            await self._apply_path()

    async def stop(self) -> None:
        """Disarm both paths and persist ``was_tracking = false``."""
        async with self._transition_lock:
            self._control = ControlState.STOPPED
            await self._apply_path()
            await self._gateway.set_bool(WAS_TRACKING_KEY, False)
            logger.info("Location tracking stopped")

    async def restore(self) -> None:
        """Resume tracking if it was on when the process last exited."""
        was_tracking = await self._gateway.get_bool(WAS_TRACKING_KEY) or False
        if control_state_for(was_tracking) is ControlState.RUNNING:
            logger.info("Restoring location tracking from previous session")
            await self.start()

    async def shutdown(self) -> None:
        """Disarm everything, letting an in-progress background run finish.

        The persisted tracking flag is left untouched.
        """
        async with self._transition_lock:
            await self._disarm_foreground()
            await self._task_host.cancel(BACKGROUND_TASK_ID)
            await self._task_host.drain()
            self._armed = SamplingPath.NONE

    async def _ensure_permission(self) -> None:
        """Ask the provider for access when it currently reports DENIED."""
        if await self._provider.has_permission() == PermissionStatus.GRANTED:
            return
        result = await self._provider.request_permission()
        if result == PermissionStatus.GRANTED:
            logger.info("Location permission granted")
        else:
            logger.warning("Location permission denied; fixes will fail until it is granted")

    async def handle_lifecycle(self, event: LifecycleEvent) -> SamplingPath:
        """Feed a host lifecycle event into the state machine."""
        async with self._transition_lock:
            self._host_event = event
            logger.info(f"Host lifecycle event: {event.value}")
            if event is LifecycleEvent.RESUMED:
                # Pick up samples the background job wrote while we were away.
                await self._pipeline.load()
            await self._apply_path()
            return self._armed

    async def status(self, now_ms: int | None = None) -> TrackingStatus:
        """Derive the tracking view from persisted state at this instant."""
        is_tracking = await self._gateway.get_bool(WAS_TRACKING_KEY) or False
        last_sample_ms = await self._pipeline.last_sample_time()
        background_runs = await self._gateway.get_int(BACKGROUND_RUNS_KEY) or 0
        now = epoch_ms_now() if now_ms is None else now_ms
        return TrackingStatus(
            state=derive_tracking_state(is_tracking, last_sample_ms, now),
            is_tracking=is_tracking,
            armed_path=self._armed,
            last_sample_ms=last_sample_ms,
            sample_count=len(self._pipeline.store),
            cell_count=len(self._pipeline.heatmap),
            background_runs=background_runs,
        )

    async def _apply_path(self) -> None:
        target = select_sampling_path(self._control, self._host_event)
        if target is self._armed:
            return

        if target is SamplingPath.FOREGROUND:
            await self._task_host.cancel(BACKGROUND_TASK_ID)
            self._arm_foreground()
        elif target is SamplingPath.BACKGROUND:
            # Register first; the foreground loop may still finish one tick.
            await self._register_background()
            await self._disarm_foreground()
        else:
            await self._disarm_foreground()
            await self._task_host.cancel(BACKGROUND_TASK_ID)

        logger.info(f"Sampling path: {self._armed.value} -> {target.value}")
        self._armed = target

    def _arm_foreground(self) -> None:
        if self._stream_task is None:
            self._stream_task = asyncio.create_task(self._stream_loop())
        if self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def _disarm_foreground(self) -> None:
        tasks = [t for t in (self._stream_task, self._poll_task) if t is not None]
        self._stream_task = None
        self._poll_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _register_background(self) -> None:
        await self._task_host.register_periodic(
            BACKGROUND_TASK_ID,
            timedelta(minutes=self._settings.background_interval_minutes),
            self._constraints,
            self._background_callback,
        )

    async def _background_callback(self) -> bool:
        # The background context shares nothing in memory with the foreground.
        return await run_background_sample(
            self._gateway, self._provider_factory(), self._settings
        )

    async def _stream_loop(self) -> None:
        """Continuous updates from the provider push stream, reconnecting on errors."""
        while True:
            try:
                async for fix in self._provider.subscribe():
                    try:
                        await self._pipeline.ingest(fix, SampleSource.CONTINUOUS)
                    except PersistenceFailure as e:
                        logger.error(f"Failed to store location: {e}")
            except asyncio.CancelledError:
                raise
            except HeatTrailError as e:
                logger.warning(f"Location stream interrupted: {e}")
            except Exception as e:
                logger.error(f"Unexpected error in location stream: {e}")

            await asyncio.sleep(STREAM_RECONNECT_SECONDS)

    async def _poll_loop(self) -> None:
        """Backup poll covering gaps in the push stream."""
        while True:
            await asyncio.sleep(self._settings.foreground_poll_seconds)
            await self.sample_now(SampleSource.TIMER_BACKUP)

    async def sample_now(self, source: SampleSource = SampleSource.TIMER_BACKUP) -> None:
        """Acquire and ingest a single fix; failures are logged, never raised."""
        try:
            fix = await self._provider.get_fix()
            await self._pipeline.ingest(fix, source)
        except asyncio.CancelledError:
            raise
        except PersistenceFailure as e:
            logger.error(f"Failed to store location: {e}")
        except HeatTrailError as e:
            logger.warning(f"Error recording location: {e}")
        except Exception as e:
            logger.error(f"Unexpected error recording location: {e}")
