"""Host facility for best-effort periodic background work."""

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

logger = logging.getLogger(__name__)

BackgroundCallback = Callable[[], Awaitable[bool]]


class NetworkType(str, enum.Enum):
    NOT_REQUIRED = "not_required"
    CONNECTED = "connected"
    UNMETERED = "unmetered"


@dataclass(frozen=True, slots=True)
class TaskConstraints:
    """Advisory execution constraints, passed through to the host unchanged."""

    network_type: NetworkType = NetworkType.NOT_REQUIRED
    requires_battery_not_low: bool = False
    requires_charging: bool = False
    requires_device_idle: bool = False
    requires_storage_not_low: bool = False


class BackgroundTaskHost(ABC):
    """Runs a callback roughly every ``interval``; the interval is a lower bound."""

    @abstractmethod
    async def register_periodic(
        self,
        task_id: str,
        interval: timedelta,
        constraints: TaskConstraints,
        callback: BackgroundCallback,
    ) -> None:
        """Register (or keep) a periodic task under task_id."""

    @abstractmethod
    async def cancel(self, task_id: str) -> None:
        """Cancel future runs of task_id; a run already in progress completes."""

    @abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every registered task."""

    @abstractmethod
    def is_registered(self, task_id: str) -> bool:
        """Whether task_id currently has a registration."""

    @abstractmethod
    async def drain(self) -> None:
        """Wait for runs that were still in progress when their task was cancelled."""


class AsyncioBackgroundTaskHost(BackgroundTaskHost):
    """In-process host running each registration on its own asyncio task.

    Registering an id that already exists keeps the existing schedule.
    """

    def __init__(self, minimum_interval: timedelta = timedelta(minutes=15)):
        self._minimum_interval = minimum_interval
        self._loops: dict[str, asyncio.Task] = {}
        self._in_flight: set[asyncio.Task] = set()

    async def register_periodic(
        self,
        task_id: str,
        interval: timedelta,
        constraints: TaskConstraints,
        callback: BackgroundCallback,
    ) -> None:
        if self.is_registered(task_id):
            logger.debug(f"Background task {task_id} already registered, keeping schedule")
            return

        effective = max(interval, self._minimum_interval)
        self._loops[task_id] = asyncio.create_task(
            self._periodic_loop(task_id, effective, callback)
        )
        logger.info(
            f"Registered background task {task_id} every {effective} "
            f"(constraints: {constraints})"
        )

    async def _periodic_loop(
        self, task_id: str, interval: timedelta, callback: BackgroundCallback
    ) -> None:
        """Sleep, run, repeat. Cancellation never interrupts a run in progress."""
        while True:
            await asyncio.sleep(interval.total_seconds())
            run = asyncio.create_task(self._run_once(task_id, callback))
            self._in_flight.add(run)
            run.add_done_callback(self._in_flight.discard)
            await asyncio.shield(run)

    async def _run_once(self, task_id: str, callback: BackgroundCallback) -> bool:
        try:
            return bool(await callback())
        except Exception as e:
            logger.error(f"Background task {task_id} raised: {e}")
            return False

    async def cancel(self, task_id: str) -> None:
        loop_task = self._loops.pop(task_id, None)
        if loop_task is None:
            return
        loop_task.cancel()
        try:
            await loop_task
        except asyncio.CancelledError:
            pass
        logger.info(f"Cancelled background task {task_id}")

    async def cancel_all(self) -> None:
        for task_id in list(self._loops):
            await self.cancel(task_id)

    def is_registered(self, task_id: str) -> bool:
        return task_id in self._loops

    async def drain(self) -> None:
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
