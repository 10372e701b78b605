"""Shared fixtures: fake provider, fake background host and test settings."""

import asyncio

import pytest

from heattrail.config import Settings
from heattrail.errors import FixAcquisitionFailed
from heattrail.providers.base import GeoFixProvider, PermissionStatus
from heattrail.schemas.sample import RawFix
from heattrail.services.background import BackgroundTaskHost
from heattrail.services.persistence import MemoryPersistenceGateway


class FakeProvider(GeoFixProvider):
    """Provider serving queued fixes; the push stream stays open once drained."""

    def __init__(self):
        self.service_enabled = True
        self.permission = PermissionStatus.GRANTED
        self.grant_on_request = False
        self.request_permission_calls = 0
        self.fixes: list[RawFix | Exception] = []
        self.stream_fixes: list[RawFix] = []
        self.get_fix_calls = 0
        self.subscribe_calls = 0

    async def is_service_enabled(self) -> bool:
        return self.service_enabled

    async def has_permission(self) -> PermissionStatus:
        return self.permission

    async def request_permission(self) -> PermissionStatus:
        self.request_permission_calls += 1
        if self.grant_on_request:
            self.permission = PermissionStatus.GRANTED
        return self.permission

    async def get_fix(self) -> RawFix:
        self.get_fix_calls += 1
        if not self.fixes:
            raise FixAcquisitionFailed("No fix queued")
        item = self.fixes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def subscribe(self):
        self.subscribe_calls += 1
        for fix in list(self.stream_fixes):
            yield fix
        await asyncio.Event().wait()


class FakeTaskHost(BackgroundTaskHost):
    """Records registrations; runs callbacks only when a test asks it to."""

    def __init__(self):
        self.registrations: dict[str, dict] = {}
        self.register_calls: list[str] = []
        self.cancel_calls: list[str] = []
        self.drain_calls = 0

    async def register_periodic(self, task_id, interval, constraints, callback) -> None:
        self.register_calls.append(task_id)
        self.registrations.setdefault(
            task_id,
            {"interval": interval, "constraints": constraints, "callback": callback},
        )

    async def cancel(self, task_id: str) -> None:
        self.cancel_calls.append(task_id)
        self.registrations.pop(task_id, None)

    async def cancel_all(self) -> None:
        for task_id in list(self.registrations):
            await self.cancel(task_id)

    def is_registered(self, task_id: str) -> bool:
        return task_id in self.registrations

    async def drain(self) -> None:
        self.drain_calls += 1

    async def run(self, task_id: str) -> bool:
        return await self.registrations[task_id]["callback"]()


def make_fix(lat: float, lng: float, ts: int, accuracy: float | None = 10.0) -> RawFix:
    return RawFix(latitude=lat, longitude=lng, accuracy_m=accuracy, timestamp_ms=ts)


@pytest.fixture()
def settings() -> Settings:
    """Settings with a fast foreground poll for scheduler tests."""
    return Settings(
        database_url="sqlite+aiosqlite:///test.db",
        foreground_poll_seconds=0.01,
    )


@pytest.fixture()
def gateway() -> MemoryPersistenceGateway:
    return MemoryPersistenceGateway()


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def task_host() -> FakeTaskHost:
    return FakeTaskHost()


@pytest.fixture()
def fix_factory():
    """Return the make_fix helper so tests do not import conftest directly."""
    return make_fix
