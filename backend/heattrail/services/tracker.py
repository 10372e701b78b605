"""Composition root exposing tracking and heatmap operations to the presentation layer."""

import logging
from datetime import timedelta

from fastapi import Request

from heattrail.config import MIN_BACKGROUND_INTERVAL_MINUTES, Settings
from heattrail.providers import (
    GeoFixProvider,
    HttpGeoFixProvider,
    NullGeoFixProvider,
    OwnTracksMqttProvider,
)
from heattrail.schemas.sample import LocationSample
from heattrail.services.background import AsyncioBackgroundTaskHost, BackgroundTaskHost
from heattrail.services.heatmap import HeatCell
from heattrail.services.persistence import PersistenceGateway
from heattrail.services.pipeline import SamplePipeline
from heattrail.services.scheduler import ProviderFactory, TrackingScheduler, TrackingStatus
from heattrail.services.tracking_state import LifecycleEvent, SamplingPath

logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> GeoFixProvider:
    """Pick the configured provider: HTTP first, then OwnTracks over MQTT."""
    if settings.provider_url:
        return HttpGeoFixProvider(settings.provider_url)
    if settings.provider_mqtt_host:
        return OwnTracksMqttProvider(
            settings.provider_mqtt_host,
            topic=settings.provider_mqtt_topic,
            port=settings.provider_mqtt_port,
            username=settings.provider_mqtt_username,
            password=settings.provider_mqtt_password,
        )
    logger.warning("No location provider configured; tracking will record nothing")
    return NullGeoFixProvider()


class LocationTracker:
    """History, heatmap and scheduler behind one interface."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        settings: Settings,
        provider_factory: ProviderFactory | None = None,
        task_host: BackgroundTaskHost | None = None,
    ):
        self.settings = settings
        self.pipeline = SamplePipeline(gateway, settings)
        self.task_host = task_host or AsyncioBackgroundTaskHost(
            minimum_interval=timedelta(minutes=MIN_BACKGROUND_INTERVAL_MINUTES)
        )
        self.scheduler = TrackingScheduler(
            gateway,
            self.pipeline,
            provider_factory or (lambda: build_provider(settings)),
            self.task_host,
            settings,
        )

    async def startup(self) -> None:
        """Cold load the history, then resume tracking if it was left on."""
        await self.pipeline.load()
        await self.scheduler.restore()

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()

    async def start(self) -> TrackingStatus:
        await self.scheduler.start()
        return await self.scheduler.status()

    async def stop(self) -> TrackingStatus:
        await self.scheduler.stop()
        return await self.scheduler.status()

    async def lifecycle(self, event: LifecycleEvent) -> SamplingPath:
        return await self.scheduler.handle_lifecycle(event)

    async def status(self) -> TrackingStatus:
        return await self.scheduler.status()

    async def clear(self) -> None:
        await self.pipeline.clear()

    def heat_cells(self) -> list[HeatCell]:
        return self.pipeline.heatmap.cells()

    def heat_cell(self, key: str) -> HeatCell | None:
        return self.pipeline.heatmap.get(key)

    def history(self, limit: int | None = None) -> list[LocationSample]:
        samples = list(self.pipeline.store.snapshot())
        if limit is not None:
            samples = samples[-limit:] if limit > 0 else []
        return samples


def get_tracker(request: Request) -> LocationTracker:
    """Dependency returning the tracker created in the application lifespan."""
    return request.app.state.tracker
