"""The single write path shared by every sampling source."""

import logging
from collections.abc import Callable

from heattrail.config import Settings
from heattrail.schemas.sample import RawFix, SampleSource
from heattrail.services.heatmap import HeatmapAggregator, HeatmapParams
from heattrail.services.history import HistoryStore
from heattrail.services.persistence import LAST_TRACKING_TIME_KEY, PersistenceGateway
from heattrail.services.sample_filter import Accept, FilterParams, FilterResult, filter_fix
from heattrail.timeutils import epoch_ms_now

logger = logging.getLogger(__name__)


class SamplePipeline:
    """Filter -> append -> recompute, plus the last-fix timestamp.

    Foreground loops share one pipeline; every background run builds its own
    from the gateway, so the two never share in-memory state.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        settings: Settings,
        clock: Callable[[], int] = epoch_ms_now,
    ):
        self._gateway = gateway
        self._clock = clock
        self._filter_params = FilterParams.from_settings(settings)
        self.store = HistoryStore(gateway, capacity=settings.history_capacity)
        self.heatmap = HeatmapAggregator(HeatmapParams.from_settings(settings))

    async def load(self) -> None:
        """Cold load: read the persisted history and rebuild the heatmap."""
        samples = await self.store.load()
        self.heatmap.recompute(self.store.snapshot())
        logger.info(f"Loaded {len(samples)} samples into {len(self.heatmap)} heat cells")

    async def ingest(self, fix: RawFix, source: SampleSource) -> FilterResult:
        """Run one acquired fix through the filter and store it when accepted.

        Raises:
            PersistenceFailure: If the history or timestamp write fails.
        """
        now_ms = self._clock()
        result = filter_fix(
            fix,
            self.store.last(),
            source=source,
            params=self._filter_params,
            now_ms=now_ms,
        )

        if isinstance(result, Accept):
            await self.store.append(result.sample)
            self.heatmap.recompute(self.store.snapshot())
            logger.debug(
                f"Accepted {source.value} sample ({result.sample.latitude:.5f}, "
                f"{result.sample.longitude:.5f}); {len(self.store)} stored"
            )
        else:
            logger.debug(f"Rejected {source.value} fix: {result.reason.value} {result.detail}")

        await self._gateway.set_int(LAST_TRACKING_TIME_KEY, now_ms)
        return result

    async def last_sample_time(self) -> int | None:
        return await self._gateway.get_int(LAST_TRACKING_TIME_KEY)

    async def clear(self) -> None:
        await self.store.clear()
        self.heatmap.recompute(self.store.snapshot())
