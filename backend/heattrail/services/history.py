"""Bounded, persisted history of accepted location samples."""

import asyncio
import logging

from heattrail.errors import MalformedRecord
from heattrail.schemas.sample import LocationSample
from heattrail.services.persistence import (
    BACKGROUND_RUNS_KEY,
    HISTORY_KEY,
    LAST_TRACKING_TIME_KEY,
    PersistenceGateway,
)

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only log capped at ``capacity`` entries (oldest dropped first).

    The in-memory log only changes after the full list has been written
    through the gateway, so a failed write leaves both copies untouched.
    """

    def __init__(self, gateway: PersistenceGateway, capacity: int = 1000):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._gateway = gateway
        self._capacity = capacity
        self._samples: list[LocationSample] = []
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._samples)

    def snapshot(self) -> tuple[LocationSample, ...]:
        """Immutable view of the current log in insertion order."""
        return tuple(self._samples)

    def last(self) -> LocationSample | None:
        return self._samples[-1] if self._samples else None

    async def load(self) -> list[LocationSample]:
        """Read the persisted log, skipping entries that fail to decode."""
        records = await self._gateway.get_string_list(HISTORY_KEY)
        samples: list[LocationSample] = []
        skipped = 0
        for record in records:
            try:
                samples.append(LocationSample.from_record(record))
            except MalformedRecord as e:
                skipped += 1
                logger.debug(f"Skipping malformed history entry: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped} malformed history entries of {len(records)}")

        if len(samples) > self._capacity:
            samples = samples[-self._capacity:]

        async with self._lock:
            self._samples = samples
        return list(samples)

    async def append(self, sample: LocationSample) -> None:
        """Append one sample, truncate to capacity and persist the whole list.

        Raises:
            PersistenceFailure: If the gateway write fails. Nothing changes in that case.
        """
        async with self._lock:
            updated = [*self._samples, sample]
            if len(updated) > self._capacity:
                updated = updated[-self._capacity:]
            await self._gateway.set_string_list(
                HISTORY_KEY, [s.to_record() for s in updated]
            )
            self._samples = updated

    async def clear(self) -> None:
        """Empty the log and remove every key derived from it."""
        async with self._lock:
            await self._gateway.remove(HISTORY_KEY)
            await self._gateway.remove(LAST_TRACKING_TIME_KEY)
            await self._gateway.remove(BACKGROUND_RUNS_KEY)
            self._samples = []
        logger.info("Cleared location history")
