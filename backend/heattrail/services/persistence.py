"""Persistence gateway: durable key/value storage for history and tracking state."""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from heattrail.errors import PersistenceFailure
from heattrail.models import KeyValueEntry

logger = logging.getLogger(__name__)

HISTORY_KEY = "location_history"
LAST_TRACKING_TIME_KEY = "last_tracking_time"
BACKGROUND_RUNS_KEY = "consecutive_bg_updates"
WAS_TRACKING_KEY = "was_tracking"


class PersistenceGateway(ABC):
    """Typed key/value access on top of a raw value store.

    Every ``set_*`` and ``remove`` call is durable before it returns and
    replaces the whole value of its key, so readers never observe a
    partially written list.
    """

    @abstractmethod
    async def get_value(self, key: str) -> Any:
        """Return the raw stored value or None when the key is absent."""

    @abstractmethod
    async def set_value(self, key: str, value: Any) -> None:
        """Replace the value stored under key."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key (no-op when absent)."""

    async def get_string_list(self, key: str) -> list[str]:
        value = await self.get_value(key)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(f"Ignoring non-list value stored under {key}")
            return []
        return list(value)

    async def set_string_list(self, key: str, values: list[str]) -> None:
        await self.set_value(key, list(values))

    async def get_int(self, key: str) -> int | None:
        value = await self.get_value(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    async def set_int(self, key: str, value: int) -> None:
        await self.set_value(key, int(value))

    async def get_bool(self, key: str) -> bool | None:
        value = await self.get_value(key)
        return value if isinstance(value, bool) else None

    async def set_bool(self, key: str, value: bool) -> None:
        await self.set_value(key, bool(value))


class SqlPersistenceGateway(PersistenceGateway):
    """Gateway backed by the kv_store table; each write commits its own transaction."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get_value(self, key: str) -> Any:
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    select(KeyValueEntry).where(KeyValueEntry.key == key)
                )
                entry = result.scalar_one_or_none()
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to read {key}: {e}") from e

    async def set_value(self, key: str, value: Any) -> None:
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    select(KeyValueEntry).where(KeyValueEntry.key == key)
                )
                entry = result.scalar_one_or_none()
                if entry:
                    entry.value = value
                    flag_modified(entry, "value")
                else:
                    db.add(KeyValueEntry(key=key, value=value))
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to write {key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            async with self._session_maker() as db:
                await db.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to remove {key}: {e}") from e


class MemoryPersistenceGateway(PersistenceGateway):
    """In-process gateway for ephemeral runs and tests.

    Set ``fail_writes`` to make every write raise PersistenceFailure
    without touching the stored values.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.fail_writes = False

    async def get_value(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    async def set_value(self, key: str, value: Any) -> None:
        if self.fail_writes:
            raise PersistenceFailure(f"Simulated write failure for {key}")
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        if self.fail_writes:
            raise PersistenceFailure(f"Simulated write failure for {key}")
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
