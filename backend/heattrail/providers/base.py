"""Base class for location fix providers."""

import enum
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from heattrail.schemas.sample import RawFix


class PermissionStatus(str, enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"


class GeoFixProvider(ABC):
    """Capability provider for location fixes.

    ``get_fix`` and ``subscribe`` raise ProviderUnavailable, PermissionDenied
    or FixAcquisitionFailed; they never block on a timeout of their own.
    """

    @abstractmethod
    async def is_service_enabled(self) -> bool:
        """Whether the location service is switched on."""

    @abstractmethod
    async def has_permission(self) -> PermissionStatus:
        """Current permission to read fixes."""

    @abstractmethod
    async def request_permission(self) -> PermissionStatus:
        """Ask the host for permission and return the outcome."""

    @abstractmethod
    async def get_fix(self) -> RawFix:
        """Acquire one fix on demand."""

    @abstractmethod
    def subscribe(self) -> AsyncIterator[RawFix]:
        """Stream fixes as the provider pushes them."""
