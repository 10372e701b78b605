"""Provider used when no location source is configured."""

from collections.abc import AsyncIterator

from heattrail.errors import ProviderUnavailable
from heattrail.providers.base import GeoFixProvider, PermissionStatus
from heattrail.schemas.sample import RawFix


class NullGeoFixProvider(GeoFixProvider):
    """Reports a disabled service; every fix request fails."""

    async def is_service_enabled(self) -> bool:
        return False

    async def has_permission(self) -> PermissionStatus:
        return PermissionStatus.DENIED

    async def request_permission(self) -> PermissionStatus:
        return PermissionStatus.DENIED

    async def get_fix(self) -> RawFix:
        raise ProviderUnavailable("No location provider configured")

    async def subscribe(self) -> AsyncIterator[RawFix]:
        raise ProviderUnavailable("No location provider configured")
        yield  # pragma: no cover
