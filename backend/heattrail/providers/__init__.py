"""Location fix providers."""

from heattrail.providers.base import GeoFixProvider, PermissionStatus
from heattrail.providers.http import HttpGeoFixProvider
from heattrail.providers.null import NullGeoFixProvider
from heattrail.providers.owntracks import OwnTracksMqttProvider

__all__ = [
    "GeoFixProvider",
    "HttpGeoFixProvider",
    "NullGeoFixProvider",
    "OwnTracksMqttProvider",
    "PermissionStatus",
]
