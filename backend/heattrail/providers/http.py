"""HTTP location provider (e.g. a companion app exposing the device GPS)."""

import json
import logging
from collections.abc import AsyncIterator

import httpx

from heattrail.errors import (
    FixAcquisitionFailed,
    PermissionDenied,
    ProviderUnavailable,
)
from heattrail.providers.base import GeoFixProvider, PermissionStatus
from heattrail.schemas.sample import RawFix

logger = logging.getLogger(__name__)


def parse_fix_payload(data: dict) -> RawFix:
    """Build a RawFix from a provider JSON object.

    Accepts ``latitude``/``lat``, ``longitude``/``lng``/``lon``,
    ``accuracy``/``acc`` and an epoch-millisecond ``timestamp``.

    Raises:
        FixAcquisitionFailed: If coordinates are missing or not numeric.
    """
    if not isinstance(data, dict):
        raise FixAcquisitionFailed(f"Expected a JSON object, got {type(data).__name__}")

    lat = data.get("latitude", data.get("lat"))
    lng = data.get("longitude", data.get("lng", data.get("lon")))
    if lat is None or lng is None:
        raise FixAcquisitionFailed("Fix is missing latitude/longitude")

    accuracy = data.get("accuracy", data.get("acc"))
    timestamp = data.get("timestamp")
    try:
        return RawFix(
            latitude=float(lat),
            longitude=float(lng),
            accuracy_m=float(accuracy) if accuracy is not None else None,
            timestamp_ms=int(timestamp) if timestamp is not None else None,
        )
    except (TypeError, ValueError, OverflowError) as e:
        raise FixAcquisitionFailed(f"Invalid fix payload: {e}") from e


class HttpGeoFixProvider(GeoFixProvider):
    """Provider polling a JSON API.

    Endpoints:
        GET  /api/status           -> {"service_enabled": bool, "permission": "granted"|"denied"}
        POST /api/permission       -> same shape as /api/status
        GET  /api/location         -> one fix
        GET  /api/location/stream  -> newline-delimited fixes
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self, timeout: httpx.Timeout | float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout if timeout is None else timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _get_status(self, method: str, path: str) -> dict:
        try:
            async with self._client() as client:
                response = await client.request(method, path)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Status request to {self.base_url}{path} failed: {e}")
            return {}

        if not isinstance(data, dict):
            logger.debug(f"Ignoring non-object status from {self.base_url}{path}")
            return {}
        return data

    async def is_service_enabled(self) -> bool:
        status = await self._get_status("GET", "/api/status")
        return bool(status.get("service_enabled", False))

    async def has_permission(self) -> PermissionStatus:
        status = await self._get_status("GET", "/api/status")
        return _permission_from(status)

    async def request_permission(self) -> PermissionStatus:
        status = await self._get_status("POST", "/api/permission")
        return _permission_from(status)

    async def get_fix(self) -> RawFix:
        try:
            async with self._client() as client:
                response = await client.get("/api/location")
        except httpx.HTTPError as e:
            raise FixAcquisitionFailed(f"Location request failed: {e}") from e

        if response.status_code == 403:
            raise PermissionDenied("Provider denied location access")
        if response.status_code == 503:
            raise ProviderUnavailable("Provider location service is disabled")
        if response.status_code != 200:
            raise FixAcquisitionFailed(f"Location request failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise FixAcquisitionFailed(f"Invalid JSON from provider: {e}") from e
        return parse_fix_payload(data)

    async def subscribe(self) -> AsyncIterator[RawFix]:
        # No read timeout: the stream may stay quiet while the device is still.
        timeout = httpx.Timeout(self._timeout, read=None)
        try:
            async with self._client(timeout) as client:
                async with client.stream("GET", "/api/location/stream") as response:
                    if response.status_code == 403:
                        raise PermissionDenied("Provider denied location access")
                    if response.status_code == 503:
                        raise ProviderUnavailable("Provider location service is disabled")
                    if response.status_code != 200:
                        raise FixAcquisitionFailed(
                            f"Location stream failed: {response.status_code}"
                        )
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        try:
                            yield parse_fix_payload(json.loads(line))
                        except (ValueError, FixAcquisitionFailed) as e:
                            logger.warning(f"Skipping malformed stream line: {e}")
        except httpx.HTTPError as e:
            raise FixAcquisitionFailed(f"Location stream failed: {e}") from e


def _permission_from(status: dict) -> PermissionStatus:
    if status.get("permission") == PermissionStatus.GRANTED.value:
        return PermissionStatus.GRANTED
    return PermissionStatus.DENIED
