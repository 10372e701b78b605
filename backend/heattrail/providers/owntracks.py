"""OwnTracks location provider over MQTT."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

import aiomqtt

from heattrail.errors import FixAcquisitionFailed
from heattrail.providers.base import GeoFixProvider, PermissionStatus
from heattrail.schemas.sample import RawFix

logger = logging.getLogger(__name__)


def parse_owntracks_payload(payload: bytes | str) -> RawFix | None:
    """Turn an OwnTracks message into a RawFix.

    Returns None for anything that is not a ``_type: location`` message
    (waypoints, transitions, cards, malformed JSON).
    """
    try:
        if isinstance(payload, bytes):
            data = json.loads(payload.decode("utf-8"))
        else:
            data = json.loads(payload)
    except (TypeError, json.JSONDecodeError, UnicodeDecodeError):
        return None

    if not isinstance(data, dict) or data.get("_type") != "location":
        return None

    try:
        lat = float(data["lat"])
        lon = float(data["lon"])
    except (KeyError, TypeError, ValueError):
        return None

    acc = data.get("acc")
    tst = data.get("tst")
    try:
        return RawFix(
            latitude=lat,
            longitude=lon,
            accuracy_m=float(acc) if acc is not None else None,
            # OwnTracks reports epoch seconds
            timestamp_ms=int(tst) * 1000 if tst is not None else None,
        )
    except (TypeError, ValueError, OverflowError):
        return None


class OwnTracksMqttProvider(GeoFixProvider):
    """Provider reading OwnTracks location messages from an MQTT broker.

    OwnTracks publishes locations as retained messages, so a fresh
    connection normally receives the latest fix right after subscribing.
    """

    def __init__(
        self,
        hostname: str,
        topic: str = "owntracks/+/+",
        port: int = 1883,
        username: str | None = None,
        password: str | None = None,
    ):
        self.hostname = hostname.strip()
        self.topic = topic
        self.port = port
        self._username = username
        self._password = password
        self._last_fix: RawFix | None = None

    def _client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self.hostname,
            port=self.port,
            username=self._username,
            password=self._password,
        )

    async def is_service_enabled(self) -> bool:
        try:
            async with self._client():
                return True
        except aiomqtt.MqttError as e:
            logger.debug(f"MQTT broker {self.hostname} unreachable: {e}")
            return False

    async def has_permission(self) -> PermissionStatus:
        # Access is governed by broker credentials; a refused login surfaces in get_fix.
        return PermissionStatus.GRANTED

    async def request_permission(self) -> PermissionStatus:
        return PermissionStatus.GRANTED

    async def get_fix(self) -> RawFix:
        """Most recent fix seen on the topic, waiting for one if none arrived yet."""
        if self._last_fix is not None:
            return self._last_fix
        async with aclosing(self.subscribe()) as fixes:
            async for fix in fixes:
                return fix
        raise FixAcquisitionFailed(f"No location received from {self.hostname}")

    async def subscribe(self) -> AsyncIterator[RawFix]:
        try:
            async with self._client() as client:
                await client.subscribe(self.topic)
                logger.info(f"Subscribed to {self.topic} on {self.hostname}")
                async for message in client.messages:
                    fix = parse_owntracks_payload(message.payload)
                    if fix is None:
                        logger.debug(f"Ignoring non-location message on {message.topic}")
                        continue
                    self._last_fix = fix
                    yield fix
        except aiomqtt.MqttError as e:
            raise FixAcquisitionFailed(f"MQTT error for {self.hostname}: {e}") from e
