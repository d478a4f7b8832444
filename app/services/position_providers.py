"""
Position providers

A provider is the platform's location capability. It speaks in callbacks,
the way a browser's geolocation object does: one request fires exactly one
of ``on_success``/``on_error``, and a watch keeps firing until stopped.
``PositionSource`` adapts these callbacks into awaitables and subscriptions.
"""

import asyncio
import itertools
import logging
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Protocol, Set

import httpx

from app.core.config import Settings
from app.schemas.position import Position, PositionOptions

logger = logging.getLogger(__name__)


class PositionErrorCode(IntEnum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class PositionProviderFailure(Exception):
    """Carries a ``PositionErrorCode`` out of a provider's fetch."""

    def __init__(self, code: PositionErrorCode):
        super().__init__(code.name)
        self.code = code


SuccessCallback = Callable[[Position], None]
ErrorCallback = Callable[[PositionErrorCode], None]


class PositionProvider(Protocol):
    def request_position(
        self, on_success: SuccessCallback, on_error: ErrorCallback, options: PositionOptions
    ) -> None: ...

    def start_watch(
        self, on_success: SuccessCallback, on_error: ErrorCallback, options: PositionOptions
    ) -> int: ...

    def stop_watch(self, watch_id: int) -> None: ...

    def permission_state(self) -> Optional[str]: ...

    async def aclose(self) -> None: ...


class FixedPositionProvider:
    """
    Reports a configured position.

    Fixes are delivered on the next event loop iteration, never inline, so
    callers observe the same ordering a real device would give them.
    """

    def __init__(
        self,
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
        watch_interval: float = 5.0,
    ):
        self._latitude = latitude
        self._longitude = longitude
        self._accuracy = accuracy
        self._watch_interval = watch_interval
        self._watch_ids = itertools.count(1)
        self._watches: Dict[int, asyncio.TimerHandle] = {}

    def _fix(self) -> Position:
        return Position(
            latitude=self._latitude,
            longitude=self._longitude,
            accuracy=self._accuracy,
            timestamp=datetime.now(timezone.utc),
        )

    def request_position(self, on_success, on_error, options) -> None:
        asyncio.get_running_loop().call_soon(lambda: on_success(self._fix()))

    def start_watch(self, on_success, on_error, options) -> int:
        watch_id = next(self._watch_ids)
        loop = asyncio.get_running_loop()

        def emit():
            if watch_id not in self._watches:
                return
            self._watches[watch_id] = loop.call_later(self._watch_interval, emit)
            on_success(self._fix())

        self._watches[watch_id] = loop.call_soon(emit)
        return watch_id

    def stop_watch(self, watch_id: int) -> None:
        handle = self._watches.pop(watch_id, None)
        if handle is not None:
            handle.cancel()

    def permission_state(self) -> Optional[str]:
        return "granted"

    async def aclose(self) -> None:
        for watch_id in list(self._watches):
            self.stop_watch(watch_id)


class HttpPositionProvider:
    """
    Network geolocation over HTTP.

    Queries an IP geolocation endpoint returning JSON with ``lat``/``lon``
    (or ``latitude``/``longitude``) and an optional ``accuracy`` in meters.
    """

    def __init__(
        self,
        api_url: str,
        watch_interval: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_url = api_url
        self._watch_interval = watch_interval
        self._client = client
        self._watch_ids = itertools.count(1)
        self._watches: Dict[int, asyncio.Task] = {}
        self._requests: Set[asyncio.Task] = set()
        self._permission: Optional[str] = None

    def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the HTTP client for the geolocation endpoint.
        """
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    @staticmethod
    def _parse(payload: Any) -> Optional[Position]:
        if not isinstance(payload, dict) or payload.get("status") == "fail":
            return None
        latitude = payload.get("lat", payload.get("latitude"))
        longitude = payload.get("lon", payload.get("longitude"))
        if latitude is None or longitude is None:
            return None
        try:
            return Position(
                latitude=latitude,
                longitude=longitude,
                accuracy=payload.get("accuracy"),
                timestamp=datetime.now(timezone.utc),
            )
        except ValueError:
            return None

    async def _fetch(self, options: PositionOptions) -> Position:
        """
        Fetch one fix, raising ``PositionProviderFailure`` on any failure.
        """
        try:
            response = await self._get_client().get(
                self._api_url, timeout=options.timeout_ms / 1000
            )
        except httpx.TimeoutException as e:
            logger.warning("Geolocation request timed out")
            raise PositionProviderFailure(PositionErrorCode.TIMEOUT) from e
        except httpx.HTTPError as e:
            logger.warning("Geolocation request failed: %s", str(e))
            raise PositionProviderFailure(PositionErrorCode.POSITION_UNAVAILABLE) from e

        if response.status_code in (401, 403):
            self._permission = "denied"
            raise PositionProviderFailure(PositionErrorCode.PERMISSION_DENIED)
        if response.status_code != 200:
            logger.warning(
                "Geolocation endpoint returned status code: %d", response.status_code
            )
            raise PositionProviderFailure(PositionErrorCode.POSITION_UNAVAILABLE)

        try:
            position = self._parse(response.json())
        except ValueError:
            position = None
        if position is None:
            logger.warning("Geolocation endpoint returned an unusable payload")
            raise PositionProviderFailure(PositionErrorCode.POSITION_UNAVAILABLE)
        self._permission = "granted"
        return position

    async def _request(self, on_success, on_error, options) -> None:
        try:
            position = await self._fetch(options)
        except PositionProviderFailure as failure:
            on_error(failure.code)
            return
        on_success(position)

    async def _watch(self, on_success, on_error, options) -> None:
        while True:
            try:
                position = await self._fetch(options)
            except PositionProviderFailure as failure:
                on_error(failure.code)
            else:
                on_success(position)
            await asyncio.sleep(self._watch_interval)

    def request_position(self, on_success, on_error, options) -> None:
        task = asyncio.get_running_loop().create_task(
            self._request(on_success, on_error, options)
        )
        self._requests.add(task)
        task.add_done_callback(self._requests.discard)

    def start_watch(self, on_success, on_error, options) -> int:
        watch_id = next(self._watch_ids)
        self._watches[watch_id] = asyncio.get_running_loop().create_task(
            self._watch(on_success, on_error, options)
        )
        return watch_id

    def stop_watch(self, watch_id: int) -> None:
        task = self._watches.pop(watch_id, None)
        if task is not None:
            task.cancel()

    def permission_state(self) -> Optional[str]:
        return self._permission

    async def aclose(self) -> None:
        for watch_id in list(self._watches):
            self.stop_watch(watch_id)
        for task in list(self._requests):
            task.cancel()
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def create_position_provider(config: Settings) -> Optional[PositionProvider]:
    """
    Build the provider named by ``POSITION_PROVIDER``.

    Returns None for ``none``: the process has no location capability.
    """
    kind = config.POSITION_PROVIDER.lower()
    if kind == "none":
        return None
    if kind == "fixed":
        return FixedPositionProvider(
            latitude=config.FIXED_LATITUDE,
            longitude=config.FIXED_LONGITUDE,
            accuracy=config.FIXED_ACCURACY,
            watch_interval=config.POSITION_WATCH_INTERVAL_SECONDS,
        )
    if kind == "http":
        return HttpPositionProvider(
            api_url=config.GEOIP_API_URL,
            watch_interval=config.POSITION_WATCH_INTERVAL_SECONDS,
        )
    raise ValueError(f"Unknown POSITION_PROVIDER setting: {config.POSITION_PROVIDER}")
