"""
Position Source

Turns a callback-based ``PositionProvider`` into two shapes:

- ``get_current_position``: one awaited fix, bounded by the configured
  timeout.
- ``watch_position``: a subscription that keeps delivering fixes until
  ``cancel_watch`` is called.

Both share one ``PositionOptions`` configuration.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from app.schemas.health import ServiceHealth
from app.schemas.position import Position, PositionOptions
from app.services.position_providers import PositionErrorCode, PositionProvider

logger = logging.getLogger(__name__)


class PositionSourceError(Exception):
    """Base exception for position acquisition errors."""

    message = "Unknown location error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class PositionUnsupportedError(PositionSourceError):
    """Raised when no location capability is available at all."""

    message = "Geolocation is not supported on this platform"


class PositionPermissionDeniedError(PositionSourceError):
    """Raised when the user or OS refused access to the location."""

    message = "Location access denied. Allow location access and try again"


class PositionUnavailableError(PositionSourceError):
    """Raised when no fix could be obtained."""

    message = "Location information unavailable. Check your connection or GPS signal"


class PositionTimeoutError(PositionSourceError):
    """Raised when no fix arrived within the timeout."""

    message = "Location request timed out. Try again"


_ERRORS_BY_CODE = {
    PositionErrorCode.PERMISSION_DENIED: PositionPermissionDeniedError,
    PositionErrorCode.POSITION_UNAVAILABLE: PositionUnavailableError,
    PositionErrorCode.TIMEOUT: PositionTimeoutError,
}


def position_error(code: PositionErrorCode) -> PositionSourceError:
    """Build the exception matching a provider error code."""
    return _ERRORS_BY_CODE.get(code, PositionSourceError)()


@dataclass
class WatchHandle:
    """Identifies one watch subscription."""

    id: int
    watch_id: Optional[int] = None
    active: bool = True


class PositionSource:
    """
    Adapter over a position provider.

    A ``None`` provider means the platform has no location capability;
    every acquisition then fails at once with ``PositionUnsupportedError``.
    """

    def __init__(
        self,
        provider: Optional[PositionProvider],
        options: Optional[PositionOptions] = None,
    ):
        self._provider = provider
        self._options = options or PositionOptions()
        self._last_fix: Optional[Position] = None
        self._handle_ids = itertools.count(1)
        self._watches: Dict[int, WatchHandle] = {}

    @property
    def options(self) -> PositionOptions:
        return self._options

    @property
    def is_supported(self) -> bool:
        return self._provider is not None

    def _require_provider(self) -> PositionProvider:
        if self._provider is None:
            raise PositionUnsupportedError()
        return self._provider

    def _cached_fix(self, options: PositionOptions) -> Optional[Position]:
        if self._last_fix is None or options.maximum_age_ms <= 0:
            return None
        age = datetime.now(timezone.utc) - self._last_fix.timestamp
        if age.total_seconds() * 1000 <= options.maximum_age_ms:
            return self._last_fix
        return None

    async def get_current_position(
        self, options: Optional[PositionOptions] = None
    ) -> Position:
        """
        Get the current position once.

        Args:
            options: Overrides the source's default options for this call

        Returns:
            The first fix the provider reports, or a cached fix no older than
            ``maximum_age_ms``

        Raises:
            PositionUnsupportedError: If there is no provider
            PositionPermissionDeniedError: If access was refused
            PositionUnavailableError: If no fix could be obtained
            PositionTimeoutError: If nothing arrived within ``timeout_ms``
        """
        provider = self._require_provider()
        options = options or self._options

        cached = self._cached_fix(options)
        if cached is not None:
            logger.debug("Using cached position from %s", cached.timestamp.isoformat())
            return cached

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        # Late callbacks after a timeout are dropped
        def on_success(position: Position) -> None:
            if not future.done():
                future.set_result(position)

        def on_error(code: PositionErrorCode) -> None:
            if not future.done():
                future.set_exception(position_error(code))

        logger.info("Requesting current position")
        provider.request_position(on_success, on_error, options)

        try:
            position = await asyncio.wait_for(future, timeout=options.timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            logger.warning("Position request timed out after %d ms", options.timeout_ms)
            raise PositionTimeoutError() from e
        except PositionSourceError as e:
            logger.warning("Position request failed: %s", str(e))
            raise

        logger.info(
            "Position received: latitude=%s, longitude=%s, accuracy=%s",
            position.latitude,
            position.longitude,
            position.accuracy,
        )
        self._last_fix = position
        return position

    def watch_position(
        self,
        on_position: Callable[[Position], None],
        on_error: Optional[Callable[[PositionSourceError], None]] = None,
        options: Optional[PositionOptions] = None,
    ) -> WatchHandle:
        """
        Subscribe to position updates.

        ``on_position`` runs for every fix and ``on_error`` for every error;
        errors do not end the subscription. Must be called from a running
        event loop.
        """
        provider = self._require_provider()
        options = options or self._options
        handle = WatchHandle(id=next(self._handle_ids))

        def deliver(position: Position) -> None:
            if not handle.active:
                return
            self._last_fix = position
            on_position(position)

        def fail(code: PositionErrorCode) -> None:
            if not handle.active:
                return
            error = position_error(code)
            logger.warning("Watch %d error: %s", handle.id, str(error))
            if on_error is not None:
                on_error(error)

        handle.watch_id = provider.start_watch(deliver, fail, options)
        self._watches[handle.id] = handle
        logger.info("Started position watch %d", handle.id)
        return handle

    def cancel_watch(self, handle: Optional[WatchHandle]) -> None:
        """
        Stop a watch. Unknown, ``None`` or already-cancelled handles are
        ignored. No callback of the watch runs after this returns.
        """
        if handle is None:
            return
        if self._watches.get(handle.id) is not handle:
            return
        watch = self._watches.pop(handle.id)
        watch.active = False
        if self._provider is not None and watch.watch_id is not None:
            self._provider.stop_watch(watch.watch_id)
        logger.info("Stopped position watch %d", watch.id)

    def check_permission(self) -> Optional[str]:
        """Permission state reported by the provider, None if unknown."""
        if self._provider is None:
            return None
        return self._provider.permission_state()

    def health_check(self) -> ServiceHealth:
        if self._provider is None:
            return ServiceHealth(healthy=True, message="No position provider configured")
        permission = self.check_permission()
        return ServiceHealth(
            healthy=permission != "denied",
            message=f"Position provider permission: {permission or 'unknown'}",
        )

    async def aclose(self) -> None:
        for handle in list(self._watches.values()):
            self.cancel_watch(handle)
        if self._provider is not None:
            await self._provider.aclose()
