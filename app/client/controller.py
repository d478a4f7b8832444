"""
Location tracker controller.

Drives the client flow: get the current position, keep it on hand, save it
to the server on request, and manage the saved list. Holds no algorithmic
logic of its own; it sequences the position source, the API client and the
local history.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from app.client.api_client import LocationApiClient
from app.client.local_history import LocalHistory
from app.schemas.location import LocationCreate, LocationRecord
from app.schemas.position import Position
from app.services.position_source import (
    PositionSource,
    PositionSourceError,
    WatchHandle,
)

logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    ACTIVE = "active"
    ERRORED = "errored"


class NoPositionError(Exception):
    """Raised when saving before any position was obtained."""


class LocationTrackerController:
    """
    State machine: ``idle -> requesting -> active | errored``. A new manual
    request moves ``active`` or ``errored`` back to ``requesting``. Nothing
    is retried automatically.
    """

    def __init__(
        self,
        position_source: PositionSource,
        api_client: LocationApiClient,
        history: Optional[LocalHistory] = None,
    ):
        self._source = position_source
        self._api = api_client
        self._history = history
        self._watch: Optional[WatchHandle] = None

        self.state = TrackerState.IDLE
        self.current_position: Optional[Position] = None
        self.error_message: Optional[str] = None
        self.locations: List[LocationRecord] = []

    @property
    def is_watching(self) -> bool:
        return self._watch is not None

    async def refresh_position(self) -> Position:
        """
        Request the current position once.

        Raises:
            PositionSourceError: The acquisition failed; ``state`` is
                ``errored`` and ``error_message`` holds the reason
        """
        self.state = TrackerState.REQUESTING
        self.error_message = None
        try:
            position = await self._source.get_current_position()
        except PositionSourceError as e:
            self.state = TrackerState.ERRORED
            self.error_message = str(e)
            raise

        self.current_position = position
        self.state = TrackerState.ACTIVE

        if self._history is not None:
            self._history.add(
                LocationCreate(
                    name=f"Location {datetime.now().strftime('%H:%M:%S')}",
                    latitude=position.latitude,
                    longitude=position.longitude,
                    accuracy=position.accuracy,
                )
            )
        return position

    async def save_current(self, name: Optional[str] = None) -> LocationRecord:
        """
        Save the current position to the server.

        Args:
            name: Label for the entry, defaults to "Location <date time>"
        """
        if self.current_position is None:
            raise NoPositionError("Get your current location first")

        location_in = LocationCreate(
            name=name or f"Location {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            latitude=self.current_position.latitude,
            longitude=self.current_position.longitude,
            accuracy=self.current_position.accuracy,
        )
        record = await self._api.create_location(location_in)
        self.locations.insert(0, record)
        logger.info("Saved location %d (%s)", record.id, record.name)
        return record

    async def load_locations(self) -> List[LocationRecord]:
        self.locations = await self._api.list_locations()
        return self.locations

    async def delete_location(self, location_id: int) -> bool:
        deleted = await self._api.delete_location(location_id)
        self.locations = [loc for loc in self.locations if loc.id != location_id]
        return deleted

    async def clear_locations(self) -> None:
        await self._api.clear_locations()
        self.locations = []
        if self._history is not None:
            self._history.clear()

    def _on_watch_position(self, position: Position) -> None:
        self.current_position = position
        self.error_message = None
        self.state = TrackerState.ACTIVE

    def _on_watch_error(self, error: PositionSourceError) -> None:
        self.error_message = str(error)
        self.state = TrackerState.ERRORED

    def start_watching(self) -> None:
        """Keep ``current_position`` updated until ``stop_watching``."""
        if self._watch is not None:
            return
        self.state = TrackerState.REQUESTING
        try:
            self._watch = self._source.watch_position(
                self._on_watch_position, self._on_watch_error
            )
        except PositionSourceError as e:
            self._on_watch_error(e)
            raise

    def stop_watching(self) -> None:
        self._source.cancel_watch(self._watch)
        self._watch = None
