"""
Local location history.

A best-effort JSON file of recently saved locations kept on the client.
It is independent of the server: failures here are logged and ignored.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ValidationError

from app.schemas.location import LocationBase, LocationCreate

logger = logging.getLogger(__name__)

MAX_ENTRIES = 50


class StoredLocation(LocationBase):
    id: str
    timestamp: datetime


class _HistoryFile(BaseModel):
    locations: List[StoredLocation] = []


class LocalHistory:
    """Newest-first history capped at ``MAX_ENTRIES`` entries."""

    def __init__(self, path: Union[str, Path], max_entries: int = MAX_ENTRIES):
        self._path = Path(path)
        self._max_entries = max_entries

    def load(self) -> List[StoredLocation]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except UnicodeDecodeError:
            logger.warning("Local history is not valid UTF-8, resetting")
            self.clear()
            return []
        except OSError as e:
            logger.error("Failed to read local history: %s", str(e))
            return []

        try:
            return _HistoryFile.model_validate_json(raw).locations
        except ValidationError:
            logger.warning("Invalid local history data, resetting")
            self.clear()
            return []

    def _write(self, locations: List[StoredLocation]) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                _HistoryFile(locations=locations).model_dump_json(), encoding="utf-8"
            )
        except OSError as e:
            logger.error("Failed to write local history: %s", str(e))
            return False
        return True

    def add(self, location: LocationCreate) -> Optional[StoredLocation]:
        """Record a location; returns None if it could not be written."""
        entry = StoredLocation(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc),
            **location.model_dump(),
        )
        locations = [entry, *self.load()][: self._max_entries]
        return entry if self._write(locations) else None

    def remove(self, entry_id: str) -> None:
        locations = self.load()
        remaining = [loc for loc in locations if loc.id != entry_id]
        if len(remaining) != len(locations):
            self._write(remaining)

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Failed to clear local history: %s", str(e))

    def count(self) -> int:
        return len(self.load())

    def is_available(self) -> bool:
        """Whether the history file's directory can be written."""
        probe = self._path.parent / f".{self._path.name}.probe"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            probe.write_text("probe", encoding="utf-8")
            probe.unlink()
        except OSError as e:
            logger.warning("Local history is not available: %s", str(e))
            return False
        return True

