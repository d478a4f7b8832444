"""
Location store service.

Two interchangeable backends share one contract: a volatile in-process
store and a durable SQLAlchemy-backed store. The backend is chosen once at
startup by ``create_location_store`` and handed to the request layer.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import Settings
from app.db import database
from app.db.database import Base
from app.models.location import Location
from app.schemas.health import ServiceHealth
from app.schemas.location import LocationCreate, LocationRecord

logger = logging.getLogger(__name__)

MEMORY = "memory"
DATABASE = "database"
AUTO = "auto"


class LocationStoreError(Exception):
    """Raised when the underlying storage fails."""


class LocationStore(Protocol):
    """Operations every location backend provides."""

    kind: str

    def list_all(self) -> List[LocationRecord]: ...

    def get_one(self, location_id: int) -> Optional[LocationRecord]: ...

    def create(self, location_in: LocationCreate) -> LocationRecord: ...

    def delete_one(self, location_id: int) -> bool: ...

    def clear_all(self) -> bool: ...

    def health_check(self) -> ServiceHealth: ...

    def close(self) -> None: ...


def _newest_first(records: List[LocationRecord]) -> List[LocationRecord]:
    return sorted(records, key=lambda r: (r.timestamp, r.id), reverse=True)


class InMemoryLocationStore:
    """
    Volatile store kept in a dict keyed by id.

    Ids start at 1 and are never reused for the lifetime of the instance.
    Everything is lost when the process exits.
    """

    kind = MEMORY

    def __init__(self):
        self._locations: Dict[int, LocationRecord] = {}
        self._next_id = 1

    def list_all(self) -> List[LocationRecord]:
        return [r.model_copy() for r in _newest_first(list(self._locations.values()))]

    def get_one(self, location_id: int) -> Optional[LocationRecord]:
        record = self._locations.get(location_id)
        return record.model_copy() if record is not None else None

    def create(self, location_in: LocationCreate) -> LocationRecord:
        record = LocationRecord(
            id=self._next_id,
            timestamp=datetime.now(timezone.utc),
            **location_in.model_dump(),
        )
        self._locations[record.id] = record
        self._next_id += 1
        logger.info("Saved location %d (%s) in memory", record.id, record.name)
        return record.model_copy()

    def delete_one(self, location_id: int) -> bool:
        return self._locations.pop(location_id, None) is not None

    def clear_all(self) -> bool:
        self._locations.clear()
        return True

    def health_check(self) -> ServiceHealth:
        return ServiceHealth(
            healthy=True,
            message=f"In-memory store holding {len(self._locations)} locations",
        )

    def close(self) -> None:
        pass


class DatabaseLocationStore:
    """
    Durable store backed by the ``locations`` table.

    Every operation is a single statement in its own transaction: inserts
    return the generated id and timestamp in the same round trip, and a
    bulk clear is one DELETE.
    """

    kind = DATABASE

    _RETURNED_COLUMNS = (
        Location.id,
        Location.name,
        Location.latitude,
        Location.longitude,
        Location.accuracy,
        Location.timestamp,
    )

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = database.create_session_factory(engine)

    @staticmethod
    def _to_record(row) -> LocationRecord:
        timestamp = row.timestamp
        # SQLite hands back naive datetimes; they are stored as UTC
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return LocationRecord(
            id=row.id,
            name=row.name,
            latitude=row.latitude,
            longitude=row.longitude,
            accuracy=row.accuracy,
            timestamp=timestamp,
        )

    def list_all(self) -> List[LocationRecord]:
        stmt = select(*self._RETURNED_COLUMNS).order_by(
            Location.timestamp.desc(), Location.id.desc()
        )
        try:
            with self._session_factory() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error("Failed to list locations: %s", str(e))
            raise LocationStoreError("Failed to list locations") from e
        return [self._to_record(row) for row in rows]

    def get_one(self, location_id: int) -> Optional[LocationRecord]:
        stmt = select(*self._RETURNED_COLUMNS).where(Location.id == location_id)
        try:
            with self._session_factory() as session:
                row = session.execute(stmt).first()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch location %d: %s", location_id, str(e))
            raise LocationStoreError("Failed to fetch location") from e
        return self._to_record(row) if row is not None else None

    def create(self, location_in: LocationCreate) -> LocationRecord:
        stmt = (
            insert(Location)
            .values(
                name=location_in.name,
                latitude=location_in.latitude,
                longitude=location_in.longitude,
                accuracy=location_in.accuracy,
            )
            .returning(*self._RETURNED_COLUMNS)
        )
        try:
            with self._session_factory.begin() as session:
                row = session.execute(stmt).one()
        except SQLAlchemyError as e:
            logger.error("Failed to save location: %s", str(e))
            raise LocationStoreError("Failed to save location") from e
        logger.info("Saved location %d (%s) in database", row.id, row.name)
        return self._to_record(row)

    def delete_one(self, location_id: int) -> bool:
        stmt = (
            delete(Location)
            .where(Location.id == location_id)
            .execution_options(synchronize_session=False)
        )
        try:
            with self._session_factory.begin() as session:
                deleted = session.execute(stmt).rowcount > 0
        except SQLAlchemyError as e:
            logger.error("Failed to delete location %d: %s", location_id, str(e))
            raise LocationStoreError("Failed to delete location") from e
        return deleted

    def clear_all(self) -> bool:
        stmt = delete(Location).execution_options(synchronize_session=False)
        try:
            with self._session_factory.begin() as session:
                cleared = session.execute(stmt).rowcount
        except SQLAlchemyError as e:
            logger.error("Failed to clear locations: %s", str(e))
            raise LocationStoreError("Failed to clear locations") from e
        logger.info("Cleared %d locations from database", cleared)
        return True

    def health_check(self) -> ServiceHealth:
        return database.health_check(self._engine)

    def close(self) -> None:
        self._engine.dispose()


def create_location_store(config: Settings) -> LocationStore:
    """
    Pick the store backend for this process.

    ``memory`` and ``database`` force a backend. ``auto`` uses the database
    when ``DATABASE_URL`` is set and reachable, and falls back to memory
    otherwise.
    """
    mode = config.LOCATION_STORE.lower()
    if mode not in (AUTO, MEMORY, DATABASE):
        raise ValueError(f"Unknown LOCATION_STORE setting: {config.LOCATION_STORE}")

    if mode == MEMORY:
        logger.info("Using in-memory location store")
        return InMemoryLocationStore()

    if not config.DATABASE_URL:
        if mode == DATABASE:
            raise LocationStoreError("LOCATION_STORE=database requires DATABASE_URL")
        logger.warning("DATABASE_URL not set, locations will not survive a restart")
        return InMemoryLocationStore()

    engine = database.create_db_engine(config.DATABASE_URL)
    health = database.health_check(engine)
    if not health.healthy:
        engine.dispose()
        if mode == DATABASE:
            raise LocationStoreError(health.message)
        logger.warning(
            "%s; falling back to in-memory location store", health.message
        )
        return InMemoryLocationStore()

    Base.metadata.create_all(bind=engine, tables=[Location.__table__])
    logger.info("Using database location store")
    return DatabaseLocationStore(engine)
