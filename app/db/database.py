from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import text

from app.schemas.health import ServiceHealth

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    In-memory SQLite gets a single shared connection so every session sees
    the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def health_check(engine: Engine) -> ServiceHealth:
    """Check database health."""
    try:
        with engine.connect() as connection:
            result = connection.execute(text("SELECT 1")).scalar()
        if result == 1:
            return ServiceHealth(
                healthy=True,
                message="Database connection successful",
            )
        return ServiceHealth(
            healthy=False, message="Database query returned unexpected result"
        )
    except Exception as e:  # pylint: disable=broad-except
        return ServiceHealth(
            healthy=False, message=f"Database connection failed: {str(e)}"
        )
