import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.db.database import Base
from app.main import create_app
from app.models import location, user  # noqa: F401 - Register models on Base.metadata
from app.services.location_store import DatabaseLocationStore, InMemoryLocationStore
from app.services.position_providers import FixedPositionProvider
from app.services.position_source import PositionSource

# Test database URL - using SQLite for tests is simpler
SQLALCHEMY_DATABASE_TEST_URL = "sqlite:///:memory:"

test_engine = create_engine(
    SQLALCHEMY_DATABASE_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(scope="function")
def engine():
    # Create all tables
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def memory_store():
    return InMemoryLocationStore()


@pytest.fixture
def database_store(engine):
    return DatabaseLocationStore(engine)


@pytest.fixture(params=["memory", "database"])
def store(request):
    """Each test using this runs once per store backend."""
    if request.param == "memory":
        return InMemoryLocationStore()
    return request.getfixturevalue("database_store")


@pytest.fixture
def fixed_provider():
    return FixedPositionProvider(
        latitude=12.97, longitude=77.59, accuracy=15.0, watch_interval=0.01
    )


@pytest.fixture
def position_source(fixed_provider):
    return PositionSource(fixed_provider)


@pytest.fixture(scope="function")
def client(store, position_source):
    """Provides a FastAPI test client for each store backend."""
    app = create_app(location_store=store, position_source=position_source)
    with TestClient(app) as c:
        yield c
