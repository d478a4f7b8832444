from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.schemas.position import Position, PositionOptions
from app.services.location_store import InMemoryLocationStore
from app.services.position_providers import PositionErrorCode
from app.services.position_source import PositionSource
from tests.providers import ScriptedPositionProvider


def position_client(source: PositionSource) -> TestClient:
    return TestClient(create_app(location_store=InMemoryLocationStore(), position_source=source))


def test_get_position(client: TestClient):
    """Test reading the current position from the fixed provider"""
    response = client.get("/api/position")

    assert response.status_code == 200
    data = response.json()
    assert data["latitude"] == 12.97
    assert data["longitude"] == 77.59
    assert data["accuracy"] == 15.0
    assert "timestamp" in data


def test_get_position_scripted_fix():
    fix = Position(
        latitude=60.17, longitude=24.94, accuracy=8.0, timestamp=datetime.now(timezone.utc)
    )

    with position_client(PositionSource(ScriptedPositionProvider(fix))) as client:
        response = client.get("/api/position")

    assert response.status_code == 200
    assert response.json()["latitude"] == 60.17


def test_get_position_unsupported():
    with position_client(PositionSource(None)) as client:
        response = client.get("/api/position")

    assert response.status_code == 501
    assert "not supported" in response.json()["detail"]


@pytest.mark.parametrize(
    "code, status_code, text",
    [
        (PositionErrorCode.PERMISSION_DENIED, 403, "denied"),
        (PositionErrorCode.POSITION_UNAVAILABLE, 503, "unavailable"),
        (PositionErrorCode.TIMEOUT, 504, "timed out"),
    ],
)
def test_get_position_errors(code, status_code, text):
    source = PositionSource(ScriptedPositionProvider(request_outcome=code))

    with position_client(source) as client:
        response = client.get("/api/position")

    assert response.status_code == status_code
    assert text in response.json()["detail"]


def test_get_position_provider_never_answers():
    source = PositionSource(
        ScriptedPositionProvider(request_outcome=None), PositionOptions(timeout_ms=100)
    )

    with position_client(source) as client:
        response = client.get("/api/position")

    assert response.status_code == 504
