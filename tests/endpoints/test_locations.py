from datetime import datetime

from fastapi.testclient import TestClient

from app.main import create_app
from app.services.location_store import LocationStoreError
from app.services.position_source import PositionSource


class FailingLocationStore:
    """Store double whose backend is down."""

    kind = "failing"

    def _fail(self, *args, **kwargs):
        raise LocationStoreError("connection refused by db.internal:5432")

    list_all = get_one = create = delete_one = clear_all = _fail

    def close(self) -> None:
        pass


HOME = {"name": "Home", "latitude": 12.97, "longitude": 77.59}
WORK = {"name": "Work", "latitude": 12.93, "longitude": 77.61, "accuracy": 15.0}


def test_list_locations_empty(client: TestClient):
    """Test listing when nothing was saved"""
    response = client.get("/api/locations")

    assert response.status_code == 200
    assert response.json() == []


def test_create_location(client: TestClient):
    """Test saving a location without accuracy"""
    response = client.post("/api/locations", json=HOME)

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == 1
    assert data["name"] == "Home"
    assert data["latitude"] == 12.97
    assert data["longitude"] == 77.59
    assert data["accuracy"] is None
    assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None


def test_create_location_with_accuracy(client: TestClient):
    response = client.post("/api/locations", json=WORK)

    assert response.status_code == 201
    assert response.json()["accuracy"] == 15.0


def test_create_location_strips_name(client: TestClient):
    response = client.post("/api/locations", json={**HOME, "name": "  Home  "})

    assert response.status_code == 201
    assert response.json()["name"] == "Home"


def test_locations_scenario(client: TestClient):
    """Save two places, delete one, then clear everything"""
    first = client.post("/api/locations", json=HOME).json()
    second = client.post("/api/locations", json=WORK).json()
    assert (first["id"], second["id"]) == (1, 2)

    listed = client.get("/api/locations").json()
    assert [loc["id"] for loc in listed] == [2, 1]

    response = client.delete("/api/locations/1")
    assert response.status_code == 200
    assert response.json() == {"message": "Location deleted successfully"}
    assert [loc["id"] for loc in client.get("/api/locations").json()] == [2]

    response = client.delete("/api/locations")
    assert response.status_code == 200
    assert response.json() == {"message": "All locations cleared successfully"}
    assert client.get("/api/locations").json() == []


def test_get_location(client: TestClient):
    created = client.post("/api/locations", json=WORK).json()

    response = client.get(f"/api/locations/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


def test_get_location_not_found(client: TestClient):
    response = client.get("/api/locations/99999")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


def test_delete_location_not_found(client: TestClient):
    client.post("/api/locations", json=HOME)

    response = client.delete("/api/locations/99999")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"]
    assert len(client.get("/api/locations").json()) == 1


def test_delete_location_invalid_id(client: TestClient):
    response = client.delete("/api/locations/abc")

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Invalid location ID"


def test_clear_locations_when_empty(client: TestClient):
    response = client.delete("/api/locations")

    assert response.status_code == 200


def test_create_location_missing_fields(client: TestClient):
    """Test that every missing field is reported"""
    response = client.post("/api/locations", json={"name": "Nowhere"})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid location data"
    fields = {tuple(error["loc"])[-1] for error in detail["errors"]}
    assert fields == {"latitude", "longitude"}


def test_create_location_empty_name(client: TestClient):
    response = client.post("/api/locations", json={**HOME, "name": "   "})

    assert response.status_code == 400
    errors = response.json()["detail"]["errors"]
    assert errors[0]["loc"][-1] == "name"


def test_create_location_out_of_range(client: TestClient):
    response = client.post("/api/locations", json={**HOME, "latitude": 91.0})

    assert response.status_code == 400
    assert response.json()["detail"]["errors"][0]["loc"][-1] == "latitude"


def test_create_location_negative_accuracy(client: TestClient):
    response = client.post("/api/locations", json={**HOME, "accuracy": -1.0})

    assert response.status_code == 400


def test_create_location_rejects_store_assigned_fields(client: TestClient):
    """Test that id and timestamp cannot be supplied by the caller"""
    response = client.post("/api/locations", json={**HOME, "id": 42})
    assert response.status_code == 400
    assert response.json()["detail"]["errors"][0]["loc"][-1] == "id"

    response = client.post(
        "/api/locations", json={**HOME, "timestamp": "2020-01-01T00:00:00Z"}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["errors"][0]["loc"][-1] == "timestamp"

    assert client.get("/api/locations").json() == []


def test_create_location_invalid_json(client: TestClient):
    response = client.post(
        "/api/locations",
        content="not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400


def test_store_faults_return_generic_500():
    """Test that store failures become a 500 without leaking details"""
    app = create_app(location_store=FailingLocationStore(), position_source=PositionSource(None))

    with TestClient(app) as client:
        requests = [
            (client.get("/api/locations"), "Failed to fetch locations"),
            (client.post("/api/locations", json=HOME), "Failed to save location"),
            (client.get("/api/locations/1"), "Failed to fetch location"),
            (client.delete("/api/locations/1"), "Failed to delete location"),
            (client.delete("/api/locations"), "Failed to clear locations"),
        ]

    for response, message in requests:
        assert response.status_code == 500
        assert response.json() == {"detail": message}
        assert "db.internal" not in response.text


def test_root(client: TestClient):
    response = client.get("/")

    assert response.status_code == 200
    assert "Welcome" in response.json()["message"]
