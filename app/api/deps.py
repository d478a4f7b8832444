from fastapi import Request

from app.services.location_store import LocationStore
from app.services.position_source import PositionSource


def get_location_store(request: Request) -> LocationStore:
    """The store chosen for this process at startup."""
    return request.app.state.location_store


def get_position_source(request: Request) -> PositionSource:
    return request.app.state.position_source
