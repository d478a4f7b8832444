"""
HTTP client for the locations API.
"""

import logging
from typing import Any, List, Optional

import httpx

from app.schemas.location import LocationCreate, LocationRecord
from app.schemas.position import Position

logger = logging.getLogger(__name__)


class LocationApiError(Exception):
    """Raised when the API answers with an error or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class LocationApiClient:
    """
    Async client for ``/api/locations`` and ``/api/position``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10.0)
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._get_client().request(
                method, f"{self._base_url}{path}", **kwargs
            )
        except httpx.HTTPError as e:
            logger.error("Request %s %s failed: %s", method, path, str(e))
            raise LocationApiError(f"Could not reach the locations API: {str(e)}") from e

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            detail = payload.get("detail") if isinstance(payload, dict) else payload
            logger.warning(
                "%s %s returned status code: %d", method, path, response.status_code
            )
            raise LocationApiError(
                f"{method} {path} failed with status {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )
        return response

    async def list_locations(self) -> List[LocationRecord]:
        response = await self._request("GET", "/locations")
        return [LocationRecord.model_validate(item) for item in response.json()]

    async def create_location(self, location_in: LocationCreate) -> LocationRecord:
        response = await self._request(
            "POST", "/locations", json=location_in.model_dump(mode="json")
        )
        return LocationRecord.model_validate(response.json())

    async def delete_location(self, location_id: int) -> bool:
        """
        Delete one location.

        Returns:
            True if it was deleted, False if the server did not know it
        """
        try:
            await self._request("DELETE", f"/locations/{location_id}")
        except LocationApiError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def clear_locations(self) -> None:
        await self._request("DELETE", "/locations")

    async def get_position(self) -> Position:
        response = await self._request("GET", "/position")
        return Position.model_validate(response.json())

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
