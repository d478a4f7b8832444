"""
Coordinate Type Definitions

Shared base for every model that carries a latitude/longitude pair.
"""

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    """
    Geographic coordinates (latitude and longitude) in decimal degrees.
    """

    latitude: float = Field(..., ge=-90.0, le=90.0, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Longitude in decimal degrees")

    def __str__(self) -> str:
        return f"({self.latitude}, {self.longitude})"
