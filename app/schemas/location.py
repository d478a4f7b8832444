"""
Location Schema

Pydantic models for saved locations: what a caller may send, and what the
store hands back.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.geo import Coordinates


class LocationBase(Coordinates):
    name: str = Field(..., description="Display label for the location")
    accuracy: Optional[float] = Field(
        default=None, ge=0.0, description="Accuracy radius in meters"
    )


class LocationCreate(LocationBase):
    """
    Fields a caller may supply when saving a location.

    ``id`` and ``timestamp`` are assigned by the store; a request carrying
    them, or any other unknown field, is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip surrounding whitespace and refuse blank names."""
        v = v.strip()
        if not v:
            raise ValueError("Location name cannot be empty")
        return v


class LocationRecord(LocationBase):
    id: int
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusMessage(BaseModel):
    message: str
