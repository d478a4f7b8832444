"""
Position Schema

Pydantic models for position fixes and the options that govern how they
are acquired.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.config import settings
from app.schemas.geo import Coordinates


class PositionOptions(BaseModel):
    """Options shared by single-shot requests and watches."""

    enable_high_accuracy: bool = Field(
        default_factory=lambda: settings.GEOLOCATION_ENABLE_HIGH_ACCURACY,
        description="Prefer precise, power-hungry sensors",
    )
    timeout_ms: int = Field(
        default_factory=lambda: settings.GEOLOCATION_TIMEOUT_MS,
        gt=0,
        description="Maximum wait before failing with a timeout",
    )
    maximum_age_ms: int = Field(
        default_factory=lambda: settings.GEOLOCATION_MAXIMUM_AGE_MS,
        ge=0,
        description="Accept a cached fix no older than this",
    )


class Position(Coordinates):
    """A single position fix."""

    accuracy: Optional[float] = Field(default=None, ge=0.0, description="Accuracy in meters")
    timestamp: datetime = Field(..., description="When the fix was taken")
