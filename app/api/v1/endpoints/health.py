from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_location_store, get_position_source
from app.core.config import settings
from app.schemas.health import HealthCheckResponse
from app.services.location_store import LocationStore
from app.services.position_source import PositionSource

router = APIRouter()


@router.get("/health")
async def health_check(
    store: LocationStore = Depends(get_location_store),
    source: PositionSource = Depends(get_position_source),
) -> HealthCheckResponse:
    """
    Health check endpoint that reports:
    - Which location store is active and whether it is usable
    - The position source's permission state

    Returns 200 if the location store is healthy, 503 otherwise.
    """
    store_health = store.health_check()
    position_health = source.health_check()

    response = HealthCheckResponse(
        service="location-tracker",
        version=settings.VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        healthy=store_health.healthy,
        store_kind=store.kind,
        location_store=store_health,
        position_source=position_health,
    )

    if store_health.healthy:
        return response
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response.model_dump()
    )
