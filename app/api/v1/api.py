from fastapi import APIRouter

from app.api.v1.endpoints import health, locations, position

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(locations.router, prefix="/locations", tags=["locations"])
api_router.include_router(position.router, prefix="/position", tags=["position"])
