"""
Locations API Endpoint

Create, list, fetch and delete saved locations.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_location_store
from app.schemas.location import LocationCreate, LocationRecord, StatusMessage
from app.services.location_store import LocationStore, LocationStoreError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[LocationRecord])
async def list_locations(store: LocationStore = Depends(get_location_store)):
    """
    Get all saved locations, newest first.
    """
    try:
        return store.list_all()
    except LocationStoreError as e:
        logger.exception("Error fetching locations")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch locations",
        ) from e


@router.post("", response_model=LocationRecord, status_code=status.HTTP_201_CREATED)
async def create_location(
    location_in: LocationCreate,
    store: LocationStore = Depends(get_location_store),
):
    """
    Save a new location.

    The store assigns ``id`` and ``timestamp``; sending either is a
    validation error.
    """
    try:
        location = store.create(location_in)
    except LocationStoreError as e:
        logger.exception("Error creating location")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save location",
        ) from e

    logger.info(
        "Saved location %d: name=%s, coordinates=(%s, %s)",
        location.id,
        location.name,
        location.latitude,
        location.longitude,
    )
    return location


@router.get("/{location_id}", response_model=LocationRecord)
async def get_location(
    location_id: int,
    store: LocationStore = Depends(get_location_store),
):
    try:
        location = store.get_one(location_id)
    except LocationStoreError as e:
        logger.exception("Error fetching location %d", location_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch location",
        ) from e

    if location is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Location not found",
        )
    return location


@router.delete("/{location_id}", response_model=StatusMessage)
async def delete_location(
    location_id: int,
    store: LocationStore = Depends(get_location_store),
):
    """
    Delete one saved location.
    """
    try:
        deleted = store.delete_one(location_id)
    except LocationStoreError as e:
        logger.exception("Error deleting location %d", location_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete location",
        ) from e

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Location not found",
        )
    return StatusMessage(message="Location deleted successfully")


@router.delete("", response_model=StatusMessage)
async def clear_locations(store: LocationStore = Depends(get_location_store)):
    """
    Delete every saved location.
    """
    try:
        store.clear_all()
    except LocationStoreError as e:
        logger.exception("Error clearing locations")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear locations",
        ) from e

    logger.info("Cleared all locations")
    return StatusMessage(message="All locations cleared successfully")
