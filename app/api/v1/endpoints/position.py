"""
Position API Endpoint

Reports the current position from the process's position source.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_position_source
from app.schemas.position import Position
from app.services.position_source import (
    PositionPermissionDeniedError,
    PositionSource,
    PositionSourceError,
    PositionTimeoutError,
    PositionUnavailableError,
    PositionUnsupportedError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=Position)
async def get_current_position(source: PositionSource = Depends(get_position_source)):
    """
    Get the current position once.

    Each acquisition failure has its own status code so clients can tell
    the user what to do about it.
    """
    try:
        return await source.get_current_position()

    except PositionUnsupportedError as e:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(e)
        ) from e

    except PositionPermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    except PositionUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from e

    except PositionTimeoutError as e:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e)
        ) from e

    except PositionSourceError as e:
        logger.error("Position source error: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from e
