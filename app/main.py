import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.schemas.position import PositionOptions
from app.services.location_store import LocationStore, create_location_store
from app.services.position_providers import create_position_provider
from app.services.position_source import PositionSource
from app.utils import logger as _  # noqa: F401 - Import to configure logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    # Only what is built here is released here
    owns_store = state.location_store is None
    owns_source = state.position_source is None
    if owns_store:
        state.location_store = create_location_store(settings)
    if owns_source:
        state.position_source = PositionSource(
            create_position_provider(settings), PositionOptions()
        )
    logger.info(
        "Location store: %s, position source supported: %s",
        state.location_store.kind,
        state.position_source.is_supported,
    )
    try:
        yield
    finally:
        if owns_source:
            await state.position_source.aclose()
            state.position_source = None
        if owns_store:
            state.location_store.close()
            state.location_store = None


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are a 400 with the per-field errors attached."""
    errors = jsonable_encoder(exc.errors())
    if any(error.get("loc", [None])[0] == "path" for error in errors):
        message = "Invalid location ID"
    else:
        message = "Invalid location data"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"message": message, "errors": errors}},
    )


def create_app(
    location_store: Optional[LocationStore] = None,
    position_source: Optional[PositionSource] = None,
) -> FastAPI:
    """
    Build the application.

    A store or position source passed in is used as-is; anything left out is
    built from settings when the application starts.
    """
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.PROJECT_DESCRIPTION,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    application.state.location_store = location_store
    application.state.position_source = position_source

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(RequestValidationError, validation_exception_handler)

    application.include_router(api_router, prefix=settings.API_PREFIX)

    @application.get("/")
    def read_root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    return application


logger.info("Starting %s version v%s", settings.PROJECT_NAME, settings.VERSION)

app = create_app()
