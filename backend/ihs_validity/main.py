"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ihs_validity.api.v1 import health
from ihs_validity.api.v1.api import api_router
from ihs_validity.core.cache import SimpleCache
from ihs_validity.core.config import settings
from ihs_validity.core.error_tracking import init_sentry
from ihs_validity.core.logging_config import setup_logging
from ihs_validity.middleware import RequestLoggingMiddleware
from ihs_validity.models.base import research_engine, scan_engine

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "analytics",
        "description": "Criterion validity of the Inner Happiness Scan against "
        "WHO-5, SWLS and the Cantril ladder.",
    },
    {
        "name": "health",
        "description": "Liveness probes.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: initializes Sentry when configured
    - On shutdown: disposes both database engines
    """
    init_sentry(settings)
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting ({settings.ENV})")

    yield

    await scan_engine.dispose()
    if research_engine is not scan_engine:
        await research_engine.dispose()
    logger.info("Database engines disposed")


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**IHS Validity Analytics** - read-only statistics over Inner Happiness "
            "Scan sessions joined with research questionnaires.\n\n"
            "All statistics that cannot be computed from the selected population "
            "are returned as `null`."
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    # Short-lived result cache shared by all requests of this process
    app.state.validity_cache = SimpleCache(
        default_ttl=settings.VALIDITY_CACHE_TTL_SECONDS,
        max_entries=settings.VALIDITY_CACHE_MAX_ENTRIES,
    )

    # The dashboard only reads
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, tags=["health"])
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        The error_id is returned to the client and logged with the traceback
        so a report can be matched to its log entry.
        """
        error_id = str(uuid.uuid4())
        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"path": str(request.url.path), "method": request.method},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error_id": error_id,
            },
        )

    return app


app = create_application()
