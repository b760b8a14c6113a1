"""
FastAPI Application Setup.

Application factory for the Media Decrypt HTTP service.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from media_decrypt.api.middleware.logging import RequestLoggingMiddleware
from media_decrypt.api.middleware.size_limit import SizeLimitMiddleware
from media_decrypt.api.routes import decode, downloads, health
from media_decrypt.api.schemas.exceptions import APIException
from media_decrypt.artifacts import ArtifactStore, RetentionSweeper
from media_decrypt.core.config import ServiceConfig
from media_decrypt.fetch import MediaFetcher
from media_decrypt.service import MediaDecryptService
from media_decrypt.version import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.

    Starts the retention sweeper on startup. Stops it and releases the
    fetcher and store on shutdown.
    """
    config: ServiceConfig = app.state.config
    logger.info("Media Decrypt API starting up...")
    logger.info(f"Version: {__version__}")
    logger.info(f"Storing artifacts in {config.storage.storage_dir}")

    app.state.sweeper.start()

    yield

    logger.info("Media Decrypt API shutting down...")
    app.state.sweeper.stop()
    app.state.fetcher.close()
    app.state.service.store.close()


def create_app(
    config: ServiceConfig | None = None,
    fetcher: MediaFetcher | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Service configuration (default: ServiceConfig.from_env())
        fetcher: Fetcher for encrypted media (default: built from config.fetch)

    Returns:
        Configured FastAPI application instance
    """
    config = config or ServiceConfig.from_env()
    fetcher = fetcher or MediaFetcher(config.fetch)
    store = ArtifactStore(config.storage)

    app = FastAPI(
        title="Media Decrypt API",
        description="Decrypts end-to-end encrypted chat media and serves the plaintext",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.fetcher = fetcher
    app.state.service = MediaDecryptService(store, fetcher=fetcher)
    app.state.sweeper = RetentionSweeper(store, config.retention)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SizeLimitMiddleware, max_request_size=config.max_body_bytes)

    # Include routers
    app.include_router(decode.router, tags=["Decode"])
    app.include_router(downloads.router, tags=["Downloads"])
    app.include_router(health.router, prefix="/health", tags=["Health"])

    # Exception handlers
    @app.exception_handler(APIException)
    async def api_exception_handler(request, exc: APIException) -> JSONResponse:
        """Handle API exceptions with proper error responses."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "type": exc.error_type,
                    "message": exc.message,
                    "detail": exc.detail,
                }
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError) -> JSONResponse:
        """Handle malformed request bodies."""
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "type": "validation_error",
                    "message": "Request validation failed",
                    "fields": [
                        ".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()
                    ],
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "type": "internal_error",
                    "message": "An unexpected error occurred",
                    "detail": str(exc) if logger.isEnabledFor(logging.DEBUG) else None,
                }
            },
        )

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root() -> dict[str, object]:
        """Root endpoint with API information."""
        return {
            "name": "Media Decrypt API",
            "version": __version__,
            "status": "operational",
            "docs": "/docs",
            "health": "/health",
        }

    return app
