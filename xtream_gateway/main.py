"""
Xtream Gateway - FastAPI Backend

Xtream Codes compatible API in front of an internal IPTV catalog.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from xtream_gateway.config import get_settings
from xtream_gateway.dependencies import get_writer
from xtream_gateway.exceptions import XtreamError
from xtream_gateway.limiter import limiter
from xtream_gateway.middleware import XtreamCORSMiddleware, cors_headers
from xtream_gateway.routers import player_api, streams
from xtream_gateway.services.background import BackgroundWriter
from xtream_gateway.services.entitlement import EntitlementGate
from xtream_gateway.services.responder import StreamResponder
from xtream_gateway.services.store import CatalogStore

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting Xtream Gateway...")

    store = getattr(app.state, "store", None) or CatalogStore(settings.database_path)
    await store.initialize()
    logger.info(f"Catalog store ready at {store.db_path}")

    writer = BackgroundWriter()
    gate = EntitlementGate(store, writer)
    app.state.store = store
    app.state.writer = writer
    app.state.gate = gate
    app.state.responder = StreamResponder(store, gate, writer, settings)

    yield

    logger.info("Shutting down Xtream Gateway...")
    await writer.drain()


async def xtream_error_handler(request: Request, exc: XtreamError):
    """Path-style endpoints answer with the status and a plain-text message."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler.

    Runs outside the middleware stack, so the CORS headers are added here.
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
        headers=cors_headers(settings.cors_allow_origin, settings.cors_allow_headers),
    )


def create_app(store: Optional[CatalogStore] = None) -> FastAPI:
    """Build the application; ``store`` overrides the configured database."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Xtream Codes compatible IPTV API",
        lifespan=lifespan
    )
    if store is not None:
        app.state.store = store

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(XtreamError, xtream_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.add_middleware(
        XtreamCORSMiddleware,
        allow_origin=settings.cors_allow_origin,
        allow_headers=settings.cors_allow_headers,
    )

    @app.get("/health")
    async def health_check(writer: BackgroundWriter = Depends(get_writer)):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "pending_writes": writer.pending,
        }

    app.include_router(streams.router)
    app.include_router(player_api.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "xtream_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
