"""
FastAPI application exposing the scraping dashboard state.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Callable, Optional

from ..core.config import settings
from ..core.logging import logger
from ..services.api_client import BankBackendClient
from ..services.dashboard import Dashboard
from .exceptions import exception_handlers
from .middleware import log_request_timing
from .routes import dashboard, health


ClientFactory = Callable[[], BankBackendClient]


def create_app(client_factory: Optional[ClientFactory] = None) -> FastAPI:
    """
    Build the application.

    Args:
        client_factory: Builds the backend client for the session dashboard
            (defaults to a client configured from settings)
    """
    factory = client_factory or BankBackendClient

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan context manager."""
        logger.info(f"Starting {settings.APP_NAME} against {settings.BACKEND_BASE_URL}")
        app.state.dashboard = Dashboard(factory())
        await app.state.dashboard.start()
        yield
        await app.state.dashboard.stop()
        logger.info(f"Shutting down {settings.APP_NAME}")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Status of bank scraping refreshes",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(log_request_timing)

    for exc_class, handler in exception_handlers.items():
        app.add_exception_handler(exc_class, handler)

    app.include_router(
        dashboard.router,
        prefix=f"{settings.API_V1_PREFIX}/dashboard",
        tags=["dashboard"]
    )

    app.include_router(
        health.router,
        prefix=settings.API_V1_PREFIX,
        tags=["health"]
    )

    @app.get("/health", tags=["health"])
    async def root_health():
        """Liveness probe without the API prefix."""
        return await health.health_check()

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "description": "Status of bank scraping refreshes",
            "docs": "/docs",
            "health": "/health"
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "type": "internal_error"
            }
        )

    return app


app = create_app()
