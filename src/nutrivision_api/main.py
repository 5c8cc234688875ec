"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nutrivision_api.api.routes import analysis, llm, nutrition, stream
from nutrivision_api.core.config import get_settings
from nutrivision_api.core.exceptions import APIError
from nutrivision_api.core.logging import configure_logging
from nutrivision_api.db.collections import CollectionRegistry
from nutrivision_api.db.mongo import MongoDB
from nutrivision_api.services.vlm import create_vlm_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Opens the MongoDB client and model gateway, and publishes the
    collection registry and gateway client on `app.state` for handlers.
    """
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"Starting {settings.app_name} v{settings.api_version}")

    MongoDB.connect(settings.mongo_uri, settings.db_name)
    app.state.collections = CollectionRegistry(MongoDB.get_database())
    app.state.vlm_client = create_vlm_client(settings)

    if not settings.is_vlm_configured:
        logger.warning("OPENROUTER_API_KEY is not set; analyses will fail upstream")

    yield

    logger.info("Shutting down...")
    await app.state.vlm_client.close()
    MongoDB.close()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        description="Food label nutrition extraction with a vision-language model",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle custom API errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "details": exc.details,
            },
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.api_version,
            "mongodb": await MongoDB.ping(),
            "vlm_configured": settings.is_vlm_configured,
        }

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
            "stream": "/ws",
        }

    app.include_router(nutrition.router, prefix="/nutrition", tags=["Nutrition"])
    app.include_router(analysis.router, prefix="/analysis", tags=["Analysis"])
    app.include_router(llm.router, prefix="/llm", tags=["LLM"])
    app.include_router(stream.router, tags=["Stream"])

    return app


# Create app instance
app = create_app()
