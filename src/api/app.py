"""
FastAPI application factory.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import ErrorHandlerMiddleware
from src.api.middleware.logging import LoggingMiddleware
from src.api.routes import health, interventions
from src.config.database import close_database_connections
from src.config.logging import configure_logging, get_logger
from src.config.settings import settings

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Dispatches field interventions to the best nearby technicians",
        openapi_url=f"{settings.API_PREFIX}/openapi.json" if settings.ENABLE_SWAGGER else None,
        docs_url=f"{settings.API_PREFIX}/docs" if settings.ENABLE_SWAGGER else None,
        redoc_url=f"{settings.API_PREFIX}/redoc" if settings.ENABLE_SWAGGER else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware
    ErrorHandlerMiddleware(app)
    LoggingMiddleware(app)

    # Add routes
    app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
    app.include_router(
        interventions.router, prefix=settings.API_PREFIX, tags=["interventions"]
    )

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "Application startup",
            environment=settings.ENVIRONMENT,
            in_memory_store=settings.USE_IN_MEMORY_STORE,
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        await close_database_connections()
        logger.info("Application shutdown")

    return app
