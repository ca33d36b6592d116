"""
EditionScout API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import Depends, FastAPI
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from editionscout import __version__
from .schemas import HealthResponse
from .routes import books, providers
from .middleware import (
    setup_logging,
    setup_exception_handlers,
    LoggingConfig,
)
from .dependencies import (
    get_settings,
    get_service_container,
    init_services,
    ServiceContainer,
    Settings,
)

API_PREFIX = "/api/v1"


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service container on startup, close provider clients on shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"Starting EditionScout {__version__} ({settings.environment})")

    services = init_services(settings)
    app.state.services = services

    if not settings.isbndb_api_key:
        logger.warning("ISBNDB_API_KEY is not set; ISBNdb requests will be rejected")
    if not settings.itunes_enabled:
        logger.info("iTunes audiobook search disabled")

    try:
        # Tables exist before the first catalog request
        services.catalog_repository.count()
        yield
    finally:
        await services.close()
        logger.info("EditionScout stopped")


def provider_health(services: ServiceContainer) -> dict[str, str]:
    """Summarize each provider as configured, quota_exhausted or not_configured."""
    summary = {}
    for name, status in services.provider_status().items():
        if not status["configured"]:
            summary[name] = "not_configured"
        elif status["rate_limit"]["day"] == 0:
            summary[name] = "quota_exhausted"
        else:
            summary[name] = "configured"

    if "itunes" in summary and summary["itunes"] == "configured":
        summary["itunes"] = "enabled"
    summary.setdefault("itunes", "disabled")
    return summary


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.
    """
    settings = settings or get_settings()
    docs_enabled = settings.debug

    app = FastAPI(
        title="EditionScout",
        description="Edition-aware book metadata search across ISBNdb, Google Books and iTunes.",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_logging(
        app,
        config=LoggingConfig(),
        structured=settings.environment != "development",
        level=settings.log_level,
    )
    setup_exception_handlers(app)

    app.include_router(books.router, prefix=API_PREFIX)
    app.include_router(providers.router, prefix=API_PREFIX)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": "EditionScout",
            "version": __version__,
            "api": API_PREFIX,
            "docs": "/docs" if docs_enabled else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check(
        services: ServiceContainer = Depends(get_service_container),
    ) -> HealthResponse:
        """
        Database reachability and provider readiness.

        The service is "degraded" when the catalog database is unreachable
        or when no provider can currently serve searches.
        """
        components = {}
        healthy = True

        try:
            services.catalog_repository.count()
            components["database"] = "healthy"
        except SQLAlchemyError as e:
            components["database"] = f"unhealthy: {type(e).__name__}"
            healthy = False

        providers_summary = provider_health(services)
        components.update(providers_summary)
        if not any(state in ("configured", "enabled") for state in providers_summary.values()):
            healthy = False

        return HealthResponse(
            status="healthy" if healthy else "degraded",
            version=__version__,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "editionscout.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
