"""
EditionScout - FastAPI Backend.

HTTP surface for edition-aware book search and the stored catalog.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_service_container,
    init_services,
    ServiceContainer,
)
from .schemas import (
    SearchResponse,
    CatalogCreateRequest,
    StoredBookResponse,
    ProviderStatusResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_service_container",
    "init_services",
    "ServiceContainer",
    # Schemas
    "SearchResponse",
    "CatalogCreateRequest",
    "StoredBookResponse",
    "ProviderStatusResponse",
    "HealthResponse",
    "ErrorResponse",
]
