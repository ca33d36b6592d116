"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Provider transports and adapters
- Search pipeline services
- Catalog repository
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends


# =============================================================================
# Configuration
# =============================================================================

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./editionscout.db"

    # Providers
    isbndb_api_key: Optional[str] = None
    google_books_api_key: Optional[str] = None
    itunes_enabled: bool = True

    # Time budgets (seconds)
    search_timeout_seconds: float = 8.0
    enhancement_timeout_seconds: float = 3.0
    validation_timeout_seconds: float = 5.0

    # Validation
    min_validation_confidence: float = 0.3

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            isbndb_api_key=os.getenv("ISBNDB_API_KEY"),
            google_books_api_key=os.getenv("GOOGLE_BOOKS_API_KEY"),
            itunes_enabled=_env_bool("ITUNES_ENABLED", "true"),
            search_timeout_seconds=float(os.getenv("SEARCH_TIMEOUT_SECONDS", cls.search_timeout_seconds)),
            enhancement_timeout_seconds=float(
                os.getenv("ENHANCEMENT_TIMEOUT_SECONDS", cls.enhancement_timeout_seconds)
            ),
            validation_timeout_seconds=float(
                os.getenv("VALIDATION_TIMEOUT_SECONDS", cls.validation_timeout_seconds)
            ),
            min_validation_confidence=float(
                os.getenv("MIN_VALIDATION_CONFIDENCE", cls.min_validation_confidence)
            ),
            host=os.getenv("EDITIONSCOUT_HOST", cls.host),
            port=int(os.getenv("EDITIONSCOUT_PORT", cls.port)),
            workers=int(os.getenv("EDITIONSCOUT_WORKERS", cls.workers)),
            environment=os.getenv("EDITIONSCOUT_ENV", cls.environment),
            debug=_env_bool("DEBUG", "true"),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Dependencies (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazy-loaded service instances.

    Transports share one RateLimiterRegistry so that limits hold across
    every adapter talking to the same provider.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._rate_limiters = None
        self._transports = {}
        self._isbndb = None
        self._google_books = None
        self._itunes = None
        self._enhancer = None
        self._validator = None
        self._search_service = None
        self._catalog_repository = None

    @property
    def rate_limiters(self):
        """Get the per-provider rate limiter registry."""
        if self._rate_limiters is None:
            from ..providers import (
                GoogleBooksClient,
                ISBNdbClient,
                ITunesClient,
                RateLimiterRegistry,
            )
            self._rate_limiters = RateLimiterRegistry({
                ISBNdbClient.PROVIDER: self._provider_settings(ISBNdbClient.PROVIDER).rate_limit,
                GoogleBooksClient.PROVIDER: self._provider_settings(GoogleBooksClient.PROVIDER).rate_limit,
                ITunesClient.PROVIDER: self._provider_settings(ITunesClient.PROVIDER).rate_limit,
            })
        return self._rate_limiters

    def _provider_settings(self, name: str):
        from ..providers import GoogleBooksClient, ISBNdbClient, ITunesClient

        if name == ISBNdbClient.PROVIDER:
            return ISBNdbClient.default_settings(self.settings.isbndb_api_key)
        if name == GoogleBooksClient.PROVIDER:
            return GoogleBooksClient.default_settings()
        return ITunesClient.default_settings()

    def transport(self, name: str):
        """Get the shared transport for a provider."""
        if name not in self._transports:
            from ..providers import ProviderTransport
            self._transports[name] = ProviderTransport(
                self._provider_settings(name),
                limiter=self.rate_limiters.get(name),
            )
        return self._transports[name]

    @property
    def transports(self) -> dict:
        """Transports created so far, by provider name."""
        return dict(self._transports)

    @property
    def isbndb(self):
        """Get ISBNdb adapter."""
        if self._isbndb is None:
            from ..providers import ISBNdbClient
            self._isbndb = ISBNdbClient(self.transport(ISBNdbClient.PROVIDER))
        return self._isbndb

    @property
    def google_books(self):
        """Get Google Books adapter."""
        if self._google_books is None:
            from ..providers import GoogleBooksClient
            self._google_books = GoogleBooksClient(
                self.transport(GoogleBooksClient.PROVIDER),
                api_key=self.settings.google_books_api_key,
            )
        return self._google_books

    @property
    def itunes(self):
        """Get iTunes adapter, or None when disabled."""
        if not self.settings.itunes_enabled:
            return None
        if self._itunes is None:
            from ..providers import ITunesClient
            self._itunes = ITunesClient(self.transport(ITunesClient.PROVIDER))
        return self._itunes

    @property
    def enhancer(self):
        """Get smart enhancer."""
        if self._enhancer is None:
            from ..catalog.enhancement import SmartEnhancer
            self._enhancer = SmartEnhancer(
                self.google_books,
                timeout=self.settings.enhancement_timeout_seconds,
            )
        return self._enhancer

    @property
    def validator(self):
        """Get publication validator."""
        if self._validator is None:
            from ..catalog.validator import PublicationValidator
            self._validator = PublicationValidator(self.google_books)
        return self._validator

    @property
    def search_service(self):
        """Get catalog search service."""
        if self._search_service is None:
            from ..catalog.search import CatalogSearchService
            self._search_service = CatalogSearchService(
                isbndb=self.isbndb,
                google_books=self.google_books,
                itunes=self.itunes,
                enhancer=self.enhancer,
                validator=self.validator,
                provider_timeout=self.settings.search_timeout_seconds,
                validation_timeout=self.settings.validation_timeout_seconds,
                min_validation_confidence=self.settings.min_validation_confidence,
            )
        return self._search_service

    @property
    def catalog_repository(self):
        """Get catalog repository instance."""
        if self._catalog_repository is None:
            from ..storage.catalog_repository import CatalogRepository
            self._catalog_repository = CatalogRepository(self.settings.database_url)
        return self._catalog_repository

    def provider_status(self) -> dict:
        """Rate limit and cache state of every configured provider."""
        from ..providers import GoogleBooksClient, ISBNdbClient, ITunesClient

        names = [ISBNdbClient.PROVIDER, GoogleBooksClient.PROVIDER]
        if self.settings.itunes_enabled:
            names.append(ITunesClient.PROVIDER)

        status = {}
        for name in names:
            entry = self.transport(name).status()
            entry["enabled"] = True
            status[name] = entry

        status[ISBNdbClient.PROVIDER]["configured"] = bool(self.settings.isbndb_api_key)
        status[GoogleBooksClient.PROVIDER]["configured"] = True
        if ITunesClient.PROVIDER in status:
            status[ITunesClient.PROVIDER]["configured"] = True
        return status

    async def close(self):
        """Close every provider HTTP client."""
        for transport in self._transports.values():
            await transport.close()


# Global service container
_service_container: Optional[ServiceContainer] = None


def init_services(settings: Settings) -> ServiceContainer:
    """Initialize service container."""
    global _service_container
    _service_container = ServiceContainer(settings)
    return _service_container


def get_service_container() -> ServiceContainer:
    """Get service container instance."""
    if _service_container is None:
        # Auto-initialize with default settings if not explicitly initialized
        return init_services(get_settings())
    return _service_container


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_search_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for catalog search service."""
    return container.search_service


def get_catalog_repository(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for catalog repository."""
    return container.catalog_repository
