"""
API middleware components.

Provides cross-cutting concerns for the API:
- Error handling
- Request/response logging
"""

from .error_handler import (
    EditionScoutException,
    NotFoundError,
    ValidationError,
    ProviderUnavailableError,
    StorageError,
    setup_exception_handlers,
    create_error_response,
    translate_exception,
)

from .logging import (
    LoggingConfig,
    StructuredLogFormatter,
    RequestLoggingMiddleware,
    configure_loguru,
    setup_logging,
    get_request_id,
    redact_query,
)


__all__ = [
    # Error handling
    "EditionScoutException",
    "NotFoundError",
    "ValidationError",
    "ProviderUnavailableError",
    "StorageError",
    "setup_exception_handlers",
    "create_error_response",
    "translate_exception",
    # Logging
    "LoggingConfig",
    "StructuredLogFormatter",
    "RequestLoggingMiddleware",
    "configure_loguru",
    "setup_logging",
    "get_request_id",
    "redact_query",
]
