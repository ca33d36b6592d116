"""
Error Handling Middleware for EditionScout

Every failure leaves the API as the same JSON body:
``{"error", "code", "detail", "timestamp", "request_id"}`` plus any
error-specific fields (failed providers, for instance).
"""

import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from editionscout.catalog.search import SearchInputError
from .logging import get_request_id


class EditionScoutException(Exception):
    """Base exception for errors surfaced through the API."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        **fields: Any,
    ):
        self.message = message
        self.detail = detail
        self.fields = fields
        super().__init__(message)


class NotFoundError(EditionScoutException):
    """No book (remote or stored) matches the identifier."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} not found",
            detail=f"No {resource} with identifier '{identifier}' exists",
        )


class ValidationError(EditionScoutException):
    """Search terms or request body rejected."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ProviderUnavailableError(EditionScoutException):
    """Every metadata provider failed for a request."""

    code = "PROVIDER_UNAVAILABLE"
    status_code = 502

    def __init__(self, providers: list[str], detail: Optional[str] = None):
        super().__init__(
            "No metadata provider available",
            detail=detail or f"Failed providers: {', '.join(providers) or 'none'}",
            providers=providers,
        )
        self.providers = providers


class StorageError(EditionScoutException):
    """The catalog database could not be read or written."""

    code = "STORAGE_UNAVAILABLE"
    status_code = 503


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: Optional[str] = None,
    **fields: Any,
) -> JSONResponse:
    content = {
        "error": error,
        "code": code,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": get_request_id() or None,
    }
    content.update(fields)
    return JSONResponse(status_code=status_code, content=content)


def _format_validation_errors(errors: list[dict]) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in errors
    )


def translate_exception(exc: Exception) -> EditionScoutException:
    """Map library and framework exceptions onto the API error hierarchy."""
    if isinstance(exc, EditionScoutException):
        return exc
    if isinstance(exc, SearchInputError):
        return ValidationError("Invalid search", detail=str(exc))
    if isinstance(exc, (RequestValidationError, PydanticValidationError)):
        return ValidationError("Validation Error", detail=_format_validation_errors(exc.errors()))
    if isinstance(exc, SQLAlchemyError):
        return StorageError("Catalog storage unavailable", detail=type(exc).__name__)
    return EditionScoutException("Internal Server Error", detail="An unexpected error occurred")


def render_exception(exc: EditionScoutException) -> JSONResponse:
    return create_error_response(exc.message, exc.code, exc.status_code, exc.detail, **exc.fields)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(EditionScoutException)
    async def editionscout_exception_handler(request: Request, exc: EditionScoutException):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
        return render_exception(exc)

    @app.exception_handler(SearchInputError)
    @app.exception_handler(RequestValidationError)
    @app.exception_handler(PydanticValidationError)
    async def validation_exception_handler(request: Request, exc: Exception):
        error = translate_exception(exc)
        logger.info(f"Rejected request on {request.url.path}: {error.detail}")
        return render_exception(error)

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Catalog storage failure on {request.url.path}: {type(exc).__name__}: {exc}")
        return render_exception(translate_exception(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}\n{traceback.format_exc()}"
        )
        return render_exception(translate_exception(exc))
