"""
Request logging for the EditionScout API.

One JSON line per request on the ``editionscout.api`` logger, carrying the
request id, the redacted query, the search terms of search requests and the
elapsed time. Library code logs through loguru; ``configure_loguru`` points
it at stderr with the same level.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Set
from urllib.parse import parse_qsl, urlencode

from fastapi import FastAPI, Request, Response
from loguru import logger as loguru_logger
from starlette.middleware.base import BaseHTTPMiddleware

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger("editionscout.api")

REDACTED = "[REDACTED]"

# Query parameters echoed as the "search" field of a log line
SEARCH_TERMS = ("title", "author", "isbn")

# Attributes passed through ``extra=`` that the formatter copies verbatim
_EXTRA_FIELDS = ("request", "search", "status_code", "duration_ms")


@dataclass
class LoggingConfig:
    """Configuration for request logging."""

    enabled: bool = True

    excluded_paths: Set[str] = field(default_factory=lambda: {"/health", "/favicon.ico"})

    # ISBNdb sends its key in Authorization
    redacted_headers: Set[str] = field(default_factory=lambda: {
        "authorization",
        "x-api-key",
        "cookie",
    })

    # Google Books takes its key as ?key=
    redacted_params: Set[str] = field(default_factory=lambda: {"key", "api_key", "apikey"})

    # Provider fan-out alone may take several seconds
    slow_request_threshold: float = 5.0

    request_id_header: str = "X-Request-ID"


class StructuredLogFormatter(logging.Formatter):
    """Render API log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id:
            payload["request_id"] = request_id

        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def redact_query(query: str, redacted_params: Set[str]) -> str:
    """Replace values of credential-like query parameters."""
    if not query:
        return query
    return urlencode([
        (name, REDACTED if name.lower() in redacted_params else value)
        for name, value in parse_qsl(query, keep_blank_values=True)
    ])


def get_request_id() -> str:
    return request_id_var.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and logs every request that is not excluded."""

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    def _redact_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        return {
            name: REDACTED if name.lower() in self.config.redacted_headers else value
            for name, value in headers.items()
        }

    def _level_for(self, status_code: int, seconds: float) -> int:
        if status_code >= 500:
            return logging.ERROR
        if status_code >= 400 or seconds > self.config.slow_request_threshold:
            return logging.WARNING
        return logging.INFO

    @staticmethod
    def _search_terms(request: Request) -> Optional[Dict[str, str]]:
        if not request.url.path.endswith("/search"):
            return None
        terms = {
            name: request.query_params[name]
            for name in SEARCH_TERMS
            if request.query_params.get(name)
        }
        return terms or None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        header = self.config.request_id_header
        request_id = request.headers.get(header) or uuid.uuid4().hex[:8]
        request_id_var.set(request_id)

        if not self.config.enabled or request.url.path in self.config.excluded_paths:
            response = await call_next(request)
            response.headers[header] = request_id
            return response

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started
        response.headers[header] = request_id

        duration_ms = round(elapsed * 1000, 2)
        message = f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
        if elapsed > self.config.slow_request_threshold:
            message = f"[SLOW] {message}"

        logger.log(
            self._level_for(response.status_code, elapsed),
            message,
            extra={
                "request": {
                    "method": request.method,
                    "path": request.url.path,
                    "query": redact_query(request.url.query, self.config.redacted_params) or None,
                    "headers": self._redact_headers(dict(request.headers)),
                    "client_ip": request.client.host if request.client else None,
                },
                "search": self._search_terms(request),
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response


def configure_loguru(level: str = "INFO", serialize: bool = False) -> None:
    """Send loguru output to stderr at the API log level."""
    loguru_logger.remove()
    loguru_logger.add(sys.stderr, level=level.upper(), serialize=serialize)


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
    level: str = "INFO",
) -> None:
    """
    Install request logging on the app.

    Args:
        app: FastAPI application instance.
        config: Logging configuration.
        structured: Emit JSON lines instead of plain text.
        level: Level for both the ``editionscout`` logger and loguru.
    """
    api_logger = logging.getLogger("editionscout")
    api_logger.setLevel(level.upper())

    if structured and not any(
        isinstance(h.formatter, StructuredLogFormatter) for h in api_logger.handlers
    ):
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredLogFormatter())
        api_logger.addHandler(handler)

    configure_loguru(level, serialize=structured)
    app.add_middleware(RequestLoggingMiddleware, config=config or LoggingConfig())
