"""
Tagged provider results.

Adapters never raise past their boundary; they return a ProviderResult
that is either ok (with data, possibly empty) or carries a ProviderError
describing what went wrong.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")


class ProviderErrorKind(str, Enum):
    """Failure categories for provider calls."""
    INVALID_QUERY = "invalid_query"
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    INVALID_RESPONSE = "invalid_response"
    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"


# Failures worth another attempt
RETRYABLE_KINDS = frozenset({
    ProviderErrorKind.TIMEOUT,
    ProviderErrorKind.NETWORK_ERROR,
    ProviderErrorKind.RATE_LIMITED,
})


@dataclass
class ProviderError:
    """Structured description of a failed provider call."""

    kind: ProviderErrorKind
    message: str
    provider: str = "unknown"
    status_code: Optional[int] = None

    @property
    def retryable(self) -> bool:
        if self.kind in RETRYABLE_KINDS:
            return True
        return self.kind == ProviderErrorKind.API_ERROR and (self.status_code or 0) >= 500

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
        }


@dataclass
class ProviderResult(Generic[T]):
    """Outcome of a provider call: data on success, error on failure."""

    provider: str
    data: Optional[T] = None
    error: Optional[ProviderError] = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, provider: str, data: T, **meta) -> "ProviderResult[T]":
        return cls(provider=provider, data=data, meta=meta)

    @classmethod
    def failure(
        cls,
        provider: str,
        kind: ProviderErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> "ProviderResult[T]":
        return cls(
            provider=provider,
            error=ProviderError(
                kind=kind,
                message=message,
                provider=provider,
                status_code=status_code,
            ),
        )
