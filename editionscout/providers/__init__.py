"""
Provider adapters for EditionScout.

Each adapter exposes `search(SearchQuery) -> ProviderResult[list[BookRecord]]`
and shares the rate-limited, cached HTTP transport.
"""

from editionscout.providers.result import (
    ProviderError,
    ProviderErrorKind,
    ProviderResult,
)
from editionscout.providers.query import SearchQuery
from editionscout.providers.rate_limit import (
    RateLimitConfig,
    RateLimiter,
    RateLimiterRegistry,
)
from editionscout.providers.cache import TTLCache
from editionscout.providers.transport import (
    BackoffPolicy,
    ProviderSettings,
    ProviderTransport,
)
from editionscout.providers.ranking import EditionRanker, RankingScore
from editionscout.providers.isbndb import ISBNdbClient, title_matches
from editionscout.providers.google_books import GoogleBooksClient
from editionscout.providers.itunes import ITunesClient

__all__ = [
    # Results
    "ProviderError",
    "ProviderErrorKind",
    "ProviderResult",
    "SearchQuery",
    # Transport
    "RateLimitConfig",
    "RateLimiter",
    "RateLimiterRegistry",
    "TTLCache",
    "BackoffPolicy",
    "ProviderSettings",
    "ProviderTransport",
    # Ranking
    "EditionRanker",
    "RankingScore",
    # Adapters
    "ISBNdbClient",
    "title_matches",
    "GoogleBooksClient",
    "ITunesClient",
]
