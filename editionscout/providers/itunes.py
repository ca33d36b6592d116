"""
iTunes Client

Audiobook editions from the iTunes Search API. iTunes has no ISBN search,
so ISBN-only queries return an empty result.
"""

from typing import Optional

from editionscout.catalog.models import BookRecord
from editionscout.catalog.normalizer import ITUNES, from_itunes, normalize_entries
from editionscout.providers.query import SearchQuery
from editionscout.providers.rate_limit import RateLimitConfig
from editionscout.providers.ranking import EditionRanker
from editionscout.providers.result import ProviderErrorKind, ProviderResult
from editionscout.providers.transport import BackoffPolicy, ProviderSettings, ProviderTransport


class ITunesClient:
    """Client for the iTunes audiobook search."""

    PROVIDER = ITUNES
    BASE_URL = "https://itunes.apple.com"
    MAX_RESULTS = 50

    def __init__(
        self,
        transport: ProviderTransport,
        ranker: Optional[EditionRanker] = None,
        country: str = "US",
    ):
        self.transport = transport
        self.ranker = ranker or EditionRanker()
        self.country = country

    @classmethod
    def default_settings(cls, timeout: float = 3.0) -> ProviderSettings:
        return ProviderSettings(
            name=cls.PROVIDER,
            base_url=cls.BASE_URL,
            timeout=timeout,
            rate_limit=RateLimitConfig(requests_per_minute=20, burst_size=5),
            cache_ttl_seconds=12 * 3600,
            backoff=BackoffPolicy(max_retries=1, initial_delay=0.3, max_delay=2.0),
        )

    async def search(self, query: SearchQuery) -> ProviderResult[list[BookRecord]]:
        if query.is_empty:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_QUERY, "Title, author or ISBN is required"
            )

        term = " ".join(part for part in (query.title, query.author) if part)
        if not term:
            return ProviderResult.success(self.PROVIDER, [])

        params = {
            "term": term,
            "media": "audiobook",
            "entity": "audiobook",
            "country": self.country,
            "limit": query.capped_page_size(self.MAX_RESULTS),
        }
        result = await self.transport.get_json("/search", params=params)
        if not result.ok:
            return result

        payload = result.data
        if not isinstance(payload, dict):
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, "Unexpected search payload"
            )

        records, malformed = normalize_entries(from_itunes, payload.get("results"))
        if malformed and not records:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, f"{malformed} unreadable results"
            )
        return ProviderResult.success(self.PROVIDER, self.ranker.rank(records, query.title))

    async def close(self):
        await self.transport.close()
