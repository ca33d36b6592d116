"""
Google Books Client

Secondary provider: search results, ISBN lookups for enhancement, and raw
volume lookups for publication validation.
"""

from typing import Optional

from editionscout.catalog.models import BookRecord
from editionscout.catalog.normalizer import GOOGLE_BOOKS, from_google_books, normalize_entries
from editionscout.providers.query import SearchQuery
from editionscout.providers.rate_limit import RateLimitConfig
from editionscout.providers.ranking import EditionRanker
from editionscout.providers.result import ProviderErrorKind, ProviderResult
from editionscout.providers.transport import BackoffPolicy, ProviderSettings, ProviderTransport


class GoogleBooksClient:
    """
    Client for Google Books API.

    Provides good cover images and descriptions.
    """

    PROVIDER = GOOGLE_BOOKS
    BASE_URL = "https://www.googleapis.com/books/v1"
    MAX_RESULTS = 40

    def __init__(
        self,
        transport: ProviderTransport,
        api_key: Optional[str] = None,
        ranker: Optional[EditionRanker] = None,
    ):
        self.transport = transport
        self.api_key = api_key
        self.ranker = ranker or EditionRanker()

    @classmethod
    def default_settings(cls, timeout: float = 3.0) -> ProviderSettings:
        return ProviderSettings(
            name=cls.PROVIDER,
            base_url=cls.BASE_URL,
            timeout=timeout,
            rate_limit=RateLimitConfig(requests_per_minute=1000, requests_per_day=100000, burst_size=100),
            cache_ttl_seconds=12 * 3600,
            backoff=BackoffPolicy(max_retries=1, initial_delay=0.3, max_delay=2.0),
        )

    @staticmethod
    def build_query(
        isbn: Optional[str] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
    ) -> Optional[str]:
        """Build the "q" parameter; ISBN wins over title/author."""
        if isbn:
            return f"isbn:{isbn}"
        parts = []
        if title:
            parts.append(f'intitle:"{title}"')
        if author:
            parts.append(f'inauthor:"{author}"')
        return " ".join(parts) or None

    async def _volumes(self, q: str, max_results: int, start_index: int = 0) -> ProviderResult[list[dict]]:
        params = {"q": q, "maxResults": max_results, "startIndex": start_index}
        if self.api_key:
            params["key"] = self.api_key

        result = await self.transport.get_json("/volumes", params=params)
        if not result.ok:
            return result

        payload = result.data
        if not isinstance(payload, dict):
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, "Unexpected volumes payload"
            )

        items = payload.get("items") or []
        volumes = [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []
        if items and not volumes:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, "Unreadable volume items"
            )
        return ProviderResult.success(self.PROVIDER, volumes)

    async def search(self, query: SearchQuery) -> ProviderResult[list[BookRecord]]:
        """Search volumes by ISBN or title/author."""
        q = self.build_query(query.isbn, query.title, query.author)
        if q is None:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_QUERY, "Title, author or ISBN is required"
            )

        page_size = query.capped_page_size(self.MAX_RESULTS)
        result = await self._volumes(q, page_size, (query.page - 1) * page_size)
        if not result.ok:
            return result

        records, malformed = normalize_entries(from_google_books, result.data)
        if malformed and not records:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, f"{malformed} unreadable volumes"
            )
        return ProviderResult.success(self.PROVIDER, self.ranker.rank(records, query.title))

    async def lookup_isbn(self, isbn: str) -> ProviderResult[list[BookRecord]]:
        return await self.search(SearchQuery(isbn=isbn, page_size=1))

    async def lookup_volume(
        self,
        isbn: Optional[str] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
    ) -> ProviderResult[Optional[dict]]:
        """
        Find the raw volume for a book: by ISBN first, then by title/author.

        Returns:
            Success with the first matching volume, or None when neither
            lookup found anything; a failure if a lookup failed.
        """
        queries = []
        if isbn:
            queries.append(self.build_query(isbn=isbn))
        if title:
            queries.append(self.build_query(title=title, author=author))

        for q in queries:
            result = await self._volumes(q, max_results=1)
            if not result.ok:
                return result
            if result.data:
                return ProviderResult.success(self.PROVIDER, result.data[0])

        return ProviderResult.success(self.PROVIDER, None)

    async def close(self):
        await self.transport.close()
