"""
ISBNdb Client

Primary structured-metadata provider. Title+author searches run a chain of
query strategies and return the first one that matches anything:
1. Quoted text search on title and author
2. Structured title/author parameters
3. Author-only search filtered client-side by title
"""

import math
import re
from typing import Awaitable, Callable, Optional

from loguru import logger

from editionscout.catalog.models import BookRecord
from editionscout.catalog.normalizer import ISBNDB, from_isbndb, normalize_entries
from editionscout.providers.query import SearchQuery
from editionscout.providers.rate_limit import RateLimitConfig
from editionscout.providers.ranking import EditionRanker
from editionscout.providers.result import ProviderErrorKind, ProviderResult
from editionscout.providers.transport import BackoffPolicy, ProviderSettings, ProviderTransport


Strategy = Callable[[SearchQuery], Awaitable[ProviderResult[list[BookRecord]]]]

_PUNCTUATION = re.compile(r"[^\w\s]")


def title_matches(query_title: str, candidate_title: str, overlap: float = 0.6) -> bool:
    """
    Loose title match used to filter author-only results.

    Tries a direct substring match, then a punctuation-free substring
    match, then word overlap: at least max(1, floor(overlap * n)) of the
    n significant (longer than 2 chars) query words must match a title
    word, where two words match when either contains the other.
    """
    query = query_title.lower().strip()
    title = candidate_title.lower()
    if not query:
        return True
    if query in title:
        return True

    clean_query = " ".join(_PUNCTUATION.sub(" ", query).split())
    clean_title = " ".join(_PUNCTUATION.sub(" ", title).split())
    if clean_query and clean_query in clean_title:
        return True

    query_words = [word for word in clean_query.split() if len(word) > 2]
    if not query_words:
        return False

    title_words = clean_title.split()
    matched = sum(
        1 for word in query_words
        if any(word in candidate or candidate in word for candidate in title_words if len(candidate) > 2)
    )
    return matched >= max(1, math.floor(overlap * len(query_words)))


class ISBNdbClient:
    """
    Client for the ISBNdb API.

    Usage:
        client = ISBNdbClient(ProviderTransport(ISBNdbClient.default_settings(api_key)))
        result = await client.search(SearchQuery(title="Venture Deals", author="Brad Feld"))
        if result.ok:
            for record in result.data:
                print(record.title, record.binding)
    """

    PROVIDER = ISBNDB
    BASE_URL = "https://api2.isbndb.com"
    MAX_PAGE_SIZE = 1000

    QUOTED_MIN_PAGE_SIZE = 30
    STRUCTURED_MIN_PAGE_SIZE = 20
    AUTHOR_ONLY_PAGE_SIZE = 50

    def __init__(
        self,
        transport: ProviderTransport,
        ranker: Optional[EditionRanker] = None,
    ):
        self.transport = transport
        self.ranker = ranker or EditionRanker()

    @classmethod
    def default_settings(cls, api_key: Optional[str], timeout: float = 4.0) -> ProviderSettings:
        return ProviderSettings(
            name=cls.PROVIDER,
            base_url=cls.BASE_URL,
            timeout=timeout,
            rate_limit=RateLimitConfig(requests_per_minute=100, requests_per_day=1000, burst_size=10),
            cache_ttl_seconds=24 * 3600,
            backoff=BackoffPolicy(max_retries=2, initial_delay=0.5, max_delay=4.0),
            headers={"Authorization": api_key} if api_key else {},
        )

    # =========================================================================
    # Lookups
    # =========================================================================

    async def lookup_isbn(self, isbn: str) -> ProviderResult[list[BookRecord]]:
        """
        Fetch a single book by ISBN.

        A 404 from ISBNdb is an empty (successful) result.
        """
        isbn = (isbn or "").replace("-", "").replace(" ", "")
        if len(isbn) < 10:
            return ProviderResult.failure(self.PROVIDER, ProviderErrorKind.INVALID_QUERY, "Invalid ISBN provided")

        result = await self.transport.get_json(f"/book/{isbn}")
        if not result.ok:
            if result.error.kind == ProviderErrorKind.NOT_FOUND:
                return ProviderResult.success(self.PROVIDER, [])
            return result

        payload = result.data if isinstance(result.data, dict) else {}
        raw = payload.get("book")
        records, malformed = normalize_entries(from_isbndb, [raw] if raw is not None else [])
        if malformed:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, "Unreadable book payload"
            )
        return ProviderResult.success(self.PROVIDER, records)

    async def stats(self) -> ProviderResult[dict]:
        """Account usage statistics (never cached)."""
        return await self.transport.get_json("/stats", use_cache=False)

    # =========================================================================
    # Search
    # =========================================================================

    async def search(self, query: SearchQuery) -> ProviderResult[list[BookRecord]]:
        """
        Search by ISBN, or by title and/or author with fallback strategies.

        Returns:
            Ranked records from the first strategy that matched anything;
            an empty success when nothing matched; a failure only when
            every strategy failed.
        """
        if query.is_empty:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_QUERY, "Title, author or ISBN is required"
            )

        if query.isbn:
            return await self.lookup_isbn(query.isbn)

        strategies = self.strategies_for(query)
        failures = []

        for strategy in strategies:
            result = await strategy(query)
            if not result.ok:
                failures.append(result)
                continue
            if result.data:
                logger.debug(f"ISBNdb strategy {strategy.__name__} matched {len(result.data)} books")
                ranked = self.ranker.rank(result.data, query.title)
                return ProviderResult.success(self.PROVIDER, ranked, strategy=strategy.__name__)

        if failures and len(failures) == len(strategies):
            return failures[0]

        return ProviderResult.success(self.PROVIDER, [])

    def strategies_for(self, query: SearchQuery) -> list[Strategy]:
        if query.title and query.author:
            return [self.quoted_text_search, self.structured_search, self.author_only_search]
        if query.title:
            return [self.structured_search]
        return [self.author_only_search]

    async def quoted_text_search(self, query: SearchQuery) -> ProviderResult[list[BookRecord]]:
        params = {
            "text": f'"{query.title}" "{query.author}"',
            "page": query.page,
            "pageSize": query.capped_page_size(self.MAX_PAGE_SIZE, self.QUOTED_MIN_PAGE_SIZE),
        }
        result = await self._search_books(params)
        if not result.ok:
            return result

        title = query.title.lower()
        author = query.author.lower()
        matches = [
            record for record in result.data
            if title in record.title.lower()
            or any(author in name.lower() for name in record.authors)
        ]
        return ProviderResult.success(self.PROVIDER, matches)

    async def structured_search(self, query: SearchQuery) -> ProviderResult[list[BookRecord]]:
        params = {
            "page": query.page,
            "pageSize": query.capped_page_size(self.MAX_PAGE_SIZE, self.STRUCTURED_MIN_PAGE_SIZE),
        }
        if query.title:
            params["title"] = query.title
        if query.author:
            params["author"] = query.author
        return await self._search_books(params)

    async def author_only_search(self, query: SearchQuery) -> ProviderResult[list[BookRecord]]:
        params = {
            "author": query.author,
            "page": query.page,
            "pageSize": self.AUTHOR_ONLY_PAGE_SIZE,
        }
        result = await self._search_books(params)
        if not result.ok or not query.title:
            return result

        matches = [record for record in result.data if title_matches(query.title, record.title)]
        return ProviderResult.success(self.PROVIDER, matches)

    async def _search_books(self, params: dict) -> ProviderResult[list[BookRecord]]:
        result = await self.transport.get_json("/search/books", params=params)
        if not result.ok:
            # ISBNdb answers 404 when a search has no hits
            if result.error.kind == ProviderErrorKind.NOT_FOUND:
                return ProviderResult.success(self.PROVIDER, [])
            return result

        payload = result.data
        if not isinstance(payload, dict):
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, "Unexpected search payload"
            )

        records, malformed = normalize_entries(from_isbndb, payload.get("books") or payload.get("data"))
        if malformed and not records:
            return ProviderResult.failure(
                self.PROVIDER, ProviderErrorKind.INVALID_RESPONSE, f"{malformed} unreadable search entries"
            )
        return ProviderResult.success(self.PROVIDER, records)

    async def close(self):
        await self.transport.close()
