"""
Unit tests for the ISBNdb, Google Books and iTunes adapters.
"""

import httpx
import pytest

from editionscout.providers import (
    GoogleBooksClient,
    ISBNdbClient,
    ITunesClient,
    ProviderErrorKind,
    SearchQuery,
    title_matches,
)
from tests.conftest import make_transport

pytestmark = pytest.mark.asyncio


def _isbndb(handler) -> ISBNdbClient:
    return ISBNdbClient(make_transport(ISBNdbClient.default_settings("test-key"), handler))


def _google(handler, api_key=None) -> GoogleBooksClient:
    return GoogleBooksClient(make_transport(GoogleBooksClient.default_settings(), handler), api_key=api_key)


def _itunes(handler) -> ITunesClient:
    return ITunesClient(make_transport(ITunesClient.default_settings(), handler))


class TestTitleMatches:
    """Tests for the loose author-only title filter."""

    @pytest.mark.parametrize("query,title,expected", [
        ("Venture Deals", "Venture Deals: Be Smarter", True),
        ("Venture-Deals", "Venture Deals", True),
        ("Venture Deals Smarter Lawyer", "Venture Deals for Lawyers", True),
        ("Venture Deals", "Startup Communities", False),
        ("", "Anything", True),
    ])
    async def test_matches(self, query, title, expected):
        assert title_matches(query, title) is expected


class TestISBNdbClient:
    """Tests for ISBNdbClient."""

    async def test_lookup_isbn(self, isbndb_venture_deals):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"book": isbndb_venture_deals[0]})

        client = _isbndb(handler)
        result = await client.lookup_isbn("978-0-470-92982-7")

        assert result.ok
        assert [r.isbn for r in result.data] == ["9780470929827"]
        assert requests[0].url.path == "/book/9780470929827"
        assert requests[0].headers["Authorization"] == "test-key"

    async def test_lookup_not_found_is_empty(self):
        client = _isbndb(lambda request: httpx.Response(404))

        result = await client.lookup_isbn("9780000000000")

        assert result.ok
        assert result.data == []

    async def test_lookup_rejects_short_isbn(self):
        client = _isbndb(lambda request: httpx.Response(200, json={}))

        result = await client.lookup_isbn("12345")

        assert result.error.kind == ProviderErrorKind.INVALID_QUERY

    async def test_empty_query_rejected(self):
        client = _isbndb(lambda request: httpx.Response(200, json={}))

        result = await client.search(SearchQuery())

        assert result.error.kind == ProviderErrorKind.INVALID_QUERY

    async def test_quoted_text_strategy_first(self, isbndb_venture_deals):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"books": isbndb_venture_deals})

        client = _isbndb(handler)
        result = await client.search(SearchQuery(title="Venture Deals", author="Brad Feld"))

        assert result.ok
        assert result.meta["strategy"] == "quoted_text_search"
        assert len(result.data) == 3
        assert requests[0].url.params["text"] == '"Venture Deals" "Brad Feld"'
        assert requests[0].url.params["pageSize"] == "30"
        # Highest edition ranks first
        assert result.data[0].edition == "4th"

    async def test_falls_back_to_author_only(self, isbndb_venture_deals):
        """Empty quoted and structured searches fall through to the author search."""
        unrelated = {"title": "Startup Communities", "authors": ["Brad Feld"], "isbn13": "9781118441541"}

        def handler(request):
            if "author" in request.url.params and "title" not in request.url.params:
                return httpx.Response(200, json={"books": [unrelated] + isbndb_venture_deals})
            return httpx.Response(404)

        client = _isbndb(handler)
        result = await client.search(SearchQuery(title="Venture Deals", author="Brad Feld"))

        assert result.meta["strategy"] == "author_only_search"
        assert all("Venture Deals" in r.title for r in result.data)
        assert len(result.data) == 3

    async def test_nothing_matches_is_empty_success(self):
        client = _isbndb(lambda request: httpx.Response(404))

        result = await client.search(SearchQuery(title="No Such Book", author="Nobody"))

        assert result.ok
        assert result.data == []

    async def test_every_strategy_failing_is_failure(self):
        client = _isbndb(lambda request: httpx.Response(401))

        result = await client.search(SearchQuery(title="Venture Deals", author="Brad Feld"))

        assert not result.ok
        assert result.error.kind == ProviderErrorKind.UNAUTHORIZED

    async def test_title_only_uses_structured_search(self, isbndb_venture_deals):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"data": isbndb_venture_deals})

        client = _isbndb(handler)
        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.meta["strategy"] == "structured_search"
        assert requests[0].url.params["title"] == "Venture Deals"
        assert "author" not in requests[0].url.params

    async def test_wrongly_typed_fields_are_ignored(self):
        client = _isbndb(lambda request: httpx.Response(200, json={
            "books": [{"title": "Venture Deals", "subjects": 5, "authors": "Brad Feld", "pages": [240]}],
        }))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.ok
        [record] = result.data
        assert record.subjects == []
        assert record.authors == ["Brad Feld"]
        assert record.pages is None

    async def test_unreadable_entries_are_skipped(self, isbndb_venture_deals):
        client = _isbndb(lambda request: httpx.Response(200, json={
            "books": ["Venture Deals", 42, isbndb_venture_deals[0]],
        }))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.ok
        assert [r.isbn for r in result.data] == ["9780470929827"]

    async def test_wholly_unreadable_search_is_invalid_response(self):
        client = _isbndb(lambda request: httpx.Response(200, json={"books": ["Venture Deals", 42]}))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.error.kind == ProviderErrorKind.INVALID_RESPONSE

    async def test_unreadable_lookup_is_invalid_response(self):
        client = _isbndb(lambda request: httpx.Response(200, json={"book": "Venture Deals"}))

        result = await client.lookup_isbn("9780470929827")

        assert result.error.kind == ProviderErrorKind.INVALID_RESPONSE

    async def test_isbn_query_uses_lookup(self, isbndb_venture_deals):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"book": isbndb_venture_deals[0]})

        client = _isbndb(handler)
        await client.search(SearchQuery(title="ignored", isbn="9780470929827"))

        assert requests[0].url.path == "/book/9780470929827"


class TestGoogleBooksClient:
    """Tests for GoogleBooksClient."""

    async def test_build_query(self):
        assert GoogleBooksClient.build_query(isbn="123", title="T") == "isbn:123"
        assert GoogleBooksClient.build_query(title="Venture Deals", author="Brad Feld") == (
            'intitle:"Venture Deals" inauthor:"Brad Feld"'
        )
        assert GoogleBooksClient.build_query() is None

    async def test_search(self, google_venture_deals):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"items": google_venture_deals})

        client = _google(handler, api_key="g-key")
        result = await client.search(SearchQuery(title="Venture Deals", page=2, page_size=10))

        assert result.ok
        assert result.data[0].isbn == "9781119594826"
        params = requests[0].url.params
        assert params["q"] == 'intitle:"Venture Deals"'
        assert params["maxResults"] == "10"
        assert params["startIndex"] == "10"
        assert params["key"] == "g-key"

    async def test_no_items_is_empty(self):
        client = _google(lambda request: httpx.Response(200, json={"totalItems": 0}))

        result = await client.search(SearchQuery(title="Nothing"))

        assert result.ok
        assert result.data == []

    async def test_non_object_identifiers_are_ignored(self):
        client = _google(lambda request: httpx.Response(200, json={"items": [
            {"volumeInfo": {"title": "Venture Deals", "industryIdentifiers": ["9780470929827"]}},
            {"volumeInfo": {"title": "Venture Deals", "industryIdentifiers": 9780470929827}},
        ]}))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.ok
        assert len(result.data) == 2
        assert all(record.isbn is None for record in result.data)

    async def test_non_object_volume_info_drops_the_volume(self, google_venture_deals):
        client = _google(lambda request: httpx.Response(200, json={
            "items": [{"volumeInfo": "Venture Deals", "saleInfo": 1}] + google_venture_deals,
        }))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.ok
        assert [r.isbn for r in result.data] == ["9781119594826"]

    @pytest.mark.parametrize("items", [["vd1", 5], 5])
    async def test_unreadable_items_are_invalid_response(self, items):
        client = _google(lambda request: httpx.Response(200, json={"items": items}))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.error.kind == ProviderErrorKind.INVALID_RESPONSE

    async def test_lookup_volume_falls_back_to_title(self, google_venture_deals):
        def handler(request):
            if request.url.params["q"].startswith("isbn:"):
                return httpx.Response(200, json={"totalItems": 0})
            return httpx.Response(200, json={"items": google_venture_deals})

        client = _google(handler)
        result = await client.lookup_volume(isbn="9780000000000", title="Venture Deals", author="Brad Feld")

        assert result.ok
        assert result.data["id"] == "vd4"

    async def test_lookup_volume_none(self):
        client = _google(lambda request: httpx.Response(200, json={}))

        result = await client.lookup_volume(isbn="9780000000000")

        assert result.ok
        assert result.data is None


class TestITunesClient:
    """Tests for ITunesClient."""

    async def test_search(self, itunes_venture_deals):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"results": itunes_venture_deals})

        client = _itunes(handler)
        result = await client.search(SearchQuery(title="Venture Deals", author="Brad Feld"))

        assert result.ok
        assert result.data[0].binding_type == "audiobook"
        params = requests[0].url.params
        assert params["term"] == "Venture Deals Brad Feld"
        assert params["media"] == "audiobook"
        assert params["country"] == "US"

    async def test_isbn_only_is_empty(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"results": []})

        client = _itunes(handler)
        result = await client.search(SearchQuery(isbn="9780470929827"))

        assert result.ok
        assert result.data == []
        assert requests == []

    async def test_unreadable_results_are_skipped(self):
        client = _itunes(lambda request: httpx.Response(200, json={"results": [
            {"collectionName": "Venture Deals (Unabridged)", "artistName": ["Brad Feld"]},
            "Venture Deals",
        ]}))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.ok
        [record] = result.data
        assert record.authors == []

    async def test_server_error(self):
        client = _itunes(lambda request: httpx.Response(502))

        result = await client.search(SearchQuery(title="Venture Deals"))

        assert result.error.kind == ProviderErrorKind.API_ERROR
