"""
Pytest configuration and fixtures for EditionScout tests.
"""

from typing import AsyncGenerator, Callable, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from editionscout.api.dependencies import (
    ServiceContainer,
    Settings,
    get_service_container,
    get_settings,
)
from editionscout.api.main import create_app
from editionscout.catalog.models import BookRecord
from editionscout.providers import (
    GoogleBooksClient,
    ISBNdbClient,
    ITunesClient,
    ProviderTransport,
)


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url="sqlite:///:memory:",
        isbndb_api_key="test-isbndb-key",
        google_books_api_key=None,
        itunes_enabled=True,
        search_timeout_seconds=2.0,
        enhancement_timeout_seconds=1.0,
        validation_timeout_seconds=1.0,
        environment="test",
        debug=True,
        log_level="WARNING",
    )


async def no_sleep(_delay: float) -> None:
    """Backoff sleep replacement so retries run instantly."""
    return None


def make_transport(
    settings,
    handler: Callable[[httpx.Request], httpx.Response],
) -> ProviderTransport:
    """ProviderTransport whose HTTP calls are answered by `handler`."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ProviderTransport(settings, client=client, sleep=no_sleep)


# =============================================================================
# Provider Payload Fixtures
# =============================================================================

@pytest.fixture
def isbndb_venture_deals() -> list[dict]:
    """ISBNdb search hits for Venture Deals across editions."""
    return [
        {
            "title": "Venture Deals",
            "title_long": "Venture Deals: Be Smarter Than Your Lawyer and Venture Capitalist",
            "authors": ["Brad Feld", "Jason Mendelson"],
            "isbn13": "9780470929827",
            "isbn": "0470929820",
            "binding": "Hardcover",
            "edition": "1st",
            "date_published": "2011-08-09",
            "publisher": "Wiley",
            "pages": 240,
            "language": "en",
        },
        {
            "title": "Venture Deals",
            "authors": ["Brad Feld", "Jason Mendelson"],
            "isbn13": "9781119259756",
            "binding": "Kindle Edition",
            "edition": "3rd",
            "date_published": "2016-10-10",
            "publisher": "Wiley",
        },
        {
            "title": "Venture Deals",
            "authors": ["Brad Feld", "Jason Mendelson"],
            "isbn13": "9781119594826",
            "binding": "Hardcover",
            "edition": "4th",
            "date_published": "2019-10-29",
            "publisher": "Wiley",
            "pages": 336,
            "synopsis": "Venture Deals has become the go-to book on venture capital term sheets.",
        },
    ]


@pytest.fixture
def google_venture_deals() -> list[dict]:
    """Google Books volumes for Venture Deals."""
    return [
        {
            "id": "vd4",
            "volumeInfo": {
                "title": "Venture Deals",
                "subtitle": "Be Smarter Than Your Lawyer and Venture Capitalist",
                "authors": ["Brad Feld", "Jason Mendelson"],
                "publisher": "John Wiley & Sons",
                "publishedDate": "2019-10-29",
                "description": "The definitive guide to term sheets, negotiation and fundraising, "
                               "updated for the current venture landscape.",
                "industryIdentifiers": [
                    {"type": "ISBN_13", "identifier": "9781119594826"},
                    {"type": "ISBN_10", "identifier": "1119594820"},
                ],
                "pageCount": 336,
                "printType": "BOOK",
                "categories": ["Business & Economics"],
                "imageLinks": {
                    "smallThumbnail": "http://books.google.com/vd4-small.jpg",
                    "thumbnail": "http://books.google.com/vd4.jpg",
                },
                "language": "en",
                "ratingsCount": 42,
            },
            "saleInfo": {"saleability": "FOR_SALE", "buyLink": "https://play.google.com/vd4", "isEbook": False},
            "accessInfo": {"viewability": "PARTIAL"},
        },
    ]


@pytest.fixture
def itunes_venture_deals() -> list[dict]:
    """iTunes audiobook results for Venture Deals."""
    return [
        {
            "collectionName": "Venture Deals (Unabridged)",
            "artistName": "Brad Feld",
            "releaseDate": "2016-11-01T07:00:00Z",
            "artworkUrl100": "http://is1.mzstatic.com/vd-audio.jpg",
            "primaryGenreName": "Business",
        },
    ]


class FakeProviders:
    """
    In-memory stand-in for the three provider HTTP APIs.

    Routes requests by host; set `failing` to a set of provider names to
    make them answer 500.
    """

    def __init__(self, isbndb_books=None, google_items=None, itunes_results=None):
        self.isbndb_books = list(isbndb_books or [])
        self.google_items = list(google_items or [])
        self.itunes_results = list(itunes_results or [])
        self.failing: set[str] = set()
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host == "api2.isbndb.com":
            return self._isbndb(request)
        if host == "www.googleapis.com":
            return self._google(request)
        if host == "itunes.apple.com":
            return self._itunes(request)
        return httpx.Response(404)

    def _isbndb(self, request: httpx.Request) -> httpx.Response:
        if "isbndb" in self.failing:
            return httpx.Response(500, json={"errorMessage": "upstream down"})

        path = request.url.path
        if path.startswith("/book/"):
            isbn = path.rsplit("/", 1)[-1]
            for book in self.isbndb_books:
                if isbn in (book.get("isbn13"), book.get("isbn"), book.get("isbn10")):
                    return httpx.Response(200, json={"book": book})
            return httpx.Response(404, json={"errorMessage": "Not Found"})

        if path == "/search/books":
            if not self.isbndb_books:
                return httpx.Response(404, json={"errorMessage": "Not Found"})
            return httpx.Response(200, json={"total": len(self.isbndb_books), "data": self.isbndb_books})

        if path == "/stats":
            return httpx.Response(200, json={"requests_today": len(self.requests), "plan": "basic"})

        return httpx.Response(404)

    def _google(self, request: httpx.Request) -> httpx.Response:
        if "google_books" in self.failing:
            return httpx.Response(500)

        q = request.url.params.get("q", "")
        items = self.google_items
        if q.startswith("isbn:"):
            isbn = q[len("isbn:"):]
            items = [
                item for item in items
                if any(
                    ident.get("identifier") == isbn
                    for ident in item.get("volumeInfo", {}).get("industryIdentifiers", [])
                )
            ]
        return httpx.Response(200, json={"totalItems": len(items), "items": items})

    def _itunes(self, request: httpx.Request) -> httpx.Response:
        if "itunes" in self.failing:
            return httpx.Response(500)
        return httpx.Response(200, json={"resultCount": len(self.itunes_results), "results": self.itunes_results})


@pytest.fixture
def fake_providers(isbndb_venture_deals, google_venture_deals, itunes_venture_deals) -> FakeProviders:
    return FakeProviders(isbndb_venture_deals, google_venture_deals, itunes_venture_deals)


def build_container(settings: Settings, providers: FakeProviders) -> ServiceContainer:
    """ServiceContainer whose provider transports talk to `providers`."""
    container = ServiceContainer(settings)
    for name, provider_settings in (
        (ISBNdbClient.PROVIDER, ISBNdbClient.default_settings(settings.isbndb_api_key)),
        (GoogleBooksClient.PROVIDER, GoogleBooksClient.default_settings()),
        (ITunesClient.PROVIDER, ITunesClient.default_settings()),
    ):
        container._transports[name] = make_transport(provider_settings, providers.handler)
    return container


@pytest.fixture
def container(fake_providers) -> ServiceContainer:
    return build_container(get_test_settings(), fake_providers)


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(container):
    """Create FastAPI application for testing."""
    application = create_app(get_test_settings())

    application.dependency_overrides[get_settings] = get_test_settings
    application.dependency_overrides[get_service_container] = lambda: container

    yield application

    application.dependency_overrides.clear()
    await container.close()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Record Fixtures
# =============================================================================

def make_record(title: str = "Venture Deals", **fields) -> BookRecord:
    """BookRecord with sensible defaults for grouping and merging tests."""
    fields.setdefault("authors", ["Brad Feld"])
    fields.setdefault("source", "isbndb")
    return BookRecord(title=title, **fields)


@pytest.fixture
def record_factory() -> Callable[..., BookRecord]:
    return make_record


@pytest.fixture
def google_volume() -> Callable[..., dict]:
    """Factory for Google Books volume payloads used by validator tests."""

    def _volume(
        publisher: Optional[str] = "Wiley",
        published_date: Optional[str] = "2019-10-29",
        description: str = "x" * 80,
        page_count: int = 336,
        ratings_count: int = 10,
        viewability: str = "PARTIAL",
        saleability: str = "FOR_SALE",
        buy_link: Optional[str] = "https://play.google.com/store/books/details?id=abc",
    ) -> dict:
        return {
            "volumeInfo": {
                "title": "Venture Deals",
                "publisher": publisher,
                "publishedDate": published_date,
                "description": description,
                "pageCount": page_count,
                "ratingsCount": ratings_count,
            },
            "saleInfo": {"saleability": saleability, "buyLink": buy_link},
            "accessInfo": {"viewability": viewability},
        }

    return _volume
