"""
Integration tests for the catalog search pipeline.
"""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from editionscout.catalog.models import BookRecord, ValidationResult
from editionscout.catalog.search import CatalogSearchRequest, CatalogSearchService, SearchInputError
from editionscout.providers.result import ProviderErrorKind, ProviderResult

pytestmark = pytest.mark.asyncio


def _adapter(name, records=None, failure=None) -> AsyncMock:
    adapter = AsyncMock()
    if failure is not None:
        result = ProviderResult.failure(name, failure, f"{name} failed")
    else:
        result = ProviderResult.success(name, list(records or []))
    adapter.search.return_value = result
    adapter.lookup_isbn.return_value = result
    return adapter


def _hardcover(**fields) -> BookRecord:
    fields.setdefault("title", "Venture Deals")
    fields.setdefault("authors", ["Brad Feld"])
    return BookRecord(**fields)


class TestSearchPipeline:
    """Tests for CatalogSearchService with stubbed providers."""

    async def test_empty_request_rejected(self):
        service = CatalogSearchService(_adapter("isbndb"), _adapter("google_books"))

        with pytest.raises(SearchInputError):
            await service.search(CatalogSearchRequest(title="  ", author=""))

    async def test_merges_across_providers(self):
        """Two records for one ISBN from different providers become one candidate."""
        isbndb = _adapter("isbndb", [_hardcover(
            isbn="9780470929827", binding="Hardcover", date_published="2011-06-01", source="isbndb",
        )])
        google = _adapter("google_books", [_hardcover(
            title="Venture Deals: Be Smarter Than Your Lawyer and Venture Capitalist",
            isbn="9780470929827", binding="Hard Cover", publisher="Wiley", source="google_books",
        )])
        service = CatalogSearchService(isbndb, google)

        outcome = await service.search(CatalogSearchRequest(title="Venture Deals"))

        assert outcome.success
        assert len(outcome.candidates) == 1
        record = outcome.candidates[0]
        assert record.title.startswith("Venture Deals: Be Smarter")
        assert record.binding_type == "hardcover"
        assert record.publisher == "Wiley"
        assert outcome.sources.duplicates_removed == 1
        assert len(outcome.editions) == 1

    async def test_zero_matches_is_success(self):
        service = CatalogSearchService(_adapter("isbndb"), _adapter("google_books"), _adapter("itunes"))

        outcome = await service.search(CatalogSearchRequest(title="No Such Book"))

        assert outcome.success
        assert outcome.to_dict()["data"] == {
            "candidates": [],
            "editions": [],
            "sources": {"isbndb": 0, "google_books": 0, "itunes": 0, "total": 0, "duplicates_removed": 0},
        }

    async def test_all_providers_failing(self):
        service = CatalogSearchService(
            _adapter("isbndb", failure=ProviderErrorKind.UNAUTHORIZED),
            _adapter("google_books", failure=ProviderErrorKind.TIMEOUT),
        )

        outcome = await service.search(CatalogSearchRequest(title="Venture Deals"))

        assert not outcome.success
        assert {e.provider for e in outcome.errors} == {"isbndb", "google_books"}

    async def test_partial_failure_still_succeeds(self):
        service = CatalogSearchService(
            _adapter("isbndb", failure=ProviderErrorKind.RATE_LIMITED),
            _adapter("google_books", [_hardcover(isbn="1", source="google_books")]),
        )

        outcome = await service.search(CatalogSearchRequest(title="Venture Deals"))

        assert outcome.success
        assert len(outcome.candidates) == 1
        assert [e.kind for e in outcome.errors] == [ProviderErrorKind.RATE_LIMITED]

    async def test_slow_provider_becomes_timeout(self):
        async def slow_search(query):
            await asyncio.sleep(5)
            return ProviderResult.success("isbndb", [])

        isbndb = AsyncMock()
        isbndb.search.side_effect = slow_search
        google = _adapter("google_books", [_hardcover(isbn="1", source="google_books")])
        service = CatalogSearchService(isbndb, google, provider_timeout=0.05)

        outcome = await service.search(CatalogSearchRequest(title="Venture Deals"))

        assert outcome.success
        assert outcome.errors[0].provider == "isbndb"
        assert outcome.errors[0].kind == ProviderErrorKind.TIMEOUT

    async def test_raising_provider_is_an_error(self):
        isbndb = AsyncMock()
        isbndb.search.side_effect = RuntimeError("boom")
        service = CatalogSearchService(isbndb, _adapter("google_books", [_hardcover(isbn="1")]))

        outcome = await service.search(CatalogSearchRequest(title="Venture Deals"))

        assert outcome.success
        assert outcome.errors[0].kind == ProviderErrorKind.API_ERROR

    async def test_isbn_request_uses_lookups(self):
        isbndb = _adapter("isbndb", [_hardcover(isbn="9780470929827")])
        google = _adapter("google_books")
        itunes = _adapter("itunes")
        service = CatalogSearchService(isbndb, google, itunes)

        await service.search(CatalogSearchRequest(isbn="978-0-470-92982-7"))

        isbndb.lookup_isbn.assert_awaited_once_with("9780470929827")
        google.lookup_isbn.assert_awaited_once_with("9780470929827")
        isbndb.search.assert_not_called()
        itunes.search.assert_not_called()

    async def test_validation_filters_low_confidence(self):
        keep = _hardcover(isbn="1", binding="Hardcover")
        drop = _hardcover(isbn="2", binding="Paperback")

        validator = AsyncMock()

        async def validate_many(records, timeout):
            scores = {"1": 0.9, "2": 0.1}
            return [
                replace(record, validation=ValidationResult(True, scores[record.isbn]))
                for record in records
            ]

        validator.validate_many.side_effect = validate_many
        service = CatalogSearchService(
            _adapter("isbndb", [keep, drop]),
            _adapter("google_books"),
            validator=validator,
        )

        unvalidated = await service.search(CatalogSearchRequest(title="Venture Deals"))
        validated = await service.search(CatalogSearchRequest(title="Venture Deals", validate=True))
        strict = await service.search(CatalogSearchRequest(
            title="Venture Deals", validate=True, min_validation_confidence=0.95,
        ))

        assert len(unvalidated.candidates) == 2
        assert [r.isbn for r in validated.candidates] == ["1"]
        assert strict.candidates == []
        assert strict.success


class TestContainerSearch:
    """End-to-end pipeline through real adapters and fake provider HTTP."""

    async def test_venture_deals(self, container):
        outcome = await container.search_service.search(
            CatalogSearchRequest(title="Venture Deals", author="Brad Feld")
        )

        assert outcome.success
        assert outcome.errors == []
        assert outcome.sources.isbndb == 3
        assert outcome.sources.google_books == 1
        assert outcome.sources.itunes == 1
        assert outcome.sources.duplicates_removed == 1

        assert [e.edition_number for e in outcome.editions] == [4, 3, 1]
        third = outcome.editions[1]
        assert [g.binding_type for g in third.binding_groups] == ["ebook", "audiobook"]

        fourth = outcome.editions[0].books[0]
        assert set(fourth.data_sources) == {"isbndb", "google_books"}
        assert fourth.publisher == "Wiley"
        assert fourth.image.startswith("https://")

    async def test_isbndb_outage(self, container, fake_providers):
        fake_providers.failing = {"isbndb"}

        outcome = await container.search_service.search(
            CatalogSearchRequest(title="Venture Deals", author="Brad Feld")
        )

        assert outcome.success
        assert {e.provider for e in outcome.errors} == {"isbndb"}
        assert outcome.sources.isbndb == 0
