"""
Catalog Search Service

Runs the full pipeline for one search request:
1. Query providers concurrently (bounded by a deadline)
2. Merge and deduplicate their records
3. Fill metadata gaps (smart enhancement)
4. Optionally validate and filter candidates
5. Group the survivors into editions and bindings

A request where every provider failed is reported as a failure; a request
where providers answered but nothing matched is a successful empty result.
"""

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from editionscout.catalog.deadline import Straggler, gather_within_deadline
from editionscout.catalog.editions import EditionGrouper
from editionscout.catalog.merger import BookMerger
from editionscout.catalog.models import BookRecord, EditionGroup, SourceStats
from editionscout.providers.query import SearchQuery
from editionscout.providers.result import ProviderError, ProviderErrorKind, ProviderResult


class SearchInputError(ValueError):
    """Raised when a search request names no title, author or ISBN."""


@dataclass
class CatalogSearchRequest:
    """Inbound search parameters."""

    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    page: int = 1
    page_size: int = 20
    validate: bool = False
    min_validation_confidence: Optional[float] = None

    def to_query(self) -> SearchQuery:
        return SearchQuery(
            title=self.title,
            author=self.author,
            isbn=self.isbn,
            page=self.page,
            page_size=self.page_size,
        )


@dataclass
class SearchOutcome:
    """Result of a pipeline run."""

    success: bool
    candidates: list[BookRecord] = field(default_factory=list)
    editions: list[EditionGroup] = field(default_factory=list)
    sources: SourceStats = field(default_factory=SourceStats)
    errors: list[ProviderError] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.candidates

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "data": {
                "candidates": [record.to_dict() for record in self.candidates],
                "editions": [edition.to_dict() for edition in self.editions],
                "sources": self.sources.to_dict(),
            },
            "errors": [error.to_dict() for error in self.errors],
        }


class CatalogSearchService:
    """
    Search orchestrator.

    Usage:
        service = CatalogSearchService(isbndb, google_books, itunes)
        outcome = await service.search(CatalogSearchRequest(title="Venture Deals", author="Brad Feld"))
        for edition in outcome.editions:
            print(edition.display_name)
    """

    def __init__(
        self,
        isbndb,
        google_books,
        itunes=None,
        merger: Optional[BookMerger] = None,
        grouper: Optional[EditionGrouper] = None,
        enhancer=None,
        validator=None,
        provider_timeout: float = 8.0,
        validation_timeout: float = 5.0,
        min_validation_confidence: float = 0.3,
    ):
        """
        Args:
            isbndb: Primary provider adapter.
            google_books: Secondary provider adapter.
            itunes: Optional audiobook adapter.
            merger: Cross-provider merger.
            grouper: Edition grouper.
            enhancer: Optional SmartEnhancer.
            validator: Optional PublicationValidator.
            provider_timeout: Budget for the provider fan-out, in seconds.
            validation_timeout: Budget for batch validation, in seconds.
            min_validation_confidence: Default filter threshold.
        """
        self.isbndb = isbndb
        self.google_books = google_books
        self.itunes = itunes
        self.merger = merger or BookMerger(primary_source="isbndb")
        self.grouper = grouper or EditionGrouper()
        self.enhancer = enhancer
        self.validator = validator
        self.provider_timeout = provider_timeout
        self.validation_timeout = validation_timeout
        self.min_validation_confidence = min_validation_confidence

    def _provider_calls(self, query: SearchQuery) -> list[tuple[str, object]]:
        if query.isbn:
            return [
                ("isbndb", self.isbndb.lookup_isbn(query.isbn)),
                ("google_books", self.google_books.lookup_isbn(query.isbn)),
            ]

        calls = [
            ("isbndb", self.isbndb.search(query)),
            ("google_books", self.google_books.search(query)),
        ]
        if self.itunes is not None:
            calls.append(("itunes", self.itunes.search(query)))
        return calls

    async def search(self, request: CatalogSearchRequest) -> SearchOutcome:
        """
        Run the pipeline for one request.

        Raises:
            SearchInputError: If title, author and isbn are all empty.
        """
        query = request.to_query()
        if query.is_empty:
            raise SearchInputError("At least one of title, author or isbn is required")

        calls = self._provider_calls(query)
        outcomes = await gather_within_deadline((call for _, call in calls), self.provider_timeout)

        by_source: dict[str, list[BookRecord]] = {}
        errors: list[ProviderError] = []

        for (name, _), outcome in zip(calls, outcomes):
            if isinstance(outcome, ProviderResult):
                if outcome.ok:
                    by_source[name] = outcome.data or []
                else:
                    errors.append(outcome.error)
            elif isinstance(outcome, Straggler):
                errors.append(ProviderError(
                    kind=ProviderErrorKind.TIMEOUT,
                    message=f"No answer within {self.provider_timeout}s",
                    provider=name,
                ))
            else:
                logger.error(f"Provider {name} raised unexpectedly: {outcome!r}")
                errors.append(ProviderError(
                    kind=ProviderErrorKind.API_ERROR,
                    message=str(outcome),
                    provider=name,
                ))

        if not by_source:
            logger.warning(f"All providers failed for {query}: {[e.kind.value for e in errors]}")
            return SearchOutcome(success=False, errors=errors)

        records, stats = self.merger.merge_sources(by_source)

        if self.enhancer is not None and records:
            records = await self.enhancer.enhance(records)

        if request.validate and self.validator is not None and records:
            records = await self.validator.validate_many(records, self.validation_timeout)
            threshold = request.min_validation_confidence
            if threshold is None:
                threshold = self.min_validation_confidence
            records = self.merger.filter_validated(records, threshold)

        editions = self.grouper.group_by_edition(records)

        logger.info(
            f"Search title={query.title!r} author={query.author!r} isbn={query.isbn!r}: "
            f"{len(records)} candidates, {len(editions)} editions, {len(errors)} provider errors"
        )
        return SearchOutcome(
            success=True,
            candidates=records,
            editions=editions,
            sources=stats,
            errors=errors,
        )
