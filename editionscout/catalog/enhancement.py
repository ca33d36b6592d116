"""
Smart Enhancement

Fills critical gaps (year, cover, page count, publisher) of candidates by
looking their ISBN up on Google Books. Best-effort: lookups run in parallel
under one deadline, and anything unfinished keeps its original data.
"""

from dataclasses import replace
from typing import Optional

from loguru import logger

from editionscout.catalog.deadline import gather_within_deadline
from editionscout.catalog.models import BookRecord


ENHANCED_TAG = "google_books-enhanced"


class SmartEnhancer:
    """Targeted ISBN lookups for records missing critical metadata."""

    MIN_MISSING_FIELDS = 2
    DEFAULT_TIMEOUT = 3.0

    def __init__(self, google_books, timeout: float = DEFAULT_TIMEOUT):
        """
        Args:
            google_books: Client exposing `lookup_isbn(isbn) -> ProviderResult[list[BookRecord]]`.
            timeout: Overall budget for one enhancement batch, in seconds.
        """
        self.google_books = google_books
        self.timeout = timeout

    @classmethod
    def missing_fields(cls, record: BookRecord) -> list[str]:
        missing = []
        if not record.date_published:
            missing.append("year")
        if not (record.image or record.thumbnail):
            missing.append("image")
        if not record.pages:
            missing.append("pages")
        if not record.publisher:
            missing.append("publisher")
        return missing

    @classmethod
    def needs_enhancement(cls, record: BookRecord) -> bool:
        """Only records with an ISBN and at least two critical gaps qualify."""
        return bool(record.isbn) and len(cls.missing_fields(record)) >= cls.MIN_MISSING_FIELDS

    async def enhance(self, records: list[BookRecord]) -> list[BookRecord]:
        """
        Enhance qualifying records, preserving order.

        Args:
            records: Merged candidates.

        Returns:
            Records with gaps filled where a lookup succeeded in time.
        """
        candidates = [index for index, record in enumerate(records) if self.needs_enhancement(record)]
        if not candidates:
            return list(records)

        outcomes = await gather_within_deadline(
            (self._enhance_one(records[index]) for index in candidates),
            self.timeout,
        )

        enhanced = list(records)
        count = 0
        for index, outcome in zip(candidates, outcomes):
            if isinstance(outcome, BookRecord):
                enhanced[index] = outcome
                count += 1

        logger.info(f"Smart enhancement: {len(candidates)} candidates, {count} enhanced")
        return enhanced

    async def _enhance_one(self, record: BookRecord) -> Optional[BookRecord]:
        result = await self.google_books.lookup_isbn(record.isbn)
        if not result.ok or not result.data:
            return None

        found = result.data[0]
        return replace(
            record,
            date_published=record.date_published or found.date_published,
            image=record.image or found.image,
            thumbnail=record.thumbnail or found.thumbnail,
            pages=record.pages or found.pages,
            publisher=record.publisher or found.publisher,
            description=record.description or found.description,
            data_sources=record.data_sources + [ENHANCED_TAG],
        )
