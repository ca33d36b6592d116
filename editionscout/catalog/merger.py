"""
Cross-Provider Merger

Deduplicates normalized records from several providers and merges each
duplicate set into one field-complete record.

Design Decisions:
1. Identity: ISBN when present, else normalized title + first author.
   Records with different ISBNs are never merged.
2. Field policy: longer free text wins, lists are unioned, structured
   metadata prefers the primary source, cover art prefers the other one.
3. Output is ordered by ISBN presence, completeness, source, then title.
"""

import re
from collections import OrderedDict
from typing import Iterable, Optional

from loguru import logger

from editionscout.catalog.models import BookRecord, SourceStats


_NON_WORD = re.compile(r"[^\w\s]")
_ISBN_NOISE = re.compile(r"[-\s]")


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    if not text:
        return ""
    return " ".join(_NON_WORD.sub("", text.lower()).split())


def clean_isbn(isbn: Optional[str]) -> str:
    """Strip hyphens/spaces and case-fold an ISBN."""
    if not isbn:
        return ""
    return _ISBN_NOISE.sub("", isbn).casefold()


def union_casefold(*lists: Iterable[str]) -> list[str]:
    """Union string lists case-insensitively, keeping first-seen casing."""
    seen = set()
    merged = []
    for values in lists:
        for value in values or []:
            folded = " ".join(value.split()).casefold()
            if folded and folded not in seen:
                seen.add(folded)
                merged.append(value)
    return merged


def _longer(first: Optional[str], second: Optional[str]) -> Optional[str]:
    if not first:
        return second
    if not second:
        return first
    return second if len(second) > len(first) else first


class BookMerger:
    """
    Merges records describing the same real-world book.

    Usage:
        merger = BookMerger(primary_source="isbndb")
        records, stats = merger.merge_sources({
            "isbndb": isbndb_records,
            "google_books": google_records,
        })
    """

    # Completeness weights used for ordering
    COMPLETENESS_WEIGHTS = {
        "isbn": 3,
        "authors": 2,
        "publisher": 1,
        "date_published": 1,
        "description": 2,
        "pages": 1,
        "binding": 1,
        "image": 1,
    }

    def __init__(self, primary_source: str = "isbndb"):
        """
        Args:
            primary_source: Provenance tag of the source trusted for
                structured metadata (publisher, binding, edition).
        """
        self.primary_source = primary_source

    # =========================================================================
    # Identity
    # =========================================================================

    def merge_key(self, record: BookRecord) -> str:
        isbn = clean_isbn(record.isbn or record.isbn13 or record.isbn10)
        if isbn:
            return f"isbn:{isbn}"

        title = normalize_text(record.title)
        author = normalize_text(record.primary_author) or "unknown"
        return f"title-author:{title}:{author}"

    def is_primary(self, record: BookRecord) -> bool:
        return self.primary_source in record.data_sources

    # =========================================================================
    # Merging
    # =========================================================================

    def merge(self, records: Iterable[BookRecord]) -> list[BookRecord]:
        """
        Deduplicate and merge records, then order them best-first.

        Args:
            records: Normalized records from any number of providers.

        Returns:
            One record per merge key, sorted by sort_key().
        """
        merged: "OrderedDict[str, BookRecord]" = OrderedDict()

        for record in records:
            key = self.merge_key(record)
            existing = merged.get(key)
            merged[key] = record if existing is None else self.merge_pair(existing, record)

        return sorted(merged.values(), key=self.sort_key)

    def merge_pair(self, first: BookRecord, second: BookRecord) -> BookRecord:
        """Merge two records that share a merge key."""
        first_primary = self.is_primary(first)
        second_primary = self.is_primary(second)

        if second_primary and not first_primary:
            preferred, other = second, first
        else:
            preferred, other = first, second

        # Cover art: the non-primary source usually has better images
        if first_primary and not second_primary:
            art, art_fallback = second, first
        else:
            art, art_fallback = first, second

        first_isbn = clean_isbn(first.isbn)
        second_isbn = clean_isbn(second.isbn)
        isbn = second.isbn if len(second_isbn) > len(first_isbn) else (first.isbn or second.isbn)

        return BookRecord(
            title=_longer(first.title, second.title),
            subtitle=_longer(first.subtitle, second.subtitle),
            authors=union_casefold(first.authors, second.authors),
            publisher=preferred.publisher or other.publisher,
            date_published=_longer(first.date_published, second.date_published),
            isbn=isbn,
            isbn10=first.isbn10 or second.isbn10,
            isbn13=first.isbn13 or second.isbn13,
            binding=preferred.binding or other.binding,
            edition=preferred.edition or other.edition,
            content_version=preferred.content_version or other.content_version,
            pages=first.pages or second.pages,
            language=first.language or second.language,
            description=_longer(first.description, second.description),
            subjects=union_casefold(first.subjects, second.subjects),
            image=art.image or art_fallback.image,
            thumbnail=art.thumbnail or art_fallback.thumbnail,
            source=preferred.source,
            data_sources=union_casefold(first.data_sources, second.data_sources),
            validation=first.validation or second.validation,
        )

    # =========================================================================
    # Ordering
    # =========================================================================

    def completeness(self, record: BookRecord) -> int:
        weights = self.COMPLETENESS_WEIGHTS
        score = 0
        if record.isbn:
            score += weights["isbn"]
        if record.authors:
            score += weights["authors"]
        if record.publisher:
            score += weights["publisher"]
        if record.date_published:
            score += weights["date_published"]
        if record.description:
            score += weights["description"]
        if record.pages:
            score += weights["pages"]
        if record.binding:
            score += weights["binding"]
        if record.image or record.thumbnail:
            score += weights["image"]
        return score

    def sort_key(self, record: BookRecord) -> tuple:
        return (
            0 if record.isbn else 1,
            -self.completeness(record),
            0 if self.is_primary(record) else 1,
            record.title.casefold(),
        )

    # =========================================================================
    # Multi-source helpers
    # =========================================================================

    def merge_sources(
        self,
        by_source: dict[str, list[BookRecord]],
    ) -> tuple[list[BookRecord], SourceStats]:
        """
        Merge per-provider result lists and report source counts.

        Args:
            by_source: Provider name -> records, in provider priority order.

        Returns:
            (merged records, SourceStats)
        """
        all_records = [record for records in by_source.values() for record in records]
        merged = self.merge(all_records)

        stats = SourceStats(
            isbndb=len(by_source.get("isbndb", [])),
            google_books=len(by_source.get("google_books", [])),
            itunes=len(by_source.get("itunes", [])),
            total=len(merged),
            duplicates_removed=len(all_records) - len(merged),
        )

        logger.debug(
            f"Merged {len(all_records)} records into {stats.total} "
            f"({stats.duplicates_removed} duplicates removed)"
        )
        return merged, stats

    @staticmethod
    def filter_validated(
        records: list[BookRecord],
        min_confidence: float = 0.3,
    ) -> list[BookRecord]:
        """Drop validated records below min_confidence; unvalidated records stay."""
        return [
            record for record in records
            if record.validation is None or record.validation.confidence >= min_confidence
        ]
