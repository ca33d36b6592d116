"""
Catalog data model.

Transient records flowing through the search pipeline:
- BookRecord: one normalized hit from a single provider
- ValidationResult: publication confidence attached to a record
- BindingGroup / EditionGroup: grouping output handed to storage and the API
- SourceStats: per-provider counts for a merged search
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from editionscout.catalog.bindings import binding_sort_key, normalize_binding


MIN_PUBLICATION_YEAR = 1800
FUTURE_YEAR_SLACK = 5

_YEAR_IN_TITLE = re.compile(r"\((\d{4})\)")


def parse_year(value: Optional[str]) -> Optional[int]:
    """Parse the leading four-digit year of a free-text date."""
    if not value:
        return None
    text = str(value).strip()
    if len(text) < 4 or not text[:4].isdigit():
        return None
    return int(text[:4])


def is_plausible_year(year: Optional[int]) -> bool:
    """Check a year against the accepted publication window."""
    if year is None:
        return False
    return MIN_PUBLICATION_YEAR < year <= datetime.now().year + FUTURE_YEAR_SLACK


@dataclass
class ValidationResult:
    """Confidence that a record denotes a real, purchasable publication."""

    is_really_published: bool
    confidence: float
    flags: list[str] = field(default_factory=list)
    validation_sources: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.confidence >= 0.9:
            return "Highly Verified"
        if self.confidence >= 0.7:
            return "Well Verified"
        if self.confidence >= 0.5:
            return "Moderately Verified"
        if self.confidence >= 0.3:
            return "Poorly Verified"
        return "Unverified"

    def to_dict(self) -> dict:
        return {
            "is_really_published": self.is_really_published,
            "confidence": round(self.confidence, 3),
            "flags": list(self.flags),
            "validation_sources": list(self.validation_sources),
            "summary": self.summary,
        }


@dataclass
class BookRecord:
    """
    A normalized bibliographic record.

    Only the title is required; every other field is best-effort and
    stays None (or empty) when the provider did not supply it.
    """

    title: str
    subtitle: Optional[str] = None
    authors: list[str] = field(default_factory=list)
    publisher: Optional[str] = None
    date_published: Optional[str] = None

    # Identifiers
    isbn: Optional[str] = None
    isbn10: Optional[str] = None
    isbn13: Optional[str] = None

    # Format and edition markers
    binding: Optional[str] = None
    edition: Optional[str] = None
    content_version: Optional[str] = None

    # Content
    pages: Optional[int] = None
    language: Optional[str] = None
    description: Optional[str] = None
    subjects: list[str] = field(default_factory=list)

    # Media
    image: Optional[str] = None
    thumbnail: Optional[str] = None

    # Provenance
    source: str = "unknown"
    data_sources: list[str] = field(default_factory=list)

    validation: Optional[ValidationResult] = None

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("BookRecord requires a non-empty title")
        self.title = " ".join(self.title.split())
        if not self.data_sources:
            self.data_sources = [self.source]

    @property
    def primary_author(self) -> Optional[str]:
        """First listed author, if any."""
        return self.authors[0] if self.authors else None

    @property
    def binding_type(self) -> str:
        """Normalized binding; "unknown" when absent."""
        return normalize_binding(self.binding)

    @property
    def publication_year(self) -> Optional[int]:
        """Publication year from the date field, else a "(YYYY)" in the title."""
        year = parse_year(self.date_published)
        if is_plausible_year(year):
            return year

        match = _YEAR_IN_TITLE.search(self.title)
        if match:
            year = int(match.group(1))
            if is_plausible_year(year):
                return year
        return None

    @property
    def edition_marker(self) -> Optional[str]:
        """Edition marker text, preferring the explicit edition field."""
        return self.edition or self.content_version

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "authors": list(self.authors),
            "publisher": self.publisher,
            "date_published": self.date_published,
            "publication_year": self.publication_year,
            "isbn": self.isbn,
            "isbn10": self.isbn10,
            "isbn13": self.isbn13,
            "binding": self.binding,
            "binding_type": self.binding_type,
            "edition": self.edition,
            "content_version": self.content_version,
            "pages": self.pages,
            "language": self.language,
            "description": self.description,
            "subjects": list(self.subjects),
            "image": self.image,
            "thumbnail": self.thumbnail,
            "source": self.source,
            "data_sources": list(self.data_sources),
            "validation": self.validation.to_dict() if self.validation else None,
        }


@dataclass
class BindingGroup:
    """Records of one edition sharing a normalized binding type."""

    binding_type: str
    books: list[BookRecord] = field(default_factory=list)


@dataclass
class EditionGroup:
    """A detected revision of a work and the records belonging to it."""

    edition_number: int = 1
    edition_type: Optional[str] = None
    publication_year: Optional[int] = None
    books: list[BookRecord] = field(default_factory=list)

    # Bindings whose metadata is preferred when summarizing a group
    METADATA_PRIORITY = ("hardcover", "paperback", "ebook", "audiobook")

    @property
    def key(self) -> str:
        """Grouping identity: the special type when present, else the number."""
        if self.edition_type:
            return self.edition_type
        return str(self.edition_number)

    @property
    def binding_groups(self) -> list[BindingGroup]:
        """Members partitioned by binding type, in display order."""
        groups: dict[str, BindingGroup] = {}
        for book in self.books:
            binding_type = book.binding_type
            if binding_type not in groups:
                groups[binding_type] = BindingGroup(binding_type=binding_type)
            groups[binding_type].books.append(book)
        return sorted(groups.values(), key=lambda g: binding_sort_key(g.binding_type))

    @property
    def display_name(self) -> str:
        """Human-readable label such as "2nd Edition (2020)"."""
        if self.edition_type:
            display = self.edition_type
        elif self.edition_number > 1:
            display = f"{self.edition_number}{ordinal_suffix(self.edition_number)} Edition"
        else:
            display = "First Edition"

        if self.publication_year:
            display += f" ({self.publication_year})"
        return display

    def best_metadata(self) -> Optional[BookRecord]:
        """
        Pick the record whose metadata best represents the edition.

        Walks bindings in METADATA_PRIORITY order and returns the most
        complete record of the first binding that has any metadata; falls
        back to the most complete record overall.
        """
        if not self.books:
            return None

        by_binding: dict[str, list[BookRecord]] = {}
        for book in self.books:
            by_binding.setdefault(book.binding_type, []).append(book)

        for binding_type in self.METADATA_PRIORITY:
            candidates = by_binding.get(binding_type)
            if not candidates:
                continue
            best = max(candidates, key=_metadata_score)
            if _metadata_score(best) > 0:
                return best

        return max(self.books, key=_metadata_score)

    def to_dict(self) -> dict:
        return {
            "edition_number": self.edition_number,
            "edition_type": self.edition_type,
            "publication_year": self.publication_year,
            "display_name": self.display_name,
            "bindings": [
                {
                    "binding_type": group.binding_type,
                    "books": [book.to_dict() for book in group.books],
                }
                for group in self.binding_groups
            ],
        }


@dataclass
class SourceStats:
    """How many records each provider contributed to a merged result."""

    isbndb: int = 0
    google_books: int = 0
    itunes: int = 0
    total: int = 0
    duplicates_removed: int = 0

    def to_dict(self) -> dict:
        return {
            "isbndb": self.isbndb,
            "google_books": self.google_books,
            "itunes": self.itunes,
            "total": self.total,
            "duplicates_removed": self.duplicates_removed,
        }


def ordinal_suffix(number: int) -> str:
    """Return the English ordinal suffix for a number (1st, 2nd, 11th)."""
    if number % 100 in (11, 12, 13):
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def _metadata_score(book: BookRecord) -> int:
    score = 0
    if book.date_published:
        score += 3
    if book.pages:
        score += 2
    if book.publisher:
        score += 1
    if book.description:
        score += 1
    if book.image or book.thumbnail:
        score += 1
    return score
