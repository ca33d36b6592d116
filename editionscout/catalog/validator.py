"""
Publication Validator

Cross-checks a candidate against Google Books and scores how likely it is
to be a real, purchasable publication. Lookup failures never block the
pipeline: they degrade to "treat as published" with a flag.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from loguru import logger

from editionscout.catalog.deadline import gather_within_deadline
from editionscout.catalog.models import BookRecord, ValidationResult, parse_year


REPUTABLE_PUBLISHERS = (
    "Wiley",
    "John Wiley",
    "Penguin",
    "Random House",
    "HarperCollins",
    "Simon & Schuster",
    "Macmillan",
    "Hachette",
    "McGraw-Hill",
    "O'Reilly",
    "Addison-Wesley",
    "Prentice Hall",
    "MIT Press",
    "Harvard Business Review",
    "Harvard Business School",
)


@dataclass
class ValidationSignals:
    """Boolean evidence extracted from a Google Books volume."""

    has_entry: bool = False
    has_preview: bool = False
    has_purchase_link: bool = False
    has_ratings: bool = False
    has_description: bool = False
    has_page_count: bool = False
    reputable_publisher: bool = False
    date_consistent: bool = False


class PublicationValidator:
    """
    Assigns a publication confidence to candidate records.

    Usage:
        validator = PublicationValidator(google_books_client)
        result = await validator.validate("9780470929827", "Venture Deals", "Brad Feld")
    """

    WEIGHTS = {
        "has_entry": 0.20,
        "has_preview": 0.15,
        "has_purchase_link": 0.15,
        "has_ratings": 0.10,
        "has_description": 0.10,
        "has_page_count": 0.10,
        "reputable_publisher": 0.10,
        "date_consistent": 0.10,
    }

    FLAGS = {
        "has_preview": "no_preview_available",
        "has_purchase_link": "not_for_sale",
        "has_ratings": "no_community_ratings",
        "has_description": "minimal_description",
        "has_page_count": "no_page_count",
        "reputable_publisher": "unknown_publisher",
        "date_consistent": "inconsistent_date",
    }

    PUBLISHED_THRESHOLD = 0.6
    MIN_DESCRIPTION_LENGTH = 50
    EARLIEST_YEAR = 1800
    FUTURE_YEAR_SLACK = 2

    SOURCE = "google_books"

    def __init__(self, google_books):
        """
        Args:
            google_books: Client exposing
                `lookup_volume(isbn, title, author) -> ProviderResult[Optional[dict]]`.
        """
        self.google_books = google_books

    async def validate(
        self,
        isbn: Optional[str],
        title: str,
        author: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate one book.

        Args:
            isbn: ISBN (may be empty).
            title: Book title.
            author: Primary author.

        Returns:
            ValidationResult; errors yield the degraded default.
        """
        try:
            result = await self.google_books.lookup_volume(isbn=isbn or None, title=title, author=author)
        except Exception as e:
            logger.warning(f"Publication validation failed for '{title}': {e}")
            return self.degraded()

        if not result.ok:
            logger.warning(
                f"Publication validation lookup failed for '{title}': {result.error.kind.value}"
            )
            return self.degraded()

        if not result.data:
            return ValidationResult(
                is_really_published=False,
                confidence=0.0,
                flags=["no_google_books_entry"],
                validation_sources=[],
            )

        try:
            signals = self.extract_signals(result.data)
            confidence = self.score(signals)
            flags = self.flags(signals)
        except Exception as e:
            logger.warning(f"Unreadable Google Books volume for '{title}': {type(e).__name__}: {e}")
            return self.degraded()

        return ValidationResult(
            is_really_published=confidence >= self.PUBLISHED_THRESHOLD,
            confidence=confidence,
            flags=flags,
            validation_sources=[self.SOURCE],
        )

    @staticmethod
    def degraded() -> ValidationResult:
        return ValidationResult(
            is_really_published=True,
            confidence=0.5,
            flags=["validation_error"],
            validation_sources=[],
        )

    # =========================================================================
    # Signals
    # =========================================================================

    def extract_signals(self, volume: dict) -> ValidationSignals:
        volume = _mapping(volume)
        info = _mapping(volume.get("volumeInfo"))
        sale = _mapping(volume.get("saleInfo"))
        access = _mapping(volume.get("accessInfo"))

        return ValidationSignals(
            has_entry=True,
            has_preview=access.get("viewability") in ("PARTIAL", "ALL_PAGES"),
            has_purchase_link=sale.get("saleability") == "FOR_SALE" and bool(sale.get("buyLink")),
            has_ratings=_number(info.get("ratingsCount")) > 0,
            has_description=len(str(info.get("description") or "")) > self.MIN_DESCRIPTION_LENGTH,
            has_page_count=_number(info.get("pageCount")) > 0,
            reputable_publisher=self.is_reputable_publisher(info.get("publisher")),
            date_consistent=self.is_date_consistent(info.get("publishedDate")),
        )

    def score(self, signals: ValidationSignals) -> float:
        """Weighted sum of true signals, capped at 1.0."""
        total = sum(weight for name, weight in self.WEIGHTS.items() if getattr(signals, name))
        return round(min(1.0, total), 4)

    def flags(self, signals: ValidationSignals) -> list[str]:
        return [flag for name, flag in self.FLAGS.items() if not getattr(signals, name)]

    @staticmethod
    def is_reputable_publisher(publisher: Optional[str]) -> bool:
        if not publisher:
            return False
        text = str(publisher).lower()
        return any(name.lower() in text for name in REPUTABLE_PUBLISHERS)

    def is_date_consistent(self, published_date: Optional[str]) -> bool:
        year = parse_year(published_date) if isinstance(published_date, str) else None
        if year is None:
            return False
        return self.EARLIEST_YEAR <= year <= datetime.now().year + self.FUTURE_YEAR_SLACK

    # =========================================================================
    # Batch
    # =========================================================================

    async def validate_many(
        self,
        records: list[BookRecord],
        timeout: Optional[float] = None,
    ) -> list[BookRecord]:
        """
        Validate records concurrently within a deadline.

        Records whose validation did not finish in time are returned
        unchanged (no validation attached).
        """
        outcomes = await gather_within_deadline(
            (self.validate(record.isbn, record.title, record.primary_author) for record in records),
            timeout,
        )

        validated = []
        for record, outcome in zip(records, outcomes):
            if isinstance(outcome, ValidationResult):
                validated.append(replace(record, validation=outcome))
            else:
                validated.append(record)

        finished = sum(1 for outcome in outcomes if isinstance(outcome, ValidationResult))
        logger.debug(f"Validated {finished}/{len(records)} records")
        return validated


def _mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


def _number(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
