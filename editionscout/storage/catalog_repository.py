"""
Catalog Repository for EditionScout

Structured storage for grouped search results using SQLAlchemy:
- PostgreSQL for production
- SQLite for development/testing
- Idempotent saves: re-saving the same groups never duplicates rows

Design Decisions:
1. Sync SQLAlchemy ORM, one short-lived session per call
2. Works are found again by lowercased title and first author
3. Editions are keyed on (book, edition number, edition type)
4. Bindings are keyed on ISBN; records without one are not stored
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from editionscout.catalog.merger import clean_isbn
from editionscout.catalog.models import BookRecord, EditionGroup
from editionscout.storage.models import Base, CatalogBinding, CatalogBook, CatalogEdition


@dataclass
class StoredBinding:
    isbn: str
    binding_type: str
    publisher: Optional[str] = None
    cover_image_url: Optional[str] = None
    description: Optional[str] = None
    pages: Optional[int] = None
    language: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def from_model(cls, model: CatalogBinding) -> "StoredBinding":
        return cls(
            isbn=model.isbn,
            binding_type=model.binding_type,
            publisher=model.publisher,
            cover_image_url=model.cover_image_url,
            description=model.description,
            pages=model.pages,
            language=model.language,
            source=model.source,
        )

    def to_dict(self) -> dict:
        return {
            "isbn": self.isbn,
            "binding_type": self.binding_type,
            "publisher": self.publisher,
            "cover_image_url": self.cover_image_url,
            "description": self.description,
            "pages": self.pages,
            "language": self.language,
            "source": self.source,
        }


@dataclass
class StoredEdition:
    id: int
    edition_number: int
    edition_type: Optional[str] = None
    publication_year: Optional[int] = None
    bindings: list[StoredBinding] = field(default_factory=list)

    @classmethod
    def from_model(cls, model: CatalogEdition) -> "StoredEdition":
        return cls(
            id=model.id,
            edition_number=model.edition_number,
            edition_type=model.edition_type,
            publication_year=model.publication_year,
            bindings=[StoredBinding.from_model(b) for b in model.bindings],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "edition_number": self.edition_number,
            "edition_type": self.edition_type,
            "publication_year": self.publication_year,
            "bindings": [binding.to_dict() for binding in self.bindings],
        }


@dataclass
class StoredBook:
    """Data class for catalog data transfer."""

    id: str
    title: str
    authors: list[str] = field(default_factory=list)
    subtitle: Optional[str] = None
    publisher: Optional[str] = None
    description: Optional[str] = None
    editions: list[StoredEdition] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: CatalogBook) -> "StoredBook":
        """Create from SQLAlchemy model (must be called inside a session)."""
        return cls(
            id=model.id,
            title=model.title,
            authors=list(model.authors or []),
            subtitle=model.subtitle,
            publisher=model.publisher,
            description=model.description,
            editions=[StoredEdition.from_model(e) for e in model.editions],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @property
    def binding_count(self) -> int:
        return sum(len(edition.bindings) for edition in self.editions)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "authors": self.authors,
            "publisher": self.publisher,
            "description": self.description,
            "editions": [edition.to_dict() for edition in self.editions],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def book_lookup_key(title: str, authors: list[str]) -> str:
    first_author = authors[0] if authors else ""
    return f"{' '.join(title.lower().split())}|{' '.join(first_author.lower().split())}"


def binding_isbn(record: BookRecord) -> Optional[str]:
    """ISBN used to store a record: ISBN-13 when known, else the generic one."""
    isbn = clean_isbn(record.isbn13 or record.isbn or record.isbn10)
    return isbn or None


class CatalogRepository:
    """
    Repository for saved catalogs.

    Usage:
        repo = CatalogRepository("sqlite:///./editionscout.db")

        stored = repo.save_catalog("Venture Deals", ["Brad Feld"], outcome.editions)
        same = repo.get_by_isbn("9781119594826")
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        sqlite_path: Optional[Path] = None,
    ):
        """
        Initialize repository.

        Args:
            database_url: SQLAlchemy database URL
            sqlite_path: Path for SQLite database
        """
        if database_url:
            # Strip async drivers for sync engine
            self.database_url = database_url.replace("+aiosqlite", "").replace("+asyncpg", "")
        elif sqlite_path:
            self.database_url = f"sqlite:///{sqlite_path}"
        else:
            self.database_url = "sqlite:///:memory:"

        engine_kwargs = {}
        if self.database_url == "sqlite:///:memory:":
            # Share the single in-memory database across sessions
            engine_kwargs = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }

        self.engine = create_engine(self.database_url, echo=False, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

        logger.info(f"CatalogRepository initialized: {self.database_url[:50]}...")

    def get_session(self) -> Session:
        """Get database session."""
        return self.SessionLocal()

    def save_catalog(
        self,
        title: str,
        authors: list[str],
        groups: list[EditionGroup],
    ) -> StoredBook:
        """
        Store a work with its editions and bindings.

        Existing rows are reused: the work by title and first author, an
        edition by (number, type) within the work, and a binding by ISBN.

        Args:
            title: Work title
            authors: Work authors
            groups: Edition groups from the grouper

        Returns:
            The stored work with all of its editions
        """
        title = " ".join((title or "").split())
        if not title:
            raise ValueError("Catalog title must not be empty")

        key = book_lookup_key(title, authors)
        created_editions = 0
        created_bindings = 0

        with self.get_session() as session:
            book = session.query(CatalogBook).filter(CatalogBook.lookup_key == key).first()
            if book is None:
                best = _best_of(groups)
                book = CatalogBook(
                    id=str(uuid.uuid4()),
                    title=title,
                    authors=list(authors),
                    lookup_key=key,
                    subtitle=best.subtitle if best else None,
                    publisher=best.publisher if best else None,
                    description=best.description if best else None,
                )
                session.add(book)
                session.flush()

            for group in groups:
                edition = session.query(CatalogEdition).filter(
                    CatalogEdition.book_id == book.id,
                    CatalogEdition.edition_number == group.edition_number,
                    CatalogEdition.edition_type == group.edition_type
                    if group.edition_type is not None
                    else CatalogEdition.edition_type.is_(None),
                ).first()

                if edition is None:
                    edition = CatalogEdition(
                        book_id=book.id,
                        edition_number=group.edition_number,
                        edition_type=group.edition_type,
                        publication_year=group.publication_year,
                    )
                    session.add(edition)
                    session.flush()
                    created_editions += 1
                elif edition.publication_year is None and group.publication_year:
                    edition.publication_year = group.publication_year

                for record in group.books:
                    isbn = binding_isbn(record)
                    if not isbn:
                        logger.debug(f"Skipping binding without ISBN: {record.title}")
                        continue

                    existing = session.query(CatalogBinding).filter(
                        CatalogBinding.isbn == isbn,
                    ).first()
                    if existing is not None:
                        continue

                    session.add(CatalogBinding(
                        edition_id=edition.id,
                        isbn=isbn,
                        binding_type=record.binding_type,
                        publisher=record.publisher,
                        cover_image_url=record.image or record.thumbnail,
                        description=record.description,
                        pages=record.pages,
                        language=record.language,
                        source=record.source,
                    ))
                    # Later records in this batch may repeat the ISBN
                    session.flush()
                    created_bindings += 1

            session.commit()
            session.refresh(book)

            logger.info(
                f"Saved catalog '{title}': {created_editions} new editions, "
                f"{created_bindings} new bindings"
            )
            return StoredBook.from_model(book)

    def get_book(self, book_id: str) -> Optional[StoredBook]:
        """
        Get a stored work by ID.

        Returns:
            StoredBook or None
        """
        with self.get_session() as session:
            book = session.query(CatalogBook).filter(CatalogBook.id == book_id).first()
            if book:
                return StoredBook.from_model(book)
            return None

    def get_by_isbn(self, isbn: str) -> Optional[StoredBook]:
        """
        Get the stored work owning a binding with this ISBN.

        Args:
            isbn: ISBN-10 or ISBN-13, hyphens allowed

        Returns:
            StoredBook or None
        """
        isbn = clean_isbn(isbn)

        with self.get_session() as session:
            binding = session.query(CatalogBinding).filter(CatalogBinding.isbn == isbn).first()
            if binding:
                return StoredBook.from_model(binding.edition.book)
            return None

    def list_books(self, limit: int = 50, offset: int = 0) -> list[StoredBook]:
        """List stored works, newest first."""
        with self.get_session() as session:
            books = (
                session.query(CatalogBook)
                .order_by(CatalogBook.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [StoredBook.from_model(book) for book in books]

    def count(self) -> int:
        with self.get_session() as session:
            return session.query(CatalogBook).count()


def _best_of(groups: list[EditionGroup]) -> Optional[BookRecord]:
    for group in groups:
        best = group.best_metadata()
        if best is not None:
            return best
    return None
