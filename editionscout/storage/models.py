"""
Database models for EditionScout.

A stored catalog is three levels deep: a work (CatalogBook) has editions,
and each edition has bindings (one per ISBN).
"""

from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class CatalogBook(Base):
    """A work, independent of edition and binding."""

    __tablename__ = "catalog_books"

    id = Column(String(36), primary_key=True)  # UUID
    title = Column(String(500), nullable=False, index=True)
    subtitle = Column(String(500))
    authors = Column(JSON, default=list)
    # Lowercased "title|first author", used to find the work again
    lookup_key = Column(String(1000), nullable=False, unique=True)
    publisher = Column(String(200))
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    editions = relationship(
        "CatalogEdition",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="CatalogEdition.edition_number",
    )


class CatalogEdition(Base):
    __tablename__ = "catalog_editions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(String(36), ForeignKey("catalog_books.id"), nullable=False, index=True)
    edition_number = Column(Integer, nullable=False, default=1)
    edition_type = Column(String(100))
    publication_year = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)

    book = relationship("CatalogBook", back_populates="editions")
    bindings = relationship(
        "CatalogBinding",
        back_populates="edition",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("book_id", "edition_number", "edition_type", name="uq_edition_identity"),
    )


class CatalogBinding(Base):
    __tablename__ = "catalog_bindings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    edition_id = Column(Integer, ForeignKey("catalog_editions.id"), nullable=False, index=True)
    isbn = Column(String(13), nullable=False, unique=True)
    binding_type = Column(String(100), nullable=False, default="unknown")
    publisher = Column(String(200))
    cover_image_url = Column(String(500))
    description = Column(Text)
    pages = Column(Integer)
    language = Column(String(10))
    source = Column(String(50))  # "isbndb", "google_books", "itunes", "merged"

    created_at = Column(DateTime, default=datetime.utcnow)

    edition = relationship("CatalogEdition", back_populates="bindings")

    __table_args__ = (
        Index("idx_bindings_edition_type", "edition_id", "binding_type"),
    )
