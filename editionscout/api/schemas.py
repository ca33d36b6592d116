"""
API Schemas for EditionScout

Pydantic models for request validation and response serialization:
- Book record and edition group models
- Search and catalog models
- Provider status and error models

Design Decisions:
1. Response models mirror the `to_dict()` output of the catalog types
2. Separate Request/Response: Clear distinction between inputs and outputs
3. Optional fields: Providers routinely omit metadata
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Book Schemas
# =============================================================================

class ValidationSchema(BaseModel):
    """Publication validation attached to a record."""

    is_really_published: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    flags: list[str] = Field(default_factory=list)
    validation_sources: list[str] = Field(default_factory=list)
    summary: str


class BookRecordSchema(BaseModel):
    """One provider record after normalization and merging."""

    title: str
    subtitle: Optional[str] = None
    authors: list[str] = Field(default_factory=list)
    publisher: Optional[str] = None
    date_published: Optional[str] = None
    publication_year: Optional[int] = None

    isbn: Optional[str] = None
    isbn10: Optional[str] = None
    isbn13: Optional[str] = None

    binding: Optional[str] = None
    binding_type: str
    edition: Optional[str] = None
    content_version: Optional[str] = None

    pages: Optional[int] = None
    language: Optional[str] = None
    description: Optional[str] = None
    subjects: list[str] = Field(default_factory=list)

    image: Optional[str] = None
    thumbnail: Optional[str] = None

    source: str
    data_sources: list[str] = Field(default_factory=list)
    validation: Optional[ValidationSchema] = None


class BindingGroupSchema(BaseModel):
    binding_type: str
    books: list[BookRecordSchema]


class EditionGroupSchema(BaseModel):
    """A detected edition with its bindings."""

    edition_number: int = Field(..., ge=1)
    edition_type: Optional[str] = None
    publication_year: Optional[int] = None
    display_name: str
    bindings: list[BindingGroupSchema]


class SourceStatsSchema(BaseModel):
    isbndb: int = 0
    google_books: int = 0
    itunes: int = 0
    total: int = 0
    duplicates_removed: int = 0


class ProviderErrorSchema(BaseModel):
    provider: str
    kind: str
    message: str
    status_code: Optional[int] = None


# =============================================================================
# Search Schemas
# =============================================================================

class SearchData(BaseModel):
    candidates: list[BookRecordSchema] = Field(default_factory=list)
    editions: list[EditionGroupSchema] = Field(default_factory=list)
    sources: SourceStatsSchema = Field(default_factory=SourceStatsSchema)


class SearchResponse(BaseModel):
    """Search response; `errors` lists providers that failed."""

    success: bool
    data: SearchData
    errors: list[ProviderErrorSchema] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "data": {
                    "candidates": [],
                    "editions": [],
                    "sources": {
                        "isbndb": 12,
                        "google_books": 8,
                        "itunes": 1,
                        "total": 15,
                        "duplicates_removed": 6,
                    },
                },
                "errors": [],
            }
        }
    )


class CatalogCreateRequest(BaseModel):
    """Search for a work and store its editions."""

    title: Optional[str] = Field(None, max_length=500)
    author: Optional[str] = Field(None, max_length=200)
    isbn: Optional[str] = Field(None, max_length=20)
    validate_publication: bool = Field(False, alias="validate")
    min_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Venture Deals",
                "author": "Brad Feld",
            }
        },
    )

    @field_validator("title", "author", "isbn")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


# =============================================================================
# Catalog Schemas
# =============================================================================

class StoredBindingSchema(BaseModel):
    isbn: str
    binding_type: str
    publisher: Optional[str] = None
    cover_image_url: Optional[str] = None
    description: Optional[str] = None
    pages: Optional[int] = None
    language: Optional[str] = None
    source: Optional[str] = None


class StoredEditionSchema(BaseModel):
    id: int
    edition_number: int
    edition_type: Optional[str] = None
    publication_year: Optional[int] = None
    bindings: list[StoredBindingSchema] = Field(default_factory=list)


class StoredBookResponse(BaseModel):
    """A stored work with editions and bindings."""

    id: str
    title: str
    subtitle: Optional[str] = None
    authors: list[str] = Field(default_factory=list)
    publisher: Optional[str] = None
    description: Optional[str] = None
    editions: list[StoredEditionSchema] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Provider Status
# =============================================================================

class ProviderStatus(BaseModel):
    enabled: bool = True
    configured: bool = True
    rate_limit: dict[str, Optional[int]] = Field(default_factory=dict)
    cache: dict[str, float] = Field(default_factory=dict)


class ProviderStatusResponse(BaseModel):
    providers: dict[str, ProviderStatus]


class ProviderUsageResponse(BaseModel):
    """Usage figures reported by a provider for the configured account."""

    provider: str
    stats: dict = Field(default_factory=dict)


# =============================================================================
# Error Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: Optional[str] = None
    code: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Stored book not found",
                "detail": "No Stored book with identifier 'abc123' exists",
                "code": "NOT_FOUND",
                "timestamp": "2025-01-20T12:00:00Z",
            }
        }
    )


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
