"""
Book API Routes

Edition-aware search across metadata providers, and the stored catalog.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger
from starlette.concurrency import run_in_threadpool

from editionscout.api.dependencies import get_catalog_repository, get_search_service
from editionscout.api.middleware import (
    NotFoundError,
    ProviderUnavailableError,
)
from editionscout.api.schemas import (
    CatalogCreateRequest,
    ErrorResponse,
    SearchResponse,
    StoredBookResponse,
)
from editionscout.catalog.search import (
    CatalogSearchRequest,
    SearchOutcome,
)


router = APIRouter(prefix="/books", tags=["books"])


async def run_search(service, request: CatalogSearchRequest) -> SearchOutcome:
    """Run a search, raising when every provider failed."""
    outcome = await service.search(request)

    if not outcome.success:
        raise ProviderUnavailableError(
            [error.provider for error in outcome.errors],
            detail="; ".join(f"{e.provider}: {e.kind.value}" for e in outcome.errors) or None,
        )
    return outcome


# =============================================================================
# Search Endpoints
# =============================================================================

@router.get(
    "/search",
    response_model=SearchResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No search terms"},
        502: {"model": ErrorResponse, "description": "Every provider failed"},
    },
)
async def search_books(
    title: Optional[str] = Query(None, max_length=500, description="Title to search"),
    author: Optional[str] = Query(None, max_length=200, description="Author to search"),
    isbn: Optional[str] = Query(None, max_length=20, description="ISBN-10 or ISBN-13"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=1000, description="Results per provider page"),
    validate: bool = Query(False, description="Validate candidates against Google Books"),
    min_confidence: Optional[float] = Query(
        None, ge=0.0, le=1.0, description="Drop validated candidates below this confidence"
    ),
    service=Depends(get_search_service),
):
    """
    Search all providers, merge results and group them by edition.

    A search that matches nothing succeeds with empty lists; a search
    where every provider failed returns 502.
    """
    logger.info(f"Searching books: title={title!r} author={author!r} isbn={isbn!r}")

    outcome = await run_search(service, CatalogSearchRequest(
        title=title,
        author=author,
        isbn=isbn,
        page=page,
        page_size=page_size,
        validate=validate,
        min_validation_confidence=min_confidence,
    ))
    return outcome.to_dict()


@router.get(
    "/isbn/{isbn}",
    response_model=SearchResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No book with this ISBN"},
        502: {"model": ErrorResponse, "description": "Every provider failed"},
    },
)
async def get_book_by_isbn(
    isbn: str,
    service=Depends(get_search_service),
):
    """Look up an ISBN on every provider and merge the answers."""
    logger.info(f"Fetching book by ISBN: {isbn}")

    outcome = await run_search(service, CatalogSearchRequest(isbn=isbn))
    if outcome.is_empty:
        raise NotFoundError("Book", isbn)
    return outcome.to_dict()


# =============================================================================
# Catalog Endpoints
# =============================================================================

@router.post(
    "/catalog",
    response_model=StoredBookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "No search terms"},
        404: {"model": ErrorResponse, "description": "Nothing found to store"},
        502: {"model": ErrorResponse, "description": "Every provider failed"},
    },
)
async def create_catalog_entry(
    body: CatalogCreateRequest,
    service=Depends(get_search_service),
    repo=Depends(get_catalog_repository),
):
    """
    Search for a work and store its editions and bindings.

    Saving the same work twice reuses the stored rows.
    """
    outcome = await run_search(service, CatalogSearchRequest(
        title=body.title,
        author=body.author,
        isbn=body.isbn,
        validate=body.validate_publication,
        min_validation_confidence=body.min_confidence,
    ))
    if not outcome.editions:
        raise NotFoundError("Book", body.title or body.isbn or body.author or "")

    top = outcome.candidates[0]
    title = body.title or top.title
    authors = [body.author] if body.author else list(top.authors)

    logger.info(f"Storing catalog for '{title}': {len(outcome.editions)} editions")
    stored = await run_in_threadpool(repo.save_catalog, title, authors, outcome.editions)
    return stored.to_dict()


@router.get(
    "/catalog",
    response_model=list[StoredBookResponse],
)
def list_catalog(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    repo=Depends(get_catalog_repository),
):
    """List stored works, newest first."""
    logger.info(f"Listing catalog: limit={limit}, offset={offset}")
    return [book.to_dict() for book in repo.list_books(limit=limit, offset=offset)]


@router.get(
    "/catalog/{book_id}",
    response_model=StoredBookResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Stored book not found"},
    },
)
def get_catalog_entry(
    book_id: str,
    repo=Depends(get_catalog_repository),
):
    """Get a stored work with its editions and bindings."""
    logger.info(f"Fetching stored book: {book_id}")

    book = repo.get_book(book_id)
    if not book:
        raise NotFoundError("Stored book", book_id)
    return book.to_dict()
