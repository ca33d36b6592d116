"""
API Routes for EditionScout

Route modules:
- books: Edition-aware search and the stored catalog
- providers: Provider rate limit and cache status
"""

from editionscout.api.routes.books import router as books_router
from editionscout.api.routes.providers import router as providers_router

__all__ = [
    "books_router",
    "providers_router",
]
