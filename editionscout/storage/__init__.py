"""
Storage Module for EditionScout

Persistent storage for grouped catalogs:
- SQLAlchemy models for works, editions and bindings
- Repository with idempotent saves and ISBN lookup
"""

from editionscout.storage.models import (
    Base,
    CatalogBinding,
    CatalogBook,
    CatalogEdition,
)
from editionscout.storage.catalog_repository import (
    CatalogRepository,
    StoredBinding,
    StoredBook,
    StoredEdition,
)

__all__ = [
    # Models
    "Base",
    "CatalogBinding",
    "CatalogBook",
    "CatalogEdition",
    # Repository
    "CatalogRepository",
    "StoredBinding",
    "StoredBook",
    "StoredEdition",
]
