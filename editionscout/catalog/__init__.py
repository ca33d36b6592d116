"""
Catalog Module for EditionScout

Turns raw provider records into a browsable catalog:
- Normalization of provider payloads into BookRecords
- Cross-provider merging and deduplication
- Edition and binding grouping
- Publication validation and smart enhancement

The search orchestrator lives in `editionscout.catalog.search`.
"""

from editionscout.catalog.models import (
    BindingGroup,
    BookRecord,
    EditionGroup,
    SourceStats,
    ValidationResult,
    parse_year,
)
from editionscout.catalog.bindings import (
    AUDIO_FORMATS,
    BINDING_ORDER,
    UNKNOWN_BINDING,
    binding_sort_key,
    is_audio_format,
    normalize_binding,
)
from editionscout.catalog.normalizer import (
    from_google_books,
    from_isbndb,
    from_itunes,
)
from editionscout.catalog.merger import BookMerger
from editionscout.catalog.editions import EditionGrouper
from editionscout.catalog.deadline import Straggler, gather_within_deadline
from editionscout.catalog.validator import PublicationValidator
from editionscout.catalog.enhancement import SmartEnhancer

__all__ = [
    # Models
    "BindingGroup",
    "BookRecord",
    "EditionGroup",
    "SourceStats",
    "ValidationResult",
    "parse_year",
    # Bindings
    "AUDIO_FORMATS",
    "BINDING_ORDER",
    "UNKNOWN_BINDING",
    "binding_sort_key",
    "is_audio_format",
    "normalize_binding",
    # Normalizer
    "from_google_books",
    "from_isbndb",
    "from_itunes",
    # Pipeline
    "BookMerger",
    "EditionGrouper",
    "Straggler",
    "gather_within_deadline",
    "PublicationValidator",
    "SmartEnhancer",
]
