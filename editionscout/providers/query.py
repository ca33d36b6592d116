"""Search query passed to provider adapters."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class SearchQuery:
    """Title/author/ISBN query with paging."""

    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    page: int = 1
    page_size: int = 20

    def __post_init__(self):
        self.title = (self.title or "").strip() or None
        self.author = (self.author or "").strip() or None
        self.isbn = (self.isbn or "").replace("-", "").replace(" ", "") or None
        self.page = max(1, int(self.page or 1))
        self.page_size = max(1, int(self.page_size or 20))

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.author or self.isbn)

    def capped_page_size(self, maximum: int, minimum: int = 1) -> int:
        return min(maximum, max(minimum, self.page_size))
