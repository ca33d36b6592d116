"""
Edition Ranker for EditionScout

Orders a single provider's hits by likely relevance/authority:
- Title relevance (derivative works and unrelated hits are pushed down)
- Edition signal (higher editions preferred)
- Publication date band
- Binding preference

All weights are class constants so deployments can tune them by
subclassing without touching the algorithm.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from editionscout.catalog.models import BookRecord, parse_year


@dataclass
class RankingScore:
    """Breakdown of a record's ranking score."""

    title: int = 0
    edition: int = 0
    date: int = 0
    binding: int = 0

    @property
    def total(self) -> int:
        return self.title + self.edition + self.date + self.binding

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "edition": self.edition,
            "date": self.date,
            "binding": self.binding,
            "total": self.total,
        }


class EditionRanker:
    """
    Scores and stably sorts provider results.

    Higher score wins; equal scores keep input order.
    """

    DERIVATIVE_MARKERS = ("summary", "guide", "study guide")
    DERIVATIVE_PENALTY = -500
    UNRELATED_PENALTY = -1000
    EXACT_TITLE_BONUS = 100

    EDITION_MULTIPLIER = 10
    MAX_BARE_EDITION = 20
    REVISION_BONUS = 5

    # (lowest year inclusive, score), checked top-down
    DATE_BANDS = (
        (2020, 8),
        (2015, 7),
        (2010, 10),
        (2000, 5),
    )
    OLD_DATE_SCORE = 2

    EMPTY_BINDING_SCORE = 45
    UNKNOWN_BINDING_SCORE = 20
    # Substring -> score, checked in order
    BINDING_SCORES = (
        ("hardcover", 50),
        ("hardback", 50),
        ("paperback", 40),
        ("softcover", 40),
        ("kindle", 30),
        ("ebook", 25),
        ("digital", 25),
        ("audible", 15),
        ("audiobook", 15),
        ("audio cd", 10),
        ("mp3_cd", 8),
        ("mp3 cd", 8),
        ("mp3", 5),
        ("cd", 5),
    )

    _ORDINAL = re.compile(r"(\d+)(?:st|nd|rd|th)\b", re.IGNORECASE)
    _EDITION_WORD = re.compile(r"(\d+)(?:st|nd|rd|th)?\s*edition", re.IGNORECASE)
    _BARE_NUMBER = re.compile(r"^(\d+)$")
    _REVISION = re.compile(r"revised|updated|new", re.IGNORECASE)

    def rank(
        self,
        records: Iterable[BookRecord],
        query_title: Optional[str] = None,
    ) -> list[BookRecord]:
        """
        Sort records best-first.

        Args:
            records: Records from one provider.
            query_title: Title the user searched for, if any.

        Returns:
            New list ordered by descending score.
        """
        scored = [(self.score(record, query_title).total, index, record)
                  for index, record in enumerate(records)]
        scored.sort(key=lambda item: (-item[0], item[1]))
        return [record for _, _, record in scored]

    def score(self, record: BookRecord, query_title: Optional[str] = None) -> RankingScore:
        return RankingScore(
            title=self.title_score(record.title, query_title),
            edition=self.edition_score(record),
            date=self.date_score(record.date_published),
            binding=self.binding_score(record.binding),
        )

    def title_score(self, title: str, query_title: Optional[str]) -> int:
        if not query_title:
            return 0

        title = title.lower()
        search = query_title.lower().strip()
        score = 0

        if any(marker in title for marker in self.DERIVATIVE_MARKERS):
            score += self.DERIVATIVE_PENALTY

        main_title = title.split(":")[0].strip()
        if search not in title and main_title not in search:
            score += self.UNRELATED_PENALTY

        if title == search or title.startswith(search + ":"):
            score += self.EXACT_TITLE_BONUS

        return score

    def edition_score(self, record: BookRecord) -> int:
        text = str(record.edition or record.title or "")

        match = self._ORDINAL.search(text) or self._EDITION_WORD.search(text)
        if match:
            return int(match.group(1)) * self.EDITION_MULTIPLIER

        match = self._BARE_NUMBER.match(text.strip())
        if match:
            number = int(match.group(1))
            if 1 <= number <= self.MAX_BARE_EDITION:
                return number * self.EDITION_MULTIPLIER

        if self._REVISION.search(text):
            return self.REVISION_BONUS

        return 0

    def date_score(self, date_published: Optional[str]) -> int:
        if not date_published:
            return 0

        year = parse_year(date_published)
        if year is None:
            return self.OLD_DATE_SCORE

        for lowest, score in self.DATE_BANDS:
            if year >= lowest:
                return score
        return self.OLD_DATE_SCORE

    def binding_score(self, binding: Optional[str]) -> int:
        if not binding or not binding.strip():
            return self.EMPTY_BINDING_SCORE

        text = binding.lower()
        for fragment, score in self.BINDING_SCORES:
            if fragment in text:
                return score
        return self.UNKNOWN_BINDING_SCORE
