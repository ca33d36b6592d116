"""
Edition Grouper for EditionScout

Partitions a merged candidate list into editions (distinct revisions of a
work), each holding its bindings (formats):
- Audio records are split off and attached to a print edition afterwards
- Print/digital records are keyed by special edition type or edition number
- Edition numbers come from the edition marker, then the title, then the date
- Unattached audio records form their own edition group

Design Decisions:
1. A special keyword in the edition marker outranks any number in the title.
2. Numbers above MAX_EDITION_NUMBER are treated as years and ignored.
3. Grouping never drops a record; undetectable editions default to 1.
"""

import re
from collections import OrderedDict
from typing import Iterable, Optional

from loguru import logger

from editionscout.catalog.bindings import binding_sort_key, is_audio_format
from editionscout.catalog.models import BookRecord, EditionGroup


SPECIAL_EDITIONS = (
    "unabridged",
    "abridged",
    "revised",
    "updated",
    "expanded",
    "annotated",
    "illustrated",
    "deluxe",
    "limited",
    "special",
)

WORD_ORDINALS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "sixth": 6,
    "seventh": 7,
    "eighth": 8,
    "ninth": 9,
    "tenth": 10,
}

_ORDINAL_WORDS = "|".join(WORD_ORDINALS)

MARKER_PATTERNS = [
    re.compile(r"\b(\d+)\s*(?:st|nd|rd|th)\b", re.IGNORECASE),
    re.compile(r"\b(\d+)(?:st|nd|rd|th)?\s*(?:edition|ed\b\.?)", re.IGNORECASE),
]
MARKER_BARE_NUMBER = re.compile(r"^\s*(\d+)\s*\.?\s*$")
MARKER_WORD_ORDINAL = re.compile(rf"\b({_ORDINAL_WORDS})\b", re.IGNORECASE)

TITLE_PATTERNS = [
    re.compile(r"\b(\d+)(?:st|nd|rd|th)?\s+edition\b", re.IGNORECASE),
    re.compile(r"\bedition\s+(\d+)\b", re.IGNORECASE),
    re.compile(r"\b(\d+)(?:st|nd|rd|th)?\s+ed\b\.?", re.IGNORECASE),
    re.compile(r"\bed\.?\s+(\d+)\b", re.IGNORECASE),
]
TITLE_WORD_ORDINAL = re.compile(rf"\b({_ORDINAL_WORDS})\s+edition\b", re.IGNORECASE)
TITLE_REVISION = re.compile(r"\b(?:revised|updated|new)\s+edition\b", re.IGNORECASE)


class EditionGrouper:
    """
    Groups candidate records into EditionGroups.

    Usage:
        grouper = EditionGrouper()
        editions = grouper.group_by_edition(records)
        for edition in editions:
            print(edition.display_name, [g.binding_type for g in edition.binding_groups])
    """

    MAX_EDITION_NUMBER = 99
    MAX_BARE_MARKER_NUMBER = 20

    # Publication year from which an undated-edition record counts as a 2nd edition
    RECENT_EDITION_YEAR = 2020

    # Audio records within this many years of a print edition may attach to it
    AUDIO_YEAR_WINDOW = 2

    # =========================================================================
    # Edition extraction
    # =========================================================================

    @classmethod
    def extract_edition_type(cls, record: BookRecord) -> Optional[str]:
        """Return the special edition keyword found in the edition marker."""
        for marker in (record.edition, record.content_version):
            if not marker:
                continue
            text = marker.lower()
            for special in SPECIAL_EDITIONS:
                if special in text:
                    return special
        return None

    @classmethod
    def _valid(cls, number: int, limit: Optional[int] = None) -> bool:
        return 0 < number <= (limit or cls.MAX_EDITION_NUMBER)

    @classmethod
    def edition_from_marker(cls, marker: Optional[str]) -> Optional[int]:
        """
        Parse an edition number from an edition-marker field.

        Recognizes "2nd", "2nd edition", "second" and bare "1"-"20".

        Returns:
            Edition number, or None when nothing plausible was found.
        """
        if not marker:
            return None

        for pattern in MARKER_PATTERNS:
            for match in pattern.finditer(marker):
                number = int(match.group(1))
                if cls._valid(number):
                    return number

        bare = MARKER_BARE_NUMBER.match(marker)
        if bare:
            number = int(bare.group(1))
            if cls._valid(number, cls.MAX_BARE_MARKER_NUMBER):
                return number

        word = MARKER_WORD_ORDINAL.search(marker)
        if word:
            return WORD_ORDINALS[word.group(1).lower()]

        return None

    @classmethod
    def edition_from_title(cls, title: Optional[str]) -> Optional[int]:
        """
        Parse an edition number from a title.

        "Revised/Updated/New Edition" counts as edition 2.
        """
        if not title:
            return None

        for pattern in TITLE_PATTERNS:
            for match in pattern.finditer(title):
                number = int(match.group(1))
                if cls._valid(number):
                    return number

        word = TITLE_WORD_ORDINAL.search(title)
        if word:
            return WORD_ORDINALS[word.group(1).lower()]

        if TITLE_REVISION.search(title):
            return 2

        return None

    @classmethod
    def extract_edition_number(cls, record: BookRecord) -> int:
        """Edition number by marker, then title, then date; defaults to 1."""
        for marker in (record.edition, record.content_version):
            number = cls.edition_from_marker(marker)
            if number is not None:
                return number

        number = cls.edition_from_title(record.title)
        if number is not None:
            return number

        year = record.publication_year
        if year is not None:
            return 2 if year >= cls.RECENT_EDITION_YEAR else 1

        return 1

    @classmethod
    def edition_key(cls, record: BookRecord) -> tuple[int, Optional[str]]:
        """(edition_number, edition_type) identity for a record."""
        edition_type = cls.extract_edition_type(record)
        if edition_type:
            return (1, edition_type)
        return (cls.extract_edition_number(record), None)

    # =========================================================================
    # Grouping
    # =========================================================================

    def group_by_edition(self, records: Iterable[BookRecord]) -> list[EditionGroup]:
        """
        Partition records into ordered EditionGroups.

        Args:
            records: Deduplicated candidate records.

        Returns:
            Numeric editions newest first, then special editions by type.
        """
        records = list(records)
        if not records:
            return []

        audio = [record for record in records if is_audio_format(record.binding)]
        print_records = [record for record in records if not is_audio_format(record.binding)]

        groups: "OrderedDict[tuple[int, Optional[str]], EditionGroup]" = OrderedDict()
        for record in print_records:
            self._add(groups, self.edition_key(record), record)

        for group in groups.values():
            group.publication_year = self._first_year(group.books)

        print_editions = sorted(
            (group for group in groups.values() if not group.edition_type),
            key=lambda group: group.edition_number,
        )

        for record in audio:
            target = self._attach_audio(record, print_editions)
            if target is not None:
                target.books.append(record)
            else:
                self._add(groups, self.edition_key(record), record)

        for group in groups.values():
            group.publication_year = self._first_year(group.books)
            group.books.sort(key=lambda book: binding_sort_key(book.binding_type))

        ordered = sorted(groups.values(), key=self._group_sort_key)
        logger.debug(
            f"Grouped {len(records)} records ({len(audio)} audio) into {len(ordered)} editions"
        )
        return ordered

    def _attach_audio(
        self,
        record: BookRecord,
        print_editions: list[EditionGroup],
    ) -> Optional[EditionGroup]:
        """Find the print edition an audio record belongs to, if any."""
        title_number = self.edition_from_title(record.title)
        if title_number is not None and title_number > 1:
            for edition in print_editions:
                if edition.edition_number == title_number:
                    return edition

        year = record.publication_year
        if year is None:
            return None

        for index, edition in enumerate(print_editions):
            if edition.publication_year is None:
                continue
            next_year = None
            if index + 1 < len(print_editions):
                next_year = print_editions[index + 1].publication_year
            if edition.publication_year <= year and (next_year is None or year < next_year):
                return edition

        nearby = [
            edition for edition in print_editions
            if edition.publication_year is not None
            and abs(year - edition.publication_year) <= self.AUDIO_YEAR_WINDOW
        ]
        if nearby:
            return min(nearby, key=lambda edition: abs(year - edition.publication_year))

        return None

    @staticmethod
    def _add(groups: dict, key: tuple[int, Optional[str]], record: BookRecord) -> None:
        if key not in groups:
            number, edition_type = key
            groups[key] = EditionGroup(edition_number=number, edition_type=edition_type)
        groups[key].books.append(record)

    @staticmethod
    def _first_year(books: list[BookRecord]) -> Optional[int]:
        for book in books:
            year = book.publication_year
            if year is not None:
                return year
        return None

    @staticmethod
    def _group_sort_key(group: EditionGroup) -> tuple:
        if group.edition_type:
            return (1, 0, group.edition_type)
        return (0, -group.edition_number, "")
