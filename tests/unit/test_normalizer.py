"""
Unit tests for provider record normalization.
"""

import pytest

from editionscout.catalog.models import BookRecord
from editionscout.catalog.normalizer import (
    from_google_books,
    from_isbndb,
    from_itunes,
    normalize_entries,
)


class TestFromISBNdb:
    """Tests for ISBNdb book mapping."""

    def test_full_record(self, isbndb_venture_deals):
        record = from_isbndb(isbndb_venture_deals[0])

        assert record.title == "Venture Deals"
        assert record.subtitle == "Venture Deals: Be Smarter Than Your Lawyer and Venture Capitalist"
        assert record.authors == ["Brad Feld", "Jason Mendelson"]
        assert record.isbn == "9780470929827"
        assert record.isbn13 == "9780470929827"
        assert record.isbn10 == "0470929820"
        assert record.binding_type == "hardcover"
        assert record.edition == "1st"
        assert record.publication_year == 2011
        assert record.pages == 240
        assert record.source == "isbndb"
        assert record.data_sources == ["isbndb"]

    def test_description_fallbacks(self):
        record = from_isbndb({"title": "Venture Deals", "overview": "Overview text", "excerpt": "Excerpt"})
        assert record.description == "Overview text"

    def test_print_type_used_without_binding(self):
        record = from_isbndb({"title": "Venture Deals", "print_type": "Paperback"})
        assert record.binding == "Paperback"

    def test_missing_title_is_skipped(self):
        assert from_isbndb({"isbn13": "9780470929827"}) is None
        assert from_isbndb({"title": "   "}) is None

    def test_missing_fields_stay_absent(self):
        record = from_isbndb({"title": "Venture Deals", "pages": "0"})

        assert record.pages is None
        assert record.publisher is None
        assert record.authors == []
        assert record.binding_type == "unknown"


class TestFromGoogleBooks:
    """Tests for Google Books volume mapping."""

    def test_full_volume(self, google_venture_deals):
        record = from_google_books(google_venture_deals[0])

        assert record.isbn == "9781119594826"
        assert record.isbn10 == "1119594820"
        assert record.subtitle == "Be Smarter Than Your Lawyer and Venture Capitalist"
        assert record.publisher == "John Wiley & Sons"
        assert record.binding == "Paperback"
        assert record.image == "https://books.google.com/vd4.jpg"
        assert record.thumbnail == "https://books.google.com/vd4-small.jpg"
        assert record.subjects == ["Business & Economics"]
        assert record.source == "google_books"

    def test_ebook_binding(self):
        record = from_google_books({
            "volumeInfo": {"title": "Venture Deals", "printType": "BOOK"},
            "saleInfo": {"isEbook": True},
        })
        assert record.binding == "Kindle Edition"
        assert record.binding_type == "ebook"

    def test_unknown_format_has_no_binding(self):
        record = from_google_books({"volumeInfo": {"title": "Venture Deals", "printType": "MAGAZINE"}})
        assert record.binding is None

    def test_isbn10_only(self):
        record = from_google_books({
            "volumeInfo": {
                "title": "Venture Deals",
                "industryIdentifiers": [{"type": "ISBN_10", "identifier": "0470929820"}],
            }
        })
        assert record.isbn == "0470929820"
        assert record.isbn13 is None

    def test_missing_title_is_skipped(self):
        assert from_google_books({"volumeInfo": {}}) is None
        assert from_google_books({}) is None


class TestFromITunes:
    """Tests for iTunes audiobook mapping."""

    def test_audiobook(self, itunes_venture_deals):
        record = from_itunes(itunes_venture_deals[0])

        assert record.title == "Venture Deals (Unabridged)"
        assert record.authors == ["Brad Feld"]
        assert record.binding_type == "audiobook"
        assert record.isbn is None
        assert record.publication_year == 2016
        assert record.image == "https://is1.mzstatic.com/vd-audio.jpg"
        assert record.source == "itunes"

    def test_track_name_fallback(self):
        record = from_itunes({"trackName": "Venture Deals"})
        assert record.title == "Venture Deals"
        assert record.authors == []

    def test_missing_title_is_skipped(self):
        assert from_itunes({"artistName": "Brad Feld"}) is None


class TestNormalizeEntries:
    """Tests for per-entry normalization of provider arrays."""

    def test_skips_and_counts_unreadable_entries(self, isbndb_venture_deals):
        def picky(raw):
            if raw.get("binding") == "Kindle Edition":
                raise TypeError("unexpected binding")
            return from_isbndb(raw)

        entries = ["Venture Deals", {"subtitle": "no title"}] + isbndb_venture_deals
        records, malformed = normalize_entries(picky, entries)

        assert [r.edition for r in records] == ["1st", "4th"]
        assert malformed == 2

    @pytest.mark.parametrize("entries,expected", [(None, 0), ([], 0), (5, 1), ({"books": []}, 1)])
    def test_non_array_payloads(self, entries, expected):
        assert normalize_entries(from_isbndb, entries) == ([], expected)

    def test_wrongly_typed_google_fields(self):
        record = from_google_books({
            "volumeInfo": {
                "title": "Venture Deals",
                "authors": "Brad Feld",
                "industryIdentifiers": ["9780470929827", {"type": "ISBN_13", "identifier": "9781119594826"}],
                "imageLinks": "http://books.google.com/vd.jpg",
                "publisher": {"name": "Wiley"},
            },
            "saleInfo": "FOR_SALE",
        })

        assert record.isbn == "9781119594826"
        assert record.authors == ["Brad Feld"]
        assert record.image is None
        assert record.publisher is None


class TestBookRecord:
    """Tests for BookRecord invariants."""

    def test_empty_title_rejected(self):
        with pytest.raises(ValueError):
            BookRecord(title="  ")

    def test_title_whitespace_collapsed(self):
        assert BookRecord(title="  Venture   Deals ").title == "Venture Deals"

    def test_year_from_title(self):
        assert BookRecord(title="Venture Deals (2013)").publication_year == 2013

    def test_implausible_year_ignored(self):
        assert BookRecord(title="Venture Deals", date_published="1066-10-14").publication_year is None
        assert BookRecord(title="Venture Deals", date_published="unknown").publication_year is None
