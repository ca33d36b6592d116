"""
Provider record normalization.

Pure mapping functions from each provider's raw JSON shape to BookRecord.
Missing optional fields stay absent; nothing is invented. A raw record
without a usable title yields None. Values of the wrong JSON type are
treated as absent.
"""

from typing import Any, Callable, Optional

from loguru import logger

from editionscout.catalog.models import BookRecord


ISBNDB = "isbndb"
GOOGLE_BOOKS = "google_books"
ITUNES = "itunes"

MALFORMED_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


def _text(value: Any) -> Optional[str]:
    """Return a stripped string, or None for empty or non-scalar values."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    value = str(value).strip()
    return value or None


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _https(url: Optional[str]) -> Optional[str]:
    if url and url.startswith("http:"):
        return "https:" + url[len("http:"):]
    return url


def normalize_entries(
    mapper: Callable[[dict], Optional[BookRecord]],
    entries: Any,
) -> tuple[list[BookRecord], int]:
    """
    Map a JSON array of provider entries, one entry at a time.

    Entries without a title are dropped. Entries that are not objects, or
    that the mapper cannot read, are skipped and counted.

    Returns:
        (records, malformed_count)
    """
    if not entries:
        return [], 0
    if not isinstance(entries, (list, tuple)):
        return [], 1

    records = []
    malformed = 0
    for entry in entries:
        if not isinstance(entry, dict):
            malformed += 1
            continue
        try:
            record = mapper(entry)
        except MALFORMED_ERRORS as e:
            malformed += 1
            logger.debug(f"Skipping unreadable {mapper.__name__} entry: {type(e).__name__}: {e}")
            continue
        if record:
            records.append(record)

    if malformed:
        logger.warning(f"{mapper.__name__}: skipped {malformed} malformed entries")
    return records, malformed


def from_isbndb(raw: dict) -> Optional[BookRecord]:
    """
    Map an ISBNdb book object.

    Args:
        raw: Entry from ISBNdb's "book" or "books" payload.

    Returns:
        BookRecord, or None when the entry has no title.
    """
    title = _text(raw.get("title"))
    if not title:
        return None

    title_long = _text(raw.get("title_long"))
    subtitle = title_long if title_long and title_long != title else None

    isbn13 = _text(raw.get("isbn13"))
    isbn10 = _text(raw.get("isbn10"))
    plain_isbn = _text(raw.get("isbn"))
    if plain_isbn and not isbn10 and len(plain_isbn) == 10:
        isbn10 = plain_isbn

    return BookRecord(
        title=title,
        subtitle=subtitle,
        authors=_string_list(raw.get("authors")),
        publisher=_text(raw.get("publisher")),
        date_published=_text(raw.get("date_published")),
        isbn=isbn13 or plain_isbn,
        isbn10=isbn10,
        isbn13=isbn13,
        binding=_text(raw.get("binding")) or _text(raw.get("print_type")),
        edition=_text(raw.get("edition")),
        content_version=_text(raw.get("content_version")),
        pages=_positive_int(raw.get("pages")),
        language=_text(raw.get("language")),
        description=(
            _text(raw.get("synopsis"))
            or _text(raw.get("overview"))
            or _text(raw.get("excerpt"))
        ),
        subjects=_string_list(raw.get("subjects")),
        image=_text(raw.get("image")) or _text(raw.get("cover_image")),
        source=ISBNDB,
    )


def from_google_books(volume: dict) -> Optional[BookRecord]:
    """
    Map a Google Books volume resource.

    ISBN_13 is preferred over ISBN_10. The binding is only derived when
    the sale/print info actually says something about the format.
    """
    info = _mapping(volume.get("volumeInfo"))
    title = _text(info.get("title"))
    if not title:
        return None

    isbn10 = None
    isbn13 = None
    identifiers = info.get("industryIdentifiers")
    for identifier in identifiers if isinstance(identifiers, list) else []:
        if not isinstance(identifier, dict):
            continue
        if identifier.get("type") == "ISBN_13":
            isbn13 = _text(identifier.get("identifier"))
        elif identifier.get("type") == "ISBN_10":
            isbn10 = _text(identifier.get("identifier"))

    sale_info = _mapping(volume.get("saleInfo"))
    if sale_info.get("isEbook"):
        binding = "Kindle Edition"
    elif info.get("printType") == "BOOK":
        binding = "Paperback"
    else:
        binding = None

    images = _mapping(info.get("imageLinks"))
    image = _https(_text(images.get("thumbnail")) or _text(images.get("small")))
    thumbnail = _https(_text(images.get("smallThumbnail")) or _text(images.get("thumbnail")))

    return BookRecord(
        title=title,
        subtitle=_text(info.get("subtitle")),
        authors=_string_list(info.get("authors")),
        publisher=_text(info.get("publisher")),
        date_published=_text(info.get("publishedDate")),
        isbn=isbn13 or isbn10,
        isbn10=isbn10,
        isbn13=isbn13,
        binding=binding,
        pages=_positive_int(info.get("pageCount")),
        language=_text(info.get("language")),
        description=_text(info.get("description")),
        subjects=_string_list(info.get("categories")),
        image=image,
        thumbnail=thumbnail,
        source=GOOGLE_BOOKS,
    )


def from_itunes(item: dict) -> Optional[BookRecord]:
    """Map an iTunes audiobook search result. iTunes carries no ISBN."""
    title = _text(item.get("collectionName")) or _text(item.get("trackName"))
    if not title:
        return None

    artist = _text(item.get("artistName"))
    return BookRecord(
        title=title,
        authors=[artist] if artist else [],
        date_published=_text(item.get("releaseDate")),
        binding="Audiobook",
        description=_text(item.get("description")),
        language=None,
        image=_https(_text(item.get("artworkUrl100")) or _text(item.get("artworkUrl60"))),
        subjects=_string_list(item.get("primaryGenreName")),
        source=ITUNES,
    )
