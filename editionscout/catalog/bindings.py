"""
Binding normalization.

Maps free-text binding/format labels from providers onto a small canonical
vocabulary and classifies audio formats. Every comparison or display of a
binding goes through normalize_binding().
"""

import re
from typing import Optional


UNKNOWN_BINDING = "unknown"

HARDCOVER = "hardcover"
PAPERBACK = "paperback"
EBOOK = "ebook"
AUDIOBOOK = "audiobook"
MASS_MARKET = "mass market paperback"

BINDING_SYNONYMS: dict[str, str] = {
    # Hardcover
    "hardcover": HARDCOVER,
    "hardback": HARDCOVER,
    "hard cover": HARDCOVER,
    "hc": HARDCOVER,
    "cloth": HARDCOVER,
    # Paperback
    "paperback": PAPERBACK,
    "softcover": PAPERBACK,
    "soft cover": PAPERBACK,
    "pb": PAPERBACK,
    "trade paperback": PAPERBACK,
    # Mass market
    "mass market": MASS_MARKET,
    "mass market paperback": MASS_MARKET,
    "mmpb": MASS_MARKET,
    # Digital
    "ebook": EBOOK,
    "e-book": EBOOK,
    "digital": EBOOK,
    "kindle": EBOOK,
    "kindle edition": EBOOK,
    "epub": EBOOK,
    "pdf": EBOOK,
    # Audio
    "audiobook": AUDIOBOOK,
    "audio book": AUDIOBOOK,
    "audio": AUDIOBOOK,
    "mp3": AUDIOBOOK,
    "mp3 cd": AUDIOBOOK,
    "mp3_cd": AUDIOBOOK,
    "audio cd": AUDIOBOOK,
    "audio_cd": AUDIOBOOK,
    "compact disc": AUDIOBOOK,
    "audible": AUDIOBOOK,
    "cd": AUDIOBOOK,
}

# Longest synonyms first so "mass market paperback" wins over "paperback"
_PARTIAL_PATTERNS = [
    (re.compile(rf"\b{re.escape(key)}\b"), value)
    for key, value in sorted(BINDING_SYNONYMS.items(), key=lambda kv: -len(kv[0]))
]

AUDIO_FORMATS = (
    "mp3 cd",
    "mp3_cd",
    "audio cd",
    "audio_cd",
    "audiobook",
    "audible",
    "audio book",
    "audio_book",
    "audio",
    "cd",
)

# Kindle labels normalize to EBOOK before they are ordered
BINDING_ORDER = (HARDCOVER, PAPERBACK, EBOOK, AUDIOBOOK)


def normalize_binding(binding: Optional[str]) -> str:
    """
    Normalize a raw binding label.

    Lowercases, trims and collapses whitespace, then maps through
    BINDING_SYNONYMS (exact match first, then whole-word match).
    Unrecognized labels pass through in their cleaned form; empty or
    missing labels become UNKNOWN_BINDING.

    Args:
        binding: Raw label such as "Hard Cover" or "Kindle Edition".

    Returns:
        Canonical binding type.
    """
    if not binding:
        return UNKNOWN_BINDING

    cleaned = " ".join(binding.lower().split())
    if not cleaned:
        return UNKNOWN_BINDING

    if cleaned in BINDING_SYNONYMS:
        return BINDING_SYNONYMS[cleaned]

    for pattern, canonical in _PARTIAL_PATTERNS:
        if pattern.search(cleaned):
            return canonical

    return cleaned


def is_audio_format(binding: Optional[str]) -> bool:
    """Check whether a raw binding label denotes an audio format."""
    if not binding:
        return False
    text = binding.lower().strip()
    return any(fmt in text for fmt in AUDIO_FORMATS)


def binding_sort_key(binding_type: str) -> tuple[int, str]:
    """Sort key placing preferred bindings first, the rest alphabetically."""
    if binding_type in BINDING_ORDER:
        return (BINDING_ORDER.index(binding_type), "")
    return (len(BINDING_ORDER), binding_type)
