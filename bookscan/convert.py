from __future__ import annotations

from typing import Optional

from bookscan.checksum import (
    compute_isbn10_check_digit,
    compute_isbn13_check_digit,
    validate_isbn10,
    validate_isbn13,
)
from bookscan.symbology import BOOKLAND_PREFIXES, clean_payload


def isbn10_to_isbn13(isbn10: Optional[str]) -> Optional[str]:
    cleaned = clean_payload(isbn10)
    if not validate_isbn10(cleaned):
        return None
    prefix = "978" + cleaned[:9]
    return prefix + compute_isbn13_check_digit(prefix)


def isbn13_to_isbn10(isbn13: Optional[str]) -> Optional[str]:
    cleaned = clean_payload(isbn13)
    if not (cleaned.startswith("978") and validate_isbn13(cleaned)):
        return None
    core = cleaned[3:12]
    return core + compute_isbn10_check_digit(core)


def strip_prefix(isbn: Optional[str]) -> str:
    """Turn a 978/979 ISBN-13 into its 10-character form.

    Other values come back cleaned but otherwise untouched.
    """
    if not isbn:
        return isbn or ""
    cleaned = clean_payload(isbn)
    if len(cleaned) == 13 and cleaned.isdigit() and cleaned.startswith(BOOKLAND_PREFIXES):
        core = cleaned[3:12]
        return core + compute_isbn10_check_digit(core)
    return cleaned


def format_isbn(isbn: Optional[str]) -> Optional[str]:
    """Hyphenate for display: 13 -> 3-1-3-5-1, 10 -> 1-3-5-1."""
    if not isbn:
        return isbn
    cleaned = clean_payload(isbn)
    if len(cleaned) == 13:
        return f"{cleaned[:3]}-{cleaned[3:4]}-{cleaned[4:7]}-{cleaned[7:12]}-{cleaned[12:]}"
    if len(cleaned) == 10:
        return f"{cleaned[:1]}-{cleaned[1:4]}-{cleaned[4:9]}-{cleaned[9:]}"
    return isbn
