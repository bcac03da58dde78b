"""Classify raw barcode payloads into typed ISBN candidates."""
from __future__ import annotations

import re
from typing import Optional

from bookscan.models import IsbnCandidate, Symbology

_NON_ISBN_CHARS = re.compile(r"[^0-9X]")
BOOKLAND_PREFIXES = ("978", "979")


def clean_payload(raw: Optional[str]) -> str:
    """Keep digits and ``X`` only, uppercased."""
    if not raw:
        return ""
    return _NON_ISBN_CHARS.sub("", str(raw).upper())


def _classify(cleaned: str) -> Optional[IsbnCandidate]:
    if len(cleaned) == 13 and cleaned.startswith(BOOKLAND_PREFIXES):
        return IsbnCandidate(cleaned, Symbology.ISBN13)

    if len(cleaned) == 10:
        return IsbnCandidate(cleaned, Symbology.ISBN10)

    # Some books carry EAN-13 codes outside the Bookland range; the lookup
    # service decides whether they are books.
    if len(cleaned) == 13 and cleaned.isdigit():
        return IsbnCandidate(cleaned, Symbology.EAN13_GENERIC)

    return None


def extract_candidate(raw: Optional[str]) -> Optional[IsbnCandidate]:
    cleaned = clean_payload(raw)
    if not cleaned:
        return None

    candidate = _classify(cleaned)
    if candidate is not None:
        return candidate

    if len(cleaned) == 12 and cleaned.startswith("0") and cleaned.isdigit():
        remainder = cleaned[1:]
        # Eleven characters never classify as anything else, so the UPC-A
        # remainder is kept as-is and left for validation to reject.
        return _classify(remainder) or IsbnCandidate(remainder, Symbology.UPC_A)

    return None
